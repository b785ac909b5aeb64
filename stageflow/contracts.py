"""Core data contracts for the stage workflow.

Models that mirror backend JSON declare the backend field names as aliases;
both the alias and the Python name are accepted on input, and payloads are
serialised with ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .stages import OrderKind


class WireModel(BaseModel):
    """Base for models exchanged with the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class LineItem(WireModel):
    """One line of a delivery or pickup order."""

    details_id: int = Field(alias="details_ID")
    line_no: int = Field(default=0, alias="lineNo")
    item_code: str = Field(default="", alias="itemCode")
    description: str = ""
    ordered_qty: float = Field(
        default=0,
        validation_alias=AliasChoices("ordered_qty", "invoiceQty", "returnQty", "orderQty"),
    )
    open_qty: float = Field(default=0, alias="openQty")
    actioned_qty: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("actioned_qty", "pickedQty", "pickingQty", "deliveryQty"),
    )
    is_cancelled: bool = Field(default=False, alias="isCancelled")
    reason_id: Optional[str] = Field(default=None, alias="reasonID")
    reason_description: Optional[str] = Field(default=None, alias="reasonDescription")
    remarks: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("remarks", "pickupRemarks", "stageRemarks")
    )
    condition: Optional[str] = None

    @property
    def stage_qty(self) -> float:
        """Quantity to submit; an unset operator entry means the full ordered quantity."""
        if self.actioned_qty is None:
            return self.ordered_qty
        return self.actioned_qty

    @property
    def is_short(self) -> bool:
        return self.stage_qty < self.ordered_qty


class TaskDetail(WireModel):
    """A sub-step of a task."""

    task_details_id: int = Field(alias="taskDetailsID")
    task_id: int = Field(default=0, alias="taskId")
    description: str = ""
    status: str = ""
    remarks: Optional[str] = None
    is_completed: bool = Field(default=False, alias="isCompleted")
    priority: Optional[str] = None
    estimated_time: Optional[str] = Field(default=None, alias="estimatedTime")
    actual_time: Optional[str] = Field(default=None, alias="actualTime")


class BaseOrder(WireModel):
    """Fields shared by every order kind."""

    id: Optional[int] = None
    doc_num: str = Field(default="", validation_alias=AliasChoices("doc_num", "docNum", "doStr"))
    status: str = ""
    card_name: str = Field(default="", alias="cardName")
    amount: Optional[float] = None
    mobile_no: Optional[str] = Field(default=None, alias="mobileNo")
    contact_number: Optional[str] = Field(default=None, alias="contactNumber")
    is_cancelled: bool = Field(default=False, alias="isCancelled")

    @property
    def order_kind(self) -> OrderKind:
        return OrderKind(self.kind)  # type: ignore[attr-defined]

    @property
    def reference(self) -> str:
        """Identifier used in payload headers, falling back to the document number."""
        if self.id is not None:
            return str(self.id)
        return self.doc_num


class DeliveryOrder(BaseOrder):
    kind: Literal["delivery"] = "delivery"
    items: List[LineItem] = Field(default_factory=list)

    def active_lines(self) -> List[LineItem]:
        return [item for item in self.items if not item.is_cancelled]


class PickupOrder(BaseOrder):
    kind: Literal["pickup"] = "pickup"
    items: List[LineItem] = Field(default_factory=list)

    def active_lines(self) -> List[LineItem]:
        return [item for item in self.items if not item.is_cancelled]


class Task(BaseOrder):
    kind: Literal["task"] = "task"
    task_id: Optional[int] = Field(default=None, alias="taskId")
    task_name: str = Field(default="", alias="taskName")
    is_completed: bool = Field(
        default=False, validation_alias=AliasChoices("is_completed", "iscompleted", "isCompleted")
    )
    details: List[TaskDetail] = Field(default_factory=list)

    @property
    def reference(self) -> str:
        if self.id is not None:
            return str(self.id)
        if self.task_id is not None:
            return str(self.task_id)
        return self.doc_num

    def active_lines(self) -> List[TaskDetail]:
        return [detail for detail in self.details if not detail.is_completed]


Order = Union[DeliveryOrder, PickupOrder, Task]


class OrderEnvelope(BaseModel):
    """Parses any order kind from JSON using the ``kind`` discriminator."""

    order: Order = Field(discriminator="kind")


# ---------------------------------------------------------------------------
# Stage details returned by the backend
# ---------------------------------------------------------------------------


class StageDefinition(WireModel):
    """Server-side descriptor of the stage a transition writes."""

    details_id: int = Field(alias="details_ID")
    stage_definition_id: int = Field(alias="stageDefinitionID")
    sequence_no: int = Field(default=0, alias="sequenceNo")
    menu_name: str = Field(default="", alias="menuName")
    from_status: str = Field(default="", alias="fromStatus")
    to_status: str = Field(default="", alias="toStatus")
    is_remarks_mandatory: bool = Field(default=False, alias="isRemarksMandatory")
    is_signature_mandatory: bool = Field(default=False, alias="isCustomerSignatureMandatory")
    is_line_level_status_allowed: bool = Field(default=False, alias="isLineLevelStatusAllowed")
    is_ending_stage: bool = Field(default=False, alias="isEndingStage")
    allow_partial: bool = Field(default=True, alias="allowPartial")
    is_reason_mandatory_line_level: str = Field(default="", alias="isReasonMandatoryLineLevel")
    file_upload: bool = Field(default=False, alias="fileUpload")
    is_customer_feedback: bool = Field(default=False, alias="isCustomerFeedback")

    @property
    def line_reason_mandatory(self) -> bool:
        return self.is_reason_mandatory_line_level.strip().upper() in ("Y", "YES", "TRUE", "1")


class StageHead(WireModel):
    id: Optional[int] = None
    status: str = ""
    remarks: Optional[str] = None
    stage_definition_id: Optional[int] = Field(default=None, alias="stageDefinitionID")
    lines: List[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("lines", "do_Detail", "pu_Detail", "task_Detail"),
    )


class StageDetails(WireModel):
    """Head object returned by the stage-details fetch."""

    is_valid_stage: bool = Field(default=True, alias="isValid_Stage")
    partial_detected: bool = Field(default=False, alias="partial_Detected")
    from_status: str = Field(default="", alias="fromStatus")
    to_status: str = Field(default="", alias="toStatus")
    stage_definition: Optional[StageDefinition] = Field(default=None, alias="stage_Def_Detail")
    head: Optional[StageHead] = Field(
        default=None, validation_alias=AliasChoices("head", "do_Head", "pu_Head", "task_Head")
    )

    def line_items(self) -> List[LineItem]:
        """Line items of a delivery/pickup head, cancelled ones included."""
        if self.head is None:
            return []
        return [LineItem.model_validate(line) for line in self.head.lines]

    def task_details(self) -> List[TaskDetail]:
        if self.head is None:
            return []
        return [TaskDetail.model_validate(line) for line in self.head.lines]


class FeedbackDefinition(WireModel):
    details_id: int = Field(alias="details_ID")
    feedback_id: int = Field(default=0, alias="feedBackID")
    description: str = ""
    bpfb_description: str = Field(default="", alias="bpfbdescription")


class ReasonCode(WireModel):
    """A reason an operator can attach to a short line."""

    id: int
    reason_description: str = Field(default="", alias="reasonDescription")


# ---------------------------------------------------------------------------
# Operator input
# ---------------------------------------------------------------------------


class Feedback(str, Enum):
    HAPPY = "happy"
    SAD = "sad"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Feedback"]:
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class FileUpload(BaseModel):
    """A file selected on the device but not yet sent to the server."""

    name: str
    content: bytes
    mime_type: str = "image/jpeg"


class FormState(BaseModel):
    """What the operator entered on the stage screen."""

    remarks: str = ""
    signature: Optional[str] = None
    physical_signed: Optional[bool] = None
    file_upload_url: Optional[str] = None
    pending_file: Optional[FileUpload] = None
    feedback: Optional[Feedback] = None
    feedback_definitions: List[FeedbackDefinition] = Field(default_factory=list)
    payment_mode_id: Optional[str] = None
    reason_id: int = 0
    reason_description: str = ""

    @property
    def has_file(self) -> bool:
        return bool(self.file_upload_url) or self.pending_file is not None


# ---------------------------------------------------------------------------
# Transition payloads
# ---------------------------------------------------------------------------


class FeedbackRecord(WireModel):
    feedback_details_id: int = Field(alias="feedbackDetails_ID")
    feedback_id: int = Field(alias="feedBackID")
    description: str
    feedback_values: str = Field(alias="feedbackValues")
    bpfb_description: str = Field(alias="bpfbdescription")
    is_checked: bool = Field(alias="ischecked")
    is_checked_no: bool = Field(alias="isCheckedNo")


class LineTransition(WireModel):
    order_details_id: int = Field(alias="orderDetailsID")
    line_no: int = Field(alias="lineNo")
    item_code: str = Field(alias="itemCode")
    order_qty: float = Field(alias="orderQty")
    stage_qty: float = Field(alias="stageQty")
    open_qty: float = Field(alias="openQty")
    stage_status: str = Field(alias="stageStatus")
    stage_remarks: str = Field(alias="stageRemarks")
    reason_id: str = Field(alias="reasonID")
    reason_description: str = Field(alias="reasonDescription")
    o_qty: float = Field(alias="oQty")
    non_return_qty: float = Field(default=0, alias="nonReturnQty")


class PickupLineTransition(LineTransition):
    picked_qty: float = Field(alias="pickedQty")
    return_qty: float = Field(alias="returnQty")
    condition: str
    pickup_remarks: str = Field(alias="pickupRemarks")


class TaskLineTransition(WireModel):
    task_details_id: int = Field(alias="taskDetailsID")
    task_id: int = Field(alias="taskId")
    description: str
    status: str
    completion_date: str = Field(alias="completionDate")
    remarks: str
    is_completed: bool = Field(alias="isCompleted")
    priority: str
    estimated_time: str = Field(alias="estimatedTime")
    actual_time: str = Field(alias="actualTime")


class TransitionPayload(WireModel):
    """Header fields shared by every transition payload."""

    stage_date: str = Field(alias="stageDate")
    stage_definition_id: str = Field(alias="stageDefinitionID")
    stage_definition_details_id: str = Field(alias="stageDefinitionDetailsID")
    menu_name: str = Field(alias="menuName")
    stage_remarks: str = Field(alias="stageRemarks")
    stage_status: str = Field(alias="stageStatus")
    is_signature_added: bool = Field(alias="isSignatureAdded")
    latitude: str
    longitude: str
    location_timestamp: str = Field(alias="locationTimeStamp")
    is_active: bool = Field(default=True, alias="isActive")
    cby: str
    is_partial_previous_stage: bool = Field(default=False, alias="isPartialPreviousStage")
    reason_id: int = Field(alias="reasonID")
    reason_description: str = Field(alias="reasonDescription")
    vehicle_id: str = Field(alias="vehicleID")
    location_id: str = Field(default="0", alias="locationID")
    is_scanned: bool = Field(default=False, alias="isScanned")
    payment_mode_id: str = Field(alias="paymentModeId")
    expected_amount: str = Field(alias="expectedAmount")
    signatures: str
    file_upload_url: str = Field(alias="fileUploadUrl")
    physical_signed: bool = Field(alias="physicalSigned")
    file_upload_validation: bool = Field(alias="fileUploadValidation")
    is_happy: bool = Field(alias="isHappy")
    is_sad: bool = Field(alias="isSad")
    is_remarks_mandatory: bool = Field(alias="isRemarksMandatory")
    is_signature_mandatory: bool = Field(alias="isSignatureMandatory")
    is_file_upload_mandatory: bool = Field(alias="isFileUploadMandatory")
    is_feedback_mandatory: bool = Field(alias="isFeedbackMandatory")
    feedback_details: List[FeedbackRecord] = Field(alias="FeedbackStage_Details")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class OrderTransitionPayload(TransitionPayload):
    order_id: str = Field(alias="orderID")
    stages_details: List[Union[PickupLineTransition, LineTransition]] = Field(
        alias="stages_Details"
    )


class TaskTransitionPayload(TransitionPayload):
    task_id: str = Field(alias="taskID")
    task_details: List[TaskLineTransition] = Field(alias="task_Details")


class GeoPoint(BaseModel):
    latitude: float
    longitude: float
    timestamp: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Stage requirements
# ---------------------------------------------------------------------------


class StageRequirement(BaseModel):
    """What a transition out of a given (kind, stage, status) demands."""

    model_config = ConfigDict(frozen=True)

    kind: OrderKind
    stage: str
    menu_name: str
    stage_status: str
    required_remarks: bool = False
    required_signature: bool = False
    required_file_upload: bool = False
    required_feedback: bool = False
    required_payment_mode: bool = False
    required_line_reason: bool = False
    line_level_allowed: bool = False
    partial_allowed: bool = False
    definition_id: Optional[int] = None
    definition_detail_id: Optional[int] = None
    was_defaulted: bool = False

    def with_definition(self, definition: Optional[StageDefinition]) -> "StageRequirement":
        """Merge the server descriptor: its mandatory flags can only tighten this requirement."""
        if definition is None:
            return self
        return self.model_copy(
            update={
                "required_remarks": self.required_remarks or definition.is_remarks_mandatory,
                "required_signature": self.required_signature or definition.is_signature_mandatory,
                "required_file_upload": self.required_file_upload or definition.file_upload,
                "required_feedback": self.required_feedback or definition.is_customer_feedback,
                "required_line_reason": (
                    self.required_line_reason or definition.line_reason_mandatory
                ),
                "line_level_allowed": (
                    self.line_level_allowed or definition.is_line_level_status_allowed
                ),
                "partial_allowed": self.partial_allowed and definition.allow_partial,
                "definition_id": definition.stage_definition_id,
                "definition_detail_id": definition.details_id,
            }
        )
