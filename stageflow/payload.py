"""Assembly of the wire payload submitted for a stage transition."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .auth import ActorContext
from .contracts import (
    DeliveryOrder,
    Feedback,
    FeedbackRecord,
    FormState,
    LineItem,
    LineTransition,
    Order,
    OrderTransitionPayload,
    PickupLineTransition,
    PickupOrder,
    StageRequirement,
    Task,
    TaskDetail,
    TaskLineTransition,
    TaskTransitionPayload,
)

TransitionPayloadT = Union[OrderTransitionPayload, TaskTransitionPayload]


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def format_amount(amount: Optional[float]) -> str:
    if amount is None:
        return "0"
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)


class PayloadBuilder:
    """Builds one :class:`TransitionPayload` per transition.

    The header is shared by every order kind; only the identifier field and the
    line records differ. Apart from ``stageDate`` the output depends on the
    inputs alone.
    """

    def build(
        self,
        order: Order,
        requirement: StageRequirement,
        form: FormState,
        actor: ActorContext,
        *,
        submitted_at: Optional[datetime] = None,
    ) -> TransitionPayloadT:
        stage_date = format_timestamp(submitted_at or datetime.now(timezone.utc))
        header = self._header(order, requirement, form, actor, stage_date)

        if isinstance(order, Task):
            return TaskTransitionPayload(
                **header,
                task_id=order.reference,
                task_details=[
                    self._task_line(detail, requirement, stage_date)
                    for detail in order.active_lines()
                ],
            )
        if isinstance(order, PickupOrder):
            lines: List[LineTransition] = [
                self._pickup_line(item, requirement) for item in order.active_lines()
            ]
        elif isinstance(order, DeliveryOrder):
            lines = [self._delivery_line(item, requirement) for item in order.active_lines()]
        else:
            raise TypeError(f"Unsupported order type: {type(order).__name__}")
        return OrderTransitionPayload(**header, order_id=order.reference, stages_details=lines)

    # ------------------------------------------------------------------
    def _header(
        self,
        order: Order,
        requirement: StageRequirement,
        form: FormState,
        actor: ActorContext,
        stage_date: str,
    ) -> Dict[str, Any]:
        location = actor.location
        signed = bool(form.signature)
        return {
            "stage_date": stage_date,
            "stage_definition_id": _opaque_id(requirement.definition_id),
            "stage_definition_details_id": _opaque_id(requirement.definition_detail_id),
            "menu_name": requirement.menu_name,
            "stage_remarks": form.remarks,
            "stage_status": requirement.stage_status,
            "is_signature_added": signed,
            "latitude": str(location.latitude) if location else "",
            "longitude": str(location.longitude) if location else "",
            "location_timestamp": (
                format_timestamp(location.timestamp) if location and location.timestamp else ""
            ),
            "cby": _opaque_id(actor.user_id),
            "reason_id": form.reason_id,
            "reason_description": form.reason_description,
            "vehicle_id": _opaque_id(actor.vehicle_id),
            "payment_mode_id": form.payment_mode_id or "0",
            "expected_amount": "0" if isinstance(order, Task) else format_amount(order.amount),
            "signatures": form.signature or "",
            "file_upload_url": form.file_upload_url or "",
            "physical_signed": form.physical_signed if form.physical_signed is not None else signed,
            "file_upload_validation": bool(form.file_upload_url),
            "is_happy": form.feedback is Feedback.HAPPY,
            "is_sad": form.feedback is Feedback.SAD,
            "is_remarks_mandatory": requirement.required_remarks,
            "is_signature_mandatory": requirement.required_signature,
            "is_file_upload_mandatory": requirement.required_file_upload,
            "is_feedback_mandatory": requirement.required_feedback,
            "feedback_details": self._feedback(form),
        }

    def _feedback(self, form: FormState) -> List[FeedbackRecord]:
        if form.feedback is None:
            return []
        return [
            FeedbackRecord(
                feedback_details_id=definition.details_id,
                feedback_id=definition.feedback_id,
                description=definition.description,
                feedback_values=form.feedback.value,
                bpfb_description=definition.bpfb_description,
                is_checked=form.feedback is Feedback.HAPPY,
                is_checked_no=form.feedback is Feedback.SAD,
            )
            for definition in form.feedback_definitions
        ]

    def _line_fields(self, item: LineItem, requirement: StageRequirement) -> Dict[str, Any]:
        return {
            "order_details_id": item.details_id,
            "line_no": item.line_no,
            "item_code": item.item_code,
            "order_qty": item.ordered_qty,
            "stage_qty": item.stage_qty,
            "open_qty": item.open_qty,
            "stage_status": requirement.stage_status,
            "stage_remarks": item.remarks or "",
            "reason_id": item.reason_id or "0",
            "reason_description": item.reason_description or "",
            "o_qty": item.ordered_qty,
            "non_return_qty": 0,
        }

    def _delivery_line(self, item: LineItem, requirement: StageRequirement) -> LineTransition:
        return LineTransition(**self._line_fields(item, requirement))

    def _pickup_line(self, item: LineItem, requirement: StageRequirement) -> PickupLineTransition:
        return PickupLineTransition(
            **self._line_fields(item, requirement),
            picked_qty=item.stage_qty,
            return_qty=item.stage_qty,
            condition=item.condition or "Good",
            pickup_remarks=item.remarks or "",
        )

    def _task_line(
        self, detail: TaskDetail, requirement: StageRequirement, stage_date: str
    ) -> TaskLineTransition:
        return TaskLineTransition(
            task_details_id=detail.task_details_id,
            task_id=detail.task_id,
            description=detail.description,
            status=requirement.stage_status,
            completion_date=stage_date,
            remarks=detail.remarks or "",
            is_completed=requirement.stage_status == "COMPLETED",
            priority=detail.priority or "Medium",
            estimated_time=detail.estimated_time or "0",
            actual_time=detail.actual_time or "0",
        )


def _opaque_id(value: Optional[int]) -> str:
    return "0" if value is None else str(value)
