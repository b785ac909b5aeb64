"""Stage transition engine for delivery orders, pickup orders and tasks."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field, ValidationError

from .auth import ActorContext
from .client import ApiResult
from .contracts import (
    FeedbackDefinition,
    FormState,
    Order,
    ReasonCode,
    StageDetails,
    StageRequirement,
    Task,
)
from .errors import ClassifiedError, ErrorKind
from .gateway import OrderGateway, feedback_definitions, reason_codes, uploaded_url
from .payload import PayloadBuilder
from .resolver import StageDefinitionResolver
from .stages import Stage, coerce_stage, is_terminal, next_stage
from .validator import Requirement, TransitionValidator

logger = logging.getLogger(__name__)

IDEMPOTENCY_NAMESPACE = uuid.UUID("6f1c2a9e-3b7d-5e40-9a8c-1d2e3f405162")


class TransitionStatus(str, Enum):
    SUCCEEDED = "succeeded"
    VALIDATION_FAILED = "validation_failed"
    CONFIRMATION_REQUIRED = "confirmation_required"
    ALREADY_TERMINAL = "already_terminal"
    FAILED = "failed"


class TransitionResult(BaseModel):
    """Outcome of one :meth:`StageTransitionEngine.transition` call."""

    status: TransitionStatus
    requirement: Optional[StageRequirement] = None
    next_stage: Optional[str] = None
    next_status: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    missing: List[Requirement] = Field(default_factory=list)
    error: Optional[ClassifiedError] = None
    retry_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status is TransitionStatus.SUCCEEDED


class StageTransitionEngine:
    """Runs the resolve, validate, build and submit sequence for one transition.

    The engine keeps no per-order state. Callers must not start a second
    transition for an order while one is in flight.
    """

    def __init__(
        self,
        gateway: OrderGateway,
        resolver: Optional[StageDefinitionResolver] = None,
        validator: Optional[TransitionValidator] = None,
        builder: Optional[PayloadBuilder] = None,
        idempotency_keys: bool = False,
    ) -> None:
        self._gateway = gateway
        self._resolver = resolver or StageDefinitionResolver()
        self._validator = validator or TransitionValidator()
        self._builder = builder or PayloadBuilder()
        self._idempotency_keys = idempotency_keys

    def resolve(
        self, order: Order, current_stage: Union[Stage, str]
    ) -> StageRequirement:
        return self._resolver.resolve(
            order.order_kind,
            current_stage,
            order.status,
            is_completed=isinstance(order, Task) and order.is_completed,
        )

    async def load_stage_details(
        self,
        order: Order,
        current_stage: Union[Stage, str],
        vehicle_id: Optional[int] = None,
    ) -> Union[StageDetails, ApiResult]:
        """Fetch the stage head for ``order``.

        Returns the parsed :class:`StageDetails` or the failed :class:`ApiResult`.
        """
        requirement = self.resolve(order, current_stage)
        result = await self._gateway.fetch_stage_details(
            order.reference,
            order.order_kind.stage_type,
            requirement.menu_name,
            vehicle_id=vehicle_id,
        )
        if not result.ok:
            return result
        data = result.data[0] if isinstance(result.data, list) and result.data else result.data
        try:
            return StageDetails.model_validate(data or {})
        except ValidationError:
            return _malformed(result, "stage details")

    async def load_feedback_definitions(self) -> Union[List[FeedbackDefinition], ApiResult]:
        """Fetch the customer feedback definitions, or return the failed result."""
        result = await self._gateway.fetch_feedback_definitions()
        if not result.ok:
            return result
        try:
            return feedback_definitions(result.data)
        except ValidationError:
            return _malformed(result, "feedback definitions")

    async def load_reasons(
        self, order: Order, current_stage: Union[Stage, str]
    ) -> Union[List[ReasonCode], ApiResult]:
        """Fetch the line reason codes offered for the next transition of ``order``."""
        requirement = self.resolve(order, current_stage)
        result = await self._gateway.fetch_reasons(
            order.order_kind.stage_type, requirement.menu_name
        )
        if not result.ok:
            return result
        try:
            return reason_codes(result.data)
        except ValidationError:
            return _malformed(result, "reasons")

    async def transition(
        self,
        order: Order,
        current_stage: Union[Stage, str],
        form: FormState,
        actor: ActorContext,
        *,
        stage_details: Optional[StageDetails] = None,
        allow_empty_items: bool = False,
        submitted_at: Optional[datetime] = None,
    ) -> TransitionResult:
        kind = order.order_kind
        stage = coerce_stage(kind, current_stage)

        if is_terminal(kind, stage) or (isinstance(order, Task) and order.is_completed):
            return TransitionResult(
                status=TransitionStatus.ALREADY_TERMINAL,
                error=ClassifiedError(
                    kind=ErrorKind.ALREADY_TERMINAL,
                    message=f"{kind.value} {order.reference} is already {stage.value}",
                    attempts=0,
                ),
            )

        requirement = self.resolve(order, stage)
        if stage_details is not None:
            requirement = requirement.with_definition(stage_details.stage_definition)
            order = self._with_stage_lines(order, stage_details)

        validation = self._validator.validate(requirement, form, order.active_lines())
        if not validation.ok:
            missing = ", ".join(item.value for item in validation.missing)
            logger.warning(f"Transition of {kind.value} {order.reference} blocked: missing {missing}")
            return TransitionResult(
                status=TransitionStatus.VALIDATION_FAILED,
                requirement=requirement,
                missing=validation.missing,
                error=ClassifiedError(
                    kind=ErrorKind.VALIDATION_FAILED,
                    message=f"Missing required input: {missing}",
                    attempts=0,
                ),
            )
        if validation.empty_items_warning and not allow_empty_items:
            return TransitionResult(
                status=TransitionStatus.CONFIRMATION_REQUIRED,
                requirement=requirement,
            )

        if form.pending_file is not None and not form.file_upload_url:
            upload = await self._gateway.upload_file(form.pending_file)
            if not upload.ok:
                return self._failed(requirement, upload)
            form.file_upload_url = uploaded_url(upload.data)
            form.pending_file = None

        if form.feedback is not None and not form.feedback_definitions:
            definitions = await self.load_feedback_definitions()
            if isinstance(definitions, ApiResult):
                return self._failed(requirement, definitions)
            form.feedback_definitions = definitions

        payload = self._builder.build(
            order, requirement, form, actor, submitted_at=submitted_at
        ).to_wire()
        result = await self._gateway.submit_stages([payload], headers=self._headers(payload))
        if not result.ok:
            return self._failed(requirement, result)

        following = next_stage(kind, requirement.stage)
        logger.info(
            f"{kind.value} {order.reference} moved {stage.value} -> "
            f"{following.value if following else stage.value} ({requirement.stage_status})"
        )
        return TransitionResult(
            status=TransitionStatus.SUCCEEDED,
            requirement=requirement,
            next_stage=following.value if following else None,
            next_status=requirement.stage_status,
            payload=payload,
            retry_count=result.retry_count,
        )

    # ------------------------------------------------------------------
    def _with_stage_lines(self, order: Order, stage_details: StageDetails) -> Order:
        """Use the fetched head lines when the order was listed without them."""
        if isinstance(order, Task):
            if order.details:
                return order
            return order.model_copy(update={"details": stage_details.task_details()})
        if order.items:
            return order
        return order.model_copy(update={"items": stage_details.line_items()})

    def _headers(self, payload: Dict[str, Any]) -> Optional[Dict[str, str]]:
        if not self._idempotency_keys:
            return None
        return {"Idempotency-Key": idempotency_key([payload])}

    def _failed(self, requirement: StageRequirement, result: ApiResult) -> TransitionResult:
        return TransitionResult(
            status=TransitionStatus.FAILED,
            requirement=requirement,
            error=result.error,
            retry_count=result.retry_count,
        )


def _malformed(result: ApiResult, what: str) -> ApiResult:
    return ApiResult.failure(
        ClassifiedError(
            kind=ErrorKind.HTTP_SERVER_ERROR,
            message=f"Unexpected {what} response from server",
            status_code=result.status_code,
        ),
        retry_count=result.retry_count,
    )


def idempotency_key(payloads: Sequence[Dict[str, Any]]) -> str:
    """Derive a stable key from serialised payloads; equal payloads give equal keys."""
    canonical = json.dumps(list(payloads), sort_keys=True, separators=(",", ":"))
    return str(uuid.uuid5(IDEMPOTENCY_NAMESPACE, canonical))
