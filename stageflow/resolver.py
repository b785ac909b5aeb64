"""Lookup of transition requirements and backend menu names."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple, Union

from .contracts import StageRequirement
from .stages import (
    DeliveryStage,
    OrderKind,
    PickupStage,
    Stage,
    TaskStage,
    coerce_stage,
    initial_stage,
)

logger = logging.getLogger(__name__)

# A stage of ``None`` matches every stage: the backend status alone decides.
TableKey = Tuple[OrderKind, Optional[str], str]

_COMPLETED_TASK_STATUSES = frozenset({"COMPLETED"})


def _req(kind: OrderKind, stage: str, menu_name: str, stage_status: str, **flags) -> StageRequirement:
    return StageRequirement(
        kind=kind, stage=stage, menu_name=menu_name, stage_status=stage_status, **flags
    )


_D, _P, _T = OrderKind.DELIVERY, OrderKind.PICKUP, OrderKind.TASK

_CONFIRMATION_GATES = dict(
    required_signature=True,
    required_file_upload=True,
    required_feedback=True,
)

_DISPATCHING = _req(
    _D, "picking", "Dispatching", "DISPATCHED",
    line_level_allowed=True, partial_allowed=True,
    definition_id=2, definition_detail_id=9,
)

REQUIREMENT_TABLE: Dict[TableKey, StageRequirement] = {
    # Delivery
    (_D, "open", "PENDING"): _req(_D, "open", "Open", "OPEN"),
    (_D, "open", "OPEN"): _req(_D, "open", "Open", "OPEN"),
    (_D, "picking", "OPEN"): _req(
        _D, "picking", "Picking", "DISPATCHED",
        line_level_allowed=True, partial_allowed=True,
        definition_id=2, definition_detail_id=9,
    ),
    (_D, "picking", "PICKED"): _DISPATCHING,
    (_D, None, "PARTIALLYDISPATCHED"): _DISPATCHING,
    (_D, "delivered", "DISPATCHED"): _req(
        _D, "delivered", "Confirmation", "COMPLETED",
        required_payment_mode=True,
        definition_id=3, definition_detail_id=10,
        **_CONFIRMATION_GATES,
    ),
    (_D, "completed", "COMPLETED"): _req(_D, "completed", "Completed", "COMPLETED"),
    # Pickup: the backend status selects the menu regardless of the UI stage.
    (_P, "open", "PENDING"): _req(_P, "open", "Pickup Order", "OPEN"),
    (_P, None, "OPEN"): _req(
        _P, "picking", "Pickup Order", "REQUESTED",
        line_level_allowed=True, partial_allowed=True,
        definition_id=3, definition_detail_id=10,
    ),
    (_P, None, "REQUESTED"): _req(
        _P, "picked", "Return Confirmation", "CLOSED",
        line_level_allowed=True, partial_allowed=True,
        definition_id=3, definition_detail_id=11,
        **_CONFIRMATION_GATES,
    ),
    (_P, "completed", "CLOSED"): _req(_P, "completed", "Pickup Order", "CLOSED"),
    (_P, "completed", "COMPLETED"): _req(_P, "completed", "Pickup Order", "CLOSED"),
    # Task
    (_T, "open", "PENDING"): _req(
        _T, "open", "Open", "IN_PROGRESS", definition_id=4, definition_detail_id=11
    ),
    (_T, "open", "OPEN"): _req(
        _T, "open", "Open", "IN_PROGRESS", definition_id=4, definition_detail_id=11
    ),
    (_T, "in_progress", "IN_PROGRESS"): _req(
        _T, "in_progress", "In Progress", "COMPLETED",
        required_signature=True, required_file_upload=True,
        definition_id=4, definition_detail_id=11,
    ),
}

_TASK_COMPLETED = _req(_T, "completed", "Completed", "COMPLETED", definition_id=4, definition_detail_id=11)

_INITIAL_STATUS = {_D: "PENDING", _P: "PENDING", _T: "PENDING"}

# Backend status -> UI stage, as the order lists present them.
STATUS_STAGES: Dict[OrderKind, Dict[str, Stage]] = {
    _D: {
        "PENDING": DeliveryStage.OPEN,
        "OPEN": DeliveryStage.PICKING,
        "PICKED": DeliveryStage.PICKING,
        "PARTIALLYDISPATCHED": DeliveryStage.PICKING,
        "DISPATCHED": DeliveryStage.DELIVERED,
        "COMPLETED": DeliveryStage.COMPLETED,
        "CLOSED": DeliveryStage.COMPLETED,
    },
    _P: {
        "PENDING": PickupStage.OPEN,
        "OPEN": PickupStage.PICKING,
        "REQUESTED": PickupStage.PICKED,
        "PICKED": PickupStage.PICKED,
        "COMPLETED": PickupStage.COMPLETED,
        "CLOSED": PickupStage.COMPLETED,
    },
    _T: {
        "PENDING": TaskStage.OPEN,
        "OPEN": TaskStage.OPEN,
        "IN_PROGRESS": TaskStage.IN_PROGRESS,
        "COMPLETED": TaskStage.COMPLETED,
    },
}


def _normalize_status(status: Optional[str]) -> str:
    return (status or "").strip().upper()


class StageDefinitionResolver:
    """Resolves the :class:`StageRequirement` for the next transition.

    Pure lookup over :data:`REQUIREMENT_TABLE`. Status-wide entries (stage
    ``None``) win over stage-specific ones. Unknown combinations fall back to
    the kind's initial-stage requirement with ``was_defaulted`` set.
    """

    def __init__(self, table: Optional[Dict[TableKey, StageRequirement]] = None) -> None:
        self._table = table if table is not None else REQUIREMENT_TABLE

    def resolve(
        self,
        kind: Union[OrderKind, str],
        current_stage: Union[Stage, str],
        current_status: Optional[str],
        *,
        is_completed: bool = False,
    ) -> StageRequirement:
        kind = OrderKind(kind)
        stage = coerce_stage(kind, current_stage)
        status = _normalize_status(current_status)

        if kind is OrderKind.TASK and (is_completed or status in _COMPLETED_TASK_STATUSES):
            return _TASK_COMPLETED

        requirement = self._table.get((kind, None, status)) or self._table.get(
            (kind, stage.value, status)
        )
        if requirement is not None:
            return requirement

        logger.warning(
            f"No stage requirement for {kind.value}/{stage.value}/{status or '<empty>'}; "
            "falling back to the initial stage"
        )
        return self.default_for(kind)

    def default_for(self, kind: OrderKind) -> StageRequirement:
        key = (kind, initial_stage(kind).value, _INITIAL_STATUS[kind])
        return self._table[key].model_copy(update={"was_defaulted": True})

    def menu_name(
        self,
        kind: Union[OrderKind, str],
        current_stage: Union[Stage, str],
        current_status: Optional[str],
        *,
        is_completed: bool = False,
    ) -> str:
        return self.resolve(
            kind, current_stage, current_status, is_completed=is_completed
        ).menu_name


def stage_for_status(
    kind: Union[OrderKind, str], status: Optional[str], is_completed: bool = False
) -> Stage:
    """Map a backend status string to the UI stage; unknown statuses map to the initial stage."""
    kind = OrderKind(kind)
    if kind is OrderKind.TASK and is_completed:
        return TaskStage.COMPLETED
    return STATUS_STAGES[kind].get(_normalize_status(status), initial_stage(kind))
