"""Order kinds, their closed stage sets and stage ordering."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Type, Union


class OrderKind(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    TASK = "task"

    @property
    def stage_type(self) -> str:
        """Backend ``StageType`` tag used when fetching stage details."""
        return _STAGE_TYPES[self]


_STAGE_TYPES = {
    OrderKind.DELIVERY: "Delivery order",
    OrderKind.PICKUP: "Pickup order",
    OrderKind.TASK: "Tasks",
}


class DeliveryStage(str, Enum):
    OPEN = "open"
    PICKING = "picking"
    DELIVERED = "delivered"
    COMPLETED = "completed"


class PickupStage(str, Enum):
    OPEN = "open"
    PICKING = "picking"
    PICKED = "picked"
    COMPLETED = "completed"


class TaskStage(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


Stage = Union[DeliveryStage, PickupStage, TaskStage]

STAGE_ENUMS: Dict[OrderKind, Type[Enum]] = {
    OrderKind.DELIVERY: DeliveryStage,
    OrderKind.PICKUP: PickupStage,
    OrderKind.TASK: TaskStage,
}

# Enum definition order is the flow order.
STAGE_FLOWS: Dict[OrderKind, List[Stage]] = {
    kind: list(enum) for kind, enum in STAGE_ENUMS.items()
}


def coerce_stage(kind: OrderKind, stage: Union[str, Stage]) -> Stage:
    """Return ``stage`` as a member of ``kind``'s stage enum.

    Raises:
        ValueError: If ``stage`` is not a stage of ``kind``.
    """
    enum = STAGE_ENUMS[kind]
    if isinstance(stage, enum):
        return stage
    value = stage.value if isinstance(stage, Enum) else str(stage).lower()
    try:
        return enum(value)
    except ValueError:
        raise ValueError(f"{stage!r} is not a {kind.value} stage") from None


def initial_stage(kind: OrderKind) -> Stage:
    return STAGE_FLOWS[kind][0]


def terminal_stage(kind: OrderKind) -> Stage:
    return STAGE_FLOWS[kind][-1]


def is_terminal(kind: OrderKind, stage: Union[str, Stage]) -> bool:
    return coerce_stage(kind, stage) == terminal_stage(kind)


def next_stage(kind: OrderKind, stage: Union[str, Stage]) -> Optional[Stage]:
    """Return the stage after ``stage`` or ``None`` when it is terminal."""
    flow = STAGE_FLOWS[kind]
    index = flow.index(coerce_stage(kind, stage))
    if index + 1 >= len(flow):
        return None
    return flow[index + 1]
