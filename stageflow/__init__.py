"""Stageflow: stage transitions for delivery orders, pickup orders and tasks."""

from .client import ApiRequest, ApiResult, ResilientApiClient
from .contracts import DeliveryOrder, FormState, PickupOrder, StageRequirement, Task
from .engine import StageTransitionEngine, TransitionResult, TransitionStatus
from .gateway import get_gateway
from .payload import PayloadBuilder
from .resolver import StageDefinitionResolver
from .stages import OrderKind
from .validator import TransitionValidator

__version__ = "0.1.0"
__all__ = [
    "ApiRequest",
    "ApiResult",
    "ResilientApiClient",
    "DeliveryOrder",
    "PickupOrder",
    "Task",
    "FormState",
    "StageRequirement",
    "OrderKind",
    "StageDefinitionResolver",
    "TransitionValidator",
    "PayloadBuilder",
    "StageTransitionEngine",
    "TransitionResult",
    "TransitionStatus",
    "get_gateway",
]
