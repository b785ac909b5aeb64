"""HTTP client used by the gateway."""

from __future__ import annotations

from .base import ApiRequest, ApiResult, RetryableRequest
from .resilient import ResilientApiClient, TokenProvider

__all__ = [
    "ApiRequest",
    "ApiResult",
    "ResilientApiClient",
    "RetryableRequest",
    "TokenProvider",
]
