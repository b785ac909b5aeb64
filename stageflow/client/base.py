"""Request and result types for the HTTP client."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from ..errors import ClassifiedError

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


class ApiRequest(BaseModel):
    """What a caller asks the client to send."""

    method: str = "GET"
    path: str
    params: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    json_body: Any = None
    files: Optional[Dict[str, Tuple[str, bytes, str]]] = None


class RetryableRequest(BaseModel):
    """Per-call retry state. Lives only for the duration of one ``send``."""

    method: str
    url: str
    params: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    json_body: Any = None
    files: Optional[Dict[str, Tuple[str, bytes, str]]] = None
    attempt: int = 0
    last_error: Optional[ClassifiedError] = None

    @property
    def retries(self) -> int:
        return max(0, self.attempt - 1)


class ApiResult(BaseModel):
    """Outcome of ``send``: either ``data`` or a classified ``error``."""

    data: Any = None
    status_code: Optional[int] = None
    error: Optional[ClassifiedError] = None
    retry_count: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any, status_code: int, retry_count: int = 0) -> "ApiResult":
        return cls(data=data, status_code=status_code, retry_count=retry_count)

    @classmethod
    def failure(cls, error: ClassifiedError, retry_count: int = 0) -> "ApiResult":
        return cls(error=error, status_code=error.status_code, retry_count=retry_count)
