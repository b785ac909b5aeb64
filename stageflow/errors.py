"""Error taxonomy shared by the API client and the transition engine."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class StageflowError(Exception):
    """Base class for programmer and configuration errors."""


class ConfigurationError(StageflowError):
    """Raised when the configured gateway or client settings are unusable."""


class ErrorKind(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    TIMEOUT = "timeout"
    NETWORK_FAILURE = "network_failure"
    HTTP_CLIENT_ERROR = "http_client_error"
    AUTH_EXPIRED = "auth_expired"
    HTTP_SERVER_ERROR = "http_server_error"
    ALREADY_TERMINAL = "already_terminal"


RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class ClassifiedError(BaseModel):
    """A failure reduced to one of the :class:`ErrorKind` buckets."""

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    attempts: int = 1

    @property
    def retryable(self) -> bool:
        """``True`` for failures the client is allowed to retry."""
        if self.kind in (ErrorKind.TIMEOUT, ErrorKind.NETWORK_FAILURE):
            return True
        return self.status_code in RETRYABLE_STATUS_CODES

    @property
    def requires_login(self) -> bool:
        return self.kind is ErrorKind.AUTH_EXPIRED


def status_message(status_code: int, data: object = None) -> str:
    """Return the operator-facing message for an HTTP failure status."""
    server_message = data.get("message") if isinstance(data, dict) else None
    if status_code == 400:
        return server_message or "Bad request - please check your input"
    if status_code == 401:
        return "Authentication failed - please log in again"
    if status_code == 403:
        return "Access denied - insufficient permissions"
    if status_code == 404:
        return "Resource not found"
    if status_code == 408:
        return "Request timeout - please try again"
    if status_code == 429:
        return "Too many requests - please wait and try again"
    if status_code == 500:
        return "Server error - please try again later"
    if status_code in (502, 503, 504):
        return "Service temporarily unavailable - please try again later"
    return server_message or f"Request failed with status {status_code}"


def classify_status(status_code: int, data: object = None) -> ClassifiedError:
    """Map a non-2xx HTTP status to a :class:`ClassifiedError`."""
    if status_code == 401:
        kind = ErrorKind.AUTH_EXPIRED
    elif status_code in RETRYABLE_STATUS_CODES or status_code >= 500:
        kind = ErrorKind.HTTP_SERVER_ERROR
    else:
        kind = ErrorKind.HTTP_CLIENT_ERROR
    return ClassifiedError(
        kind=kind,
        message=status_message(status_code, data),
        status_code=status_code,
    )
