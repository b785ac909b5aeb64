"""HTTP client with bounded timeouts, failure classification and retries."""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from ..config import ApiConfig
from ..errors import ClassifiedError, ErrorKind, classify_status
from ..utils import retry
from .base import ALLOWED_METHODS, ApiRequest, ApiResult, RetryableRequest

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class ResilientApiClient:
    """Sends requests to the backend and never raises for network or HTTP failures.

    Failures are classified into :class:`~stageflow.errors.ErrorKind` buckets.
    Timeouts, network errors and statuses in
    :data:`~stageflow.errors.RETRYABLE_STATUS_CODES` are retried up to
    ``config.max_retries`` times, sleeping ``compute_backoff(n)`` before retry
    ``n``. The bearer token is obtained from ``token_provider`` on every
    attempt; the client keeps no auth state of its own.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ApiConfig()
        self._token_provider = token_provider
        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "ResilientApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    async def send(self, request: ApiRequest) -> ApiResult:
        """Send ``request``, retrying transient failures.

        Raises:
            ValueError: If the request itself is malformed.
        """
        method = request.method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {request.method}")
        if request.json_body is not None and request.files:
            raise ValueError("A request carries either a JSON body or files, not both")

        state = RetryableRequest(
            method=method,
            url=request.path,
            params=request.params,
            headers={"Accept": "application/json", **request.headers},
            json_body=request.json_body,
            files=request.files,
        )

        while True:
            state.attempt += 1
            outcome = await self._attempt(state)
            if isinstance(outcome, ApiResult):
                if state.retries:
                    logger.info(f"{method} {state.url} succeeded after {state.retries} retries")
                return outcome

            outcome.attempts = state.attempt
            state.last_error = outcome
            if not outcome.retryable or state.retries >= self.config.max_retries:
                logger.error(
                    f"{method} {state.url} failed after {state.attempt} attempt(s): "
                    f"{outcome.kind.value} {outcome.message}"
                )
                return ApiResult.failure(outcome, retry_count=state.retries)

            delay = retry.compute_backoff(
                state.retries + 1,
                base=self.config.base_delay,
                policy=self.config.backoff,
                max_delay=self.config.max_delay,
            )
            logger.warning(
                f"Retrying {method} {state.url} ({state.retries + 1}/{self.config.max_retries}) "
                f"in {delay:.2f}s after {outcome.kind.value}"
            )
            await retry.schedule_retry(delay)

    async def _attempt(self, state: RetryableRequest) -> Union[ApiResult, ClassifiedError]:
        headers = dict(state.headers)
        token = await self._resolve_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.debug(f"{state.method} {state.url} attempt {state.attempt}")
        try:
            response = await self._http.request(
                state.method,
                state.url,
                params=state.params or None,
                headers=headers,
                json=state.json_body,
                files=state.files,
            )
        except httpx.TimeoutException:
            return ClassifiedError(
                kind=ErrorKind.TIMEOUT,
                message="Request timeout - please check your connection",
            )
        except (httpx.NetworkError, httpx.RemoteProtocolError, httpx.ProxyError) as e:
            return ClassifiedError(kind=ErrorKind.NETWORK_FAILURE, message=str(e) or type(e).__name__)

        data = _parse_body(response)
        logger.debug(f"{state.method} {state.url} -> {response.status_code}")
        if response.is_success:
            return ApiResult.success(data, response.status_code, retry_count=state.retries)
        return classify_status(response.status_code, data)

    async def _resolve_token(self) -> Optional[str]:
        if self._token_provider is None:
            return None
        token = self._token_provider()
        if inspect.isawaitable(token):
            token = await token
        return token


def _parse_body(response: httpx.Response) -> Any:
    """Best-effort JSON decoding; empty or non-JSON bodies become ``None``."""
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
