"""In-memory gateway for tests and dry runs."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

from ..client import ApiResult
from ..contracts import FileUpload
from .base import OrderGateway


class InMemoryOrderGateway(OrderGateway):
    """Answers gateway calls from scripted results and records every call.

    Results queued with :meth:`script` are returned in order; once a queue is
    empty the method falls back to its default success result. Data is not
    persisted across process restarts.
    """

    def __init__(
        self,
        stage_details: Optional[Dict[str, Any]] = None,
        feedback_definitions: Optional[List[Dict[str, Any]]] = None,
        reasons: Optional[List[Dict[str, Any]]] = None,
        upload_url: str = "memory://uploads/file",
    ) -> None:
        self.stage_details = stage_details or {}
        self.feedback_definitions = feedback_definitions or []
        self.reasons = reasons or []
        self.upload_url = upload_url
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.submitted: List[dict[str, Any]] = []
        self._scripted: Dict[str, Deque[ApiResult]] = defaultdict(deque)

    def script(self, method: str, *results: ApiResult) -> None:
        """Queue ``results`` to be returned by ``method`` in order."""
        self._scripted[method].extend(results)

    def call_count(self, method: Optional[str] = None) -> int:
        if method is None:
            return len(self.calls)
        return sum(1 for name, _ in self.calls if name == method)

    def _next(self, method: str, default: ApiResult) -> ApiResult:
        queue = self._scripted[method]
        return queue.popleft() if queue else default

    # ------------------------------------------------------------------
    async def fetch_stage_details(
        self,
        order_ref: str,
        stage_type: str,
        menu_name: str,
        vehicle_id: Optional[int] = None,
    ) -> ApiResult:
        self.calls.append(
            (
                "fetch_stage_details",
                {
                    "order_ref": order_ref,
                    "stage_type": stage_type,
                    "menu_name": menu_name,
                    "vehicle_id": vehicle_id,
                },
            )
        )
        return self._next("fetch_stage_details", ApiResult.success(self.stage_details, 200))

    async def submit_stages(
        self,
        payloads: Sequence[dict[str, Any]],
        headers: Optional[Dict[str, str]] = None,
    ) -> ApiResult:
        self.calls.append(("submit_stages", {"payloads": list(payloads), "headers": headers or {}}))
        result = self._next("submit_stages", ApiResult.success({"saved": len(payloads)}, 200))
        if result.ok:
            self.submitted.extend(payloads)
        return result

    async def upload_file(self, upload: FileUpload) -> ApiResult:
        self.calls.append(("upload_file", {"name": upload.name, "size": len(upload.content)}))
        return self._next("upload_file", ApiResult.success({"url": self.upload_url}, 200))

    async def fetch_feedback_definitions(self) -> ApiResult:
        self.calls.append(("fetch_feedback_definitions", {}))
        return self._next(
            "fetch_feedback_definitions",
            ApiResult.success({"feedBack_Details": self.feedback_definitions}, 200),
        )

    async def fetch_reasons(self, stage_type: str, menu_name: str) -> ApiResult:
        self.calls.append(("fetch_reasons", {"stage_type": stage_type, "menu_name": menu_name}))
        return self._next("fetch_reasons", ApiResult.success(self.reasons, 200))

    async def close(self) -> None:
        return None
