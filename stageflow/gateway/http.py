"""Gateway that talks to the backend over the resilient HTTP client."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from ..client import ApiRequest, ApiResult, ResilientApiClient
from ..contracts import FileUpload
from .base import OrderGateway

logger = logging.getLogger(__name__)

TASK_STAGE_TYPE = "Tasks"


class HttpOrderGateway(OrderGateway):
    """Maps gateway calls onto backend routes."""

    def __init__(
        self,
        client: ResilientApiClient,
        upload_path: str = "/api/Download",
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._client = client
        self._upload_path = upload_path
        self._extra_headers = extra_headers or {}

    async def close(self) -> None:
        await self._client.close()

    async def fetch_stage_details(
        self,
        order_ref: str,
        stage_type: str,
        menu_name: str,
        vehicle_id: Optional[int] = None,
    ) -> ApiResult:
        if stage_type == TASK_STAGE_TYPE:
            request = ApiRequest(
                path="/api/StageDetails",
                params={"taskID": order_ref, "menuType": TASK_STAGE_TYPE},
            )
        else:
            request = ApiRequest(
                path="/api/Stages",
                params={
                    "DOStr": order_ref,
                    "StageType": stage_type,
                    "MenuName": menu_name,
                    "uid": 1,
                    "vehicleid": vehicle_id or 0,
                },
            )
        return await self._client.send(request)

    async def submit_stages(
        self,
        payloads: Sequence[dict[str, Any]],
        headers: Optional[Dict[str, str]] = None,
    ) -> ApiResult:
        logger.info(f"Submitting {len(payloads)} stage payload(s)")
        return await self._client.send(
            ApiRequest(
                method="POST",
                path="/api/Stages",
                headers={**self._extra_headers, **(headers or {})},
                json_body=list(payloads),
            )
        )

    async def upload_file(self, upload: FileUpload) -> ApiResult:
        logger.info(f"Uploading {upload.name} ({len(upload.content)} bytes)")
        return await self._client.send(
            ApiRequest(
                method="POST",
                path=self._upload_path,
                files={"file": (upload.name, upload.content, upload.mime_type)},
            )
        )

    async def fetch_feedback_definitions(self) -> ApiResult:
        return await self._client.send(ApiRequest(path="/api/feedback", params={"Mode": "All"}))

    async def fetch_reasons(self, stage_type: str, menu_name: str) -> ApiResult:
        return await self._client.send(
            ApiRequest(
                path="/api/Reasons",
                params={"StageType": stage_type, "MenuName": menu_name},
            )
        )
