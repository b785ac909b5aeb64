"""Gateway abstraction for the backend calls the engine depends on."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..client import ApiResult
from ..contracts import FeedbackDefinition, FileUpload, ReasonCode


class OrderGateway(Protocol):
    """Protocol for backends that serve stage details and accept submissions."""

    async def fetch_stage_details(
        self,
        order_ref: str,
        stage_type: str,
        menu_name: str,
        vehicle_id: Optional[int] = None,
    ) -> ApiResult:
        """Return the stage head and stage-definition descriptor for an order."""

    async def submit_stages(
        self,
        payloads: Sequence[dict[str, Any]],
        headers: Optional[Dict[str, str]] = None,
    ) -> ApiResult:
        """Submit a batch of serialised transition payloads."""

    async def upload_file(self, upload: FileUpload) -> ApiResult:
        """Upload a file; ``data`` carries the server-assigned URL."""

    async def fetch_feedback_definitions(self) -> ApiResult:
        """Return the customer feedback definition list."""

    async def fetch_reasons(self, stage_type: str, menu_name: str) -> ApiResult:
        """Return reason codes for a stage."""

    async def close(self) -> None:
        """Release any connections held by the gateway."""


def uploaded_url(data: Any) -> str:
    """Extract the file URL from an upload response."""
    if isinstance(data, dict):
        return data.get("url") or data.get("fileUrl") or ""
    if isinstance(data, str):
        return data
    return ""


def feedback_definitions(data: Any) -> List[FeedbackDefinition]:
    """Parse a ``/api/feedback`` response into feedback definitions.

    Raises:
        pydantic.ValidationError: If an entry does not look like a definition.
    """
    if isinstance(data, dict):
        data = data.get("feedBack_Details") or []
    if not isinstance(data, list):
        return []
    return [FeedbackDefinition.model_validate(entry) for entry in data]


def reason_codes(data: Any) -> List[ReasonCode]:
    """Parse a ``/api/Reasons`` response; non-list bodies mean no reasons."""
    if not isinstance(data, list):
        return []
    return [ReasonCode.model_validate(entry) for entry in data]
