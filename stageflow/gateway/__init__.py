"""Gateway factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..auth import AuthContext
from ..client import ResilientApiClient
from ..config import StageflowConfig, load_config
from ..errors import ConfigurationError
from .base import OrderGateway, feedback_definitions, reason_codes, uploaded_url
from .http import HttpOrderGateway
from .inmemory import InMemoryOrderGateway


def get_gateway(
    backend: Optional[str] = None,
    config: Optional[StageflowConfig] = None,
    auth: Optional[AuthContext] = None,
) -> OrderGateway:
    """Factory function to get the configured gateway."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("STAGEFLOW_GATEWAY")
        or config.gateway.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryOrderGateway()
    elif backend == "http":
        auth = auth or AuthContext.from_env()
        api_config = config.api
        if auth.base_url and not api_config.base_url:
            api_config = api_config.model_copy(update={"base_url": auth.base_url})
        if not api_config.base_url:
            raise ConfigurationError("HTTP gateway requires api.base_url")
        client = ResilientApiClient(api_config, token_provider=auth.token_provider)
        return HttpOrderGateway(client, upload_path=api_config.upload_path)
    else:
        raise ConfigurationError(f"Unsupported gateway backend: {backend}")


__all__ = [
    "HttpOrderGateway",
    "InMemoryOrderGateway",
    "OrderGateway",
    "feedback_definitions",
    "get_gateway",
    "reason_codes",
    "uploaded_url",
]
