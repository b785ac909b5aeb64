from __future__ import annotations

import logging
import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ValidationError

from .errors import ConfigurationError


class ApiConfig(BaseModel):
    """Settings for the resilient HTTP client."""

    base_url: str = ""
    timeout: float = 30.0
    max_retries: int = 3
    base_delay: float = 1.0
    backoff: Literal["linear", "exponential"] = "linear"
    max_delay: float = 30.0
    upload_path: str = "/api/Download"


class GatewayConfig(BaseModel):
    """Gateway selection settings."""

    backend: Literal["http", "inmemory"] = "http"


class StageflowConfig(BaseModel):
    """Top-level configuration model."""

    api: ApiConfig = ApiConfig()
    gateway: GatewayConfig = GatewayConfig()
    idempotency_keys: bool = False
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> StageflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to STAGEFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.

    Raises:
        ConfigurationError: If the file or an env override holds invalid values.
    """

    config_path = path or os.getenv("STAGEFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        try:
            config = StageflowConfig(**data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid config in {config_path}: {exc}") from exc
    else:
        config = StageflowConfig()

    env_base_url = os.getenv("STAGEFLOW_BASE_URL")
    if env_base_url:
        config.api.base_url = env_base_url
    env_gateway = os.getenv("STAGEFLOW_GATEWAY")
    if env_gateway:
        try:
            config.gateway = GatewayConfig(backend=env_gateway.lower())
        except ValidationError as exc:
            raise ConfigurationError(
                f"Unsupported STAGEFLOW_GATEWAY value: {env_gateway}"
            ) from exc
    return config


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler for command line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
