"""Tests for configuration loading."""

import pytest

from stageflow.config import load_config
from stageflow.errors import ConfigurationError


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
api:
  base_url: https://backend.test
  max_retries: 5
  base_delay: 0.25
  backoff: exponential
gateway:
  backend: inmemory
idempotency_keys: true
"""
    )
    monkeypatch.setenv("STAGEFLOW_CONFIG", str(config_path))
    monkeypatch.delenv("STAGEFLOW_BASE_URL", raising=False)
    monkeypatch.delenv("STAGEFLOW_GATEWAY", raising=False)

    config = load_config()
    assert config.api.base_url == "https://backend.test"
    assert config.api.max_retries == 5
    assert config.api.base_delay == 0.25
    assert config.api.backoff == "exponential"
    assert config.api.timeout == 30.0
    assert config.gateway.backend == "inmemory"
    assert config.idempotency_keys is True


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.setenv("STAGEFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("STAGEFLOW_BASE_URL", raising=False)
    monkeypatch.delenv("STAGEFLOW_GATEWAY", raising=False)

    config = load_config()
    assert config.api.max_retries == 3
    assert config.api.backoff == "linear"
    assert config.gateway.backend == "http"
    assert config.idempotency_keys is False


def test_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("api:\n  base_url: https://file.test\n")
    monkeypatch.setenv("STAGEFLOW_BASE_URL", "https://env.test")
    monkeypatch.setenv("STAGEFLOW_GATEWAY", "INMEMORY")

    config = load_config(str(config_path))
    assert config.api.base_url == "https://env.test"
    assert config.gateway.backend == "inmemory"


def test_unknown_gateway_env_raises_configuration_error(tmp_path, monkeypatch):
    monkeypatch.setenv("STAGEFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("STAGEFLOW_GATEWAY", "bogus")

    with pytest.raises(ConfigurationError, match="STAGEFLOW_GATEWAY"):
        load_config()


def test_invalid_file_value_raises_configuration_error(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("api:\n  max_retries: plenty\n")
    monkeypatch.delenv("STAGEFLOW_GATEWAY", raising=False)

    with pytest.raises(ConfigurationError, match="Invalid config"):
        load_config(str(config_path))
