from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from structure_relay.core.common.structlog_config import LogFormat
from structure_relay.core.config.app_config import (
    DEFAULT_GEMINI_API_BASE_URL,
    AppConfig,
    BackendConfig,
    LogLevel,
    load_config,
)


def test_defaults_from_empty_environment() -> None:
    config = AppConfig.from_env(environ={})

    assert config.port == 3001
    assert config.proxy_timeout == 120
    assert config.cors_allow_origins == ["*"]
    assert config.logging.level is LogLevel.INFO
    assert set(config.backends) == {"local", "gemini"}

    local = config.backends["local"]
    assert local.protocol == "chat-completions"
    assert local.api_url == "http://localhost:1234/v1"
    assert local.streaming is True
    assert local.requires_api_key is False

    gemini = config.backends["gemini"]
    assert gemini.protocol == "generate-content"
    assert gemini.api_url == DEFAULT_GEMINI_API_BASE_URL
    assert gemini.model == "gemini-pro"
    assert gemini.streaming is False
    assert gemini.requires_api_key is True
    assert gemini.api_key is None


def test_environment_overrides() -> None:
    config = AppConfig.from_env(
        environ={
            "PORT": "8080",
            "PROXY_TIMEOUT": "30",
            "LOG_LEVEL": "debug",
            "REQUEST_LOGGING": "yes",
            "LOG_FORMAT": "JSON",
            "CORS_ALLOW_ORIGINS": "http://a.test, http://b.test",
            "GEMINI_API_KEY": "gm-key",
            "GEMINI_MODEL": "gemini-1.5-flash",
            "GEMINI_STREAMING": "true",
            "LOCAL_LLM_URL": "http://127.0.0.1:8000/v1/",
            "LOCAL_LLM_STREAMING": "0",
        }
    )

    assert config.port == 8080
    assert config.proxy_timeout == 30
    assert config.logging.level is LogLevel.DEBUG
    assert config.logging.request_logging is True
    assert config.logging.structured_format is LogFormat.JSON
    assert config.cors_allow_origins == ["http://a.test", "http://b.test"]
    assert config.backends["gemini"].api_key == "gm-key"
    assert config.backends["gemini"].model == "gemini-1.5-flash"
    assert config.backends["gemini"].streaming is True
    assert config.backends["local"].api_url == "http://127.0.0.1:8000/v1"
    assert config.backends["local"].streaming is False


def test_google_api_key_takes_precedence() -> None:
    config = AppConfig.from_env(
        environ={"GOOGLE_API_KEY": "primary", "GEMINI_API_KEY": "secondary"}
    )

    assert config.backends["gemini"].api_key == "primary"


def test_invalid_values_fall_back() -> None:
    config = AppConfig.from_env(environ={"PORT": "not-a-port", "LOG_LEVEL": "chatty"})

    assert config.port == 3001
    assert config.logging.level is LogLevel.INFO


def test_backend_config_rejects_non_http_url() -> None:
    with pytest.raises(PydanticValidationError):
        BackendConfig(protocol="chat-completions", api_url="ftp://x", model="m")


def test_blank_api_key_counts_as_missing() -> None:
    backend = BackendConfig(
        protocol="generate-content", api_url="https://g.test", model="m", api_key="  "
    )

    assert backend.api_key is None


def test_merge_file_adds_and_overrides_backends(tmp_path: Path) -> None:
    config_file = tmp_path / "relay.yaml"
    config_file.write_text(
        """
port: 9000
logging:
  level: WARNING
backends:
  gemini:
    streaming: true
  lab:
    protocol: chat-completions
    api_url: https://lab.test/v1
    model: lab-model
    requires_api_key: true
    api_key_env: LAB_KEY
""",
        encoding="utf-8",
    )
    base = AppConfig.from_env(environ={"GOOGLE_API_KEY": "g"})

    merged = base.merge_file(config_file, environ={"LAB_KEY": "lab-secret"})

    assert merged.port == 9000
    assert merged.logging.level is LogLevel.WARNING
    assert merged.backends["gemini"].streaming is True
    assert merged.backends["gemini"].api_key == "g"
    assert merged.backends["lab"].api_key == "lab-secret"
    assert merged.backends["lab"].requires_api_key is True
    assert base.backends["gemini"].streaming is False


def test_merge_file_rejects_non_mapping(tmp_path: Path) -> None:
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        AppConfig.from_env(environ={}).merge_file(config_file, environ={})


@pytest.mark.parametrize(
    "content",
    [
        "backends: [unclosed\n",
        "backends:\n  lab: just-a-string\n",
        "backends:\n  - lab\n",
        "logging: debug\n",
    ],
)
def test_merge_file_reports_malformed_sections(tmp_path: Path, content: str) -> None:
    config_file = tmp_path / "bad.yaml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match="bad.yaml"):
        AppConfig.from_env(environ={}).merge_file(config_file, environ={})


def test_load_config_with_explicit_environment(tmp_path: Path) -> None:
    config_file = tmp_path / "relay.yaml"
    config_file.write_text("proxy_timeout: 5\n", encoding="utf-8")

    config = load_config(config_file, environ={"APP_HOST": "127.0.0.1"})

    assert config.host == "127.0.0.1"
    assert config.proxy_timeout == 5
