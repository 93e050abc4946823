from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from structure_relay.core.common.structlog_config import LogFormat

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3001
DEFAULT_GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-pro"
DEFAULT_LOCAL_LLM_URL = "http://localhost:1234/v1"
DEFAULT_LOCAL_LLM_MODEL = "local-model"


def _to_int(value: str, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _env_to_bool(name: str, default: bool, env: Mapping[str, str]) -> bool:
    """Return an environment variable parsed as a boolean flag."""
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_to_list(name: str, default: list[str], env: Mapping[str, str]) -> list[str]:
    """Return a comma-separated environment variable as a list."""
    value = env.get(name)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def _first_env(env: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _to_log_level(value: str) -> LogLevel:
    try:
        return LogLevel(value.strip().upper())
    except ValueError:
        logger.warning("Unknown LOG_LEVEL %r, falling back to INFO", value)
        return LogLevel.INFO


def _to_log_format(value: str) -> LogFormat:
    try:
        return LogFormat(value.strip().lower())
    except ValueError:
        logger.warning("Unknown LOG_FORMAT %r, falling back to console", value)
        return LogFormat.CONSOLE


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    log_file: str | None = None
    request_logging: bool = False
    # Rendering of structured request logs
    structured_format: LogFormat = LogFormat.CONSOLE


class BackendConfig(BaseModel):
    """Configuration for one upstream backend.

    ``protocol`` is kept as a plain string so an unrecognized value is reported
    per request as a configuration fault instead of preventing startup.
    """

    protocol: str
    api_url: str
    model: str
    streaming: bool = False
    requires_api_key: bool = False
    api_key: str | None = None

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("API URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("api_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


def _default_backends(env: Mapping[str, str]) -> dict[str, BackendConfig]:
    return {
        "local": BackendConfig(
            protocol="chat-completions",
            api_url=env.get("LOCAL_LLM_URL", DEFAULT_LOCAL_LLM_URL),
            model=env.get("LOCAL_LLM_MODEL", DEFAULT_LOCAL_LLM_MODEL),
            streaming=_env_to_bool("LOCAL_LLM_STREAMING", True, env),
            requires_api_key=False,
            api_key=env.get("LOCAL_LLM_API_KEY"),
        ),
        "gemini": BackendConfig(
            protocol="generate-content",
            api_url=env.get("GEMINI_API_BASE_URL", DEFAULT_GEMINI_API_BASE_URL),
            model=env.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            streaming=_env_to_bool("GEMINI_STREAMING", False, env),
            requires_api_key=True,
            api_key=_first_env(env, "GOOGLE_API_KEY", "GEMINI_API_KEY"),
        ),
    }


class AppConfig(BaseModel):
    """Complete application configuration."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    proxy_timeout: int = 120  # seconds, outbound HTTP client
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    backends: dict[str, BackendConfig] = Field(default_factory=dict)

    @classmethod
    def from_env(cls, *, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Create AppConfig from environment variables.

        Returns:
            AppConfig instance
        """
        env: Mapping[str, str] = os.environ if environ is None else environ

        port_raw = _first_env(env, "PORT", "APP_PORT")
        return cls(
            host=env.get("APP_HOST", "0.0.0.0"),
            port=_to_int(port_raw, DEFAULT_PORT) if port_raw else DEFAULT_PORT,
            proxy_timeout=_to_int(env.get("PROXY_TIMEOUT", "120"), 120),
            cors_allow_origins=_env_to_list("CORS_ALLOW_ORIGINS", ["*"], env),
            logging=LoggingConfig(
                level=_to_log_level(env.get("LOG_LEVEL", "INFO")),
                log_file=env.get("LOG_FILE") or None,
                request_logging=_env_to_bool("REQUEST_LOGGING", False, env),
                structured_format=_to_log_format(env.get("LOG_FORMAT", "console")),
            ),
            backends=_default_backends(env),
        )

    def merge_file(
        self, path: str | Path, *, environ: Mapping[str, str] | None = None
    ) -> AppConfig:
        """Return a copy with backends from a YAML file added or overridden.

        A backend entry may name ``api_key_env`` instead of embedding the key.
        """
        import yaml

        env: Mapping[str, str] = os.environ if environ is None else environ
        p = Path(path)
        with p.open(encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Config file {p} is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file {p} must contain a mapping")

        raw_backends = data.get("backends") or {}
        if not isinstance(raw_backends, dict):
            raise ValueError(f"'backends' in {p} must be a mapping")

        backends = dict(self.backends)
        for name, raw in raw_backends.items():
            if raw is not None and not isinstance(raw, dict):
                raise ValueError(f"Backend '{name}' in {p} must be a mapping")
            entry = dict(raw or {})
            key_env = entry.pop("api_key_env", None)
            if key_env and not entry.get("api_key"):
                entry["api_key"] = env.get(key_env)
            if name in backends:
                merged = backends[name].model_dump()
                merged.update(entry)
                entry = merged
            backends[name] = BackendConfig(**entry)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Loaded backend '%s' from %s", name, p)

        update: dict[str, Any] = {"backends": backends}
        for key in ("host", "port", "proxy_timeout", "cors_allow_origins"):
            if key in data:
                update[key] = data[key]
        if "logging" in data:
            raw_logging = data["logging"] or {}
            if not isinstance(raw_logging, dict):
                raise ValueError(f"'logging' in {p} must be a mapping")
            update["logging"] = LoggingConfig(
                **{**self.logging.model_dump(), **raw_logging}
            )
        merged_config = self.model_dump()
        merged_config.update(update)
        return type(self).model_validate(merged_config)


def load_config(
    config_file: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load `.env`, build the config from the environment, then apply a file."""
    from dotenv import load_dotenv

    if environ is None:
        load_dotenv()
    config = AppConfig.from_env(environ=environ)
    if config_file:
        config = config.merge_file(config_file, environ=environ)
    return config
