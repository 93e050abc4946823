"""
Logging utilities for the relay.

This module provides:
- Root logger configuration for the CLI
- Redaction of backend credentials in log output
"""

import contextlib
import logging
import re
from collections.abc import Iterable

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s:%(lineno)d %(message)s"

# Credentials travel as `?key=` for generate-content backends and as bearer
# tokens for chat-completions backends.
QUERY_KEY_PATTERN = re.compile(r"([?&]key=)[^&\s]+")
BEARER_TOKEN_PATTERN = re.compile(r"Bearer\s+[A-Za-z0-9._\-]+")


def mask_secret(value: str | None, mask: str = "...") -> str:
    """Return a short, log-safe rendering of a secret.

    Keeps the first and last four characters of long values.
    """
    if not value:
        return "<not set>"
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}{mask}{value[-4:]}"


def mask_url(url: str, mask: str = "***") -> str:
    """Hide the value of a `key` query parameter in *url*."""
    return QUERY_KEY_PATTERN.sub(rf"\g<1>{mask}", url)


class ApiKeyRedactionFilter(logging.Filter):
    """Logging filter that redacts known API keys from log records."""

    def __init__(self, api_keys: Iterable[str] | None = None, mask: str = "***") -> None:
        super().__init__()
        self.mask = mask
        keys = {k for k in (api_keys or []) if k}
        self.patterns: list[re.Pattern[str]] = []
        if keys:
            # Prefer longer matches when one key is a prefix of another
            escaped = sorted((re.escape(k) for k in keys), key=len, reverse=True)
            self.patterns.append(re.compile("|".join(escaped)))
        self.patterns.append(QUERY_KEY_PATTERN)
        self.patterns.append(BEARER_TOKEN_PATTERN)

    def _sanitize(self, obj: object) -> object:
        if isinstance(obj, str):
            s = obj
            for pat in self.patterns:
                if pat is BEARER_TOKEN_PATTERN:
                    s = pat.sub(f"Bearer {self.mask}", s)
                elif pat is QUERY_KEY_PATTERN:
                    s = pat.sub(rf"\g<1>{self.mask}", s)
                else:
                    s = pat.sub(self.mask, s)
            return s
        if isinstance(obj, dict):
            return {k: self._sanitize(v) for k, v in obj.items()}
        if isinstance(obj, list | tuple):
            return type(obj)(self._sanitize(v) for v in obj)
        return obj

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._sanitize(record.msg)  # type: ignore[assignment]
        if record.args:
            if isinstance(record.args, dict):
                record.args = self._sanitize(record.args)  # type: ignore[assignment]
            elif isinstance(record.args, tuple):
                record.args = tuple(self._sanitize(a) for a in record.args)
        return True


def install_api_key_redaction_filter(
    api_keys: Iterable[str] | None, mask: str = "***"
) -> ApiKeyRedactionFilter:
    """Install the API key redaction filter on the root logger and its handlers."""
    root = logging.getLogger()
    filter_instance = ApiKeyRedactionFilter(api_keys, mask=mask)
    root.addFilter(filter_instance)
    for handler in list(root.handlers):
        with contextlib.suppress(Exception):
            handler.addFilter(filter_instance)
    return filter_instance


def configure_logging(
    level: int = logging.INFO,
    log_file: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure the root logger.

    Args:
        level: Logging level
        log_file: Optional log file path
        log_format: Optional log format string
    """
    formatter = logging.Formatter(fmt=log_format or DEFAULT_LOG_FORMAT)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    # httpx logs every request URL at INFO, including query-string credentials
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
