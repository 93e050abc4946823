"""
Structured logging configuration.

Structured events (used by the request logging middleware) are rendered by
structlog and then handed to the standard library logger of the same name, so
they share the root handlers and the API key redaction filter.
"""

from enum import Enum

import structlog


class LogFormat(str, Enum):
    """Rendering of structured log events."""

    CONSOLE = "console"
    JSON = "json"


def configure_structlog(log_format: LogFormat = LogFormat.CONSOLE) -> None:
    """Route structlog through stdlib logging with the chosen renderer."""
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format is LogFormat.JSON
        else structlog.processors.KeyValueRenderer(key_order=["event"])
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to the stdlib logger ``name``."""
    return structlog.get_logger(name)  # type: ignore
