from __future__ import annotations

import time

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import Response

from structure_relay.core.common.structlog_config import get_logger
from structure_relay.core.config.app_config import AppConfig

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of each request.

    Only the path is logged; query strings may carry credentials.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        client = request.client.host if request.client else "unknown"
        logger.info(
            "Request received",
            method=request.method,
            path=request.url.path,
            client=client,
        )
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=(time.perf_counter() - start) * 1000,
            )
            raise
        logger.info(
            "Response sent",
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        return response


def configure_middleware(app: FastAPI, config: AppConfig) -> None:
    """Configure middleware for the application.

    Args:
        app: The FastAPI application
        config: The application configuration
    """
    allow_all = "*" in config.cors_allow_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else config.cors_allow_origins,
        # Browsers reject credentialed requests to a wildcard origin
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config.logging.request_logging:
        app.add_middleware(RequestLoggingMiddleware)
