from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from structure_relay.core.common.exceptions import (
    ConfigurationError,
    RelayError,
    UnavailableError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

INTERNAL_SERVER_ERROR_MESSAGE = "Failed to call LLM service due to an internal server error."


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    """Handle request body validation errors as 400, like other input faults.

    Args:
        request: The request that caused the exception
        exc: The validation exception

    Returns:
        JSON response with error details
    """
    if logger.isEnabledFor(logging.WARNING):
        logger.warning("Validation error: %s", exc.errors())

    error_details: list[dict[str, Any]] = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "message": "Malformed request body",
                "type": "ValidationError",
                "details": {"errors": error_details},
            }
        },
    )


async def relay_exception_handler(request: Request, exc: RelayError) -> Response:
    """Handle RelayError exceptions raised before any event was produced.

    Args:
        request: The request that caused the exception
        exc: The RelayError exception

    Returns:
        A JSON response carrying the error's status code and body
    """
    exc_name = exc.__class__.__name__
    if isinstance(exc, ConfigurationError | UnavailableError | UpstreamError):
        logger.error("%s (%s): %s", exc_name, exc.status_code, exc.message)
    elif logger.isEnabledFor(logging.WARNING):
        logger.warning("%s (%s): %s", exc_name, exc.status_code, exc.message)

    if exc.details and logger.isEnabledFor(logging.DEBUG):
        logger.debug("Error details: %s", exc.details)

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def general_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle all other exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception

    Returns:
        JSON response with a generic error body
    """
    logger.exception("Unhandled exception", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": INTERNAL_SERVER_ERROR_MESSAGE,
                "type": "InternalError",
            }
        },
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers for the FastAPI application.

    Args:
        app: The FastAPI application
    """
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RelayError, relay_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)
