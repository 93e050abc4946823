"""
Application factory.

Builds the FastAPI application with its backend registry, outbound HTTP
client, services, middleware, routes and exception handlers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from structure_relay import __version__
from structure_relay.core.app.controllers import StructureController, register_routes
from structure_relay.core.app.error_handlers import configure_exception_handlers
from structure_relay.core.app.middleware_config import configure_middleware
from structure_relay.core.config.app_config import AppConfig
from structure_relay.core.services.backend_registry import BackendRegistry
from structure_relay.core.services.structure_service import StructureService
from structure_relay.core.services.upstream_invoker import UpstreamInvoker

logger = logging.getLogger(__name__)


def build_app(
    config: AppConfig,
    *,
    client: httpx.AsyncClient | None = None,
    registry: BackendRegistry | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        config: Application configuration
        client: Optional outbound HTTP client. When omitted the app creates one
            with ``config.proxy_timeout`` and closes it on shutdown.
        registry: Optional prebuilt backend registry

    Returns:
        The configured FastAPI application
    """
    backend_registry = registry or BackendRegistry.from_config(config)
    owns_client = client is None
    http_client = client or httpx.AsyncClient(
        timeout=httpx.Timeout(float(config.proxy_timeout))
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        for descriptor in backend_registry.descriptors():
            if descriptor.requires_credential and not descriptor.has_credential:
                logger.warning(
                    "Backend '%s' requires an API key but none is configured. "
                    "Requests to it will fail.",
                    descriptor.identifier,
                )
        try:
            yield
        finally:
            if owns_client:
                await http_client.aclose()

    app = FastAPI(title="LLM Structure Relay", version=__version__, lifespan=lifespan)
    app.state.app_config = config
    app.state.http_client = http_client
    app.state.backend_registry = backend_registry
    app.state.structure_controller = StructureController(
        StructureService(backend_registry, UpstreamInvoker(http_client))
    )

    configure_middleware(app, config)
    configure_exception_handlers(app)
    register_routes(app)

    if logger.isEnabledFor(logging.INFO):
        logger.info(
            "Application built with backends: %s",
            ", ".join(backend_registry.identifiers()) or "<none>",
        )
    return app
