"""
Structure Controller

Handles the document-structuring endpoint and backend discovery.
"""

import logging
from typing import Any

from fastapi import Request, Response

from structure_relay.core.services.structure_service import StructureService
from structure_relay.core.transport.fastapi.request_adapters import (
    StructureRequestBody,
    to_domain_request,
)
from structure_relay.core.transport.fastapi.response_adapters import (
    events_to_json_response,
    events_to_sse_response,
)

logger = logging.getLogger(__name__)


class StructureController:
    """Controller for structuring endpoints."""

    def __init__(self, service: StructureService) -> None:
        """Initialize the controller.

        Args:
            service: The structuring pipeline service
        """
        self._service = service

    async def handle_structure(
        self, request: Request, body: StructureRequestBody
    ) -> Response:
        """Handle a structuring request.

        Errors raised before the first event propagate to the exception
        handlers and become a JSON error response with a status code.

        Args:
            request: The HTTP request
            body: The parsed request body

        Returns:
            A JSON response for buffered backends or an SSE stream
        """
        domain_request = to_domain_request(body)
        if logger.isEnabledFor(logging.INFO):
            client = request.client.host if request.client else "unknown"
            logger.info(
                "POST /api/llm-structure received: backend=%s client=%s",
                domain_request.backend,
                client,
            )

        result = await self._service.structure(domain_request)
        if result.streaming and result.stream is not None:
            return events_to_sse_response(result.stream, result.close)
        return events_to_json_response(result.events)

    def list_backends(self) -> dict[str, Any]:
        """Describe configured backends without exposing credentials."""
        return {
            "backends": [
                {
                    "id": descriptor.identifier,
                    "protocol": descriptor.protocol,
                    "model": descriptor.model,
                    "streaming": descriptor.streamable,
                    "requires_api_key": descriptor.requires_credential,
                    "api_key_configured": descriptor.has_credential,
                }
                for descriptor in self._service.registry.descriptors()
            ]
        }
