from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from structure_relay.core.common.exceptions import UnavailableError, UpstreamError
from structure_relay.core.domain.requests import UpstreamRequest
from structure_relay.core.domain.responses import UpstreamOutcome

logger = logging.getLogger(__name__)


def _parse_error_body(raw: bytes) -> Any:
    """Best-effort decode of an upstream error body: JSON first, then text."""
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _is_json_response(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower() == "application/json"


class UpstreamInvoker:
    """Performs exactly one outbound call per request; never retries."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def invoke(self, upstream: UpstreamRequest) -> UpstreamOutcome:
        """Send ``upstream`` and return a buffered or streaming outcome.

        Raises:
            UnavailableError: If the connection could not be established.
            UpstreamError: If the backend answered with a failure status.
        """
        request = self.client.build_request(
            "POST", upstream.url, json=upstream.body, headers=upstream.headers
        )
        if logger.isEnabledFor(logging.INFO):
            logger.info(
                "Sending request to backend=%s stream=%s url=%s",
                upstream.backend,
                upstream.stream,
                upstream.display_url,
            )
        try:
            response = await self.client.send(request, stream=upstream.stream)
        except httpx.RequestError as e:
            if logger.isEnabledFor(logging.ERROR):
                logger.error(
                    "Request error connecting to backend %s: %s",
                    upstream.backend,
                    type(e).__name__,
                )
            raise UnavailableError(upstream.backend, type(e).__name__) from e

        if response.status_code >= 400:
            try:
                body_bytes = await response.aread()
            except httpx.HTTPError:
                body_bytes = b""
            finally:
                await response.aclose()
            error_body = _parse_error_body(body_bytes)
            if logger.isEnabledFor(logging.ERROR):
                logger.error(
                    "Backend %s returned status %s: %s",
                    upstream.backend,
                    response.status_code,
                    error_body,
                )
            raise UpstreamError(upstream.backend, response.status_code, error_body)

        if upstream.stream and _is_json_response(response):
            # The backend ignored the stream flag and answered in one piece
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            if logger.isEnabledFor(logging.INFO):
                logger.info(
                    "Backend %s answered a streaming request with a JSON body",
                    upstream.backend,
                )
            return UpstreamOutcome.buffered(upstream.backend, body)

        if not upstream.stream:
            body = response.content
            if logger.isEnabledFor(logging.INFO):
                logger.info(
                    "Backend %s answered with %d bytes", upstream.backend, len(body)
                )
            return UpstreamOutcome.buffered(upstream.backend, body)

        async def byte_stream() -> AsyncGenerator[bytes, None]:
            try:
                async for chunk in response.aiter_bytes():
                    if chunk:
                        yield chunk
            finally:
                with contextlib.suppress(Exception):
                    await response.aclose()

        return UpstreamOutcome.streamed(
            upstream.backend,
            byte_stream(),
            response.aclose,
        )
