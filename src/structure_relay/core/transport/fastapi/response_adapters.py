"""
FastAPI response adapters.

This module converts outward events into FastAPI/Starlette responses: a JSON
body for buffered backends and a server-sent event stream for streaming ones.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Iterable

from fastapi.responses import JSONResponse
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from structure_relay.core.domain.events import EventType, OutwardEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def format_event_as_sse(event: OutwardEvent) -> bytes:
    """Format an event as one SSE message: ``data: {json}\\n\\n``."""
    return f"data: {json.dumps(event.to_dict())}\n\n".encode()


def events_to_json_response(events: Iterable[OutwardEvent]) -> JSONResponse:
    """Build the JSON body returned for a buffered backend."""
    event_list = list(events)
    text_parts: list[str] = []
    for event in event_list:
        if event.type in (EventType.CHUNK, EventType.PAYLOAD) and event.text:
            text_parts.append(event.text)
    return JSONResponse(
        content={
            "events": [event.to_dict() for event in event_list],
            "text": "".join(text_parts) if text_parts else None,
        }
    )


async def _sse_body(events: AsyncIterator[OutwardEvent]) -> AsyncGenerator[bytes, None]:
    terminated = False
    try:
        async for event in events:
            yield format_event_as_sse(event)
            if event.is_terminal:
                terminated = True
                break
    except Exception as e:
        logger.error("Event stream failed: %s", e, exc_info=True)
        if not terminated:
            terminated = True
            yield format_event_as_sse(OutwardEvent.error("Internal relay error"))
    finally:
        close = getattr(events, "aclose", None)
        if callable(close):
            await close()
    if not terminated:
        # Upstream iterator ended without a terminal event
        yield format_event_as_sse(OutwardEvent.error("Stream ended unexpectedly"))


class EventStreamResponse(StreamingResponse):
    """``text/event-stream`` response that always runs ``on_close``.

    The body may never be iterated when the client leaves before the response
    starts. ``on_close`` runs when the response finishes either way.
    """

    def __init__(
        self,
        events: AsyncIterator[OutwardEvent],
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._events = events
        self._on_close = on_close
        super().__init__(
            _sse_body(events), media_type="text/event-stream", headers=SSE_HEADERS
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            close = getattr(self._events, "aclose", None)
            if callable(close):
                await close()
            if self._on_close is not None:
                await self._on_close()


def events_to_sse_response(
    events: AsyncIterator[OutwardEvent],
    on_close: Callable[[], Awaitable[None]] | None = None,
) -> StreamingResponse:
    """Wrap an event iterator as a ``text/event-stream`` response.

    Nothing is written after the first terminal event. ``on_close`` runs once
    the response is over, whether or not the body was ever sent.
    """
    return EventStreamResponse(events, on_close)
