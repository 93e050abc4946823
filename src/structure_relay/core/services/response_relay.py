from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import AsyncGenerator
from typing import Any

from structure_relay.connectors.base import ProtocolAdapter
from structure_relay.core.common.exceptions import ContentBlockedError
from structure_relay.core.domain.events import OutwardEvent, StreamRecord
from structure_relay.core.domain.responses import UpstreamOutcome
from structure_relay.core.services.streaming.stream_normalizer import (
    StreamNormalizer,
    normalize_stream,
)

logger = logging.getLogger(__name__)


def _blocked_event(record: StreamRecord) -> OutwardEvent:
    error = ContentBlockedError(record.block_reason or "unknown", record.safety_ratings)
    return OutwardEvent.error(error.message, error.details)


def _failed_event(backend: str, record: StreamRecord) -> OutwardEvent:
    details: dict[str, Any] = {"backend": backend}
    if record.error_details is not None:
        details["upstream"] = record.error_details
    return OutwardEvent.error(
        f"Error from backend '{backend}': {record.error_message}", details
    )


class ResponseRelay:
    """Converts backend output into the uniform outward event sequence."""

    def relay_buffered(self, body: bytes, adapter: ProtocolAdapter) -> list[OutwardEvent]:
        """Events for a complete, non-streamed backend body.

        A JSON body becomes one payload event holding the parsed object and
        the extracted model text, if any. Anything else is forwarded as one
        chunk of trimmed text. Both end with ``done``.

        Raises:
            ContentBlockedError: If the body reports that generation was blocked.
        """
        text = body.decode("utf-8", errors="replace")
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError:
            stripped = text.strip()
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Non-JSON backend body forwarded as text (%d chars)", len(stripped))
            events = [OutwardEvent.chunk(stripped)] if stripped else []
            events.append(OutwardEvent.done())
            return events

        blocked = adapter.block_signal(data)
        if blocked is not None:
            logger.error(
                "Content blocked by backend: %s (safety ratings: %s)",
                blocked.block_reason,
                blocked.safety_ratings,
            )
            raise ContentBlockedError(blocked.block_reason or "unknown", blocked.safety_ratings)

        extracted = adapter.extract_text(data)
        if extracted is None:
            logger.warning("Backend response carried no text content; forwarding payload as-is")
        elif logger.isEnabledFor(logging.INFO):
            logger.info("Received backend response. Output length: %d chars", len(extracted))
        return [
            OutwardEvent.payload(data, extracted.strip() if extracted else None),
            OutwardEvent.done(),
        ]

    async def relay_stream(
        self,
        outcome: UpstreamOutcome,
        adapter: ProtocolAdapter,
        *,
        normalizer: StreamNormalizer | None = None,
    ) -> AsyncGenerator[OutwardEvent, None]:
        """Events for a streamed backend body.

        Yields a ``chunk`` per text fragment and then exactly one ``done`` or
        ``error``. The upstream connection is released when the generator
        ends, including when the consumer stops early.
        """
        if outcome.content is None:
            raise ValueError("relay_stream() requires a streaming outcome")

        state = normalizer if normalizer is not None else StreamNormalizer(adapter)
        chunks = 0
        try:
            async with contextlib.aclosing(
                normalize_stream(outcome.content, adapter, normalizer=state)
            ) as records:
                async for record in records:
                    if record.is_blocked:
                        logger.warning(
                            "Backend %s blocked generation mid-stream: %s",
                            outcome.backend,
                            record.block_reason,
                        )
                        yield _blocked_event(record)
                        return
                    if record.is_failed:
                        logger.error(
                            "Backend %s reported an error mid-stream after %d chunk(s): %s",
                            outcome.backend,
                            chunks,
                            record.error_message,
                        )
                        yield _failed_event(outcome.backend, record)
                        return
                    chunks += 1
                    yield OutwardEvent.chunk(record.text or "")
        except Exception as e:
            logger.error(
                "Stream from backend %s failed after %d chunk(s): %s",
                outcome.backend,
                chunks,
                e,
                exc_info=True,
            )
            yield OutwardEvent.error(f"Upstream stream interrupted: {type(e).__name__}")
            return
        finally:
            await outcome.aclose()

        if logger.isEnabledFor(logging.INFO):
            logger.info(
                "Stream from backend %s complete: %d chunk(s), %d dropped line(s)",
                outcome.backend,
                chunks,
                state.dropped_lines,
            )
        yield OutwardEvent.done()
