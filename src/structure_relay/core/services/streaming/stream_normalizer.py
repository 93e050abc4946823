"""
Reassembly of line-delimited JSON streams into stream records.

Backends stream newline-delimited JSON, but network reads split that text at
arbitrary byte offsets: one line may arrive across several chunks and one chunk
may hold several lines. :class:`StreamNormalizer` keeps the incomplete tail of
the text between reads and only parses lines once their newline has arrived.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncGenerator, AsyncIterable
from typing import Any

from structure_relay.connectors.base import ProtocolAdapter
from structure_relay.core.domain.events import StreamRecord

logger = logging.getLogger(__name__)


class StreamNormalizer:
    """Per-request state machine turning byte chunks into stream records.

    ``push`` accepts the next chunk and returns the records of every line it
    completed, in order. ``finish`` flushes a final line that had no trailing
    newline. Lines that are not valid JSON are dropped and counted in
    ``dropped_lines``; they never end the stream. Once a terminal record (a block
    signal or an error reported by the backend) has been returned no further
    records are produced.

    Instances must not be shared between requests.
    """

    def __init__(self, adapter: ProtocolAdapter) -> None:
        self._adapter = adapter
        # Multi-byte characters may be split across chunks
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._stopped = False
        self._finished = False
        self.dropped_lines = 0
        self.records_emitted = 0

    @property
    def stopped(self) -> bool:
        """True once a block or an in-stream backend error was returned."""
        return self._stopped

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def pending(self) -> str:
        """Text received after the last newline, not yet parsed."""
        return self._buffer

    def push(self, chunk: bytes | str) -> list[StreamRecord]:
        """Feed the next chunk and return records for the lines it completed."""
        if self._finished:
            raise RuntimeError("push() called after finish()")
        if self._stopped:
            return []
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        if not text:
            return []
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._process(lines)

    def finish(self) -> list[StreamRecord]:
        """Flush the residual buffer at end of stream."""
        if self._finished:
            return []
        self._finished = True
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if self._stopped:
            return []
        # A decoder flush can only add a partial character, never a newline,
        # but split anyway so the same line rules apply everywhere.
        return self._process(remainder.split("\n"))

    def _process(self, lines: list[str]) -> list[StreamRecord]:
        records: list[StreamRecord] = []
        for line in lines:
            record = self._parse_line(line)
            if record is None:
                continue
            records.append(record)
            self.records_emitted += 1
            if record.is_terminal:
                self._stopped = True
                break
        return records

    def _parse_line(self, raw_line: str) -> StreamRecord | None:
        line = raw_line.strip()
        if not line:
            return None
        prefix = self._adapter.stream_prefix
        if prefix and line.startswith(prefix):
            line = line[len(prefix) :].strip()
            if not line:
                return None
        elif line.startswith(":"):
            # SSE comment / keep-alive
            return None
        sentinel = self._adapter.done_sentinel
        if sentinel is not None and line == sentinel:
            return None
        try:
            data: Any = json.loads(line)
        except json.JSONDecodeError:
            self.dropped_lines += 1
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Dropping unparsable stream line: %.200s", line)
            return None
        return self._adapter.stream_record(data)


async def normalize_stream(
    chunks: AsyncIterable[bytes],
    adapter: ProtocolAdapter,
    *,
    normalizer: StreamNormalizer | None = None,
) -> AsyncGenerator[StreamRecord, None]:
    """Lazily turn an upstream byte stream into stream records.

    Stops reading ``chunks`` as soon as a terminal record is produced.
    """
    state = normalizer if normalizer is not None else StreamNormalizer(adapter)
    async for chunk in chunks:
        for record in state.push(chunk):
            yield record
        if state.stopped:
            break
    else:
        for record in state.finish():
            yield record

    if state.dropped_lines and logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Stream finished with %d dropped line(s) and %d record(s)",
            state.dropped_lines,
            state.records_emitted,
        )
