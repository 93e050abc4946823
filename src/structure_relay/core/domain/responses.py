from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field


async def _no_close() -> None:
    return None


@dataclass
class UpstreamOutcome:
    """Successful answer from a backend, either buffered or still streaming.

    Callers must check ``streaming`` before touching ``body`` or ``content``:
    a buffered outcome carries ``body`` and a streaming one carries ``content``,
    an iterator of raw bytes that stays open until ``aclose`` is awaited.
    """

    backend: str
    streaming: bool
    body: bytes | None = None
    content: AsyncIterator[bytes] | None = None
    _close: Callable[[], Awaitable[None]] = field(default=_no_close, repr=False)

    @classmethod
    def buffered(cls, backend: str, body: bytes) -> UpstreamOutcome:
        return cls(backend=backend, streaming=False, body=body)

    @classmethod
    def streamed(
        cls,
        backend: str,
        content: AsyncIterator[bytes],
        close: Callable[[], Awaitable[None]],
    ) -> UpstreamOutcome:
        return cls(backend=backend, streaming=True, content=content, _close=close)

    async def aclose(self) -> None:
        """Release the upstream connection. Safe to call more than once."""
        close, self._close = self._close, _no_close
        content_close = getattr(self.content, "aclose", None)
        if callable(content_close):
            await content_close()
        await close()
