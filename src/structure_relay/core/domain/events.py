"""Records produced while reading a backend stream and events sent to callers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class StreamRecord:
    """One meaningful unit parsed from a streamed backend response.

    Either a text fragment, a block signal, or an error reported by the
    backend inside the stream. Unparsable lines never become records.
    """

    text: str | None = None
    block_reason: str | None = None
    safety_ratings: Any = None
    error_message: str | None = None
    error_details: Any = None

    @property
    def is_blocked(self) -> bool:
        return self.block_reason is not None

    @property
    def is_failed(self) -> bool:
        return self.error_message is not None

    @property
    def is_terminal(self) -> bool:
        """Whether nothing after this record may be relayed."""
        return self.is_blocked or self.is_failed

    @classmethod
    def fragment(cls, text: str) -> StreamRecord:
        return cls(text=text)

    @classmethod
    def blocked(cls, reason: str, safety_ratings: Any = None) -> StreamRecord:
        return cls(block_reason=reason, safety_ratings=safety_ratings)

    @classmethod
    def failed(cls, message: str, details: Any = None) -> StreamRecord:
        return cls(error_message=message, error_details=details)


class EventType(str, Enum):
    CHUNK = "chunk"
    PAYLOAD = "payload"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class OutwardEvent:
    """Uniform event sent to the caller regardless of backend protocol.

    A sequence is zero or more ``chunk`` events (or a single ``payload``)
    followed by exactly one terminal ``done`` or ``error``.
    """

    type: EventType
    text: str | None = None
    data: Any = None
    message: str | None = None
    details: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type in (EventType.DONE, EventType.ERROR)

    @classmethod
    def chunk(cls, text: str) -> OutwardEvent:
        return cls(EventType.CHUNK, text=text)

    @classmethod
    def payload(cls, data: Any, text: str | None = None) -> OutwardEvent:
        return cls(EventType.PAYLOAD, text=text, data=data)

    @classmethod
    def done(cls) -> OutwardEvent:
        return cls(EventType.DONE)

    @classmethod
    def error(cls, message: str, details: dict[str, Any] | None = None) -> OutwardEvent:
        return cls(EventType.ERROR, message=message, details=details)

    def to_dict(self) -> dict[str, Any]:
        if self.type is EventType.CHUNK:
            return {"chunk": self.text}
        if self.type is EventType.PAYLOAD:
            return {"payload": self.data, "text": self.text}
        if self.type is EventType.DONE:
            return {"done": True}
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result
