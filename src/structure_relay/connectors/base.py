from __future__ import annotations

import abc
from typing import Any

from structure_relay.core.domain.backend import BackendDescriptor, ProtocolKind
from structure_relay.core.domain.events import StreamRecord
from structure_relay.core.domain.requests import StructureRequest, UpstreamRequest

# Low temperature keeps table extraction deterministic across runs
DEFAULT_TEMPERATURE = 0.1


OUTPUT_FORMAT_GUARD = (
    "Ensure the output is ONLY the raw Markdown syntax for the table itself. "
    "Do absolutely NOT wrap the table in code fences (```), format it as a code "
    "block, or use any formatting other than the plain text Markdown table structure."
)


def compose_prompt(
    instruction: str, payload: str, guard: str | None = OUTPUT_FORMAT_GUARD
) -> str:
    """
    Join task instructions and the document body into one prompt text.

    The output format guard follows the document so it is the last thing the
    model reads. Pass ``guard=None`` to leave it out.
    """
    prompt = (
        f"{instruction.strip()}\n\n"
        "Here is the text to structure:\n"
        "---\n"
        f"{payload}\n"
        "---"
    )
    if guard:
        prompt = f"{prompt}\n\n{guard}"
    return prompt


def first_item(value: Any) -> Any:
    """Return the first element of a list value, or None."""
    if isinstance(value, list) and value:
        return value[0]
    return None


class ProtocolAdapter(abc.ABC):
    """
    Translation between the relay's abstract request and one backend protocol.

    An adapter owns everything that differs between protocols: the request
    shape, where the credential travels, the endpoint for streaming and
    non-streaming calls, and the field paths that hold generated text and
    block signals in responses.
    """

    protocol: ProtocolKind
    # Optional framing prefix on streamed lines (server-sent events)
    stream_prefix: str | None = "data:"
    # Line that marks the end of a stream, if the protocol sends one
    done_sentinel: str | None = None

    @abc.abstractmethod
    def build_request(
        self,
        descriptor: BackendDescriptor,
        request: StructureRequest,
        credential: str | None,
    ) -> UpstreamRequest:
        """Build the concrete upstream request for ``descriptor``."""

    @abc.abstractmethod
    def stream_record(self, data: Any) -> StreamRecord | None:
        """Interpret one parsed stream line.

        Returns None when the line carries no text, block signal or error.
        """

    @abc.abstractmethod
    def extract_text(self, data: Any) -> str | None:
        """Return the generated text of a complete (non-streamed) response."""

    @abc.abstractmethod
    def block_signal(self, data: Any) -> StreamRecord | None:
        """Return a block record if a complete response reports a refusal."""

    def error_signal(self, data: Any) -> StreamRecord | None:
        """Return a failure record if a stream line carries an ``error`` object.

        OpenAI-compatible servers and the generate-content SSE endpoint both
        report failures after the stream has started as ``{"error": {...}}``.
        """
        if not isinstance(data, dict) or "error" not in data:
            return None
        error = data["error"]
        if isinstance(error, dict):
            message = error.get("message") or error.get("status") or error.get("code")
        else:
            message = error
        return StreamRecord.failed(str(message or "unknown error"), error)
