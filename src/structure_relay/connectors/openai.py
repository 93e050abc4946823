from __future__ import annotations

from typing import Any

from structure_relay.connectors.base import (
    DEFAULT_TEMPERATURE,
    ProtocolAdapter,
    compose_prompt,
    first_item,
)
from structure_relay.connectors.registry import adapter_registry
from structure_relay.core.domain.backend import BackendDescriptor, ProtocolKind
from structure_relay.core.domain.events import StreamRecord
from structure_relay.core.domain.requests import StructureRequest, UpstreamRequest

CONTENT_FILTER_FINISH_REASON = "content_filter"


class ChatCompletionsAdapter(ProtocolAdapter):
    """Adapter for OpenAI-compatible `/chat/completions` endpoints.

    Used for local model servers (LM Studio, llama.cpp, vLLM). Streams are
    server-sent events of the form ``data: {json}`` ending in ``data: [DONE]``.
    """

    protocol = ProtocolKind.CHAT_COMPLETIONS
    stream_prefix = "data:"
    done_sentinel = "[DONE]"

    def endpoint(self, descriptor: BackendDescriptor) -> str:
        base = descriptor.api_url.rstrip("/")
        if base.endswith("/chat/completions"):
            return base
        return f"{base}/chat/completions"

    def build_request(
        self,
        descriptor: BackendDescriptor,
        request: StructureRequest,
        credential: str | None,
    ) -> UpstreamRequest:
        headers = {"Content-Type": "application/json"}
        if descriptor.streamable:
            headers["Accept"] = "text/event-stream"
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        body: dict[str, Any] = {
            "model": descriptor.model,
            "messages": [
                {"role": "system", "content": request.instruction},
                {
                    "role": "user",
                    "content": compose_prompt(request.instruction, request.payload),
                },
            ],
            "stream": descriptor.streamable,
            "temperature": DEFAULT_TEMPERATURE,
        }
        return UpstreamRequest(
            backend=descriptor.identifier,
            url=self.endpoint(descriptor),
            headers=headers,
            body=body,
            stream=descriptor.streamable,
        )

    def stream_record(self, data: Any) -> StreamRecord | None:
        if not isinstance(data, dict):
            return None
        failure = self.error_signal(data)
        if failure is not None:
            return failure
        choice = first_item(data.get("choices"))
        if not isinstance(choice, dict):
            return None
        if choice.get("finish_reason") == CONTENT_FILTER_FINISH_REASON:
            return StreamRecord.blocked(CONTENT_FILTER_FINISH_REASON)
        delta = choice.get("delta")
        if isinstance(delta, dict):
            content = delta.get("content")
            if isinstance(content, str) and content:
                return StreamRecord.fragment(content)
        return None

    def extract_text(self, data: Any) -> str | None:
        if not isinstance(data, dict):
            return None
        choice = first_item(data.get("choices"))
        if not isinstance(choice, dict):
            return None
        message = choice.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        return None

    def block_signal(self, data: Any) -> StreamRecord | None:
        if not isinstance(data, dict):
            return None
        choice = first_item(data.get("choices"))
        if (
            isinstance(choice, dict)
            and choice.get("finish_reason") == CONTENT_FILTER_FINISH_REASON
        ):
            return StreamRecord.blocked(CONTENT_FILTER_FINISH_REASON)
        return None


adapter_registry.register_adapter(ProtocolKind.CHAT_COMPLETIONS, ChatCompletionsAdapter())
