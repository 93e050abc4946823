from __future__ import annotations

import logging
from typing import Any

import httpx

from structure_relay.connectors.base import (
    DEFAULT_TEMPERATURE,
    ProtocolAdapter,
    compose_prompt,
    first_item,
)
from structure_relay.connectors.registry import adapter_registry
from structure_relay.core.common.logging_utils import mask_url
from structure_relay.core.domain.backend import BackendDescriptor, ProtocolKind
from structure_relay.core.domain.events import StreamRecord
from structure_relay.core.domain.requests import StructureRequest, UpstreamRequest

logger = logging.getLogger(__name__)

# Candidate finish reasons that mean the model refused to continue
BLOCKING_FINISH_REASONS = frozenset({"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"})


class GenerateContentAdapter(ProtocolAdapter):
    """Adapter for Google's Generative Language `generateContent` API.

    The API key travels as the ``key`` query parameter. Streaming uses the
    ``:streamGenerateContent?alt=sse`` endpoint, which emits one
    ``data: {json}`` line per candidate update and no end sentinel.
    """

    protocol = ProtocolKind.GENERATE_CONTENT
    stream_prefix = "data:"
    done_sentinel = None

    @staticmethod
    def _normalize_model_name(model: str) -> str:
        if model.startswith("models/"):
            return model[len("models/") :]
        return model

    def endpoint(self, descriptor: BackendDescriptor, credential: str | None) -> str:
        model = self._normalize_model_name(descriptor.model)
        method = "streamGenerateContent" if descriptor.streamable else "generateContent"
        params: dict[str, str] = {}
        if descriptor.streamable:
            params["alt"] = "sse"
        if credential:
            params["key"] = credential
        url = httpx.URL(
            f"{descriptor.api_url.rstrip('/')}/models/{model}:{method}",
            params=params,
        )
        return str(url)

    def build_request(
        self,
        descriptor: BackendDescriptor,
        request: StructureRequest,
        credential: str | None,
    ) -> UpstreamRequest:
        url = self.endpoint(descriptor, credential)
        body: dict[str, Any] = {
            "contents": [
                {
                    "parts": [
                        {"text": compose_prompt(request.instruction, request.payload)}
                    ]
                }
            ],
            "generationConfig": {"temperature": DEFAULT_TEMPERATURE},
        }
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Gemini request prepared for %s", mask_url(url))
        return UpstreamRequest(
            backend=descriptor.identifier,
            url=url,
            headers={"Content-Type": "application/json"},
            body=body,
            stream=descriptor.streamable,
            display_url=mask_url(url),
        )

    @staticmethod
    def _first_candidate(data: Any) -> dict[str, Any] | None:
        if not isinstance(data, dict):
            return None
        candidate = first_item(data.get("candidates"))
        return candidate if isinstance(candidate, dict) else None

    def block_signal(self, data: Any) -> StreamRecord | None:
        if not isinstance(data, dict):
            return None
        feedback = data.get("promptFeedback")
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            return StreamRecord.blocked(
                str(feedback["blockReason"]), feedback.get("safetyRatings")
            )
        candidate = self._first_candidate(data)
        if candidate is not None:
            finish_reason = candidate.get("finishReason")
            if finish_reason in BLOCKING_FINISH_REASONS:
                return StreamRecord.blocked(
                    str(finish_reason), candidate.get("safetyRatings")
                )
        return None

    def extract_text(self, data: Any) -> str | None:
        candidate = self._first_candidate(data)
        if candidate is None:
            return None
        content = candidate.get("content")
        if not isinstance(content, dict):
            return None
        part = first_item(content.get("parts"))
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            return part["text"]
        return None

    def stream_record(self, data: Any) -> StreamRecord | None:
        failure = self.error_signal(data)
        if failure is not None:
            return failure
        blocked = self.block_signal(data)
        if blocked is not None:
            return blocked
        text = self.extract_text(data)
        if text:
            return StreamRecord.fragment(text)
        return None


adapter_registry.register_adapter(ProtocolKind.GENERATE_CONTENT, GenerateContentAdapter())
