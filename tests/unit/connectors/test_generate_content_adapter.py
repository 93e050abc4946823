from __future__ import annotations

import httpx

from structure_relay.connectors.base import DEFAULT_TEMPERATURE, compose_prompt
from structure_relay.connectors.gemini import GenerateContentAdapter
from structure_relay.core.domain.backend import BackendDescriptor
from structure_relay.core.domain.requests import StructureRequest


def _request(backend: str = "gemini") -> StructureRequest:
    return StructureRequest(
        instruction="Extract the questions.", payload="Q1 [2]", backend=backend
    )


def test_non_streaming_request_uses_generate_content(
    gemini_descriptor: BackendDescriptor,
) -> None:
    upstream = GenerateContentAdapter().build_request(
        gemini_descriptor, _request(), "FAKE_KEY"
    )

    url = httpx.URL(upstream.url)
    assert url.path == "/v1beta/models/gemini-pro:generateContent"
    assert url.params["key"] == "FAKE_KEY"
    assert "alt" not in url.params
    assert upstream.stream is False
    assert upstream.headers == {"Content-Type": "application/json"}


def test_credential_is_masked_in_display_url(
    gemini_descriptor: BackendDescriptor,
) -> None:
    upstream = GenerateContentAdapter().build_request(
        gemini_descriptor, _request(), "FAKE_KEY"
    )

    assert "FAKE_KEY" in upstream.url
    assert "FAKE_KEY" not in upstream.display_url
    assert "key=***" in upstream.display_url


def test_streaming_request_uses_sse_endpoint(
    gemini_descriptor: BackendDescriptor,
) -> None:
    descriptor = gemini_descriptor.model_copy(
        update={"streamable": True, "model": "models/gemini-pro"}
    )

    upstream = GenerateContentAdapter().build_request(descriptor, _request(), "FAKE_KEY")

    url = httpx.URL(upstream.url)
    assert url.path == "/v1beta/models/gemini-pro:streamGenerateContent"
    assert url.params["alt"] == "sse"
    assert url.params["key"] == "FAKE_KEY"
    assert upstream.stream is True


def test_body_has_single_prompt_part(gemini_descriptor: BackendDescriptor) -> None:
    request = _request()

    body = GenerateContentAdapter().build_request(
        gemini_descriptor, request, "FAKE_KEY"
    ).body

    assert body == {
        "contents": [
            {"parts": [{"text": compose_prompt(request.instruction, request.payload)}]}
        ],
        "generationConfig": {"temperature": DEFAULT_TEMPERATURE},
    }


def test_extract_text_reads_first_candidate_part() -> None:
    data = {
        "candidates": [
            {"content": {"parts": [{"text": "first"}, {"text": "second"}]}},
            {"content": {"parts": [{"text": "other"}]}},
        ]
    }

    assert GenerateContentAdapter().extract_text(data) == "first"
    assert GenerateContentAdapter().extract_text({"candidates": []}) is None
    assert GenerateContentAdapter().extract_text("text") is None


def test_prompt_feedback_block_reason() -> None:
    data = {
        "promptFeedback": {
            "blockReason": "SAFETY",
            "safetyRatings": [{"category": "HARM_CATEGORY_HARASSMENT", "probability": "HIGH"}],
        }
    }

    record = GenerateContentAdapter().block_signal(data)

    assert record is not None
    assert record.block_reason == "SAFETY"
    assert record.safety_ratings[0]["probability"] == "HIGH"


def test_blocking_finish_reason_on_candidate() -> None:
    adapter = GenerateContentAdapter()

    blocked = adapter.block_signal({"candidates": [{"finishReason": "PROHIBITED_CONTENT"}]})
    finished = adapter.block_signal(
        {"candidates": [{"finishReason": "STOP", "content": {"parts": [{"text": "ok"}]}}]}
    )

    assert blocked is not None and blocked.block_reason == "PROHIBITED_CONTENT"
    assert finished is None


def test_stream_record_prefers_block_over_text() -> None:
    adapter = GenerateContentAdapter()
    data = {
        "candidates": [
            {"content": {"parts": [{"text": "partial"}]}, "finishReason": "SAFETY"}
        ]
    }

    record = adapter.stream_record(data)

    assert record is not None and record.is_blocked
    assert adapter.stream_record({"candidates": [{"content": {"parts": [{"text": "hi"}]}}]}).text == "hi"
    assert adapter.stream_record({"candidates": [{"content": {"parts": [{}]}}]}) is None


def test_error_object_in_stream_is_a_failure() -> None:
    adapter = GenerateContentAdapter()

    with_status = adapter.stream_record({"error": {"code": 503, "status": "UNAVAILABLE"}})
    with_text = adapter.stream_record({"error": "quota exhausted"})

    assert with_status is not None and with_status.error_message == "UNAVAILABLE"
    assert with_text is not None and with_text.error_message == "quota exhausted"
