from __future__ import annotations

from structure_relay.connectors.base import (
    DEFAULT_TEMPERATURE,
    OUTPUT_FORMAT_GUARD,
    compose_prompt,
)
from structure_relay.connectors.openai import ChatCompletionsAdapter
from structure_relay.core.domain.backend import BackendDescriptor
from structure_relay.core.domain.requests import StructureRequest


def test_build_request_targets_chat_completions(
    local_descriptor: BackendDescriptor, structure_request: StructureRequest
) -> None:
    upstream = ChatCompletionsAdapter().build_request(
        local_descriptor, structure_request, None
    )

    assert upstream.url == "http://local-llm.test/v1/chat/completions"
    assert upstream.stream is True
    assert upstream.backend == "local"
    assert upstream.headers["Accept"] == "text/event-stream"
    assert "Authorization" not in upstream.headers


def test_body_carries_instruction_and_prompt(
    local_descriptor: BackendDescriptor, structure_request: StructureRequest
) -> None:
    body = ChatCompletionsAdapter().build_request(
        local_descriptor, structure_request, None
    ).body

    assert body["model"] == "test-model"
    assert body["stream"] is True
    assert body["temperature"] == DEFAULT_TEMPERATURE
    system, user = body["messages"]
    assert system == {"role": "system", "content": structure_request.instruction}
    assert user["role"] == "user"
    assert user["content"] == compose_prompt(
        structure_request.instruction, structure_request.payload
    )
    assert structure_request.payload in user["content"]
    assert user["content"].endswith(OUTPUT_FORMAT_GUARD)


def test_non_streaming_backend_and_bearer_credential(
    local_descriptor: BackendDescriptor, structure_request: StructureRequest
) -> None:
    descriptor = local_descriptor.model_copy(
        update={
            "api_url": "http://local-llm.test/v1/chat/completions",
            "streamable": False,
        }
    )

    upstream = ChatCompletionsAdapter().build_request(
        descriptor, structure_request, "sk-local"
    )

    assert upstream.url == "http://local-llm.test/v1/chat/completions"
    assert upstream.stream is False
    assert upstream.body["stream"] is False
    assert "Accept" not in upstream.headers
    assert upstream.headers["Authorization"] == "Bearer sk-local"


def test_stream_record_reads_delta_content() -> None:
    adapter = ChatCompletionsAdapter()

    record = adapter.stream_record({"choices": [{"delta": {"content": "Hel"}}]})

    assert record is not None
    assert record.text == "Hel"
    assert not record.is_blocked


def test_stream_record_ignores_lines_without_content() -> None:
    adapter = ChatCompletionsAdapter()

    assert adapter.stream_record({"choices": [{"delta": {"role": "assistant"}}]}) is None
    assert adapter.stream_record({"choices": []}) is None
    assert adapter.stream_record({"usage": {}}) is None
    assert adapter.stream_record(["not", "a", "dict"]) is None


def test_content_filter_finish_reason_is_a_block() -> None:
    adapter = ChatCompletionsAdapter()
    data = {"choices": [{"delta": {}, "finish_reason": "content_filter"}]}

    record = adapter.stream_record(data)

    assert record is not None and record.block_reason == "content_filter"
    assert adapter.block_signal(data) == record


def test_extract_text_from_complete_response() -> None:
    adapter = ChatCompletionsAdapter()
    data = {
        "choices": [
            {"message": {"role": "assistant", "content": "| Q | Marks |"}, "finish_reason": "stop"}
        ]
    }

    assert adapter.extract_text(data) == "| Q | Marks |"
    assert adapter.block_signal(data) is None
    assert adapter.extract_text({"choices": [{"message": {}}]}) is None


def test_error_object_in_stream_is_a_failure() -> None:
    record = ChatCompletionsAdapter().stream_record(
        {"error": {"message": "context length exceeded", "type": "invalid_request_error"}}
    )

    assert record is not None and record.is_failed
    assert record.error_message == "context length exceeded"
    assert record.is_terminal


def test_prompt_guard_follows_the_document() -> None:
    prompt = compose_prompt("  Make a table.  ", "a,b\n1,2")

    assert prompt.startswith("Make a table.\n\n")
    head, guard = prompt.rsplit("\n\n", 1)
    assert head.endswith("---\na,b\n1,2\n---")
    assert guard == OUTPUT_FORMAT_GUARD
    assert "code fences" in guard


def test_prompt_guard_can_be_left_out() -> None:
    prompt = compose_prompt("Make a table.", "a,b", guard=None)

    assert prompt.endswith("---\na,b\n---")
    assert OUTPUT_FORMAT_GUARD not in prompt
