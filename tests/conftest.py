from __future__ import annotations

import logging
import pytest

from structure_relay.core.common.logging_utils import configure_logging
from structure_relay.core.common.structlog_config import configure_structlog
from structure_relay.core.domain.backend import BackendDescriptor, ProtocolKind
from structure_relay.core.domain.requests import StructureRequest
from structure_relay.core.services.backend_registry import BackendRegistry

LOCAL_URL = "http://local-llm.test/v1"
GEMINI_URL = "https://gemini.test/v1beta"


@pytest.fixture(autouse=True)
def _configure_logging_for_tests() -> None:
    configure_logging(level=logging.DEBUG)
    configure_structlog()


@pytest.fixture
def local_descriptor() -> BackendDescriptor:
    return BackendDescriptor(
        identifier="local",
        protocol=ProtocolKind.CHAT_COMPLETIONS.value,
        api_url=LOCAL_URL,
        model="test-model",
        streamable=True,
    )


@pytest.fixture
def gemini_descriptor() -> BackendDescriptor:
    return BackendDescriptor(
        identifier="gemini",
        protocol=ProtocolKind.GENERATE_CONTENT.value,
        api_url=GEMINI_URL,
        model="gemini-pro",
        streamable=False,
        requires_credential=True,
        credential="FAKE_KEY",
    )


@pytest.fixture
def registry(
    local_descriptor: BackendDescriptor, gemini_descriptor: BackendDescriptor
) -> BackendRegistry:
    return BackendRegistry([local_descriptor, gemini_descriptor])


@pytest.fixture
def structure_request() -> StructureRequest:
    return StructureRequest(
        instruction="Return a Markdown table of questions and marks.",
        payload="Q1. Define entropy. [2 marks]",
        backend="local",
    )
