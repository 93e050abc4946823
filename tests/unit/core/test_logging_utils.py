from __future__ import annotations

import logging

import pytest

from structure_relay.core.common.logging_utils import (
    ApiKeyRedactionFilter,
    install_api_key_redaction_filter,
    mask_secret,
    mask_url,
)


def test_mask_url_hides_key_parameter() -> None:
    url = "https://g.test/v1beta/models/m:streamGenerateContent?alt=sse&key=AIzaSECRET"

    assert mask_url(url) == (
        "https://g.test/v1beta/models/m:streamGenerateContent?alt=sse&key=***"
    )
    assert mask_url("http://local.test/v1/chat/completions") == (
        "http://local.test/v1/chat/completions"
    )


def test_mask_secret() -> None:
    assert mask_secret(None) == "<not set>"
    assert mask_secret("short") == "***"
    assert mask_secret("AIzaSyExampleKey1234") == "AIza...1234"


def test_filter_redacts_message_and_args() -> None:
    redactor = ApiKeyRedactionFilter(["topsecret"])
    record = logging.LogRecord(
        "test", logging.INFO, __file__, 1,
        "calling %s with %s", ("https://g.test?key=topsecret", "Bearer abc.def"), None,
    )

    assert redactor.filter(record) is True
    assert "topsecret" not in record.getMessage()
    assert "abc.def" not in record.getMessage()
    assert "Bearer ***" in record.getMessage()


def test_installed_filter_applies_to_root_logger(caplog: pytest.LogCaptureFixture) -> None:
    redactor = install_api_key_redaction_filter(["sk-relay-123456"])
    try:
        with caplog.at_level(logging.INFO):
            logging.getLogger().info("key is sk-relay-123456")
    finally:
        root = logging.getLogger()
        root.removeFilter(redactor)
        for handler in root.handlers:
            handler.removeFilter(redactor)

    assert "sk-relay-123456" not in caplog.text
    assert "key is ***" in caplog.text
