"""Tests for log redaction and logging setup."""

import logging

from forwarding.utils.logging import (
    REDACTED,
    bind_request,
    clear_request,
    get_log_level,
    redact_secrets,
    setup_stdlib_logging,
)


def test_top_level_secrets_are_masked():
    event = redact_secrets(None, "info", {"event": "paypal_token", "client_secret": "s3cret", "order_id": "O-1"})
    assert event["client_secret"] == REDACTED
    assert event["order_id"] == "O-1"


def test_nested_secrets_are_masked():
    event = redact_secrets(
        None,
        "info",
        {"event": "attach", "request": {"Signature": "data:image/png;base64,AAA", "items": [{"token": "t"}]}},
    )
    assert event["request"]["Signature"] == REDACTED
    assert event["request"]["items"][0]["token"] == REDACTED


def test_log_level_follows_environment(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setenv("PROTEAN_ENV", "production")
    assert get_log_level() == "INFO"
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert get_log_level() == "ERROR"


def test_files_only_with_log_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_DIR", raising=False)
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        setup_stdlib_logging()
        assert not any(isinstance(h, logging.FileHandler) for h in root.handlers)

        setup_stdlib_logging(tmp_path / "logs")
        assert (tmp_path / "logs").is_dir()
        assert sum(isinstance(h, logging.FileHandler) for h in root.handlers) == 2
    finally:
        for handler in root.handlers:
            if isinstance(handler, logging.FileHandler):
                handler.close()
        root.handlers, level = saved
        root.setLevel(level)


def test_bind_request_generates_id():
    try:
        assert bind_request("req-1") == "req-1"
        assert len(bind_request()) == 32
    finally:
        clear_request()
