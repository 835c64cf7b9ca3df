"""Logging configuration for the forwarding domain.

Everything goes through structlog. Console output is always on; rotating
files are added only when ``LOG_DIR`` is set. Gateway credentials, rate-API
tokens and customer signatures never reach a log line: ``redact_secrets``
masks them before rendering.
"""

import logging
import logging.handlers
import os
import sys
import uuid
from pathlib import Path

import structlog

SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "authorization",
        "client_secret",
        "password",
        "signature",
        "token",
    }
)
REDACTED = "***"

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}


def _environment() -> str:
    return (os.getenv("PROTEAN_ENV") or os.getenv("ENVIRONMENT") or "development").lower()


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", _LEVELS.get(_environment(), "INFO")).upper()


def redact_secrets(logger, method_name, event_dict):  # noqa: ARG001
    """structlog processor masking credential-like keys, at any nesting depth."""

    def _scrub(value):
        if isinstance(value, dict):
            return {k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _scrub(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(_scrub(v) for v in value)
        return value

    return _scrub(event_dict)


def setup_stdlib_logging(log_dir: Path | None = None) -> None:
    level = get_log_level()
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [logging.StreamHandler(sys.stdout)]

    log_dir = log_dir or (Path(os.environ["LOG_DIR"]) if os.getenv("LOG_DIR") else None)
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        for filename, file_level in (("forwarding.log", level), ("forwarding_error.log", logging.ERROR)):
            handler = logging.handlers.RotatingFileHandler(
                filename=log_dir / filename,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            handler.setLevel(file_level)
            root_logger.addHandler(handler)

    # Adapter HTTP chatter and framework internals
    for noisy in ("httpx", "httpcore", "protean"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_structlog() -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if _environment() in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: Path | None = None) -> None:
    """Configure all logging for the application."""
    setup_stdlib_logging(log_dir)
    setup_structlog()


def bind_request(request_id: str | None = None, **fields) -> str:
    """Tag every log line of the current request. Returns the request id used."""
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **fields)
    return request_id


def clear_request() -> None:
    structlog.contextvars.clear_contextvars()
