"""JSON log formatting and credential redaction."""

from __future__ import annotations

import json
import logging

from clickploy.observability.logging import _JsonFormatter, log_event


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(_JsonFormatter())
        self.lines: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))


def capture_logger(name: str) -> tuple[logging.Logger, _Capture]:
    logger = logging.getLogger(name)
    handler = _Capture()
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, handler


class TestJsonFormatter:
    def test_event_fields_are_included(self):
        logger, handler = capture_logger("clickploy.test.fields")
        log_event(logger, "log_stream_opened", deployment_id="d1")
        payload = json.loads(handler.lines[0])
        assert payload["event"] == "log_stream_opened"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "clickploy.test.fields"
        assert payload["deployment_id"] == "d1"

    def test_secret_fields_are_redacted(self):
        logger, handler = capture_logger("clickploy.test.secrets")
        log_event(logger, "session_saved", api_key="key-0123456789", password="s3cret")
        line = handler.lines[0]
        assert "key-0123456789" not in line
        assert "s3cret" not in line
        payload = json.loads(line)
        assert payload["api_key"] == "***"
        assert payload["password"] == "***"

    def test_exception_is_formatted(self):
        logger, handler = capture_logger("clickploy.test.errors")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("failed")
        payload = json.loads(handler.lines[0])
        assert "RuntimeError: boom" in payload["exception"]
