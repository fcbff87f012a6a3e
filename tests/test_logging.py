"""Tests for structured logging helpers."""
import json
import logging
import sys

import pytest

from app.core.logging import ContextLogger, JSONFormatter, LogTimer, get_logger


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def recorder():
    handler = RecordingHandler()
    logger = logging.getLogger("tests.logging")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield logger, handler
    logger.removeHandler(handler)


class TestJSONFormatter:
    def test_context_fields_are_included(self):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 10, "Product bought", None, None)
        record.user_id = "u1"
        record.product_id = "p1"

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Product bought"
        assert payload["level"] == "INFO"
        assert payload["user_id"] == "u1"
        assert payload["product_id"] == "p1"
        assert "request_id" not in payload

    def test_exception_is_serialized(self):
        try:
            raise ValueError("broken")
        except ValueError:
            record = logging.LogRecord("app.test", logging.ERROR, __file__, 10, "Failed", None, sys.exc_info())

        payload = json.loads(JSONFormatter().format(record))

        assert payload["exception"]["type"] == "ValueError"
        assert payload["exception"]["message"] == "broken"


class TestContextLogger:
    def test_get_logger_with_context(self):
        assert isinstance(get_logger("tests.logging", {"request_id": "abc"}), ContextLogger)
        assert isinstance(get_logger("tests.logging"), logging.Logger)

    def test_context_is_merged_with_extra(self, recorder):
        logger, handler = recorder

        ContextLogger(logger, {"request_id": "abc"}).info("Request completed", extra={"status_code": 200})

        record = handler.records[-1]
        assert record.request_id == "abc"
        assert record.status_code == 200


class TestLogTimer:
    def test_logs_duration(self, recorder):
        logger, handler = recorder

        with LogTimer(logger, "buy_product"):
            pass

        record = handler.records[-1]
        assert record.operation == "buy_product"
        assert record.duration_ms >= 0
        assert "completed" in record.getMessage()

    def test_does_not_swallow_exceptions(self, recorder):
        logger, handler = recorder

        with pytest.raises(RuntimeError):
            with LogTimer(logger, "delete_product"):
                raise RuntimeError("boom")

        assert "aborted" in handler.records[-1].getMessage()
