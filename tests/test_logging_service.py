"""
Tests for structured logging and error tracking
"""

import json
import logging
import sys

import pytest

from infrastructure.config.settings import AppConfig
from infrastructure.monitoring.logging_service import (
    REDACTED,
    ErrorTracker,
    StructuredFormatter,
    log_conversation_event,
    log_backend_call,
    log_user_interaction,
    setup_logging
)


class TestStructuredFormatter:
    """Test JSON log formatting"""

    def test_formats_basic_record(self):
        record = logging.LogRecord("melo.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "melo.test"
        assert data["message"] == "hello world"

    def test_includes_extra_fields(self):
        record = logging.LogRecord("melo.test", logging.INFO, __file__, 10, "event", (), None)
        record.conversation_id = "c42"

        data = json.loads(StructuredFormatter().format(record))

        assert data["extra"]["conversation_id"] == "c42"

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("melo.test", logging.ERROR, __file__, 10, "failed", (), sys.exc_info())

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"


class TestLoggingHelpers:
    """Test structured logging helpers"""

    def test_log_user_interaction(self, caplog):
        logger = logging.getLogger("melo.test.interaction")

        with caplog.at_level(logging.INFO, logger="melo.test.interaction"):
            log_user_interaction(logger, "message_submitted", message_length=12)

        record = caplog.records[-1]
        assert record.interaction_type == "message_submitted"
        assert record.message_length == 12

    def test_log_conversation_event(self, caplog):
        logger = logging.getLogger("melo.test.conversation")

        with caplog.at_level(logging.INFO, logger="melo.test.conversation"):
            log_conversation_event(logger, "deleted", "c7")

        record = caplog.records[-1]
        assert record.conversation_event_type == "deleted"
        assert record.conversation_id == "c7"
    def test_log_backend_call_success(self, caplog):
        logger = logging.getLogger("melo.test.backend")

        with caplog.at_level(logging.DEBUG, logger="melo.test.backend"):
            with log_backend_call(logger, "GET", "/conversations") as outcome:
                outcome["status_code"] = 200

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.status == "success"
        assert record.status_code == 200
        assert record.path == "/conversations"
        assert record.duration_ms >= 0

    def test_log_backend_call_reraises(self, caplog):
        logger = logging.getLogger("melo.test.backend")

        with caplog.at_level(logging.DEBUG, logger="melo.test.backend"):
            with pytest.raises(ValueError):
                with log_backend_call(logger, "POST", "/chat"):
                    raise ValueError("bad")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.status == "error"
        assert record.error_type == "ValueError"


class TestRedaction:
    """Test user text and credentials never reach the log output"""

    def test_sensitive_extra_fields_are_masked(self):
        record = logging.LogRecord("melo.test", logging.INFO, __file__, 10, "event", (), None)
        record.password = "secret1"
        record.text = "I feel anxious today"
        record.message_length = 20

        data = json.loads(StructuredFormatter().format(record))

        assert data["extra"]["password"] == REDACTED
        assert data["extra"]["text"] == REDACTED
        assert data["extra"]["message_length"] == 20
        assert "secret1" not in json.dumps(data)


class TestSetupLogging:
    """Test root logger configuration from AppConfig"""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        httpx_level = logging.getLogger("httpx").level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("httpx").setLevel(httpx_level)

    def test_file_logging_writes_json(self, tmp_path):
        config = AppConfig()
        config.logging.level = "INFO"
        config.logging.enable_file_logging = True
        config.logging.log_file = str(tmp_path / "logs" / "client.log")

        root = setup_logging(config)
        logging.getLogger("melo.test.file").info("hello", extra={"conversation_id": "c1"})
        for handler in root.handlers:
            handler.flush()

        line = (tmp_path / "logs" / "client.log").read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["extra"]["conversation_id"] == "c1"
        assert root.level == logging.INFO

    def test_httpx_request_logs_are_quieted(self):
        setup_logging(AppConfig())

        assert logging.getLogger("httpx").level == logging.WARNING


class TestErrorTracker:
    """Test error tracking"""

    def test_counts_occurrences_by_type_and_context(self, caplog):
        tracker = ErrorTracker(logging.getLogger("melo.test.errors"))

        with caplog.at_level(logging.ERROR, logger="melo.test.errors"):
            assert tracker.track_error(ValueError("a"), "chat_submit") == 1
            assert tracker.track_error(ValueError("b"), "chat_submit") == 2
            assert tracker.track_error(KeyError("c"), "render") == 1

        assert tracker.error_counts == {"ValueError:chat_submit": 2, "KeyError:render": 1}
        assert caplog.records[-1].context == "render"
        assert caplog.records[-1].exc_info is not None
