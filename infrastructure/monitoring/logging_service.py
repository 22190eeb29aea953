"""
Client logging: JSON records for files and production consoles, timing of
backend calls, and a process-wide error tracker.

Message bodies and credentials are never written out; any such field passed
through ``extra`` is masked by the formatter.
"""

import json
import logging
import logging.handlers
import time
import traceback
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from infrastructure.config.settings import AppConfig, get_config


_STANDARD_RECORD_KEYS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

SENSITIVE_FIELDS = frozenset({"password", "confirm_password", "text", "message_text", "reply"})
REDACTED = "[redacted]"

# httpx logs every request at INFO; backend calls are already timed below
_NOISY_LOGGERS = ("httpx", "httpcore")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields nested and masked"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        extra = {
            key: (REDACTED if key in SENSITIVE_FIELDS else value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(config: Optional[AppConfig] = None) -> logging.Logger:
    """
    Configure the root logger from the logging section of the config.

    Debug builds get a readable console format; everything else, and the
    optional rotating log file, gets JSON.
    """
    config = config or get_config()
    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    if config.debug:
        console_handler.setFormatter(logging.Formatter(
            config.logging.format + " [%(filename)s:%(lineno)d]"
        ))
    else:
        console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    if config.logging.enable_file_logging:
        Path(config.logging.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.logging.log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_backend_call(logger: logging.Logger, method: str, path: str) -> Iterator[Dict[str, Any]]:
    """
    Time one backend request.

    Yields a dict the caller may fill with ``status_code``. Success is logged
    at DEBUG, failures at WARNING with the exception type, and the exception
    is re-raised unchanged.
    """
    outcome: Dict[str, Any] = {}
    started = time.perf_counter()
    try:
        yield outcome
    except Exception as e:
        logger.warning(f"Backend call failed: {method} {path}: {e}", extra={
            "event_type": "backend_call",
            "http_method": method,
            "path": path,
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            "status": "error",
            "error_type": type(e).__name__,
            **outcome
        })
        raise

    logger.debug(f"Backend call: {method} {path}", extra={
        "event_type": "backend_call",
        "http_method": method,
        "path": path,
        "duration_ms": round((time.perf_counter() - started) * 1000, 1),
        "status": "success",
        **outcome
    })


def log_user_interaction(logger: logging.Logger, interaction_type: str, **details):
    """Record a user action such as "message_submitted" or "logout" """
    logger.info(f"User interaction: {interaction_type}", extra={
        "event_type": "user_interaction",
        "interaction_type": interaction_type,
        **details
    })


def log_conversation_event(logger: logging.Logger, event_type: str, conversation_id: Optional[str], **details):
    """Record a conversation lifecycle change ("adopted", "loaded", "deleted", ...)"""
    logger.info(f"Conversation {event_type}: {conversation_id}", extra={
        "event_type": "conversation_event",
        "conversation_event_type": event_type,
        "conversation_id": conversation_id,
        **details
    })


class ErrorTracker:
    """
    Logs unexpected exceptions with a per (type, context) occurrence count,
    so repeated failures of the same kind are easy to spot in the log.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.error_counts: Dict[str, int] = {}

    def track_error(self, error: Exception, context: str = "", **extra_info) -> int:
        """Log the error with its traceback and return how often it has occurred"""
        error_type = type(error).__name__
        key = f"{error_type}:{context}"
        self.error_counts[key] = self.error_counts.get(key, 0) + 1

        self.logger.error(f"Unexpected {error_type} in {context}: {error}", extra={
            "event_type": "error",
            "error_type": error_type,
            "context": context,
            "occurrence": self.error_counts[key],
            **extra_info
        }, exc_info=error)
        return self.error_counts[key]


_logging_ready = False
_error_tracker: Optional[ErrorTracker] = None


def initialize_logging(config: Optional[AppConfig] = None) -> ErrorTracker:
    """Configure logging once per process and return the shared error tracker"""
    global _logging_ready, _error_tracker

    if not _logging_ready:
        setup_logging(config)
        _logging_ready = True

    if _error_tracker is None:
        _error_tracker = ErrorTracker(get_logger("melo.errors"))

    return _error_tracker


def get_error_tracker() -> ErrorTracker:
    if _error_tracker is None:
        return initialize_logging()
    return _error_tracker
