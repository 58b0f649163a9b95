"""
Structured logging for the voice assistant.

Records are emitted as JSON (one object per line) except on the console in
debug mode. Event helpers below attach their fields through ``extra`` so they
end up under the ``extra`` key of the JSON record.
"""

import asyncio
import logging
import logging.handlers
import json
import time
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional
from contextlib import contextmanager
import streamlit as st

from config.app_config import LoggingConfig, get_config


# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_FIELDS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime'
}

# Third-party loggers that flood DEBUG output with request details
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "gtts")


class StructuredFormatter(logging.Formatter):
    """JSON formatter; extra fields are nested under ``extra``"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            error_type, error, tb = record.exc_info
            entry["exception"] = {
                "type": error_type.__name__ if error_type else None,
                "message": str(error) if error else None,
                "traceback": traceback.format_exception(error_type, error, tb),
            }

        extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_FIELDS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, ensure_ascii=False, default=str)


class StreamlitLogHandler(logging.Handler):
    """Shows warnings and errors as toasts on the page (development only)"""

    def emit(self, record: logging.LogRecord):
        icon = "🚨" if record.levelno >= logging.ERROR else "⚠️"
        try:
            st.toast(f"{icon} {record.getMessage()}")
        except Exception:
            self.handleError(record)


def _console_handler(config: LoggingConfig, debug: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, config.level))
    if debug:
        handler.setFormatter(logging.Formatter(config.format + ' [%(filename)s:%(lineno)d]'))
    else:
        handler.setFormatter(StructuredFormatter())
    return handler


def _file_handler(config: LoggingConfig) -> logging.Handler:
    Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        config.log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    # Files always get everything
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logging() -> logging.Logger:
    """
    Configure the root logger from the application config

    Replaces any handlers already installed on the root logger.

    Returns:
        logging.Logger: The root logger
    """
    config = get_config()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.logging.level))
    root_logger.handlers.clear()
    root_logger.addHandler(_console_handler(config.logging, config.debug))

    if config.logging.enable_file_logging:
        root_logger.addHandler(_file_handler(config.logging))

    if config.debug and config.environment == "development":
        toast_handler = StreamlitLogHandler()
        toast_handler.setLevel(logging.WARNING)
        root_logger.addHandler(toast_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str, **extra_fields):
    """
    Log how long the wrapped block took

    Success is logged at info, failures at warning. A cancelled block
    (``asyncio.CancelledError``) is an aborted turn, so it is logged at info.
    The exception is always re-raised.

    Args:
        logger: Logger instance
        operation: Name of the operation, e.g. "chat completion"
        **extra_fields: Additional fields for every record
    """
    started = time.perf_counter()
    logger.debug(f"Starting {operation}", extra={"operation": operation, **extra_fields})

    try:
        yield
    except BaseException as e:
        log = logger.info if isinstance(e, asyncio.CancelledError) else logger.warning
        log(f"Failed {operation}: {type(e).__name__}", extra={
            "operation": operation,
            "duration_seconds": round(time.perf_counter() - started, 4),
            "status": "error",
            "error_type": type(e).__name__,
            "error_message": str(e),
            **extra_fields
        })
        raise

    logger.info(f"Completed {operation}", extra={
        "operation": operation,
        "duration_seconds": round(time.perf_counter() - started, 4),
        "status": "success",
        **extra_fields
    })


def log_user_interaction(logger: logging.Logger, interaction_type: str, **details):
    """UI action such as "microphone_toggle", "voice_input" or "new_conversation" """
    logger.info(f"User interaction: {interaction_type}", extra={
        "event_type": "user_interaction",
        "interaction_type": interaction_type,
        **details
    })


def log_model_usage(logger: logging.Logger, model: str, tokens_used: int, **details):
    """Token usage of one completion"""
    logger.info("Model usage", extra={
        "event_type": "model_usage",
        "model": model,
        "tokens_used": tokens_used,
        **details
    })


def log_conversation_event(logger: logging.Logger, event_type: str, conversation_id: Optional[str], **details):
    """
    Conversation store change

    Args:
        logger: Logger instance
        event_type: "created", "message_added", "loaded", "renamed", "deleted" or "cleared"
        conversation_id: Affected conversation, None for store-wide events
        **details: Additional event details
    """
    logger.info(f"Conversation {event_type}", extra={
        "event_type": "conversation_event",
        "conversation_event_type": event_type,
        "conversation_id": conversation_id,
        **details
    })


def log_turn_transition(logger: logging.Logger, from_state: str, to_state: str, **details):
    """Turn orchestrator state change"""
    logger.debug(f"Turn state {from_state} -> {to_state}", extra={
        "event_type": "turn_transition",
        "from_state": from_state,
        "to_state": to_state,
        **details
    })


class ErrorTracker:
    """
    Counts errors per ``type:context`` and logs each one with its traceback
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.error_counts: Dict[str, int] = {}

    def track_error(self, error: BaseException, context: str = "", **extra_info):
        """
        Record and log an error

        Args:
            error: The exception
            context: Where it happened, e.g. "model call"
            **extra_info: Additional fields for the log record
        """
        error_type = type(error).__name__
        key = f"{error_type}:{context}"
        self.error_counts[key] = self.error_counts.get(key, 0) + 1

        # Errors from the services carry the text the user was shown
        user_message = getattr(error, "user_message", None)
        if user_message:
            extra_info.setdefault("user_message", user_message)

        self.logger.error(f"Error in {context}: {error}", extra={
            "event_type": "error",
            "error_type": error_type,
            "error_message": str(error),
            "context": context,
            "error_count": self.error_counts[key],
            **extra_info
        }, exc_info=error)

    def get_error_summary(self) -> Dict[str, Any]:
        return {
            "total_errors": sum(self.error_counts.values()),
            "unique_errors": len(self.error_counts),
            "error_breakdown": dict(self.error_counts),
            "timestamp": datetime.now().isoformat()
        }

    def reset(self):
        self.error_counts.clear()


# Global instances
_logger_setup = False
_error_tracker: Optional[ErrorTracker] = None


def initialize_logging() -> ErrorTracker:
    """
    Configure logging once per process and return the shared error tracker
    """
    global _logger_setup, _error_tracker

    if not _logger_setup:
        setup_logging()
        _logger_setup = True

    if _error_tracker is None:
        _error_tracker = ErrorTracker(logging.getLogger("voice_assistant.errors"))

    return _error_tracker


def get_error_tracker() -> ErrorTracker:
    if _error_tracker is None:
        return initialize_logging()
    return _error_tracker
