"""
Tests for structured logging helpers
"""

import asyncio
import json
import logging

import pytest
from unittest.mock import Mock

from utils.logging_config import (
    ErrorTracker,
    StructuredFormatter,
    log_conversation_event,
    log_execution_time,
    log_model_usage,
    log_turn_transition,
)


def make_record(message="hello", **extra):
    record = logging.LogRecord("voice.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Test JSON formatting of log records"""

    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "voice.test"
        assert data["message"] == "hello"
        assert "extra" not in data

    def test_extra_fields(self):
        record = make_record(conversation_id="abc", tokens_used=12)

        data = json.loads(StructuredFormatter().format(record))

        assert data["extra"] == {"conversation_id": "abc", "tokens_used": 12}

    def test_non_ascii_message_kept(self):
        data = json.loads(StructuredFormatter().format(make_record("سلام دنیا")))

        assert data["message"] == "سلام دنیا"

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord("voice.test", logging.ERROR, __file__, 10, "failed", None, sys.exc_info())

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "boom"


class TestLogHelpers:
    """Test the event logging helpers"""

    def test_log_execution_time_success(self):
        logger = Mock()

        with log_execution_time(logger, "chat completion", model="m"):
            pass

        logger.debug.assert_called_once()
        logger.info.assert_called_once()
        extra = logger.info.call_args.kwargs["extra"]
        assert extra["status"] == "success"
        assert extra["model"] == "m"

    def test_log_execution_time_failure_reraises(self):
        logger = Mock()

        with pytest.raises(RuntimeError):
            with log_execution_time(logger, "chat completion"):
                raise RuntimeError("upstream down")

        logger.warning.assert_called_once()
        assert logger.warning.call_args.kwargs["extra"]["error_type"] == "RuntimeError"

    def test_log_execution_time_cancellation_is_info(self):
        logger = Mock()

        with pytest.raises(asyncio.CancelledError):
            with log_execution_time(logger, "chat completion"):
                raise asyncio.CancelledError()

        logger.warning.assert_not_called()
        assert logger.info.call_args.kwargs["extra"]["status"] == "error"

    def test_log_conversation_event(self):
        logger = Mock()

        log_conversation_event(logger, "deleted", "conv-1", message_count=3)

        extra = logger.info.call_args.kwargs["extra"]
        assert extra["conversation_event_type"] == "deleted"
        assert extra["conversation_id"] == "conv-1"
        assert extra["message_count"] == 3

    def test_log_model_usage(self):
        logger = Mock()

        log_model_usage(logger, "llama-3.3-70b-versatile", 42, prompt_tokens=30)

        extra = logger.info.call_args.kwargs["extra"]
        assert extra["tokens_used"] == 42
        assert extra["prompt_tokens"] == 30


class TestErrorTracker:
    """Test error counting"""

    def test_counts_per_type_and_context(self):
        tracker = ErrorTracker(Mock())

        tracker.track_error(ValueError("a"), "model call")
        tracker.track_error(ValueError("b"), "model call")
        tracker.track_error(KeyError("c"), "playback")

        summary = tracker.get_error_summary()
        assert summary["total_errors"] == 3
        assert summary["unique_errors"] == 2
        assert summary["error_breakdown"]["ValueError:model call"] == 2

    def test_user_message_attached(self):
        logger = Mock()
        tracker = ErrorTracker(logger)
        error = ValueError("boom")
        error.user_message = "Something went wrong"

        tracker.track_error(error, "model call")

        assert logger.error.call_args.kwargs["extra"]["user_message"] == "Something went wrong"

    def test_reset(self):
        tracker = ErrorTracker(Mock())
        tracker.track_error(ValueError("a"), "playback")

        tracker.reset()

        assert tracker.get_error_summary()["total_errors"] == 0


def test_log_turn_transition():
    logger = Mock()

    log_turn_transition(logger, "idle", "thinking")

    extra = logger.debug.call_args.kwargs["extra"]
    assert extra["event_type"] == "turn_transition"
    assert (extra["from_state"], extra["to_state"]) == ("idle", "thinking")
