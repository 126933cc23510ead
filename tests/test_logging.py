"""Tests for the structured logging system (approval_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from approval_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state around each test, then restore the suite config."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_envelope(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        (record,) = _parse_all_logs(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "approval_kernel.test"
        assert "ts" in record

    def test_extra_fields_and_types(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        request_id = uuid4()
        get_logger("test").info(
            "approval_decided",
            extra={"request_id": request_id, "approval_level": 2},
        )

        (record,) = _parse_all_logs(stream)
        assert record["request_id"] == str(request_id)
        assert record["approval_level"] == 2

    def test_approval_kernel_error_fields(self):
        from approval_kernel.exceptions import StaleLevelError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise StaleLevelError("req-1", 3, "approval already approved")
        except StaleLevelError:
            get_logger("test").error("decide_failed", exc_info=True)

        (record,) = _parse_all_logs(stream)
        assert record["exc_type"] == "StaleLevelError"
        assert record["exc_code"] == "STALE_LEVEL"
        assert "traceback" in record

    def test_level_filtering(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.debug("hidden")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first"]

    def test_configure_is_idempotent(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        get_logger("test").info("once")

        assert len(_parse_all_logs(stream)) == 1


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", actor_id="user-9")
        get_logger("test").info("test_msg")

        (record,) = _parse_all_logs(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["actor_id"] == "user-9"

    def test_bind_restores_previous(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", request_id="r-1"):
            assert LogContext.get_all() == {"correlation_id": "inner", "request_id": "r-1"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_clear(self):
        LogContext.set(correlation_id="x", operation="decide")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(event_id="e-1")
        with pytest.raises(ValueError):
            LogContext.bind(event_id="e-1")

    def test_engine_call_binds_operation(self, approval_engine, people):
        handler, stream = _make_handler()
        reset_logging()
        configure_logging(level=logging.DEBUG, handler=handler)
        approval_engine.create_draft(people.requester, people.department_id, "10", "Desk")

        created = [r for r in _parse_all_logs(stream) if r["message"] == "request_draft_created"]
        assert created[0]["operation"] == "create_draft"
        assert created[0]["actor_id"] == str(people.requester)
