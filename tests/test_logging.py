"""Tests for the structured logging system (governance_kernel/logging_config.py)."""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from governance_kernel.exceptions import DuplicateRoleAssignmentError
from governance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "governance.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("step", extra={"step_id": "hr_review", "attempt": 2})

        record = _parse_log(stream)
        assert record["step_id"] == "hr_review"
        assert record["attempt"] == 2

    def test_non_json_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        when = datetime(2026, 1, 5, tzinfo=timezone.utc)
        get_logger("test").info(
            "values",
            extra={"amount": Decimal("10.50"), "when": when, "roles": {"b", "a"}},
        )

        record = _parse_log(stream)
        assert record["amount"] == "10.50"
        assert record["when"] == when.isoformat()
        assert record["roles"] == ["a", "b"]

    def test_exception_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise DuplicateRoleAssignmentError("u-1", "contract_reviewer", "global")
        except DuplicateRoleAssignmentError:
            logger.exception("assign_failed")

        record = _parse_log(stream)
        assert record["exc_type"] == "DuplicateRoleAssignmentError"
        assert record["exc_code"] == "DUPLICATE_ROLE_ASSIGNMENT"
        assert record["exc_subject_id"] == "u-1"
        assert record["exc_role_id"] == "contract_reviewer"
        assert "traceback" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(actor_id="u-1", instance_id="wf-1")
        get_logger("test").info("with_context")

        record = _parse_log(stream)
        assert record["actor_id"] == "u-1"
        assert record["instance_id"] == "wf-1"

    def test_bind_restores_previous_values(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner", document_id="doc-9"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = _parse_all_logs(stream)
        assert inside["actor_id"] == "inner"
        assert inside["document_id"] == "doc-9"
        assert outside["actor_id"] == "outer"
        assert "document_id" not in outside

    def test_clear_removes_all_fields(self):
        LogContext.set(actor_id="u-1", document_id="doc-1")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_none_values_are_not_set(self):
        LogContext.set(actor_id="u-1")
        LogContext.set(actor_id=None, instance_id="wf-1")
        assert LogContext.get_all() == {"actor_id": "u-1", "instance_id": "wf-1"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="trace_id"):
            LogContext.set(trace_id="t-1")
        with pytest.raises(TypeError):
            with LogContext.bind(producer="x"):
                pass
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# Configuration tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_configure_is_idempotent(self):
        first, _ = _make_handler()
        second, _ = _make_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)

        handlers = logging.getLogger("governance").handlers
        assert first in handlers
        assert second not in handlers

    def test_level_filters_debug(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.INFO, handler=handler)
        get_logger("test").debug("hidden")
        assert stream.getvalue() == ""
