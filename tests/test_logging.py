"""Tests for the structured logging system (ledger_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import ClosedPeriodError, UnbalancedEntryError
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from ledger_kernel.models.journal import JournalEntryStatus


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start each test unconfigured; restore the suite's DEBUG setup afterwards."""
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


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


class TestStructuredFormatter:
    """JSON line format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "ledger_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("posted", extra={"seq": 42, "entry_number": "JE-2024-00001"})

        record = _parse_log(stream)
        assert record["seq"] == 42
        assert record["entry_number"] == "JE-2024-00001"

    def test_domain_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        entry_id = uuid4()
        get_logger("test").info(
            "values",
            extra={
                "entry_id_value": entry_id,
                "amount": Decimal("10.50"),
                "entry_date": date(2024, 1, 10),
                "status": JournalEntryStatus.POSTED,
            },
        )

        record = _parse_log(stream)
        assert record["entry_id_value"] == str(entry_id)
        assert record["amount"] == "10.50"
        assert record["entry_date"] == "2024-01-10"
        assert record["status"] == "posted"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_ledger_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ClosedPeriodError("2024-01", date(2024, 1, 15))
        except ClosedPeriodError:
            get_logger("test").error("period_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "CLOSED_PERIOD"
        assert record["exc_type"] == "ClosedPeriodError"
        assert record["exc_period_code"] == "2024-01"
        assert record["exc_entry_date"] == "2024-01-15"
        assert record["exc_status"] == "closed"

    def test_unbalanced_amounts_rendered_as_strings(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise UnbalancedEntryError(Decimal("500"), Decimal("400"), "MYR")
        except UnbalancedEntryError:
            get_logger("test").error("unbalanced", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "UNBALANCED"
        assert record["exc_debits"] == "500"
        assert record["exc_credits"] == "400"
        assert record["exc_currency"] == "MYR"


class TestLogContext:
    """Request-scoped fields."""

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(tenant_id="t-1", correlation_id="abc-123")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["tenant_id"] == "t-1"
        assert record["correlation_id"] == "abc-123"

    def test_bind_restores_previous_values(self):
        LogContext.set(tenant_id="outer")

        with LogContext.bind(tenant_id="inner", actor_id="actor-1"):
            assert LogContext.get_all() == {"tenant_id": "inner", "actor_id": "actor-1"}

        assert LogContext.get_all() == {"tenant_id": "outer"}

    def test_bind_ignores_unknown_and_none(self):
        with LogContext.bind(entry_id=None, colour="blue"):
            assert LogContext.get_all() == {}

    def test_clear(self):
        LogContext.set(tenant_id="t-1", trace_id="tr-1")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_context_and_extra_merged(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(actor_id="from-context")

        get_logger("test").info("msg", extra={"entry_number": "JE-1"})

        record = _parse_log(stream)
        assert record["actor_id"] == "from-context"
        assert record["entry_number"] == "JE-1"


class TestConfigureLogging:

    def test_idempotent(self):
        first, first_stream = _make_handler()
        second, second_stream = _make_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)

        get_logger("test").info("once")

        assert len(_parse_all_logs(first_stream)) == 1
        assert second_stream.getvalue() == ""

    def test_level_filters(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        logger = get_logger("test")

        logger.info("hidden")
        logger.warning("shown")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["shown"]

    def test_does_not_propagate_to_root(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        assert logging.getLogger("ledger_kernel").propagate is False
