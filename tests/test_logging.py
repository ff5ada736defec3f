"""Tests for the structured logging system (stock_ledger/logging_config.py)."""

import json
import logging
from io import StringIO

import pytest

from stock_ledger.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests; restore the suite-wide setup after."""
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

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "stock_ledger.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("transaction_created", extra={"qty": 5, "tx_type": "pickup"})

        record = _parse_log(stream)
        assert record["qty"] == 5
        assert record["tx_type"] == "pickup"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", sku="SKU-001")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["sku"] == "SKU-001"

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
        from stock_ledger.exceptions import IllegalTransitionError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise IllegalTransitionError("tx-1", "completed", "open")
        except IllegalTransitionError:
            get_logger("test").error("transition_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "ILLEGAL_TRANSITION"
        assert record["exc_from_status"] == "completed"
        assert record["exc_to_status"] == "open"

    def test_uuid_and_datetime_serialized(self):
        from datetime import datetime, timezone
        from uuid import uuid4

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        tx_id = uuid4()
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        get_logger("test").info("x", extra={"tid": tx_id, "at": at})

        record = _parse_log(stream)
        assert record["tid"] == str(tx_id)
        assert record["at"] == at.isoformat()


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_bind_restores_previous_values(self):
        LogContext.set(transaction_id="outer")
        with LogContext.bind(transaction_id="inner", actor="alice"):
            assert LogContext.get_all() == {"transaction_id": "inner", "actor": "alice"}
        assert LogContext.get_all() == {"transaction_id": "outer"}

    def test_clear(self):
        LogContext.set(correlation_id="c", sku="s")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_ignores_none(self):
        with LogContext.bind(sku=None, actor="bob"):
            assert LogContext.get_all() == {"actor": "bob"}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("stock_ledger").handlers == [handler]

    def test_level_respected(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        log = get_logger("test")
        log.info("hidden")
        log.warning("shown")
        assert [r["message"] for r in _parse_all_logs(stream)] == ["shown"]

    def test_ledger_operations_emit_context(self, ledger):
        handler, stream = _make_handler()
        configure_logging(level=logging.INFO, handler=handler)
        ledger.add_item("SKU-001", "Widget", initial_qty=10, location="WH1")
        tx = ledger.create("delivery", "SKU-001", 5, to_location="WH1")
        ledger.complete(tx.id)

        records = _parse_all_logs(stream)
        completed = [r for r in records if r["message"] == "transaction_completed"]
        assert completed[-1]["transaction_id"] == str(tx.id)
        assert completed[-1]["sku"] == "SKU-001"
        assert completed[-1]["qty"] == 5
