"""Tests for the structured logging system (txflow_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from pathlib import PurePosixPath
from uuid import uuid4

import pytest

from txflow_kernel.domain.lifecycle import TransactionStatus
from txflow_kernel.exceptions import LockedStateError, TransactionNotFoundError
from txflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start each test unconfigured; restore the suite's DEBUG setup afterwards."""
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


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "txflow.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("transaction_submitted", extra={"version": 2, "status": "submitted"})

        record = _parse_log(stream)
        assert record["version"] == 2
        assert record["status"] == "submitted"

    def test_non_json_values_are_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        tx_id = uuid4()
        get_logger("test").info(
            "values",
            extra={
                "tx": tx_id,
                "sections": frozenset({"items", "header"}),
                "amount": Decimal("1500000.00"),
                "status": TransactionStatus.SUBMITTED,
                "path": PurePosixPath("/tmp/invoice.pdf"),
            },
        )

        record = _parse_log(stream)
        assert record["tx"] == str(tx_id)
        assert record["sections"] == ["header", "items"]
        assert record["amount"] == "1500000.00"
        assert record["status"] == "submitted"
        assert record["path"] == "/tmp/invoice.pdf"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise TransactionNotFoundError("tx-123")
        except TransactionNotFoundError:
            get_logger("test").error("lookup_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "TransactionNotFoundError"
        assert record["exc_code"] == "TRANSACTION_NOT_FOUND"
        assert record["exc_transaction_id"] == "tx-123"
        assert "traceback" in record

    def test_locked_state_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise LockedStateError("tx-9", "approved", "edit_header")
        except LockedStateError:
            get_logger("test").warning("edit_refused", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "LOCKED_STATE"
        assert record["exc_status"] == "approved"
        assert record["exc_action"] == "edit_header"

    def test_level_filtering(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        logger = get_logger("test")
        logger.info("dropped")
        logger.warning("kept")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["kept"]


class TestLogContext:

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(transaction_id="tx-1", actor_id="user-1")
        get_logger("test").info("with_context")

        record = _parse_log(stream)
        assert record["transaction_id"] == "tx-1"
        assert record["actor_id"] == "user-1"

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(tenant_id="x")

    def test_none_values_ignored(self):
        LogContext.set(case_id="case-1")
        LogContext.set(case_id=None)
        assert LogContext.get_all() == {"case_id": "case-1"}

    def test_bind_restores_previous_values(self):
        LogContext.set(transaction_id="outer")
        with LogContext.bind(transaction_id="inner", case_id="case-1"):
            assert LogContext.get_all() == {"transaction_id": "inner", "case_id": "case-1"}
        assert LogContext.get_all() == {"transaction_id": "outer"}

    def test_clear(self):
        LogContext.set(correlation_id="c", trace_id="t")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfiguration:

    def test_configure_is_idempotent(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)

        get_logger("test").info("once")
        assert len(_parse_all_logs(stream)) == 1

    def test_does_not_propagate_to_root(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        root_handler, root_stream = _make_handler()
        root = logging.getLogger()
        root.addHandler(root_handler)
        try:
            get_logger("test").info("contained")
        finally:
            root.removeHandler(root_handler)

        assert root_stream.getvalue() == ""
        assert _parse_log(stream)["message"] == "contained"
