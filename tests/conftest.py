"""
Pytest fixtures for the txflow test suite.

Provides:
- An in-memory SQLite database by default; set DATABASE_URL to run the
  same suite against PostgreSQL.
- Per-test sessions isolated by an outer transaction that is rolled back.
- DeterministicClock, captured JSON logs, and a fully wired orchestrator
  with a static extraction provider.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from txflow_config.schema import TxflowSettings
from txflow_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from txflow_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from txflow_kernel.domain.clock import DeterministicClock
from txflow_kernel.domain.dtos import HeaderChanges, ItemSpec
from txflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from txflow_services.extraction import StaticTextProvider
from txflow_services.orchestrator import TxflowOrchestrator

DEFAULT_DATABASE_URL = "sqlite://"

# A PNG signature is enough for the upload content check.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

VENDOR = "PT Sumber Makmur Abadi"
INVOICE_NUMBER = "INV-2024-001"

HEADER_TEXT = f"""{VENDOR}
INVOICE
Vendor Name : {VENDOR}
Invoice Number : {INVOICE_NUMBER}
Invoice Date : 12 Januari 2024
Cost Center : FIN-DEPT-01
Transaction Description : Office laptops
"""

ITEMS_TEXT = """Item Description    Account Code    Qty    Unit Price    Total
Laptop A    6102-IT-SVC    1    750.000    750.000
Laptop B    6102-IT-SVC    1    750.000    750.000
Grand Total : Rp 1.500.000
"""

TOTAL_TEXT = "Grand Total : Rp 1.500.000\n"

INVOICE_TEXTS = {
    "4": HEADER_TEXT,
    "6": ITEMS_TEXT,
    "12": TOTAL_TEXT,
    "11": HEADER_TEXT + ITEMS_TEXT,
}


def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: mark test as requiring PostgreSQL")


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture txflow logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            ...
            assert any(r["message"] == "transaction_submitted" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("txflow")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    drop_tables()
    create_tables()
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables()


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Session joined to an outer transaction that is rolled back at teardown."""
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def reviewer_id() -> UUID:
    return uuid4()


@pytest.fixture
def settings() -> TxflowSettings:
    return TxflowSettings()


@pytest.fixture
def provider() -> StaticTextProvider:
    return StaticTextProvider(INVOICE_TEXTS, confidence={"4": 0.91, "6": 0.87, "12": 0.95, "11": 0.8})


@pytest.fixture
def orchestrator(session, deterministic_clock, settings, provider) -> TxflowOrchestrator:
    return TxflowOrchestrator(session, provider, deterministic_clock, settings)


@pytest.fixture
def create_filled_transaction(orchestrator, owner_id):
    """Create a transaction with header and two 750,000 IDR items."""

    def _create(
        *,
        owner: UUID | None = None,
        vendor_name: str = VENDOR,
        invoice_number: str = INVOICE_NUMBER,
        items: tuple[ItemSpec, ...] | None = None,
    ):
        owner = owner or owner_id
        tx = orchestrator.transactions.create_transaction(owner, "purchase")
        orchestrator.transactions.save_header(
            tx.id, owner,
            HeaderChanges(
                vendor_name=vendor_name,
                invoice_number=invoice_number,
                invoice_date="12 Januari 2024",
                cost_center="FIN-DEPT-01",
                description="Office laptops",
            ),
        )
        orchestrator.transactions.save_items(
            tx.id, owner,
            items or (
                ItemSpec("Laptop A", Decimal("1"), Decimal("750000"), "6102-IT-SVC"),
                ItemSpec("Laptop B", Decimal("1"), Decimal("750000"), "6102-IT-SVC"),
            ),
        )
        return tx

    return _create


@pytest.fixture
def submitted_transaction(orchestrator, create_filled_transaction, owner_id):
    tx = create_filled_transaction()
    orchestrator.submission.submit(tx.id, owner_id)
    return tx


@pytest.fixture
def returned_transaction(orchestrator, submitted_transaction, reviewer_id):
    orchestrator.review.return_for_revision(
        submitted_transaction.id, reviewer_id, "Please attach the signed invoice",
    )
    return submitted_transaction
