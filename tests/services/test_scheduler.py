"""
EscalationScheduler: one-shot runs, failure bookkeeping and thread lifecycle.
"""

import pytest
from sqlalchemy.orm import Session

from txflow_kernel.domain.lifecycle import TransactionStatus
from txflow_kernel.models.transaction import TransactionModel
from txflow_services.scheduler import EscalationScheduler


@pytest.fixture
def session_factory(session):
    connection = session.connection()

    def _factory():
        return Session(
            bind=connection, join_transaction_mode="create_savepoint", expire_on_commit=False,
        )
    return _factory


class TestRunOnce:

    def test_sweep_is_committed(self, session, session_factory, returned_transaction,
                                deterministic_clock):
        deterministic_clock.advance(hours=49)
        scheduler = EscalationScheduler(session_factory, deterministic_clock)

        result = scheduler.run_once()

        assert result.escalated == 1
        tx = session.get(TransactionModel, returned_transaction.id, populate_existing=True)
        assert tx.status == TransactionStatus.CLOSED_NEEDS_ACCOUNTING_RESOLUTION.value

        status = scheduler.status()
        assert status["runs"] == 1
        assert status["last_escalated"] == 1
        assert status["last_error"] is None
        assert status["last_run_at"] == deterministic_clock.now().isoformat()

    def test_nothing_to_do(self, session_factory, deterministic_clock):
        scheduler = EscalationScheduler(session_factory, deterministic_clock)
        assert scheduler.run_once().selected == 0
        assert scheduler.status()["last_escalated"] == 0

    def test_failure_is_recorded(self, session_factory, deterministic_clock, captured_logs):
        def broken_factory(session, clock):
            raise RuntimeError("database unavailable")

        scheduler = EscalationScheduler(
            session_factory, deterministic_clock, service_factory=broken_factory,
        )

        assert scheduler.run_once() is None
        status = scheduler.status()
        assert status["runs"] == 1
        assert status["last_error"] == "RuntimeError: database unavailable"
        assert status["last_escalated"] is None
        assert any(r["message"] == "escalation_sweep_failed" for r in captured_logs())


class TestLifecycle:

    def test_start_and_stop(self, session_factory, deterministic_clock):
        scheduler = EscalationScheduler(
            session_factory, deterministic_clock,
            interval_seconds=60, initial_delay_seconds=60,
        )
        assert scheduler.status()["running"] is False

        scheduler.start()
        try:
            assert scheduler.is_running
            assert scheduler.status()["interval_seconds"] == 60
        finally:
            scheduler.stop(timeout=5)

        assert not scheduler.is_running
        assert scheduler.status()["runs"] == 0

    def test_start_is_idempotent(self, session_factory, deterministic_clock):
        scheduler = EscalationScheduler(
            session_factory, deterministic_clock, initial_delay_seconds=60,
        )
        scheduler.start()
        first = scheduler._thread
        try:
            scheduler.start()
            assert scheduler._thread is first
        finally:
            scheduler.stop(timeout=5)
