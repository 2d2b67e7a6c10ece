"""
EscalationScheduler -- in-process background runner for the escalation sweep.

Contract:
    ``run_once()`` runs one sweep in its own session and commits it.
    ``start()`` / ``stop()`` manage a daemon thread that waits
    ``initial_delay`` seconds, then sweeps every ``interval`` seconds until
    stopped.  ``status()`` reports the last run.

Non-goals:
    - NOT a distributed scheduler.  Concurrent sweeps from several
      processes are safe because each row is escalated with a
      conditional UPDATE.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock, SystemClock
from txflow_kernel.domain.dtos import SweepResult
from txflow_kernel.logging_config import get_logger
from txflow_kernel.services.accounting_queue_service import AccountingQueueService
from txflow_kernel.services.activity_service import ActivityService
from txflow_kernel.services.escalation_service import EscalationService
from txflow_kernel.services.notice_service import NoticeService

logger = get_logger("services.scheduler")


def default_escalation_factory(session: Session, clock: Clock) -> EscalationService:
    return EscalationService(
        session, clock,
        audit=ActivityService(session, clock),
        notices=NoticeService(session, clock),
        queue=AccountingQueueService(session, clock),
    )


class EscalationScheduler:

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        interval_seconds: float = 300,
        initial_delay_seconds: float = 10,
        service_factory: Callable[[Session, Clock], EscalationService] = default_escalation_factory,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._interval = interval_seconds
        self._initial_delay = initial_delay_seconds
        self._service_factory = service_factory
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._runs = 0
        self._last_run_at: datetime | None = None
        self._last_result: SweepResult | None = None
        self._last_error: str | None = None

    def run_once(self) -> SweepResult | None:
        """One sweep in a fresh session; None when the sweep itself failed."""
        session = self._session_factory()
        try:
            result = self._service_factory(session, self._clock).run_sweep()
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.exception("escalation_sweep_failed")
            with self._lock:
                self._runs += 1
                self._last_run_at = self._clock.now()
                self._last_error = f"{type(exc).__name__}: {exc}"
            return None
        finally:
            session.close()

        with self._lock:
            self._runs += 1
            self._last_run_at = self._clock.now()
            self._last_result = result
            self._last_error = None
        return result

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="escalation-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={"interval": self._interval, "initial_delay": self._initial_delay},
        )

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> dict[str, Any]:
        with self._lock:
            last = self._last_result
            return {
                "running": self.is_running,
                "interval_seconds": self._interval,
                "runs": self._runs,
                "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
                "last_escalated": last.escalated if last else None,
                "last_error": self._last_error,
            }

    def _run_loop(self) -> None:
        if self._stop_event.wait(timeout=self._initial_delay):
            return
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(timeout=self._interval)
