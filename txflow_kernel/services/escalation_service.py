"""
EscalationService -- closes returned transactions whose revision deadline
has passed.

Responsibility:
    One sweep selects active returned rows with ``revision_deadline < now``
    and, per row, moves the row to ``closed_needs_accounting_resolution``
    with the permanent lock, enqueues a ``needs_resolution`` work item,
    sends the owner a silent notice and records audit events.

Invariants enforced:
    - Each row is escalated in its own savepoint with a conditional
      UPDATE on (status = returned, deadline < now, active version).
      A row already escalated by a concurrent sweep is skipped, so a
      second sweep affects zero rows.
    - A failing row is rolled back to its savepoint and counted; the
      sweep continues.

Audit relevance:
    AUTO_CLOSE_REVISION activity and REVISION_DEADLINE_MISSED signal
    per escalated row; ``escalation_sweep_completed`` log per sweep.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.dtos import SweepResult
from txflow_kernel.domain.lifecycle import LifecycleAction, TransactionStatus
from txflow_kernel.domain.ports import AuditSink, NotificationSink, WorkQueue
from txflow_kernel.exceptions import ConcurrentTransitionError
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.selectors.transaction_selector import TransactionSelector
from txflow_kernel.services.base import BaseService

logger = get_logger("services.escalation")

NEEDS_RESOLUTION = "needs_resolution"


class EscalationService(BaseService[TransactionModel]):
    """Revision-deadline escalation sweep."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditSink | None = None,
        notices: NotificationSink | None = None,
        queue: WorkQueue | None = None,
    ):
        super().__init__(session, clock)
        self._audit = audit
        self._notices = notices
        self._queue = queue

    def _escalate_one(self, transaction_id: UUID, now: datetime) -> bool:
        tx = self._load_transaction(transaction_id)
        if tx.status_enum != TransactionStatus.RETURNED:
            return False
        deadline = tx.revision_deadline
        try:
            self._transition(
                tx,
                LifecycleAction.ESCALATE,
                TransactionModel.revision_deadline < now,
                TransactionModel.is_active_version.is_(True),
                flags=tx.flags.lock(permanent=True),
                completed_at=now,
                updated_at=now,
            )
        except ConcurrentTransitionError:
            return False

        details = {
            "transaction_id": tx.id,
            "transaction_code": tx.transaction_code,
            "revision_deadline": deadline,
            "escalated_at": now,
        }
        if self._queue is not None:
            self._queue.enqueue(tx.id, tx.owner_id, NEEDS_RESOLUTION)
        if self._notices is not None:
            self._notices.notify(
                tx.owner_id, "MISS_DEADLINE", "Revision deadline missed",
                f"{tx.transaction_code} was not resubmitted before its revision "
                "deadline and has been sent to accounting for resolution.",
                severity="WARNING", transaction_id=tx.id,
            )
        if self._audit is not None:
            self._audit.record_activity(
                None, "AUTO_CLOSE_REVISION", "transaction", tx.id, details,
            )
            self._audit.record_signal(
                tx.owner_id, "REVISION_DEADLINE_MISSED", details, severity="WARNING",
            )
        return True

    def run_sweep(self, now: datetime | None = None) -> SweepResult:
        now = now or self._clock.now()
        candidates = TransactionSelector(self.session).expired_returned_ids(now)
        escalated: list[UUID] = []
        skipped = failed = 0

        for transaction_id in candidates:
            with LogContext.bind(transaction_id=str(transaction_id)):
                try:
                    with self.session.begin_nested():
                        done = self._escalate_one(transaction_id, now)
                except Exception:
                    failed += 1
                    logger.error("escalation_row_failed", exc_info=True)
                    continue
                if done:
                    escalated.append(transaction_id)
                    logger.info("transaction_escalated")
                else:
                    skipped += 1

        result = SweepResult(
            selected=len(candidates),
            escalated=len(escalated),
            skipped=skipped,
            failed=failed,
            escalated_ids=tuple(escalated),
        )
        logger.info(
            "escalation_sweep_completed",
            extra={
                "selected": result.selected,
                "escalated": result.escalated,
                "skipped": result.skipped,
                "failed": result.failed,
                "swept_at": now.isoformat(),
            },
        )
        return result
