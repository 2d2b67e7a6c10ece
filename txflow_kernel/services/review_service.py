"""
ReviewService -- approver decisions on submitted transactions.

Responsibility:
    ``start_review``, ``approve``, ``reject`` and ``return_for_revision``.
    Each decision is checked against the transition table and persisted
    with a conditional UPDATE on the observed status.

Invariants enforced:
    - ``reject`` is terminal and sets the permanent lock.
    - ``return_for_revision`` clears the lock, installs the granted
      editable sections (default: header, items, documents), sets the
      revision deadline (default: now + revision window) and increments
      the revision count.

Audit relevance:
    Each decision records an activity and a silent notice to the owner.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.lifecycle import (
    DEFAULT_EDITABLE_SECTIONS,
    EditableSection,
    LifecycleAction,
)
from txflow_kernel.domain.ports import AuditSink, NotificationSink
from txflow_kernel.exceptions import LockedStateError, ValidationError
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.services.base import BaseService
from txflow_kernel.services.lifecycle_guard import ensure_reviewable

logger = get_logger("services.review")

DEFAULT_REVISION_WINDOW = timedelta(hours=48)


class ReviewService(BaseService[TransactionModel]):
    """Approver decisions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditSink | None = None,
        notices: NotificationSink | None = None,
        revision_window: timedelta = DEFAULT_REVISION_WINDOW,
    ):
        super().__init__(session, clock)
        self._audit = audit
        self._notices = notices
        self._revision_window = revision_window

    def _after_decision(
        self,
        tx: TransactionModel,
        reviewer_id: UUID,
        action: str,
        details: dict,
        alert: tuple[str, str, str, str] | None = None,
    ) -> None:
        if self._audit is not None:
            self._audit.record_activity(reviewer_id, action, "transaction", tx.id, details)
        if self._notices is not None and alert is not None:
            alert_type, title, message, severity = alert
            self._notices.notify(
                tx.owner_id, alert_type, title, message,
                severity=severity, transaction_id=tx.id,
            )

    def start_review(self, transaction_id: UUID, reviewer_id: UUID) -> TransactionModel:
        tx = self._load_transaction(transaction_id)
        ensure_reviewable(tx, LifecycleAction.START_REVIEW)
        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(reviewer_id)):
            self._transition(tx, LifecycleAction.START_REVIEW)
            logger.info("transaction_review_started")
        self._after_decision(tx, reviewer_id, "START_REVIEW", {})
        return tx

    def approve(
        self, transaction_id: UUID, reviewer_id: UUID, notes: str | None = None,
    ) -> TransactionModel:
        tx = self._load_transaction(transaction_id)
        ensure_reviewable(tx, LifecycleAction.APPROVE)
        now = self._clock.now()
        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(reviewer_id)):
            self._transition(
                tx, LifecycleAction.APPROVE,
                reviewed_at=now, approved_at=now, completed_at=now,
                flags=tx.flags.lock(),
                notes=notes if notes is not None else tx.notes,
            )
            logger.info("transaction_approved")
        self._after_decision(
            tx, reviewer_id, "APPROVE", {"notes": notes},
            ("TRANSACTION_APPROVED", "Transaction approved",
             f"{tx.transaction_code} has been approved.", "INFO"),
        )
        return tx

    def reject(self, transaction_id: UUID, reviewer_id: UUID, reason: str) -> TransactionModel:
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required")
        tx = self._load_transaction(transaction_id)
        ensure_reviewable(tx, LifecycleAction.REJECT)
        now = self._clock.now()
        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(reviewer_id)):
            self._transition(
                tx, LifecycleAction.REJECT,
                reviewed_at=now, completed_at=now,
                reject_reason=reason,
                flags=tx.flags.lock(permanent=True),
            )
            logger.info("transaction_rejected")
        self._after_decision(
            tx, reviewer_id, "REJECT", {"reason": reason},
            ("TRANSACTION_REJECTED", "Transaction rejected",
             f"{tx.transaction_code} was rejected: {reason}", "WARNING"),
        )
        return tx

    def return_for_revision(
        self,
        transaction_id: UUID,
        reviewer_id: UUID,
        reason: str,
        editable_sections: Iterable[EditableSection] | None = None,
        deadline: datetime | None = None,
    ) -> TransactionModel:
        """Return to the owner with a revision window."""
        if not reason or not reason.strip():
            raise ValidationError("A return reason is required")
        sections = (
            frozenset(EditableSection(s) for s in editable_sections)
            if editable_sections is not None
            else DEFAULT_EDITABLE_SECTIONS
        )
        if not sections:
            raise ValidationError("At least one editable section must be granted")

        tx = self._load_transaction(transaction_id)
        ensure_reviewable(tx, LifecycleAction.RETURN)
        now = self._clock.now()
        deadline = deadline or now + self._revision_window
        if deadline <= now:
            raise ValidationError("Revision deadline must be in the future")
        try:
            flags = tx.flags.unlock_for_revision(sections)
        except ValueError:
            raise LockedStateError(
                str(tx.id), tx.status, LifecycleAction.RETURN.value,
            ) from None

        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(reviewer_id)):
            self._transition(
                tx, LifecycleAction.RETURN,
                reviewed_at=now,
                revision_deadline=deadline,
                revision_count=tx.revision_count + 1,
                notes=reason,
                flags=flags,
            )
            logger.info(
                "transaction_returned",
                extra={
                    "editable_sections": sorted(s.value for s in sections),
                    "revision_deadline": deadline.isoformat(),
                    "revision_count": tx.revision_count,
                },
            )
        self._after_decision(
            tx, reviewer_id, "RETURN",
            {
                "reason": reason,
                "editable_sections": sorted(s.value for s in sections),
                "revision_deadline": deadline,
            },
            ("TRANSACTION_RETURNED", "Revision requested",
             f"{tx.transaction_code} was returned for revision: {reason}", "WARNING"),
        )
        return tx
