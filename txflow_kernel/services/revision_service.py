"""
RevisionService -- owner edits inside a revision window, and resubmission.

Responsibility:
    Grants or denies revision access for a returned transaction, applies
    header and item edits gated by the approver-granted sections, and
    hands resubmission to SubmissionService.

Invariants enforced:
    - Only the owner, only while ``returned``, only before the deadline.
    - Header edits need the HEADER section; item edits need ITEMS.
      Replacing items recomputes the amount. Both gates and all input
      checks pass before anything on the transaction changes.

Failure modes:
    - AccessDeniedError, LockedStateError, RevisionDeadlinePassedError.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.dtos import RevisionChanges, RevisionStatusView, RevisionWindow
from txflow_kernel.domain.lifecycle import EditableSection, TransactionStatus
from txflow_kernel.domain.ports import AuditSink
from txflow_kernel.exceptions import LockedStateError, ValidationError
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.services.base import BaseService
from txflow_kernel.services.lifecycle_guard import ensure_owner, ensure_revision_access
from txflow_kernel.services.submission_service import SubmissionService
from txflow_kernel.services.transaction_service import (
    apply_header,
    check_header,
    replace_items,
    validate_items,
)

logger = get_logger("services.revision")


class RevisionService(BaseService[TransactionModel]):
    """Revision window for returned transactions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        submission: SubmissionService | None = None,
        audit: AuditSink | None = None,
    ):
        super().__init__(session, clock)
        self._audit = audit
        self._submission = submission or SubmissionService(session, self._clock, audit)

    def _window(self, tx: TransactionModel) -> RevisionWindow:
        now = self._clock.now()
        deadline = tx.revision_deadline
        return RevisionWindow(
            transaction_id=tx.id,
            editable_sections=tx.flags.editable_sections or frozenset(),
            deadline=deadline,
            revision_count=tx.revision_count,
            reviewer_notes=tx.notes,
            remaining=(deadline - now) if deadline is not None else None,
        )

    def get_revision_access(self, transaction_id: UUID, actor_id: UUID) -> RevisionWindow:
        tx = self._load_transaction(transaction_id)
        ensure_revision_access(tx, actor_id, self._clock.now())
        return self._window(tx)

    def revision_status(self, transaction_id: UUID, actor_id: UUID) -> RevisionStatusView:
        """Non-raising view of the revision window (ownership still required)."""
        tx = self._load_transaction(transaction_id)
        ensure_owner(tx, actor_id)
        now = self._clock.now()
        deadline = tx.revision_deadline
        is_returned = tx.status_enum == TransactionStatus.RETURNED
        is_expired = is_returned and deadline is not None and now > deadline
        return RevisionStatusView(
            transaction_id=tx.id,
            status=tx.status,
            can_revise=is_returned and not is_expired and not tx.flags.permanently_locked,
            is_expired=is_expired,
            deadline=deadline,
            remaining=(
                max(deadline - now, timedelta(0))
                if is_returned and deadline is not None
                else None
            ),
            revision_count=tx.revision_count,
        )

    def save_revision(
        self, transaction_id: UUID, actor_id: UUID, changes: RevisionChanges,
    ) -> TransactionModel:
        tx = self._load_transaction(transaction_id)
        ensure_revision_access(tx, actor_id, self._clock.now())
        if changes.header is None and changes.items is None:
            raise ValidationError("No revision changes supplied")

        if changes.header is not None and not tx.flags.allows(EditableSection.HEADER):
            raise LockedStateError(str(tx.id), tx.status, "edit_header")
        if changes.items is not None and not tx.flags.allows(EditableSection.ITEMS):
            raise LockedStateError(str(tx.id), tx.status, "edit_items")
        if changes.items is not None:
            validate_items(changes.items)
        if changes.header is not None:
            if changes.header.amount is not None and changes.items:
                raise ValidationError(
                    "Transaction amount is derived from its items; edit the items instead"
                )
            check_header(tx, changes.header)

        # Nothing is mutated until every check above has passed.
        changed: list[str] = []
        if changes.items is not None:
            replace_items(tx, changes.items)
            changed.extend(["items", "amount"])
        if changes.header is not None:
            changed.extend(apply_header(tx, changes.header))

        tx.updated_at = self._clock.now()
        self.session.flush()
        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(actor_id)):
            logger.info("revision_saved", extra={"fields": sorted(set(changed))})
        if self._audit is not None:
            self._audit.record_activity(
                actor_id, "SAVE_REVISION", "transaction", tx.id,
                {"fields": sorted(set(changed))},
            )
        return tx

    def resubmit(
        self, transaction_id: UUID, actor_id: UUID, notes: str | None = None,
    ) -> TransactionModel:
        tx = self._load_transaction(transaction_id)
        ensure_revision_access(tx, actor_id, self._clock.now())
        return self._submission.resubmit(transaction_id, actor_id, notes)
