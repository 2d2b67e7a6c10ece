"""
SubmissionService -- submission and versioned resubmission.

Responsibility:
    ``submit`` moves an editable or pre-check-locked transaction to
    ``submitted``.  ``resubmit`` archives the current image of a returned
    transaction as an immutable version row and advances the live row to
    the next version.

Architecture position:
    Kernel > Services -- imperative shell.  Called directly by owners,
    by ExceptionCaseService after a resolving recheck, by RevisionService
    and by PrecheckSubmissionService.

Invariants enforced:
    - The live row is the only active version of its code.  Archived
      rows carry ``superseded`` and ``is_active_version = false``.
    - Resubmission writes the archive row and advances the live row in
      the caller's single database transaction, conditioned on both the
      observed status and the observed version.
    - Submitted and resubmitted rows are locked.

Failure modes:
    - AccessDeniedError, LockedStateError (lifecycle guard).
    - ConcurrentTransitionError when another caller moved the row first.

Audit relevance:
    SUBMIT / RESUBMIT activities; version archives are hashed
    (snapshot_hash) so later tampering is detectable.
"""

from __future__ import annotations

from typing import Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.lifecycle import ArchivedStatus, LifecycleAction, TransactionStatus
from txflow_kernel.domain.ports import AuditSink
from txflow_kernel.exceptions import LockedStateError
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.models.version import TransactionVersionModel
from txflow_kernel.services.base import BaseService
from txflow_kernel.services.lifecycle_guard import (
    ensure_owner,
    ensure_precheck_owner,
    ensure_submittable,
)
from txflow_kernel.utils.hashing import hash_payload, to_json_safe

logger = get_logger("services.submission")


class SubmissionService(BaseService[TransactionModel]):
    """Submit and resubmit transactions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditSink | None = None,
    ):
        super().__init__(session, clock)
        self._audit = audit

    def submit(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        exception_patch: Mapping[str, str] | None = None,
    ) -> TransactionModel:
        """Submit; a resolved exception-case patch is attached to the flags."""
        tx = self._load_transaction(transaction_id)
        if tx.status_enum == TransactionStatus.PRECHECK_LOCKED:
            ensure_precheck_owner(tx, actor_id)
        else:
            ensure_submittable(tx, actor_id)

        flags = tx.flags.lock()
        if exception_patch:
            flags = flags.with_exception_patch(exception_patch)

        now = self._clock.now()
        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(actor_id)):
            previous = tx.status
            self._transition(tx, LifecycleAction.SUBMIT, submitted_at=now, flags=flags)
            logger.info(
                "transaction_submitted",
                extra={
                    "previous_status": previous,
                    "with_exception_patch": bool(exception_patch),
                },
            )

        if self._audit is not None:
            self._audit.record_activity(
                actor_id, "SUBMIT", "transaction", tx.id,
                {
                    "transaction_code": tx.transaction_code,
                    "previous_status": previous,
                    "exception_patch": dict(exception_patch or {}),
                },
            )
        return tx

    def resubmit(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> TransactionModel:
        """Archive version v and advance the live row to v+1 (resubmitted)."""
        tx = self._load_transaction(transaction_id)
        ensure_owner(tx, actor_id)
        if tx.status_enum != TransactionStatus.RETURNED or tx.flags.permanently_locked:
            raise LockedStateError(str(tx.id), tx.status, LifecycleAction.RESUBMIT.value)

        now = self._clock.now()
        version = tx.version
        previous_status = tx.status
        snapshot = to_json_safe(tx.snapshot())

        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(actor_id)):
            self._transition(
                tx,
                LifecycleAction.RESUBMIT,
                TransactionModel.version == version,
                version=version + 1,
                is_active_version=True,
                flags=tx.flags.lock(),
                revision_deadline=None,
                submitted_at=now,
                notes=notes if notes is not None else tx.notes,
            )
            self.session.add(TransactionVersionModel(
                transaction_id=tx.id,
                transaction_code=tx.transaction_code,
                version=version,
                status=ArchivedStatus.SUPERSEDED.value,
                is_active_version=False,
                previous_status=previous_status,
                snapshot=snapshot,
                snapshot_hash=hash_payload(snapshot),
                archived_by=actor_id,
                archived_at=now,
            ))
            self.session.flush()
            logger.info(
                "transaction_resubmitted",
                extra={"archived_version": version, "active_version": tx.version},
            )

        if self._audit is not None:
            self._audit.record_activity(
                actor_id, "RESUBMIT", "transaction", tx.id,
                {
                    "transaction_code": tx.transaction_code,
                    "archived_version": version,
                    "active_version": tx.version,
                },
            )
        return tx
