"""
ExceptionCaseService -- correction workspace for failed pre-checks.

Responsibility:
    Opens a case when reconciliation of a pre-check-locked transaction
    fails, lets the owner patch exactly the mismatched fields, and
    re-runs reconciliation.  A resolving recheck closes the case and
    submits the transaction with the patch attached.

Architecture position:
    Kernel > Services.  Reconciliation itself is reached through the
    ``DocumentReconciler`` port so the kernel never imports engines.

Invariants enforced:
    - allowlist == the mismatched field names, fixed at creation.
    - At most one OPEN case per transaction (checked here and by a
      partial unique index).
    - Patches merge last-write-wins and never touch keys outside the
      allowlist.  RESOLVED is terminal.

Failure modes:
    - ExceptionCaseNotFoundError: absent or not owned by the actor.
    - LockedStateError: transaction not pre-check-locked, or case not OPEN.
    - DuplicateOpenCaseError, AllowlistViolationError, InvalidPatchError.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.dtos import SubmissionOutcome
from txflow_kernel.domain.lifecycle import TransactionStatus
from txflow_kernel.domain.ports import AuditSink, DocumentReconciler, NotificationSink
from txflow_kernel.exceptions import (
    AllowlistViolationError,
    DuplicateOpenCaseError,
    ExceptionCaseNotFoundError,
    InvalidPatchError,
    LockedStateError,
    ValidationError,
)
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.exception_case import ExceptionCaseModel, ExceptionCaseStatus
from txflow_kernel.selectors.transaction_selector import TransactionSelector
from txflow_kernel.services.base import BaseService
from txflow_kernel.services.submission_service import SubmissionService

logger = get_logger("services.exception_case")


class ExceptionCaseService(BaseService[ExceptionCaseModel]):
    """Create, patch and recheck exception cases."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        reconciler: DocumentReconciler | None = None,
        submission: SubmissionService | None = None,
        audit: AuditSink | None = None,
        notices: NotificationSink | None = None,
    ):
        super().__init__(session, clock)
        self._reconciler = reconciler
        self._audit = audit
        self._notices = notices
        self._submission = submission or SubmissionService(session, self._clock, audit)
        self._selector = TransactionSelector(session)

    def _owned_case(self, case_id: UUID, actor_id: UUID) -> ExceptionCaseModel:
        case = self.session.get(ExceptionCaseModel, case_id)
        if case is None or case.owner_id != actor_id:
            raise ExceptionCaseNotFoundError(str(case_id))
        return case

    def _open_case(self, case_id: UUID, actor_id: UUID, action: str) -> ExceptionCaseModel:
        case = self._owned_case(case_id, actor_id)
        if not case.is_open:
            raise LockedStateError(str(case.transaction_id), case.status, action)
        return case

    def create_case(
        self,
        transaction_id: UUID,
        mismatched_fields: Iterable[str],
        summary: str,
        mismatches: list | None = None,
    ) -> ExceptionCaseModel:
        """Open a case whose allowlist is exactly ``mismatched_fields``."""
        tx = self._load_transaction(transaction_id)
        if tx.status_enum != TransactionStatus.PRECHECK_LOCKED:
            raise LockedStateError(str(tx.id), tx.status, "open_exception_case")
        allowlist = list(dict.fromkeys(mismatched_fields))
        if not allowlist:
            raise ValidationError("An exception case needs at least one mismatched field")
        existing = self._selector.open_case_for(tx.id)
        if existing is not None:
            raise DuplicateOpenCaseError(str(tx.id), str(existing.id))

        now = self._clock.now()
        case = ExceptionCaseModel(
            transaction_id=tx.id,
            owner_id=tx.owner_id,
            allowlist=allowlist,
            patch={},
            mismatch_summary=summary,
            mismatches=list(mismatches if mismatches is not None else allowlist),
            status=ExceptionCaseStatus.OPEN.value,
            recheck_count=0,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.session.begin_nested():
                self.session.add(case)
                self.session.flush()
        except IntegrityError:
            existing = self._selector.open_case_for(tx.id)
            raise DuplicateOpenCaseError(
                str(tx.id), str(existing.id) if existing else "unknown",
            ) from None

        with LogContext.bind(transaction_id=str(tx.id), case_id=str(case.id)):
            logger.info("exception_case_opened", extra={"allowlist": allowlist})
        if self._audit is not None:
            self._audit.record_signal(
                tx.owner_id, "EXCEPTION_CASE_OPENED",
                {"transaction_id": tx.id, "case_id": case.id, "allowlist": allowlist},
                severity="WARNING",
            )
        if self._notices is not None:
            self._notices.notify(
                tx.owner_id, "EXCEPTION_CASE_OPENED", "Document check failed",
                f"{tx.transaction_code}: {summary}",
                severity="WARNING", transaction_id=tx.id,
            )
        return case

    def patch(
        self, case_id: UUID, actor_id: UUID, field_map: Mapping[str, object],
    ) -> ExceptionCaseModel:
        """Merge corrected values for allowlisted fields (last write wins)."""
        case = self._open_case(case_id, actor_id, "patch_exception_case")
        if not field_map:
            raise InvalidPatchError("patch must contain at least one field")
        outside = sorted(k for k in field_map if k not in case.allowlist)
        if outside:
            raise AllowlistViolationError(str(case.id), outside, list(case.allowlist))
        cleaned: dict[str, str] = {}
        for key, value in field_map.items():
            if value is None or not str(value).strip():
                raise InvalidPatchError(f"value for '{key}' must not be empty")
            cleaned[key] = str(value).strip()

        case.patch = {**case.patch, **cleaned}
        case.updated_at = self._clock.now()
        self.session.flush()
        with LogContext.bind(case_id=str(case.id), actor_id=str(actor_id)):
            logger.info("exception_case_patched", extra={"fields": sorted(cleaned)})
        return case

    def recheck(self, case_id: UUID, actor_id: UUID) -> SubmissionOutcome:
        """Re-run reconciliation with the patch; submit when it matches."""
        if self._reconciler is None:
            raise ValidationError("No document reconciler configured for recheck")
        case = self._open_case(case_id, actor_id, "recheck_exception_case")
        tx = self._load_transaction(case.transaction_id)
        if tx.status_enum != TransactionStatus.PRECHECK_LOCKED:
            raise LockedStateError(str(tx.id), tx.status, "recheck_exception_case")

        verdict = self._reconciler.reconcile_latest(tx.id, overrides=dict(case.patch))
        now = self._clock.now()
        case.recheck_count += 1
        case.updated_at = now

        with LogContext.bind(transaction_id=str(tx.id), case_id=str(case.id)):
            if not verdict.match:
                case.mismatch_summary = verdict.summary
                case.mismatches = list(verdict.mismatched_fields)
                self.session.flush()
                logger.info(
                    "exception_case_recheck_failed",
                    extra={"mismatched_fields": list(verdict.mismatched_fields)},
                )
                return SubmissionOutcome(
                    transaction_id=tx.id,
                    submitted=False,
                    status=tx.status,
                    verdict=verdict,
                    exception_case_id=case.id,
                )

            case.status = ExceptionCaseStatus.RESOLVED.value
            case.resolved_at = now
            case.mismatch_summary = verdict.summary
            case.mismatches = []
            self.session.flush()
            logger.info("exception_case_resolved", extra={"recheck_count": case.recheck_count})

        submitted = self._submission.submit(tx.id, actor_id, exception_patch=dict(case.patch))
        if self._audit is not None:
            self._audit.record_activity(
                actor_id, "RESOLVE_EXCEPTION_CASE", "exception_case", case.id,
                {"transaction_id": tx.id, "patch": dict(case.patch)},
            )
        return SubmissionOutcome(
            transaction_id=tx.id,
            submitted=True,
            status=submitted.status,
            verdict=verdict,
            exception_case_id=case.id,
        )

    def get_case(self, case_id: UUID, actor_id: UUID) -> ExceptionCaseModel:
        return self._owned_case(case_id, actor_id)

    def list_open_cases(self, owner_id: UUID) -> list[ExceptionCaseModel]:
        return list(self.session.scalars(
            select(ExceptionCaseModel)
            .where(
                ExceptionCaseModel.owner_id == owner_id,
                ExceptionCaseModel.status == ExceptionCaseStatus.OPEN.value,
            )
            .order_by(ExceptionCaseModel.created_at)
        ))
