"""
PrecheckSubmissionService -- submission gated by document reconciliation.

Flow: submittable check, latest document required, lock for pre-check,
reconcile the latest document, then either submit or open an exception
case whose allowlist is the mismatched fields.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.dtos import SubmissionOutcome
from txflow_kernel.domain.lifecycle import LifecycleAction
from txflow_kernel.domain.ports import AuditSink, DocumentReconciler
from txflow_kernel.exceptions import DocumentNotFoundError
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.selectors.transaction_selector import TransactionSelector
from txflow_kernel.services.base import BaseService
from txflow_kernel.services.exception_case_service import ExceptionCaseService
from txflow_kernel.services.lifecycle_guard import ensure_submittable
from txflow_kernel.services.submission_service import SubmissionService

logger = get_logger("services.precheck_submission")


class PrecheckSubmissionService(BaseService[TransactionModel]):

    def __init__(
        self,
        session: Session,
        reconciler: DocumentReconciler,
        submission: SubmissionService,
        cases: ExceptionCaseService,
        clock: Clock | None = None,
        audit: AuditSink | None = None,
    ):
        super().__init__(session, clock)
        self._reconciler = reconciler
        self._submission = submission
        self._cases = cases
        self._audit = audit
        self._selector = TransactionSelector(session)

    def submit(self, transaction_id: UUID, actor_id: UUID) -> SubmissionOutcome:
        tx = self._load_transaction(transaction_id)
        ensure_submittable(tx, actor_id)
        if self._selector.latest_document(tx.id) is None:
            raise DocumentNotFoundError(str(tx.id))

        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(actor_id)):
            self._transition(tx, LifecycleAction.LOCK_FOR_PRECHECK, flags=tx.flags.lock())
            logger.info("transaction_precheck_locked")

            verdict = self._reconciler.reconcile_latest(tx.id)
            if verdict.match:
                self._submission.submit(tx.id, actor_id)
                return SubmissionOutcome(
                    transaction_id=tx.id,
                    submitted=True,
                    status=tx.status,
                    verdict=verdict,
                )

            case = self._cases.create_case(
                tx.id,
                verdict.mismatched_fields,
                verdict.summary,
                mismatches=verdict.report.get("mismatches"),
            )
            logger.info(
                "precheck_failed",
                extra={
                    "case_id": str(case.id),
                    "mismatched_fields": list(verdict.mismatched_fields),
                },
            )
            if self._audit is not None:
                self._audit.record_signal(
                    actor_id, "PRECHECK_FAILED",
                    {
                        "transaction_id": tx.id,
                        "case_id": case.id,
                        "mismatched_fields": list(verdict.mismatched_fields),
                    },
                    severity="WARNING",
                )
            return SubmissionOutcome(
                transaction_id=tx.id,
                submitted=False,
                status=tx.status,
                verdict=verdict,
                exception_case_id=case.id,
            )
