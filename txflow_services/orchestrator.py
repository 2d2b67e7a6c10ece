"""
TxflowOrchestrator -- single place where services are wired together.

Every kernel and document service shares one session, one clock and the
same database-backed sinks (audit trail, silent notices, accounting
queue).  Callers own the session's transaction.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.orm import Session

from txflow_config import get_active_settings
from txflow_config.schema import TxflowSettings
from txflow_kernel.domain.clock import Clock, SystemClock
from txflow_kernel.services.accounting_queue_service import AccountingQueueService
from txflow_kernel.services.activity_service import ActivityService
from txflow_kernel.services.escalation_service import EscalationService
from txflow_kernel.services.exception_case_service import ExceptionCaseService
from txflow_kernel.services.notice_service import NoticeService
from txflow_kernel.services.review_service import ReviewService
from txflow_kernel.services.revision_service import RevisionService
from txflow_kernel.services.submission_service import SubmissionService
from txflow_kernel.services.transaction_service import TransactionService

from txflow_services.document_reconciliation_service import DocumentReconciliationService
from txflow_services.extraction import TextExtractionProvider
from txflow_services.precheck_submission_service import PrecheckSubmissionService


class TxflowOrchestrator:
    """Holds one fully wired set of services for a session."""

    def __init__(
        self,
        session: Session,
        provider: TextExtractionProvider,
        clock: Clock | None = None,
        settings: TxflowSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self.settings = settings or get_active_settings()
        lifecycle = self.settings.lifecycle

        self.audit = ActivityService(session, self._clock)
        self.notices = NoticeService(session, self._clock)
        self.queue = AccountingQueueService(session, self._clock)

        self.transactions = TransactionService(
            session, self._clock, self.audit,
            default_currency=lifecycle.default_currency,
        )
        self.submission = SubmissionService(session, self._clock, self.audit)
        self.review = ReviewService(
            session, self._clock, self.audit, self.notices,
            revision_window=timedelta(hours=lifecycle.revision_window_hours),
        )
        self.revision = RevisionService(session, self._clock, self.submission, self.audit)
        self.documents = DocumentReconciliationService(
            session, provider, self._clock,
            settings=self.settings.reconciliation, audit=self.audit,
        )
        self.cases = ExceptionCaseService(
            session, self._clock,
            reconciler=self.documents,
            submission=self.submission,
            audit=self.audit,
            notices=self.notices,
        )
        self.precheck = PrecheckSubmissionService(
            session, self.documents, self.submission, self.cases,
            clock=self._clock, audit=self.audit,
        )
        self.escalation = EscalationService(
            session, self._clock,
            audit=self.audit, notices=self.notices, queue=self.queue,
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock
