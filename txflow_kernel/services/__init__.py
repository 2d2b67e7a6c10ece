"""Services for the txflow kernel (write side)."""

from txflow_kernel.services.accounting_queue_service import AccountingQueueService
from txflow_kernel.services.activity_service import ActivityService
from txflow_kernel.services.escalation_service import EscalationService
from txflow_kernel.services.exception_case_service import ExceptionCaseService
from txflow_kernel.services.notice_service import NoticeService
from txflow_kernel.services.review_service import ReviewService
from txflow_kernel.services.revision_service import RevisionService
from txflow_kernel.services.submission_service import SubmissionService
from txflow_kernel.services.transaction_service import TransactionService

__all__ = [
    "AccountingQueueService",
    "ActivityService",
    "EscalationService",
    "ExceptionCaseService",
    "NoticeService",
    "ReviewService",
    "RevisionService",
    "SubmissionService",
    "TransactionService",
]
