"""ORM models for the txflow kernel."""

from txflow_kernel.models.accounting_queue import AccountingQueueItemModel, QueueItemStatus
from txflow_kernel.models.activity import ActivityKind, ActivityLogModel, PersonalAlertModel
from txflow_kernel.models.document import (
    DocumentReconciliationStatus,
    TransactionDocumentModel,
)
from txflow_kernel.models.exception_case import ExceptionCaseModel, ExceptionCaseStatus
from txflow_kernel.models.transaction import (
    TransactionFlagsType,
    TransactionItemModel,
    TransactionModel,
)
from txflow_kernel.models.version import TransactionVersionModel

__all__ = [
    "AccountingQueueItemModel",
    "QueueItemStatus",
    "ActivityKind",
    "ActivityLogModel",
    "PersonalAlertModel",
    "DocumentReconciliationStatus",
    "TransactionDocumentModel",
    "ExceptionCaseModel",
    "ExceptionCaseStatus",
    "TransactionFlagsType",
    "TransactionItemModel",
    "TransactionModel",
    "TransactionVersionModel",
]
