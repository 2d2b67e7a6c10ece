"""
txflow_services -- Package init and public API.

Responsibility:
    Orchestration that composes the pure reconciliation engine with the
    kernel's sessions, clock and sinks: document upload, pre-check
    submission, service wiring and the background escalation scheduler.

Architecture position:
    Services -- outermost layer.

    Dependency direction:
        txflow_services/ -> txflow_engines/, txflow_kernel/, txflow_config/
        txflow_engines/  -> txflow_services/ (FORBIDDEN)
        txflow_kernel/   -> txflow_services/ (FORBIDDEN)
"""

from txflow_services.document_reconciliation_service import DocumentReconciliationService
from txflow_services.extraction import StaticTextProvider, TextExtractionProvider
from txflow_services.orchestrator import TxflowOrchestrator
from txflow_services.precheck_submission_service import PrecheckSubmissionService
from txflow_services.scheduler import EscalationScheduler

__all__ = [
    "DocumentReconciliationService",
    "EscalationScheduler",
    "PrecheckSubmissionService",
    "StaticTextProvider",
    "TextExtractionProvider",
    "TxflowOrchestrator",
]
