"""
Ports -- interfaces the kernel consumes but does not implement itself.

The kernel stays free of extraction engines and of the reconciliation
algorithm.  Services receive these collaborators through their
constructors; database-backed sinks live in ``txflow_kernel.services``
and the extraction/reconciliation adapters in ``txflow_services``.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol
from uuid import UUID

from txflow_kernel.domain.dtos import ReconciliationVerdict


class AuditSink(Protocol):
    """Fire-and-forget audit trail.  Failures must never surface to callers."""

    def record_activity(
        self,
        actor_id: UUID | None,
        action: str,
        entity_type: str,
        entity_id: UUID | None,
        details: Mapping[str, Any] | None = None,
    ) -> None: ...

    def record_signal(
        self,
        actor_id: UUID | None,
        signal_type: str,
        details: Mapping[str, Any] | None = None,
        severity: str = "INFO",
    ) -> None: ...


class NotificationSink(Protocol):
    """Silent, non-blocking notices addressed to one user."""

    def notify(
        self,
        user_id: UUID,
        alert_type: str,
        title: str,
        message: str,
        *,
        severity: str = "INFO",
        transaction_id: UUID | None = None,
    ) -> None: ...


class WorkQueue(Protocol):
    """Downstream queue for transactions that need manual resolution."""

    def enqueue(self, transaction_id: UUID, owner_id: UUID, reason: str) -> None: ...


class DocumentReconciler(Protocol):
    """Re-runs reconciliation of a transaction's latest document."""

    def reconcile_latest(
        self,
        transaction_id: UUID,
        overrides: Mapping[str, str] | None = None,
    ) -> ReconciliationVerdict: ...
