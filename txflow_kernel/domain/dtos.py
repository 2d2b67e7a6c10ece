"""
DTOs -- pure data transfer objects for the lifecycle kernel.

Responsibility:
    Immutable structures that cross the service boundary: item and header
    inputs, revision windows, reconciliation verdicts, sweep results and
    read-side lineage views.

Architecture position:
    Kernel > Domain -- zero I/O, no ORM imports.

Item contents are not checked here; TransactionService.validate_items
rejects bad items with InvalidItemError before anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from txflow_kernel.domain.lifecycle import EditableSection


@dataclass(frozen=True)
class ItemSpec:
    """One line item as entered by the transaction owner."""

    description: str
    quantity: Decimal
    unit_price: Decimal
    account_code: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class HeaderChanges:
    """Header fields to overwrite; None leaves a field untouched."""

    vendor_name: str | None = None
    invoice_number: str | None = None
    invoice_date: str | None = None
    cost_center: str | None = None
    description: str | None = None
    transaction_type: str | None = None
    amount: Decimal | None = None

    def assigned(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class RevisionChanges:
    """Edits submitted inside a revision window."""

    header: HeaderChanges | None = None
    items: tuple[ItemSpec, ...] | None = None


@dataclass(frozen=True)
class RevisionWindow:
    """Granted revision package for a returned transaction."""

    transaction_id: UUID
    editable_sections: frozenset[EditableSection]
    deadline: datetime | None
    revision_count: int
    reviewer_notes: str | None
    remaining: timedelta | None


@dataclass(frozen=True)
class RevisionStatusView:
    """Non-raising summary of whether a transaction can still be revised."""

    transaction_id: UUID
    status: str
    can_revise: bool
    is_expired: bool
    deadline: datetime | None
    remaining: timedelta | None
    revision_count: int


@dataclass(frozen=True)
class ReconciliationVerdict:
    """Outcome of reconciling recorded values against the latest document."""

    match: bool
    mismatched_fields: tuple[str, ...]
    summary: str
    report: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of the pre-check submission flow."""

    transaction_id: UUID
    submitted: bool
    status: str
    verdict: ReconciliationVerdict
    exception_case_id: UUID | None = None


@dataclass(frozen=True)
class SweepResult:
    """Counters for one escalation sweep run."""

    selected: int = 0
    escalated: int = 0
    skipped: int = 0
    failed: int = 0
    escalated_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class VersionRecord:
    """One row of a code lineage, live or archived."""

    transaction_code: str
    version: int
    status: str
    is_active_version: bool
    recorded_at: datetime | None


@dataclass(frozen=True)
class LineageView:
    """Every version of one transaction code, oldest first."""

    transaction_code: str
    versions: tuple[VersionRecord, ...]

    @property
    def active_versions(self) -> tuple[VersionRecord, ...]:
        return tuple(v for v in self.versions if v.is_active_version)
