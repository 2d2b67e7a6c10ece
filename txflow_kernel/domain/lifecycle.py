"""
Transaction lifecycle domain types (``txflow_kernel.domain.lifecycle``).

Responsibility
--------------
The closed status enum, the action enum, and the single transition table
``(status, action) -> status`` that every service consults before
persisting a status change.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Only pairs present in ``TRANSITIONS`` are legal.  Terminal statuses
  have no outgoing edges.
* ``superseded`` lives in a separate enum; it is never a live status and
  only appears on archived version rows.
"""

from __future__ import annotations

from enum import Enum


class TransactionStatus(str, Enum):
    """Live transaction lifecycle states."""

    IN_PROGRESS = "in_progress"
    DRAFT = "draft"
    PRECHECK_LOCKED = "precheck_locked"
    SUBMITTED = "submitted"
    RESUBMITTED = "resubmitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"
    CLOSED_NEEDS_ACCOUNTING_RESOLUTION = "closed_needs_accounting_resolution"


class ArchivedStatus(str, Enum):
    """Status carried by immutable version-history rows."""

    SUPERSEDED = "superseded"


class LifecycleAction(str, Enum):
    """Actions that move a transaction between statuses."""

    SAVE_DRAFT = "save_draft"
    LOCK_FOR_PRECHECK = "lock_for_precheck"
    SUBMIT = "submit"
    START_REVIEW = "start_review"
    APPROVE = "approve"
    REJECT = "reject"
    RETURN = "return"
    RESUBMIT = "resubmit"
    ESCALATE = "escalate"


class EditableSection(str, Enum):
    """Field groups an approver can reopen when returning a transaction."""

    HEADER = "header"
    ITEMS = "items"
    DOCUMENTS = "documents"


_S = TransactionStatus
_A = LifecycleAction

TRANSITIONS: dict[tuple[TransactionStatus, LifecycleAction], TransactionStatus] = {
    (_S.IN_PROGRESS, _A.SAVE_DRAFT): _S.DRAFT,
    (_S.DRAFT, _A.SAVE_DRAFT): _S.DRAFT,
    (_S.IN_PROGRESS, _A.LOCK_FOR_PRECHECK): _S.PRECHECK_LOCKED,
    (_S.DRAFT, _A.LOCK_FOR_PRECHECK): _S.PRECHECK_LOCKED,
    (_S.IN_PROGRESS, _A.SUBMIT): _S.SUBMITTED,
    (_S.DRAFT, _A.SUBMIT): _S.SUBMITTED,
    (_S.PRECHECK_LOCKED, _A.SUBMIT): _S.SUBMITTED,
    (_S.SUBMITTED, _A.START_REVIEW): _S.UNDER_REVIEW,
    (_S.RESUBMITTED, _A.START_REVIEW): _S.UNDER_REVIEW,
    (_S.SUBMITTED, _A.APPROVE): _S.APPROVED,
    (_S.RESUBMITTED, _A.APPROVE): _S.APPROVED,
    (_S.UNDER_REVIEW, _A.APPROVE): _S.APPROVED,
    (_S.SUBMITTED, _A.REJECT): _S.REJECTED,
    (_S.RESUBMITTED, _A.REJECT): _S.REJECTED,
    (_S.UNDER_REVIEW, _A.REJECT): _S.REJECTED,
    (_S.SUBMITTED, _A.RETURN): _S.RETURNED,
    (_S.RESUBMITTED, _A.RETURN): _S.RETURNED,
    (_S.UNDER_REVIEW, _A.RETURN): _S.RETURNED,
    (_S.RETURNED, _A.RESUBMIT): _S.RESUBMITTED,
    (_S.RETURNED, _A.ESCALATE): _S.CLOSED_NEEDS_ACCOUNTING_RESOLUTION,
}

TERMINAL_STATUSES: frozenset[TransactionStatus] = frozenset({
    _S.APPROVED,
    _S.REJECTED,
    _S.CLOSED_NEEDS_ACCOUNTING_RESOLUTION,
})

EDITABLE_STATUSES: frozenset[TransactionStatus] = frozenset({
    _S.IN_PROGRESS,
    _S.DRAFT,
    _S.RETURNED,
})

SUBMITTABLE_STATUSES: frozenset[TransactionStatus] = frozenset({
    _S.IN_PROGRESS,
    _S.DRAFT,
})

REVIEWABLE_STATUSES: frozenset[TransactionStatus] = frozenset({
    _S.SUBMITTED,
    _S.RESUBMITTED,
    _S.UNDER_REVIEW,
})

DEFAULT_EDITABLE_SECTIONS: frozenset[EditableSection] = frozenset(EditableSection)


def sources_for(action: LifecycleAction) -> tuple[TransactionStatus, ...]:
    """Statuses from which ``action`` is legal, in enum order."""
    return tuple(s for s in TransactionStatus if (s, action) in TRANSITIONS)


def target_for(
    status: TransactionStatus, action: LifecycleAction
) -> TransactionStatus | None:
    """Target status for ``action`` from ``status``, or None when illegal."""
    return TRANSITIONS.get((status, action))
