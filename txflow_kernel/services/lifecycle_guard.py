"""
Lifecycle guard -- the single place that decides whether an action is legal.

Responsibility:
    Pure checks over a loaded TransactionModel: ownership, editability,
    submittability, reviewability and revision access.  Every status
    change in the kernel is validated here first and then persisted with
    a conditional UPDATE (services/base.py).

Architecture position:
    Kernel > Services.  Reads ORM rows, never writes them.

Failure modes:
    - AccessDeniedError: actor is not the owner.
    - LockedStateError / InvalidTransitionError: status forbids the action.
    - RevisionDeadlinePassedError: the revision window has closed.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from txflow_kernel.domain.lifecycle import (
    EDITABLE_STATUSES,
    REVIEWABLE_STATUSES,
    SUBMITTABLE_STATUSES,
    LifecycleAction,
    TransactionStatus,
    target_for,
)
from txflow_kernel.exceptions import (
    AccessDeniedError,
    InvalidTransitionError,
    LockedStateError,
    RevisionDeadlinePassedError,
)
from txflow_kernel.models.transaction import TransactionModel


def ensure_transition(
    status: TransactionStatus,
    action: LifecycleAction,
    transaction_id: UUID | str | None = None,
) -> TransactionStatus:
    """Target status for the pair, or InvalidTransitionError."""
    target = target_for(status, action)
    if target is None:
        raise InvalidTransitionError(str(transaction_id), status.value, action.value)
    return target


def ensure_owner(tx: TransactionModel, actor_id: UUID) -> None:
    if tx.owner_id != actor_id:
        raise AccessDeniedError(str(tx.id), str(actor_id))


def ensure_editable(tx: TransactionModel, action: str = "edit") -> None:
    if tx.status_enum not in EDITABLE_STATUSES or tx.flags.permanently_locked:
        raise LockedStateError(str(tx.id), tx.status, action)
    if tx.status_enum != TransactionStatus.RETURNED and tx.flags.locked:
        raise LockedStateError(str(tx.id), tx.status, action)


def ensure_submittable(tx: TransactionModel, actor_id: UUID) -> None:
    ensure_owner(tx, actor_id)
    if tx.status_enum not in SUBMITTABLE_STATUSES:
        raise LockedStateError(str(tx.id), tx.status, LifecycleAction.SUBMIT.value)


def ensure_precheck_owner(tx: TransactionModel, actor_id: UUID) -> None:
    """Submission of a row held for pre-check needs ownership only."""
    ensure_owner(tx, actor_id)
    if tx.status_enum != TransactionStatus.PRECHECK_LOCKED:
        raise LockedStateError(str(tx.id), tx.status, LifecycleAction.SUBMIT.value)


def ensure_reviewable(tx: TransactionModel, action: LifecycleAction) -> TransactionStatus:
    if tx.status_enum not in REVIEWABLE_STATUSES:
        raise LockedStateError(str(tx.id), tx.status, action.value)
    return ensure_transition(tx.status_enum, action, tx.id)


def ensure_revision_access(tx: TransactionModel, actor_id: UUID, now: datetime) -> None:
    """Owner, status returned, and the deadline not yet passed."""
    ensure_owner(tx, actor_id)
    if tx.status_enum != TransactionStatus.RETURNED or tx.flags.permanently_locked:
        raise LockedStateError(str(tx.id), tx.status, "revise")
    if tx.revision_deadline is not None and now > tx.revision_deadline:
        raise RevisionDeadlinePassedError(str(tx.id), tx.revision_deadline.isoformat())
