"""
Transition table for the transaction lifecycle.

Every status change in the kernel consults ``TRANSITIONS`` through
``ensure_transition``; these tests pin the table itself.
"""

import pytest

from txflow_kernel.domain.lifecycle import (
    EDITABLE_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    ArchivedStatus,
    LifecycleAction,
    TransactionStatus,
    sources_for,
    target_for,
)
from txflow_kernel.exceptions import InvalidTransitionError, LockedStateError
from txflow_kernel.services.lifecycle_guard import ensure_transition

S = TransactionStatus
A = LifecycleAction


class TestTransitionTable:

    @pytest.mark.parametrize("status, action, target", [
        (S.IN_PROGRESS, A.SAVE_DRAFT, S.DRAFT),
        (S.DRAFT, A.LOCK_FOR_PRECHECK, S.PRECHECK_LOCKED),
        (S.PRECHECK_LOCKED, A.SUBMIT, S.SUBMITTED),
        (S.SUBMITTED, A.START_REVIEW, S.UNDER_REVIEW),
        (S.UNDER_REVIEW, A.APPROVE, S.APPROVED),
        (S.RESUBMITTED, A.REJECT, S.REJECTED),
        (S.SUBMITTED, A.RETURN, S.RETURNED),
        (S.RETURNED, A.RESUBMIT, S.RESUBMITTED),
        (S.RETURNED, A.ESCALATE, S.CLOSED_NEEDS_ACCOUNTING_RESOLUTION),
    ])
    def test_legal_transitions(self, status, action, target):
        assert target_for(status, action) == target
        assert ensure_transition(status, action) == target

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_statuses_have_no_outgoing_edges(self, status):
        assert all(source != status for source, _ in TRANSITIONS)

    @pytest.mark.parametrize("status, action", [
        (S.IN_PROGRESS, A.APPROVE),
        (S.APPROVED, A.RETURN),
        (S.REJECTED, A.RESUBMIT),
        (S.RETURNED, A.SUBMIT),
        (S.SUBMITTED, A.RESUBMIT),
        (S.SUBMITTED, A.ESCALATE),
        (S.PRECHECK_LOCKED, A.SAVE_DRAFT),
    ])
    def test_illegal_transitions_raise(self, status, action):
        assert target_for(status, action) is None
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(status, action, "tx-1")
        assert exc_info.value.code == "INVALID_TRANSITION"
        assert isinstance(exc_info.value, LockedStateError)

    def test_escalation_only_from_returned(self):
        assert sources_for(A.ESCALATE) == (S.RETURNED,)

    def test_resubmit_only_from_returned(self):
        assert sources_for(A.RESUBMIT) == (S.RETURNED,)


def test_superseded_is_never_a_live_status():
    assert ArchivedStatus.SUPERSEDED.value not in {s.value for s in TransactionStatus}
    assert all(target.value != "superseded" for target in TRANSITIONS.values())


def test_returned_is_editable_but_terminal_statuses_are_not():
    assert S.RETURNED in EDITABLE_STATUSES
    assert not EDITABLE_STATUSES & TERMINAL_STATUSES
