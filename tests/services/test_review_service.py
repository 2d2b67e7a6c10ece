"""
ReviewService: approver decisions and their side effects.
"""

from datetime import timedelta

import pytest

from txflow_kernel.domain.lifecycle import EditableSection, TransactionStatus
from txflow_kernel.exceptions import LockedStateError, ValidationError
from txflow_kernel.models.activity import ActivityLogModel


class TestApprove:

    def test_approve_submitted(self, orchestrator, submitted_transaction, reviewer_id,
                               deterministic_clock):
        tx = orchestrator.review.approve(submitted_transaction.id, reviewer_id, notes="OK")

        assert tx.status == TransactionStatus.APPROVED.value
        assert tx.approved_at == deterministic_clock.now()
        assert tx.completed_at == deterministic_clock.now()
        assert tx.notes == "OK"

    def test_approve_after_start_review(self, orchestrator, submitted_transaction, reviewer_id):
        orchestrator.review.start_review(submitted_transaction.id, reviewer_id)
        assert submitted_transaction.status == TransactionStatus.UNDER_REVIEW.value

        orchestrator.review.approve(submitted_transaction.id, reviewer_id)
        assert submitted_transaction.status == TransactionStatus.APPROVED.value

    def test_cannot_approve_in_progress(self, orchestrator, create_filled_transaction, reviewer_id):
        tx = create_filled_transaction()
        with pytest.raises(LockedStateError):
            orchestrator.review.approve(tx.id, reviewer_id)

    def test_approved_is_terminal(self, orchestrator, submitted_transaction, reviewer_id):
        orchestrator.review.approve(submitted_transaction.id, reviewer_id)
        with pytest.raises(LockedStateError):
            orchestrator.review.return_for_revision(submitted_transaction.id, reviewer_id, "late")

    def test_owner_is_notified(self, orchestrator, submitted_transaction, reviewer_id, owner_id):
        orchestrator.review.approve(submitted_transaction.id, reviewer_id)
        alerts = orchestrator.notices.unread_for(owner_id)
        assert [a.alert_type for a in alerts] == ["TRANSACTION_APPROVED"]


class TestReject:

    def test_reject_is_permanent(self, orchestrator, submitted_transaction, reviewer_id, owner_id):
        tx = orchestrator.review.reject(submitted_transaction.id, reviewer_id, "Duplicate invoice")

        assert tx.status == TransactionStatus.REJECTED.value
        assert tx.reject_reason == "Duplicate invoice"
        assert tx.flags.permanently_locked is True
        with pytest.raises(LockedStateError):
            orchestrator.submission.resubmit(tx.id, owner_id)

    @pytest.mark.parametrize("reason", ["", "   "])
    def test_reason_required(self, orchestrator, submitted_transaction, reviewer_id, reason):
        with pytest.raises(ValidationError):
            orchestrator.review.reject(submitted_transaction.id, reviewer_id, reason)
        assert submitted_transaction.status == TransactionStatus.SUBMITTED.value

    def test_rejection_alert(self, orchestrator, submitted_transaction, reviewer_id, owner_id):
        orchestrator.review.reject(submitted_transaction.id, reviewer_id, "Wrong vendor")
        alert = orchestrator.notices.unread_for(owner_id)[0]
        assert alert.alert_type == "TRANSACTION_REJECTED"
        assert alert.severity == "WARNING"
        assert "Wrong vendor" in alert.message


class TestReturnForRevision:

    def test_default_window_and_sections(self, orchestrator, submitted_transaction, reviewer_id,
                                         deterministic_clock):
        tx = orchestrator.review.return_for_revision(
            submitted_transaction.id, reviewer_id, "Attach the tax invoice",
        )

        assert tx.status == TransactionStatus.RETURNED.value
        assert tx.revision_deadline == deterministic_clock.now() + timedelta(hours=48)
        assert tx.revision_count == 1
        assert tx.notes == "Attach the tax invoice"
        assert tx.flags.locked is False
        assert tx.flags.editable_sections == frozenset(EditableSection)

    def test_explicit_sections_and_deadline(self, orchestrator, submitted_transaction, reviewer_id,
                                            deterministic_clock):
        deadline = deterministic_clock.now() + timedelta(hours=4)
        tx = orchestrator.review.return_for_revision(
            submitted_transaction.id, reviewer_id, "Fix items",
            editable_sections=[EditableSection.ITEMS], deadline=deadline,
        )
        assert tx.revision_deadline == deadline
        assert tx.flags.editable_sections == frozenset({EditableSection.ITEMS})

    def test_past_deadline_rejected(self, orchestrator, submitted_transaction, reviewer_id,
                                    deterministic_clock):
        with pytest.raises(ValidationError):
            orchestrator.review.return_for_revision(
                submitted_transaction.id, reviewer_id, "Fix",
                deadline=deterministic_clock.now() - timedelta(minutes=1),
            )

    def test_empty_sections_rejected(self, orchestrator, submitted_transaction, reviewer_id):
        with pytest.raises(ValidationError):
            orchestrator.review.return_for_revision(
                submitted_transaction.id, reviewer_id, "Fix", editable_sections=[],
            )

    def test_reason_required(self, orchestrator, submitted_transaction, reviewer_id):
        with pytest.raises(ValidationError):
            orchestrator.review.return_for_revision(submitted_transaction.id, reviewer_id, "")

    def test_return_alert_and_activity(self, orchestrator, session, submitted_transaction,
                                       reviewer_id, owner_id):
        orchestrator.review.return_for_revision(submitted_transaction.id, reviewer_id, "Fix")

        alert = orchestrator.notices.unread_for(owner_id)[0]
        assert alert.alert_type == "TRANSACTION_RETURNED"
        assert alert.transaction_id == submitted_transaction.id

        activity = session.query(ActivityLogModel).filter_by(
            entity_id=submitted_transaction.id, action="RETURN",
        ).one()
        assert activity.actor_id == reviewer_id
        assert sorted(activity.details["editable_sections"]) == ["documents", "header", "items"]
