"""
TransactionService: creation, header and item edits, draft saving.
"""

import re
from decimal import Decimal
from uuid import uuid4

import pytest

from txflow_kernel.domain.dtos import HeaderChanges, ItemSpec
from txflow_kernel.domain.lifecycle import TransactionStatus
from txflow_kernel.exceptions import (
    AccessDeniedError,
    InvalidItemError,
    LockedStateError,
    TransactionNotFoundError,
    ValidationError,
)
from txflow_kernel.models.activity import ActivityLogModel
from txflow_kernel.services.transaction_service import (
    TransactionService,
    generate_transaction_code,
    validate_items,
)


class TestCreate:

    def test_new_transaction_defaults(self, orchestrator, owner_id, deterministic_clock):
        tx = orchestrator.transactions.create_transaction(owner_id, "purchase")

        assert tx.status == TransactionStatus.IN_PROGRESS.value
        assert tx.version == 1
        assert tx.is_active_version is True
        assert tx.revision_count == 0
        assert tx.currency == "IDR"
        assert tx.amount == Decimal("0")
        assert tx.created_at == deterministic_clock.now()
        assert re.fullmatch(r"TRX-20240115-[0-9A-F]{6}", tx.transaction_code)

    def test_creation_is_audited(self, orchestrator, session, owner_id):
        tx = orchestrator.transactions.create_transaction(owner_id)

        rows = session.query(ActivityLogModel).filter_by(entity_id=tx.id, action="CREATE").all()
        assert len(rows) == 1
        assert rows[0].details["transaction_code"] == tx.transaction_code

    def test_custom_code_generator_and_currency(self, session, deterministic_clock, owner_id):
        service = TransactionService(
            session, deterministic_clock, code_generator=lambda now: "TRX-FIXED-000001",
        )
        tx = service.create_transaction(owner_id, currency="USD")
        assert tx.transaction_code == "TRX-FIXED-000001"
        assert tx.currency == "USD"


def test_generated_codes_differ(deterministic_clock):
    now = deterministic_clock.now()
    codes = {generate_transaction_code(now) for _ in range(20)}
    assert len(codes) > 1


class TestEdit:

    def test_header_and_items(self, create_filled_transaction):
        tx = create_filled_transaction()

        assert tx.vendor_name == "PT Sumber Makmur Abadi"
        assert tx.invoice_number == "INV-2024-001"
        assert [i.position for i in tx.items] == [1, 2]
        assert tx.amount == Decimal("1500000")
        assert tx.items_total == Decimal("1500000")

    def test_replacing_items_recomputes_amount(self, orchestrator, create_filled_transaction, owner_id):
        tx = create_filled_transaction()
        orchestrator.transactions.save_items(
            tx.id, owner_id, (ItemSpec("Monitor", Decimal("3"), Decimal("200000")),),
        )
        assert len(tx.items) == 1
        assert tx.amount == Decimal("600000")

    def test_non_owner_cannot_edit(self, orchestrator, create_filled_transaction):
        tx = create_filled_transaction()
        with pytest.raises(AccessDeniedError):
            orchestrator.transactions.save_header(tx.id, uuid4(), HeaderChanges(vendor_name="X"))

    def test_unknown_transaction(self, orchestrator, owner_id):
        with pytest.raises(TransactionNotFoundError):
            orchestrator.transactions.save_header(uuid4(), owner_id, HeaderChanges(vendor_name="X"))

    def test_submitted_transaction_is_locked(self, orchestrator, submitted_transaction, owner_id):
        with pytest.raises(LockedStateError) as exc_info:
            orchestrator.transactions.save_header(
                submitted_transaction.id, owner_id, HeaderChanges(vendor_name="X"),
            )
        assert exc_info.value.action == "edit_header"

    def test_returned_transaction_needs_section_grant(
        self, orchestrator, submitted_transaction, owner_id, reviewer_id,
    ):
        orchestrator.review.return_for_revision(
            submitted_transaction.id, reviewer_id, "Fix the vendor", editable_sections=["header"],
        )

        orchestrator.transactions.save_header(
            submitted_transaction.id, owner_id, HeaderChanges(vendor_name="PT Baru"),
        )
        with pytest.raises(LockedStateError):
            orchestrator.transactions.save_items(
                submitted_transaction.id, owner_id,
                (ItemSpec("Laptop", Decimal("1"), Decimal("1")),),
            )

    def test_amount_cannot_be_set_once_items_exist(
        self, orchestrator, create_filled_transaction, owner_id,
    ):
        tx = create_filled_transaction()
        with pytest.raises(ValidationError):
            orchestrator.transactions.save_header(
                tx.id, owner_id, HeaderChanges(amount=Decimal("999")),
            )
        assert tx.amount == Decimal("1500000")
        assert tx.amount == tx.items_total

    def test_amount_can_be_set_without_items(self, orchestrator, owner_id):
        tx = orchestrator.transactions.create_transaction(owner_id, "purchase")
        orchestrator.transactions.save_header(
            tx.id, owner_id, HeaderChanges(amount=Decimal("250000")),
        )
        assert tx.amount == Decimal("250000")


def test_validate_items_reports_index():
    items = [ItemSpec("a", Decimal("1"), Decimal("1")), ItemSpec("ok", Decimal("1"), Decimal("-5"))]
    with pytest.raises(InvalidItemError) as exc_info:
        validate_items(items)
    assert exc_info.value.index == 1
    assert exc_info.value.code == "INVALID_ITEM"


@pytest.mark.parametrize("description, quantity, unit_price, reason", [
    ("", Decimal("1"), Decimal("1"), "description is required"),
    ("   ", Decimal("1"), Decimal("1"), "description is required"),
    ("Laptop", Decimal("0"), Decimal("1"), "quantity must be greater than zero"),
    ("Laptop", Decimal("-1"), Decimal("1"), "quantity must be greater than zero"),
    ("Laptop", Decimal("1"), Decimal("-0.01"), "unit price must not be negative"),
])
def test_save_items_rejects_invalid_item(
    orchestrator, create_filled_transaction, owner_id, description, quantity, unit_price, reason,
):
    tx = create_filled_transaction()
    with pytest.raises(InvalidItemError) as exc_info:
        orchestrator.transactions.save_items(
            tx.id, owner_id, (ItemSpec(description, quantity, unit_price),),
        )
    assert exc_info.value.index == 0
    assert exc_info.value.reason == reason
    assert len(tx.items) == 2
    assert tx.amount == Decimal("1500000")


class TestSaveDraft:

    def test_in_progress_to_draft_and_again(self, orchestrator, create_filled_transaction, owner_id):
        tx = create_filled_transaction()

        orchestrator.transactions.save_draft(tx.id, owner_id)
        assert tx.status == TransactionStatus.DRAFT.value
        orchestrator.transactions.save_draft(tx.id, owner_id)
        assert tx.status == TransactionStatus.DRAFT.value

    def test_draft_still_editable(self, orchestrator, create_filled_transaction, owner_id):
        tx = create_filled_transaction()
        orchestrator.transactions.save_draft(tx.id, owner_id)
        orchestrator.transactions.save_header(tx.id, owner_id, HeaderChanges(cost_center="CC-9"))
        assert tx.cost_center == "CC-9"

    def test_submitted_cannot_become_draft(self, orchestrator, submitted_transaction, owner_id):
        with pytest.raises(LockedStateError):
            orchestrator.transactions.save_draft(submitted_transaction.id, owner_id)
