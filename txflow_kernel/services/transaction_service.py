"""
TransactionService -- creation and draft editing of transactions.

Responsibility:
    Creates transactions with a unique human-readable code, saves header
    fields and line items, and moves a row into ``draft``.

Architecture position:
    Kernel > Services -- imperative shell.  Revision edits on returned
    transactions reuse ``apply_header`` and ``replace_items`` from here
    after the revision window has been checked.

Invariants enforced:
    - Only the owner edits, and only while the status is editable.
    - On a returned transaction each field group must be one of the
      editable sections the approver granted.
    - Replacing items recomputes the amount from the new item sum; once
      items exist a header edit cannot set the amount directly.

Failure modes:
    - AccessDeniedError, LockedStateError (lifecycle guard).
    - InvalidItemError on a blank description, quantity <= 0 or a
      negative unit price.
    - ValidationError when a header edit sets the amount of an itemised
      transaction.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable, Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.dtos import HeaderChanges, ItemSpec
from txflow_kernel.domain.lifecycle import EditableSection, LifecycleAction, TransactionStatus
from txflow_kernel.domain.ports import AuditSink
from txflow_kernel.exceptions import InvalidItemError, LockedStateError, ValidationError
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.transaction import TransactionItemModel, TransactionModel
from txflow_kernel.services.base import BaseService
from txflow_kernel.services.lifecycle_guard import ensure_editable, ensure_owner

logger = get_logger("services.transaction")


def generate_transaction_code(now: datetime) -> str:
    """``TRX-YYYYMMDD-XXXXXX`` with six random upper-case hex digits."""
    return f"TRX-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def validate_items(items: Sequence[ItemSpec]) -> None:
    for index, item in enumerate(items):
        if not item.description or not item.description.strip():
            raise InvalidItemError(index, "description is required")
        if item.quantity <= 0:
            raise InvalidItemError(index, "quantity must be greater than zero")
        if item.unit_price < 0:
            raise InvalidItemError(index, "unit price must not be negative")


def check_header(tx: TransactionModel, changes: HeaderChanges) -> None:
    """The amount is the item sum once items exist; it cannot be set directly."""
    if changes.amount is not None and tx.items:
        raise ValidationError(
            "Transaction amount is derived from its items; edit the items instead"
        )


def apply_header(tx: TransactionModel, changes: HeaderChanges) -> list[str]:
    """Copy assigned header fields onto ``tx``; returns the changed names."""
    check_header(tx, changes)
    assigned = changes.assigned()
    for name, value in assigned.items():
        setattr(tx, name, value)
    return sorted(assigned)


def replace_items(tx: TransactionModel, items: Sequence[ItemSpec]) -> Decimal:
    """Replace every item and set the amount to the new item sum."""
    validate_items(items)
    tx.items.clear()
    for position, spec in enumerate(items, start=1):
        tx.items.append(TransactionItemModel(
            position=position,
            description=spec.description.strip(),
            account_code=spec.account_code,
            quantity=spec.quantity,
            unit_price=spec.unit_price,
            line_total=spec.line_total,
        ))
    tx.amount = sum((spec.line_total for spec in items), Decimal("0"))
    return tx.amount


class TransactionService(BaseService[TransactionModel]):
    """Create and edit transactions before submission."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditSink | None = None,
        code_generator: Callable[[datetime], str] = generate_transaction_code,
        default_currency: str = "IDR",
    ):
        super().__init__(session, clock)
        self._audit = audit
        self._code_generator = code_generator
        self._default_currency = default_currency

    def _editable(
        self, transaction_id: UUID, actor_id: UUID, section: EditableSection,
    ) -> TransactionModel:
        tx = self._load_transaction(transaction_id)
        ensure_owner(tx, actor_id)
        action = f"edit_{section.value}"
        ensure_editable(tx, action)
        if tx.status_enum == TransactionStatus.RETURNED and not tx.flags.allows(section):
            raise LockedStateError(str(tx.id), tx.status, action)
        return tx

    def create_transaction(
        self,
        owner_id: UUID,
        transaction_type: str | None = None,
        currency: str | None = None,
    ) -> TransactionModel:
        now = self._clock.now()
        tx = TransactionModel(
            transaction_code=self._code_generator(now),
            transaction_type=transaction_type,
            owner_id=owner_id,
            amount=Decimal("0"),
            currency=currency or self._default_currency,
            status=TransactionStatus.IN_PROGRESS.value,
            version=1,
            is_active_version=True,
            revision_count=0,
            created_at=now,
            updated_at=now,
        )
        self.session.add(tx)
        self.session.flush()

        logger.info(
            "transaction_created",
            extra={
                "transaction_id": str(tx.id),
                "transaction_code": tx.transaction_code,
                "owner_id": str(owner_id),
            },
        )
        if self._audit is not None:
            self._audit.record_activity(
                owner_id, "CREATE", "transaction", tx.id,
                {"transaction_code": tx.transaction_code},
            )
        return tx

    def save_header(
        self, transaction_id: UUID, actor_id: UUID, changes: HeaderChanges,
    ) -> TransactionModel:
        tx = self._editable(transaction_id, actor_id, EditableSection.HEADER)
        changed = apply_header(tx, changes)
        tx.updated_at = self._clock.now()
        self.session.flush()
        logger.info(
            "transaction_header_saved",
            extra={"transaction_id": str(tx.id), "fields": changed},
        )
        return tx

    def save_items(
        self, transaction_id: UUID, actor_id: UUID, items: Sequence[ItemSpec],
    ) -> TransactionModel:
        tx = self._editable(transaction_id, actor_id, EditableSection.ITEMS)
        amount = replace_items(tx, items)
        tx.updated_at = self._clock.now()
        self.session.flush()
        logger.info(
            "transaction_items_saved",
            extra={
                "transaction_id": str(tx.id),
                "item_count": len(items),
                "amount": str(amount),
            },
        )
        return tx

    def save_draft(self, transaction_id: UUID, actor_id: UUID) -> TransactionModel:
        tx = self._load_transaction(transaction_id)
        ensure_owner(tx, actor_id)
        ensure_editable(tx, LifecycleAction.SAVE_DRAFT.value)
        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(actor_id)):
            self._transition(tx, LifecycleAction.SAVE_DRAFT)
            logger.info("transaction_draft_saved")
        return tx
