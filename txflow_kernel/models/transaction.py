"""
Module: txflow_kernel.models.transaction
Responsibility: ORM persistence for the live transaction row and its items.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Status is one of the closed live statuses (DB check constraint);
      ``superseded`` can never appear here.
    - transaction_code is unique: this table holds exactly one row per code
      lineage, and that row is the active version.  Older versions live in
      ``transaction_versions``.
    - version >= 1 and revision_count >= 0.
    - Flags are a typed ``TransactionFlags`` struct, serialized through
      TransactionFlagsType; raw dicts never reach service code.

Failure modes:
    - IntegrityError on a duplicate transaction_code.
    - ValueError on load if stored flags carry unknown keys.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from txflow_kernel.db.base import Base, UUIDString
from txflow_kernel.domain.flags import TransactionFlags
from txflow_kernel.domain.lifecycle import TransactionStatus

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in TransactionStatus)


class TransactionFlagsType(TypeDecorator):
    """Stores TransactionFlags as JSON and loads it back as the frozen struct."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return TransactionFlags().to_dict()
        if isinstance(value, TransactionFlags):
            return value.to_dict()
        raise TypeError(f"Expected TransactionFlags, got {type(value).__name__}")

    def process_result_value(self, value, dialect):
        return TransactionFlags.from_dict(value)


class TransactionModel(Base):
    """Live transaction row; the single active version of its code lineage."""

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_transactions_valid_status",
        ),
        CheckConstraint("version >= 1", name="ck_transactions_version_positive"),
        CheckConstraint("revision_count >= 0", name="ck_transactions_revision_count"),
        Index("ix_transactions_revision_sweep", "status", "revision_deadline"),
        Index("ix_transactions_owner_status", "owner_id", "status"),
    )

    transaction_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    transaction_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="IDR")
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=TransactionStatus.IN_PROGRESS.value,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active_version: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    revision_deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    revision_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flags: Mapped[TransactionFlags] = mapped_column(
        TransactionFlagsType(), nullable=False, default=TransactionFlags,
    )

    vendor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reject_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    items: Mapped[list[TransactionItemModel]] = relationship(
        back_populates="transaction",
        order_by="TransactionItemModel.position",
        cascade="all, delete-orphan",
    )

    @property
    def status_enum(self) -> TransactionStatus:
        return TransactionStatus(self.status)

    @property
    def items_total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    def header_values(self) -> dict[str, Any]:
        return {
            "transaction_type": self.transaction_type,
            "vendor_name": self.vendor_name,
            "invoice_number": self.invoice_number,
            "invoice_date": self.invoice_date,
            "cost_center": self.cost_center,
            "description": self.description,
            "amount": self.amount,
            "currency": self.currency,
        }

    def snapshot(self) -> dict[str, Any]:
        """Full pre-mutation image used for version archiving."""
        return {
            "transaction_id": self.id,
            "transaction_code": self.transaction_code,
            "owner_id": self.owner_id,
            "version": self.version,
            "status": self.status,
            "header": self.header_values(),
            "items": [item.to_dict() for item in self.items],
            "flags": self.flags.to_dict(),
            "notes": self.notes,
            "revision_count": self.revision_count,
            "revision_deadline": self.revision_deadline,
            "submitted_at": self.submitted_at,
            "reviewed_at": self.reviewed_at,
        }

    def __repr__(self) -> str:
        return (
            f"<TransactionModel {self.transaction_code} v{self.version} "
            f"status={self.status}>"
        )


class TransactionItemModel(Base):
    """One line item; belongs to exactly one transaction."""

    __tablename__ = "transaction_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transaction_items_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_transaction_items_unit_price"),
        Index("ix_transaction_items_transaction", "transaction_id", "position"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transactions.id"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    account_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    transaction: Mapped[TransactionModel] = relationship(back_populates="items")

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "description": self.description,
            "account_code": self.account_code,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
        }
