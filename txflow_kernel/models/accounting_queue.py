"""
Module: txflow_kernel.models.accounting_queue
Responsibility: Work items handed to accounting for manual resolution.

Invariants enforced:
    - UNIQUE(transaction_id, reason): enqueueing the same transaction for
      the same reason twice cannot create duplicate work.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from txflow_kernel.db.base import Base, UUIDString


class QueueItemStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class AccountingQueueItemModel(Base):
    __tablename__ = "accounting_queue"

    __table_args__ = (
        UniqueConstraint(
            "transaction_id", "reason", name="uq_accounting_queue_transaction_reason",
        ),
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'resolved')",
            name="ck_accounting_queue_status",
        ),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transactions.id"), nullable=False,
    )
    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=QueueItemStatus.PENDING.value,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
