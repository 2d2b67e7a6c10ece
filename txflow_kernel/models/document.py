"""
Module: txflow_kernel.models.document
Responsibility: ORM persistence for uploaded source documents together with
    their merged extraction text and reconciliation report.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A document row is written once per upload and never updated or
      deleted (ORM listeners in db/immutability.py).  Later uploads
      supersede it by sequence number.
    - (transaction_id, sequence) is unique; the highest sequence is the
      latest document.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from txflow_kernel.db.base import Base, UUIDString


class DocumentReconciliationStatus(str, Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"


class TransactionDocumentModel(Base):
    """One uploaded document and its reconciliation result."""

    __tablename__ = "transaction_documents"

    __table_args__ = (
        UniqueConstraint(
            "transaction_id", "sequence", name="uq_transaction_documents_sequence",
        ),
        CheckConstraint(
            "reconciliation_status IN ('MATCH', 'MISMATCH')",
            name="ck_transaction_documents_status",
        ),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transactions.id"), nullable=False, index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    file_reference: Mapped[str] = mapped_column(String(500), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    raw_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    text_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    parsed: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    report: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    reconciliation_status: Mapped[str] = mapped_column(String(20), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    uploaded_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def is_match(self) -> bool:
        return self.reconciliation_status == DocumentReconciliationStatus.MATCH.value
