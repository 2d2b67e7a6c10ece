"""
Module: txflow_kernel.models.version
Responsibility: Immutable version history for resubmitted transactions.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - (transaction_code, version) is unique across history.
    - Every row carries status 'superseded' and is_active_version = false
      (DB check constraints); the live row in ``transactions`` is the only
      active version of a code.
    - Rows are append-only: UPDATE and DELETE raise
      ImmutabilityViolationError (db/immutability.py).
    - snapshot_hash is the SHA-256 of the canonical snapshot JSON, so any
      later tampering with the archived image is detectable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from txflow_kernel.db.base import Base, UUIDString
from txflow_kernel.domain.lifecycle import ArchivedStatus


class TransactionVersionModel(Base):
    """Archived pre-resubmission image of a transaction."""

    __tablename__ = "transaction_versions"

    __table_args__ = (
        UniqueConstraint(
            "transaction_code", "version", name="uq_transaction_versions_code_version",
        ),
        CheckConstraint(
            "status = 'superseded'", name="ck_transaction_versions_superseded",
        ),
        CheckConstraint(
            "is_active_version = false", name="ck_transaction_versions_inactive",
        ),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transactions.id"), nullable=False, index=True,
    )
    transaction_code: Mapped[str] = mapped_column(String(32), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ArchivedStatus.SUPERSEDED.value,
    )
    is_active_version: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    previous_status: Mapped[str] = mapped_column(String(50), nullable=False)
    snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    snapshot_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    archived_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    archived_at: Mapped[datetime] = mapped_column(nullable=False)
