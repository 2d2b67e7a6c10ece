"""
Module: txflow_kernel.models.exception_case
Responsibility: ORM persistence for exception cases opened when a pre-check
    reconciliation fails.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one OPEN case per transaction (partial unique index on
      PostgreSQL and SQLite).
    - status is OPEN or RESOLVED; RESOLVED is terminal.
    - allowlist is fixed at creation; only patch, summary and mismatches
      change while the case is OPEN.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from txflow_kernel.db.base import Base, UUIDString


class ExceptionCaseStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class ExceptionCaseModel(Base):
    """Correction workspace bound to one transaction and its owner."""

    __tablename__ = "exception_cases"

    __table_args__ = (
        CheckConstraint(
            "status IN ('OPEN', 'RESOLVED')", name="ck_exception_cases_status",
        ),
        Index(
            "uq_exception_cases_one_open",
            "transaction_id",
            unique=True,
            postgresql_where=text("status = 'OPEN'"),
            sqlite_where=text("status = 'OPEN'"),
        ),
        Index("ix_exception_cases_owner_status", "owner_id", "status"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("transactions.id"), nullable=False,
    )
    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    allowlist: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    patch: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    mismatch_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mismatches: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExceptionCaseStatus.OPEN.value,
    )
    recheck_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_open(self) -> bool:
        return self.status == ExceptionCaseStatus.OPEN.value
