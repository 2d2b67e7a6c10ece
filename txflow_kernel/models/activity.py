"""
Module: txflow_kernel.models.activity
Responsibility: Append-only activity/signal log and per-user silent alerts.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - ActivityLogModel rows are immutable once written (db/immutability.py).
    - kind is 'activity' (an action by a user or the system) or 'signal'
      (a silent observation with a severity).

Audit relevance:
    Every lifecycle transition records an activity row.  Escalations and
    reconciliation outcomes additionally record signals.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from txflow_kernel.db.base import Base, UUIDString


class ActivityKind(str, Enum):
    ACTIVITY = "activity"
    SIGNAL = "signal"


class ActivityLogModel(Base):
    """One audit record."""

    __tablename__ = "activity_logs"

    __table_args__ = (
        CheckConstraint(
            "kind IN ('activity', 'signal')", name="ck_activity_logs_kind",
        ),
        Index("ix_activity_logs_entity", "entity_type", "entity_id", "created_at"),
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    entity_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="INFO")
    created_at: Mapped[datetime] = mapped_column(nullable=False)


class PersonalAlertModel(Base):
    """Silent notice shown to one user; never blocks a workflow."""

    __tablename__ = "personal_alerts"

    __table_args__ = (
        Index("ix_personal_alerts_user_unread", "user_id", "is_read"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="INFO")
    transaction_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
