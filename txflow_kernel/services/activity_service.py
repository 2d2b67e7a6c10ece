"""
ActivityService -- database-backed AuditSink.

Builds and writes activity and signal rows inside a savepoint.  A failing
build or write is logged at ERROR and never undoes the caller's primary
transition.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from txflow_kernel.domain.clock import Clock
from txflow_kernel.logging_config import get_logger
from txflow_kernel.models.activity import ActivityKind, ActivityLogModel
from txflow_kernel.services.base import BaseService
from txflow_kernel.utils.hashing import to_json_safe

logger = get_logger("services.activity")


class ActivityService(BaseService[ActivityLogModel]):
    """Append-only audit trail; implements ``AuditSink``."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def _write(self, kind: ActivityKind, action: str, build: Callable[[], ActivityLogModel]) -> None:
        try:
            row = build()
            with self.session.begin_nested():
                self.session.add(row)
                self.session.flush()
        except Exception:
            logger.error(
                "audit_write_failed",
                extra={"action": action, "kind": kind.value},
                exc_info=True,
            )

    def record_activity(
        self,
        actor_id: UUID | None,
        action: str,
        entity_type: str,
        entity_id: UUID | None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        self._write(ActivityKind.ACTIVITY, action, lambda: ActivityLogModel(
            kind=ActivityKind.ACTIVITY.value,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=to_json_safe(dict(details or {})),
            created_at=self._clock.now(),
        ))

    def record_signal(
        self,
        actor_id: UUID | None,
        signal_type: str,
        details: Mapping[str, Any] | None = None,
        severity: str = "INFO",
    ) -> None:
        def build() -> ActivityLogModel:
            payload = dict(details or {})
            entity_id = payload.get("transaction_id")
            return ActivityLogModel(
                kind=ActivityKind.SIGNAL.value,
                actor_id=actor_id,
                action=signal_type,
                entity_type="transaction" if entity_id else None,
                entity_id=UUID(str(entity_id)) if entity_id else None,
                details=to_json_safe(payload),
                severity=severity,
                created_at=self._clock.now(),
            )

        self._write(ActivityKind.SIGNAL, signal_type, build)
