"""NoticeService -- database-backed NotificationSink (silent per-user alerts)."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from txflow_kernel.logging_config import get_logger
from txflow_kernel.models.activity import PersonalAlertModel
from txflow_kernel.services.base import BaseService

logger = get_logger("services.notice")


class NoticeService(BaseService[PersonalAlertModel]):
    """Implements ``NotificationSink``; failures are logged, never raised."""

    def notify(
        self,
        user_id: UUID,
        alert_type: str,
        title: str,
        message: str,
        *,
        severity: str = "INFO",
        transaction_id: UUID | None = None,
    ) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(PersonalAlertModel(
                    user_id=user_id,
                    alert_type=alert_type,
                    title=title,
                    message=message,
                    severity=severity,
                    transaction_id=transaction_id,
                    created_at=self._clock.now(),
                ))
                self.session.flush()
        except Exception:
            logger.error(
                "notice_write_failed",
                extra={"alert_type": alert_type, "user_id": str(user_id)},
                exc_info=True,
            )

    def unread_for(self, user_id: UUID) -> list[PersonalAlertModel]:
        return list(self.session.scalars(
            select(PersonalAlertModel)
            .where(
                PersonalAlertModel.user_id == user_id,
                PersonalAlertModel.is_read.is_(False),
            )
            .order_by(PersonalAlertModel.created_at)
        ))
