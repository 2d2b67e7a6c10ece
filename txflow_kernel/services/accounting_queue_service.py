"""AccountingQueueService -- database-backed WorkQueue."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError

from txflow_kernel.logging_config import get_logger
from txflow_kernel.models.accounting_queue import AccountingQueueItemModel
from txflow_kernel.services.base import BaseService

logger = get_logger("services.accounting_queue")


class AccountingQueueService(BaseService[AccountingQueueItemModel]):
    """Enqueue is idempotent per (transaction, reason)."""

    def enqueue(self, transaction_id: UUID, owner_id: UUID, reason: str) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(AccountingQueueItemModel(
                    transaction_id=transaction_id,
                    owner_id=owner_id,
                    reason=reason,
                    created_at=self._clock.now(),
                ))
                self.session.flush()
        except IntegrityError:
            logger.info(
                "accounting_queue_already_enqueued",
                extra={"transaction_id": str(transaction_id), "reason": reason},
            )
            return
        except Exception:
            logger.error(
                "accounting_queue_enqueue_failed",
                extra={"transaction_id": str(transaction_id), "reason": reason},
                exc_info=True,
            )
            return
        logger.info(
            "accounting_queue_enqueued",
            extra={"transaction_id": str(transaction_id), "reason": reason},
        )
