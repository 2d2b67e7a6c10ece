"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor (session plus clock) and the conditional status
    transition every lifecycle service uses.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Flush-only: services never commit or roll back.  The caller owns
      the transaction (``session_scope()``).
    - Every status change is ``UPDATE ... WHERE id = :id AND status =
      :observed``.  Two callers racing on the same row cannot both win;
      the loser sees zero affected rows.

Failure modes:
    - TransactionNotFoundError when the row does not exist.
    - InvalidTransitionError when the transition table forbids the action.
    - ConcurrentTransitionError when the conditional UPDATE matched no row.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from txflow_kernel.db.base import Base
from txflow_kernel.domain.clock import Clock, SystemClock
from txflow_kernel.domain.lifecycle import LifecycleAction, TransactionStatus
from txflow_kernel.exceptions import ConcurrentTransitionError, TransactionNotFoundError
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.services.lifecycle_guard import ensure_transition

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read views -- those belong in
          ``txflow_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()

    def _load_transaction(self, transaction_id: UUID) -> TransactionModel:
        tx = self.session.get(TransactionModel, transaction_id)
        if tx is None:
            raise TransactionNotFoundError(str(transaction_id))
        return tx

    def _transition(
        self,
        tx: TransactionModel,
        action: LifecycleAction,
        *conditions: Any,
        **values: Any,
    ) -> TransactionStatus:
        """Move ``tx`` along ``action`` with a conditional UPDATE.

        The WHERE clause pins the status observed on ``tx``; extra
        ``conditions`` are ANDed in.  ``tx`` is refreshed afterwards.
        """
        observed = tx.status_enum
        target = ensure_transition(observed, action, tx.id)
        values.setdefault("updated_at", self._clock.now())

        self.session.flush()
        stmt = (
            update(TransactionModel)
            .where(
                TransactionModel.id == tx.id,
                TransactionModel.status == observed.value,
                *conditions,
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            raise ConcurrentTransitionError(str(tx.id), (observed.value,), action.value)
        self.session.refresh(tx)
        return target
