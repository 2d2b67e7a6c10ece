"""
Module: txflow_kernel.selectors.transaction_selector
Responsibility: Read paths over transactions, their version lineage,
    uploaded documents and exception cases.

Invariants enforced:
    - ``lineage`` reports archived versions (never active) followed by the
      live row, so a caller can assert exactly one active version per code.
    - ``expired_returned_ids`` uses a strict ``deadline < now`` comparison
      and only considers active versions.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from txflow_kernel.domain.dtos import LineageView, VersionRecord
from txflow_kernel.domain.lifecycle import TransactionStatus
from txflow_kernel.models.document import TransactionDocumentModel
from txflow_kernel.models.exception_case import ExceptionCaseModel, ExceptionCaseStatus
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.models.version import TransactionVersionModel
from txflow_kernel.selectors.base import BaseSelector


class TransactionSelector(BaseSelector[TransactionModel]):
    """Queries over the transaction aggregate."""

    def get(self, transaction_id: UUID) -> TransactionModel | None:
        return self.session.get(TransactionModel, transaction_id)

    def get_by_code(self, transaction_code: str) -> TransactionModel | None:
        return self.session.scalars(
            select(TransactionModel).where(
                TransactionModel.transaction_code == transaction_code
            )
        ).one_or_none()

    def list_for_owner(
        self, owner_id: UUID, status: TransactionStatus | None = None,
    ) -> list[TransactionModel]:
        stmt = select(TransactionModel).where(TransactionModel.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(TransactionModel.status == status.value)
        return list(self.session.scalars(stmt.order_by(TransactionModel.created_at)))

    def lineage(self, transaction_code: str) -> LineageView:
        archived = self.session.scalars(
            select(TransactionVersionModel)
            .where(TransactionVersionModel.transaction_code == transaction_code)
            .order_by(TransactionVersionModel.version)
        ).all()
        versions = [
            VersionRecord(
                transaction_code=row.transaction_code,
                version=row.version,
                status=row.status,
                is_active_version=row.is_active_version,
                recorded_at=row.archived_at,
            )
            for row in archived
        ]
        live = self.get_by_code(transaction_code)
        if live is not None:
            versions.append(VersionRecord(
                transaction_code=live.transaction_code,
                version=live.version,
                status=live.status,
                is_active_version=live.is_active_version,
                recorded_at=live.updated_at,
            ))
        return LineageView(transaction_code=transaction_code, versions=tuple(versions))

    def latest_document(self, transaction_id: UUID) -> TransactionDocumentModel | None:
        return self.session.scalars(
            select(TransactionDocumentModel)
            .where(TransactionDocumentModel.transaction_id == transaction_id)
            .order_by(TransactionDocumentModel.sequence.desc())
            .limit(1)
        ).first()

    def next_document_sequence(self, transaction_id: UUID) -> int:
        latest = self.latest_document(transaction_id)
        return 1 if latest is None else latest.sequence + 1

    def open_case_for(self, transaction_id: UUID) -> ExceptionCaseModel | None:
        return self.session.scalars(
            select(ExceptionCaseModel).where(
                ExceptionCaseModel.transaction_id == transaction_id,
                ExceptionCaseModel.status == ExceptionCaseStatus.OPEN.value,
            )
        ).one_or_none()

    def expired_returned_ids(self, now: datetime) -> list[UUID]:
        """Active returned rows whose revision deadline is strictly past."""
        return list(self.session.scalars(
            select(TransactionModel.id)
            .where(
                TransactionModel.status == TransactionStatus.RETURNED.value,
                TransactionModel.revision_deadline.is_not(None),
                TransactionModel.revision_deadline < now,
                TransactionModel.is_active_version.is_(True),
            )
            .order_by(TransactionModel.revision_deadline)
        ))
