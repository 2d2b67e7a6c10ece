"""
DocumentReconciliationService -- upload, extract, merge, reconcile, persist.

Responsibility:
    ``process_upload`` accepts a PNG/JPEG document for a transaction,
    runs the extraction provider once per configured zone mode, merges
    the passes by semantic zone, reconciles the merged text against the
    recorded transaction values and persists the document row together
    with the report and the outcome flag.

    ``reconcile_latest`` implements the kernel's ``DocumentReconciler``
    port: it re-reads the latest stored document text and reconciles it
    against the recorded values, optionally overlaid with an
    exception-case patch.

Architecture position:
    Services -- composes the pure reconciliation engine with the kernel's
    session, clock and models.

Failure modes:
    - UnsupportedDocumentTypeError: not an accepted image type.
    - DocumentNotFoundError: ``reconcile_latest`` without any upload.
    - A failing extraction mode is logged and treated as empty text.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from uuid import UUID

from sqlalchemy.orm import Session

from txflow_engines.reconciliation.matcher import (
    ReconciliationEngine,
    ReconciliationThresholds,
)
from txflow_engines.reconciliation.types import (
    ExpectedRecord,
    ExtractionPass,
    ReconciliationReport,
    SemanticZone,
)
from txflow_config.schema import ReconciliationSettings
from txflow_kernel.domain.clock import Clock
from txflow_kernel.domain.dtos import ReconciliationVerdict
from txflow_kernel.domain.flags import ReconciliationOutcome
from txflow_kernel.domain.lifecycle import EditableSection, TransactionStatus
from txflow_kernel.domain.ports import AuditSink
from txflow_kernel.exceptions import (
    DocumentNotFoundError,
    LockedStateError,
    UnsupportedDocumentTypeError,
)
from txflow_kernel.logging_config import LogContext, get_logger
from txflow_kernel.models.document import (
    DocumentReconciliationStatus,
    TransactionDocumentModel,
)
from txflow_kernel.models.transaction import TransactionModel
from txflow_kernel.selectors.transaction_selector import TransactionSelector
from txflow_kernel.services.base import BaseService
from txflow_kernel.services.lifecycle_guard import ensure_editable, ensure_owner
from txflow_kernel.utils.hashing import hash_text

from txflow_services.extraction import TextExtractionProvider, sniff_image_type

logger = get_logger("services.document_reconciliation")


def thresholds_from_settings(settings: ReconciliationSettings) -> ReconciliationThresholds:
    return ReconciliationThresholds(
        match_threshold=settings.match_threshold,
        warning_floor=settings.warning_floor,
        amount_tolerance=settings.amount_tolerance,
        amount_warning_band=settings.amount_warning_band,
    )


def expected_record_for(tx: TransactionModel) -> ExpectedRecord:
    return ExpectedRecord(
        vendor_name=tx.vendor_name,
        invoice_number=tx.invoice_number,
        amount=tx.amount,
        items_total=tx.items_total,
    )


def to_verdict(report: ReconciliationReport) -> ReconciliationVerdict:
    return ReconciliationVerdict(
        match=report.match,
        mismatched_fields=report.mismatched_fields,
        summary=report.summary_text(),
        report=report.to_dict(),
    )


class DocumentReconciliationService(BaseService[TransactionDocumentModel]):
    """Document upload pipeline; implements ``DocumentReconciler``."""

    def __init__(
        self,
        session: Session,
        provider: TextExtractionProvider,
        clock: Clock | None = None,
        settings: ReconciliationSettings | None = None,
        engine: ReconciliationEngine | None = None,
        audit: AuditSink | None = None,
    ):
        super().__init__(session, clock)
        self._provider = provider
        self._settings = settings or ReconciliationSettings()
        self._engine = engine or ReconciliationEngine(thresholds_from_settings(self._settings))
        self._audit = audit
        self._selector = TransactionSelector(session)

    def _check_content_type(self, content: bytes, content_type: str) -> str:
        allowed = self._settings.allowed_content_types
        declared = (content_type or "").split(";")[0].strip().lower()
        if declared not in allowed:
            raise UnsupportedDocumentTypeError(content_type, allowed)
        sniffed = sniff_image_type(content)
        if sniffed is None:
            raise UnsupportedDocumentTypeError(f"{declared} (unrecognised content)", allowed)
        return declared

    def _run_passes(self, content: bytes) -> list[ExtractionPass]:
        modes = self._settings.zone_modes
        passes: list[ExtractionPass] = []
        for zone, mode in (
            (SemanticZone.HEADER, modes.header),
            (SemanticZone.ITEMS, modes.items),
            (SemanticZone.TOTAL, modes.total),
            (SemanticZone.FALLBACK, modes.fallback),
        ):
            try:
                result = self._provider.extract(content, mode)
            except Exception:
                logger.warning(
                    "extraction_mode_failed",
                    extra={"mode": mode, "zone": zone.value},
                    exc_info=True,
                )
                passes.append(ExtractionPass.failed(zone, mode))
                continue
            passes.append(replace(result, zone=zone, mode=mode))
        return passes

    def process_upload(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        content: bytes,
        content_type: str,
        file_reference: str,
    ) -> TransactionDocumentModel:
        tx = self._load_transaction(transaction_id)
        ensure_owner(tx, actor_id)
        ensure_editable(tx, "upload_document")
        if tx.status_enum == TransactionStatus.RETURNED and not tx.flags.allows(
            EditableSection.DOCUMENTS
        ):
            raise LockedStateError(str(tx.id), tx.status, "upload_document")
        declared = self._check_content_type(content, content_type)

        with LogContext.bind(transaction_id=str(tx.id), actor_id=str(actor_id)):
            passes = self._run_passes(content)
            _, raw_text, report = self._engine.reconcile_passes(
                expected=expected_record_for(tx), passes=passes,
            )
            outcome = ReconciliationOutcome.MATCH if report.match else ReconciliationOutcome.MISMATCH
            now = self._clock.now()
            document = TransactionDocumentModel(
                transaction_id=tx.id,
                sequence=self._selector.next_document_sequence(tx.id),
                file_reference=file_reference,
                content_type=declared,
                raw_text=raw_text,
                text_hash=hash_text(raw_text),
                parsed=report.parsed.to_dict(),
                report=report.to_dict(),
                reconciliation_status=(
                    DocumentReconciliationStatus.MATCH.value
                    if report.match
                    else DocumentReconciliationStatus.MISMATCH.value
                ),
                confidence=report.confidence,
                uploaded_by=actor_id,
                uploaded_at=now,
            )
            self.session.add(document)
            tx.flags = tx.flags.with_outcome(outcome)
            tx.updated_at = now
            self.session.flush()
            logger.info(
                "document_reconciled",
                extra={
                    "document_id": str(document.id),
                    "sequence": document.sequence,
                    "match": report.match,
                    "mismatched_fields": list(report.mismatched_fields),
                    "confidence": report.confidence,
                },
            )

        if self._audit is not None:
            self._audit.record_activity(
                actor_id, "UPLOAD_DOCUMENT", "transaction", tx.id,
                {"file_reference": file_reference, "content_type": declared},
            )
            self._audit.record_signal(
                actor_id, "DOCUMENT_RECONCILED",
                {
                    "transaction_id": tx.id,
                    "match": report.match,
                    "mismatched_fields": list(report.mismatched_fields),
                },
                severity="INFO" if report.match else "WARNING",
            )
        return document

    def reconcile_latest(
        self,
        transaction_id: UUID,
        overrides: Mapping[str, str] | None = None,
    ) -> ReconciliationVerdict:
        tx = self._load_transaction(transaction_id)
        document = self._selector.latest_document(tx.id)
        if document is None:
            raise DocumentNotFoundError(str(tx.id))
        expected = expected_record_for(tx).with_overrides(overrides)
        report = self._engine.reconcile_text(
            expected=expected, raw_text=document.raw_text, confidence=document.confidence,
        )
        return to_verdict(report)
