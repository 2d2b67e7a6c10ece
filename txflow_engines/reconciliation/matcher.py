"""
txflow_engines.reconciliation.matcher -- field-level document reconciliation.

Responsibility:
    Compare the recorded transaction values (vendor name, invoice number,
    amount, items total) against what was read from the supporting
    document and produce a deterministic ReconciliationReport.

Architecture position:
    Engines -- pure calculation.  No session, no clock, no I/O.  The
    service layer supplies the expected record and the extraction passes
    and persists the report.

Invariants enforced:
    - Same expected record and same raw text always yield the same report.
    - A verdict fails when any blocker is present, unless the raw text
      corroborates both the amount and the invoice number.  Warnings are
      reported but never fail the verdict.

Failure modes:
    - A text field that the document does not carry is a blocker mismatch
      (ParsingAmbiguity is converted, never propagated).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from txflow_kernel.exceptions import ParsingAmbiguity

from txflow_engines.reconciliation.amounts import amount_in_text, format_plain
from txflow_engines.reconciliation.parser import parse_merged_text
from txflow_engines.reconciliation.similarity import similarity
from txflow_engines.reconciliation.types import (
    ExpectedRecord,
    ExtractionPass,
    FieldResult,
    MergedDocument,
    ParsedDocument,
    ReconciledField,
    ReconciliationReport,
    Severity,
)
from txflow_engines.reconciliation.zones import ZoneMerger, render_merged_text
from txflow_engines.tracer import traced_engine

ZERO = Decimal("0")


@dataclass(frozen=True)
class ReconciliationThresholds:
    """Tunable thresholds; defaults mirror txflow_config defaults.yaml."""

    match_threshold: float = 0.75
    warning_floor: float = 0.5
    amount_tolerance: Decimal = Decimal("0.01")
    amount_warning_band: Decimal = Decimal("0.05")


def _summarize_report(report: ReconciliationReport) -> dict:
    return {
        "match": report.match,
        "mismatched_fields": list(report.mismatched_fields),
        "overridden": report.overridden,
    }


def _summarize_passes(result: tuple) -> dict:
    return _summarize_report(result[2])


def _relative_difference(expected: Decimal, detected: Decimal) -> Decimal:
    if expected == 0:
        return ZERO if detected == 0 else Decimal("1")
    return abs(detected - expected) / expected


class ReconciliationEngine:
    """Deterministic comparator between a transaction and its document."""

    def __init__(self, thresholds: ReconciliationThresholds | None = None) -> None:
        self.thresholds = thresholds or ReconciliationThresholds()
        self._merger = ZoneMerger()

    # -- text fields ---------------------------------------------------

    def _compare_text(
        self,
        field_name: ReconciledField,
        expected: str | None,
        parsed: ParsedDocument,
    ) -> FieldResult | None:
        try:
            detected = parsed.require(field_name)
        except ParsingAmbiguity:
            if not expected:
                return None
            detected = None

        if detected is not None and not expected:
            # Nothing recorded to compare against.
            return None

        in_text = bool(expected) and expected.lower() in parsed.raw_text.lower()
        if detected is None:
            if in_text:
                return FieldResult(
                    field=field_name, expected=expected, detected=expected,
                    matched=True, similarity=1.0, corroborated_by_text=True,
                )
            return FieldResult(
                field=field_name, expected=expected, detected=None,
                matched=False, severity=Severity.BLOCKER, similarity=0.0,
            )

        score = similarity(expected, detected)
        if score >= self.thresholds.match_threshold or in_text:
            return FieldResult(
                field=field_name, expected=expected, detected=detected,
                matched=True, similarity=score,
                corroborated_by_text=in_text and score < self.thresholds.match_threshold,
            )
        severity = Severity.WARNING if score >= self.thresholds.warning_floor else Severity.BLOCKER
        return FieldResult(
            field=field_name, expected=expected, detected=detected,
            matched=False, severity=severity, similarity=score,
        )

    # -- numeric fields ------------------------------------------------

    def _compare_amount(self, expected: Decimal, parsed: ParsedDocument) -> FieldResult | None:
        detected = parsed.grand_total
        diff = _relative_difference(expected, detected)
        in_text = amount_in_text(parsed.raw_text, expected)
        if (detected > 0 and diff <= self.thresholds.amount_tolerance) or in_text:
            return FieldResult(
                field=ReconciledField.AMOUNT,
                expected=format_plain(expected), detected=format_plain(detected),
                matched=True, difference=format_plain(abs(detected - expected)),
                corroborated_by_text=in_text and diff > self.thresholds.amount_tolerance,
            )
        if expected <= 0:
            return None
        severity = (
            Severity.WARNING if diff <= self.thresholds.amount_warning_band else Severity.BLOCKER
        )
        return FieldResult(
            field=ReconciledField.AMOUNT,
            expected=format_plain(expected), detected=format_plain(detected),
            matched=False, severity=severity,
            difference=format_plain(abs(detected - expected)),
        )

    def _compare_items_total(
        self, expected: Decimal, parsed: ParsedDocument,
    ) -> FieldResult | None:
        if expected <= 0:
            return None
        detected = parsed.items_total
        notes_source = None
        if detected == 0:
            if (
                parsed.grand_total > 0
                and _relative_difference(expected, parsed.grand_total)
                <= self.thresholds.amount_tolerance
            ):
                detected, notes_source = parsed.grand_total, True
            elif amount_in_text(parsed.raw_text, expected):
                detected, notes_source = expected, True

        diff = _relative_difference(expected, detected)
        if diff <= self.thresholds.amount_tolerance:
            return FieldResult(
                field=ReconciledField.ITEMS_TOTAL,
                expected=format_plain(expected), detected=format_plain(detected),
                matched=True, difference=format_plain(abs(detected - expected)),
                corroborated_by_text=bool(notes_source),
            )
        severity = (
            Severity.WARNING if diff <= self.thresholds.amount_warning_band else Severity.INFO
        )
        return FieldResult(
            field=ReconciledField.ITEMS_TOTAL,
            expected=format_plain(expected), detected=format_plain(detected),
            matched=False, severity=severity,
            difference=format_plain(abs(detected - expected)),
        )

    # -- verdict -------------------------------------------------------

    @traced_engine(
        "reconciliation", "1.0",
        fingerprint_fields=("expected", "parsed"),
        summarize=_summarize_report,
    )
    def reconcile(
        self,
        *,
        expected: ExpectedRecord,
        parsed: ParsedDocument,
        confidence: float = 0.0,
    ) -> ReconciliationReport:
        """Compare every recorded field and apply the verdict rule."""
        candidates = (
            self._compare_text(ReconciledField.VENDOR_NAME, expected.vendor_name, parsed),
            self._compare_text(ReconciledField.INVOICE_NUMBER, expected.invoice_number, parsed),
            self._compare_amount(expected.amount, parsed),
            self._compare_items_total(expected.items_total, parsed),
        )
        results = tuple(r for r in candidates if r is not None)

        blockers = sum(1 for r in results if not r.matched and r.severity == Severity.BLOCKER)
        match = blockers == 0

        notes: list[str] = []
        overridden = False
        if not match:
            amount_ok = amount_in_text(parsed.raw_text, expected.amount)
            invoice_ok = bool(expected.invoice_number) and (
                expected.invoice_number.lower() in parsed.raw_text.lower()
            )
            if amount_ok and invoice_ok:
                match, overridden = True, True
                notes.append("override: amount and invoice number found in raw text")

        return ReconciliationReport(
            match=match,
            results=results,
            parsed=parsed,
            confidence=confidence,
            overridden=overridden,
            notes=tuple(notes),
        )

    def reconcile_text(
        self,
        *,
        expected: ExpectedRecord,
        raw_text: str,
        confidence: float = 0.0,
    ) -> ReconciliationReport:
        """Reconcile against stored canonical text."""
        return self.reconcile(
            expected=expected, parsed=parse_merged_text(raw_text), confidence=confidence,
        )

    @traced_engine(
        "reconciliation_passes", "1.0",
        fingerprint_fields=("expected", "passes"),
        summarize=_summarize_passes,
    )
    def reconcile_passes(
        self,
        *,
        expected: ExpectedRecord,
        passes: Sequence[ExtractionPass],
    ) -> tuple[MergedDocument, str, ReconciliationReport]:
        """Merge raw passes, render canonical text, then reconcile it."""
        merged = self._merger.merge(passes=passes)
        raw_text = render_merged_text(merged)
        report = self.reconcile_text(
            expected=expected, raw_text=raw_text, confidence=merged.confidence,
        )
        return merged, raw_text, report
