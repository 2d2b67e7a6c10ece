"""
Value types for document reconciliation.

All types are frozen dataclasses.  ``to_dict`` renders JSON-safe
dictionaries (Decimals as strings) for persistence on the document row.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from txflow_kernel.exceptions import ParsingAmbiguity

from txflow_engines.reconciliation.amounts import normalize_amount


class SemanticZone(str, Enum):
    """Fixed responsibility of one extraction pass."""

    HEADER = "header"
    ITEMS = "items"
    TOTAL = "total"
    FALLBACK = "fallback"


class Severity(str, Enum):
    WARNING = "warning"
    BLOCKER = "blocker"
    INFO = "info"


class ReconciledField(str, Enum):
    """Recorded fields compared against the document."""

    VENDOR_NAME = "vendor_name"
    INVOICE_NUMBER = "invoice_number"
    AMOUNT = "amount"
    ITEMS_TOTAL = "items_total"


TEXT_FIELDS = frozenset({ReconciledField.VENDOR_NAME, ReconciledField.INVOICE_NUMBER})
NUMERIC_FIELDS = frozenset({ReconciledField.AMOUNT, ReconciledField.ITEMS_TOTAL})


def _text(value: Decimal) -> str:
    return format(value.normalize(), "f") if value else "0"


@dataclass(frozen=True)
class ExtractionPass:
    """Raw text produced by one extraction mode."""

    zone: SemanticZone
    text: str
    confidence: float = 0.0
    mode: str | None = None

    @classmethod
    def failed(cls, zone: SemanticZone, mode: str | None = None) -> ExtractionPass:
        return cls(zone=zone, text="", confidence=0.0, mode=mode)


@dataclass(frozen=True)
class MergedItem:
    """Item row as extracted from the items zone, amounts still printed."""

    description: str
    account_code: str
    quantity: int
    unit_price: str
    total: str


@dataclass(frozen=True)
class MergedDocument:
    """Zone-merged extraction result, before field parsing."""

    company_line: str = ""
    vendor: str = ""
    invoice_number: str = ""
    invoice_date: str = ""
    cost_center: str = ""
    description: str = ""
    items: tuple[MergedItem, ...] = ()
    grand_total: str = ""
    confidence: float = 0.0


@dataclass(frozen=True)
class ParsedItem:
    description: str
    account_code: str
    quantity: int
    unit_price: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "account_code": self.account_code,
            "quantity": self.quantity,
            "unit_price": _text(self.unit_price),
            "total": _text(self.total),
        }


@dataclass(frozen=True)
class ParsedDocument:
    """Structured fields read back from canonical merged text."""

    vendor: str | None = None
    invoice_number: str | None = None
    invoice_date: str | None = None
    cost_center: str | None = None
    description: str | None = None
    items: tuple[ParsedItem, ...] = ()
    grand_total: Decimal = Decimal("0")
    raw_text: str = ""
    parse_log: tuple[str, ...] = ()

    @property
    def items_total(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0"))

    def require(self, field_name: ReconciledField) -> str:
        """Detected text for a text field; ParsingAmbiguity when absent."""
        value = {
            ReconciledField.VENDOR_NAME: self.vendor,
            ReconciledField.INVOICE_NUMBER: self.invoice_number,
        }[field_name]
        if not value:
            raise ParsingAmbiguity(field_name.value)
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor,
            "invoice_number": self.invoice_number,
            "invoice_date": self.invoice_date,
            "cost_center": self.cost_center,
            "description": self.description,
            "items": [item.to_dict() for item in self.items],
            "grand_total": _text(self.grand_total),
        }


@dataclass(frozen=True)
class ExpectedRecord:
    """Recorded transaction values that the document must corroborate."""

    vendor_name: str | None
    invoice_number: str | None
    amount: Decimal
    items_total: Decimal = Decimal("0")

    def with_overrides(self, overrides: Mapping[str, str] | None) -> ExpectedRecord:
        """Overlay corrected values (e.g. an exception-case patch)."""
        if not overrides:
            return self
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            name = ReconciledField(key)
            if name in NUMERIC_FIELDS:
                changes[name.value] = normalize_amount(value)
            else:
                changes[name.value] = str(value)
        return replace(self, **changes)


@dataclass(frozen=True)
class FieldResult:
    """Outcome of comparing one recorded field."""

    field: ReconciledField
    expected: str | None
    detected: str | None
    matched: bool
    severity: Severity | None = None
    similarity: float | None = None
    difference: str | None = None
    corroborated_by_text: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "field": self.field.value,
            "expected": self.expected,
            "detected": self.detected,
            "status": "match" if self.matched else "mismatch",
        }
        if self.severity is not None:
            data["severity"] = self.severity.value
        if self.similarity is not None:
            data["similarity"] = round(self.similarity, 4)
        if self.difference is not None:
            data["difference"] = self.difference
        if self.corroborated_by_text:
            data["corroborated_by_text"] = True
        return data


@dataclass(frozen=True)
class ReconciliationReport:
    """Deterministic verdict plus per-field detail."""

    match: bool
    results: tuple[FieldResult, ...]
    parsed: ParsedDocument
    confidence: float
    overridden: bool = False
    notes: tuple[str, ...] = field(default=())

    @property
    def mismatches(self) -> tuple[FieldResult, ...]:
        return tuple(r for r in self.results if not r.matched)

    @property
    def matches(self) -> tuple[FieldResult, ...]:
        return tuple(r for r in self.results if r.matched)

    @property
    def mismatched_fields(self) -> tuple[str, ...]:
        return tuple(r.field.value for r in self.mismatches)

    def count(self, severity: Severity) -> int:
        return sum(1 for r in self.mismatches if r.severity == severity)

    def result_for(self, field_name: ReconciledField) -> FieldResult | None:
        for r in self.results:
            if r.field == field_name:
                return r
        return None

    def summary_text(self) -> str:
        if self.match:
            return "All reconciled fields match the document"
        parts = [
            f"{r.field.value}: expected {r.expected!r}, detected {r.detected!r} ({r.severity.value})"
            for r in self.mismatches
            if r.severity is not None
        ]
        return "; ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "match": self.match,
            "mismatches": [r.to_dict() for r in self.mismatches],
            "matches": [r.to_dict() for r in self.matches],
            "parsed": self.parsed.to_dict(),
            "summary": {
                "parsed_items_total": _text(self.parsed.items_total),
                "detected_grand_total": _text(self.parsed.grand_total),
                "confidence": self.confidence,
                "blocker_count": self.count(Severity.BLOCKER),
                "warning_count": self.count(Severity.WARNING),
                "match_count": len(self.matches),
                "overridden": self.overridden,
            },
            "confidence": self.confidence,
            "parse_log": list(self.parsed.parse_log) + list(self.notes),
        }
