"""
Zone merger -- combines per-mode extraction passes by semantic role.

Each extraction pass has a fixed responsibility:

    HEADER   -> company line, vendor, invoice number/date, cost center, description
    ITEMS    -> item rows (description, account code, quantity, unit price, total)
    TOTAL    -> grand total
    FALLBACK -> consulted per field only when the primary pass yields nothing

The fallback never overrides a value found in the primary pass.  The merged
result is rendered as canonical text (see ``render_merged_text``) so the
same parser reads both fresh extractions and stored documents.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from txflow_engines.reconciliation.types import (
    ExtractionPass,
    MergedDocument,
    MergedItem,
    SemanticZone,
)
from txflow_engines.tracer import traced_engine

HEADER_SECTION = "=== OCR HEADER (PSM 4) ==="
ITEMS_SECTION = "=== OCR ITEMS (PSM 6) ==="
TOTAL_SECTION = "=== OCR TOTAL (PSM 12) ==="
ITEMS_COLUMNS = "Item Description | Account Code | Quantity | Unit Price | Total"

_H = r"[^\S\r\n]*"  # horizontal whitespace
_SEP = rf"{_H}[:|]?{_H}"
_I = re.IGNORECASE
_IM = re.IGNORECASE | re.MULTILINE

COMPANY_PATTERNS = (
    re.compile(rf"^((?:PT|CV|UD)(?:\.{_H}|[^\S\r\n]+)[A-Za-z][A-Za-z .&]*?){_H}$", _IM),
)

VENDOR_PATTERNS = (
    re.compile(rf"vendor{_H}name{_SEP}(.+)", _I),
    re.compile(rf"nama{_H}vendor{_SEP}(.+)", _I),
    re.compile(rf"vendor(?!{_H}name){_SEP}(.+)", _I),
)

_INV_TOKEN = r"INV[-\s]?\d+[-\s]?[A-Za-z]{2,10}"
INVOICE_NUMBER_PATTERNS = (
    re.compile(rf"invoice{_H}number{_SEP}({_INV_TOKEN})", _I),
    re.compile(rf"invoice{_H}number{_SEP}(.+)", _I),
    re.compile(rf"invoice{_H}no\b\.?{_SEP}({_INV_TOKEN})", _I),
    re.compile(rf"invoice{_H}no\b\.?{_SEP}(.+)", _I),
    re.compile(rf"no\.?{_H}invoice{_SEP}(.+)", _I),
    re.compile(rf"({_INV_TOKEN})"),
)

_MONTHS_ID = (
    "januari|februari|maret|april|mei|juni|juli|agustus|"
    "september|oktober|november|desember"
)
INVOICE_DATE_PATTERNS = (
    re.compile(rf"invoice{_H}date{_SEP}(.+)", _I),
    re.compile(rf"tanggal{_H}invoice{_SEP}(.+)", _I),
    re.compile(rf"tgl\.?{_H}invoice{_SEP}(.+)", _I),
    re.compile(rf"(\d{{1,2}}\s+(?:{_MONTHS_ID})\s+\d{{4}})", _I),
)

COST_CENTER_PATTERNS = (
    re.compile(rf"cost{_H}cent(?:er|re){_SEP}(.+)", _I),
    re.compile(rf"pusat{_H}biaya{_SEP}(.+)", _I),
    re.compile(r"([A-Z]{2,}-DEPT-\d+)"),
)

DESCRIPTION_PATTERNS = (
    re.compile(rf"transaction{_H}description{_SEP}(.+)", _I),
    re.compile(rf"deskripsi{_H}transaksi{_SEP}(.+)", _I),
    re.compile(rf"keterangan{_SEP}(.+)", _I),
    re.compile(rf"^{_H}description{_SEP}(.+)", _IM),
)

_AMOUNT = rf"(?:rp\.?{_H})?(\d[\d.,]*)"
GRAND_TOTAL_PATTERNS = (
    re.compile(rf"grand{_H}total{_SEP}{_AMOUNT}", _I),
    re.compile(rf"total{_H}(?:keseluruhan|akhir|pembayaran)?{_SEP}{_AMOUNT}", _I),
    re.compile(rf"jumlah{_H}total{_SEP}{_AMOUNT}", _I),
    re.compile(rf"amount{_H}due{_SEP}{_AMOUNT}", _I),
    re.compile(rf"net{_H}total{_SEP}{_AMOUNT}", _I),
    re.compile(rf"subtotal{_H}(?:after{_H}tax)?{_SEP}{_AMOUNT}", _I),
)

_ROW_SPLIT = re.compile(r"\s{2,}|\t|\|")
_NUMERIC_CELL = re.compile(r"^(?:rp\.?\s*)?[\d.,]+$", re.IGNORECASE)
_ACCOUNT_CODE = re.compile(r"^\d+-\w+-\w+$")
_SEPARATOR_ROW = re.compile(r"^[-=]+$")
_TABLE_END = (re.compile(r"grand\s*total", re.IGNORECASE), re.compile(r"^total\s*:", re.IGNORECASE))


def _clean(value: str) -> str:
    return value.strip().strip(":|").strip()


def first_match(patterns: Sequence[re.Pattern], text: str) -> str:
    """First non-empty capture of any pattern, in pattern order."""
    if not text:
        return ""
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = _clean(match.group(1))
            if value:
                return value
    return ""


def extract_or_fallback(patterns: Sequence[re.Pattern], primary: str, fallback: str) -> str:
    """Search the primary text; only consult the fallback when it is empty."""
    return first_match(patterns, primary) or first_match(patterns, fallback)


def normalize_invoice_number(value: str) -> str:
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"-{2,}", "-", value)
    return value.strip("-").upper()


def _is_table_header(line: str) -> bool:
    lower = line.lower()
    return (
        ("description" in lower and any(k in lower for k in ("qty", "quantity", "price", "total")))
        or ("deskripsi" in lower and any(k in lower for k in ("qty", "harga", "total")))
        or ("item" in lower and "code" in lower)
    )


def _leading_int(value: str, default: int = 1) -> int:
    match = re.match(r"\d+", value)
    return int(match.group(0)) if match and int(match.group(0)) > 0 else default


def parse_item_row(row: str) -> MergedItem | None:
    """Split an item row and pick quantity/unit price/total from the right.

    Returns None when the row has fewer than four cells, fewer than two
    numeric cells on the right, or no description.
    """
    parts = [p.strip() for p in _ROW_SPLIT.split(row)]
    parts = [p for p in parts if p]
    if len(parts) < 4:
        return None

    numeric: list[int] = []
    for index in range(len(parts) - 1, -1, -1):
        if _NUMERIC_CELL.match(parts[index]):
            numeric.insert(0, index)
            if len(numeric) == 3:
                break
        elif numeric:
            break
    if len(numeric) < 2:
        return None

    total_idx, unit_idx = numeric[-1], numeric[-2]
    if len(numeric) == 3:
        qty_idx = numeric[0]
        quantity = _leading_int(parts[qty_idx])
    else:
        qty_idx = unit_idx
        quantity = 1

    description_parts: list[str] = []
    account_code = ""
    for part in parts[:qty_idx]:
        if _ACCOUNT_CODE.match(part) and not account_code:
            account_code = part
        else:
            description_parts.append(part)
    description = " ".join(description_parts)
    if not description:
        return None

    return MergedItem(
        description=description,
        account_code=account_code,
        quantity=quantity,
        unit_price=parts[unit_idx],
        total=parts[total_idx],
    )


def extract_items(text: str) -> tuple[MergedItem, ...]:
    """Item rows after the table header; every line when no header exists."""
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]

    start = next((i for i, line in enumerate(lines) if _is_table_header(line)), None)
    if start is None:
        candidates: Iterable[str] = lines
    else:
        candidates = []
        for row in lines[start + 1:]:
            if any(p.search(row) for p in _TABLE_END):
                break
            if _SEPARATOR_ROW.match(row) or len(row) < 5:
                continue
            candidates.append(row)

    items = []
    for row in candidates:
        item = parse_item_row(row)
        if item is not None:
            items.append(item)
    return tuple(items)


class ZoneMerger:
    """Merges extraction passes into one MergedDocument by semantic role."""

    @staticmethod
    def _zone_text(passes: Sequence[ExtractionPass], zone: SemanticZone) -> str:
        return "\n".join(p.text for p in passes if p.zone == zone and p.text)

    @traced_engine("zone_merger", "1.0", fingerprint_fields=("passes",))
    def merge(self, *, passes: Sequence[ExtractionPass]) -> MergedDocument:
        header = self._zone_text(passes, SemanticZone.HEADER)
        items_text = self._zone_text(passes, SemanticZone.ITEMS)
        total = self._zone_text(passes, SemanticZone.TOTAL)
        fallback = self._zone_text(passes, SemanticZone.FALLBACK)

        company = extract_or_fallback(COMPANY_PATTERNS, header, fallback)
        vendor = extract_or_fallback(VENDOR_PATTERNS, header, fallback) or company

        items = extract_items(items_text) or extract_items(fallback)

        grand_total = extract_or_fallback(GRAND_TOTAL_PATTERNS, total, fallback)

        return MergedDocument(
            company_line=company,
            vendor=vendor,
            invoice_number=normalize_invoice_number(
                extract_or_fallback(INVOICE_NUMBER_PATTERNS, header, fallback)
            ),
            invoice_date=extract_or_fallback(INVOICE_DATE_PATTERNS, header, fallback),
            cost_center=extract_or_fallback(COST_CENTER_PATTERNS, header, fallback),
            description=extract_or_fallback(DESCRIPTION_PATTERNS, header, fallback),
            items=items,
            grand_total=f"Rp {grand_total}" if grand_total else "",
            confidence=max((p.confidence for p in passes), default=0.0),
        )


def render_merged_text(document: MergedDocument) -> str:
    """Canonical raw text for a merged document."""
    lines = [
        HEADER_SECTION,
        document.company_line,
        "INVOICE",
        f"Vendor Name : {document.vendor}",
        f"Invoice Number : {document.invoice_number}",
        f"Invoice Date : {document.invoice_date}",
        f"Cost Center : {document.cost_center}",
        f"Transaction Description : {document.description}",
        "",
        ITEMS_SECTION,
        ITEMS_COLUMNS,
    ]
    lines.extend(
        f"{i.description} | {i.account_code} | {i.quantity} | {i.unit_price} | {i.total}"
        for i in document.items
    )
    lines.extend(["", TOTAL_SECTION, f"Grand Total : {document.grand_total}"])
    return "\n".join(lines) + "\n"
