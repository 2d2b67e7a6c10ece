"""Reads canonical merged text back into a ParsedDocument."""

from __future__ import annotations

import re

from txflow_engines.reconciliation.amounts import normalize_amount
from txflow_engines.reconciliation.types import ParsedDocument, ParsedItem
from txflow_engines.reconciliation.zones import ITEMS_COLUMNS, ITEMS_SECTION, TOTAL_SECTION

_LABELLED = {
    "vendor": re.compile(r"^vendor name\s*:\s*(.+)$", re.IGNORECASE),
    "invoice_number": re.compile(r"^invoice number\s*:\s*(.+)$", re.IGNORECASE),
    "invoice_date": re.compile(r"^invoice date\s*:\s*(.+)$", re.IGNORECASE),
    "cost_center": re.compile(r"^cost center\s*:\s*(.+)$", re.IGNORECASE),
    "description": re.compile(r"^transaction description\s*:\s*(.+)$", re.IGNORECASE),
}
_GRAND_TOTAL = re.compile(r"^grand total\s*:\s*(?:rp\.?\s*)?([\d.,]+)", re.IGNORECASE)
_COMPANY_LINE = re.compile(r"^(?:PT|CV|UD)\s+", re.IGNORECASE)


def _int_or_one(value: str) -> int:
    match = re.match(r"\d+", value.strip())
    return int(match.group(0)) if match and int(match.group(0)) > 0 else 1


def parse_merged_text(text: str) -> ParsedDocument:
    """Parse header labels, the items table and the grand total.

    Unlabelled vendors fall back to the first PT/CV/UD company line.
    """
    lines = [line.strip() for line in (text or "").splitlines()]
    lines = [line for line in lines if line]
    log: list[str] = []
    fields: dict[str, str] = {}
    grand_total = normalize_amount(None)

    for line in lines:
        for name, pattern in _LABELLED.items():
            match = pattern.match(line)
            if match and match.group(1).strip():
                fields[name] = match.group(1).strip()
                log.append(f"{name}: {fields[name]}")
        total_match = _GRAND_TOTAL.match(line)
        if total_match:
            grand_total = normalize_amount(total_match.group(1))
            log.append(f"grand_total: {grand_total}")

    items: list[ParsedItem] = []
    in_items = False
    for line in lines:
        if line.startswith(ITEMS_SECTION[:12]) and "ITEMS" in line:
            in_items = True
            continue
        if line.startswith(TOTAL_SECTION[:12]) and "TOTAL" in line:
            in_items = False
            continue
        if not in_items or "|" not in line or line == ITEMS_COLUMNS:
            continue
        parts = [p.strip() for p in line.split("|")]
        if len(parts) < 5:
            continue
        item = ParsedItem(
            description=parts[0],
            account_code=parts[1],
            quantity=_int_or_one(parts[2]),
            unit_price=normalize_amount(parts[3]),
            total=normalize_amount(parts[4]),
        )
        items.append(item)
        log.append(f"item: {item.description} = {item.total}")

    if "vendor" not in fields:
        for line in lines:
            if _COMPANY_LINE.match(line):
                fields["vendor"] = line
                log.append(f"vendor from company line: {line}")
                break

    return ParsedDocument(
        vendor=fields.get("vendor"),
        invoice_number=fields.get("invoice_number"),
        invoice_date=fields.get("invoice_date"),
        cost_center=fields.get("cost_center"),
        description=fields.get("description"),
        items=tuple(items),
        grand_total=grand_total,
        raw_text=text or "",
        parse_log=tuple(log),
    )
