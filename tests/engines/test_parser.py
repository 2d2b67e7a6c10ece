"""Parsing canonical merged text back into structured fields."""

from decimal import Decimal

import pytest

from txflow_engines.reconciliation.parser import parse_merged_text
from txflow_engines.reconciliation.types import (
    ExtractionPass,
    ReconciledField,
    SemanticZone,
)
from txflow_engines.reconciliation.zones import ZoneMerger, render_merged_text
from txflow_kernel.exceptions import ParsingAmbiguity
from tests.conftest import HEADER_TEXT, ITEMS_TEXT, TOTAL_TEXT


@pytest.fixture
def canonical_text():
    merged = ZoneMerger().merge(passes=[
        ExtractionPass(SemanticZone.HEADER, HEADER_TEXT, 0.9, "4"),
        ExtractionPass(SemanticZone.ITEMS, ITEMS_TEXT, 0.9, "6"),
        ExtractionPass(SemanticZone.TOTAL, TOTAL_TEXT, 0.9, "12"),
    ])
    return render_merged_text(merged)


def test_parses_header_fields(canonical_text):
    parsed = parse_merged_text(canonical_text)

    assert parsed.vendor == "PT Sumber Makmur Abadi"
    assert parsed.invoice_number == "INV-2024-001"
    assert parsed.invoice_date == "12 Januari 2024"
    assert parsed.cost_center == "FIN-DEPT-01"
    assert parsed.description == "Office laptops"


def test_parses_items_and_total(canonical_text):
    parsed = parse_merged_text(canonical_text)

    assert len(parsed.items) == 2
    assert parsed.items[0].unit_price == Decimal("750000")
    assert parsed.items[1].total == Decimal("750000")
    assert parsed.items_total == Decimal("1500000")
    assert parsed.grand_total == Decimal("1500000")
    assert parsed.raw_text == canonical_text
    assert any(entry.startswith("grand_total") for entry in parsed.parse_log)


def test_vendor_from_company_line_when_unlabelled():
    parsed = parse_merged_text("PT Contoh Sejahtera\nInvoice Number : INV-1-AB\n")
    assert parsed.vendor == "PT Contoh Sejahtera"


def test_empty_labels_are_ignored():
    parsed = parse_merged_text("Vendor Name : \nInvoice Number :   \nGrand Total : Rp \n")
    assert parsed.vendor is None
    assert parsed.invoice_number is None
    assert parsed.grand_total == Decimal("0")


def test_require_raises_for_missing_text_field():
    parsed = parse_merged_text("")
    with pytest.raises(ParsingAmbiguity) as exc_info:
        parsed.require(ReconciledField.INVOICE_NUMBER)
    assert exc_info.value.field == "invoice_number"


def test_to_dict_is_json_safe(canonical_text):
    data = parse_merged_text(canonical_text).to_dict()
    assert data["grand_total"] == "1500000"
    assert data["items"][0]["unit_price"] == "750000"
