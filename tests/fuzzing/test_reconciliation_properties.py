"""
Property-based tests for the reconciliation engines.

Properties:
- Amounts printed in English or Indonesian grouping parse back to the
  same value, and are found again in document text.
- Similarity is bounded, symmetric and exact on identical input.
- A document that repeats the recorded values always matches, and the
  verdict for any input is deterministic.
"""

import string
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from txflow_engines.reconciliation.amounts import (
    amount_in_text,
    format_en,
    format_id,
    normalize_amount,
)
from txflow_engines.reconciliation.matcher import ReconciliationEngine
from txflow_engines.reconciliation.similarity import normalize_text, similarity
from txflow_engines.reconciliation.types import (
    ExpectedRecord,
    ParsedDocument,
    ParsedItem,
    Severity,
)

amounts = st.decimals(
    min_value=0, max_value=10**12, places=2, allow_nan=False, allow_infinity=False,
)
positive_amounts = st.decimals(
    min_value=Decimal("0.01"), max_value=10**12, places=2, allow_nan=False, allow_infinity=False,
)
words = st.text(alphabet=string.ascii_letters + string.digits + " -./", min_size=0, max_size=24)
identifiers = st.text(alphabet=string.ascii_uppercase + string.digits, min_size=1, max_size=16)


class TestAmountProperties:

    @given(amount=amounts)
    @settings(max_examples=200, deadline=None)
    def test_english_round_trip(self, amount):
        assert normalize_amount(format_en(amount)) == amount

    @given(amount=amounts)
    @settings(max_examples=200, deadline=None)
    def test_indonesian_round_trip(self, amount):
        assert normalize_amount(format_id(amount)) == amount

    @given(amount=st.integers(min_value=0, max_value=10**12))
    @settings(max_examples=100, deadline=None)
    def test_whole_rupiah_round_trip(self, amount):
        assert normalize_amount(format_id(Decimal(amount), 0)) == amount
        assert normalize_amount(f"Rp {format_id(Decimal(amount), 0)}") == amount

    @given(amount=positive_amounts)
    @settings(max_examples=100, deadline=None)
    def test_printed_total_is_found(self, amount):
        text = f"Grand Total : Rp {format_id(amount)}\n"
        assert amount_in_text(text, amount)

    @given(value=st.text(max_size=30))
    @settings(max_examples=200, deadline=None)
    def test_normalize_never_raises(self, value):
        assert normalize_amount(value) >= 0


class TestSimilarityProperties:

    @given(left=words, right=words)
    @settings(max_examples=200, deadline=None)
    def test_bounded_and_symmetric(self, left, right):
        score = similarity(left, right)
        assert 0.0 <= score <= 1.0
        assert score == similarity(right, left)

    @given(value=words)
    @settings(max_examples=100, deadline=None)
    def test_identical_input(self, value):
        expected = 1.0 if normalize_text(value) else 0.0
        assert similarity(value, value) == expected

    @given(value=identifiers)
    @settings(max_examples=100, deadline=None)
    def test_case_and_punctuation_insensitive(self, value):
        assert similarity(value, f" {value.lower()}. ") == 1.0


def _document(vendor, invoice_number, amount):
    return ParsedDocument(
        vendor=vendor,
        invoice_number=invoice_number,
        items=(ParsedItem("Item", "", 1, amount, amount),),
        grand_total=amount,
        raw_text="",
    )


class TestVerdictProperties:

    @given(vendor=identifiers, invoice_number=identifiers, amount=positive_amounts)
    @settings(max_examples=100, deadline=None)
    def test_faithful_document_matches(self, vendor, invoice_number, amount):
        expected = ExpectedRecord(vendor, invoice_number, amount, amount)
        report = ReconciliationEngine().reconcile(
            expected=expected, parsed=_document(vendor, invoice_number, amount),
        )
        assert report.match
        assert report.mismatched_fields == ()

    @given(
        invoice_number=identifiers,
        detected_invoice=identifiers,
        amount=positive_amounts,
        detected_amount=amounts,
    )
    @settings(max_examples=100, deadline=None)
    def test_verdict_is_deterministic(self, invoice_number, detected_invoice, amount,
                                      detected_amount):
        expected = ExpectedRecord("PT Vendor", invoice_number, amount, amount)
        parsed = _document("PT Vendor", detected_invoice, detected_amount)

        first = ReconciliationEngine().reconcile(expected=expected, parsed=parsed)
        second = ReconciliationEngine().reconcile(expected=expected, parsed=parsed)

        assert first.to_dict() == second.to_dict()
        assert first.match == (first.count(Severity.BLOCKER) == 0 or first.overridden)
