"""
Amount normalisation for Indonesian and English notation.

Printed amounts on Indonesian invoices use '.' for thousands and ',' for
decimals; English documents do the opposite.  Both must normalise to the
same Decimal, and raw-text amount search must not match inside a longer
number.
"""

from decimal import Decimal

import pytest

from txflow_engines.reconciliation.amounts import (
    amount_in_text,
    amount_variants,
    format_en,
    format_id,
    format_plain,
    normalize_amount,
)


class TestNormalizeAmount:

    @pytest.mark.parametrize("printed, expected", [
        ("1.500.000", Decimal("1500000")),
        ("1,500,000", Decimal("1500000")),
        ("1.500.000,50", Decimal("1500000.50")),
        ("1,500,000.50", Decimal("1500000.50")),
        ("Rp 1.500.000", Decimal("1500000")),
        ("Rp. 750.000", Decimal("750000")),
        ("IDR 2.000", Decimal("2000")),
        ("750.000", Decimal("750000")),
        ("1,5", Decimal("1.5")),
        ("12.5", Decimal("12.5")),
        ("1500000", Decimal("1500000")),
    ])
    def test_printed_forms(self, printed, expected):
        assert normalize_amount(printed) == expected

    def test_single_separator_with_three_digits_is_thousands(self):
        assert normalize_amount("1.500") == Decimal("1500")
        assert normalize_amount("1,500") == Decimal("1500")

    def test_repeated_separator_with_short_tail_is_decimal(self):
        assert normalize_amount("1.500.50") == Decimal("1500.50")

    @pytest.mark.parametrize("garbage", ["", "abc", "Rp", "1.50.000", "--", None, "1.2345.678"])
    def test_unparseable_input_is_zero(self, garbage):
        assert normalize_amount(garbage) == Decimal("0")

    def test_numeric_inputs_pass_through(self):
        assert normalize_amount(Decimal("12.34")) == Decimal("12.34")
        assert normalize_amount(1500) == Decimal("1500")
        assert normalize_amount(True) == Decimal("0")


class TestFormatting:

    def test_english_and_indonesian_grouping(self):
        assert format_en(Decimal("1500000")) == "1,500,000.00"
        assert format_id(Decimal("1500000")) == "1.500.000,00"
        assert format_id(Decimal("1500000"), 0) == "1.500.000"

    def test_plain(self):
        assert format_plain(Decimal("1500000.000000000")) == "1500000"
        assert format_plain(Decimal("12.5")) == "12.50"

    def test_variants_cover_both_notations(self):
        variants = amount_variants(Decimal("1500000"))
        assert "1500000" in variants
        assert "1.500.000" in variants
        assert "1,500,000" in variants
        assert len(variants) == len(set(variants))


class TestAmountInText:

    def test_found_in_indonesian_notation(self):
        assert amount_in_text("Grand Total : Rp 1.500.000", Decimal("1500000"))

    def test_found_in_english_notation(self):
        assert amount_in_text("Amount due 1,500,000.00", Decimal("1500000"))

    def test_not_found_inside_a_longer_number(self):
        assert not amount_in_text("Grand Total 21.500.000", Decimal("1500000"))
        assert not amount_in_text("Grand Total 1.500.0000", Decimal("1500000"))

    def test_zero_or_empty_is_never_found(self):
        assert not amount_in_text("", Decimal("1500000"))
        assert not amount_in_text("Total 0", Decimal("0"))
