"""Tests for amount token detection and normalisation."""

from decimal import Decimal

import pytest

from scan_and_fill.extraction.numbers import extract_numbers, parse_amount


def amounts(text: str) -> list[Decimal]:
    return [c.amount for c in extract_numbers(text)]


class TestParseAmount:
    """Tests for token normalisation."""

    def test_decimal_comma(self):
        assert parse_amount("236,50") == Decimal("236.50")

    def test_thousands_dot_decimal_comma(self):
        assert parse_amount("1.234,56") == Decimal("1234.56")
        assert parse_amount("12.345.678,90") == Decimal("12345678.90")

    def test_space_thousands(self):
        assert parse_amount("1 234.56") == Decimal("1234.56")
        assert parse_amount("1 234,56") == Decimal("1234.56")

    def test_dot_only_reads_leading_number(self):
        assert parse_amount("1.234") == Decimal("1.234")
        assert parse_amount("1.234.567") == Decimal("1.234")

    def test_not_a_number(self):
        assert parse_amount("abc") is None


class TestExtractNumbers:
    """Tests for candidate filtering."""

    def test_currency_amount(self):
        (candidate,) = extract_numbers("Prix 12,50 €")
        assert candidate.amount == Decimal("12.50")
        assert candidate.currency is True
        assert candidate.context == "...Prix 12,50 €..."

    def test_bare_amount_has_no_currency(self):
        (candidate,) = extract_numbers("Prix 1.234,56")
        assert candidate.amount == Decimal("1234.56")
        assert candidate.currency is False

    def test_chf_counts_as_currency(self):
        (candidate,) = extract_numbers("CHF 80.00")
        assert candidate.currency is True

    @pytest.mark.parametrize("text", [
        "FA2024-001",                 # glued to letters and dashes
        "IBAN: 123,45",               # identifier vocabulary
        "Commande 456,00",
        "Page 1 / 2",                 # page counter
        "-- 3 --",
        "Année 2025",                 # bare year
        "Tel 04 79 12 34 56",         # phone number
        "Phone: 555,00",
        "73340 Bellecombe",           # postal code
        "Code 1234567890123",         # barcode
        "Remise 10 %",                # percentage
        "le 12/03",                   # date fragment
    ])
    def test_rejected_tokens(self, text):
        assert amounts(text) == []

    def test_bounds_are_exclusive(self):
        assert amounts("Montant : 1 000 000,00") == []
        assert amounts("Montant : 0,01") == []
        assert amounts("Montant : 999 999,99") == [Decimal("999999.99")]
        assert amounts("Montant : 0,02") == [Decimal("0.02")]

    def test_newline_is_not_a_thousands_separator(self):
        assert amounts("Prix 12\n345,00") == [Decimal("12"), Decimal("345.00")]

    def test_offsets_point_into_text(self):
        text = "Prix 12,50 €"
        (candidate,) = extract_numbers(text, offset=100)
        assert candidate.start == 105
        assert candidate.length == 5
        assert candidate.render_context("x" * 105 + "12,50", width=2) == "...xx12,50..."
