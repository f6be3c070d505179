"""
Unit tests for field normalization.

Tests date and amount normalization, header aliases and text helpers.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from txmatch.core.exceptions import UnparseableAmountError, UnparseableDateError
from txmatch.core.normalize import (
    NormalizeResult,
    expand_two_digit_year,
    normalize_amount,
    normalize_date,
    normalize_header,
    parse_signed_amount,
    resolve_field,
    title_case,
    truncate,
)


class TestNormalizeDate:
    """Tests for normalize_date."""

    @pytest.mark.parametrize("raw,expected", [
        ("2024-01-05", date(2024, 1, 5)),
        ("1/5/2024", date(2024, 1, 5)),
        ("01/05/2024", date(2024, 1, 5)),
        ("1-5-2024", date(2024, 1, 5)),
        ("12/31/2023", date(2023, 12, 31)),
        ("1/5/24", date(2024, 1, 5)),
        ("  2024-02-29  ", date(2024, 2, 29)),
    ])
    def test_known_formats(self, raw, expected):
        result = normalize_date(raw)

        assert result.ok
        assert result.value == expected

    @pytest.mark.parametrize("raw,expected_year", [
        ("1/5/00", 2000),
        ("1/5/49", 2049),
        ("1/5/50", 1950),
        ("1/5/99", 1999),
    ])
    def test_two_digit_year_pivot(self, raw, expected_year):
        assert normalize_date(raw).value.year == expected_year

    def test_custom_pivot(self):
        assert normalize_date("1/5/60", pivot=70).value == date(2060, 1, 5)

    def test_generic_fallback(self):
        """Test that month-name dates go through the generic parser."""
        result = normalize_date("Jan 5, 2024")

        assert result.ok
        assert result.value == date(2024, 1, 5)

    def test_date_objects_pass_through(self):
        assert normalize_date(date(2024, 3, 1)).value == date(2024, 3, 1)
        assert normalize_date(datetime(2024, 3, 1, 23, 59)).value == date(2024, 3, 1)

    @pytest.mark.parametrize("raw", ["", "   ", None, "not a date", "2/30/2024", "13/01/2024"])
    def test_unparseable(self, raw):
        result = normalize_date(raw)

        assert not result.ok
        assert result.value is None
        assert isinstance(result.error, UnparseableDateError)
        assert result.error.code == "UNPARSEABLE_DATE"

    def test_expand_two_digit_year(self):
        assert expand_two_digit_year(24) == 2024
        assert expand_two_digit_year(75) == 1975


class TestNormalizeAmount:
    """Tests for amount parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("42.50", Decimal("42.50")),
        ("$1,234.56", Decimal("1234.56")),
        ("-15.00", Decimal("15.00")),
        ("(42.50)", Decimal("42.50")),
        ("$ 7", Decimal("7.00")),
        ("1.005", Decimal("1.01")),
        (42.5, Decimal("42.50")),
        (Decimal("3.1"), Decimal("3.10")),
    ])
    def test_normalize_amount_is_absolute(self, raw, expected):
        result = normalize_amount(raw)

        assert result.ok
        assert result.value == expected
        assert result.value >= 0

    @pytest.mark.parametrize("raw,expected", [
        ("-15.00", Decimal("-15.00")),
        ("(1,000.00)", Decimal("-1000.00")),
        ("$20.00", Decimal("20.00")),
    ])
    def test_signed_amount_keeps_sign(self, raw, expected):
        assert parse_signed_amount(raw).value == expected

    @pytest.mark.parametrize("raw", ["", "abc", "12.5.3", "12abc", None, "--5"])
    def test_unparseable(self, raw):
        result = normalize_amount(raw)

        assert not result.ok
        assert isinstance(result.error, UnparseableAmountError)
        assert result.value_or(Decimal("0")) == Decimal("0")


class TestHeaders:
    """Tests for header normalization and alias resolution."""

    @pytest.mark.parametrize("raw,expected", [
        ("Date", "date"),
        ("  Report Date ", "report date"),
        ("Job #", "job"),
        ("Total ($)", "total"),
        ("Team_Member", "teammember"),
        (None, ""),
    ])
    def test_normalize_header(self, raw, expected):
        assert normalize_header(raw) == expected

    def test_first_alias_wins(self):
        row = {"total": "10.00", "amount": "20.00"}

        assert resolve_field(row, ["amount", "total"]) == "20.00"

    def test_blank_values_are_skipped(self):
        row = {"amount": "  ", "total": "10.00"}

        assert resolve_field(row, ["amount", "total"]) == "10.00"

    def test_alias_is_normalized_before_lookup(self):
        row = {"job": "wo-12"}

        assert resolve_field(row, ["job #"]) == "wo-12"

    def test_converter_skips_failing_values(self):
        row = {"date": "pending", "created": "2024-01-05"}

        value = resolve_field(row, ["date", "created"], normalize_date)

        assert value == date(2024, 1, 5)

    def test_nothing_found(self):
        assert resolve_field({"foo": "bar"}, ["amount", "total"]) is None


class TestTextHelpers:
    def test_title_case(self):
        assert title_case("jane doe") == "Jane Doe"
        assert title_case("mcDONALD") == "McDONALD"
        assert title_case("") == ""

    def test_truncate(self):
        assert len(truncate("x" * 200, 150)) == 150
        assert truncate("short", 150) == "short"
        assert truncate(None) == ""


class TestNormalizeResult:
    def test_success_and_failure(self):
        ok = NormalizeResult.success(5)
        bad = NormalizeResult.failure(UnparseableAmountError("x"))

        assert ok.ok and ok.value == 5
        assert not bad.ok and bad.value_or(0) == 0
