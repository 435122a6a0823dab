"""Tests for raw cell coercion: numbers, timestamps, cell shapes."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from trade_report.core.enums import CellShape
from trade_report.ingest.cells import (
    DateParse,
    cell_text,
    classify_cell,
    combine_date_time,
    is_blank,
    parse_datetime,
    to_decimal,
    to_float,
)


class TestCellText:
    def test_none_is_empty(self):
        assert cell_text(None) == ""

    def test_integral_float_drops_suffix(self):
        """Deal ids read from xlsx come back as 1001.0."""
        assert cell_text(1001.0) == "1001"

    def test_nan_is_empty(self):
        assert cell_text(float("nan")) == ""

    def test_strips_whitespace(self):
        assert cell_text("  EURUSD ") == "EURUSD"

    @pytest.mark.parametrize("value", ["", "-", "n/a", "NaN", None])
    def test_blank_markers(self, value):
        assert is_blank(value)

    def test_zero_is_not_blank(self):
        assert not is_blank("0")


class TestToDecimal:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1234.56", Decimal("1234.56")),
            ("1,234.56", Decimal("1234.56")),
            ("1.234,56", Decimal("1234.56")),
            ("1,5", Decimal("1.5")),
            ("-1,5", Decimal("-1.5")),
            ("0,123", Decimal("0.123")),
            ("1,234", Decimal("1234")),
            ("1.234.567", Decimal("1234567")),
            ("1 000.00", Decimal("1000.00")),
            ("$250.00", Decimal("250.00")),
            ("(12.50)", Decimal("-12.50")),
            ("+3", Decimal("3")),
        ],
    )
    def test_locale_formats(self, text, expected):
        assert to_decimal(text) == expected

    def test_native_float(self):
        assert to_decimal(1.5) == Decimal("1.5")

    def test_native_int(self):
        assert to_decimal(42) == Decimal("42")

    def test_text_returns_default(self):
        assert to_decimal("EURUSD") == Decimal("0")

    def test_explicit_none_default(self):
        assert to_decimal("", default=None) is None
        assert to_decimal("abc", default=None) is None

    def test_nan_and_inf_return_default(self):
        assert to_decimal(float("nan"), default=None) is None
        assert to_decimal(float("inf"), default=None) is None

    def test_bool_is_not_a_number(self):
        assert to_decimal(True, default=None) is None

    def test_to_float(self):
        assert to_float("1,234.5") == 1234.5
        assert to_float("n/a", default=-1.0) == -1.0


class TestParseDatetime:
    def test_mt5_dotted_year_first(self):
        parsed = parse_datetime("2024.01.02 10:00:00")
        assert parsed.ok
        assert parsed.value == datetime(2024, 1, 2, 10, 0, 0)
        assert parsed.fmt == "dotted"

    def test_dotted_day_first(self):
        assert parse_datetime("02.01.2024 10:00").value == datetime(2024, 1, 2, 10, 0)

    def test_slashed_month_first(self):
        assert parse_datetime("01/02/2024 10:00").value == datetime(2024, 1, 2, 10, 0)

    def test_slashed_day_first_when_unambiguous(self):
        assert parse_datetime("13/02/2024").value == datetime(2024, 2, 13)

    def test_two_digit_year(self):
        assert parse_datetime("02.01.24").value == datetime(2024, 1, 2)

    def test_iso(self):
        parsed = parse_datetime("2024-01-02T10:00:00")
        assert parsed.value == datetime(2024, 1, 2, 10, 0)
        assert parsed.fmt == "iso"

    def test_iso_with_offset_is_normalised_to_utc(self):
        parsed = parse_datetime("2024-01-02T10:00:00+02:00")
        assert parsed.value == datetime(2024, 1, 2, 8, 0)
        assert parsed.value.tzinfo is None

    def test_native_datetime(self):
        ts = datetime(2024, 3, 4, 5, 6, 7)
        assert parse_datetime(ts) == DateParse(ts, True, "native")

    def test_native_date(self):
        assert parse_datetime(date(2024, 3, 4)).value == datetime(2024, 3, 4)

    def test_excel_serial(self):
        parsed = parse_datetime(45292)
        assert parsed.ok
        assert parsed.value == datetime(2024, 1, 1)
        assert parsed.fmt == "excel"

    def test_small_number_is_not_a_date(self):
        assert not parse_datetime(42).ok

    def test_unstructured_fallback(self):
        parsed = parse_datetime("Jan 5, 2024 10:00")
        assert parsed.ok
        assert parsed.value == datetime(2024, 1, 5, 10, 0)
        assert parsed.fmt == "fallback"

    @pytest.mark.parametrize("value", ["not a date", "31.02.2024", "", None, "EURUSD"])
    def test_failures_never_raise(self, value):
        parsed = parse_datetime(value)
        assert not parsed.ok
        assert parsed.value is None

    def test_combine_date_and_time_cells(self):
        parsed = combine_date_time("02.01.2024", "10:30:15")
        assert parsed.ok
        assert parsed.value == datetime(2024, 1, 2, 10, 30, 15)

    def test_combine_with_bad_date(self):
        assert not combine_date_time("31.02.2024", "10:30").ok


class TestClassifyCell:
    @pytest.mark.parametrize(
        "value, shape",
        [
            ("10:00:00", CellShape.TIME),
            ("9:30", CellShape.TIME),
            ("02.01.2024", CellShape.DATE),
            ("01/02/2024", CellShape.DATE),
            ("2024-01-02", CellShape.DATE),
            ("2024.01.02 10:00:00", CellShape.DATETIME),
            ("1001", CellShape.NUMBER),
            ("-12.50", CellShape.NUMBER),
            ("EURUSD", CellShape.TEXT),
            ("", CellShape.EMPTY),
            (None, CellShape.EMPTY),
            (3.5, CellShape.NUMBER),
            (datetime(2024, 1, 2), CellShape.DATETIME),
        ],
    )
    def test_shapes(self, value, shape):
        assert classify_cell(value) == shape
