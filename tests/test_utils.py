"""Tests for date, amount and storage key helpers."""

import pytest
from datetime import date, datetime, UTC
from decimal import Decimal

from importflow.utils.amount_parser import normalize_amount, parse_amount
from importflow.utils.date_parser import format_range_bound, parse_date, window_start
from importflow.utils.storage_keys import build_storage_key, parse_storage_key


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-01-15", date(2024, 1, 15)),
        ("2024-01-15T10:30:00Z", date(2024, 1, 15)),
        ("20240115", date(2024, 1, 15)),
        ("01/15/2024", date(2024, 1, 15)),
        ("January 15, 2024", date(2024, 1, 15)),
        (" 15 Jan 2024 ", date(2024, 1, 15)),
    ],
)
def test_parse_date_formats(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "not a date", "7", "2024-13-45"])
def test_parse_date_rejects(raw):
    with pytest.raises(ValueError):
        parse_date(raw)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("123.45", Decimal("123.45")),
        ("$123.45", Decimal("123.45")),
        ("-$123.45", Decimal("-123.45")),
        ("+10", Decimal("10")),
        ("1,234.56", Decimal("1234.56")),
        ("(123.45)", Decimal("-123.45")),
        ("€5", Decimal("5")),
    ],
)
def test_parse_amount_formats(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "NaN", "Infinity", "1.2.3"])
def test_parse_amount_rejects(raw):
    with pytest.raises(ValueError):
        parse_amount(raw)


def test_normalize_amount():
    assert normalize_amount(Decimal("100.00")) == normalize_amount(Decimal("100")) == "100"
    assert normalize_amount(Decimal("-4.50")) == "-4.5"
    assert normalize_amount(Decimal("0.00")) == "0"
    assert normalize_amount(Decimal("1E+3")) == "1000"


def test_window_start():
    assert window_start(date(2024, 1, 15), 30) == date(2023, 12, 16)
    with pytest.raises(ValueError):
        window_start(date(2024, 1, 15), -1)


def test_format_range_bound():
    assert format_range_bound(date(2024, 1, 1)) == "2024-01-01"
    assert format_range_bound(datetime(2024, 1, 1, 8, 30, tzinfo=UTC)) == "2024-01-01T08:30:00+00:00"


class TestStorageKeys:
    """Tests for the upload key layout."""

    def test_build_key(self):
        key = build_storage_key("u1", "a1", "up-1", "jan.csv", datetime(2024, 3, 5, tzinfo=UTC))

        assert key == "u1/a1/2024/03/original/up-1_jan.csv"

    def test_parse_key(self):
        parts = parse_storage_key("u1/a1/2024/03/original/up-1_jan_2024.csv")

        assert parts.user_id == "u1"
        assert parts.account_id == "a1"
        assert parts.upload_id == "up-1"
        assert parts.file_name == "jan_2024.csv"

    def test_parse_url_encoded_key(self):
        parts = parse_storage_key("u1/a1/2024/03/original/up-1_my+statement%281%29.csv")

        assert parts.file_name == "my statement(1).csv"

    @pytest.mark.parametrize(
        "key",
        [
            "u1/a1/2024/03/up-1_jan.csv",
            "u1/a1/2024/03/processed/up-1_jan.csv",
            "u1/a1/2024/03/original/nounderscore.csv",
            "/a1/2024/03/original/up-1_jan.csv",
        ],
    )
    def test_parse_rejects_other_layouts(self, key):
        with pytest.raises(ValueError):
            parse_storage_key(key)
