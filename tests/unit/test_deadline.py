from __future__ import annotations

import datetime as dt

import pytest

from kpi_engine.models.error_codes import ErrorCode
from kpi_engine.validation.deadline import (
    current_reference_year,
    is_textual_deadline,
    parse_deadline,
)

OCT_1 = dt.date(2025, 10, 1)


@pytest.mark.parametrize(
    "value",
    [
        "2025-10-01",
        "2025/10/1",
        "2025.10.01",
        "2025 10 01",
        "1/10/2025",
        "01-10-2025",
        "01.10.2025",
        "2025-Oct-01",
        "2025 October 1",
        "01-Oct-2025",
        "1 October 2025",
        "October 1, 2025",
        "Oct 1 2025",
        "1 oct 2025",
    ],
)
def test_supported_grammars(value: str):
    codes: list[ErrorCode] = []
    result = parse_deadline(value, codes, reference_year=2025)
    assert result.valid is True
    assert result.wrong_year is False
    assert result.date == OCT_1
    assert result.canonical == "2025-10-01"
    assert codes == []


def test_sept_abbreviation():
    result = parse_deadline("30 Sept 2025", [], reference_year=2025)
    assert result.date == dt.date(2025, 9, 30)


def test_numeric_slash_is_day_first():
    result = parse_deadline("03/04/2025", [], reference_year=2025)
    assert result.date == dt.date(2025, 4, 3)


@pytest.mark.parametrize("value", ["2025-13-40", "2025-02-30", "31/02/2025", "next week", "2025-10"])
def test_invalid_format(value: str):
    codes: list[ErrorCode] = []
    result = parse_deadline(value, codes, reference_year=2025)
    assert result.valid is False
    assert result.wrong_year is False
    assert result.date is None
    assert codes == [ErrorCode.DEADLINE_INVALID_FORMAT]


def test_unknown_month_name_is_invalid_format():
    codes: list[ErrorCode] = []
    assert parse_deadline("1 Foo 2025", codes, reference_year=2025).valid is False
    assert codes == [ErrorCode.DEADLINE_INVALID_FORMAT]


@pytest.mark.parametrize(
    "value",
    ["Q3", "end of Q4", "FY25", "before 2025 ends", "by year end", "<b>2025-10-01</b>", "2025-10-01 🎯"],
)
def test_textual_deadlines(value: str):
    codes: list[ErrorCode] = []
    result = parse_deadline(value, codes, reference_year=2025)
    assert result.valid is False
    assert result.textual is True
    assert codes == [ErrorCode.DEADLINE_TEXTUAL_NONDATE]
    assert is_textual_deadline(value) is True


def test_wrong_year_keeps_valid():
    codes: list[ErrorCode] = []
    result = parse_deadline("2026-10-01", codes, reference_year=2025)
    assert result.valid is True
    assert result.wrong_year is True
    assert result.date == dt.date(2026, 10, 1)
    assert codes == [ErrorCode.DEADLINE_WRONG_YEAR]


def test_blank_adds_no_code():
    codes: list[ErrorCode] = []
    result = parse_deadline("   ", codes, reference_year=2025)
    assert result.valid is False
    assert codes == []


def test_reference_year_defaults_to_current_year():
    this_year = current_reference_year()
    codes: list[ErrorCode] = []
    result = parse_deadline(f"{this_year}-06-15", codes)
    assert result.valid is True and result.wrong_year is False
    result = parse_deadline(f"{this_year + 1}-06-15", codes)
    assert result.wrong_year is True


def test_canonical_round_trip():
    first = parse_deadline("October 1, 2025", [], reference_year=2025)
    again = parse_deadline(first.canonical, [], reference_year=2025)
    assert again.date == first.date
    assert again.canonical == first.canonical
