"""
Tests for `services/field_normalizer.py`.

Covers contract rules:
- Phones are normalized to the dashed Korean format where possible.
- Revenue / head-count cells in Korean notation parse to numbers and ranges.
- Dates accept ISO, common layouts, Korean dates and spreadsheet serials.
- Booleans are tri-state and malformed cells never raise.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from domain.numeric_range import NumericRange
from services.field_normalizer import (
    ORGANIC_TRUE_VALUES,
    clean_text,
    normalize_phone,
    parse_boolean,
    parse_date,
    parse_number,
    parse_number_range,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("010-1234-5678", "010-1234-5678"),
        ("01012345678", "010-1234-5678"),
        ("+82 10-1234-5678", "010-1234-5678"),
        ("1012345678", "010-1234-5678"),
        (1012345678, "010-1234-5678"),
        (1012345678.0, "010-1234-5678"),
        ("02-1234-5678", "02-1234-5678"),
        ("031-123-4567", "0311234567"),
    ],
)
def test_normalize_phone(raw, expected: str) -> None:
    """Verify phone normalization for mobile, international, lost-zero and landline forms."""

    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "없음", True])
def test_normalize_phone_without_digits_is_none(raw) -> None:
    """Verify cells without any digit yield None."""

    assert normalize_phone(raw) is None


MIXED_PHONES = [
    "821012345678",
    "+82 10 1234 5678",
    "+82 2 1234 5678",
    "1012345678",
    "0212345678",
    "031-123-4567",
    "12345",
    "010-1234-56789",
    1012345678.0,
]


@pytest.mark.parametrize("raw", MIXED_PHONES)
def test_normalize_phone_is_idempotent(raw) -> None:
    """Verify normalizing an already normalized phone changes nothing."""

    once = normalize_phone(raw)

    assert normalize_phone(once) == once


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10억원", 10.0),
        ("10억~30억_미만", 10.0),
        ("약 1,200", 1200.0),
        (5, 5.0),
        (2.5, 2.5),
        ("없음", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_number(raw, expected) -> None:
    """Verify single-number parsing; ranges yield their lower bound."""

    assert parse_number(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10억~30억_미만", NumericRange(10.0, 30.0)),
        ("5~10명", NumericRange(5.0, 10.0)),
        ("30억_미만", NumericRange(None, 30.0)),
        ("10억_이상", NumericRange(10.0, None)),
        ("50명", NumericRange(50.0, 50.0)),
        (7, NumericRange(7.0, 7.0)),
        ("모름", NumericRange(None, None)),
        ("", NumericRange(None, None)),
    ],
)
def test_parse_number_range(raw, expected: NumericRange) -> None:
    """Verify closed, open-ended, exact and unparseable ranges."""

    assert parse_number_range(raw) == expected


@pytest.mark.parametrize(
    "strict, inclusive",
    [("30억_미만", "30억이하"), ("10억_이상", "10억초과")],
)
def test_strict_and_inclusive_bounds_parse_alike(strict: str, inclusive: str) -> None:
    """Verify 미만/이하 and 이상/초과 give the same bound.

    Open question: the bound's strictness is not kept, so "30억 이하" and "30억 미만"
    classify identically.
    """

    assert parse_number_range(strict) == parse_number_range(inclusive)


@pytest.mark.parametrize(
    "raw",
    [
        "821012345678",
        "+82 2 1234 5678",
        "12345",
        "031-123-4567",
        "-",
        ".",
        "1,200~3,000",
        "~",
        "억",
        "약 -3.5명",
        "10억~",
        "명 50",
        -2,
        0.5,
    ],
)
def test_parse_number_range_is_total(raw) -> None:
    """Verify parsing never raises and is empty only when no digit is present."""

    parsed = parse_number_range(raw)

    has_digit = any(ch.isdigit() for ch in str(raw))
    assert parsed.is_empty is not has_digit


def test_parse_number_range_ignores_thousands_separators() -> None:
    """Verify comma-grouped bounds are read as whole numbers."""

    assert parse_number_range("1,200~3,000") == NumericRange(1200.0, 3000.0)


@pytest.mark.parametrize("raw", ["9" * 400, "9" * 400 + "억", float("inf"), float("-inf"), 10**400])
def test_overflowing_numbers_are_unparseable(raw) -> None:
    """Verify values beyond float range degrade to empty instead of infinity."""

    assert parse_number_range(raw) == NumericRange.empty()
    assert parse_number(raw) is None


def test_overflowing_bound_is_dropped() -> None:
    """Verify only the overflowing side of a range is lost."""

    assert parse_number_range("10~" + "9" * 400) == NumericRange(10.0, None)


def test_floored_range_truncates_head_counts() -> None:
    """Verify head-count ranges are truncated to whole numbers."""

    assert parse_number_range("5.7~10.2명").floored() == NumericRange(5, 10)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-03-15", date(2024, 3, 15)),
        ("2024-03-15T10:30:00Z", date(2024, 3, 15)),
        ("2024/03/15", date(2024, 3, 15)),
        ("2024.03.15", date(2024, 3, 15)),
        ("2024년 3월 5일", date(2024, 3, 5)),
        (45000, date(2023, 3, 15)),
        (datetime(2024, 1, 2, 9, 0), date(2024, 1, 2)),
        (date(2024, 1, 2), date(2024, 1, 2)),
    ],
)
def test_parse_date(raw, expected: date) -> None:
    """Verify every supported date layout, including spreadsheet serials."""

    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "어제", "2024-13-45"])
def test_parse_date_invalid_is_none(raw) -> None:
    """Verify unparseable dates yield None instead of raising."""

    assert parse_date(raw) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("네", True),
        ("있음", True),
        ("YES", True),
        ("y", True),
        ("1", True),
        (1, True),
        (True, True),
        ("아니오", False),
        ("없음", False),
        (0, False),
        ("", None),
        (None, None),
    ],
)
def test_parse_boolean_tax_delinquency_values(raw, expected) -> None:
    """Verify the tri-state tax-delinquency vocabulary."""

    assert parse_boolean(raw) is expected


def test_parse_boolean_organic_vocabulary_excludes_korean_yes() -> None:
    """Verify is_organic only accepts the English true values."""

    assert parse_boolean("true", ORGANIC_TRUE_VALUES) is True
    assert parse_boolean("네", ORGANIC_TRUE_VALUES) is False


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  가나상사 ", "가나상사"),
        (123.0, "123"),
        (12.5, "12.5"),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_clean_text(raw, expected) -> None:
    """Verify text trimming and integral-number cleanup."""

    assert clean_text(raw) == expected
