"""
Field normalization for spreadsheet cells.

Every function here is total over its input: malformed data degrades to None (or an
empty NumericRange) and never raises, so one bad cell cannot abort an upload.

Revenue cells arrive in Korean business notation, e.g. "10억~30억_미만" (1-3 billion
won, exclusive), "10억_이상" (at least 1 billion), "50명" (50 people). The unit is
stripped and the number kept as-is: revenue is stored in 억원 units.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from domain.numeric_range import NumericRange

CellValue = Union[str, int, float, bool, date, datetime, None]

_NUM = r"(\d+(?:\.\d+)?)"
_UNIT = r"(?:억원|억|명)"
_EOK = r"(?:억원|억)"

_RANGE_RE = re.compile(rf"^{_NUM}\s*{_UNIT}?\s*[~\-]\s*{_NUM}\s*{_UNIT}?")
_EOK_RANGE_RE = re.compile(rf"^{_NUM}\s*{_EOK}?\s*[~\-]\s*{_NUM}\s*{_EOK}?")
_EOK_SINGLE_RE = re.compile(rf"^{_NUM}\s*{_EOK}")
_SINGLE_RE = re.compile(rf"^{_NUM}\s*{_UNIT}?$")
_LEADING_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_THOUSANDS_SEPARATOR_RE = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")

# 미만 (<) and 이하 (<=) both become an upper bound; 이상 (>=) and 초과 (>) both
# become a lower bound. Strictness is not preserved.
_UPPER_BOUND_RE = re.compile(rf"^{_NUM}\s*{_UNIT}?\s*[_\s]?(?:미만|이하)")
_LOWER_BOUND_RE = re.compile(rf"^{_NUM}\s*{_UNIT}?\s*[_\s]?(?:이상|초과)")

_KOREAN_DATE_RE = re.compile(r"(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일")
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y.%m.%d",
    "%Y. %m. %d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
)

# Day 0 of the spreadsheet date system (accounts for the 1900 leap-year bug).
_SPREADSHEET_EPOCH = date(1899, 12, 30)

TAX_DELINQUENCY_TRUE_VALUES = frozenset({"네", "있음", "yes", "true", "1", "y"})
ORGANIC_TRUE_VALUES = frozenset({"true", "1", "yes", "y"})


def _is_blank(value: CellValue) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _is_number(value: CellValue) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_float(value: Union[str, int, float]) -> Optional[float]:
    """Finite float or None; NaN, infinities and overflowing values are unparseable."""

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _strip_thousands(text: str) -> str:
    return _THOUSANDS_SEPARATOR_RE.sub("", text)


def _leading_number(text: str) -> Optional[float]:
    cleaned = _NON_NUMERIC_RE.sub("", text)
    match = _LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return None
    return _to_float(match.group(0))


def normalize_phone(value: CellValue) -> Optional[str]:
    """
    Normalize a Korean phone number.

    Examples:
        >>> normalize_phone("+82 10-1234-5678")
        '010-1234-5678'
        >>> normalize_phone("1012345678")
        '010-1234-5678'
        >>> normalize_phone("0212345678")
        '02-1234-5678'
        >>> normalize_phone("031-123-4567")
        '0311234567'
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            value = int(value)

    digits = re.sub(r"[^0-9]", "", str(value))
    if not digits:
        return None

    # International form: 82 10 1234 5678
    if len(digits) == 12 and digits.startswith("82"):
        digits = "0" + digits[2:]

    # Mobile number whose leading 0 was lost (e.g. by a spreadsheet number cell)
    if len(digits) == 10 and digits.startswith("10"):
        digits = "0" + digits

    if len(digits) == 11 and digits.startswith("010"):
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"

    if len(digits) == 10 and digits.startswith("02"):
        return f"{digits[:2]}-{digits[2:6]}-{digits[6:]}"

    return digits


def parse_number(value: CellValue) -> Optional[float]:
    """
    Parse a single number from a cell; ranges yield their lower bound.

    Examples:
        >>> parse_number("10억원")
        10.0
        >>> parse_number("10억~30억_미만")
        10.0
        >>> parse_number("약 1,200")
        1200.0
        >>> parse_number("없음") is None
        True
    """

    if _is_blank(value) or isinstance(value, bool):
        return None
    if _is_number(value):
        return _to_float(value)

    text = _strip_thousands(str(value).strip())

    match = _EOK_RANGE_RE.match(text)
    if match:
        return _to_float(match.group(1))

    match = _EOK_SINGLE_RE.match(text)
    if match:
        return _to_float(match.group(1))

    return _leading_number(text)


def parse_number_range(value: CellValue) -> NumericRange:
    """
    Parse a numeric range from a cell.

    Never raises. Thousands separators are ignored; a bound too large for a float is
    treated as missing.

    Examples:
        >>> parse_number_range("1,200~3,000")
        NumericRange(min=1200.0, max=3000.0)
        >>> parse_number_range("10억~30억_미만")
        NumericRange(min=10.0, max=30.0)
        >>> parse_number_range("30억_미만")
        NumericRange(min=None, max=30.0)
        >>> parse_number_range("10억_이상")
        NumericRange(min=10.0, max=None)
        >>> parse_number_range("50명")
        NumericRange(min=50.0, max=50.0)
        >>> parse_number_range("모름")
        NumericRange(min=None, max=None)
    """

    if _is_blank(value) or isinstance(value, bool):
        return NumericRange.empty()
    if _is_number(value):
        number = _to_float(value)
        return NumericRange.empty() if number is None else NumericRange.exact(number)

    text = _strip_thousands(str(value).strip())

    match = _RANGE_RE.match(text)
    if match:
        return NumericRange(min=_to_float(match.group(1)), max=_to_float(match.group(2)))

    match = _UPPER_BOUND_RE.match(text)
    if match:
        return NumericRange(min=None, max=_to_float(match.group(1)))

    match = _LOWER_BOUND_RE.match(text)
    if match:
        return NumericRange(min=_to_float(match.group(1)), max=None)

    match = _SINGLE_RE.match(text)
    if match:
        return NumericRange.exact(_to_float(match.group(1)))

    number = _leading_number(text)
    if number is None:
        return NumericRange.empty()
    return NumericRange.exact(number)


def parse_date(value: CellValue) -> Optional[date]:
    """
    Parse a calendar date.

    Numbers are spreadsheet date serials; strings are tried as ISO-8601, then a few
    common layouts, then the Korean "YYYY년 M월 D일" form.
    """

    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_number(value):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        try:
            return _SPREADSHEET_EPOCH + timedelta(days=int(value))
        except OverflowError:
            return None

    text = str(value).strip()

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    match = _KOREAN_DATE_RE.search(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return None


def parse_boolean(value: CellValue, true_values: Iterable[str] = TAX_DELINQUENCY_TRUE_VALUES) -> Optional[bool]:
    """
    Tri-state boolean: None for an empty cell, True for a recognised "yes", else False.
    """

    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value == 1
    return str(value).strip().lower() in true_values


def clean_text(value: CellValue) -> Optional[str]:
    """Trimmed text, None for empty cells. Integral numbers lose their '.0'."""

    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    text = str(value).strip()
    return text or None


__all__ = [
    "CellValue",
    "ORGANIC_TRUE_VALUES",
    "TAX_DELINQUENCY_TRUE_VALUES",
    "clean_text",
    "normalize_phone",
    "parse_boolean",
    "parse_date",
    "parse_number",
    "parse_number_range",
]
