"""
Domain: performance periods (pure).

Member performance is recorded per calendar (year, month). Eligibility is judged on
the month *before* the reference date unless a period is given explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Union


@dataclass(frozen=True, slots=True, order=True)
class Period:
    """A calendar year/month pair."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    def previous(self) -> "Period":
        """Return the preceding calendar month (January wraps to December of the prior year)."""

        if self.month == 1:
            return Period(self.year - 1, 12)
        return Period(self.year, self.month - 1)

    @staticmethod
    def of(value: Union[date, datetime]) -> "Period":
        return Period(value.year, value.month)


def previous_month(reference: Union[date, datetime]) -> Period:
    """Period immediately before the month containing `reference`."""

    return Period.of(reference).previous()


__all__ = ["Period", "previous_month"]
