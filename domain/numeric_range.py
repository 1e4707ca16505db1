"""
Domain: numeric ranges parsed from free-text spreadsheet cells.

A range is either exact (min == max), open-ended (only one bound set) or closed.
Both bounds are None only when the source value could not be parsed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class NumericRange:
    min: Optional[float] = None
    max: Optional[float] = None

    @staticmethod
    def exact(value: float) -> "NumericRange":
        return NumericRange(min=value, max=value)

    @staticmethod
    def empty() -> "NumericRange":
        return NumericRange(min=None, max=None)

    @property
    def is_empty(self) -> bool:
        return self.min is None and self.max is None

    @property
    def is_exact(self) -> bool:
        return self.min is not None and self.min == self.max

    def floored(self) -> "NumericRange":
        """Return a copy with both bounds truncated to whole numbers (head counts)."""

        return NumericRange(
            min=_floor_or_none(self.min),
            max=_floor_or_none(self.max),
        )


def _floor_or_none(value: Optional[float]) -> Optional[int]:
    # 0 is treated like a missing bound, matching how head counts were stored historically.
    if not value:
        return None
    return int(value // 1)


__all__ = ["NumericRange"]
