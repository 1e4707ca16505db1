"""
Domain: lead grades.

Grades are ordinal (A/B/C/D...). A lower `priority` number is a higher-ranked grade and
is evaluated first during classification. Exactly one grade should be flagged
`is_default`; this is advised, not enforced, so lookups tolerate zero or several.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .rules import GradeRule


@dataclass(frozen=True, slots=True)
class Grade:
    id: str
    name: str
    priority: int
    is_default: bool = False
    color: Optional[str] = None


@dataclass(frozen=True, slots=True)
class GradeWithRules:
    """A grade together with its active classification rules."""

    grade: Grade
    rules: Sequence[GradeRule] = field(default_factory=tuple)

    @property
    def id(self) -> str:
        return self.grade.id

    @property
    def name(self) -> str:
        return self.grade.name

    @property
    def priority(self) -> int:
        return self.grade.priority

    @property
    def is_default(self) -> bool:
        return self.grade.is_default


def sort_by_priority(grades: Iterable[GradeWithRules]) -> List[GradeWithRules]:
    """
    Order grades for evaluation: ascending priority, grade name as a stable tie-break.

    Storage ordering is never relied upon.
    """

    return sorted(grades, key=lambda g: (g.priority, g.name))


def find_default(grades: Iterable[GradeWithRules]) -> Optional[GradeWithRules]:
    """First default grade in priority order, or None."""

    for grade in sort_by_priority(grades):
        if grade.is_default:
            return grade
    return None


def attach_rules(grades: Iterable[Grade], rules: Iterable[GradeRule]) -> List[GradeWithRules]:
    """Group classification rules under their grade; rules for unknown grades are ignored."""

    by_grade: dict[str, List[GradeRule]] = {}
    for rule in rules:
        by_grade.setdefault(rule.grade_id, []).append(rule)
    return [GradeWithRules(grade=g, rules=tuple(by_grade.get(g.id, ()))) for g in grades]


__all__ = ["Grade", "GradeWithRules", "attach_rules", "find_default", "sort_by_priority"]
