"""
Reclassification of stored leads against the current grade rules (no I/O).

Modes:
- auto_only: leads whose grade was set manually keep it; only AUTO/ungraded leads are
  re-evaluated.
- all: every lead is re-evaluated and a manual grade that differs from the rule result
  is overwritten.

Only leads whose grade actually changes are returned as updates, and only those are
written back with grade_source AUTO. A manual lead whose rules still give the same grade
is left as is in either mode, so it keeps grade_source MANUAL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from domain.grade import GradeWithRules
from domain.lead import GradeSource, Lead
from services.grade_classifier import classify_grade


class ReclassifyMode(str, Enum):
    AUTO_ONLY = "auto_only"
    ALL = "all"


class NoActiveGradesError(Exception):
    """Raised when there is no active grade to classify into."""

    def __init__(self) -> None:
        super().__init__("No active grades are configured")


@dataclass(frozen=True, slots=True)
class GradeUpdate:
    lead_id: Optional[UUID]
    previous_grade_id: Optional[str]
    grade_id: Optional[str]


@dataclass(slots=True)
class ReclassificationResult:
    total_count: int = 0
    updated_count: int = 0
    grade_summary: Dict[str, int] = field(default_factory=dict)
    updates: List[GradeUpdate] = field(default_factory=list)

    def updates_by_grade(self) -> Dict[Optional[str], List[UUID]]:
        """Lead ids grouped by their new grade, for one bulk update per grade."""

        groups: Dict[Optional[str], List[UUID]] = {}
        for update in self.updates:
            if update.lead_id is not None:
                groups.setdefault(update.grade_id, []).append(update.lead_id)
        return groups

    @property
    def message(self) -> str:
        if self.total_count == 0:
            return "재분류할 리드가 없습니다"
        return f"{self.total_count}건의 리드 중 {self.updated_count}건의 등급이 변경되었습니다."

    def to_dict(self) -> dict:
        return {
            "total_count": self.total_count,
            "updated_count": self.updated_count,
            "grade_summary": dict(self.grade_summary),
            "message": self.message,
        }


def is_reclassifiable(lead: Lead, mode: ReclassifyMode) -> bool:
    if mode is ReclassifyMode.ALL:
        return True
    return lead.grade_source is not GradeSource.MANUAL


def reclassify(
    leads: Iterable[Lead],
    grades: Sequence[GradeWithRules],
    mode: ReclassifyMode = ReclassifyMode.AUTO_ONLY,
) -> ReclassificationResult:
    """
    Re-run classification over `leads`.

    Raises:
        NoActiveGradesError: `grades` is empty
        NoDefaultGradeError: a lead matches no rule and no default grade exists
    """

    if not grades:
        raise NoActiveGradesError()

    result = ReclassificationResult()
    for lead in leads:
        if not is_reclassifiable(lead, mode):
            continue

        result.total_count += 1
        classification = classify_grade(lead.classification_attributes(), grades, require_grade=True)
        result.grade_summary[classification.grade_name] = result.grade_summary.get(classification.grade_name, 0) + 1

        if classification.grade_id != lead.grade_id:
            result.updates.append(
                GradeUpdate(
                    lead_id=lead.lead_id,
                    previous_grade_id=lead.grade_id,
                    grade_id=classification.grade_id,
                )
            )
            result.updated_count += 1

    return result


__all__ = [
    "GradeUpdate",
    "NoActiveGradesError",
    "ReclassificationResult",
    "ReclassifyMode",
    "is_reclassifiable",
    "reclassify",
]
