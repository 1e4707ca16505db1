"""
Tests for `services/reclassification_service.py`.

Covers contract rules:
- auto_only leaves manually graded leads untouched; all overwrites them.
- Only leads whose grade changes are returned as updates.
- Reclassification requires at least one active grade and a resolvable grade per lead.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from domain.lead import GradeSource, Lead
from services.grade_classifier import NoDefaultGradeError
from services.reclassification_service import (
    NoActiveGradesError,
    ReclassifyMode,
    is_reclassifiable,
    reclassify,
)


def _lead(grade_id, grade_source, revenue=12, employees=8) -> Lead:
    return Lead(
        phone=f"010-{uuid4().int % 10000:04d}-0000",
        annual_revenue=revenue,
        employee_count=employees,
        lead_id=uuid4(),
        grade_id=grade_id,
        grade_source=grade_source,
    )


def test_auto_only_skips_manual_leads(lead_grades) -> None:
    """Verify manual grades survive auto_only reclassification."""

    auto = _lead("g-c", GradeSource.AUTO)
    manual = _lead("g-c", GradeSource.MANUAL)
    ungraded = _lead(None, None)

    result = reclassify([auto, manual, ungraded], lead_grades, ReclassifyMode.AUTO_ONLY)

    assert result.total_count == 2
    assert result.updated_count == 2
    assert {u.lead_id for u in result.updates} == {auto.lead_id, ungraded.lead_id}
    assert result.grade_summary == {"A": 2}


def test_all_mode_overwrites_manual_leads(lead_grades) -> None:
    """Verify mode all re-grades manual leads too."""

    manual = _lead("g-c", GradeSource.MANUAL)

    result = reclassify([manual], lead_grades, ReclassifyMode.ALL)

    assert result.updated_count == 1
    assert result.updates[0].previous_grade_id == "g-c"
    assert result.updates[0].grade_id == "g-a"


def test_unchanged_grades_are_counted_but_not_updated(lead_grades) -> None:
    """Verify leads already on the right grade produce no update."""

    lead = _lead("g-a", GradeSource.AUTO)

    result = reclassify([lead], lead_grades)

    assert result.total_count == 1
    assert result.updated_count == 0
    assert result.updates == []
    assert result.message == "1건의 리드 중 0건의 등급이 변경되었습니다."


def test_all_mode_keeps_manual_lead_with_unchanged_grade(lead_grades) -> None:
    """Verify a manual lead already on the rule grade yields no update in mode all."""

    manual = _lead("g-a", GradeSource.MANUAL)

    result = reclassify([manual], lead_grades, ReclassifyMode.ALL)

    assert result.total_count == 1
    assert result.updated_count == 0
    assert result.updates == []


def test_updates_are_grouped_by_new_grade(lead_grades) -> None:
    """Verify bulk updates can be issued once per target grade."""

    to_a = [_lead("g-c", GradeSource.AUTO) for _ in range(2)]
    to_b = _lead("g-c", GradeSource.AUTO, revenue=5, employees=1)

    groups = reclassify([*to_a, to_b], lead_grades).updates_by_grade()

    assert sorted(groups) == ["g-a", "g-b"]
    assert set(groups["g-a"]) == {l.lead_id for l in to_a}
    assert groups["g-b"] == [to_b.lead_id]


def test_no_leads_message(lead_grades) -> None:
    """Verify an empty run reports that nothing needed reclassification."""

    result = reclassify([], lead_grades)

    assert result.to_dict() == {
        "total_count": 0,
        "updated_count": 0,
        "grade_summary": {},
        "message": "재분류할 리드가 없습니다",
    }


def test_no_active_grades_raises() -> None:
    """Verify reclassification refuses to run without grades."""

    with pytest.raises(NoActiveGradesError):
        reclassify([_lead(None, None)], [])


def test_missing_default_grade_raises(lead_grades) -> None:
    """Verify a lead that matches nothing with no default grade aborts the run."""

    grades = [g for g in lead_grades if not g.is_default]

    with pytest.raises(NoDefaultGradeError):
        reclassify([_lead(None, None, revenue=0, employees=0)], grades)


@pytest.mark.parametrize(
    "source, mode, expected",
    [
        (GradeSource.AUTO, ReclassifyMode.AUTO_ONLY, True),
        (None, ReclassifyMode.AUTO_ONLY, True),
        (GradeSource.MANUAL, ReclassifyMode.AUTO_ONLY, False),
        (GradeSource.MANUAL, ReclassifyMode.ALL, True),
    ],
)
def test_is_reclassifiable(source, mode: ReclassifyMode, expected: bool) -> None:
    """Verify which grade sources each mode touches."""

    assert is_reclassifiable(_lead("g-c", source), mode) is expected
