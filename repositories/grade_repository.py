"""
Grade repository (persistence).

Reads lead grades and their classification rules. Ordering by priority happens in
the domain layer; nothing here relies on row order.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from domain.grade import Grade, GradeWithRules, attach_rules
from domain.rules import GradeRule, LogicOperator, parse_stored_conditions
from repositories.client import supabase

_GRADES_TABLE: str = "lead_grades"
_GRADE_RULES_TABLE: str = "grade_rules"


def _row_to_grade(row: Mapping[str, Any]) -> Grade:
    return Grade(
        id=str(row["id"]),
        name=str(row["name"]),
        priority=int(row.get("priority") or 0),
        is_default=bool(row.get("is_default") or False),
        color=row.get("color"),
    )


def _row_to_grade_rule(row: Mapping[str, Any]) -> GradeRule:
    return GradeRule(
        id=str(row["id"]),
        grade_id=str(row["grade_id"]),
        conditions=tuple(parse_stored_conditions(row.get("conditions"))),
        logic_operator=LogicOperator.parse(row.get("logic_operator")),
    )


def list_active_grades() -> List[Grade]:
    response = (
        supabase.table(_GRADES_TABLE)
        .select("id, name, color, priority, is_default")
        .eq("is_active", True)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list grades: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_grade(row) for row in rows]


def list_active_grade_rules() -> List[GradeRule]:
    response = (
        supabase.table(_GRADE_RULES_TABLE)
        .select("id, grade_id, conditions, logic_operator")
        .eq("is_active", True)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list grade rules: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_grade_rule(row) for row in rows]


def list_grades_with_rules() -> List[GradeWithRules]:
    """Active grades, each with its active classification rules."""

    return attach_rules(list_active_grades(), list_active_grade_rules())


def get_grade(grade_id: Optional[str] = None, name: Optional[str] = None) -> Optional[Grade]:
    """
    Fetch a grade by id or, failing that, by name.

    Returns None when neither is given or no record exists.
    """

    if grade_id:
        column, value = "id", grade_id
    elif name:
        column, value = "name", name
    else:
        return None

    response = (
        supabase.table(_GRADES_TABLE)
        .select("id, name, color, priority, is_default")
        .eq(column, value)
        .limit(1)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch grade: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return _row_to_grade(rows[0])


def insert_grade_rule(rule: GradeRule) -> str:
    """Store a validated classification rule and return its id."""

    payload = {
        "grade_id": rule.grade_id,
        "conditions": [c.to_dict() for c in rule.conditions],
        "logic_operator": rule.logic_operator.value,
        "is_active": True,
    }
    response = supabase.table(_GRADE_RULES_TABLE).insert(payload).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to insert grade rule: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        raise RuntimeError("Failed to insert grade rule: no row returned")
    return str(rows[0]["id"])


__all__ = [
    "get_grade",
    "insert_grade_rule",
    "list_active_grade_rules",
    "list_active_grades",
    "list_grades_with_rules",
]
