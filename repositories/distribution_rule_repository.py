"""
Distribution rule repository (persistence).
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from domain.rules import DistributionRule, LogicOperator, parse_stored_conditions
from repositories.client import supabase

_DISTRIBUTION_RULES_TABLE: str = "distribution_rules"


def _row_to_rule(row: Mapping[str, Any]) -> DistributionRule:
    exclusions = row.get("exclusion_rules") or []
    return DistributionRule(
        id=str(row["id"]),
        grade_id=str(row["grade_id"]),
        name=str(row.get("name") or ""),
        conditions=tuple(parse_stored_conditions(row.get("conditions"))),
        logic_operator=LogicOperator.parse(row.get("logic_operator")),
        exclusion_rules=tuple(str(tag) for tag in exclusions),
        priority=int(row.get("priority") or 0),
        is_active=bool(row.get("is_active", True)),
    )


def list_active_distribution_rules(grade_id: Optional[str] = None) -> List[DistributionRule]:
    query = supabase.table(_DISTRIBUTION_RULES_TABLE).select("*").eq("is_active", True)
    if grade_id is not None:
        query = query.eq("grade_id", grade_id)

    response = query.execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list distribution rules: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_rule(row) for row in rows]


def insert_distribution_rule(rule: DistributionRule) -> str:
    """Store a validated distribution rule and return its id."""

    payload = {
        "grade_id": rule.grade_id,
        "name": rule.name,
        "conditions": [c.to_dict() for c in rule.conditions],
        "logic_operator": rule.logic_operator.value,
        "exclusion_rules": list(rule.exclusion_rules),
        "priority": rule.priority,
        "is_active": rule.is_active,
    }
    response = supabase.table(_DISTRIBUTION_RULES_TABLE).insert(payload).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to insert distribution rule: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        raise RuntimeError("Failed to insert distribution rule: no row returned")
    return str(rows[0]["id"])


__all__ = ["insert_distribution_rule", "list_active_distribution_rules"]
