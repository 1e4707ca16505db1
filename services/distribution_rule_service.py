"""
Administrator-defined distribution rules.

A distribution rule is a condition list over member fields (prior-month payment,
commission, contract count, level, newbie test) combined with AND/OR, plus exclusion
tags of the form "grade_<x>_eligible".

Evaluation for one grade:
- Rules are visited in ascending priority; inactive rules are ignored.
- A rule admits the member iff its conditions match and none of its exclusion tags
  apply. The first admitting rule wins (OR across the grade's rules).
- `between` is half-open [min, max) so tier bands never overlap.
- An exclusion tag "grade_a_eligible" applies when the member is eligible for grade A,
  judged from grade A's own rules (conditions only) when it has any, otherwise from the
  fixed A/B/C/D tiers.
- A grade without rules falls back to the fixed-tier eligibility.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from domain.grade import Grade
from domain.member import MEMBER_FIELD_ALIASES, MEMBER_RULE_FIELDS, MemberSnapshot
from domain.rules import DistributionRule, FieldSpec, LogicOperator, build_conditions
from domain.thresholds import EligibilityThresholds
from services.condition_engine import RuleEvaluation, describe_rule, evaluate_rule
from services.eligibility_service import QuickEligibility, quick_eligibility_for

logger = logging.getLogger(__name__)

_EXCLUSION_TAG_RE = re.compile(r"^grade_([a-z0-9]+)_eligible$", re.IGNORECASE)

# Rule field registry including the legacy aliases.
MEMBER_FIELDS: Mapping[str, FieldSpec] = {
    **MEMBER_RULE_FIELDS,
    **{alias: MEMBER_RULE_FIELDS[target] for alias, target in MEMBER_FIELD_ALIASES.items()},
}


class InvalidExclusionRuleError(ValueError):
    """Raised when an exclusion tag is not of the form grade_<x>_eligible."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Unknown exclusion rule '{tag}'; expected grade_<name>_eligible")


def member_attributes(snapshot: MemberSnapshot) -> Dict[str, Any]:
    """Values distribution rule conditions are evaluated against."""

    attributes: Dict[str, Any] = {
        "monthly_payment": snapshot.monthly_payment,
        "total_commission": snapshot.total_commission,
        "contract_count": snapshot.contract_count,
        "level": snapshot.level.value,
        "newbie_test_passed": snapshot.newbie_test_passed,
    }
    for alias, target in MEMBER_FIELD_ALIASES.items():
        attributes[alias] = attributes[target]
    return attributes


def excluded_grade_name(tag: str) -> Optional[str]:
    """ "grade_a_eligible" -> "A"; None for anything else."""

    match = _EXCLUSION_TAG_RE.match(tag.strip())
    return match.group(1).upper() if match else None


def build_distribution_rule(
    *,
    grade_id: str,
    name: str,
    raw_conditions: Iterable[Mapping[str, Any]],
    logic_operator: Optional[str] = None,
    exclusion_rules: Iterable[str] = (),
    priority: int = 0,
    is_active: bool = True,
    rule_id: str = "",
) -> DistributionRule:
    """
    Validate an authored distribution rule.

    Raises:
        NoValidConditionsError: no condition left after empty values are dropped
        InvalidConditionError: unknown field, illegal operator or malformed value
        InvalidExclusionRuleError: exclusion tag not understood
    """

    conditions = build_conditions(raw_conditions, MEMBER_FIELDS)

    tags = [t.strip() for t in exclusion_rules if t and t.strip()]
    for tag in tags:
        if excluded_grade_name(tag) is None:
            raise InvalidExclusionRuleError(tag)

    return DistributionRule(
        id=rule_id,
        grade_id=grade_id,
        name=name,
        conditions=tuple(conditions),
        logic_operator=LogicOperator.parse(logic_operator),
        exclusion_rules=tuple(tags),
        priority=priority,
        is_active=is_active,
    )


@dataclass(frozen=True, slots=True)
class RuleLog:
    rule_id: str
    rule_name: str
    rule_description: str
    evaluation: RuleEvaluation
    excluded_by: Optional[str] = None

    @property
    def overall_result(self) -> bool:
        return self.evaluation.matched and self.excluded_by is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "rule_description": self.rule_description,
            "condition_results": [r.to_dict() for r in self.evaluation.results],
            "conditions_matched": self.evaluation.matched,
            "excluded_by": self.excluded_by,
            "overall_result": self.overall_result,
        }


@dataclass(frozen=True, slots=True)
class EligibilityResult:
    is_eligible: bool
    matched_rule: Optional[DistributionRule] = None
    evaluation_log: List[RuleLog] = field(default_factory=list)
    excluded_by: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        rule = self.matched_rule
        return {
            "is_eligible": self.is_eligible,
            "matched_rule": {"id": rule.id, "name": rule.name, "grade_id": rule.grade_id} if rule else None,
            "evaluation_log": [log.to_dict() for log in self.evaluation_log],
            "excluded_by": self.excluded_by,
        }


def _active_sorted(rules: Iterable[DistributionRule]) -> List[DistributionRule]:
    return sorted((r for r in rules if r.is_active), key=lambda r: (r.priority, r.name))


def _evaluate_conditions(rule: DistributionRule, attributes: Mapping[str, Any]) -> RuleEvaluation:
    return evaluate_rule(
        rule.conditions,
        rule.logic_operator,
        attributes,
        MEMBER_FIELDS,
        between_inclusive=False,
    )


def exclusion_reason(tags: Sequence[str], grade_eligibilities: Mapping[str, bool]) -> Optional[str]:
    """Message for the first exclusion tag that applies, e.g. "A등급 자격자 제외"."""

    for tag in tags:
        grade_name = excluded_grade_name(tag)
        if grade_name and grade_eligibilities.get(grade_name) is True:
            return f"{grade_name}등급 자격자 제외"
    return None


def evaluate_member_eligibility(
    snapshot: MemberSnapshot,
    rules: Iterable[DistributionRule],
    grade_eligibilities: Optional[Mapping[str, bool]] = None,
) -> EligibilityResult:
    """
    Evaluate one member against a set of rules (normally all rules of one grade).

    `grade_eligibilities` maps grade names to the member's eligibility for them and is
    used to resolve exclusion tags.
    """

    grade_eligibilities = grade_eligibilities or {}
    attributes = member_attributes(snapshot)
    log: List[RuleLog] = []
    first_exclusion: Optional[str] = None

    for rule in _active_sorted(rules):
        evaluation = _evaluate_conditions(rule, attributes)
        excluded_by = exclusion_reason(rule.exclusion_rules, grade_eligibilities)
        entry = RuleLog(
            rule_id=rule.id,
            rule_name=rule.name,
            rule_description=describe_rule(rule.conditions, rule.logic_operator, MEMBER_FIELDS),
            evaluation=evaluation,
            excluded_by=excluded_by,
        )
        log.append(entry)

        if entry.overall_result:
            return EligibilityResult(is_eligible=True, matched_rule=rule, evaluation_log=log)
        if excluded_by and first_exclusion is None:
            first_exclusion = excluded_by

    return EligibilityResult(is_eligible=False, evaluation_log=log, excluded_by=first_exclusion)


def resolve_grade_eligibilities(
    snapshot: MemberSnapshot,
    grades: Sequence[Grade],
    rules: Iterable[DistributionRule],
    quick: QuickEligibility,
) -> Dict[str, bool]:
    """
    Grade name -> eligibility used to resolve exclusion tags.

    Exclusions are not applied at this level, so tags cannot chain.
    """

    attributes = member_attributes(snapshot)
    by_grade: Dict[str, List[DistributionRule]] = {}
    for rule in _active_sorted(rules):
        by_grade.setdefault(rule.grade_id, []).append(rule)

    eligibilities: Dict[str, bool] = quick.as_map()
    for grade in grades:
        grade_rules = by_grade.get(grade.id)
        name = grade.name.strip().upper()
        if grade_rules:
            eligibilities[name] = any(_evaluate_conditions(r, attributes).matched for r in grade_rules)
        else:
            eligibilities[name] = bool(quick.for_grade(name))
    return eligibilities


@dataclass(frozen=True, slots=True)
class GradeEligibilityResult:
    grade: Grade
    is_eligible: bool
    result: EligibilityResult
    quick_eligibility: bool
    has_rules: bool

    def to_dict(self) -> dict[str, Any]:
        data = self.result.to_dict()
        data.update(
            {
                "grade": {"id": self.grade.id, "name": self.grade.name, "priority": self.grade.priority},
                "is_eligible": self.is_eligible,
                "quick_eligibility": self.quick_eligibility,
                "has_rules": self.has_rules,
            }
        )
        return data


@dataclass(frozen=True, slots=True)
class DistributionTestResult:
    monthly_payment: float
    newbie_test_passed: bool
    quick_eligibility: QuickEligibility
    overall: EligibilityResult
    grade_results: List[GradeEligibilityResult]

    def to_dict(self) -> dict[str, Any]:
        return {
            "member_data": {
                "monthly_payment": self.monthly_payment,
                "newbie_test_passed": self.newbie_test_passed,
            },
            "quick_eligibility": self.quick_eligibility.to_dict(),
            "overall_result": self.overall.to_dict(),
            "grade_results": [g.to_dict() for g in self.grade_results],
        }


def evaluate_grade_results(
    snapshot: MemberSnapshot,
    grades: Sequence[Grade],
    rules: Sequence[DistributionRule],
    thresholds: Optional[EligibilityThresholds] = None,
    *,
    grade_id: Optional[str] = None,
) -> DistributionTestResult:
    """
    Evaluate a member against every active grade.

    `overall` covers all active rules (only `grade_id`'s when given); `grade_results`
    has one entry per grade in priority order.
    """

    quick = quick_eligibility_for(snapshot, thresholds)
    eligibilities = resolve_grade_eligibilities(snapshot, grades, rules, quick)

    overall_rules = [r for r in rules if grade_id is None or r.grade_id == grade_id]
    overall = evaluate_member_eligibility(snapshot, overall_rules, eligibilities)

    results: List[GradeEligibilityResult] = []
    for grade in sorted(grades, key=lambda g: (g.priority, g.name)):
        grade_rules = [r for r in rules if r.grade_id == grade.id and r.is_active]
        result = evaluate_member_eligibility(snapshot, grade_rules, eligibilities)
        quick_result = bool(quick.for_grade(grade.name))
        results.append(
            GradeEligibilityResult(
                grade=grade,
                is_eligible=result.is_eligible if grade_rules else quick_result,
                result=result,
                quick_eligibility=quick_result,
                has_rules=bool(grade_rules),
            )
        )

    logger.debug(
        "Distribution rules evaluated",
        extra={"member_id": snapshot.member.id, "rules": len(rules), "grades": len(grades)},
    )

    return DistributionTestResult(
        monthly_payment=snapshot.monthly_payment,
        newbie_test_passed=snapshot.newbie_test_passed,
        quick_eligibility=quick,
        overall=overall,
        grade_results=results,
    )


__all__ = [
    "DistributionTestResult",
    "EligibilityResult",
    "GradeEligibilityResult",
    "InvalidExclusionRuleError",
    "MEMBER_FIELDS",
    "RuleLog",
    "build_distribution_rule",
    "evaluate_grade_results",
    "evaluate_member_eligibility",
    "excluded_grade_name",
    "exclusion_reason",
    "member_attributes",
    "resolve_grade_eligibilities",
]
