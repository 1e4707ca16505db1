"""
Grade classification: assign each lead the first grade whose rule it matches.

Algorithm:
1. Grades are sorted by ascending priority (lower number = higher grade) before every
   call; storage ordering is never trusted.
2. A lead with tax_delinquency=True gets the default grade immediately.
3. Otherwise each non-default grade's rules are evaluated in order; the first matching
   rule wins and evaluation stops (first match, not best match).
4. No match -> the default grade. No default grade -> grade_id None, unless the caller
   asks for a grade, in which case `NoDefaultGradeError` is raised.

Every evaluated rule is appended to the evaluation log so the rule-testing screen can
show why a grade was or was not assigned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from domain.grade import GradeWithRules, find_default, sort_by_priority
from domain.lead import LEAD_RULE_FIELDS, Lead
from domain.rules import FieldSpec, GradeRule, LogicOperator, build_conditions
from services.condition_engine import ConditionResult, describe_rule, evaluate_rule

UNCLASSIFIED_GRADE_NAME = "미분류"
TAX_DELINQUENCY_RULE = "세금체납 강제 규칙"
DEFAULT_GRADE_RULE = "기본 등급 (모든 규칙 미충족)"


class NoDefaultGradeError(Exception):
    """Raised when no rule matched, no default grade exists and a grade is required."""

    def __init__(self) -> None:
        super().__init__("No rule matched and no default grade is configured")


@dataclass(frozen=True, slots=True)
class EvaluationLogEntry:
    grade_name: str
    rule_description: str
    result: bool
    details: str
    conditions: Sequence[ConditionResult] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "grade_name": self.grade_name,
            "rule_description": self.rule_description,
            "result": self.result,
            "details": self.details,
            "conditions": [c.to_dict() for c in self.conditions],
        }


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    grade_id: Optional[str]
    grade_name: str
    matched_rule_id: Optional[str] = None
    evaluation_log: List[EvaluationLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "grade_id": self.grade_id,
            "grade_name": self.grade_name,
            "matched_rule_id": self.matched_rule_id,
            "evaluation_log": [e.to_dict() for e in self.evaluation_log],
        }


def classify_grade(
    attributes: Mapping[str, Any],
    grades: Iterable[GradeWithRules],
    *,
    fields: Mapping[str, FieldSpec] = LEAD_RULE_FIELDS,
    require_grade: bool = False,
) -> ClassificationResult:
    """
    Classify one attribute set (see `Lead.classification_attributes`).

    Raises:
        NoDefaultGradeError: require_grade is set and neither a rule nor a default applies
    """

    ordered = sort_by_priority(grades)
    default = find_default(ordered)
    log: List[EvaluationLogEntry] = []

    if attributes.get("tax_delinquency") is True and default is not None:
        log.append(
            EvaluationLogEntry(
                grade_name=default.name,
                rule_description=TAX_DELINQUENCY_RULE,
                result=True,
                details="세금체납이 있는 업체는 다른 조건에 관계없이 기본 등급이 부여됩니다.",
            )
        )
        return ClassificationResult(grade_id=default.id, grade_name=default.name, evaluation_log=log)

    for grade in ordered:
        if grade.is_default:
            continue
        for rule in grade.rules:
            evaluation = evaluate_rule(rule.conditions, rule.logic_operator, attributes, fields)
            log.append(
                EvaluationLogEntry(
                    grade_name=grade.name,
                    rule_description=describe_rule(rule.conditions, rule.logic_operator, fields),
                    result=evaluation.matched,
                    details=evaluation.details,
                    conditions=evaluation.results,
                )
            )
            if evaluation.matched:
                return ClassificationResult(
                    grade_id=grade.id,
                    grade_name=grade.name,
                    matched_rule_id=rule.id,
                    evaluation_log=log,
                )

    if default is not None:
        log.append(
            EvaluationLogEntry(
                grade_name=default.name,
                rule_description=DEFAULT_GRADE_RULE,
                result=True,
                details="어떤 등급 규칙에도 해당하지 않아 기본 등급이 부여됩니다.",
            )
        )
        return ClassificationResult(grade_id=default.id, grade_name=default.name, evaluation_log=log)

    if require_grade:
        raise NoDefaultGradeError()
    return ClassificationResult(grade_id=None, grade_name=UNCLASSIFIED_GRADE_NAME, evaluation_log=log)


def build_grade_rule(
    *,
    grade_id: str,
    raw_conditions: Iterable[Mapping[str, Any]],
    logic_operator: Optional[str] = None,
    rule_id: str = "",
) -> GradeRule:
    """
    Validate an authored classification rule against the lead rule fields.

    Raises:
        NoValidConditionsError: no condition left after empty values are dropped
        InvalidConditionError: unknown field, illegal operator or malformed value
    """

    conditions = build_conditions(raw_conditions, LEAD_RULE_FIELDS)
    return GradeRule(
        id=rule_id,
        grade_id=grade_id,
        conditions=tuple(conditions),
        logic_operator=LogicOperator.parse(logic_operator),
    )


def classify_lead(lead: Lead, grades: Sequence[GradeWithRules]) -> Tuple[Lead, ClassificationResult]:
    """Classify a lead candidate and stamp the result as an automatic grade."""

    result = classify_grade(lead.classification_attributes(), grades)
    return lead.with_auto_grade(result.grade_id), result


def classify_leads(leads: Iterable[Lead], grades: Iterable[GradeWithRules]) -> List[Tuple[Lead, ClassificationResult]]:
    grades = list(grades)
    return [classify_lead(lead, grades) for lead in leads]


def classify_sample(attributes: Mapping[str, Any], grades: Iterable[GradeWithRules]) -> ClassificationResult:
    """
    Classify ad-hoc test data without persisting anything.

    Keys outside the lead rule fields are ignored; numeric strings are compared as numbers.
    """

    sample = {name: attributes.get(name) for name in LEAD_RULE_FIELDS}
    return classify_grade(sample, grades)


__all__ = [
    "ClassificationResult",
    "DEFAULT_GRADE_RULE",
    "EvaluationLogEntry",
    "NoDefaultGradeError",
    "TAX_DELINQUENCY_RULE",
    "UNCLASSIFIED_GRADE_NAME",
    "build_grade_rule",
    "classify_grade",
    "classify_lead",
    "classify_leads",
    "classify_sample",
]
