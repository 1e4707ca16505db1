"""
Tests for `services/grade_classifier.py`.

Covers contract rules:
- Grades are evaluated in ascending priority regardless of input order.
- The first matching rule wins; no match falls back to the default grade.
- Tax delinquency forces the default grade before any rule runs.
- Without a default grade, the result is unclassified unless a grade is required.
"""

from __future__ import annotations

import pytest

from domain.grade import Grade, GradeWithRules
from domain.lead import GradeSource, Lead
from domain.rules import Condition, GradeRule, InvalidConditionError, LogicOperator, NoValidConditionsError, Operator
from services.grade_classifier import (
    DEFAULT_GRADE_RULE,
    TAX_DELINQUENCY_RULE,
    UNCLASSIFIED_GRADE_NAME,
    NoDefaultGradeError,
    build_grade_rule,
    classify_grade,
    classify_lead,
    classify_leads,
    classify_sample,
)


def test_highest_priority_matching_grade_wins(lead_grades) -> None:
    """Verify a lead matching grade A is classified A after a single rule evaluation."""

    result = classify_grade({"annual_revenue": 12, "employee_count": 8}, lead_grades)

    assert (result.grade_id, result.grade_name, result.matched_rule_id) == ("g-a", "A", "r-a")
    assert len(result.evaluation_log) == 1
    assert result.evaluation_log[0].result is True


def test_first_match_not_best_match(lead_grades) -> None:
    """Verify evaluation stops at B once A has failed and B matches."""

    result = classify_grade({"annual_revenue": 10, "employee_count": 2}, lead_grades)

    assert result.grade_name == "B"
    assert [(e.grade_name, e.result) for e in result.evaluation_log] == [("A", False), ("B", True)]


def test_no_match_falls_back_to_default(lead_grades) -> None:
    """Verify the default grade is assigned and logged when no rule matches."""

    result = classify_grade({"annual_revenue": 1, "employee_count": 1}, lead_grades)

    assert result.grade_id == "g-c"
    assert result.matched_rule_id is None
    assert result.evaluation_log[-1].rule_description == DEFAULT_GRADE_RULE


def test_missing_attributes_fall_back_to_default(lead_grades) -> None:
    """Verify a lead without revenue or head count never matches a numeric rule."""

    result = classify_grade({}, lead_grades)

    assert result.grade_name == "C"


def test_tax_delinquency_forces_default_grade(lead_grades) -> None:
    """Verify tax delinquency overrides rules the lead would otherwise match."""

    result = classify_grade({"annual_revenue": 50, "employee_count": 50, "tax_delinquency": True}, lead_grades)

    assert result.grade_name == "C"
    assert len(result.evaluation_log) == 1
    assert result.evaluation_log[0].rule_description == TAX_DELINQUENCY_RULE


def test_unknown_tax_status_does_not_force_default(lead_grades) -> None:
    """Verify tax_delinquency None or False leaves rules in charge."""

    for tax in (None, False):
        result = classify_grade({"annual_revenue": 50, "employee_count": 50, "tax_delinquency": tax}, lead_grades)
        assert result.grade_name == "A"


def test_default_grade_rules_are_not_evaluated() -> None:
    """Verify rules attached to the default grade are skipped."""

    grades = [
        GradeWithRules(
            grade=Grade(id="g-d", name="D", priority=9, is_default=True),
            rules=(GradeRule(id="r-d", grade_id="g-d", conditions=(Condition("annual_revenue", Operator.GTE, 0),)),),
        )
    ]

    result = classify_grade({"annual_revenue": 5}, grades)

    assert result.matched_rule_id is None
    assert [e.rule_description for e in result.evaluation_log] == [DEFAULT_GRADE_RULE]


def test_without_default_grade_lead_is_unclassified(lead_grades) -> None:
    """Verify grade None and the unclassified label when nothing applies."""

    grades = [g for g in lead_grades if not g.is_default]

    result = classify_grade({"annual_revenue": 1}, grades)

    assert result.grade_id is None
    assert result.grade_name == UNCLASSIFIED_GRADE_NAME


def test_without_default_grade_required_grade_raises(lead_grades) -> None:
    """Verify callers that need a grade get NoDefaultGradeError."""

    grades = [g for g in lead_grades if not g.is_default]

    with pytest.raises(NoDefaultGradeError):
        classify_grade({"annual_revenue": 1}, grades, require_grade=True)


def test_equal_priority_is_ordered_by_name() -> None:
    """Verify ties on priority are broken deterministically by grade name."""

    rule = (Condition("annual_revenue", Operator.GTE, 1),)
    grades = [
        GradeWithRules(Grade(id="g-y", name="Y", priority=1), (GradeRule("r-y", "g-y", rule),)),
        GradeWithRules(Grade(id="g-x", name="X", priority=1), (GradeRule("r-x", "g-x", rule),)),
    ]

    assert classify_grade({"annual_revenue": 5}, grades).grade_name == "X"


def test_or_rule_matches_on_any_condition() -> None:
    """Verify OR rules classify on a single satisfied condition."""

    grades = [
        GradeWithRules(
            Grade(id="g-a", name="A", priority=1),
            (
                GradeRule(
                    "r-a",
                    "g-a",
                    (Condition("industry", Operator.CONTAINS, "제조"), Condition("annual_revenue", Operator.GTE, 100)),
                    LogicOperator.OR,
                ),
            ),
        )
    ]

    assert classify_grade({"industry": "식품제조업", "annual_revenue": 1}, grades).grade_name == "A"


def test_classify_lead_stamps_auto_grade(lead_grades) -> None:
    """Verify classified leads carry grade_source AUTO."""

    lead = Lead(phone="010-1111-2222", annual_revenue=12, employee_count=8)

    classified, result = classify_lead(lead, lead_grades)

    assert classified.grade_id == "g-a"
    assert classified.grade_source is GradeSource.AUTO
    assert classified.phone == lead.phone
    assert result.grade_name == "A"


def test_classify_leads_keeps_input_order(lead_grades) -> None:
    """Verify batch classification returns one result per lead in order."""

    leads = [
        Lead(phone="010-1111-1111", annual_revenue=1),
        Lead(phone="010-2222-2222", annual_revenue=5),
    ]

    results = classify_leads(leads, lead_grades)

    assert [r.grade_name for _, r in results] == ["C", "B"]


def test_classify_sample_ignores_unknown_keys(lead_grades) -> None:
    """Verify ad-hoc test data outside the rule fields has no effect."""

    result = classify_sample({"annual_revenue": 12, "employee_count": 8, "favorite_color": "blue"}, lead_grades)

    assert result.grade_name == "A"
    assert result.to_dict()["evaluation_log"][0]["conditions"][0]["field"] == "annual_revenue"


def test_build_grade_rule_validates_conditions() -> None:
    """Verify authored grade rules are validated against the lead fields."""

    rule = build_grade_rule(
        grade_id="g-a",
        raw_conditions=[
            {"field": "annual_revenue", "operator": ">=", "value": 10},
            {"field": "industry", "operator": "eq", "value": ""},
        ],
        logic_operator="or",
    )

    assert rule.conditions == (Condition("annual_revenue", Operator.GTE, 10),)
    assert rule.logic_operator is LogicOperator.OR

    with pytest.raises(NoValidConditionsError):
        build_grade_rule(grade_id="g-a", raw_conditions=[{"field": "industry", "operator": "eq", "value": " "}])

    with pytest.raises(InvalidConditionError):
        build_grade_rule(grade_id="g-a", raw_conditions=[{"field": "monthly_payment", "operator": "gte", "value": 1}])
