"""
Tests for `domain/rules.py` and `services/condition_engine.py`.

Covers contract rules:
- Authored conditions with empty values are dropped; nothing left is an error.
- Unknown fields, illegal operators and malformed values are rejected at authoring time.
- A condition on a missing attribute never matches; an empty rule never matches.
- Text comparison is case-insensitive; `between` is inclusive unless told otherwise.
"""

from __future__ import annotations

import pytest

from domain.lead import LEAD_RULE_FIELDS
from domain.rules import (
    Condition,
    InvalidConditionError,
    LogicOperator,
    NoValidConditionsError,
    Operator,
    build_conditions,
    parse_stored_conditions,
)
from services.condition_engine import (
    describe_condition,
    describe_rule,
    evaluate_condition,
    evaluate_rule,
)


class TestBuildConditions:
    def test_drops_conditions_with_empty_values(self) -> None:
        """Verify empty values and blank fields are skipped silently."""

        conditions = build_conditions(
            [
                {"field": "annual_revenue", "operator": "gte", "value": 10},
                {"field": "industry", "operator": "eq", "value": ""},
                {"field": "region", "operator": "in", "value": []},
                {"field": "", "operator": "eq", "value": "x"},
            ],
            LEAD_RULE_FIELDS,
        )

        assert conditions == [Condition("annual_revenue", Operator.GTE, 10)]

    def test_all_empty_raises(self) -> None:
        """Verify a rule left without conditions is rejected."""

        with pytest.raises(NoValidConditionsError):
            build_conditions([{"field": "industry", "operator": "eq", "value": None}], LEAD_RULE_FIELDS)

    def test_accepts_symbolic_operator_aliases(self) -> None:
        """Verify ">=" is read as gte."""

        conditions = build_conditions([{"field": "employee_count", "operator": ">=", "value": 5}], LEAD_RULE_FIELDS)

        assert conditions[0].operator is Operator.GTE

    @pytest.mark.parametrize(
        "raw",
        [
            {"field": "unknown_field", "operator": "eq", "value": 1},
            {"field": "annual_revenue", "operator": "contains", "value": 1},
            {"field": "annual_revenue", "operator": "gte", "value": "many"},
            {"field": "annual_revenue", "operator": "between", "value": [30, 10]},
            {"field": "annual_revenue", "operator": "between", "value": 10},
            {"field": "industry", "operator": "in", "value": "제조업"},
            {"field": "tax_delinquency", "operator": "gt", "value": True},
            {"field": "industry", "operator": "like", "value": "x"},
        ],
    )
    def test_rejects_invalid_conditions(self, raw: dict) -> None:
        """Verify unknown fields, illegal operators and malformed values are rejected."""

        with pytest.raises(InvalidConditionError):
            build_conditions([raw], LEAD_RULE_FIELDS)

    def test_parse_stored_conditions_drops_unreadable_entries(self) -> None:
        """Verify legacy rows with bad entries still load their valid conditions."""

        conditions = parse_stored_conditions(
            [
                {"field": "industry", "operator": "eq", "value": "제조업"},
                {"field": "industry", "operator": "like", "value": "x"},
                {"operator": "eq", "value": 1},
                "garbage",
            ]
        )

        assert conditions == [Condition("industry", Operator.EQ, "제조업")]
        assert parse_stored_conditions(None) == []


class TestEvaluateCondition:
    @pytest.mark.parametrize(
        "operator, expected_value, actual, matched",
        [
            (Operator.GTE, 10, 10, True),
            (Operator.GTE, 10, 9.9, False),
            (Operator.GT, 10, 10, False),
            (Operator.LT, 10, 9, True),
            (Operator.LTE, 10, 10, True),
            (Operator.EQ, 10, "10", True),
            (Operator.NEQ, 10, 11, True),
            (Operator.IN, [1, 5, 10], 5, True),
            (Operator.IN, [1, 5, 10], 6, False),
        ],
    )
    def test_number_operators(self, operator: Operator, expected_value, actual, matched: bool) -> None:
        """Verify numeric comparisons."""

        condition = Condition("annual_revenue", operator, expected_value)

        result = evaluate_condition(condition, {"annual_revenue": actual}, LEAD_RULE_FIELDS)

        assert result.matched is matched

    @pytest.mark.parametrize(
        "inclusive, actual, matched",
        [
            (True, 10, True),
            (True, 30, True),
            (True, 30.1, False),
            (False, 10, True),
            (False, 29.9, True),
            (False, 30, False),
        ],
    )
    def test_between_bounds(self, inclusive: bool, actual: float, matched: bool) -> None:
        """Verify between is inclusive by default and half-open on request."""

        condition = Condition("annual_revenue", Operator.BETWEEN, [10, 30])

        result = evaluate_condition(
            condition, {"annual_revenue": actual}, LEAD_RULE_FIELDS, between_inclusive=inclusive
        )

        assert result.matched is matched

    @pytest.mark.parametrize(
        "operator, expected_value, actual, matched",
        [
            (Operator.EQ, "Seoul", "seoul", True),
            (Operator.NEQ, "서울", "부산", True),
            (Operator.CONTAINS, "제조", "식품 제조업", True),
            (Operator.NOT_CONTAINS, "제조", "식품 제조업", False),
            (Operator.NOT_CONTAINS, "유통", "식품 제조업", True),
            (Operator.IN, ["서울", "경기"], "경기", True),
            (Operator.IN, ["서울", "경기"], "부산", False),
        ],
    )
    def test_text_operators_are_case_insensitive(self, operator: Operator, expected_value, actual: str, matched: bool) -> None:
        """Verify text comparisons ignore case."""

        condition = Condition("region", operator, expected_value)

        result = evaluate_condition(condition, {"region": actual}, LEAD_RULE_FIELDS)

        assert result.matched is matched

    def test_boolean_accepts_string_expected_value(self) -> None:
        """Verify "true" as the expected value matches a True attribute."""

        condition = Condition("tax_delinquency", Operator.EQ, "true")

        assert evaluate_condition(condition, {"tax_delinquency": True}, LEAD_RULE_FIELDS).matched is True
        assert evaluate_condition(condition, {"tax_delinquency": False}, LEAD_RULE_FIELDS).matched is False

    def test_missing_attribute_never_matches(self) -> None:
        """Verify a None attribute fails every operator, including neq and not_contains."""

        for condition in (
            Condition("industry", Operator.NEQ, "제조업"),
            Condition("industry", Operator.NOT_CONTAINS, "제조"),
            Condition("annual_revenue", Operator.LT, 100),
        ):
            result = evaluate_condition(condition, {}, LEAD_RULE_FIELDS)
            assert result.matched is False
            assert result.detail == "값 없음"

    def test_non_numeric_actual_on_number_field_fails(self) -> None:
        """Verify a text value on a number field fails instead of raising."""

        result = evaluate_condition(Condition("annual_revenue", Operator.GTE, 1), {"annual_revenue": "많음"}, LEAD_RULE_FIELDS)

        assert result.matched is False

    def test_unregistered_field_is_compared_by_inferred_type(self) -> None:
        """Verify fields outside the registry compare numerically when possible."""

        condition = Condition("score", Operator.GT, 10)

        assert evaluate_condition(condition, {"score": "15"}, LEAD_RULE_FIELDS).matched is True
        assert evaluate_condition(condition, {"score": "5"}, LEAD_RULE_FIELDS).matched is False


class TestEvaluateRule:
    conditions = (
        Condition("annual_revenue", Operator.GTE, 10),
        Condition("employee_count", Operator.GTE, 5),
    )

    def test_and_requires_every_condition(self) -> None:
        """Verify AND fails when one condition fails."""

        evaluation = evaluate_rule(self.conditions, LogicOperator.AND, {"annual_revenue": 12, "employee_count": 3}, LEAD_RULE_FIELDS)

        assert evaluation.matched is False
        assert [r.matched for r in evaluation.results] == [True, False]

    def test_or_requires_any_condition(self) -> None:
        """Verify OR passes when one condition passes."""

        evaluation = evaluate_rule(self.conditions, LogicOperator.OR, {"annual_revenue": 12, "employee_count": 3}, LEAD_RULE_FIELDS)

        assert evaluation.matched is True

    @pytest.mark.parametrize("logic", [LogicOperator.AND, LogicOperator.OR])
    def test_empty_rule_never_matches(self, logic: LogicOperator) -> None:
        """Verify a rule without conditions matches nothing under either logic."""

        evaluation = evaluate_rule((), logic, {"annual_revenue": 12}, LEAD_RULE_FIELDS)

        assert evaluation.matched is False
        assert evaluation.details == "조건이 없습니다."


def test_describe_condition_uses_field_labels() -> None:
    """Verify human-readable condition text."""

    assert describe_condition(Condition("annual_revenue", Operator.GTE, 10), LEAD_RULE_FIELDS) == "연매출 ≥ 10"
    assert describe_condition(Condition("annual_revenue", Operator.BETWEEN, [10, 30]), LEAD_RULE_FIELDS) == "연매출 범위 10 ~ 30"


def test_describe_rule_joins_with_logic_separator() -> None:
    """Verify AND/OR rules are joined with the Korean connectives."""

    conditions = [Condition("annual_revenue", Operator.GTE, 10), Condition("industry", Operator.EQ, "제조업")]

    assert describe_rule(conditions, LogicOperator.AND, LEAD_RULE_FIELDS) == "연매출 ≥ 10 그리고 업종 = 제조업"
    assert describe_rule(conditions, LogicOperator.OR, LEAD_RULE_FIELDS) == "연매출 ≥ 10 또는 업종 = 제조업"


@pytest.mark.parametrize("raw, expected", [(None, LogicOperator.AND), ("", LogicOperator.AND), ("or", LogicOperator.OR)])
def test_logic_operator_parse(raw, expected: LogicOperator) -> None:
    """Verify logic defaults to AND and parsing ignores case."""

    assert LogicOperator.parse(raw) is expected
