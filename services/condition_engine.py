"""
Condition evaluation shared by grade classification and distribution rules.

Semantics:
- A condition on a missing (None) attribute never matches.
- Number fields compare numerically; text and enum fields compare case-insensitively
  (`contains`/`not_contains` are substring tests, `in` is list membership).
- `between` is inclusive on both ends unless `between_inclusive=False`, in which case it
  is half-open [min, max).
- A rule with no conditions never matches. AND needs every condition, OR any one.
- Fields missing from the registry are compared numerically when both sides parse as
  numbers and as text otherwise.

Evaluation never raises on stored data: a malformed expected value simply fails the
condition and the reason is recorded in `ConditionResult.detail`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence

from domain.rules import Condition, FieldSpec, FieldType, LogicOperator, Operator

AND_SEPARATOR = " 그리고 "
OR_SEPARATOR = " 또는 "


@dataclass(frozen=True, slots=True)
class ConditionResult:
    condition: Condition
    label: str
    actual: Any
    matched: bool
    detail: str

    def describe(self) -> str:
        status = "충족" if self.matched else "미충족"
        return f"{describe_condition(self.condition, label=self.label)}: {status} ({self.detail})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.condition.field,
            "label": self.label,
            "operator": self.condition.operator.value,
            "expected": self.condition.value,
            "actual": _plain(self.actual),
            "matched": self.matched,
            "detail": self.detail,
        }


@dataclass(frozen=True, slots=True)
class RuleEvaluation:
    matched: bool
    results: Sequence[ConditionResult]
    logic_operator: LogicOperator = LogicOperator.AND

    @property
    def details(self) -> str:
        if not self.results:
            return "조건이 없습니다."
        return ", ".join(r.describe() for r in self.results)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_text(value: Any) -> str:
    return str(_plain(value)).strip().lower()


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = _to_text(value)
    if text in ("true", "1", "yes", "y"):
        return True
    if text in ("false", "0", "no", "n"):
        return False
    return None


def format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        if len(value) == 2 and all(_to_number(v) is not None for v in value):
            return f"{value[0]} ~ {value[1]}"
        return "[" + ", ".join(str(v) for v in value) + "]"
    return str(_plain(value))


def field_label(field_name: str, fields: Mapping[str, FieldSpec]) -> str:
    spec = fields.get(field_name)
    return spec.label if spec else field_name


def describe_condition(
    condition: Condition,
    fields: Optional[Mapping[str, FieldSpec]] = None,
    label: Optional[str] = None,
) -> str:
    """e.g. "연매출 ≥ 10", "연매출 범위 10 ~ 30"."""

    name = label or field_label(condition.field, fields or {})
    return f"{name} {condition.operator.symbol} {format_value(condition.value)}"


def describe_rule(
    conditions: Sequence[Condition],
    logic_operator: LogicOperator,
    fields: Mapping[str, FieldSpec],
) -> str:
    separator = AND_SEPARATOR if logic_operator is LogicOperator.AND else OR_SEPARATOR
    return separator.join(describe_condition(c, fields) for c in conditions)


def _compare_numbers(operator: Operator, actual: float, expected: Any, between_inclusive: bool) -> tuple[bool, str]:
    if operator is Operator.BETWEEN:
        if not isinstance(expected, (list, tuple)) or len(expected) != 2:
            return False, "범위 값 오류"
        low, high = _to_number(expected[0]), _to_number(expected[1])
        if low is None or high is None:
            return False, "범위 값 오류"
        if between_inclusive:
            return low <= actual <= high, f"{low:g} <= {actual:g} <= {high:g}"
        return low <= actual < high, f"{low:g} <= {actual:g} < {high:g}"

    if operator is Operator.IN:
        if not isinstance(expected, (list, tuple)):
            return False, "목록 값 오류"
        targets = [_to_number(v) for v in expected]
        return actual in targets, f"{actual:g} in {format_value(expected)}"

    target = _to_number(expected)
    if target is None:
        return False, f"숫자가 아닌 기준값: {expected}"

    if operator is Operator.EQ:
        return actual == target, f"{actual:g} = {target:g}"
    if operator is Operator.NEQ:
        return actual != target, f"{actual:g} != {target:g}"
    if operator is Operator.GT:
        return actual > target, f"{actual:g} > {target:g}"
    if operator is Operator.GTE:
        return actual >= target, f"{actual:g} >= {target:g}"
    if operator is Operator.LT:
        return actual < target, f"{actual:g} < {target:g}"
    if operator is Operator.LTE:
        return actual <= target, f"{actual:g} <= {target:g}"
    return False, f"숫자 필드에 사용할 수 없는 연산자: {operator.value}"


def _compare_text(operator: Operator, actual: Any, expected: Any) -> tuple[bool, str]:
    text = _to_text(actual)

    if operator is Operator.IN:
        if not isinstance(expected, (list, tuple)):
            return False, "목록 값 오류"
        return text in [_to_text(v) for v in expected], f'"{_plain(actual)}" in {format_value(expected)}'

    target = _to_text(expected)
    if operator is Operator.EQ:
        return text == target, f'"{_plain(actual)}" = "{expected}"'
    if operator is Operator.NEQ:
        return text != target, f'"{_plain(actual)}" != "{expected}"'
    if operator is Operator.CONTAINS:
        return target in text, f'"{_plain(actual)}" contains "{expected}"'
    if operator is Operator.NOT_CONTAINS:
        return target not in text, f'"{_plain(actual)}" not contains "{expected}"'
    return False, f"텍스트 필드에 사용할 수 없는 연산자: {operator.value}"


def _compare_booleans(operator: Operator, actual: Any, expected: Any) -> tuple[bool, str]:
    actual_bool, target = _to_bool(actual), _to_bool(expected)
    if actual_bool is None or target is None:
        return False, f"불리언이 아닌 값: {actual} / {expected}"
    if operator is Operator.EQ:
        return actual_bool == target, f"{actual_bool} = {target}"
    if operator is Operator.NEQ:
        return actual_bool != target, f"{actual_bool} != {target}"
    return False, f"불리언 필드에 사용할 수 없는 연산자: {operator.value}"


def _infer_type(actual: Any) -> FieldType:
    if isinstance(actual, bool):
        return FieldType.BOOLEAN
    if _to_number(actual) is not None:
        return FieldType.NUMBER
    return FieldType.TEXT


def evaluate_condition(
    condition: Condition,
    attributes: Mapping[str, Any],
    fields: Mapping[str, FieldSpec],
    *,
    between_inclusive: bool = True,
) -> ConditionResult:
    spec = fields.get(condition.field)
    label = spec.label if spec else condition.field
    actual = attributes.get(condition.field)

    if actual is None:
        return ConditionResult(condition, label, None, False, "값 없음")

    field_type = spec.field_type if spec else _infer_type(actual)

    if field_type is FieldType.NUMBER:
        number = _to_number(actual)
        if number is None:
            matched, detail = False, f"숫자가 아닌 값: {actual}"
        else:
            matched, detail = _compare_numbers(condition.operator, number, condition.value, between_inclusive)
    elif field_type is FieldType.BOOLEAN:
        matched, detail = _compare_booleans(condition.operator, actual, condition.value)
    else:
        matched, detail = _compare_text(condition.operator, actual, condition.value)

    return ConditionResult(condition, label, actual, matched, detail)


def evaluate_rule(
    conditions: Sequence[Condition],
    logic_operator: LogicOperator,
    attributes: Mapping[str, Any],
    fields: Mapping[str, FieldSpec],
    *,
    between_inclusive: bool = True,
) -> RuleEvaluation:
    if not conditions:
        return RuleEvaluation(matched=False, results=(), logic_operator=logic_operator)

    results: List[ConditionResult] = [
        evaluate_condition(c, attributes, fields, between_inclusive=between_inclusive) for c in conditions
    ]
    if logic_operator is LogicOperator.AND:
        matched = all(r.matched for r in results)
    else:
        matched = any(r.matched for r in results)
    return RuleEvaluation(matched=matched, results=tuple(results), logic_operator=logic_operator)


__all__ = [
    "AND_SEPARATOR",
    "ConditionResult",
    "OR_SEPARATOR",
    "RuleEvaluation",
    "describe_condition",
    "describe_rule",
    "evaluate_condition",
    "evaluate_rule",
    "field_label",
    "format_value",
]
