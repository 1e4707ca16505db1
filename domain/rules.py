"""
Domain: conditional rules shared by grade classification and lead distribution.

A rule is a list of `Condition`s combined with AND/OR. Every condition names a field
whose declared `FieldType` restricts which operators are legal and how the expected
value is interpreted (`between` takes a two-element [min, max] list, `in` a list).

Rules are validated when they are authored, never when they are evaluated:
- Conditions with an empty value are dropped.
- A rule left with zero conditions raises `NoValidConditionsError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence


class Operator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    BETWEEN = "between"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IN = "in"

    @staticmethod
    def parse(raw: str) -> "Operator":
        """Resolve an operator from its name or symbolic alias ("=", ">=", ...)."""

        text = str(raw).strip().lower()
        alias = _OPERATOR_ALIASES.get(text)
        if alias is not None:
            return alias
        return Operator(text)

    @property
    def symbol(self) -> str:
        return _OPERATOR_SYMBOLS[self]


_OPERATOR_ALIASES = {
    "=": Operator.EQ,
    "==": Operator.EQ,
    "!=": Operator.NEQ,
    ">": Operator.GT,
    ">=": Operator.GTE,
    "<": Operator.LT,
    "<=": Operator.LTE,
}

_OPERATOR_SYMBOLS = {
    Operator.EQ: "=",
    Operator.NEQ: "≠",
    Operator.GT: ">",
    Operator.GTE: "≥",
    Operator.LT: "<",
    Operator.LTE: "≤",
    Operator.BETWEEN: "범위",
    Operator.CONTAINS: "포함",
    Operator.NOT_CONTAINS: "미포함",
    Operator.IN: "목록 중",
}


class LogicOperator(str, Enum):
    AND = "AND"
    OR = "OR"

    @staticmethod
    def parse(raw: Optional[str]) -> "LogicOperator":
        if not raw:
            return LogicOperator.AND
        return LogicOperator(str(raw).strip().upper())


class FieldType(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    ENUM = "enum"
    BOOLEAN = "boolean"


LEGAL_OPERATORS: Mapping[FieldType, frozenset] = {
    FieldType.NUMBER: frozenset(
        {
            Operator.EQ,
            Operator.NEQ,
            Operator.GT,
            Operator.GTE,
            Operator.LT,
            Operator.LTE,
            Operator.BETWEEN,
            Operator.IN,
        }
    ),
    FieldType.TEXT: frozenset(
        {Operator.EQ, Operator.NEQ, Operator.CONTAINS, Operator.NOT_CONTAINS, Operator.IN}
    ),
    FieldType.ENUM: frozenset({Operator.EQ, Operator.NEQ, Operator.IN}),
    FieldType.BOOLEAN: frozenset({Operator.EQ, Operator.NEQ}),
}


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Declared type and display label of a field that rules may reference."""

    name: str
    field_type: FieldType
    label: str

    def allows(self, operator: Operator) -> bool:
        return operator in LEGAL_OPERATORS[self.field_type]


class NoValidConditionsError(Exception):
    """Raised when a rule has no usable condition after empty values are filtered out."""

    def __init__(self) -> None:
        super().__init__("Rule has no valid conditions")


class InvalidConditionError(ValueError):
    """Raised when an authored condition names an unknown field, an illegal operator or a malformed value."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid rule conditions: " + "; ".join(problems))


@dataclass(frozen=True, slots=True)
class Condition:
    field: str
    operator: Operator
    value: Any

    @staticmethod
    def from_mapping(raw: Mapping[str, Any]) -> "Condition":
        return Condition(
            field=str(raw["field"]).strip(),
            operator=Operator.parse(raw["operator"]),
            value=raw.get("value"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}


@dataclass(frozen=True, slots=True)
class GradeRule:
    """Classification rule attached to a lead grade."""

    id: str
    grade_id: str
    conditions: Sequence[Condition]
    logic_operator: LogicOperator = LogicOperator.AND


@dataclass(frozen=True, slots=True)
class DistributionRule:
    """
    Administrator-defined eligibility rule for receiving leads of a grade.

    `exclusion_rules` holds tags such as "grade_a_eligible": the rule does not apply
    to a member who is eligible for the tagged grade.
    """

    id: str
    grade_id: str
    name: str
    conditions: Sequence[Condition]
    logic_operator: LogicOperator = LogicOperator.AND
    exclusion_rules: Sequence[str] = field(default_factory=tuple)
    priority: int = 0
    is_active: bool = True


def _is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0 or all(_is_empty_value(v) for v in value)
    return False


def _value_problem(spec: FieldSpec, condition: Condition) -> Optional[str]:
    if not spec.allows(condition.operator):
        return f"{spec.name}: operator '{condition.operator.value}' not allowed for {spec.field_type.value} field"

    value = condition.value
    if condition.operator is Operator.BETWEEN:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            return f"{spec.name}: between requires [min, max]"
        try:
            low, high = float(value[0]), float(value[1])
        except (TypeError, ValueError):
            return f"{spec.name}: between bounds must be numeric"
        if low > high:
            return f"{spec.name}: between min is greater than max"
        return None

    if condition.operator is Operator.IN:
        if not isinstance(value, (list, tuple)):
            return f"{spec.name}: in requires a list"
        return None

    if spec.field_type is FieldType.NUMBER:
        try:
            float(value)
        except (TypeError, ValueError):
            return f"{spec.name}: value '{value}' is not numeric"
    return None


def build_conditions(
    raw_conditions: Iterable[Mapping[str, Any]],
    fields: Mapping[str, FieldSpec],
) -> List[Condition]:
    """
    Validate authored conditions against a field registry.

    Conditions with an empty value or field are skipped silently.

    Raises:
        InvalidConditionError: a non-empty condition names an unknown field, an
            operator its field type does not allow, or a malformed value.
        NoValidConditionsError: nothing usable remains after filtering.
    """

    valid: List[Condition] = []
    problems: List[str] = []

    for raw in raw_conditions:
        if _is_empty_value(raw.get("value")) or not raw.get("field"):
            continue
        try:
            condition = Condition.from_mapping(raw)
        except (KeyError, ValueError) as e:
            problems.append(f"{raw.get('field')}: {e}")
            continue

        spec = fields.get(condition.field)
        if spec is None:
            problems.append(f"{condition.field}: unknown field")
            continue

        problem = _value_problem(spec, condition)
        if problem:
            problems.append(problem)
            continue
        valid.append(condition)

    if problems:
        raise InvalidConditionError(problems)
    if not valid:
        raise NoValidConditionsError()
    return valid


def parse_stored_conditions(raw: Any) -> List[Condition]:
    """
    Conditions from a stored JSON column. Entries that cannot be read are dropped.

    Stored rules were validated when authored; this only guards against legacy rows.
    """

    if not isinstance(raw, list):
        return []
    conditions: List[Condition] = []
    for item in raw:
        if not isinstance(item, Mapping) or not item.get("field"):
            continue
        try:
            conditions.append(Condition.from_mapping(item))
        except (KeyError, ValueError):
            continue
    return conditions


__all__ = [
    "Condition",
    "DistributionRule",
    "FieldSpec",
    "FieldType",
    "GradeRule",
    "InvalidConditionError",
    "LEGAL_OPERATORS",
    "LogicOperator",
    "NoValidConditionsError",
    "Operator",
    "build_conditions",
    "parse_stored_conditions",
]
