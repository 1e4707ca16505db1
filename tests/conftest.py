"""
Pytest configuration for domain and service tests.

Adds the project root to the Python path so tests can import domain, services,
repositories, etc., and provides the grade fixtures shared by the classifier tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.grade import Grade, GradeWithRules  # noqa: E402
from domain.rules import Condition, GradeRule, LogicOperator, Operator  # noqa: E402


@pytest.fixture
def lead_grades() -> list[GradeWithRules]:
    """
    A: revenue >= 10 (억) AND employees >= 5
    B: revenue between 3 and 10
    C: default grade
    Returned out of priority order on purpose.
    """

    grade_a = GradeWithRules(
        grade=Grade(id="g-a", name="A", priority=1),
        rules=(
            GradeRule(
                id="r-a",
                grade_id="g-a",
                conditions=(
                    Condition("annual_revenue", Operator.GTE, 10),
                    Condition("employee_count", Operator.GTE, 5),
                ),
                logic_operator=LogicOperator.AND,
            ),
        ),
    )
    grade_b = GradeWithRules(
        grade=Grade(id="g-b", name="B", priority=2),
        rules=(
            GradeRule(
                id="r-b",
                grade_id="g-b",
                conditions=(Condition("annual_revenue", Operator.BETWEEN, [3, 10]),),
            ),
        ),
    )
    grade_c = GradeWithRules(grade=Grade(id="g-c", name="C", priority=3, is_default=True))
    return [grade_c, grade_a, grade_b]
