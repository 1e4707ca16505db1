"""
Tests for `domain/lead.py` and `domain/period.py`.

Covers contract rules:
- A lead always carries a non-empty phone.
- Grade changes return a new instance; AUTO from the rule engine, MANUAL from a person.
- Grade rules only see the declared lead rule fields.
- Periods are calendar months; the previous month of January is December.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import date, datetime

import pytest

from domain.lead import LEAD_RULE_FIELDS, GradeSource, Lead
from domain.period import Period, previous_month


@pytest.mark.parametrize("phone", ["", "   "])
def test_lead_phone_required(phone: str) -> None:
    """Verify a lead cannot be created without a phone."""

    with pytest.raises(ValueError):
        Lead(phone=phone)


def test_lead_is_immutable() -> None:
    """Verify lead fields cannot be reassigned."""

    lead = Lead(phone="010-1234-5678")

    with pytest.raises(FrozenInstanceError):
        lead.grade_id = "g-a"  # type: ignore[misc]


def test_auto_and_manual_grades() -> None:
    """Verify grade stamping returns new leads with the right source."""

    lead = Lead(phone="010-1234-5678", company_name="테스트상사")

    auto = lead.with_auto_grade("g-b")
    manual = auto.with_manual_grade("g-a")

    assert lead.grade_id is None and lead.grade_source is None
    assert (auto.grade_id, auto.grade_source) == ("g-b", GradeSource.AUTO)
    assert (manual.grade_id, manual.grade_source) == ("g-a", GradeSource.MANUAL)
    assert manual.company_name == "테스트상사"


def test_classification_attributes() -> None:
    """Verify rule attributes cover exactly the lead rule fields."""

    lead = Lead(
        phone="010-1234-5678",
        annual_revenue=10,
        annual_revenue_min=10,
        annual_revenue_max=30,
        tax_delinquency=False,
        memo="not visible to rules",
    )

    attributes = lead.classification_attributes()

    assert set(attributes) == set(LEAD_RULE_FIELDS)
    assert attributes["annual_revenue"] == 10
    assert attributes["annual_revenue_max"] == 30
    assert attributes["tax_delinquency"] is False
    assert attributes["industry"] is None
    assert "memo" not in attributes


@pytest.mark.parametrize(
    "period, expected",
    [
        (Period(2025, 3), Period(2025, 2)),
        (Period(2025, 1), Period(2024, 12)),
        (Period(2024, 12), Period(2024, 11)),
    ],
)
def test_period_previous(period: Period, expected: Period) -> None:
    """Verify the previous month wraps across years."""

    assert period.previous() == expected


@pytest.mark.parametrize("month", [0, 13])
def test_period_month_range(month: int) -> None:
    """Verify months outside 1..12 are rejected."""

    with pytest.raises(ValueError):
        Period(2025, month)


def test_previous_month_from_dates() -> None:
    """Verify the evaluation period is the month before the reference date."""

    assert previous_month(date(2025, 1, 15)) == Period(2024, 12)
    assert previous_month(datetime(2025, 3, 1, 9, 30)) == Period(2025, 2)


def test_periods_are_ordered() -> None:
    """Verify periods sort chronologically."""

    assert sorted([Period(2025, 1), Period(2024, 12), Period(2024, 2)]) == [
        Period(2024, 2),
        Period(2024, 12),
        Period(2025, 1),
    ]
