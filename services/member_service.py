"""
Member-side operations backed by Supabase: eligible-member listings, distribution rule
testing and monthly performance recording.

Eligibility is judged on the previous calendar month unless the caller asks for the
current one.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from domain.member import Member, MemberLevel, MemberQualification, MemberSnapshot, MonthlyPerformance, PerformanceDetail
from domain.period import Period, previous_month
from repositories.distribution_rule_repository import list_active_distribution_rules
from repositories.grade_repository import get_grade, list_active_grades
from repositories.member_repository import (
    get_insurance_products,
    get_member,
    list_active_members,
    load_member_snapshots,
    save_monthly_performance,
)
from repositories.settings_repository import get_eligibility_thresholds
from services.distribution_rule_service import DistributionTestResult, evaluate_grade_results
from services.eligibility_service import EligibleMembersReport, evaluate_eligible_members
from services.performance_service import aggregate_monthly_performance, calculate_commission_with_product

logger = logging.getLogger(__name__)

TEST_MEMBER_ID = "test"
TEST_MEMBER_NAME = "테스트 멤버"


class GradeNotFoundError(Exception):
    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Grade not found: {reference}")


class MemberNotFoundError(Exception):
    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member not found: {member_id}")


class MissingTestSubjectError(ValueError):
    """Neither a member id nor test data was given."""

    def __init__(self) -> None:
        super().__init__("Either member_id or test_data is required")


def evaluation_period(use_current_month: bool = False, today: Optional[date] = None) -> Period:
    today = today or date.today()
    return Period.of(today) if use_current_month else previous_month(today)


def list_eligible_members(
    grade_id: Optional[str] = None,
    grade_name: Optional[str] = None,
    team_id: Optional[str] = None,
    use_current_month: bool = False,
    today: Optional[date] = None,
) -> EligibleMembersReport:
    """
    Active assignees partitioned into eligible/ineligible for one grade, grouped by team.

    Raises:
        GradeNotFoundError: a grade was requested but does not exist
    """

    grade = None
    if grade_id or grade_name:
        grade = get_grade(grade_id=grade_id, name=grade_name)
        if grade is None:
            raise GradeNotFoundError(grade_id or grade_name or "")

    period = evaluation_period(use_current_month, today)
    snapshots = load_member_snapshots(list_active_members(team_id=team_id), period)

    return evaluate_eligible_members(
        snapshots,
        get_eligibility_thresholds(),
        grade,
        period=period,
        is_current_month=use_current_month,
    )


def snapshot_from_test_data(test_data: Mapping[str, Any], period: Period) -> MemberSnapshot:
    """Synthetic member built from ad-hoc `monthly_payment` / `newbie_test_passed` values."""

    passed = bool(test_data.get("newbie_test_passed", False))
    level = test_data.get("level")
    qualification = MemberQualification(
        member_id=TEST_MEMBER_ID,
        level=MemberLevel(level) if level else (MemberLevel.REGULAR if passed else MemberLevel.TRAINEE),
        newbie_test_passed=passed,
    )
    performance = MonthlyPerformance(
        member_id=TEST_MEMBER_ID,
        year=period.year,
        month=period.month,
        total_monthly_payment=float(test_data.get("monthly_payment") or 0),
        total_commission=float(test_data.get("total_commission") or 0),
        contract_count=int(test_data.get("contract_count") or 0),
    )
    return MemberSnapshot(
        member=Member(id=TEST_MEMBER_ID, name=TEST_MEMBER_NAME),
        period=period,
        qualification=qualification,
        performance=performance,
    )


def run_distribution_test(
    member_id: Optional[str] = None,
    test_data: Optional[Mapping[str, Any]] = None,
    grade_id: Optional[str] = None,
    today: Optional[date] = None,
) -> DistributionTestResult:
    """
    Evaluate a stored member (previous month) or ad-hoc test data against the active rules.

    Raises:
        MemberNotFoundError: `member_id` does not exist
        MissingTestSubjectError: neither `member_id` nor `test_data` given
    """

    period = evaluation_period(today=today)

    if member_id:
        member = get_member(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        snapshot = load_member_snapshots([member], period)[0]
    elif test_data is not None:
        snapshot = snapshot_from_test_data(test_data, period)
    else:
        raise MissingTestSubjectError()

    return evaluate_grade_results(
        snapshot,
        list_active_grades(),
        list_active_distribution_rules(),
        get_eligibility_thresholds(),
        grade_id=grade_id,
    )


def fill_commissions(details: Sequence[PerformanceDetail]) -> list[PerformanceDetail]:
    """Compute CMP from the product rates for rows recorded without a commission."""

    missing = [d for d in details if not d.commission_amount and d.product_id]
    if not missing:
        return list(details)

    products = get_insurance_products(d.product_id for d in missing if d.product_id)
    filled = []
    for detail in details:
        if not detail.commission_amount and detail.product_id:
            commission = calculate_commission_with_product(detail.monthly_payment, products.get(detail.product_id))
            detail = replace(detail, commission_amount=commission)
        filled.append(detail)
    return filled


def record_monthly_performance(
    member_id: str,
    period: Period,
    details: Sequence[PerformanceDetail],
    notes: Optional[str] = None,
) -> tuple[str, MonthlyPerformance]:
    """
    Replace a member's performance for `period` with `details` and their totals.

    Raises:
        MemberNotFoundError: `member_id` does not exist
    """

    if get_member(member_id) is None:
        raise MemberNotFoundError(member_id)

    details = fill_commissions(details)
    performance = aggregate_monthly_performance(member_id, period, details)
    performance_id = save_monthly_performance(performance, details, notes)

    logger.info(
        "Monthly performance recorded",
        extra={"member_id": member_id, "year": period.year, "month": period.month, "contracts": len(details)},
    )
    return performance_id, performance


__all__ = [
    "GradeNotFoundError",
    "MemberNotFoundError",
    "MissingTestSubjectError",
    "evaluation_period",
    "fill_commissions",
    "list_eligible_members",
    "record_monthly_performance",
    "run_distribution_test",
    "snapshot_from_test_data",
]
