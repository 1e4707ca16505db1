"""
Domain: sales members, their qualification and monthly performance.

- Each member has at most one qualification record. A member without one is a
  trainee who has not passed the newbie test.
- Monthly performance is the per-(year, month) sum of performance detail rows.
  A member with no row for a period counts as zero performance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Mapping, Optional

from .period import Period
from .rules import FieldSpec, FieldType


class MemberLevel(str, Enum):
    TRAINEE = "trainee"
    REGULAR = "regular"
    SENIOR = "senior"


@dataclass(frozen=True, slots=True)
class Team:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Member:
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    team: Optional[Team] = None


@dataclass(frozen=True, slots=True)
class MemberQualification:
    member_id: str
    level: MemberLevel = MemberLevel.TRAINEE
    newbie_test_passed: bool = False
    newbie_test_passed_at: Optional[datetime] = None

    @property
    def is_trainee(self) -> bool:
        return self.level is MemberLevel.TRAINEE or not self.newbie_test_passed


@dataclass(frozen=True, slots=True)
class MonthlyPerformance:
    member_id: str
    year: int
    month: int
    total_monthly_payment: float = 0
    total_commission: float = 0
    contract_count: int = 0

    @property
    def period(self) -> Period:
        return Period(self.year, self.month)


@dataclass(frozen=True, slots=True)
class PerformanceDetail:
    """One contract booked by a member; amounts in won."""

    monthly_payment: float
    commission_amount: float
    product_id: Optional[str] = None
    client_name: Optional[str] = None
    contract_date: Optional[date] = None
    memo: Optional[str] = None


@dataclass(frozen=True, slots=True)
class InsuranceProduct:
    """
    Rates used to derive commission (CMP) from a monthly payment.

    `insurer_commission_rate` 1.5 means 150%; `adjustment_rate` 1.05 means 105%.
    """

    id: str
    name: str
    insurer_commission_rate: float
    adjustment_rate: float = 1.0
    company: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MemberSnapshot:
    """
    Everything eligibility rules can see about a member for one period.

    Missing qualification or performance resolve to the documented fallbacks
    (trainee, zero payment) rather than errors.
    """

    member: Member
    period: Period
    qualification: Optional[MemberQualification] = None
    performance: Optional[MonthlyPerformance] = None

    @property
    def monthly_payment(self) -> float:
        if self.performance is None:
            return 0
        return self.performance.total_monthly_payment or 0

    @property
    def total_commission(self) -> float:
        if self.performance is None:
            return 0
        return self.performance.total_commission or 0

    @property
    def contract_count(self) -> int:
        if self.performance is None:
            return 0
        return self.performance.contract_count or 0

    @property
    def newbie_test_passed(self) -> bool:
        return bool(self.qualification and self.qualification.newbie_test_passed)

    @property
    def level(self) -> MemberLevel:
        if self.qualification is None:
            return MemberLevel.TRAINEE
        return self.qualification.level

    @property
    def is_trainee(self) -> bool:
        if self.qualification is None:
            return True
        return self.qualification.is_trainee


# Fields distribution rules may reference.
MEMBER_RULE_FIELDS: Mapping[str, FieldSpec] = {
    spec.name: spec
    for spec in (
        FieldSpec("monthly_payment", FieldType.NUMBER, "전월 월납"),
        FieldSpec("total_commission", FieldType.NUMBER, "전월 수수료"),
        FieldSpec("contract_count", FieldType.NUMBER, "전월 계약 건수"),
        FieldSpec("level", FieldType.ENUM, "레벨"),
        FieldSpec("newbie_test_passed", FieldType.BOOLEAN, "신입 TEST 통과"),
    )
}

# Legacy field names accepted in stored distribution rules.
MEMBER_FIELD_ALIASES: Mapping[str, str] = {
    "insurance_monthly_payment": "monthly_payment",
    "commission": "total_commission",
}


__all__ = [
    "InsuranceProduct",
    "MEMBER_FIELD_ALIASES",
    "MEMBER_RULE_FIELDS",
    "Member",
    "MemberLevel",
    "MemberQualification",
    "MemberSnapshot",
    "MonthlyPerformance",
    "PerformanceDetail",
    "Team",
]
