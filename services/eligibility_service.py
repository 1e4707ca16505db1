"""
Fixed-tier distribution eligibility (grades A/B/C/D).

Tier rules, with configurable thresholds:
- A: newbie test passed and monthly_payment >= grade_a_min_payment
- B: newbie test passed and grade_b_min_payment <= monthly_payment < grade_b_max_payment
- C: newbie test passed and neither A nor B
- D: the member is a trainee (test not passed / no qualification on file)

Monthly payment is taken from the period before the reference month; a member without
a performance row counts as 0.

Eligibility is advisory: it annotates the assignment screen and never blocks an
assignment. Results are partitioned into eligible/ineligible, grouped by team (teams by
name in Korean collation order, the "팀 미배정" group last) and ordered by monthly payment,
highest first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from domain.grade import Grade
from domain.member import MemberSnapshot
from domain.period import Period
from domain.thresholds import EligibilityThresholds

NO_TEAM_ID = "no-team"
NO_TEAM_NAME = "팀 미배정"

TIER_NAMES = ("A", "B", "C", "D")


def _collation_class(ch: str) -> int:
    if "\uac00" <= ch <= "\ud7a3" or "\u1100" <= ch <= "\u11ff" or "\u3130" <= ch <= "\u318f":
        return 1
    if "\u4e00" <= ch <= "\u9fff" or "\u3400" <= ch <= "\u4dbf":
        return 2
    if ch.isalpha():
        return 3
    return 0


def korean_sort_key(name: str) -> Tuple[Tuple[int, str], ...]:
    """
    Sort key approximating Korean locale collation.

    Digits and punctuation come first, then Hangul, then Hanja, then other scripts
    (Latin compared case-insensitively).

    >>> sorted(["Alpha", "나팀", "가팀", "beta"], key=korean_sort_key)
    ['가팀', '나팀', 'Alpha', 'beta']
    """

    return tuple((_collation_class(ch), ch.casefold()) for ch in name)


@dataclass(frozen=True, slots=True)
class QuickEligibility:
    grade_a: bool
    grade_b: bool
    grade_c: bool
    grade_d: bool

    def for_grade(self, grade_name: str) -> Optional[bool]:
        """Eligibility for a tier name ("A".."D"); None for grades outside the fixed tiers."""

        return {
            "A": self.grade_a,
            "B": self.grade_b,
            "C": self.grade_c,
            "D": self.grade_d,
        }.get(grade_name.strip().upper())

    def eligible_grades(self) -> List[str]:
        return [name for name in TIER_NAMES if self.for_grade(name)]

    def as_map(self) -> Dict[str, bool]:
        return {name: bool(self.for_grade(name)) for name in TIER_NAMES}

    def to_dict(self) -> dict[str, bool]:
        return {
            "grade_a": self.grade_a,
            "grade_b": self.grade_b,
            "grade_c": self.grade_c,
            "grade_d": self.grade_d,
        }


def evaluate_quick_eligibility(
    monthly_payment: float,
    newbie_test_passed: bool,
    thresholds: Optional[EligibilityThresholds] = None,
    *,
    is_trainee: Optional[bool] = None,
) -> QuickEligibility:
    thresholds = thresholds or EligibilityThresholds()
    trainee = (not newbie_test_passed) if is_trainee is None else is_trainee

    if not newbie_test_passed:
        return QuickEligibility(grade_a=False, grade_b=False, grade_c=False, grade_d=trainee)

    payment = monthly_payment or 0
    grade_a = payment >= thresholds.grade_a_min_payment
    grade_b = thresholds.grade_b_min_payment <= payment < thresholds.grade_b_max_payment
    return QuickEligibility(
        grade_a=grade_a,
        grade_b=grade_b,
        grade_c=not grade_a and not grade_b,
        grade_d=trainee,
    )


def quick_eligibility_for(snapshot: MemberSnapshot, thresholds: Optional[EligibilityThresholds] = None) -> QuickEligibility:
    return evaluate_quick_eligibility(
        snapshot.monthly_payment,
        snapshot.newbie_test_passed,
        thresholds,
        is_trainee=snapshot.is_trainee,
    )


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def format_payment_amount(amount: float) -> str:
    """
    >>> format_payment_amount(600000)
    '60만원'
    >>> format_payment_amount(9500)
    '9,500원'
    """

    if amount >= 10000:
        return f"{_format_number(amount / 10000)}만원"
    return f"{_format_number(amount)}원"


def grade_eligibility_reason(
    grade_name: str,
    quick: QuickEligibility,
    monthly_payment: float,
    thresholds: EligibilityThresholds,
) -> Tuple[bool, str]:
    """
    (eligible, reason) for one member and one grade.

    Grades outside A-D have no fixed tier rule and are always eligible.
    """

    payment = format_payment_amount(monthly_payment)
    tier = grade_name.strip().upper()

    if tier == "A":
        if quick.grade_a:
            return True, f"월납 {payment}"
        return False, f"월납 {payment} ({format_payment_amount(thresholds.grade_a_min_payment)} 미만)"

    if tier == "B":
        if quick.grade_b:
            return True, f"월납 {payment}"
        if quick.grade_a:
            return False, f"A등급 자격자 (월납 {payment})"
        return False, f"월납 {payment} ({format_payment_amount(thresholds.grade_b_min_payment)} 미만)"

    if tier == "C":
        if quick.grade_c:
            return True, "신입 TEST 통과"
        if quick.grade_a:
            return False, "A등급 자격자 제외"
        if quick.grade_b:
            return False, "B등급 자격자 제외"
        return False, "신입 TEST 미통과"

    if tier == "D":
        if quick.grade_d:
            return True, "테스트 미통과자"
        return False, "테스트 통과 (상위 등급 대상)"

    return True, ""


@dataclass(frozen=True, slots=True)
class MemberEligibility:
    snapshot: MemberSnapshot
    eligibility: QuickEligibility
    is_eligible_for_grade: bool
    eligibility_reason: str

    @property
    def monthly_payment(self) -> float:
        return self.snapshot.monthly_payment

    def to_dict(self) -> dict[str, Any]:
        member = self.snapshot.member
        team = member.team
        return {
            "member": {
                "id": member.id,
                "name": member.name,
                "email": member.email,
                "phone": member.phone,
                "team": {"id": team.id, "name": team.name} if team else None,
            },
            "qualification": {
                "newbie_test_passed": self.snapshot.newbie_test_passed,
                "level": self.snapshot.level.value,
            },
            "performance": {
                "year": self.snapshot.period.year,
                "month": self.snapshot.period.month,
                "monthly_payment": self.monthly_payment,
                "formatted_payment": format_payment_amount(self.monthly_payment),
            },
            "eligibility": self.eligibility.to_dict(),
            "is_eligible_for_grade": self.is_eligible_for_grade,
            "eligibility_reason": self.eligibility_reason,
        }


@dataclass(slots=True)
class TeamGroup:
    team_id: str
    team_name: str
    members: List[MemberEligibility] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "team": {"id": self.team_id, "name": self.team_name},
            "members": [m.to_dict() for m in self.members],
        }


@dataclass(frozen=True, slots=True)
class EligibleMembersReport:
    grade: Optional[Grade]
    period: Optional[Period]
    is_current_month: bool
    eligible_members: List[TeamGroup]
    ineligible_members: List[TeamGroup]
    all_members: List[MemberEligibility]

    @property
    def eligible_count(self) -> int:
        return sum(len(g.members) for g in self.eligible_members)

    @property
    def ineligible_count(self) -> int:
        return sum(len(g.members) for g in self.ineligible_members)

    def to_dict(self, thresholds: Optional[EligibilityThresholds] = None) -> dict[str, Any]:
        grade = self.grade
        data: dict[str, Any] = {
            "grade": {"id": grade.id, "name": grade.name, "priority": grade.priority} if grade else None,
            "period": {"year": self.period.year, "month": self.period.month} if self.period else None,
            "is_current_month": self.is_current_month,
            "eligible_members": [g.to_dict() for g in self.eligible_members],
            "ineligible_members": [g.to_dict() for g in self.ineligible_members],
            "all_members": [m.to_dict() for m in self.all_members],
            "eligible_count": self.eligible_count,
            "ineligible_count": self.ineligible_count,
            "total_count": len(self.all_members),
        }
        if thresholds is not None:
            data["thresholds"] = thresholds.to_dict()
        return data


def evaluate_member(
    snapshot: MemberSnapshot,
    thresholds: EligibilityThresholds,
    grade: Optional[Grade] = None,
) -> MemberEligibility:
    quick = quick_eligibility_for(snapshot, thresholds)
    if grade is None:
        return MemberEligibility(snapshot, quick, True, "")

    eligible, reason = grade_eligibility_reason(grade.name, quick, snapshot.monthly_payment, thresholds)
    return MemberEligibility(snapshot, quick, eligible, reason)


def group_by_team(results: Iterable[MemberEligibility]) -> List[TeamGroup]:
    groups: Dict[str, TeamGroup] = {}
    for result in results:
        team = result.snapshot.member.team
        team_id = team.id if team else NO_TEAM_ID
        team_name = (team.name if team else None) or NO_TEAM_NAME
        groups.setdefault(team_id, TeamGroup(team_id=team_id, team_name=team_name)).members.append(result)

    for group in groups.values():
        group.members.sort(key=lambda m: (-m.monthly_payment, m.snapshot.member.name))

    return sorted(
        groups.values(),
        key=lambda g: (g.team_name == NO_TEAM_NAME, korean_sort_key(g.team_name), g.team_name, g.team_id),
    )


def evaluate_eligible_members(
    snapshots: Sequence[MemberSnapshot],
    thresholds: Optional[EligibilityThresholds] = None,
    grade: Optional[Grade] = None,
    *,
    period: Optional[Period] = None,
    is_current_month: bool = False,
) -> EligibleMembersReport:
    """
    Partition members into eligible/ineligible for `grade`.

    Without a grade every member is eligible. `period` defaults to the snapshots' period.
    """

    thresholds = thresholds or EligibilityThresholds()
    results = [evaluate_member(s, thresholds, grade) for s in snapshots]

    if period is None:
        period = snapshots[0].period if snapshots else None

    return EligibleMembersReport(
        grade=grade,
        period=period,
        is_current_month=is_current_month,
        eligible_members=group_by_team(r for r in results if r.is_eligible_for_grade),
        ineligible_members=group_by_team(r for r in results if not r.is_eligible_for_grade),
        all_members=results,
    )


__all__ = [
    "EligibleMembersReport",
    "MemberEligibility",
    "NO_TEAM_ID",
    "NO_TEAM_NAME",
    "QuickEligibility",
    "TIER_NAMES",
    "TeamGroup",
    "evaluate_eligible_members",
    "evaluate_member",
    "evaluate_quick_eligibility",
    "format_payment_amount",
    "grade_eligibility_reason",
    "group_by_team",
    "korean_sort_key",
    "quick_eligibility_for",
]
