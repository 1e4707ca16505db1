"""
Member repository (persistence).

Members, their qualification records, monthly performance and insurance products.
Missing qualification/performance rows are returned as absent, never defaulted here;
the domain decides what absence means.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from domain.member import (
    InsuranceProduct,
    Member,
    MemberLevel,
    MemberQualification,
    MemberSnapshot,
    MonthlyPerformance,
    PerformanceDetail,
    Team,
)
from domain.period import Period
from repositories.client import supabase

_MEMBERS_TABLE: str = "members"
_QUALIFICATIONS_TABLE: str = "member_qualifications"
_PERFORMANCE_TABLE: str = "member_monthly_performance"
_PERFORMANCE_DETAILS_TABLE: str = "member_performance_details"
_PRODUCTS_TABLE: str = "insurance_products"

# Members who receive distributed leads.
ASSIGNEE_ROLE = "team_leader"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _row_to_member(row: Mapping[str, Any]) -> Member:
    team_data = row.get("team")
    # Embedded one-to-one relations may come back as a single-item list.
    if isinstance(team_data, list):
        team_data = team_data[0] if team_data else None

    team = None
    if team_data and team_data.get("id"):
        team = Team(id=str(team_data["id"]), name=str(team_data.get("name") or ""))

    return Member(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        email=row.get("email"),
        phone=row.get("phone"),
        team=team,
    )


def _row_to_qualification(row: Mapping[str, Any]) -> MemberQualification:
    level = row.get("level")
    return MemberQualification(
        member_id=str(row["member_id"]),
        level=MemberLevel(level) if level else MemberLevel.TRAINEE,
        newbie_test_passed=bool(row.get("newbie_test_passed") or False),
        newbie_test_passed_at=_parse_datetime(row.get("newbie_test_passed_at")),
    )


def _row_to_performance(row: Mapping[str, Any]) -> MonthlyPerformance:
    return MonthlyPerformance(
        member_id=str(row["member_id"]),
        year=int(row["year"]),
        month=int(row["month"]),
        total_monthly_payment=float(row.get("total_monthly_payment") or 0),
        total_commission=float(row.get("total_commission") or 0),
        contract_count=int(row.get("contract_count") or 0),
    )


def list_active_members(team_id: Optional[str] = None, role: Optional[str] = ASSIGNEE_ROLE) -> List[Member]:
    query = (
        supabase.table(_MEMBERS_TABLE)
        .select("id, name, email, phone, role, team:teams(id, name)")
        .eq("is_active", True)
    )
    if role is not None:
        query = query.eq("role", role)
    if team_id is not None:
        query = query.eq("team_id", team_id)

    response = query.execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list members: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_member(row) for row in rows]


def get_member(member_id: str) -> Optional[Member]:
    response = (
        supabase.table(_MEMBERS_TABLE)
        .select("id, name, email, phone, role, team:teams(id, name)")
        .eq("id", member_id)
        .limit(1)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch member: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return _row_to_member(rows[0])


def get_qualifications(member_ids: Sequence[str]) -> Dict[str, MemberQualification]:
    if not member_ids:
        return {}

    response = supabase.table(_QUALIFICATIONS_TABLE).select("*").in_("member_id", list(member_ids)).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch member qualifications: {error}")

    rows = getattr(response, "data", None) or []
    return {str(row["member_id"]): _row_to_qualification(row) for row in rows}


def get_monthly_performances(member_ids: Sequence[str], period: Period) -> Dict[str, MonthlyPerformance]:
    if not member_ids:
        return {}

    response = (
        supabase.table(_PERFORMANCE_TABLE)
        .select("*")
        .in_("member_id", list(member_ids))
        .eq("year", period.year)
        .eq("month", period.month)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch monthly performance: {error}")

    rows = getattr(response, "data", None) or []
    return {str(row["member_id"]): _row_to_performance(row) for row in rows}


def load_member_snapshots(members: Iterable[Member], period: Period) -> List[MemberSnapshot]:
    """Join members with their qualification and their performance for `period`."""

    members = list(members)
    ids = [m.id for m in members]
    qualifications = get_qualifications(ids)
    performances = get_monthly_performances(ids, period)

    return [
        MemberSnapshot(
            member=m,
            period=period,
            qualification=qualifications.get(m.id),
            performance=performances.get(m.id),
        )
        for m in members
    ]


def get_insurance_products(product_ids: Iterable[str]) -> Dict[str, InsuranceProduct]:
    ids = sorted({p for p in product_ids if p})
    if not ids:
        return {}

    response = supabase.table(_PRODUCTS_TABLE).select("*").in_("id", ids).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch insurance products: {error}")

    rows = getattr(response, "data", None) or []
    return {
        str(row["id"]): InsuranceProduct(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            insurer_commission_rate=float(row.get("insurer_commission_rate") or 0),
            adjustment_rate=float(row.get("adjustment_rate") or 1.0),
            company=row.get("company"),
        )
        for row in rows
    }


def _detail_to_row(performance_id: str, detail: PerformanceDetail) -> dict[str, Any]:
    contract_date = detail.contract_date
    return {
        "performance_id": performance_id,
        "product_id": detail.product_id,
        "client_name": detail.client_name,
        "monthly_payment": detail.monthly_payment,
        "commission_amount": detail.commission_amount,
        "contract_date": contract_date.isoformat() if isinstance(contract_date, date) else None,
        "memo": detail.memo,
    }


def save_monthly_performance(
    performance: MonthlyPerformance,
    details: Sequence[PerformanceDetail],
    notes: Optional[str] = None,
) -> str:
    """
    Upsert one member's (year, month) totals and replace its detail rows.

    Returns the performance record id.
    """

    totals = {
        "total_monthly_payment": performance.total_monthly_payment,
        "total_commission": performance.total_commission,
        "contract_count": performance.contract_count,
        "notes": notes,
    }

    response = (
        supabase.table(_PERFORMANCE_TABLE)
        .select("id")
        .eq("member_id", performance.member_id)
        .eq("year", performance.year)
        .eq("month", performance.month)
        .limit(1)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to look up monthly performance: {error}")
    existing = getattr(response, "data", None) or []

    if existing:
        performance_id = str(existing[0]["id"])
        response = supabase.table(_PERFORMANCE_TABLE).update(totals).eq("id", performance_id).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to update monthly performance: {error}")

        response = supabase.table(_PERFORMANCE_DETAILS_TABLE).delete().eq("performance_id", performance_id).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to clear performance details: {error}")
    else:
        payload = {
            "member_id": performance.member_id,
            "year": performance.year,
            "month": performance.month,
            **totals,
        }
        response = supabase.table(_PERFORMANCE_TABLE).insert(payload).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to insert monthly performance: {error}")
        rows = getattr(response, "data", None) or []
        if not rows:
            raise RuntimeError("Failed to insert monthly performance: no row returned")
        performance_id = str(rows[0]["id"])

    if details:
        payloads = [_detail_to_row(performance_id, d) for d in details]
        response = supabase.table(_PERFORMANCE_DETAILS_TABLE).insert(payloads).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to insert performance details: {error}")

    return performance_id


__all__ = [
    "ASSIGNEE_ROLE",
    "get_insurance_products",
    "get_member",
    "get_monthly_performances",
    "get_qualifications",
    "list_active_members",
    "load_member_snapshots",
    "save_monthly_performance",
]
