"""
Lead repository (persistence).

This module provides *only* persistence operations for leads and upload batches.
No business rules (mapping, classification, duplicate policy) belong here.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, List, Mapping, Optional
from uuid import UUID

from domain.lead import GradeSource, Lead
from repositories.client import fetch_all, supabase

_LEADS_TABLE: str = "leads"
_UPLOAD_BATCHES_TABLE: str = "upload_batches"

# Columns read back for reclassification.
_CLASSIFICATION_COLUMNS = (
    "id, phone, company_name, representative_name, industry, region, business_type, "
    "campaign_name, tax_delinquency, annual_revenue, annual_revenue_min, annual_revenue_max, "
    "employee_count, employee_count_min, employee_count_max, grade_id, grade_source"
)

# PostgREST URLs get long with big `in` filters.
_IN_FILTER_CHUNK = 200


def _chunks(items: List[Any], size: int) -> Iterable[List[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _lead_to_row(lead: Lead, upload_batch_id: Optional[str] = None) -> dict[str, Any]:
    """Convert a domain Lead to a Supabase row payload."""

    row: dict[str, Any] = {
        "phone": lead.phone,
        "company_name": lead.company_name,
        "representative_name": lead.representative_name,
        "industry": lead.industry,
        "region": lead.region,
        "business_type": lead.business_type,
        "available_time": lead.available_time,
        "tax_delinquency": lead.tax_delinquency,

        "annual_revenue": lead.annual_revenue,
        "annual_revenue_min": lead.annual_revenue_min,
        "annual_revenue_max": lead.annual_revenue_max,
        "employee_count": lead.employee_count,
        "employee_count_min": lead.employee_count_min,
        "employee_count_max": lead.employee_count_max,

        "campaign_name": lead.campaign_name,
        "ad_set_name": lead.ad_set_name,
        "ad_name": lead.ad_name,
        "memo": lead.memo,
        "source_date": lead.source_date.isoformat() if lead.source_date else None,

        "grade_id": lead.grade_id,
        "grade_source": lead.grade_source.value if lead.grade_source else None,
    }
    if lead.extra_fields:
        row["extra_fields"] = dict(lead.extra_fields)
    if lead.lead_id is not None:
        row["id"] = str(lead.lead_id)
    if upload_batch_id is not None:
        row["upload_batch_id"] = upload_batch_id
    return row


def _row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a Supabase row into a domain Lead."""

    source_date = row.get("source_date")
    grade_source = row.get("grade_source")

    return Lead(
        phone=str(row["phone"]),
        company_name=row.get("company_name"),
        representative_name=row.get("representative_name"),
        industry=row.get("industry"),
        region=row.get("region"),
        business_type=row.get("business_type"),
        available_time=row.get("available_time"),
        tax_delinquency=row.get("tax_delinquency"),
        annual_revenue=row.get("annual_revenue"),
        annual_revenue_min=row.get("annual_revenue_min"),
        annual_revenue_max=row.get("annual_revenue_max"),
        employee_count=row.get("employee_count"),
        employee_count_min=row.get("employee_count_min"),
        employee_count_max=row.get("employee_count_max"),
        campaign_name=row.get("campaign_name"),
        ad_set_name=row.get("ad_set_name"),
        ad_name=row.get("ad_name"),
        memo=row.get("memo"),
        source_date=date.fromisoformat(str(source_date)[:10]) if source_date else None,
        extra_fields=row.get("extra_fields") or {},
        lead_id=UUID(str(row["id"])) if row.get("id") else None,
        grade_id=row.get("grade_id"),
        grade_source=GradeSource(grade_source) if grade_source else None,
    )


def insert_leads_bulk(leads: List[Lead], upload_batch_id: Optional[str] = None) -> None:
    """
    Bulk insert leads in a single request.

    Raises:
        RuntimeError: If Supabase returns an error response

    Notes:
        - Empty list is a no-op
        - The insert is all-or-nothing; callers roll back the upload batch on failure
    """

    if not leads:
        return

    payloads = [_lead_to_row(lead, upload_batch_id) for lead in leads]
    response = supabase.table(_LEADS_TABLE).insert(payloads).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to bulk insert {len(leads)} leads: {error}")


def get_existing_phones(phones: Iterable[str]) -> set[str]:
    """Subset of `phones` that already belong to a stored lead."""

    candidates = sorted({p for p in phones if p})
    existing: set[str] = set()

    for chunk in _chunks(candidates, _IN_FILTER_CHUNK):
        response = supabase.table(_LEADS_TABLE).select("phone").in_("phone", chunk).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to check existing phones: {error}")
        rows = getattr(response, "data", None) or []
        existing.update(str(row["phone"]) for row in rows if row.get("phone"))

    return existing


def list_leads_for_reclassification(grade_source: Optional[GradeSource] = None) -> List[Lead]:
    """
    All leads with the attributes grade rules read.

    Args:
        grade_source: only leads whose grade came from this source (None = all)
    """

    def query():
        q = supabase.table(_LEADS_TABLE).select(_CLASSIFICATION_COLUMNS).order("id")
        if grade_source is not None:
            q = q.eq("grade_source", grade_source.value)
        return q

    return [_row_to_lead(row) for row in fetch_all(query) if row.get("phone")]


def update_lead_grades(grade_id: Optional[str], lead_ids: List[UUID]) -> None:
    """Set an automatic grade on many leads."""

    for chunk in _chunks([str(i) for i in lead_ids], _IN_FILTER_CHUNK):
        response = (
            supabase.table(_LEADS_TABLE)
            .update({"grade_id": grade_id, "grade_source": GradeSource.AUTO.value})
            .in_("id", chunk)
            .execute()
        )
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to update grades for {len(chunk)} leads: {error}")


def create_upload_batch(payload: Mapping[str, Any]) -> str:
    """
    Insert an upload batch record and return its id.

    Raises:
        RuntimeError: If Supabase returns an error or no row
    """

    response = supabase.table(_UPLOAD_BATCHES_TABLE).insert(dict(payload)).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to create upload batch: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        raise RuntimeError("Failed to create upload batch: no row returned")
    return str(rows[0]["id"])


def delete_upload_batch(batch_id: str) -> None:
    response = supabase.table(_UPLOAD_BATCHES_TABLE).delete().eq("id", batch_id).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to delete upload batch {batch_id}: {error}")


__all__ = [
    "create_upload_batch",
    "delete_upload_batch",
    "get_existing_phones",
    "insert_leads_bulk",
    "list_leads_for_reclassification",
    "update_lead_grades",
]
