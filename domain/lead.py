"""
Domain: Lead entity.

Contract implemented here:
- A lead candidate always carries a non-empty `phone` (canonical dashed format when
  it could be normalized).
- `tax_delinquency` is tri-state: True, False, or None (unknown).
- Revenue is stored in 억원 units; revenue and head count keep a legacy scalar (the
  range minimum) next to explicit `_min`/`_max` bounds.
- `grade_source` is AUTO when the rule engine assigned the grade and becomes MANUAL
  the moment a person changes `grade_id`. Automated reclassification leaves MANUAL
  grades untouched unless every lead is explicitly reclassified.

The entity is frozen; grade changes return a new instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .rules import FieldSpec, FieldType


class GradeSource(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True, slots=True)
class Lead:
    phone: str

    company_name: Optional[str] = None
    representative_name: Optional[str] = None
    industry: Optional[str] = None
    region: Optional[str] = None
    business_type: Optional[str] = None
    available_time: Optional[str] = None
    tax_delinquency: Optional[bool] = None

    annual_revenue: Optional[float] = None
    annual_revenue_min: Optional[float] = None
    annual_revenue_max: Optional[float] = None
    employee_count: Optional[int] = None
    employee_count_min: Optional[int] = None
    employee_count_max: Optional[int] = None

    # Meta lead-ads metadata
    campaign_name: Optional[str] = None
    ad_set_name: Optional[str] = None
    ad_name: Optional[str] = None
    memo: Optional[str] = None
    source_date: Optional[date] = None

    extra_fields: Mapping[str, Any] = field(default_factory=dict)

    lead_id: Optional[UUID] = None
    grade_id: Optional[str] = None
    grade_source: Optional[GradeSource] = None

    def __post_init__(self) -> None:
        if not self.phone or not str(self.phone).strip():
            raise ValueError("phone is required")

    def classification_attributes(self) -> dict[str, Any]:
        """Attribute values visible to grade rules, keyed by rule field name."""

        return {name: getattr(self, name) for name in LEAD_RULE_FIELDS}

    def with_auto_grade(self, grade_id: Optional[str]) -> "Lead":
        return replace(self, grade_id=grade_id, grade_source=GradeSource.AUTO)

    def with_manual_grade(self, grade_id: Optional[str]) -> "Lead":
        """A person changed the grade: the lead is pinned as MANUAL."""

        return replace(self, grade_id=grade_id, grade_source=GradeSource.MANUAL)


# Fields grade rules may reference.
LEAD_RULE_FIELDS: Mapping[str, FieldSpec] = {
    spec.name: spec
    for spec in (
        FieldSpec("annual_revenue", FieldType.NUMBER, "연매출"),
        FieldSpec("annual_revenue_min", FieldType.NUMBER, "연매출(최소)"),
        FieldSpec("annual_revenue_max", FieldType.NUMBER, "연매출(최대)"),
        FieldSpec("employee_count", FieldType.NUMBER, "종업원수"),
        FieldSpec("employee_count_min", FieldType.NUMBER, "종업원수(최소)"),
        FieldSpec("employee_count_max", FieldType.NUMBER, "종업원수(최대)"),
        FieldSpec("industry", FieldType.TEXT, "업종"),
        FieldSpec("region", FieldType.TEXT, "지역"),
        FieldSpec("company_name", FieldType.TEXT, "업체명"),
        FieldSpec("representative_name", FieldType.TEXT, "대표자명"),
        FieldSpec("business_type", FieldType.ENUM, "사업자 유형"),
        FieldSpec("campaign_name", FieldType.TEXT, "광고 캠페인"),
        FieldSpec("tax_delinquency", FieldType.BOOLEAN, "세금체납"),
    )
}


__all__ = ["GradeSource", "LEAD_RULE_FIELDS", "Lead"]
