"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from services.reclassification_service import ReclassifyMode


# ============================================================================
# Lead Upload Models
# ============================================================================

class RowIssueResponse(BaseModel):
    """A skipped or failed spreadsheet row (header is row 1)."""
    row: int
    message: str


class DuplicateRowResponse(BaseModel):
    row: int
    phone: str


class UploadResponse(BaseModel):
    """Upload result. Counts are complete; `errors`/`duplicates` hold the first 10 entries."""
    batch_id: Optional[str] = None
    total_count: int
    success_count: int
    duplicate_count: int
    error_count: int
    grade_summary: Dict[str, int]
    errors: List[RowIssueResponse]
    duplicates: List[DuplicateRowResponse]
    mapped_columns: List[str]
    unmapped_columns: List[str]

    class Config:
        json_schema_extra = {
            "example": {
                "batch_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "total_count": 120,
                "success_count": 110,
                "duplicate_count": 7,
                "error_count": 3,
                "grade_summary": {"A": 12, "B": 40, "C": 58},
                "errors": [{"row": 14, "message": "연락처가 없어 건너뜁니다"}],
                "duplicates": [{"row": 22, "phone": "010-1234-5678"}],
                "mapped_columns": ["연락처", "업체명", "대표자명", "연매출"],
                "unmapped_columns": ["비고2"],
            }
        }


# ============================================================================
# Grade Rule Models
# ============================================================================

class ConditionModel(BaseModel):
    """One rule condition. `value` is a number, text, boolean, [min, max] or a list."""
    field: str
    operator: str
    value: Any = None


class GradeRuleCreateRequest(BaseModel):
    grade_id: str
    conditions: List[ConditionModel] = Field(..., min_length=1)
    logic_operator: str = "AND"

    class Config:
        json_schema_extra = {
            "example": {
                "grade_id": "grade-a",
                "conditions": [
                    {"field": "annual_revenue", "operator": "gte", "value": 10},
                    {"field": "employee_count", "operator": "gte", "value": 5},
                ],
                "logic_operator": "AND",
            }
        }


class RuleCreatedResponse(BaseModel):
    id: str


class GradeRuleTestRequest(BaseModel):
    """Ad-hoc lead attributes to classify against the active grade rules."""
    lead_data: Dict[str, Any]

    class Config:
        json_schema_extra = {
            "example": {
                "lead_data": {
                    "annual_revenue": 12,
                    "employee_count": 8,
                    "industry": "제조업",
                    "tax_delinquency": False,
                }
            }
        }


class EvaluationLogEntryResponse(BaseModel):
    grade_name: str
    rule_description: str
    result: bool
    details: str
    conditions: List[Dict[str, Any]] = []


class GradeRuleTestResponse(BaseModel):
    grade_id: Optional[str] = None
    grade_name: str
    matched_rule_id: Optional[str] = None
    evaluation_log: List[EvaluationLogEntryResponse]


class ReclassifyRequest(BaseModel):
    mode: ReclassifyMode = ReclassifyMode.AUTO_ONLY
    dry_run: bool = False


class ReclassifyResponse(BaseModel):
    total_count: int
    updated_count: int
    grade_summary: Dict[str, int]
    message: str


# ============================================================================
# Distribution Rule Models
# ============================================================================

class DistributionRuleCreateRequest(BaseModel):
    grade_id: str
    name: str = Field(..., min_length=1, max_length=100)
    conditions: List[ConditionModel] = Field(..., min_length=1)
    logic_operator: str = "AND"
    exclusion_rules: List[str] = []
    priority: int = 0
    is_active: bool = True

    class Config:
        json_schema_extra = {
            "example": {
                "grade_id": "grade-c",
                "name": "C등급 기본 배분",
                "conditions": [{"field": "newbie_test_passed", "operator": "eq", "value": True}],
                "logic_operator": "AND",
                "exclusion_rules": ["grade_a_eligible", "grade_b_eligible"],
                "priority": 10,
                "is_active": True,
            }
        }


class DistributionTestData(BaseModel):
    monthly_payment: float = Field(0, ge=0)
    newbie_test_passed: bool = False
    total_commission: float = Field(0, ge=0)
    contract_count: int = Field(0, ge=0)
    level: Optional[str] = None


class DistributionTestRequest(BaseModel):
    """Either `member_id` or `test_data` is required."""
    member_id: Optional[str] = None
    test_data: Optional[DistributionTestData] = None
    grade_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "test_data": {"monthly_payment": 450000, "newbie_test_passed": True},
            }
        }


# ============================================================================
# Settings Models
# ============================================================================

class GradeTierDescriptionModel(BaseModel):
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=200)
    note: Optional[str] = Field(None, max_length=200)


class EligibilityThresholdsUpdate(BaseModel):
    """Partial update; omitted fields keep their stored values."""
    grade_a_min_payment: Optional[float] = Field(None, ge=0)
    grade_b_min_payment: Optional[float] = Field(None, ge=0)
    grade_b_max_payment: Optional[float] = Field(None, ge=0)
    grade_a_description: Optional[GradeTierDescriptionModel] = None
    grade_b_description: Optional[GradeTierDescriptionModel] = None
    grade_c_description: Optional[GradeTierDescriptionModel] = None
    grade_d_description: Optional[GradeTierDescriptionModel] = None
    footer_note: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "grade_a_min_payment": 700000,
                "grade_b_min_payment": 250000,
                "grade_b_max_payment": 700000,
            }
        }


# ============================================================================
# Member Performance Models
# ============================================================================

class PerformanceDetailModel(BaseModel):
    """One contract. `commission_amount` is computed from the product rates when omitted."""
    monthly_payment: float = Field(..., ge=0)
    commission_amount: Optional[float] = Field(None, ge=0)
    product_id: Optional[str] = None
    client_name: Optional[str] = None
    contract_date: Optional[date] = None
    memo: Optional[str] = None


class PerformanceRecordRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    details: List[PerformanceDetailModel] = []
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "year": 2025,
                "month": 3,
                "details": [
                    {"monthly_payment": 300000, "product_id": "prod-1", "client_name": "홍길동"},
                ],
            }
        }


class PerformanceRecordResponse(BaseModel):
    id: str
    member_id: str
    year: int
    month: int
    total_monthly_payment: float
    total_commission: float
    contract_count: int
