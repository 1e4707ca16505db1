"""
Column mapping: raw spreadsheet rows -> lead candidates.

Mapping contract:
- `csv_column` matching is case-insensitive; mappings apply in `display_order`.
- Each mapped cell is converted by its system field's converter (phone normalization,
  revenue/head-count ranges, dates, tri-state booleans, trimmed text).
- System fields that are not lead columns are kept in `extra_fields`.
- A row missing a required phone / representative name / company name is rejected with
  `MissingRequiredFieldsError` (reported per row, the batch continues).
- A row that ends up without a phone is skipped with a warning.

Header resolution for uploads (`resolve_columns`) applies administrator mappings first,
then exact aliases, then partial matches for long lead-form headers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from domain.field_mapping import FieldMapping
from domain.lead import Lead
from services.field_normalizer import (
    ORGANIC_TRUE_VALUES,
    TAX_DELINQUENCY_TRUE_VALUES,
    CellValue,
    clean_text,
    normalize_phone,
    parse_boolean,
    parse_date,
    parse_number_range,
)
from services.spreadsheet_parser import ParseResult, RawRow, RowIssue

logger = logging.getLogger(__name__)


class SystemField(str, Enum):
    """Lead columns a spreadsheet column can be mapped to."""

    PHONE = "phone"
    COMPANY_NAME = "company_name"
    REPRESENTATIVE_NAME = "representative_name"
    INDUSTRY = "industry"
    REGION = "region"
    BUSINESS_TYPE = "business_type"
    AVAILABLE_TIME = "available_time"
    TAX_DELINQUENCY = "tax_delinquency"
    ANNUAL_REVENUE = "annual_revenue"
    EMPLOYEE_COUNT = "employee_count"
    CAMPAIGN_NAME = "campaign_name"
    AD_SET_NAME = "ad_set_name"
    AD_NAME = "ad_name"
    MEMO = "memo"
    SOURCE_DATE = "source_date"

    @staticmethod
    def lookup(name: str) -> Optional["SystemField"]:
        try:
            return SystemField(name)
        except ValueError:
            return None


# Labels used in row error messages.
REQUIRED_FIELD_LABELS: Mapping[SystemField, str] = {
    SystemField.PHONE: "연락처",
    SystemField.REPRESENTATIVE_NAME: "대표자명",
    SystemField.COMPANY_NAME: "업체명",
}

MISSING_PHONE_WARNING = "연락처가 없어 건너뜁니다"

# Exact (case-insensitive) header aliases per system field, in precedence order.
DEFAULT_MAPPINGS: Mapping[str, Sequence[str]] = {
    "representative_name": ["이름", "대표자", "대표자명", "성명", "name", "representative_name", "full_name"],
    "phone": ["연락처", "전화번호", "휴대폰", "phone", "mobile", "tel", "phone_number"],
    "company_name": ["업체명", "회사명", "기업명", "company", "business_name", "company_name"],
    "industry": ["업종", "업종명", "industry"],
    "annual_revenue": ["연매출", "매출", "매출액", "revenue", "annual_revenue"],
    "employee_count": ["종업원수", "직원수", "인원", "employees", "employee_count"],
    "region": ["지역", "주소", "region", "address", "location"],
    "source_date": ["신청일", "신청일시", "등록일", "created_time", "source_date"],
    "campaign_name": ["캠페인", "캠페인명", "campaign_name"],
    "ad_set_name": ["광고세트", "광고세트명", "ad_set_name", "adset_name"],
    "ad_name": ["광고", "광고명", "ad_name"],
    "meta_id": ["id", "lead_id", "meta_id"],
    "form_id": ["form_id"],
    "form_name": ["form_name", "폼이름", "폼명"],
    "is_organic": ["is_organic", "오가닉", "organic"],
    "platform": ["platform", "플랫폼"],
    "business_type": ["사업자", "사업자유형", "business_type"],
    "tax_delinquency": ["세금체납", "체납", "tax_delinquency"],
    "available_time": ["회신시간", "연락시간", "available_time"],
    "memo": ["메모", "비고", "memo"],
}

# Substring patterns for long lead-form headers such as "업종을_선택해주세요_(80%완료)".
PARTIAL_MATCH_MAPPINGS: Mapping[str, Sequence[str]] = {
    "industry": ["업종을", "업종_선택", "업종선택"],
    "annual_revenue": ["연매출을", "연매출_선택", "매출을_선택", "매출선택"],
    "employee_count": ["종업원수를", "직원수를", "인원을"],
    "region": ["지역을", "주소를"],
    "business_type": ["사업자를", "사업자_선택"],
    "tax_delinquency": ["세급_체납", "체납이_있습니까", "세금체납"],
    "available_time": ["회신받으실_시간", "시간대를_작성"],
}

# Ad-platform id columns; the *_name columns are used instead.
SKIPPED_ID_COLUMNS = frozenset({"campaign_id", "ad_id", "adset_id"})


class MissingRequiredFieldsError(Exception):
    """Raised for a row that lacks one or more required fields."""

    def __init__(self, row: int, fields: List[str]):
        self.row = row
        self.fields = fields
        super().__init__(f"필수 필드 누락: {', '.join(fields)}")


@dataclass(frozen=True, slots=True)
class MappedLead:
    row: int
    lead: Lead


@dataclass(slots=True)
class MappingResult:
    mapped: List[MappedLead] = field(default_factory=list)
    errors: List[RowIssue] = field(default_factory=list)
    warnings: List[RowIssue] = field(default_factory=list)

    @property
    def leads(self) -> List[Lead]:
        return [m.lead for m in self.mapped]


@dataclass(frozen=True, slots=True)
class ColumnReport:
    """Headers without a mapping (`unmapped`) and mapped columns absent from the file (`missing`)."""

    unmapped: List[str]
    missing: List[str]


# ---------------------------------------------------------------------------
# Field converters: SystemField -> (cell value -> lead attributes)
# ---------------------------------------------------------------------------

Converter = Callable[[CellValue], Dict[str, Any]]


def _text(name: str) -> Converter:
    return lambda value: {name: clean_text(value)}


def _phone(value: CellValue) -> Dict[str, Any]:
    if isinstance(value, bool):
        return {"phone": None}
    return {"phone": normalize_phone(value)}


def _annual_revenue(value: CellValue) -> Dict[str, Any]:
    revenue = parse_number_range(value)
    return {
        "annual_revenue": revenue.min,
        "annual_revenue_min": revenue.min,
        "annual_revenue_max": revenue.max,
    }


def _employee_count(value: CellValue) -> Dict[str, Any]:
    head_count = parse_number_range(value).floored()
    return {
        "employee_count": head_count.min,
        "employee_count_min": head_count.min,
        "employee_count_max": head_count.max,
    }


def _source_date(value: CellValue) -> Dict[str, Any]:
    if isinstance(value, bool):
        return {"source_date": None}
    return {"source_date": parse_date(value)}


def _tax_delinquency(value: CellValue) -> Dict[str, Any]:
    return {"tax_delinquency": parse_boolean(value, TAX_DELINQUENCY_TRUE_VALUES)}


FIELD_CONVERTERS: Mapping[SystemField, Converter] = {
    SystemField.PHONE: _phone,
    SystemField.COMPANY_NAME: _text("company_name"),
    SystemField.REPRESENTATIVE_NAME: _text("representative_name"),
    SystemField.INDUSTRY: _text("industry"),
    SystemField.REGION: _text("region"),
    SystemField.BUSINESS_TYPE: _text("business_type"),
    SystemField.AVAILABLE_TIME: _text("available_time"),
    SystemField.TAX_DELINQUENCY: _tax_delinquency,
    SystemField.ANNUAL_REVENUE: _annual_revenue,
    SystemField.EMPLOYEE_COUNT: _employee_count,
    SystemField.CAMPAIGN_NAME: _text("campaign_name"),
    SystemField.AD_SET_NAME: _text("ad_set_name"),
    SystemField.AD_NAME: _text("ad_name"),
    SystemField.MEMO: _text("memo"),
    SystemField.SOURCE_DATE: _source_date,
}


def convert_extra_field(name: str, value: CellValue) -> Any:
    """Value stored under `extra_fields[name]` for a non-core system field."""

    if name == "is_organic":
        return parse_boolean(value, ORGANIC_TRUE_VALUES)
    return clean_text(value)


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

def _sorted(mappings: Iterable[FieldMapping]) -> List[FieldMapping]:
    return sorted(mappings, key=lambda m: m.display_order)


def map_row(row: RawRow, row_number: int, column_to_field: Mapping[str, str], required: Sequence[str]) -> Optional[Lead]:
    """
    Convert one raw row. Returns None when the row has no phone.

    Raises:
        MissingRequiredFieldsError: a required phone/representative/company is empty
    """

    attributes: Dict[str, Any] = {}
    extra_fields: Dict[str, Any] = {}

    for column, value in row.items():
        system_field = column_to_field.get(str(column).lower())
        if not system_field:
            continue

        known = SystemField.lookup(system_field)
        if known is not None:
            attributes.update(FIELD_CONVERTERS[known](value))
            continue

        extra = convert_extra_field(system_field, value)
        if extra is not None:
            extra_fields[system_field] = extra

    missing = [
        label
        for field_name, label in REQUIRED_FIELD_LABELS.items()
        if field_name.value in required and not attributes.get(field_name.value)
    ]
    if missing:
        raise MissingRequiredFieldsError(row_number, missing)

    phone = attributes.pop("phone", None)
    if not phone:
        return None

    return Lead(phone=phone, extra_fields=extra_fields, **attributes)


def apply_mappings(parse_result: ParseResult, mappings: Iterable[FieldMapping]) -> MappingResult:
    """
    Map every parsed row to a lead candidate.

    Row numbers count the header as row 1. Parse errors carry over into the result.
    """

    column_to_field: Dict[str, str] = {}
    required: List[str] = []
    for mapping in _sorted(mappings):
        column_to_field[mapping.csv_column.lower()] = mapping.system_field
        if mapping.is_required:
            required.append(mapping.system_field)

    result = MappingResult(errors=list(parse_result.errors))

    for index, row in enumerate(parse_result.rows):
        row_number = index + 2
        try:
            lead = map_row(row, row_number, column_to_field, required)
        except MissingRequiredFieldsError as e:
            result.errors.append(RowIssue(row=e.row, message=str(e)))
            continue
        except (TypeError, ValueError) as e:
            logger.warning("Row conversion failed", extra={"row": row_number, "error": str(e)})
            result.errors.append(RowIssue(row=row_number, message=str(e)))
            continue

        if lead is None:
            result.warnings.append(RowIssue(row=row_number, message=MISSING_PHONE_WARNING))
            continue
        result.mapped.append(MappedLead(row=row_number, lead=lead))

    return result


def find_unmapped_columns(headers: Sequence[str], mappings: Iterable[FieldMapping]) -> ColumnReport:
    mappings = list(mappings)
    mapped = {m.csv_column.lower() for m in mappings}
    present = {h.lower() for h in headers}

    return ColumnReport(
        unmapped=[h for h in headers if h.lower() not in mapped],
        missing=[m.csv_column for m in mappings if m.csv_column.lower() not in present],
    )


def default_field_for(header: str) -> Optional[str]:
    """Built-in system field for a header: exact alias first, then partial match."""

    lowered = header.strip().lower()
    if lowered in SKIPPED_ID_COLUMNS:
        return None

    for system_field, aliases in DEFAULT_MAPPINGS.items():
        if any(alias.lower() == lowered for alias in aliases):
            return system_field

    for system_field, patterns in PARTIAL_MATCH_MAPPINGS.items():
        if any(pattern.lower() in lowered for pattern in patterns):
            return system_field

    return None


def resolve_columns(headers: Sequence[str], mappings: Iterable[FieldMapping]) -> Dict[str, str]:
    """
    Header -> system field for one file.

    Administrator mappings win; remaining headers fall back to the built-in tables.
    """

    resolved: Dict[str, str] = {}
    for mapping in _sorted(mappings):
        for header in headers:
            if header.lower() == mapping.csv_column.lower():
                resolved[header] = mapping.system_field

    for header in headers:
        if header in resolved:
            continue
        system_field = default_field_for(header)
        if system_field:
            resolved[header] = system_field

    return {h: resolved[h] for h in headers if h in resolved}


def with_default_mappings(headers: Sequence[str], mappings: Iterable[FieldMapping]) -> List[FieldMapping]:
    """Administrator mappings plus built-in mappings for the headers they leave uncovered."""

    mappings = _sorted(mappings)
    covered = {m.csv_column.lower() for m in mappings}
    next_order = (mappings[-1].display_order + 1) if mappings else 0

    combined = list(mappings)
    for header in headers:
        if header.lower() in covered:
            continue
        system_field = default_field_for(header)
        if system_field is None:
            continue
        combined.append(FieldMapping(csv_column=header, system_field=system_field, display_order=next_order))
        covered.add(header.lower())
        next_order += 1

    return combined


__all__ = [
    "ColumnReport",
    "DEFAULT_MAPPINGS",
    "FIELD_CONVERTERS",
    "FieldMapping",
    "MISSING_PHONE_WARNING",
    "MappedLead",
    "MappingResult",
    "MissingRequiredFieldsError",
    "PARTIAL_MATCH_MAPPINGS",
    "REQUIRED_FIELD_LABELS",
    "SKIPPED_ID_COLUMNS",
    "SystemField",
    "apply_mappings",
    "convert_extra_field",
    "default_field_for",
    "find_unmapped_columns",
    "map_row",
    "resolve_columns",
    "with_default_mappings",
]
