"""
Tests for `services/column_mapper.py`.

Covers contract rules:
- Mapped cells are converted per system field; other system fields go to extra_fields.
- Missing required fields reject the row; a row without phone is skipped with a warning.
- Administrator mappings take precedence over the built-in alias tables.
- Ad-platform id columns are never auto-mapped.
"""

from __future__ import annotations

import pytest

from domain.field_mapping import FieldMapping
from services.column_mapper import (
    MISSING_PHONE_WARNING,
    MissingRequiredFieldsError,
    apply_mappings,
    default_field_for,
    find_unmapped_columns,
    map_row,
    resolve_columns,
    with_default_mappings,
)
from services.spreadsheet_parser import ParseResult, RowIssue


def _parse_result(rows: list[dict], errors: list[RowIssue] | None = None) -> ParseResult:
    headers = list(rows[0].keys()) if rows else []
    return ParseResult(headers=headers, rows=rows, errors=errors or [])


def test_apply_mappings_converts_every_field() -> None:
    """Verify phone, range, boolean and extra fields are converted from one row."""

    row = {
        "연락처": "01012345678",
        "업체명": "가나상사",
        "대표자명": "김철수",
        "연매출": "10억~30억_미만",
        "종업원수": "5~10명",
        "세금체납": "아니오",
        "오가닉": "true",
        "메모": "  오후 통화 희망 ",
    }
    parsed = _parse_result([row])

    result = apply_mappings(parsed, with_default_mappings(parsed.headers, []))

    assert result.errors == []
    assert result.warnings == []
    assert len(result.mapped) == 1
    assert result.mapped[0].row == 2

    lead = result.leads[0]
    assert lead.phone == "010-1234-5678"
    assert lead.company_name == "가나상사"
    assert lead.representative_name == "김철수"
    assert lead.annual_revenue == 10.0
    assert lead.annual_revenue_min == 10.0
    assert lead.annual_revenue_max == 30.0
    assert lead.employee_count == 5
    assert lead.employee_count_max == 10
    assert lead.tax_delinquency is False
    assert lead.memo == "오후 통화 희망"
    assert lead.extra_fields == {"is_organic": True}


def test_apply_mappings_skips_row_without_phone_with_warning() -> None:
    """Verify a phoneless row is skipped and reported as a warning, not an error."""

    parsed = _parse_result(
        [
            {"연락처": "010-1111-2222", "업체명": "가"},
            {"연락처": None, "업체명": "나"},
        ]
    )

    result = apply_mappings(parsed, with_default_mappings(parsed.headers, []))

    assert [l.phone for l in result.leads] == ["010-1111-2222"]
    assert result.warnings == [RowIssue(row=3, message=MISSING_PHONE_WARNING)]
    assert result.errors == []


def test_apply_mappings_rejects_missing_required_fields() -> None:
    """Verify required mappings reject empty cells with the Korean field labels."""

    mappings = [
        FieldMapping("연락처", "phone", is_required=True, display_order=1),
        FieldMapping("업체명", "company_name", is_required=True, display_order=2),
    ]
    parsed = _parse_result([{"연락처": None, "업체명": "  "}])

    result = apply_mappings(parsed, mappings)

    assert result.mapped == []
    assert result.errors == [RowIssue(row=2, message="필수 필드 누락: 연락처, 업체명")]


def test_map_row_raises_for_missing_required_field() -> None:
    """Verify the row-level error carries the row number and missing labels."""

    with pytest.raises(MissingRequiredFieldsError) as exc_info:
        map_row({"phone": "010-1111-2222"}, 7, {"phone": "phone"}, ["phone", "representative_name"])

    assert exc_info.value.row == 7
    assert exc_info.value.fields == ["대표자명"]


def test_apply_mappings_carries_parse_errors() -> None:
    """Verify line-level parse errors appear in the mapping errors."""

    parsed = ParseResult(headers=["연락처"], rows=[], errors=[RowIssue(row=4, message="Unterminated quoted field")])

    result = apply_mappings(parsed, [])

    assert result.errors == [RowIssue(row=4, message="Unterminated quoted field")]


def test_mapping_is_case_insensitive() -> None:
    """Verify csv_column matches headers regardless of case."""

    parsed = _parse_result([{"PHONE": "010-1111-2222"}])

    result = apply_mappings(parsed, [FieldMapping("phone", "phone")])

    assert result.leads[0].phone == "010-1111-2222"


@pytest.mark.parametrize(
    "header, expected",
    [
        ("연락처", "phone"),
        ("Mobile", "phone"),
        ("대표자명", "representative_name"),
        ("업종을_선택해주세요_(80%완료)", "industry"),
        ("연매출을_선택해주세요", "annual_revenue"),
        ("id", "meta_id"),
        ("is_organic", "is_organic"),
        ("campaign_id", None),
        ("adset_id", None),
        ("알수없는열", None),
    ],
)
def test_default_field_for(header: str, expected) -> None:
    """Verify exact aliases, partial matches and skipped id columns."""

    assert default_field_for(header) == expected


def test_resolve_columns_prefers_administrator_mappings() -> None:
    """Verify admin mappings win over the built-in aliases and unknown headers stay unmapped."""

    headers = ["전화", "비고", "업체명", "기타", "campaign_id"]
    mappings = [
        FieldMapping("전화", "phone"),
        FieldMapping("비고", "available_time"),
    ]

    resolved = resolve_columns(headers, mappings)

    assert resolved == {
        "전화": "phone",
        "비고": "available_time",
        "업체명": "company_name",
    }


def test_with_default_mappings_appends_after_admin_mappings() -> None:
    """Verify built-in mappings only cover headers the administrator left out."""

    combined = with_default_mappings(
        ["전화", "업체명", "지역"],
        [FieldMapping("전화", "phone", display_order=3)],
    )

    assert [(m.csv_column, m.system_field, m.display_order) for m in combined] == [
        ("전화", "phone", 3),
        ("업체명", "company_name", 4),
        ("지역", "region", 5),
    ]


def test_find_unmapped_columns() -> None:
    """Verify headers without mappings and mappings without headers are both reported."""

    report = find_unmapped_columns(
        ["연락처", "기타"],
        [FieldMapping("연락처", "phone"), FieldMapping("업체명", "company_name")],
    )

    assert report.unmapped == ["기타"]
    assert report.missing == ["업체명"]


def test_field_mapping_from_row_defaults() -> None:
    """Verify stored mapping rows tolerate missing optional columns."""

    mapping = FieldMapping.from_row({"csv_column": "연락처", "system_field": "phone", "is_required": None})

    assert mapping == FieldMapping("연락처", "phone", is_required=False, display_order=0)
