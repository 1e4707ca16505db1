"""
Lead upload processing (no I/O).

Flow for one uploaded file:
    parse -> resolve column mappings -> map rows -> drop duplicates -> classify

Duplicates are phones that already exist in storage or appeared earlier in the same
file; the first occurrence in the file wins. Every surviving lead gets an automatic
grade. Counts are exact; the response lists of errors/duplicates are truncated.

Rows skipped for a missing phone are reported with the errors so that
success + duplicates + errors accounts for every mapped row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from domain.field_mapping import FieldMapping
from domain.grade import GradeWithRules
from domain.lead import Lead
from services.column_mapper import MappingResult, apply_mappings, resolve_columns, with_default_mappings
from services.grade_classifier import classify_lead
from services.spreadsheet_parser import EmptyFileError, ParseResult, RowIssue

logger = logging.getLogger(__name__)

# Items returned per list in an upload response.
RESPONSE_LIST_LIMIT = 10


@dataclass(frozen=True, slots=True)
class DuplicateRow:
    row: int
    phone: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "phone": self.phone}


@dataclass(slots=True)
class MappedUpload:
    """A parsed file after column resolution and row mapping."""

    headers: List[str]
    total_count: int
    mapping: MappingResult
    mapped_columns: List[str]
    unmapped_columns: List[str]

    @property
    def phones(self) -> List[str]:
        return [m.lead.phone for m in self.mapping.mapped]


@dataclass(slots=True)
class UploadSummary:
    total_count: int
    leads: List[Lead] = field(default_factory=list)
    errors: List[RowIssue] = field(default_factory=list)
    duplicates: List[DuplicateRow] = field(default_factory=list)
    grade_summary: Dict[str, int] = field(default_factory=dict)
    mapped_columns: List[str] = field(default_factory=list)
    unmapped_columns: List[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.leads)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def batch_record(self, file_name: str, uploaded_by: Optional[str] = None) -> dict[str, Any]:
        """Payload for the upload batch row."""

        record: dict[str, Any] = {
            "file_name": file_name,
            "total_count": self.total_count,
            "success_count": self.success_count,
            "duplicate_count": self.duplicate_count,
            "error_count": self.error_count,
            "grade_summary": dict(self.grade_summary),
        }
        if uploaded_by is not None:
            record["uploaded_by"] = uploaded_by
        return record

    def to_dict(self, batch_id: Optional[str] = None) -> dict[str, Any]:
        return {
            "batch_id": batch_id,
            "total_count": self.total_count,
            "success_count": self.success_count,
            "duplicate_count": self.duplicate_count,
            "error_count": self.error_count,
            "grade_summary": dict(self.grade_summary),
            "errors": [e.to_dict() for e in self.errors[:RESPONSE_LIST_LIMIT]],
            "duplicates": [d.to_dict() for d in self.duplicates[:RESPONSE_LIST_LIMIT]],
            "mapped_columns": list(self.mapped_columns),
            "unmapped_columns": list(self.unmapped_columns),
        }


def map_upload(parse_result: ParseResult, mappings: Sequence[FieldMapping]) -> MappedUpload:
    """
    Resolve columns (administrator mappings, then built-in aliases) and map every row.

    Raises:
        EmptyFileError: the file has a header but no data rows
    """

    if not parse_result.rows:
        raise EmptyFileError()

    headers = parse_result.headers
    columns = resolve_columns(headers, mappings)
    mapping = apply_mappings(parse_result, with_default_mappings(headers, mappings))

    unmapped = [h for h in headers if h not in columns]
    if unmapped:
        logger.info("Upload has unmapped columns", extra={"unmapped_columns": unmapped})

    return MappedUpload(
        headers=list(headers),
        total_count=len(parse_result.rows),
        mapping=mapping,
        mapped_columns=list(columns),
        unmapped_columns=unmapped,
    )


def finalize_upload(
    mapped: MappedUpload,
    grades: Sequence[GradeWithRules],
    existing_phones: Iterable[str] = (),
) -> UploadSummary:
    """Drop duplicate phones and classify what remains."""

    existing = set(existing_phones)
    seen: set[str] = set()

    errors = sorted(mapped.mapping.errors + mapped.mapping.warnings, key=lambda issue: issue.row)
    summary = UploadSummary(
        total_count=mapped.total_count,
        errors=errors,
        mapped_columns=mapped.mapped_columns,
        unmapped_columns=mapped.unmapped_columns,
    )

    for item in mapped.mapping.mapped:
        phone = item.lead.phone
        if phone in existing or phone in seen:
            summary.duplicates.append(DuplicateRow(row=item.row, phone=phone))
            continue
        seen.add(phone)

        lead, result = classify_lead(item.lead, grades)
        summary.leads.append(lead)
        summary.grade_summary[result.grade_name] = summary.grade_summary.get(result.grade_name, 0) + 1

    logger.info(
        "Upload processed",
        extra={
            "total_count": summary.total_count,
            "success_count": summary.success_count,
            "duplicate_count": summary.duplicate_count,
            "error_count": summary.error_count,
        },
    )
    return summary


def process_upload(
    parse_result: ParseResult,
    mappings: Sequence[FieldMapping],
    grades: Sequence[GradeWithRules],
    existing_phones: Iterable[str] = (),
) -> UploadSummary:
    return finalize_upload(map_upload(parse_result, mappings), grades, existing_phones)


__all__ = [
    "DuplicateRow",
    "MappedUpload",
    "RESPONSE_LIST_LIMIT",
    "UploadSummary",
    "finalize_upload",
    "map_upload",
    "process_upload",
]
