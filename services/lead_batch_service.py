"""
Lead batch operations backed by Supabase: file upload ingestion and reclassification.

Upload strategy:
1. Parse and map the file, check phones against stored leads, classify
2. Insert the upload batch record (counts + grade summary)
3. Bulk insert the leads; if that fails the batch record is deleted and the error
   propagates (all-or-nothing per upload)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from repositories.grade_repository import list_grades_with_rules
from repositories.lead_repository import (
    create_upload_batch,
    delete_upload_batch,
    get_existing_phones,
    insert_leads_bulk,
    list_leads_for_reclassification,
    update_lead_grades,
)
from repositories.mapping_repository import list_field_mappings
from services.reclassification_service import ReclassificationResult, ReclassifyMode, reclassify
from services.spreadsheet_parser import extension_of, parse_file
from services.upload_service import UploadSummary, finalize_upload, map_upload

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UploadOutcome:
    """batch_id is None for dry runs."""

    summary: UploadSummary
    batch_id: Optional[str]

    def to_dict(self) -> dict:
        return self.summary.to_dict(self.batch_id)


def ingest_upload(
    content: bytes,
    filename: str,
    uploaded_by: Optional[str] = None,
    dry_run: bool = False,
) -> UploadOutcome:
    """
    Parse, deduplicate, classify and store one uploaded spreadsheet.

    Raises:
        UnsupportedFormatError, EmptyFileError, MalformedHeaderError, MissingWorksheetError,
        UnreadableFileError:
            the file cannot be read
        RuntimeError: Supabase rejected a read or write
    """

    parse_result = parse_file(content, extension_of(filename))
    mapped = map_upload(parse_result, list_field_mappings())
    existing = get_existing_phones(mapped.phones)
    summary = finalize_upload(mapped, list_grades_with_rules(), existing)

    if dry_run:
        return UploadOutcome(summary=summary, batch_id=None)

    batch_id = create_upload_batch(summary.batch_record(filename, uploaded_by))
    try:
        insert_leads_bulk(summary.leads, upload_batch_id=batch_id)
    except Exception:
        logger.error("Lead insert failed, removing upload batch", extra={"batch_id": batch_id}, exc_info=True)
        delete_upload_batch(batch_id)
        raise

    logger.info("Upload stored", extra={"batch_id": batch_id, "file_name": filename})
    return UploadOutcome(summary=summary, batch_id=batch_id)


def run_reclassification(
    mode: ReclassifyMode = ReclassifyMode.AUTO_ONLY,
    dry_run: bool = False,
) -> ReclassificationResult:
    """
    Re-grade stored leads with the current rules and persist changed grades.

    Raises:
        NoActiveGradesError: no active grade exists
        NoDefaultGradeError: a lead matches nothing and no default grade exists
    """

    grades = list_grades_with_rules()
    # Ungraded leads have no grade_source, so the mode filter runs in memory.
    leads = list_leads_for_reclassification()
    result = reclassify(leads, grades, mode)

    if not dry_run:
        for grade_id, lead_ids in result.updates_by_grade().items():
            update_lead_grades(grade_id, lead_ids)

    logger.info(
        "Reclassification finished",
        extra={
            "mode": mode.value,
            "dry_run": dry_run,
            "total_count": result.total_count,
            "updated_count": result.updated_count,
        },
    )
    return result


__all__ = ["UploadOutcome", "ingest_upload", "run_reclassification"]
