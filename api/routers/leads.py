"""
Leads API Endpoints.

Endpoints for uploading lead spreadsheets and listing members eligible to receive leads.
"""

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile

from api.models import UploadResponse
from services.lead_batch_service import ingest_upload
from services.member_service import GradeNotFoundError, list_eligible_members
from services.spreadsheet_parser import (
    SUPPORTED_EXTENSIONS,
    EmptyFileError,
    MalformedHeaderError,
    MissingWorksheetError,
    UnreadableFileError,
    UnsupportedFormatError,
    extension_of,
)
from repositories.settings_repository import get_eligibility_thresholds

router = APIRouter()

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@router.post(
    "/leads/upload",
    response_model=UploadResponse,
    summary="Upload Lead Spreadsheet",
    description="Import leads from a CSV, XLSX or XLS file (max 10MB). Duplicates by phone are skipped."
)
async def upload_leads(
    file: UploadFile = File(..., description="CSV, XLSX or XLS file"),
    uploaded_by: Optional[str] = Query(None, description="Uploader member id"),
    dry_run: bool = Query(False, description="Parse and classify without saving"),
):
    """
    Upload a lead spreadsheet.

    **Process:**
    1. Parses the file (CSV is read as UTF-8, falling back to EUC-KR)
    2. Maps columns with the administrator mappings, then built-in aliases
    3. Skips rows without a phone and phones already stored or repeated in the file
    4. Classifies every new lead with the active grade rules
    5. Saves the upload batch and its leads

    Partial success is normal: `success_count` may be lower than `total_count`,
    with itemized `errors` and `duplicates` (first 10 of each).
    """
    filename = file.filename or ""
    extension = extension_of(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file format '{extension}'. Use one of: {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File exceeds the 10MB upload limit")

    try:
        outcome = ingest_upload(content, filename, uploaded_by=uploaded_by, dry_run=dry_run)
        return UploadResponse(**outcome.to_dict())

    except (
        UnsupportedFormatError,
        EmptyFileError,
        MalformedHeaderError,
        MissingWorksheetError,
        UnreadableFileError,
    ) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process upload: {str(e)}"
        )


@router.get(
    "/leads/eligible-members",
    summary="List Eligible Members",
    description="Members grouped by team and split into eligible/ineligible for a lead grade."
)
def get_eligible_members(
    grade_id: Optional[str] = Query(None, description="Grade id"),
    grade_name: Optional[str] = Query(None, description="Grade name (used when grade_id is absent)"),
    team_id: Optional[str] = Query(None, description="Only members of this team"),
    use_current_month: bool = Query(False, description="Judge on this month instead of last month"),
):
    """
    Eligibility is advisory: ineligible members can still be assigned leads.

    **Example usage:**
    - `GET /api/v1/leads/eligible-members?grade_name=B`
    - `GET /api/v1/leads/eligible-members?grade_id=...&use_current_month=true`
    """
    try:
        report = list_eligible_members(
            grade_id=grade_id,
            grade_name=grade_name,
            team_id=team_id,
            use_current_month=use_current_month,
        )
        return report.to_dict(get_eligibility_thresholds())

    except GradeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to evaluate eligible members: {str(e)}"
        )
