"""
Bulk catalog import API routes.

Upload -> session -> validate/correct -> de-duplicate -> publish, plus
job administration and the downloadable template.
See STANDARDS_ERRORS.md for error response format.
"""

from typing import Optional

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
import structlog

from models.draft import DraftRecord, DraftRecordUpdate
from models.duplicate import DuplicateMatch, ResolutionOutcome, ResolveDuplicatesRequest
from models.import_job import (
    AssignCategoryRequest,
    BulkImageCleanupResponse,
    ImportItemResponse,
    ImportJobResponse,
    ImportSessionResponse,
    PublishResult,
    RetryResponse,
    ValidationSummary,
)
from services.import_job_service import get_import_job_service
from services.import_session_service import get_import_session_service
from services.storage_service import get_storage_service
from services.template_service import get_template_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# TEMPLATE
# ===================

@router.get("/template")
async def download_template():
    """Download the bulk upload template workbook."""
    try:
        output = get_template_service().generate_template()
        return StreamingResponse(
            output,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": 'attachment; filename="product-import-template.xlsx"'},
        )
    except Exception as e:
        return handle_error(e)


# ===================
# SESSIONS
# ===================

@router.post("/upload", response_model=ImportSessionResponse)
async def upload_workbook(
    file: UploadFile = File(..., description="Supplier workbook (.xlsx)"),
    exchange_rate: Optional[float] = Form(None, description="Secondary currency units per 1 primary unit"),
    force: bool = Form(False, description="Import even if this file was imported before"),
):
    """
    Upload a workbook and build a new import session.

    Returns 409 DUPLICATE_UPLOAD with the existing job id when the same
    file (or filename) was imported before and force is false.
    """
    try:
        content = await file.read()
        session = get_import_session_service().start_upload(
            content,
            file.filename or "upload.xlsx",
            exchange_rate=exchange_rate,
            force=force,
        )
        return ImportSessionResponse.from_session(session)
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}", response_model=ImportSessionResponse)
async def get_session(session_id: str):
    """Get an import session with all its records."""
    try:
        session = get_import_session_service().get_session(session_id)
        return ImportSessionResponse.from_session(session)
    except Exception as e:
        return handle_error(e)


@router.patch("/sessions/{session_id}/records/{row_index}", response_model=DraftRecord)
async def update_record(session_id: str, row_index: int, data: DraftRecordUpdate):
    """Correct one record; it is re-validated immediately."""
    try:
        return get_import_session_service().update_record(session_id, row_index, data)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/validate", response_model=ValidationSummary)
async def validate_session(session_id: str):
    """Validate all records; publishes automatically when every record passes."""
    try:
        return get_import_session_service().validate_all(session_id)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/assign-category", response_model=ImportSessionResponse)
async def assign_category(session_id: str, data: AssignCategoryRequest):
    """Assign one category to every open record."""
    try:
        session = get_import_session_service().assign_category_to_all(session_id, data.category_id)
        return ImportSessionResponse.from_session(session)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/enrich")
async def enrich_session(session_id: str):
    """Ask the AI model for suggestions on pending/error records."""
    try:
        applied = get_import_session_service().enrich(session_id)
        return {"session_id": session_id, "suggested_count": applied}
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/duplicates", response_model=list[DuplicateMatch])
async def detect_duplicates(session_id: str):
    """Compare validated/suggested records with the live catalog."""
    try:
        return get_import_session_service().detect_duplicates(session_id)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/resolve", response_model=list[ResolutionOutcome])
async def resolve_duplicates(session_id: str, data: ResolveDuplicatesRequest):
    """Apply skip/publish/update/rename decisions for flagged duplicates."""
    try:
        return get_import_session_service().resolve_duplicates(session_id, data.resolutions)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/publish", response_model=PublishResult)
async def publish_session(session_id: str):
    """Publish every validated record."""
    try:
        return get_import_session_service().publish(session_id)
    except Exception as e:
        return handle_error(e)


# ===================
# JOBS
# ===================

@router.get("/jobs", response_model=list[ImportJobResponse])
async def list_jobs(limit: int = Query(50, ge=1, le=500)):
    """List import jobs, newest first."""
    try:
        return get_import_job_service().list_jobs(limit=limit)
    except Exception as e:
        return handle_error(e)


@router.get("/jobs/{job_id}/items", response_model=list[ImportItemResponse])
async def list_job_items(job_id: str):
    """List a job's items in sheet order."""
    try:
        return get_import_job_service().list_items(job_id)
    except Exception as e:
        return handle_error(e)


@router.post("/jobs/{job_id}/load", response_model=ImportSessionResponse)
async def load_job(job_id: str):
    """Open a new session from a previously imported job."""
    try:
        session = get_import_session_service().load_job_session(job_id)
        return ImportSessionResponse.from_session(session)
    except Exception as e:
        return handle_error(e)


@router.post("/jobs/{job_id}/retry", response_model=RetryResponse)
async def retry_job(job_id: str):
    """Reset the job's failed items to pending."""
    try:
        return get_import_job_service().retry_failed(job_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/jobs/{job_id}", status_code=204)
async def delete_job(job_id: str):
    """Delete a job and its items."""
    try:
        get_import_job_service().delete_job(job_id)
        return None
    except Exception as e:
        return handle_error(e)


# ===================
# STORAGE
# ===================

@router.delete("/storage/bulk-images", response_model=BulkImageCleanupResponse)
async def cleanup_bulk_images():
    """Remove every image extracted by bulk uploads."""
    try:
        return get_storage_service().cleanup_bulk_images()
    except Exception as e:
        return handle_error(e)
