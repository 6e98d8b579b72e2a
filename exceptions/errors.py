"""
Custom exception classes for the application.

Per-record and per-image failures are never raised out of a batch loop;
they are recorded on the draft record instead. Only session-level
problems (unreadable workbook, duplicate upload) abort an import.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_JOB_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# IMPORT JOBS / SESSIONS
# ===================

class ImportJobNotFoundError(NotFoundError):
    """Import job not found."""

    def __init__(self, job_id: str):
        super().__init__(
            resource="Import job",
            identifier=job_id,
            code="IMPORT_JOB_NOT_FOUND"
        )


class ImportSessionNotFoundError(NotFoundError):
    """Import session expired or never existed."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class DraftRecordNotFoundError(NotFoundError):
    """No draft record with this row index in the session."""

    def __init__(self, row_index: int):
        super().__init__(
            resource="Draft record",
            identifier=str(row_index),
            code="DRAFT_RECORD_NOT_FOUND"
        )


class CategoryNotFoundError(NotFoundError):
    """Category not found."""

    def __init__(self, category_id: str):
        super().__init__(
            resource="Category",
            identifier=category_id,
            code="CATEGORY_NOT_FOUND"
        )


class DuplicateUploadError(ConflictError):
    """The same workbook (by content hash or filename) was already imported."""

    def __init__(self, filename: str, existing_job: dict):
        super().__init__(
            code="DUPLICATE_UPLOAD",
            message=(
                f"'{filename}' was already imported. "
                "Load the existing data instead of re-uploading."
            ),
            details={
                "existing_job_id": existing_job.get("id"),
                "existing_filename": existing_job.get("source_filename"),
                "imported_at": existing_job.get("created_at"),
            }
        )


# ===================
# PARSING / VALIDATION
# ===================

class WorkbookReadError(ValidationError):
    """Uploaded workbook could not be opened or read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="WORKBOOK_READ_ERROR",
            message=message,
            details=details
        )


class InvalidExchangeRateError(ValidationError):
    """Exchange rate must be positive."""

    def __init__(self, rate: Any):
        super().__init__(
            code="INVALID_EXCHANGE_RATE",
            message="Exchange rate must be greater than zero",
            details={"exchange_rate": str(rate)}
        )


class InvalidStatusTransitionError(ValidationError):
    """Invalid draft status transition."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
            }
        )


class InvalidResolutionError(ValidationError):
    """Duplicate resolution cannot be applied to this record."""

    def __init__(self, row_index: int, reason: str):
        super().__init__(
            code="INVALID_RESOLUTION",
            message=reason,
            details={"row_index": row_index}
        )


# ===================
# COLLABORATORS
# ===================

class StorageError(ExternalServiceError):
    """Object storage upload/list/remove failed."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(
            service="storage",
            message=message,
            details={"key": key} if key else None
        )


class EnrichmentError(ExternalServiceError):
    """AI enrichment unavailable or returned an unusable response."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="enrichment",
            message=message,
            details=details
        )
