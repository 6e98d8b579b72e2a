"""
Import job persistence and administration.

import_jobs holds one row per processed upload with aggregate stats;
import_items holds one row per draft record, owned by its job.

See STANDARDS_LOGGING.md for logging patterns.
See STANDARDS_ERRORS.md for error handling patterns.
"""

from decimal import Decimal
from typing import Any, Optional
import structlog

from config import get_supabase_client, settings
from models.draft import DraftRecord, DraftStatus
from models.image_mapping import ImageLocatorSummary
from models.import_job import (
    ImportItemResponse,
    ImportJobResponse,
    ImportJobStatus,
    RetryResponse,
)
from exceptions import DatabaseError, ImportJobNotFoundError

logger = structlog.get_logger(__name__)


def _quote_filter_value(value: str) -> str:
    """Quote a value for a PostgREST or=() filter (commas, dots, parens)."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def record_to_item(job_id: str, record: DraftRecord) -> dict[str, Any]:
    """Row payload for import_items."""
    return {
        "job_id": job_id,
        "row_index": record.row_index,
        "name": record.name,
        "description": record.description,
        "price": str(record.price),
        "category_id": record.category_id,
        "category_hint": record.category_hint,
        "unit": record.unit,
        "origin": record.origin,
        "image_url": record.image_url,
        "has_embedded_image": record.has_embedded_image,
        "status": record.status.value,
        "errors": list(record.errors),
        "raw": [_json_cell(v) for v in record.original_data],
    }


def _json_cell(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


class ImportJobService:
    """
    Import job business logic.

    Handles persistence, listing, cascade delete and retry.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "import_jobs"
        self.items_table = "import_items"

    # ===================
    # DUPLICATE-UPLOAD GUARD
    # ===================

    def check_duplicate_job(self, file_hash: str, filename: str) -> Optional[dict]:
        """
        Find the most recent job with the same content hash or filename.

        Returns:
            Job row dict or None
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .or_(
                    f"file_hash.eq.{file_hash},"
                    f"source_filename.eq.{_quote_filter_value(filename)}"
                )
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None

        except Exception as e:
            logger.error("check_duplicate_job_failed", filename=filename, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create_job(
        self,
        filename: str,
        file_hash: str,
        exchange_rate: Decimal,
        records: list[DraftRecord],
        images: ImageLocatorSummary,
    ) -> ImportJobResponse:
        """
        Persist a processed upload and its items.

        Returns:
            Created ImportJobResponse
        """
        error_rows = sum(1 for r in records if r.status == DraftStatus.ERROR)
        job_data = {
            "source_filename": filename,
            "file_hash": file_hash,
            "status": ImportJobStatus.PROCESSED.value,
            "stats_total_rows": len(records),
            "stats_valid_rows": len(records) - error_rows,
            "stats_error_rows": error_rows,
            "settings": {
                "exchange_rate": str(exchange_rate),
                "image_binding_mode": settings.image_binding_mode,
                "image_mapping_method": images.mapping_method.value,
                "total_images": images.total_images,
                "uploaded_images": images.uploaded_images,
            },
        }

        try:
            result = self.db.table(self.table).insert(job_data).execute()
            job = ImportJobResponse(**result.data[0])
        except Exception as e:
            logger.error("create_import_job_failed", filename=filename, error=str(e))
            raise DatabaseError("insert", str(e))

        if records:
            try:
                self.db.table(self.items_table).insert(
                    [record_to_item(job.id, r) for r in records]
                ).execute()
            except Exception as e:
                logger.error(
                    "create_import_items_failed",
                    job_id=job.id,
                    filename=filename,
                    error=str(e)
                )
                self._discard_job(job.id)
                raise DatabaseError("insert", str(e))

        logger.info(
            "import_job_created",
            job_id=job.id,
            filename=filename,
            total_rows=len(records),
            error_rows=error_rows,
        )
        return job

    def _discard_job(self, job_id: str) -> None:
        """Remove a job whose items could not be written, so it never blocks a re-upload."""
        try:
            self.db.table(self.items_table).delete().eq("job_id", job_id).execute()
            self.db.table(self.table).delete().eq("id", job_id).execute()
            logger.info("import_job_discarded", job_id=job_id)
        except Exception as e:
            logger.error("discard_import_job_failed", job_id=job_id, error=str(e))

    def sync_item(self, job_id: str, record: DraftRecord) -> None:
        """Mirror one draft's current state into import_items."""
        payload = record_to_item(job_id, record)
        payload.pop("job_id")
        payload.pop("row_index")
        payload.pop("raw")

        try:
            (
                self.db.table(self.items_table)
                .update(payload)
                .eq("job_id", job_id)
                .eq("row_index", record.row_index)
                .execute()
            )
        except Exception as e:
            logger.error(
                "sync_import_item_failed",
                job_id=job_id,
                row_index=record.row_index,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

    def update_job_stats(self, job_id: str, records: list[DraftRecord]) -> None:
        """Recompute job stats and status from the current drafts."""
        error_rows = sum(1 for r in records if r.status == DraftStatus.ERROR)
        published = sum(1 for r in records if r.status == DraftStatus.PUBLISHED)

        if records and published == len(records):
            status = ImportJobStatus.PUBLISHED
        elif published:
            status = ImportJobStatus.PARTIALLY_PUBLISHED
        else:
            status = ImportJobStatus.PROCESSED

        self.update_job(job_id, {
            "status": status.value,
            "stats_total_rows": len(records),
            "stats_valid_rows": len(records) - error_rows,
            "stats_error_rows": error_rows,
        })

    def update_job(self, job_id: str, patch: dict[str, Any]) -> None:
        """Apply a partial update to a job row."""
        try:
            self.db.table(self.table).update(patch).eq("id", job_id).execute()
            logger.debug("import_job_updated", job_id=job_id, fields=list(patch.keys()))
        except Exception as e:
            logger.error("update_import_job_failed", job_id=job_id, error=str(e))
            raise DatabaseError("update", str(e))

    # ===================
    # READ OPERATIONS
    # ===================

    def list_jobs(self, limit: int = 50) -> list[ImportJobResponse]:
        """Get jobs, newest first."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return [ImportJobResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("list_import_jobs_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_job(self, job_id: str) -> ImportJobResponse:
        """
        Get a single job.

        Raises:
            ImportJobNotFoundError: If the job doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", job_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_import_job_failed", job_id=job_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ImportJobNotFoundError(job_id)
        return ImportJobResponse(**result.data[0])

    def list_items(self, job_id: str) -> list[ImportItemResponse]:
        """Get a job's items ordered by sheet row."""
        self.get_job(job_id)

        try:
            result = (
                self.db.table(self.items_table)
                .select("*")
                .eq("job_id", job_id)
                .order("row_index")
                .execute()
            )
            return [ImportItemResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("list_import_items_failed", job_id=job_id, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # ADMINISTRATION
    # ===================

    def delete_job(self, job_id: str) -> bool:
        """
        Delete a job and its items (items first).

        Raises:
            ImportJobNotFoundError: If the job doesn't exist
        """
        self.get_job(job_id)

        try:
            self.db.table(self.items_table).delete().eq("job_id", job_id).execute()
            self.db.table(self.table).delete().eq("id", job_id).execute()
        except Exception as e:
            logger.error("delete_import_job_failed", job_id=job_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("import_job_deleted", job_id=job_id)
        return True

    def retry_failed(self, job_id: str) -> RetryResponse:
        """Reset every failed item of a job to pending."""
        self.get_job(job_id)

        try:
            result = (
                self.db.table(self.items_table)
                .update({"status": DraftStatus.PENDING.value, "errors": []})
                .eq("job_id", job_id)
                .eq("status", DraftStatus.ERROR.value)
                .execute()
            )
        except Exception as e:
            logger.error("retry_import_items_failed", job_id=job_id, error=str(e))
            raise DatabaseError("update", str(e))

        reset_count = len(result.data or [])
        logger.info("import_items_reset", job_id=job_id, reset_count=reset_count)
        return RetryResponse(job_id=job_id, reset_count=reset_count)


_import_job_service: Optional[ImportJobService] = None

def get_import_job_service() -> ImportJobService:
    """Get or create ImportJobService instance."""
    global _import_job_service
    if _import_job_service is None:
        _import_job_service = ImportJobService()
    return _import_job_service
