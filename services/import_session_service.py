"""
Import session orchestration.

Runs an upload through the pipeline (grid read -> row reconstruction ->
image location/binding -> draft building), persists the job, and keeps
the drafts in an in-memory session the operator validates, corrects,
de-duplicates and publishes from. Every draft status change is mirrored
to import_items.
"""

import hashlib
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
import structlog

from config import settings
from models.draft import DraftRecord, DraftRecordUpdate
from models.duplicate import DuplicateMatch, DuplicateResolution, ResolutionOutcome
from models.import_job import ImportSession, PublishResult, ValidationSummary
from parsers.carry_forward import reconstruct_rows
from parsers.draft_builder import build_drafts
from parsers.image_binder import bind_images
from parsers.image_locator import locate_images
from parsers.unit_extractor import extract_unit
from parsers.workbook_reader import read_grid
from services.duplicate_service import DuplicateService
from services.enrichment_service import EnrichmentService
from services.import_job_service import ImportJobService
from services.publish_service import PublishService
from services.session_cache_service import (
    new_session_id,
    retrieve_session,
    store_session,
)
from services.storage_service import StorageService
from services.validation_service import ValidationService
from exceptions import (
    DatabaseError,
    DraftRecordNotFoundError,
    DuplicateUploadError,
    ImportSessionNotFoundError,
    InvalidExchangeRateError,
    InvalidStatusTransitionError,
)

logger = structlog.get_logger(__name__)


def compute_file_hash(file_bytes: bytes) -> str:
    """SHA-256 hex digest of the uploaded file."""
    return hashlib.sha256(file_bytes).hexdigest()


def parse_exchange_rate(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """
    Exchange rate as a positive Decimal (default from settings).

    Raises:
        InvalidExchangeRateError: If not a number > 0
    """
    if value is None:
        value = settings.default_exchange_rate
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise InvalidExchangeRateError(value)
    if not rate.is_finite() or rate <= 0:
        raise InvalidExchangeRateError(value)
    return rate


class ImportSessionService:
    """Upload pipeline plus the operator actions on a session."""

    def __init__(self):
        self.jobs = ImportJobService()
        self.storage = StorageService()
        self.validation = ValidationService()
        self.duplicates = DuplicateService()
        self.publisher = PublishService()
        self.enrichment = EnrichmentService()

    # ===================
    # UPLOAD
    # ===================

    def start_upload(
        self,
        file_bytes: bytes,
        filename: str,
        exchange_rate: Union[Decimal, float, int, str, None] = None,
        force: bool = False,
    ) -> ImportSession:
        """
        Process an uploaded workbook into a new session.

        Args:
            file_bytes: Workbook content
            filename: Original filename
            exchange_rate: Secondary units per 1 primary unit
            force: Process even if the same file/filename was imported before

        Returns:
            The new ImportSession

        Raises:
            InvalidExchangeRateError: Rate is not > 0
            DuplicateUploadError: Same hash or filename already imported
            WorkbookReadError: File is not a readable workbook
        """
        rate = parse_exchange_rate(exchange_rate)
        file_hash = compute_file_hash(file_bytes)

        logger.info(
            "upload_received",
            filename=filename,
            size=len(file_bytes),
            exchange_rate=str(rate),
            force=force,
        )

        existing = self.jobs.check_duplicate_job(file_hash, filename)
        if existing and not force:
            logger.warning(
                "duplicate_upload_rejected",
                filename=filename,
                existing_job_id=existing.get("id"),
            )
            raise DuplicateUploadError(filename, existing)

        grid = read_grid(file_bytes, filename)
        candidates = reconstruct_rows(grid)
        mappings, image_summary = locate_images(file_bytes, self.storage.upload_image)
        bound = bind_images(candidates, mappings, settings.image_binding_mode)
        records = build_drafts(candidates, bound, rate)

        job = self.jobs.create_job(filename, file_hash, rate, records, image_summary)

        session = ImportSession(
            session_id=new_session_id(),
            job_id=job.id,
            filename=filename,
            file_hash=file_hash,
            exchange_rate=rate,
            records=records,
            images=image_summary,
        )
        store_session(session)

        logger.info(
            "upload_processed",
            session_id=session.session_id,
            job_id=job.id,
            total_rows=len(records),
            images=image_summary.uploaded_images,
        )
        return session

    def load_job_session(self, job_id: str) -> ImportSession:
        """
        Rebuild a session from a persisted job ("load existing data").

        Raises:
            ImportJobNotFoundError: If the job doesn't exist
        """
        job = self.jobs.get_job(job_id)
        items = self.jobs.list_items(job_id)

        try:
            rate = parse_exchange_rate(job.settings.get("exchange_rate"))
        except InvalidExchangeRateError:
            rate = parse_exchange_rate(None)

        session = ImportSession(
            session_id=new_session_id(),
            job_id=job.id,
            filename=job.source_filename,
            file_hash=job.file_hash or "",
            exchange_rate=rate,
            records=[item.to_draft() for item in items],
        )
        store_session(session)

        logger.info("job_session_loaded", job_id=job_id, session_id=session.session_id, records=len(items))
        return session

    def get_session(self, session_id: str) -> ImportSession:
        """
        Raises:
            ImportSessionNotFoundError: If unknown or expired
        """
        session = retrieve_session(session_id)
        if session is None:
            raise ImportSessionNotFoundError(session_id)
        return session

    # ===================
    # OPERATOR ACTIONS
    # ===================

    def update_record(
        self,
        session_id: str,
        row_index: int,
        patch: DraftRecordUpdate,
    ) -> DraftRecord:
        """
        Apply an operator correction and re-validate that record.

        A unit that was derived from the old name is re-derived from the
        new one unless the patch sets the unit itself.
        """
        session = self.get_session(session_id)
        record = session.find(row_index)
        if record is None:
            raise DraftRecordNotFoundError(row_index)
        if record.is_terminal:
            raise InvalidStatusTransitionError(record.status.value, "validated")

        changes = patch.model_dump(exclude_unset=True)
        if "name" in changes and "unit" not in changes and record.unit == extract_unit(record.name):
            changes["unit"] = extract_unit(changes["name"] or "")

        for field, value in changes.items():
            if value is None:
                if field == "price":
                    continue
                if field in ("name", "description", "unit", "origin"):
                    value = ""
            setattr(record, field, value)

        self.validation.validate(record)
        self._sync(session, [record])
        store_session(session)

        logger.info(
            "record_updated",
            session_id=session_id,
            row_index=row_index,
            fields=list(changes.keys()),
            status=record.status.value,
        )
        return record

    def validate_all(self, session_id: str) -> ValidationSummary:
        """Validate every record; publish automatically when all pass."""
        session = self.get_session(session_id)

        summary = self.validation.validate_all(session.records)
        if summary.all_validated:
            logger.info("all_records_validated_auto_publish", session_id=session_id)
            summary.auto_published = self.publisher.publish(session.records)

        self._sync(session, session.records)
        self.jobs.update_job_stats(session.job_id, session.records)
        store_session(session)
        return summary

    def assign_category_to_all(self, session_id: str, category_id: str) -> ImportSession:
        """Set one category on every open record."""
        session = self.get_session(session_id)
        self.validation.assign_category_to_all(session.records, category_id)
        self._sync(session, session.records)
        store_session(session)
        return session

    def publish(self, session_id: str) -> PublishResult:
        """Publish every validated record of the session."""
        session = self.get_session(session_id)
        result = self.publisher.publish(session.records)
        self._sync(session, session.records)
        self.jobs.update_job_stats(session.job_id, session.records)
        store_session(session)
        return result

    def detect_duplicates(self, session_id: str) -> list[DuplicateMatch]:
        session = self.get_session(session_id)
        return self.duplicates.detect(session.records)

    def resolve_duplicates(
        self,
        session_id: str,
        resolutions: list[DuplicateResolution],
    ) -> list[ResolutionOutcome]:
        """Apply skip/publish/update/rename decisions."""
        session = self.get_session(session_id)
        outcomes = self.publisher.resolve_duplicates(session.records, resolutions)

        touched = {o.row_index for o in outcomes}
        self._sync(session, [r for r in session.records if r.row_index in touched])
        self.jobs.update_job_stats(session.job_id, session.records)
        store_session(session)
        return outcomes

    def enrich(self, session_id: str) -> int:
        """Run AI enrichment; returns how many records got suggestions."""
        session = self.get_session(session_id)
        applied = self.enrichment.enrich(session.records)
        self._sync(session, session.records)
        store_session(session)
        return applied

    # ===================
    # HELPERS
    # ===================

    def _sync(self, session: ImportSession, records: list[DraftRecord]) -> None:
        """Mirror records to import_items; a failed row is logged, not raised."""
        for record in records:
            try:
                self.jobs.sync_item(session.job_id, record)
            except DatabaseError as e:
                logger.warning(
                    "import_item_sync_failed",
                    job_id=session.job_id,
                    row_index=record.row_index,
                    error=e.message,
                )


_import_session_service: Optional[ImportSessionService] = None

def get_import_session_service() -> ImportSessionService:
    """Get or create ImportSessionService instance."""
    global _import_session_service
    if _import_session_service is None:
        _import_session_service = ImportSessionService()
    return _import_session_service
