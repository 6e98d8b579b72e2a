"""
Import job, import item and import session schemas.

Jobs and items are the persisted record of an upload; the session is the
in-memory working copy the operator validates and publishes from.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema
from models.draft import DraftRecord, DraftStatus
from models.image_mapping import ImageLocatorSummary


class ImportJobStatus(str, Enum):
    """Job-level lifecycle."""
    PROCESSED = "processed"
    PARTIALLY_PUBLISHED = "partially_published"
    PUBLISHED = "published"


class ImportJobResponse(BaseSchema):
    """Persisted upload with aggregate stats."""

    id: str = Field(..., description="Job UUID")
    source_filename: str
    file_hash: Optional[str] = None
    status: str = ImportJobStatus.PROCESSED.value
    created_at: Optional[datetime] = None
    stats_total_rows: int = 0
    stats_valid_rows: int = 0
    stats_error_rows: int = 0
    settings: dict[str, Any] = Field(default_factory=dict)


class ImportItemResponse(BaseSchema):
    """Persisted form of a DraftRecord, owned by exactly one job."""

    id: str = Field(..., description="Item UUID")
    job_id: str
    row_index: int
    name: Optional[str] = ""
    description: Optional[str] = ""
    price: Decimal = Decimal("0")
    category_id: Optional[str] = None
    category_hint: Optional[str] = None
    unit: Optional[str] = "each"
    origin: Optional[str] = ""
    image_url: Optional[str] = None
    has_embedded_image: bool = False
    status: DraftStatus = DraftStatus.PENDING
    errors: list[str] = Field(default_factory=list)
    raw: list[Any] = Field(default_factory=list)

    def to_draft(self) -> DraftRecord:
        """Rebuild the in-memory draft from the persisted row."""
        return DraftRecord(
            row_index=self.row_index,
            name=self.name or "",
            description=self.description or "",
            unit=self.unit or "each",
            origin=self.origin or "",
            price=self.price,
            category_id=self.category_id,
            category_hint=self.category_hint,
            image_url=self.image_url,
            has_embedded_image=self.has_embedded_image,
            status=self.status,
            errors=list(self.errors),
            original_data=list(self.raw),
        )


class ImportSession(BaseSchema):
    """In-memory working set for one upload."""

    session_id: str
    job_id: str
    filename: str
    file_hash: str
    exchange_rate: Decimal
    records: list[DraftRecord] = Field(default_factory=list)
    images: ImageLocatorSummary = Field(default_factory=ImageLocatorSummary)

    def find(self, row_index: int) -> Optional[DraftRecord]:
        """Look up a record by its sheet row."""
        for record in self.records:
            if record.row_index == row_index:
                return record
        return None

    def count(self, status: DraftStatus) -> int:
        return sum(1 for r in self.records if r.status == status)


class PublishResult(BaseSchema):
    """Aggregate outcome of a publish pass."""

    published_count: int = 0
    skipped_count: int = 0
    error_count: int = 0


class ValidationSummary(BaseSchema):
    """Aggregate outcome of a validate-all pass."""

    validated_count: int = 0
    error_count: int = 0
    all_validated: bool = False
    auto_published: Optional[PublishResult] = None


class ImportSessionResponse(BaseSchema):
    """Session as returned to the operator."""

    session_id: str
    job_id: str
    filename: str
    exchange_rate: Decimal
    total_rows: int
    valid_count: int
    error_count: int
    images: ImageLocatorSummary
    records: list[DraftRecord]

    @classmethod
    def from_session(cls, session: ImportSession) -> "ImportSessionResponse":
        error_count = session.count(DraftStatus.ERROR)
        return cls(
            session_id=session.session_id,
            job_id=session.job_id,
            filename=session.filename,
            exchange_rate=session.exchange_rate,
            total_rows=len(session.records),
            valid_count=len(session.records) - error_count,
            error_count=error_count,
            images=session.images,
            records=session.records,
        )


class AssignCategoryRequest(BaseSchema):
    """Assign one category to every non-terminal record."""
    category_id: str = Field(..., min_length=1)


class RetryResponse(BaseSchema):
    """Result of resetting failed items of a job."""
    job_id: str
    reset_count: int


class BulkImageCleanupResponse(BaseSchema):
    """Result of removing extracted images from storage."""
    prefix: str
    deleted_count: int
    error_count: int
