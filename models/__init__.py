"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
)
from models.draft import (
    DraftStatus,
    DraftRecord,
    DraftRecordUpdate,
    TERMINAL_STATUSES,
    is_valid_draft_transition,
)
from models.image_mapping import (
    MappingMethod,
    ImageRowMapping,
    ImageLocatorSummary,
)
from models.product import (
    CategoryResponse,
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)
from models.duplicate import (
    DuplicateType,
    DuplicateMatch,
    DuplicateResolution,
    SkipResolution,
    PublishResolution,
    UpdateResolution,
    RenameResolution,
    ResolveDuplicatesRequest,
    ResolutionOutcome,
)
from models.import_job import (
    ImportJobStatus,
    ImportJobResponse,
    ImportItemResponse,
    ImportSession,
    ImportSessionResponse,
    PublishResult,
    ValidationSummary,
    AssignCategoryRequest,
    RetryResponse,
    BulkImageCleanupResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Drafts
    "DraftStatus",
    "DraftRecord",
    "DraftRecordUpdate",
    "TERMINAL_STATUSES",
    "is_valid_draft_transition",

    # Images
    "MappingMethod",
    "ImageRowMapping",
    "ImageLocatorSummary",

    # Catalog
    "CategoryResponse",
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",

    # Duplicates
    "DuplicateType",
    "DuplicateMatch",
    "DuplicateResolution",
    "SkipResolution",
    "PublishResolution",
    "UpdateResolution",
    "RenameResolution",
    "ResolveDuplicatesRequest",
    "ResolutionOutcome",

    # Import jobs / sessions
    "ImportJobStatus",
    "ImportJobResponse",
    "ImportItemResponse",
    "ImportSession",
    "ImportSessionResponse",
    "PublishResult",
    "ValidationSummary",
    "AssignCategoryRequest",
    "RetryResponse",
    "BulkImageCleanupResponse",
]
