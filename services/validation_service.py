"""
Draft validation and status transitions.

Every status change of a draft record goes through transition(), which
enforces the lifecycle in models.draft. Validation itself is pure given
the category list; ValidationService only adds the category lookup.
"""

from typing import Iterable, Optional
import structlog

from models.draft import (
    CATEGORY_ERRORS,
    DraftRecord,
    DraftStatus,
    ERROR_CATEGORY_INVALID,
    ERROR_CATEGORY_REQUIRED,
    ERROR_NAME_REQUIRED,
    ERROR_PRICE_REQUIRED,
    ERROR_UNIT_REQUIRED,
    is_valid_draft_transition,
)
from models.import_job import ValidationSummary
from models.product import CategoryResponse
from services.category_service import CategoryService
from exceptions import CategoryNotFoundError, InvalidStatusTransitionError
from utils.text_utils import contains_either_way, names_match

logger = structlog.get_logger(__name__)


def transition(
    record: DraftRecord,
    new_status: DraftStatus,
    errors: Optional[list[str]] = None,
) -> DraftRecord:
    """
    Move a record to new_status in place.

    Raises:
        InvalidStatusTransitionError: If the lifecycle forbids the move
    """
    if not is_valid_draft_transition(record.status, new_status):
        raise InvalidStatusTransitionError(record.status.value, new_status.value)

    record.status = new_status
    record.errors = list(errors or [])
    return record


def validate_record(record: DraftRecord, categories: Iterable[CategoryResponse]) -> DraftRecord:
    """
    Re-derive status and errors for one record.

    Terminal records are returned untouched.
    """
    if record.is_terminal:
        return record

    category_ids = {c.id for c in categories}
    errors: list[str] = []

    if not record.name.strip():
        errors.append(ERROR_NAME_REQUIRED)
    if record.price <= 0:
        errors.append(ERROR_PRICE_REQUIRED)
    if not (record.category_id or "").strip():
        errors.append(ERROR_CATEGORY_REQUIRED)
    elif record.category_id.strip() not in category_ids:
        errors.append(ERROR_CATEGORY_INVALID)
    if not record.unit.strip():
        errors.append(ERROR_UNIT_REQUIRED)

    new_status = DraftStatus.ERROR if errors else DraftStatus.VALIDATED
    return transition(record, new_status, errors)


def resolve_category_hint(
    hint: Optional[str],
    categories: list[CategoryResponse],
) -> Optional[str]:
    """
    Resolve a free-text category label to a category id.

    Order: exact name (ignoring case) -> substring either way -> first
    category. Returns None only when there are no categories.
    """
    if not categories:
        return None

    if hint:
        for category in categories:
            if names_match(category.name, hint):
                return category.id
        for category in categories:
            if contains_either_way(category.name, hint):
                return category.id

    return categories[0].id


def assign_category(record: DraftRecord, category_id: str) -> DraftRecord:
    """
    Set the category on a non-terminal record.

    Only category-shaped errors are cleared. A record left with no
    errors goes back to pending for the next validation pass.
    """
    if record.is_terminal:
        return record

    record.category_id = category_id
    remaining = [e for e in record.errors if e not in CATEGORY_ERRORS]

    if remaining:
        return transition(record, DraftStatus.ERROR, remaining)
    if record.status == DraftStatus.ERROR:
        return transition(record, DraftStatus.PENDING)
    record.errors = []
    return record


def summarize(records: list[DraftRecord]) -> ValidationSummary:
    """Counts after a validation pass; auto_published is filled in by the caller."""
    open_records = [r for r in records if not r.is_terminal]
    validated = sum(1 for r in open_records if r.status == DraftStatus.VALIDATED)
    errors = sum(1 for r in open_records if r.status == DraftStatus.ERROR)
    return ValidationSummary(
        validated_count=validated,
        error_count=errors,
        all_validated=bool(open_records) and validated == len(open_records),
    )


class ValidationService:
    """Validation passes that need the live category list."""

    def __init__(self):
        self.categories = CategoryService()

    def validate(self, record: DraftRecord) -> DraftRecord:
        return validate_record(record, self.categories.list_active())

    def validate_all(self, records: list[DraftRecord]) -> ValidationSummary:
        """
        Resolve missing categories from hints, then validate every record.

        Returns:
            ValidationSummary (without auto-publish result)
        """
        categories = self.categories.list_active()
        resolved = 0

        for record in records:
            if record.is_terminal:
                continue
            if not record.category_id:
                category_id = resolve_category_hint(record.category_hint, categories)
                if category_id:
                    record.category_id = category_id
                    resolved += 1
            validate_record(record, categories)

        summary = summarize(records)
        logger.info(
            "records_validated",
            total=len(records),
            validated=summary.validated_count,
            errors=summary.error_count,
            categories_resolved=resolved,
        )
        return summary

    def assign_category_to_all(self, records: list[DraftRecord], category_id: str) -> int:
        """
        Assign one category to every non-terminal record.

        Returns:
            Number of records updated

        Raises:
            CategoryNotFoundError: If the category is not active
        """
        if category_id not in {c.id for c in self.categories.list_active()}:
            raise CategoryNotFoundError(category_id)

        updated = 0
        for record in records:
            if record.is_terminal:
                continue
            assign_category(record, category_id)
            updated += 1

        logger.info("category_assigned_to_all", category_id=category_id, updated=updated)
        return updated


_validation_service: Optional[ValidationService] = None

def get_validation_service() -> ValidationService:
    """Get or create ValidationService instance."""
    global _validation_service
    if _validation_service is None:
        _validation_service = ValidationService()
    return _validation_service
