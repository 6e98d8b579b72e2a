"""
Publish reconciler - commits validated drafts to the catalog.

Records are processed strictly one after another in row order. A
failure on one record is recorded on that record and the batch goes on.
"""

from typing import Optional
import structlog

from models.draft import DraftRecord, DraftStatus
from models.duplicate import (
    DuplicateResolution,
    PublishResolution,
    RenameResolution,
    ResolutionOutcome,
    SkipResolution,
    UpdateResolution,
)
from models.import_job import PublishResult
from models.product import ProductCreate, ProductResponse, ProductUpdate
from services.duplicate_service import CHECKABLE_STATUSES, DuplicateService
from services.product_service import ProductService
from services.validation_service import ValidationService, transition
from exceptions import InvalidResolutionError

logger = structlog.get_logger(__name__)


def duplicate_message(product_id: str) -> str:
    return f"Duplicate of existing product {product_id}"


def to_product_create(record: DraftRecord, name: Optional[str] = None) -> ProductCreate:
    """Catalog insert payload for a draft."""
    return ProductCreate(
        name=name or record.name,
        description=record.description,
        price=record.price,
        category_id=record.category_id,
        unit=record.unit,
        origin=record.origin,
        image_url=record.image_url,
    )


def to_product_update(record: DraftRecord) -> ProductUpdate:
    """Overwrite payload for an existing product."""
    return ProductUpdate(
        name=record.name,
        description=record.description,
        price=record.price,
        unit=record.unit,
        origin=record.origin or None,
        image_url=record.image_url,
    )


class PublishService:
    """Insert or reconcile drafts against the catalog."""

    def __init__(self):
        self.products = ProductService()
        self.duplicates = DuplicateService()
        self.validation = ValidationService()

    # ===================
    # PUBLISH
    # ===================

    def publish(self, records: list[DraftRecord]) -> PublishResult:
        """
        Publish every validated record.

        Same-name active product -> duplicate (skipped); insert failure ->
        error with the backend message; otherwise published.
        """
        result = PublishResult()

        for record in records:
            if record.status != DraftStatus.VALIDATED:
                continue

            try:
                existing = self.products.find_active_by_name(record.name)
                if existing is not None:
                    transition(record, DraftStatus.DUPLICATE, [duplicate_message(existing.id)])
                    result.skipped_count += 1
                    logger.info(
                        "record_skipped_duplicate",
                        row_index=record.row_index,
                        existing_product_id=existing.id,
                    )
                    continue

                product = self.products.create(to_product_create(record))
            except Exception as e:
                transition(record, DraftStatus.ERROR, [_backend_message(e)])
                result.error_count += 1
                logger.warning("record_publish_failed", row_index=record.row_index, error=str(e))
                continue

            transition(record, DraftStatus.PUBLISHED)
            result.published_count += 1
            logger.info("record_published", row_index=record.row_index, product_id=product.id)

        logger.info(
            "publish_completed",
            published=result.published_count,
            skipped=result.skipped_count,
            errors=result.error_count,
        )
        return result

    # ===================
    # DUPLICATE RESOLUTION
    # ===================

    def resolve_duplicates(
        self,
        records: list[DraftRecord],
        resolutions: list[DuplicateResolution],
    ) -> list[ResolutionOutcome]:
        """
        Apply operator decisions for flagged duplicates.

        Every resolution is checked before any write happens.

        Raises:
            InvalidResolutionError: Unknown row, record not resolvable,
                or update requested with no existing match
        """
        by_row = {r.row_index: r for r in records}
        targets: dict[int, Optional[ProductResponse]] = {}

        for resolution in resolutions:
            record = by_row.get(resolution.row_index)
            if record is None:
                raise InvalidResolutionError(resolution.row_index, "No record at this row")
            if record.status not in CHECKABLE_STATUSES:
                raise InvalidResolutionError(
                    resolution.row_index,
                    f"Record in status '{record.status.value}' cannot be resolved",
                )
            if isinstance(resolution, UpdateResolution):
                match = self.duplicates.match_record(record)
                if match is None:
                    raise InvalidResolutionError(
                        resolution.row_index, "No existing product to update"
                    )
                targets[resolution.row_index] = match.existing_product

        outcomes = []
        for resolution in resolutions:
            record = by_row[resolution.row_index]
            outcomes.append(self._apply(record, resolution, targets.get(record.row_index)))

        logger.info(
            "duplicates_resolved",
            total=len(outcomes),
            published=sum(1 for o in outcomes if o.status == DraftStatus.PUBLISHED.value),
            errors=sum(1 for o in outcomes if o.status == DraftStatus.ERROR.value),
        )
        return outcomes

    def _apply(
        self,
        record: DraftRecord,
        resolution: DuplicateResolution,
        target: Optional[ProductResponse],
    ) -> ResolutionOutcome:
        if isinstance(resolution, RenameResolution):
            record.name = resolution.new_name

        # Suggestions must pass validation before anything is written
        if record.status == DraftStatus.SUGGESTED:
            self.validation.validate(record)
            if record.status != DraftStatus.VALIDATED:
                return self._outcome(record, resolution)

        product_id = None
        try:
            if isinstance(resolution, SkipResolution):
                match = self.duplicates.match_record(record)
                message = duplicate_message(match.existing_product.id) if match else "Skipped as duplicate"
                transition(record, DraftStatus.DUPLICATE, [message])
                if match:
                    product_id = match.existing_product.id
            elif isinstance(resolution, UpdateResolution):
                product = self.products.update(target.id, to_product_update(record))
                product_id = product.id
                transition(record, DraftStatus.PUBLISHED)
            elif isinstance(resolution, (PublishResolution, RenameResolution)):
                product = self.products.create(to_product_create(record))
                product_id = product.id
                transition(record, DraftStatus.PUBLISHED)
        except Exception as e:
            transition(record, DraftStatus.ERROR, [_backend_message(e)])
            logger.warning(
                "resolution_failed",
                row_index=record.row_index,
                action=resolution.action,
                error=str(e),
            )

        return self._outcome(record, resolution, product_id)

    @staticmethod
    def _outcome(
        record: DraftRecord,
        resolution: DuplicateResolution,
        product_id: Optional[str] = None,
    ) -> ResolutionOutcome:
        return ResolutionOutcome(
            row_index=record.row_index,
            action=resolution.action,
            status=record.status.value,
            product_id=product_id,
            error=record.errors[0] if record.status == DraftStatus.ERROR and record.errors else None,
        )


def _backend_message(e: Exception) -> str:
    message = getattr(e, "message", None) or str(e)
    return message or type(e).__name__


_publish_service: Optional[PublishService] = None

def get_publish_service() -> PublishService:
    """Get or create PublishService instance."""
    global _publish_service
    if _publish_service is None:
        _publish_service = PublishService()
    return _publish_service
