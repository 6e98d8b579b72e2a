"""
Assemble DraftRecords from reconstructed rows.
"""

from decimal import Decimal
from typing import Optional, Sequence, Union

import structlog

from models.draft import DraftRecord, DraftStatus, ERROR_NAME_REQUIRED
from models.image_mapping import ImageRowMapping
from parsers.carry_forward import RowCandidate
from parsers.currency_parser import PriceColumn, is_blank, parse_price
from parsers.unit_extractor import extract_unit

logger = structlog.get_logger(__name__)


def build_draft(
    candidate: RowCandidate,
    image: Optional[ImageRowMapping],
    exchange_rate: Union[Decimal, float, int],
) -> DraftRecord:
    """
    Build one draft from one candidate row.

    Column C (secondary currency) wins over column D when both are filled.
    Column E is used only when no embedded image was bound.
    """
    errors: list[str] = []

    if not candidate.name:
        errors.append(ERROR_NAME_REQUIRED)

    if not is_blank(candidate.secondary_price):
        price, _ = parse_price(
            candidate.secondary_price, PriceColumn.SECONDARY, exchange_rate, errors
        )
    else:
        price, _ = parse_price(
            candidate.primary_price, PriceColumn.PRIMARY, exchange_rate, errors
        )

    if image is not None:
        image_url, has_embedded = image.image_url, True
    else:
        image_url, has_embedded = candidate.image_url or None, False

    return DraftRecord(
        row_index=candidate.row_number,
        name=candidate.name,
        description=candidate.brand,
        unit=extract_unit(candidate.name),
        price=price,
        category_hint=candidate.category_hint or None,
        image_url=image_url,
        has_embedded_image=has_embedded,
        status=DraftStatus.ERROR if errors else DraftStatus.PENDING,
        errors=errors,
        original_data=list(candidate.cells),
    )


def build_drafts(
    candidates: Sequence[RowCandidate],
    images: Sequence[Optional[ImageRowMapping]],
    exchange_rate: Union[Decimal, float, int],
) -> list[DraftRecord]:
    """Build drafts for all candidates; images is aligned with candidates."""
    records = [
        build_draft(candidate, image, exchange_rate)
        for candidate, image in zip(candidates, images)
    ]
    logger.info(
        "drafts_built",
        total=len(records),
        errors=sum(1 for r in records if r.status == DraftStatus.ERROR),
        with_images=sum(1 for r in records if r.image_url),
    )
    return records
