"""
Duplicate detection against the live catalog.

Exact match: same name ignoring case (score 100).
Similar match: best in-category product with edit-distance similarity
above SIMILARITY_THRESHOLD.
"""

from typing import Optional
import structlog
from rapidfuzz.distance import Levenshtein

from models.draft import DraftRecord, DraftStatus
from models.duplicate import DuplicateMatch, DuplicateType
from models.product import ProductResponse
from services.product_service import ProductService
from utils.text_utils import normalize_name

logger = structlog.get_logger(__name__)

SIMILARITY_THRESHOLD = 80.0

CHECKABLE_STATUSES = frozenset({DraftStatus.VALIDATED, DraftStatus.SUGGESTED})


def name_similarity(a: str, b: str) -> float:
    """
    Edit-distance similarity in percent, ignoring case.

    (max_len - levenshtein) / max_len * 100
    """
    left, right = normalize_name(a), normalize_name(b)
    max_len = max(len(left), len(right))
    if max_len == 0:
        return 0.0
    distance = Levenshtein.distance(left, right)
    return (max_len - distance) / max_len * 100


def best_match(
    name: str,
    candidates: list[ProductResponse],
) -> Optional[tuple[ProductResponse, DuplicateType, float]]:
    """
    Compare one name to the products of its category.

    Returns:
        (product, type, score) or None when nothing is close enough
    """
    target = normalize_name(name)
    for product in candidates:
        if normalize_name(product.name) == target:
            return product, DuplicateType.EXACT, 100.0

    best: Optional[tuple[ProductResponse, float]] = None
    for product in candidates:
        score = name_similarity(name, product.name)
        if best is None or score > best[1]:
            best = (product, score)

    if best is not None and best[1] > SIMILARITY_THRESHOLD:
        return best[0], DuplicateType.SIMILAR, round(best[1], 2)
    return None


class DuplicateService:
    """Checks draft records against existing active products."""

    def __init__(self):
        self.products = ProductService()

    def match_record(self, record: DraftRecord) -> Optional[DuplicateMatch]:
        """Match one record; None if it is not checkable or has no match."""
        if not record.name or not record.category_id:
            return None

        existing = self.products.list_active_in_category(record.category_id)
        found = best_match(record.name, existing)
        if found is None:
            return None

        product, duplicate_type, score = found
        return DuplicateMatch(
            row_index=record.row_index,
            name=record.name,
            category_id=record.category_id,
            existing_product=product,
            duplicate_type=duplicate_type,
            similarity_score=score,
        )

    def detect(self, records: list[DraftRecord]) -> list[DuplicateMatch]:
        """
        Check validated/suggested records one at a time, in row order.

        Returns:
            One DuplicateMatch per flagged record
        """
        matches: list[DuplicateMatch] = []
        checked = 0

        for record in records:
            if record.status not in CHECKABLE_STATUSES:
                continue
            checked += 1
            match = self.match_record(record)
            if match is not None:
                matches.append(match)

        logger.info(
            "duplicates_detected",
            checked=checked,
            exact=sum(1 for m in matches if m.duplicate_type == DuplicateType.EXACT),
            similar=sum(1 for m in matches if m.duplicate_type == DuplicateType.SIMILAR),
        )
        return matches


_duplicate_service: Optional[DuplicateService] = None

def get_duplicate_service() -> DuplicateService:
    """Get or create DuplicateService instance."""
    global _duplicate_service
    if _duplicate_service is None:
        _duplicate_service = DuplicateService()
    return _duplicate_service
