"""
Bind located images to reconstructed product rows.
"""

from typing import Optional, Sequence

import structlog

from models.image_mapping import ImageRowMapping
from parsers.carry_forward import RowCandidate
from parsers.image_locator import SEQUENTIAL_ROW_OFFSET

logger = structlog.get_logger(__name__)

BINDING_ROW_NUMBER = "row_number"
BINDING_SEQUENCE = "sequence"


def bind_images(
    candidates: Sequence[RowCandidate],
    mappings: Sequence[ImageRowMapping],
    mode: str = BINDING_ROW_NUMBER,
) -> list[Optional[ImageRowMapping]]:
    """
    Pick zero or one image for each candidate.

    sequence:   the n-th candidate (0-based) takes the image at row n + 3.
    row_number: a candidate first takes the image anchored on its own row;
                candidates left without one then fall back to the
                sequence rule among images nobody has claimed.

    An image is bound to at most one candidate.

    Returns:
        List aligned with candidates; None where no image applies.
    """
    by_row: dict[int, ImageRowMapping] = {}
    for mapping in mappings:
        by_row.setdefault(mapping.excel_row, mapping)

    bound: list[Optional[ImageRowMapping]] = [None] * len(candidates)
    used_rows: set[int] = set()

    if mode == BINDING_ROW_NUMBER:
        for i, candidate in enumerate(candidates):
            mapping = by_row.get(candidate.row_number)
            if mapping is not None and candidate.row_number not in used_rows:
                bound[i] = mapping
                used_rows.add(candidate.row_number)

    for i in range(len(candidates)):
        if bound[i] is not None:
            continue
        expected_row = i + SEQUENTIAL_ROW_OFFSET
        mapping = by_row.get(expected_row)
        if mapping is not None and expected_row not in used_rows:
            bound[i] = mapping
            used_rows.add(expected_row)

    logger.debug(
        "images_bound",
        mode=mode,
        candidates=len(candidates),
        images=len(mappings),
        bound=len(used_rows),
    )
    return bound
