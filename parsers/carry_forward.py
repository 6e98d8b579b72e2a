"""
Carry-forward resolution over classified rows.

Suppliers often print a product name once and follow it with price-only
variant rows, and group products under a one-cell category banner. Both
are resolved by folding an immutable accumulator over the rows in sheet
order; each upload starts from a fresh accumulator.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence

import structlog

from parsers.row_classifier import (
    COL_BRAND,
    COL_IMAGE_URL,
    COL_PRIMARY_PRICE,
    COL_SECONDARY_PRICE,
    RowKind,
    cell_at,
    cell_text,
    classify_row,
    clean_cell,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RowAccumulator:
    """State threaded through the fold."""
    last_name: str = ""
    category_hint: str = ""


@dataclass(frozen=True)
class RowCandidate:
    """A row emitted as a product candidate, with inherited fields filled in."""
    row_number: int
    kind: RowKind
    name: str
    brand: str
    secondary_price: Any
    primary_price: Any
    image_url: str
    category_hint: str
    carried_name: bool
    cells: tuple


def fold_row(
    acc: RowAccumulator,
    row_number: int,
    cells: Sequence[Any],
) -> tuple[RowAccumulator, Optional[RowCandidate]]:
    """
    Process one row.

    Args:
        acc: State after the previous row
        row_number: 1-based worksheet row
        cells: Raw cell values

    Returns:
        (next accumulator, emitted candidate or None)
    """
    kind = classify_row(cells)
    first = cell_text(cell_at(cells, 0))

    if kind == RowKind.SKIP:
        return acc, None

    if kind == RowKind.CATEGORY_HEADER:
        return replace(acc, category_hint=first), None

    if kind == RowKind.DISCARD:
        # A name printed on its own row still seeds the price rows below it
        if first:
            return replace(acc, last_name=first), None
        return acc, None

    carried = False
    if first:
        name = first
        acc = replace(acc, last_name=first)
    else:
        name = acc.last_name
        carried = bool(name)

    candidate = RowCandidate(
        row_number=row_number,
        kind=kind,
        name=name,
        brand=cell_text(cell_at(cells, COL_BRAND)),
        secondary_price=cell_at(cells, COL_SECONDARY_PRICE),
        primary_price=cell_at(cells, COL_PRIMARY_PRICE),
        image_url=cell_text(cell_at(cells, COL_IMAGE_URL)),
        category_hint=acc.category_hint,
        carried_name=carried,
        cells=tuple(clean_cell(c) for c in cells),
    )
    return acc, candidate


def reconstruct_rows(grid: Sequence[Sequence[Any]]) -> list[RowCandidate]:
    """
    Run the fold over a whole worksheet grid.

    Row 0 is the header and is ignored; grid index i is worksheet row i + 1.
    """
    acc = RowAccumulator()
    candidates: list[RowCandidate] = []

    for index, cells in enumerate(grid):
        if index == 0:
            continue
        acc, candidate = fold_row(acc, index + 1, cells)
        if candidate is not None:
            candidates.append(candidate)

    logger.info(
        "rows_reconstructed",
        total_rows=max(len(grid) - 1, 0),
        candidates=len(candidates),
        carried=sum(1 for c in candidates if c.carried_name),
    )
    return candidates
