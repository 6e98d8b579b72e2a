"""
Row classification for supplier price-list worksheets.

The sheet layout is fixed by convention (A name, B brand, C secondary
price, D primary price, E image URL) but the rows are not: suppliers mix
category banners, product rows and price-only continuation rows.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Sequence

from parsers.currency_parser import CURRENCY_GLYPHS

# Column positions (0-based)
COL_NAME = 0
COL_BRAND = 1
COL_SECONDARY_PRICE = 2
COL_PRIMARY_PRICE = 3
COL_IMAGE_URL = 4

_PRICE_LIKE_RE = re.compile(f"[{re.escape(CURRENCY_GLYPHS)}]|\\d")


class RowKind(str, Enum):
    """Label assigned to each worksheet row."""
    CATEGORY_HEADER = "category-header"
    PRODUCT = "product-row"
    CARRY_FORWARD = "carry-forward-candidate"
    SKIP = "skip"
    DISCARD = "discard"


@dataclass(frozen=True)
class RowFeatures:
    """Facts about one row that classification is based on."""
    non_empty_count: int
    first_cell_text: str
    brand_text: str
    has_price_like_token: bool


def clean_cell(value: Any) -> Any:
    """Replace NaN (how pandas reports empty cells) with None."""
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def cell_text(value: Any) -> str:
    """
    Render a cell as trimmed text.

    None/NaN -> "", 1500.0 -> "1500", dates -> ISO format.
    """
    value = clean_cell(value)
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def cell_at(cells: Sequence[Any], index: int) -> Any:
    """Cell value at index, None when the row is shorter."""
    if index < len(cells):
        return clean_cell(cells[index])
    return None


def row_features(cells: Sequence[Any]) -> RowFeatures:
    """Compute the classification inputs for one row."""
    texts = [cell_text(c) for c in cells]
    return RowFeatures(
        non_empty_count=sum(1 for t in texts if t),
        first_cell_text=texts[COL_NAME] if texts else "",
        brand_text=texts[COL_BRAND] if len(texts) > COL_BRAND else "",
        has_price_like_token=any(_PRICE_LIKE_RE.search(t) for t in texts if t),
    )


def classify_row(cells: Sequence[Any]) -> RowKind:
    """
    Label one worksheet row.

    - skip: nothing in it
    - category-header: a single non-empty first cell with no price-like token
    - carry-forward-candidate: empty name, a price-like token, a brand in column B
    - product-row: any other row with a price-like token
    - discard: everything else
    """
    features = row_features(cells)

    if features.non_empty_count == 0:
        return RowKind.SKIP

    if (
        features.first_cell_text
        and features.non_empty_count == 1
        and not features.has_price_like_token
    ):
        return RowKind.CATEGORY_HEADER

    if not features.has_price_like_token:
        return RowKind.DISCARD

    if not features.first_cell_text and features.brand_text:
        return RowKind.CARRY_FORWARD

    return RowKind.PRODUCT
