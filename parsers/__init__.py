"""
Spreadsheet parsing for bulk catalog import.

Pure functions over the uploaded bytes; no catalog or storage access
other than the uploader callable handed to the image locator.
"""

from parsers.currency_parser import (
    PriceColumn,
    parse_price,
    normalize_separators,
)
from parsers.unit_extractor import (
    DEFAULT_UNIT,
    extract_unit,
)
from parsers.row_classifier import (
    RowKind,
    classify_row,
    cell_text,
)
from parsers.carry_forward import (
    RowAccumulator,
    RowCandidate,
    fold_row,
    reconstruct_rows,
)
from parsers.workbook_reader import read_grid
from parsers.image_locator import (
    ImageEntry,
    ImageSource,
    DrawingXmlImageSource,
    SequentialImageSource,
    locate_images,
)
from parsers.image_binder import (
    BINDING_ROW_NUMBER,
    BINDING_SEQUENCE,
    bind_images,
)
from parsers.draft_builder import (
    build_draft,
    build_drafts,
)

__all__ = [
    "PriceColumn",
    "parse_price",
    "normalize_separators",
    "DEFAULT_UNIT",
    "extract_unit",
    "RowKind",
    "classify_row",
    "cell_text",
    "RowAccumulator",
    "RowCandidate",
    "fold_row",
    "reconstruct_rows",
    "read_grid",
    "ImageEntry",
    "ImageSource",
    "DrawingXmlImageSource",
    "SequentialImageSource",
    "locate_images",
    "BINDING_ROW_NUMBER",
    "BINDING_SEQUENCE",
    "bind_images",
    "build_draft",
    "build_drafts",
]
