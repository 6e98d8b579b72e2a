"""
Read the first worksheet of an uploaded workbook into a raw grid.
"""

from io import BytesIO
from typing import Any

import pandas as pd
import structlog

from exceptions import WorkbookReadError

logger = structlog.get_logger(__name__)


def read_grid(file_bytes: bytes, filename: str = "") -> list[list[Any]]:
    """
    Load the first sheet as a list of rows of raw cell values.

    No header inference: grid[0] is worksheet row 1. Empty cells are None.

    Args:
        file_bytes: Workbook content
        filename: Used for logging/error details only

    Returns:
        2-D list of cell values

    Raises:
        WorkbookReadError: If the bytes are not a readable workbook
    """
    if not file_bytes:
        raise WorkbookReadError("Uploaded file is empty", {"filename": filename})

    try:
        excel = pd.ExcelFile(BytesIO(file_bytes), engine="openpyxl")
        if not excel.sheet_names:
            raise WorkbookReadError("Workbook has no worksheets", {"filename": filename})
        df = excel.parse(excel.sheet_names[0], header=None, dtype=object)
    except WorkbookReadError:
        raise
    except Exception as e:
        logger.error("workbook_read_failed", filename=filename, error=str(e))
        raise WorkbookReadError(
            f"Could not read workbook: {e}",
            {"filename": filename}
        )

    df = df.astype(object).where(pd.notna(df), None)
    grid = df.values.tolist()

    logger.info(
        "workbook_read",
        filename=filename,
        sheet=excel.sheet_names[0],
        rows=len(grid),
        columns=len(df.columns),
    )
    return grid
