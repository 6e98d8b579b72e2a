"""
Embedded image → sheet row mapping schemas.

Mappings exist only for the duration of one import session; they are
consumed into DraftRecord.image_url and never persisted on their own.
"""

from enum import Enum

from pydantic import Field

from models.base import BaseSchema


class MappingMethod(str, Enum):
    """How an image's row was determined."""
    DRAWING_XML = "drawing-xml"
    SEQUENTIAL = "sequential"
    NONE = "none"


class ImageRowMapping(BaseSchema):
    """One embedded image bound to a worksheet row."""

    excel_row: int = Field(..., ge=1, description="1-based worksheet row")
    image_url: str = Field(..., description="Public URL in object storage")
    file_name: str = Field(..., description="Entry name inside the workbook, e.g. image3.png")
    mapping_method: MappingMethod


class ImageLocatorSummary(BaseSchema):
    """Debug info returned alongside the mappings."""

    total_images: int = Field(0, ge=0, description="Raster entries found in the workbook")
    uploaded_images: int = Field(0, ge=0, description="Entries uploaded successfully")
    mapping_method: MappingMethod = Field(
        MappingMethod.NONE,
        description="Dominant method among the produced mappings"
    )
