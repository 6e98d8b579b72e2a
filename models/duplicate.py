"""
Duplicate detection results and resolution actions.

A resolution is a closed set of variants; only `rename` carries a payload.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from models.base import BaseSchema
from models.product import ProductResponse


class DuplicateType(str, Enum):
    """How closely an incoming record matches an existing product."""
    EXACT = "exact"
    SIMILAR = "similar"


class DuplicateMatch(BaseSchema):
    """One draft record that collides with an existing catalog product."""

    row_index: int = Field(..., ge=1)
    name: str
    category_id: str
    existing_product: ProductResponse
    duplicate_type: DuplicateType
    similarity_score: float = Field(..., ge=0, le=100)


class SkipResolution(BaseSchema):
    """Do not publish; mark the record as duplicate. The default."""
    action: Literal["skip"] = "skip"
    row_index: int = Field(..., ge=1)


class PublishResolution(BaseSchema):
    """Insert the record despite the match."""
    action: Literal["publish"] = "publish"
    row_index: int = Field(..., ge=1)


class UpdateResolution(BaseSchema):
    """Overwrite the matched product with the record's fields."""
    action: Literal["update"] = "update"
    row_index: int = Field(..., ge=1)


class RenameResolution(BaseSchema):
    """Insert the record under a new name."""
    action: Literal["rename"] = "rename"
    row_index: int = Field(..., ge=1)
    new_name: str = Field(..., min_length=1, max_length=255)


DuplicateResolution = Annotated[
    Union[SkipResolution, PublishResolution, UpdateResolution, RenameResolution],
    Field(discriminator="action"),
]


class ResolveDuplicatesRequest(BaseSchema):
    """Operator decisions for the matches returned by duplicate detection."""
    resolutions: list[DuplicateResolution]


class ResolutionOutcome(BaseSchema):
    """What happened to one record when its resolution was applied."""
    row_index: int
    action: str
    status: str
    product_id: Optional[str] = None
    error: Optional[str] = None
