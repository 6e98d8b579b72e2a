"""
Catalog product and category schemas.

The catalog itself is owned by the storefront; the import pipeline only
reads categories/products and inserts or updates product rows.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from models.base import BaseSchema


class CategoryResponse(BaseSchema):
    """Active catalog category."""

    id: str = Field(..., description="Category UUID")
    name: str = Field(..., description="Display name, e.g. 'Dairy'")
    icon: Optional[str] = Field(None, description="Emoji or icon name")


class ProductCreate(BaseSchema):
    """
    Insert a catalog product.

    Products created by a bulk import are flagged is_test_product so they
    can be reviewed before going live.
    """

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", description="Brand or free-text description")
    price: Decimal = Field(..., gt=0, decimal_places=2)
    category_id: str = Field(..., min_length=1)
    unit: str = Field("each", min_length=1, max_length=50)
    origin: Optional[str] = None
    image_url: Optional[str] = None
    stock_quantity: int = Field(0, ge=0)
    is_active: bool = True
    is_test_product: bool = True

    @field_validator("origin", "image_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Empty strings are stored as NULL."""
        if v is None:
            return v
        return v.strip() or None


class ProductUpdate(BaseSchema):
    """
    Update an existing catalog product.

    All fields optional - only provided fields are updated.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    origin: Optional[str] = None
    image_url: Optional[str] = None


class ProductResponse(BaseSchema):
    """Catalog product row."""

    id: str = Field(..., description="Product UUID")
    name: str
    description: Optional[str] = None
    price: Decimal
    category_id: Optional[str] = None
    unit: Optional[str] = None
    origin: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True
    is_test_product: bool = False
