"""
Draft record schemas and the draft status lifecycle.

A draft record is one candidate product reconstructed from one logical
spreadsheet row. It lives in the in-memory import session until it is
published (becoming a catalog product) or the session expires.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema


class DraftStatus(str, Enum):
    """Draft record lifecycle states."""
    PENDING = "pending"
    VALIDATED = "validated"
    ERROR = "error"
    SUGGESTED = "suggested"
    READY = "ready"
    DUPLICATE = "duplicate"
    PUBLISHED = "published"


TERMINAL_STATUSES = frozenset({DraftStatus.PUBLISHED, DraftStatus.DUPLICATE})

# Allowed moves out of each non-terminal state.
# Re-validating a record in place (X -> X) is always allowed for non-terminal X.
DRAFT_TRANSITIONS: dict[DraftStatus, frozenset[DraftStatus]] = {
    DraftStatus.PENDING: frozenset({
        DraftStatus.VALIDATED, DraftStatus.ERROR, DraftStatus.SUGGESTED,
    }),
    DraftStatus.VALIDATED: frozenset({
        DraftStatus.PUBLISHED, DraftStatus.DUPLICATE, DraftStatus.ERROR,
    }),
    DraftStatus.ERROR: frozenset({
        DraftStatus.VALIDATED, DraftStatus.PENDING, DraftStatus.SUGGESTED,
    }),
    DraftStatus.SUGGESTED: frozenset({
        DraftStatus.VALIDATED, DraftStatus.ERROR,
    }),
    DraftStatus.READY: frozenset({
        DraftStatus.VALIDATED, DraftStatus.ERROR,
    }),
    DraftStatus.PUBLISHED: frozenset(),
    DraftStatus.DUPLICATE: frozenset(),
}


def is_valid_draft_transition(current: DraftStatus, new: DraftStatus) -> bool:
    """
    Check if a draft status transition is valid.

    Rules:
    - PUBLISHED and DUPLICATE are terminal
    - Staying in the same non-terminal state is a re-validation, not a move
    - Everything else must be listed in DRAFT_TRANSITIONS
    """
    if current in TERMINAL_STATUSES:
        return False
    if current == new:
        return True
    return new in DRAFT_TRANSITIONS[current]


# Error messages produced by validation. Category-shaped ones are the
# only messages cleared by a bulk category assignment.
ERROR_NAME_REQUIRED = "Name is required"
ERROR_PRICE_REQUIRED = "Valid price is required"
ERROR_CATEGORY_REQUIRED = "Category is required"
ERROR_CATEGORY_INVALID = "Invalid category ID"
ERROR_UNIT_REQUIRED = "Unit is required"

CATEGORY_ERRORS = frozenset({ERROR_CATEGORY_REQUIRED, ERROR_CATEGORY_INVALID})


class DraftRecord(BaseSchema):
    """
    One candidate product extracted from one logical spreadsheet row.

    status == error iff errors is non-empty, except for the terminal
    states, which carry at most one explanatory entry.
    """

    row_index: int = Field(..., ge=1, description="1-based row in the original sheet")
    name: str = Field("", description="Product name (possibly carried forward)")
    description: str = Field("", description="Brand or description from column B")
    unit: str = Field("each", description="Canonical unit, e.g. '500g', '2 pack'")
    origin: str = Field("", description="Country/region of origin")
    price: Decimal = Field(
        Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Price in the primary currency; 0 means unparseable"
    )
    category_id: Optional[str] = Field(None, description="Resolved category UUID")
    category_hint: Optional[str] = Field(None, description="Label from a category header row")
    image_url: Optional[str] = Field(None, description="Embedded or column-E image URL")
    has_embedded_image: bool = Field(False, description="Image came from the workbook itself")
    status: DraftStatus = Field(DraftStatus.PENDING)
    errors: list[str] = Field(default_factory=list)
    original_data: list[Any] = Field(
        default_factory=list,
        description="Untouched source cells, kept for audit"
    )

    @property
    def is_terminal(self) -> bool:
        """True once published or marked duplicate."""
        return self.status in TERMINAL_STATUSES


class DraftRecordUpdate(BaseSchema):
    """
    Operator correction of a draft record.

    All fields optional - only provided fields are applied, then the
    record is re-validated.
    """

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    unit: Optional[str] = Field(None, max_length=50)
    origin: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    category_id: Optional[str] = None
    image_url: Optional[str] = None
