"""
Text utilities for product names and category labels.

Used for duplicate matching and category-hint resolution.
"""

from typing import Optional


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a name for case-insensitive comparison.

    - "  Organic Bananas " -> "organic bananas"
    - None -> ""
    """
    if not name:
        return ""
    return name.strip().lower()


def clean_text(value: Optional[str], max_length: int = 255) -> Optional[str]:
    """
    Clean free text for storage.

    - Strips whitespace
    - Truncates to max length
    - Returns None for empty/whitespace-only strings
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    return value[:max_length]


def names_match(a: Optional[str], b: Optional[str]) -> bool:
    """True if both names are non-empty and equal ignoring case/edges."""
    left = normalize_name(a)
    return bool(left) and left == normalize_name(b)


def contains_either_way(a: Optional[str], b: Optional[str]) -> bool:
    """
    True if one normalized string contains the other.

    "Dairy" vs "Dairy & Eggs" -> True
    """
    left, right = normalize_name(a), normalize_name(b)
    if not left or not right:
        return False
    return left in right or right in left
