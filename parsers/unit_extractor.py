"""
Unit inference from free-text product names.

"Leche Dos Pinos 1L" -> "1l", "Arroz Tio Pelon 25 lbs" -> "25lb",
"Coca Cola 6 pk" -> "6 pack", "Huevos" -> "each".
"""

import re

DEFAULT_UNIT = "each"

# Abbreviation -> canonical unit. Longer spellings first in the regex.
UNIT_ALIASES = {
    "kilograms": "kg", "kilogram": "kg", "kgs": "kg", "kg": "kg", "kilo": "kg", "kilos": "kg",
    "grams": "g", "gram": "g", "grs": "g", "gr": "g", "g": "g",
    "milliliters": "ml", "millilitres": "ml", "ml": "ml",
    "liters": "l", "litres": "l", "liter": "l", "litre": "l",
    "ltr": "l", "lts": "l", "lt": "l", "l": "l",
    "ounces": "oz", "ounce": "oz", "oz": "oz",
    "pounds": "lb", "pound": "lb", "lbs": "lb", "lb": "lb",
    "packs": "pack", "pack": "pack", "pkt": "pack", "pk": "pack",
    "bottles": "bottle", "bottle": "bottle", "btl": "bottle",
    "units": "unit", "unit": "unit",
    "unid": DEFAULT_UNIT, "un": DEFAULT_UNIT,
}

# Mass/volume units attach directly to the amount; packaging units get a space.
COMPACT_UNITS = frozenset({"g", "kg", "ml", "l", "oz", "lb"})

_UNIT_PATTERN = "|".join(sorted(UNIT_ALIASES, key=len, reverse=True))
_QUANTITY_RE = re.compile(
    rf"(?<![\w.,])(\d+(?:[.,]\d+)?)\s*({_UNIT_PATTERN})\b",
    re.IGNORECASE,
)


def extract_unit(name: str) -> str:
    """
    Find the first quantity+unit token in a product name.

    Args:
        name: Product name as printed in the sheet

    Returns:
        Canonical unit string, or "each" when nothing matches
    """
    if not name:
        return DEFAULT_UNIT

    match = _QUANTITY_RE.search(name)
    if not match:
        return DEFAULT_UNIT

    amount = match.group(1).replace(",", ".")
    unit = UNIT_ALIASES[match.group(2).lower()]

    if unit == DEFAULT_UNIT:
        return DEFAULT_UNIT
    if unit in COMPACT_UNITS:
        return f"{amount}{unit}"
    return f"{amount} {unit}"
