"""
Locale-ambiguous price parsing.

Suppliers send prices like "₡1.500,00", "$2.99", "1,234.56" or plain
numeric cells. The parser decides which separator is the decimal point,
converts secondary-currency prices into the primary currency and never
raises: failures are appended to the caller's error list.
"""

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Union

import structlog

logger = structlog.get_logger(__name__)

CURRENCY_GLYPHS = "₡$€£¢"
CENTS = Decimal("0.01")

_GLYPH_RE = re.compile(f"[{re.escape(CURRENCY_GLYPHS)}]")
_CODE_RE = re.compile(r"\b(?:usd|crc|eur|us)\b", re.IGNORECASE)
_NUMBER_RUN_RE = re.compile(r"[\d.,]*\d[\d.,]*")


class PriceColumn(str, Enum):
    """Which of the two price columns a value came from."""
    PRIMARY = "primary"      # Column D, already in the catalog currency
    SECONDARY = "secondary"  # Column C, converted with the exchange rate


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def parse_price(
    raw: Any,
    column: PriceColumn,
    exchange_rate: Union[Decimal, float, int, None],
    errors: list[str],
) -> tuple[Decimal, bool]:
    """
    Parse one price cell into a primary-currency decimal.

    Args:
        raw: Cell value (string with glyphs/separators, or a number)
        column: Source column; SECONDARY values are divided by exchange_rate
        exchange_rate: Secondary units per 1 primary unit
        errors: Caller's error list; a message is appended on failure

    Returns:
        (value, ok). value is Decimal("0") when ok is False.
    """
    if is_blank(raw):
        errors.append("Price is required")
        return Decimal("0"), False

    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            errors.append(f"Invalid price format: '{raw}'")
            return Decimal("0"), False
    else:
        value = _parse_price_text(str(raw))
        if value is None:
            errors.append(f"Invalid price format: '{raw}'")
            return Decimal("0"), False

    if not value.is_finite() or value <= 0:
        errors.append("Price must be greater than zero")
        return Decimal("0"), False

    if column == PriceColumn.SECONDARY:
        rate = _to_decimal(exchange_rate)
        if rate is None or rate <= 0:
            errors.append("Exchange rate must be greater than zero")
            return Decimal("0"), False
        converted = (value / rate).quantize(CENTS, rounding=ROUND_HALF_UP)
        if converted <= 0:
            errors.append(f"Converted price rounds to zero at rate {rate}")
            return Decimal("0"), False
        return converted, True

    value = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    if value <= 0:
        errors.append("Price rounds to zero at cent precision")
        return Decimal("0"), False
    return value, True


def normalize_separators(run: str) -> str:
    """
    Rewrite a digit/separator run into a plain "1234.56" string.

    Priority:
      both '.' and ',' -> the later one is decimal, the earlier grouping
      only ','         -> decimal iff exactly two digits follow the last one
      only '.' (many)  -> all but the last are grouping
    """
    run = run.strip(".,")
    has_dot = "." in run
    has_comma = "," in run

    if has_dot and has_comma:
        if run.rfind(",") > run.rfind("."):
            decimal_sep, group_sep = ",", "."
        else:
            decimal_sep, group_sep = ".", ","
        return _keep_last(run.replace(group_sep, ""), decimal_sep)

    if has_comma:
        tail = run.rpartition(",")[2]
        if len(tail) == 2:
            return _keep_last(run, ",")
        return run.replace(",", "")

    if has_dot and run.count(".") > 1:
        return _keep_last(run, ".")

    return run


def _parse_price_text(text: str):
    """Strip glyphs, pick the longest number run and convert it."""
    cleaned = _GLYPH_RE.sub("", text)
    cleaned = _CODE_RE.sub("", cleaned)
    cleaned = re.sub(r"\s+", "", cleaned)

    runs = _NUMBER_RUN_RE.findall(cleaned)
    if not runs:
        return None

    longest = max(runs, key=len)
    try:
        value = Decimal(normalize_separators(longest))
    except InvalidOperation:
        logger.debug("price_run_not_numeric", text=text, run=longest)
        return None

    start = cleaned.find(longest)
    if start > 0 and cleaned[start - 1] == "-":
        value = -value
    return value


def _keep_last(run: str, sep: str) -> str:
    """Treat every `sep` but the last as grouping; the last becomes '.'."""
    head, _, tail = run.rpartition(sep)
    return head.replace(sep, "") + "." + tail


def _to_decimal(value) -> Union[Decimal, None]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None
