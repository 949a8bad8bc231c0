"""
Numeric converter — turns text cells into numbers where they look numeric.

Two layers:
  1. Generic coercion (coerce_cell): used when a table is read, before any
     header is mapped.  Anything that looks numeric after stripping currency
     symbols, percent signs and thousands separators becomes int/float.
  2. Field-typed coercion (coerce_for_field / coerce_record): once headers are
     mapped, the canonical field's declared type in FIELD_TYPES decides.  Text
     fields keep their original string even when it looks numeric, so
     product codes like "00731" survive intact.

Public API:
    coerce_cell(value) → str | int | float
    coerce_for_field(value, field) → str | int | float | bool | None
    coerce_record(record) → CoercionResult
    round_half_up(value, precision) → float
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from config.schema import FIELD_TYPES
from config.settings import ROUNDING_PRECISION

logger = logging.getLogger(__name__)

# Currency symbols and percent signs stripped before numeric parsing
_SYMBOL_PATTERN = re.compile(r"[$£€%]")
_THOUSANDS_SEP_PATTERN = re.compile(r"(?<=\d)[,\s](?=\d{3}(?!\d))")
_NUMERIC_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

# Words that mean "unknown": blank, not an error
_UNKNOWN_STRINGS: set[str] = {"unknown", "n/a", "na", "-", "—", "tba", "poa"}

_TRUE_STRINGS: set[str] = {
    "yes", "y", "true", "t", "1", "in stock", "instock", "available", "x", "✓",
}
_FALSE_STRINGS: set[str] = {
    "no", "n", "false", "f", "0", "out of stock", "oos", "unavailable",
    "sold out", "backorder", "back order",
}


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class CoercionResult:
    """Output of coerce_record()."""

    record: dict[str, object] = field(default_factory=dict)
    errors: list[dict] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def coerce_cell(value: object) -> str | int | float:
    """
    Generic "looks numeric" coercion applied to every ingested cell.

    Trims whitespace; strips $ £ € % and thousands separators; returns an int
    for integral text, a float for decimal text, otherwise the trimmed string.
    Empty stays empty.  Numbers from spreadsheets pass through unchanged.

    Args:
        value: Raw cell value (str, int, float or None).

    Returns:
        int, float, or trimmed str.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, (int, float)):
        return value

    text = str(value).strip()
    if text == "":
        return ""

    number = parse_number(text)
    return text if number is None else number


def parse_number(text: str) -> int | float | None:
    """
    Parse *text* as a number after removing currency noise.

    Returns None when the cleaned text is not a plain decimal number.
    """
    cleaned = _clean_numeric_string(str(text))
    if cleaned == "" or not _NUMERIC_PATTERN.match(cleaned):
        return None
    if _INTEGER_PATTERN.match(cleaned):
        return int(cleaned)
    return float(cleaned)


def coerce_for_field(value: object, field_name: str) -> str | int | float | bool | None:
    """
    Coerce *value* to the declared type of a canonical field.

    Text fields return the trimmed string form (numbers are rendered without
    a trailing ".0").  Numeric fields return int/float or None when blank or
    unparseable.  Boolean fields return True/False or None when unknown.

    Args:
        value: Raw or generically-coerced cell value.
        field_name: Canonical field name from FIELD_TYPES.

    Returns:
        The coerced value, or None for blank/unknown input.
    """
    target_type = FIELD_TYPES.get(field_name, "text")

    if value is None:
        return None

    if target_type == "text":
        return _as_text(value)

    if target_type == "boolean":
        return parse_boolean(value)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number: int | float | None = value
    else:
        text = str(value).strip()
        if text == "" or text.lower() in _UNKNOWN_STRINGS:
            return None
        number = parse_number(text)
        if number is None:
            return None

    if target_type == "integer":
        return int(round_half_up(number, 0))
    return float(number)


def coerce_record(record: dict[str, object]) -> CoercionResult:
    """
    Apply field-typed coercion to every field of a canonical record.

    Values that are non-blank but cannot be coerced to a numeric or boolean
    field type are reported as errors and set to None.

    Args:
        record: canonical field → raw value.

    Returns:
        CoercionResult with the coerced record and per-field errors.
    """
    result = CoercionResult()

    for field_name, value in record.items():
        coerced = coerce_for_field(value, field_name)
        result.record[field_name] = coerced

        if coerced is None and not _is_blank(value):
            result.errors.append({
                "field": field_name,
                "original": str(value),
                "error": f"Cannot convert '{value}' to {FIELD_TYPES.get(field_name, 'text')}",
            })

    return result


def parse_boolean(value: object) -> bool | None:
    """Interpret yes/no, true/false, in stock/out of stock and counts."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value > 0

    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False

    number = parse_number(text)
    if number is not None:
        return number > 0

    if text:
        logger.debug(f"Unrecognised stock flag '{value}' — left blank")
    return None


def round_half_up(value: float, precision: int = ROUNDING_PRECISION) -> float:
    """Round to *precision* decimals, halves away from zero."""
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _clean_numeric_string(raw_str: str) -> str:
    """
    Strip non-numeric noise from a string before conversion.

    Removes currency symbols ($£€), "%", thousands separators and
    surrounding whitespace.
    """
    cleaned = _SYMBOL_PATTERN.sub("", raw_str)
    cleaned = _THOUSANDS_SEP_PATTERN.sub("", cleaned.strip())
    return cleaned.strip()


def _as_text(value: object) -> str | None:
    if isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value).strip()
    return text if text != "" else None


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    text = str(value).strip()
    return text == "" or text.lower() in _UNKNOWN_STRINGS
