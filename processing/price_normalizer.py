"""
Price normalizer — converts a raw supplier price into a comparable
price per unit in the base currency.

Steps for one price:
  1. Convert raw_price from raw_currency to base_currency through an injected
     rate lookup.  A missing rate (or a failing lookup) leaves the price in
     the original currency rather than failing.
  2. Divide by the pack quantity to get a price per pack unit.
  3. When the pack unit and target unit share a standard unit in
     UNIT_CONVERSIONS, rescale through it; otherwise stay per pack unit.
  4. Round half-up to the configured precision (default 2).

Nothing here raises for unknown units or currencies.  Only a raw price that
is not a finite number is rejected.

Public API:
    normalize_price(raw_price, raw_currency, ...) → NormalizedPrice
    try_normalize_price(...) → NormalizedPrice | None
    resolve_unit(unit) → str | None
    default_unit_for_category(category) → str
    format_price(price, currency) → str
    format_unit(unit) → str
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable

from config.settings import BASE_CURRENCY, ROUNDING_PRECISION
from config.units import (
    CATEGORY_DEFAULT_UNITS,
    DEFAULT_UNIT,
    UNIT_ALIASES,
    UNIT_CONVERSIONS,
    UNIT_LABELS,
)
from processing.numeric_converter import parse_number, round_half_up

logger = logging.getLogger(__name__)

RateLookup = Callable[[str, str], float | None]

# Display symbols for format_price(); other currencies show their code.
CURRENCY_SYMBOLS: dict[str, str] = {
    "AUD": "$",
    "USD": "US$",
    "EUR": "€",
    "GBP": "£",
    "NZD": "NZ$",
}


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NormalizedPrice:
    """Result of normalizing one raw price."""

    price: float
    unit: str
    currency: str
    """Currency the price is actually expressed in (raw currency when no rate)."""

    converted_currency: bool = False
    converted_unit: bool = False


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def normalize_price(
    raw_price: float | int | str,
    raw_currency: str | None,
    pack_qty: float | int | str | None = 1,
    pack_unit: str | None = DEFAULT_UNIT,
    target_unit: str | None = None,
    base_currency: str = BASE_CURRENCY,
    rate_lookup: RateLookup | None = None,
    precision: int = ROUNDING_PRECISION,
) -> NormalizedPrice:
    """
    Normalize a raw price to a price per target unit in the base currency.

    Args:
        raw_price: Price as quoted by the supplier (number or numeric text).
        raw_currency: ISO code the price is quoted in; blank means base.
        pack_qty: How many pack units the price buys.  Non-positive or
                  non-numeric values are treated as 1.
        pack_unit: Unit of the pack (e.g. "m", "kg", "pcs").
        target_unit: Unit to express the result in.  None keeps pack_unit.
        base_currency: Currency to convert into.
        rate_lookup: Callable (from, to) → rate or None.  The converted
                     amount is raw_price × rate.
        precision: Decimal places for half-up rounding.

    Returns:
        NormalizedPrice.

    Raises:
        ValueError: If raw_price is not a finite number.
    """
    price = _as_finite_number(raw_price)
    if price is None:
        raise ValueError(f"Raw price '{raw_price}' is not a number")

    base = (base_currency or BASE_CURRENCY).strip().upper()
    currency = (raw_currency or "").strip().upper() or base

    # Step 1: currency
    converted_currency = False
    if currency != base:
        rate = _lookup_rate(rate_lookup, currency, base)
        if rate is not None:
            price = price * rate
            currency = base
            converted_currency = True
        else:
            logger.warning(
                f"No exchange rate {currency} → {base} — keeping price in {currency}"
            )

    # Step 2: per pack unit
    quantity = _as_finite_number(pack_qty)
    if quantity is None or quantity <= 0:
        if pack_qty not in (None, ""):
            logger.warning(f"Invalid pack quantity '{pack_qty}' — using 1")
        quantity = 1
    price = price / quantity

    # Step 3: unit rescaling
    pack_label = _unit_label(pack_unit) or DEFAULT_UNIT
    target_label = _unit_label(target_unit) if target_unit is not None else None
    unit = pack_label
    converted_unit = False

    if target_label and target_label != pack_label:
        pack_conversion = UNIT_CONVERSIONS.get(pack_label)
        target_conversion = UNIT_CONVERSIONS.get(target_label)
        if (
            pack_conversion is not None
            and target_conversion is not None
            and pack_conversion[0] == target_conversion[0]
        ):
            price = price / pack_conversion[1] * target_conversion[1]
            unit = target_label
            converted_unit = True
        else:
            logger.debug(
                f"Units '{pack_label}' and '{target_label}' are not convertible — "
                f"keeping price per {pack_label}"
            )

    # Step 4: rounding
    return NormalizedPrice(
        price=round_half_up(price, precision),
        unit=unit,
        currency=currency,
        converted_currency=converted_currency,
        converted_unit=converted_unit,
    )


def try_normalize_price(*args, **kwargs) -> NormalizedPrice | None:
    """normalize_price() that returns None instead of raising for a bad price."""
    try:
        return normalize_price(*args, **kwargs)
    except ValueError as exc:
        logger.debug(f"Price not normalized: {exc}")
        return None


def resolve_unit(unit: str | None) -> str | None:
    """
    Resolve a unit spelling to its key in UNIT_CONVERSIONS.

    "metre", "Meters" and "m" all resolve to "m"; "L", "l" and "litre" to
    "L".  Returns None for units the conversion table does not know.
    """
    if unit is None:
        return None
    text = " ".join(str(unit).split())
    if not text:
        return None
    if text in UNIT_CONVERSIONS:
        return text
    lowered = text.lower()
    if lowered in UNIT_CONVERSIONS:
        return lowered
    return UNIT_ALIASES.get(lowered)


def default_unit_for_category(category: str | None) -> str:
    """Default target unit for a product category (case-insensitive), else "pcs"."""
    if not category:
        return DEFAULT_UNIT
    wanted = str(category).strip().lower()
    for name, unit in CATEGORY_DEFAULT_UNITS.items():
        if name.lower() == wanted:
            return unit
    return DEFAULT_UNIT


def format_price(price: float, currency: str = BASE_CURRENCY) -> str:
    """Format a price for display, e.g. 1234.5 AUD → "$1,234.50"."""
    code = (currency or BASE_CURRENCY).upper()
    prefix = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if price < 0 else ""
    return f"{sign}{prefix}{abs(price):,.2f}"


def format_unit(unit: str) -> str:
    """Display label for a normalized unit, e.g. "m" → "per meter"."""
    return UNIT_LABELS.get(unit, f"per {unit}")


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _as_finite_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        parsed = parse_number(str(value).strip())
        if parsed is None:
            return None
        number = float(parsed)
    return number if math.isfinite(number) else None


def _lookup_rate(rate_lookup: RateLookup | None, from_currency: str, to_currency: str) -> float | None:
    if rate_lookup is None:
        return None
    try:
        rate = rate_lookup(from_currency, to_currency)
    except Exception as exc:
        logger.error(f"Rate lookup {from_currency} → {to_currency} failed: {exc}")
        return None
    if rate is None:
        return None
    try:
        rate = float(rate)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


def _unit_label(unit: str | None) -> str:
    """Canonical spelling for known units, trimmed caller text otherwise."""
    resolved = resolve_unit(unit)
    if resolved is not None:
        return resolved
    return " ".join(str(unit).split()) if unit is not None else ""
