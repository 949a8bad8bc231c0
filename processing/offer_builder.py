"""
Offer builder — turns a mapped Table into canonical Offer records.

For every data row:
  - supplier and product name are required (the supplier may come from a
    default such as the template's supplier name), otherwise the row is
    skipped with a reason
  - price must be numeric, otherwise the row is skipped
  - currency defaults to the configured raw currency, pack quantity to 1,
    pack unit to the row's unit and then "pcs"
  - the target unit is the caller's, or the category's default unit
  - supplier and product names are resolved to ids by the entity registry

Ingestion is blocked entirely when a required field is unmapped; the
result then names the missing fields and carries no offers.

Public API:
    Offer
    build_offers(table, mapping, source_id, ...) → OfferBuildResult
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from config.schema import OFFER_RECORD_KEYS
from config.settings import BASE_CURRENCY, DEFAULT_RAW_CURRENCY, ROUNDING_PRECISION
from config.units import DEFAULT_UNIT
from processing.column_mapper import ColumnMapping, validate_mapping
from processing.identity_resolver import EntityRegistry
from processing.numeric_converter import coerce_record
from processing.price_normalizer import (
    RateLookup,
    default_unit_for_category,
    normalize_price,
)
from processing.table import Table

logger = logging.getLogger(__name__)

_CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Offer:
    """One supplier's price for one product, raw and normalized."""

    id: str
    product_id: str
    supplier_id: str
    raw_price: float
    raw_currency: str
    pack_qty: float
    pack_unit: str
    normalized_price_per_unit: float
    normalized_unit: str
    normalized_currency: str
    source_id: str
    updated_at: str
    in_stock: bool | None = None
    product_name: str = ""
    supplier_name: str = ""
    category: str | None = None
    product_code: str | None = None

    def to_record(self) -> dict[str, object]:
        """Persistence record with camelCase keys; inStock only when known."""
        record = {key: getattr(self, name) for name, key in OFFER_RECORD_KEYS.items()}
        if self.in_stock is None:
            record.pop(OFFER_RECORD_KEYS["in_stock"])
        return record


@dataclass
class OfferBuildResult:
    offers: list[Offer] = field(default_factory=list)
    skipped_rows: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    missing_fields: list[str] = field(default_factory=list)

    @property
    def is_blocked(self) -> bool:
        return bool(self.missing_fields)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def build_offers(
    table: Table,
    mapping: ColumnMapping,
    source_id: str,
    base_currency: str = BASE_CURRENCY,
    rate_lookup: RateLookup | None = None,
    registry: EntityRegistry | None = None,
    default_supplier: str | None = None,
    default_currency: str = DEFAULT_RAW_CURRENCY,
    target_unit: str | None = None,
    precision: int = ROUNDING_PRECISION,
) -> OfferBuildResult:
    """
    Build normalized offers from every usable row of *table*.

    Args:
        table: Parsed table.
        mapping: Header → canonical field mapping for *table*.
        source_id: Identifier of the uploaded document, stored on each offer.
        base_currency: Currency to normalize into.
        rate_lookup: (from, to) → rate, e.g. FxCache.get_rate.
        registry: Entity registry resolving names to ids.
        default_supplier: Supplier for rows without one (also satisfies the
                          required supplier mapping).
        default_currency: Currency for rows without one.
        target_unit: Unit to normalize into; None picks the category default.
        precision: Decimal places of the normalized price.

    Returns:
        OfferBuildResult.
    """
    result = OfferBuildResult()
    registry = registry if registry is not None else EntityRegistry()
    default_supplier = " ".join(str(default_supplier or "").split()) or None

    satisfied = ("supplier",) if default_supplier else ()
    validation = validate_mapping(mapping, satisfied_fields=satisfied)
    if not validation.is_valid:
        result.missing_fields = validation.missing_fields
        result.errors.append(validation.message)
        return result

    field_headers = mapping.mapped_fields()
    updated_at = datetime.now(timezone.utc).isoformat()
    supplier_ids: dict[str, str] = {}
    product_ids: dict[str, str] = {}

    for row_index in range(table.row_count):
        raw_record = {
            name: table.raw_value(row_index, header) for name, header in field_headers.items()
        }
        coerced = coerce_record(raw_record)
        record = coerced.record

        supplier_name = record.get("supplier") or default_supplier
        product_name = record.get("product_name")
        if not supplier_name or not product_name:
            _skip(result, row_index, "missing supplier or product name")
            continue

        raw_price = record.get("price")
        if raw_price is None:
            _skip(result, row_index, f"price '{raw_record.get('price', '')}' is not a number")
            continue

        currency = _currency_code(record.get("currency"), default_currency)
        pack_qty = record.get("pack_quantity")
        if pack_qty is None or pack_qty <= 0:
            pack_qty = 1.0
        pack_unit = record.get("pack_unit") or record.get("unit") or DEFAULT_UNIT
        category = record.get("category")
        row_target_unit = target_unit or default_unit_for_category(category)

        normalized = normalize_price(
            raw_price,
            currency,
            pack_qty=pack_qty,
            pack_unit=pack_unit,
            target_unit=row_target_unit,
            base_currency=base_currency,
            rate_lookup=rate_lookup,
            precision=precision,
        )

        supplier_key = supplier_name.lower()
        if supplier_key not in supplier_ids:
            supplier_ids[supplier_key] = registry.ensure_supplier(supplier_name)
        product_key = product_name.lower()
        if product_key not in product_ids:
            product_ids[product_key] = registry.ensure_product(
                product_name, category=category, product_code=record.get("product_code")
            )

        result.offers.append(Offer(
            id=str(uuid.uuid4()),
            product_id=product_ids[product_key],
            supplier_id=supplier_ids[supplier_key],
            raw_price=raw_price,
            raw_currency=currency,
            pack_qty=pack_qty,
            pack_unit=pack_unit,
            normalized_price_per_unit=normalized.price,
            normalized_unit=normalized.unit,
            normalized_currency=normalized.currency,
            source_id=source_id,
            updated_at=updated_at,
            in_stock=record.get("in_stock"),
            product_name=product_name,
            supplier_name=supplier_name,
            category=category,
            product_code=record.get("product_code"),
        ))

    logger.info(
        f"Built {len(result.offers)} offer(s) from source {source_id}, "
        f"skipped {len(result.skipped_rows)} row(s)"
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _skip(result: OfferBuildResult, row_index: int, reason: str) -> None:
    logger.debug(f"Skipping row {row_index}: {reason}")
    result.skipped_rows.append({"row": row_index, "reason": reason})


def _currency_code(value: object, default: str) -> str:
    """ISO code from the row, or *default* when blank or not a 3-letter code."""
    text = str(value or "").strip().upper()
    if _CURRENCY_CODE_PATTERN.match(text):
        return text
    if text:
        logger.debug(f"Unrecognised currency '{value}' — using {default}")
    return default.upper()
