"""
Header synonym configuration.

Maps each canonical field to the curated list of header spellings suppliers
use for it. The header mapper scores every incoming header against every
synonym below; the best field above the acceptance threshold wins.

All synonyms are stored lowercase. A synonym may appear under more than one
field (e.g. "description"); the earlier field in CANONICAL_FIELDS wins ties.
"""

from config.schema import CANONICAL_FIELDS

FIELD_SYNONYMS: dict[str, list[str]] = {
    "supplier": [
        "supplier", "supplier name", "vendor", "vendor name", "company",
        "manufacturer", "brand", "distributor", "source",
    ],
    "product_name": [
        "product", "product name", "item", "item name", "name",
        "description", "item description", "title", "part name",
    ],
    "product_code": [
        "code", "sku", "part no", "part number", "part#", "item code",
        "product code", "product id", "model", "reference",
    ],
    "price": [
        "price", "cost", "unit price", "list price", "selling price",
        "rate", "amount", "price ex gst", "price inc gst",
    ],
    "currency": [
        "currency", "curr", "ccy", "money type",
    ],
    "category": [
        "category", "type", "class", "group", "family", "classification",
    ],
    "unit": [
        "unit", "uom", "unit of measure", "measure",
    ],
    "pack_quantity": [
        "pack qty", "pack quantity", "qty per pack", "pack size",
        "quantity", "qty",
    ],
    "pack_unit": [
        "pack unit", "packaging", "unit type",
    ],
    "in_stock": [
        "in stock", "stock", "available", "availability", "inventory",
        "qty available",
    ],
    "lead_time": [
        "lead time", "delivery time", "lead", "delivery", "days", "weeks",
    ],
    "minimum_order": [
        "min order", "minimum order", "moq", "min qty",
    ],
    "notes": [
        "notes", "comments", "remarks", "details", "additional info",
    ],
}

# Fail fast at import time if a field is missing from the synonym table.
if list(FIELD_SYNONYMS) != CANONICAL_FIELDS:
    raise ValueError("FIELD_SYNONYMS must list every canonical field in declaration order")

# Minimum similarity for a synonym to be offered as a near miss.
NEAR_MISS_THRESHOLD: float = 0.4

# How many near-miss synonyms to attach to each mapping.
MAX_NEAR_MISSES: int = 3
