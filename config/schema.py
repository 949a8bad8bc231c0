"""
Canonical schema definitions for supplier price records.

Defines the canonical field order, data types, required fields, and the
camelCase names used when offers are handed to the persistence layer.
"""

# Canonical field names in declaration order.
# Header mapping ties are broken by this order, so keep it stable.
CANONICAL_FIELDS: list[str] = [
    "supplier",
    "product_name",
    "product_code",
    "price",
    "currency",
    "category",
    "unit",
    "pack_quantity",
    "pack_unit",
    "in_stock",
    "lead_time",
    "minimum_order",
    "notes",
]

# Marker for headers that do not map onto any canonical field.
SKIP_FIELD: str = "skip"

# Expected Python types for each field.
# "text" = str, "integer" = int, "float" = float, "boolean" = bool
FIELD_TYPES: dict[str, str] = {
    "supplier": "text",
    "product_name": "text",
    "product_code": "text",
    "price": "float",
    "currency": "text",
    "category": "text",
    "unit": "text",
    "pack_quantity": "float",
    "pack_unit": "text",
    "in_stock": "boolean",
    "lead_time": "text",
    "minimum_order": "integer",
    "notes": "text",
}

# Fields that must be mapped before any row can become an Offer.
REQUIRED_FIELDS: list[str] = [
    "supplier",
    "product_name",
    "price",
]

# Offer attribute → persistence record key.
OFFER_RECORD_KEYS: dict[str, str] = {
    "id": "id",
    "product_id": "productId",
    "supplier_id": "supplierId",
    "raw_price": "rawPrice",
    "raw_currency": "rawCurrency",
    "pack_qty": "packQty",
    "pack_unit": "packUnit",
    "normalized_price_per_unit": "normalizedPricePerUnit",
    "normalized_unit": "normalizedUnit",
    "source_id": "sourceId",
    "updated_at": "updatedAt",
    "in_stock": "inStock",
}

# Currencies the UI offers as base currency. Any ISO code is accepted for
# raw prices; these are only the defaults shown to users.
SUPPORTED_BASE_CURRENCIES: set[str] = {"AUD", "USD", "EUR", "GBP"}
