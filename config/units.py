"""
Unit conversion and category default-unit tables.

Every unit maps to a standard unit and a factor (how many standard units one
of this unit is). Two units are inter-convertible only when they share a
standard unit.
"""

# ---------------------------------------------------------------------------
# unit → (standard unit, factor)
# ---------------------------------------------------------------------------
UNIT_CONVERSIONS: dict[str, tuple[str, float]] = {
    # Length
    "mm": ("m", 0.001),
    "cm": ("m", 0.01),
    "m": ("m", 1.0),
    "km": ("m", 1000.0),
    "inch": ("m", 0.0254),
    "ft": ("m", 0.3048),
    # Weight
    "g": ("kg", 0.001),
    "kg": ("kg", 1.0),
    "t": ("kg", 1000.0),
    "lb": ("kg", 0.453592),
    "oz": ("kg", 0.0283495),
    # Volume
    "ml": ("L", 0.001),
    "L": ("L", 1.0),
    "gal": ("L", 3.78541),
    # Count
    "pcs": ("pcs", 1.0),
    "each": ("pcs", 1.0),
    "dozen": ("pcs", 12.0),
    # Area
    "sqm": ("sqm", 1.0),
    "sqft": ("sqm", 0.092903),
}

# ---------------------------------------------------------------------------
# Spelling variants (lowercase) → key in UNIT_CONVERSIONS
# ---------------------------------------------------------------------------
UNIT_ALIASES: dict[str, str] = {
    "millimetre": "mm", "millimeter": "mm", "millimetres": "mm", "millimeters": "mm",
    "centimetre": "cm", "centimeter": "cm", "centimetres": "cm", "centimeters": "cm",
    "metre": "m", "meter": "m", "metres": "m", "meters": "m", "lm": "m",
    "kilometre": "km", "kilometer": "km",
    "in": "inch", "inches": "inch", '"': "inch",
    "foot": "ft", "feet": "ft", "'": "ft",
    "gram": "g", "grams": "g", "gm": "g",
    "kilogram": "kg", "kilograms": "kg", "kgs": "kg", "kilo": "kg",
    "tonne": "t", "tonnes": "t", "ton": "t",
    "lbs": "lb", "pound": "lb", "pounds": "lb",
    "ounce": "oz", "ounces": "oz",
    "millilitre": "ml", "milliliter": "ml",
    "l": "L", "litre": "L", "liter": "L", "litres": "L", "liters": "L", "ltr": "L",
    "gallon": "gal", "gallons": "gal",
    "pc": "pcs", "piece": "pcs", "pieces": "pcs", "unit": "pcs", "units": "pcs",
    "ea": "each",
    "doz": "dozen",
    "m2": "sqm", "m²": "sqm", "sq m": "sqm", "square metre": "sqm", "square meter": "sqm",
    "ft2": "sqft", "sq ft": "sqft", "square foot": "sqft", "square feet": "sqft",
}

# ---------------------------------------------------------------------------
# Category → default target unit for batch ingestion
# ---------------------------------------------------------------------------
CATEGORY_DEFAULT_UNITS: dict[str, str] = {
    "Pipe & Fittings": "m",
    "Electrical": "m",
    "Concrete & Cement": "kg",
    "Steel & Rebar": "kg",
    "Insulation": "sqm",
    "Roofing": "sqm",
    "Timber": "m",
    "Fasteners": "pcs",
    "Paint & Coatings": "L",
    "Tools": "pcs",
}

DEFAULT_UNIT: str = "pcs"

# Display labels used by format_unit().
UNIT_LABELS: dict[str, str] = {
    "m": "per meter",
    "kg": "per kg",
    "L": "per liter",
    "pcs": "per piece",
    "sqm": "per sqm",
    "ft": "per foot",
    "lb": "per pound",
    "gal": "per gallon",
}
