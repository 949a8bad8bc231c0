"""
Runtime settings.

Plain module constants with an environment-variable override for each one
(PRICELIST_<NAME>). Import the constants directly; tests pass explicit
values instead of patching the environment.
"""

import os
from pathlib import Path


def _env(name: str, default: str) -> str:
    return os.environ.get(f"PRICELIST_{name}", default)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------
BASE_CURRENCY: str = _env("BASE_CURRENCY", "AUD").upper()
DEFAULT_RAW_CURRENCY: str = _env("DEFAULT_RAW_CURRENCY", BASE_CURRENCY).upper()
ROUNDING_PRECISION: int = int(_env("ROUNDING_PRECISION", "2"))

# ---------------------------------------------------------------------------
# Header mapping
# ---------------------------------------------------------------------------
HEADER_MATCH_THRESHOLD: float = float(_env("HEADER_MATCH_THRESHOLD", "0.6"))

# ---------------------------------------------------------------------------
# Exchange rates
# ---------------------------------------------------------------------------
FX_API_URL: str = _env("FX_API_URL", "https://api.frankfurter.app/latest")
FX_TIMEOUT_SECONDS: float = float(_env("FX_TIMEOUT_SECONDS", "5"))
FX_CACHE_TTL_SECONDS: float = float(_env("FX_CACHE_TTL_SECONDS", str(12 * 60 * 60)))
# A failed fetch is not retried for this many seconds.
FX_RETRY_SECONDS: float = float(_env("FX_RETRY_SECONDS", "300"))

# ---------------------------------------------------------------------------
# Persistent stores
# ---------------------------------------------------------------------------
DATA_DIR: Path = Path(_env("DATA_DIR", str(Path.home() / ".pricelist_normalizer")))
TEMPLATE_STORE_PATH: Path = Path(_env("TEMPLATE_STORE_PATH", str(DATA_DIR / "supplier_templates.json")))
LEARNED_MAPPINGS_PATH: Path = Path(_env("LEARNED_MAPPINGS_PATH", str(DATA_DIR / "learned_mappings.json")))
REGISTRY_STORE_PATH: Path = Path(_env("REGISTRY_STORE_PATH", str(DATA_DIR / "entity_registry.json")))

# ---------------------------------------------------------------------------
# PDF extraction
# ---------------------------------------------------------------------------
# Candidate tables below this confidence are dropped.
PDF_MIN_TABLE_CONFIDENCE: float = float(_env("PDF_MIN_TABLE_CONFIDENCE", "0.5"))

# ---------------------------------------------------------------------------
# Entity registry
# ---------------------------------------------------------------------------
# token_sort_ratio (0-100) at which a supplier/product name reuses an existing id.
NAME_MATCH_THRESHOLD: int = int(_env("NAME_MATCH_THRESHOLD", "92"))
