"""
Entity registry — resolves supplier and product names to stable ids.

Resolution per name:
  1. Exact match on the normalized name (lowercase, punctuation removed,
     whitespace collapsed), so "ACME, Inc." and "Acme Inc" share an id.
  2. Fuzzy match (token-sort ratio ≥ NAME_MATCH_THRESHOLD) among names of
     the same kind whose digits agree, so "PVC Pipe 20mm" never collapses
     onto "PVC Pipe 25mm".
  3. Otherwise a new uuid4 id is registered.

Entities live in an injected key-value store under "<kind>:<id>" keys.
"""

import logging
import re
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from config.settings import NAME_MATCH_THRESHOLD
from processing.mapping_store import InMemoryStore
from utils.fuzzy_match import best_match

logger = logging.getLogger(__name__)

SUPPLIER = "supplier"
PRODUCT = "product"

_PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
_DIGITS_PATTERN = re.compile(r"\d+")


@dataclass(frozen=True)
class Entity:
    id: str
    kind: str
    name: str
    created_at: str
    category: str | None = None
    product_code: str | None = None


class EntityRegistry:
    """
    Name → id registry for suppliers and products.

    Args:
        store: Key-value store for entities (InMemoryStore when omitted).
        threshold: Minimum token-sort ratio (0-100) for a fuzzy match.
    """

    def __init__(self, store=None, threshold: int = NAME_MATCH_THRESHOLD) -> None:
        self.store = store if store is not None else InMemoryStore()
        self.threshold = threshold

    def ensure_supplier(self, name: str) -> str:
        """Return the id for supplier *name*, registering it if new."""
        return self._ensure(SUPPLIER, name).id

    def ensure_product(
        self,
        name: str,
        category: str | None = None,
        product_code: str | None = None,
    ) -> str:
        """Return the id for product *name*, registering it if new."""
        return self._ensure(PRODUCT, name, category=category, product_code=product_code).id

    def find(self, kind: str, name: str) -> Entity | None:
        """Existing entity of *kind* matching *name*, or None."""
        key = normalize_name(name)
        if not key:
            return None

        entities = self.entities(kind)
        for entity in entities:
            if normalize_name(entity.name) == key:
                return entity

        digits = _digit_signature(key)
        candidates = {
            normalize_name(entity.name): entity.id
            for entity in entities
            if _digit_signature(normalize_name(entity.name)) == digits
        }
        entity_id, score = best_match(key, candidates, threshold=self.threshold)
        if entity_id is None:
            return None
        logger.debug(f"Matched {kind} '{name}' to existing id {entity_id} (score={score})")
        return self.get(kind, entity_id)

    def get(self, kind: str, entity_id: str) -> Entity | None:
        value = self.store.get(f"{kind}:{entity_id}")
        return Entity(**value) if isinstance(value, dict) else None

    def entities(self, kind: str) -> list[Entity]:
        prefix = f"{kind}:"
        return [
            Entity(**value)
            for key, value in self.store.items()
            if key.startswith(prefix) and isinstance(value, dict)
        ]

    def _ensure(self, kind: str, name: str, **attributes) -> Entity:
        display_name = " ".join(str(name or "").split())
        if not normalize_name(display_name):
            raise ValueError(f"Cannot register a {kind} with a blank name")

        existing = self.find(kind, display_name)
        if existing is not None:
            return existing

        entity = Entity(
            id=str(uuid.uuid4()),
            kind=kind,
            name=display_name,
            created_at=datetime.now(timezone.utc).isoformat(),
            **{key: value for key, value in attributes.items() if value not in (None, "")},
        )
        self.store.put(f"{kind}:{entity.id}", asdict(entity))
        logger.info(f"Registered new {kind} '{display_name}' ({entity.id})")
        return entity


def normalize_name(name: str | None) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    if name is None:
        return ""
    return " ".join(_PUNCTUATION_PATTERN.sub(" ", str(name).lower()).split())


def _digit_signature(text: str) -> tuple[str, ...]:
    return tuple(_DIGITS_PATTERN.findall(text))
