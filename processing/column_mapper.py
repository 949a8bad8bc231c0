"""
Column mapper — maps arbitrary supplier headers onto the canonical fields.

Uses a two-step cascade per header:
  1. Learned corrections: a user's earlier correction for the same
     normalized header text wins outright at confidence 1.0.
  2. Similarity: the header is scored against every synonym of every
     canonical field (normalized edit distance).  The best field strictly
     above the acceptance threshold (0.6) wins; ties keep the field declared
     first in CANONICAL_FIELDS.  Below threshold the header maps to "skip".

Corrections are written to an injected key-value store keyed by normalized
header text.  They never expire; the last correction for a header wins.

Public API:
    normalize_header(header) → str
    HeaderMapper(store).map_headers(headers) → ColumnMapping
    HeaderMapper(store).learn_correction(header, field)
    validate_mapping(mapping, satisfied_fields) → MappingValidation
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from config.column_mapping import FIELD_SYNONYMS, MAX_NEAR_MISSES, NEAR_MISS_THRESHOLD
from config.schema import CANONICAL_FIELDS, REQUIRED_FIELDS, SKIP_FIELD
from config.settings import HEADER_MATCH_THRESHOLD
from processing.mapping_store import InMemoryStore
from utils.fuzzy_match import similarity

logger = logging.getLogger(__name__)

# Where a mapping decision came from.
SOURCE_LEARNED = "learned"
SOURCE_SIMILARITY = "similarity"
SOURCE_MANUAL = "manual"
SOURCE_TEMPLATE = "template"
SOURCE_NONE = "none"


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FieldMapping:
    """One header's mapping decision."""

    original_header: str
    canonical_field: str
    """Canonical field name, or "skip" when unmapped."""

    confidence: float = 0.0
    synonyms: tuple[str, ...] = ()
    """Near-miss synonyms from other fields, best first."""

    source: str = SOURCE_NONE

    @property
    def is_mapped(self) -> bool:
        return self.canonical_field != SKIP_FIELD


@dataclass
class ColumnMapping:
    """Ordered header → canonical field mapping for one table."""

    entries: list[FieldMapping] = field(default_factory=list)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def as_dict(self) -> dict[str, str]:
        """original header → canonical field (or "skip")."""
        return {entry.original_header: entry.canonical_field for entry in self.entries}

    def confidences(self) -> dict[str, float]:
        return {entry.original_header: entry.confidence for entry in self.entries}

    @property
    def unmapped(self) -> list[str]:
        return [entry.original_header for entry in self.entries if not entry.is_mapped]

    def header_for(self, canonical_field: str) -> str | None:
        """
        Return the header feeding *canonical_field*.

        When several headers map to the same field, the most confident one
        wins; equal confidence keeps the earliest header.
        """
        best: FieldMapping | None = None
        for entry in self.entries:
            if entry.canonical_field != canonical_field:
                continue
            if best is None or entry.confidence > best.confidence:
                best = entry
        return best.original_header if best is not None else None

    def mapped_fields(self) -> dict[str, str]:
        """canonical field → source header, in mapping order."""
        result: dict[str, str] = {}
        for entry in self.entries:
            if entry.is_mapped and entry.canonical_field not in result:
                result[entry.canonical_field] = self.header_for(entry.canonical_field)
        return result

    def missing_required(self, satisfied_fields: tuple[str, ...] = ()) -> list[str]:
        mapped = set(self.mapped_fields()) | set(satisfied_fields)
        return [name for name in REQUIRED_FIELDS if name not in mapped]

    def with_override(self, header: str, canonical_field: str) -> "ColumnMapping":
        """
        Return a copy with *header* manually set to *canonical_field*.

        Raises:
            KeyError: If *header* is not part of this mapping.
            ValueError: If *canonical_field* is not a canonical field or "skip".
        """
        check_field(canonical_field)
        updated: list[FieldMapping] = []
        found = False
        for entry in self.entries:
            if entry.original_header == header:
                found = True
                updated.append(replace(
                    entry,
                    canonical_field=canonical_field,
                    confidence=1.0,
                    source=SOURCE_MANUAL,
                ))
            else:
                updated.append(entry)
        if not found:
            raise KeyError(f"Header '{header}' is not part of this mapping")
        return ColumnMapping(entries=updated)


@dataclass
class MappingValidation:
    """Result of checking a mapping for required fields."""

    is_valid: bool = True
    missing_fields: list[str] = field(default_factory=list)
    message: str = ""


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def normalize_header(header: str) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    return " ".join(str(header).lower().split())


class HeaderMapper:
    """
    Maps headers onto canonical fields, learning from user corrections.

    Args:
        store: Key-value store for learned corrections (InMemoryStore when
               omitted).  Keys are normalized header text.
        synonyms: canonical field → synonym list, in tie-break order.
        threshold: Acceptance threshold; a field must score strictly above it.
    """

    def __init__(
        self,
        store=None,
        synonyms: dict[str, list[str]] | None = None,
        threshold: float = HEADER_MATCH_THRESHOLD,
    ) -> None:
        self.store = store if store is not None else InMemoryStore()
        self.synonyms = synonyms if synonyms is not None else FIELD_SYNONYMS
        self.threshold = threshold

    # ── Mapping ────────────────────────────────────────────────────────

    def map_headers(self, headers: list[str]) -> ColumnMapping:
        """
        Map every header, including the ones that end up as "skip".

        Args:
            headers: Table headers in column order.

        Returns:
            ColumnMapping with one entry per header, in the same order.
        """
        mapping = ColumnMapping(entries=[self.map_header(header) for header in headers])

        logger.info(
            f"Header mapping complete: {len(mapping)} headers processed, "
            f"{len(mapping.unmapped)} unmapped"
        )
        return mapping

    def map_header(self, header: str) -> FieldMapping:
        """Map a single header through the learned → similarity cascade."""
        normalized = normalize_header(header)

        learned = self.learned_field(normalized)
        if learned is not None:
            logger.debug(f"Learned mapping '{header}' → '{learned}'")
            return FieldMapping(
                original_header=header,
                canonical_field=learned,
                confidence=1.0,
                source=SOURCE_LEARNED,
            )

        scores = self._score_fields(normalized)
        best_field, best_score = SKIP_FIELD, 0.0
        for canonical_field in self.synonyms:
            score = scores[canonical_field][0]
            if score > best_score:
                best_field, best_score = canonical_field, score

        near_misses = self._near_misses(scores, exclude=best_field)

        if best_score > self.threshold:
            logger.debug(
                f"Mapped '{header}' → '{best_field}' (confidence={best_score:.2f})"
            )
            return FieldMapping(
                original_header=header,
                canonical_field=best_field,
                confidence=round(best_score, 4),
                synonyms=near_misses,
                source=SOURCE_SIMILARITY,
            )

        logger.info(f"Unmapped header: '{header}' (best score {best_score:.2f})")
        return FieldMapping(
            original_header=header,
            canonical_field=SKIP_FIELD,
            confidence=round(best_score, 4),
            synonyms=near_misses,
            source=SOURCE_NONE,
        )

    # ── Learning ───────────────────────────────────────────────────────

    def learn_correction(self, header: str, canonical_field: str) -> None:
        """
        Record a user correction for *header*.

        Any later mapping of the same normalized header returns
        *canonical_field* at confidence 1.0.  Correcting to "skip" is allowed.

        Raises:
            ValueError: If *canonical_field* is not a canonical field or "skip".
        """
        check_field(canonical_field)
        normalized = normalize_header(header)
        if not normalized:
            logger.debug("Ignoring correction for a blank header")
            return

        self.store.put(normalized, {
            "field": canonical_field,
            "original_header": header,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })
        logger.info(f"Learned correction '{header}' → '{canonical_field}'")

    def learn_from_mapping(self, mapping: ColumnMapping) -> int:
        """Persist every manual entry of *mapping* as a correction."""
        learned = 0
        for entry in mapping:
            if entry.source == SOURCE_MANUAL:
                self.learn_correction(entry.original_header, entry.canonical_field)
                learned += 1
        return learned

    def forget_correction(self, header: str) -> bool:
        """Remove a learned correction.  Returns False if none existed."""
        return self.store.delete(normalize_header(header))

    def learned_field(self, normalized_header: str) -> str | None:
        value = self.store.get(normalized_header)
        if isinstance(value, dict):
            return value.get("field")
        if isinstance(value, str):
            return value
        return None

    def learned_mappings(self) -> dict[str, str]:
        """normalized header → learned canonical field."""
        result: dict[str, str] = {}
        for key, _ in self.store.items():
            learned = self.learned_field(key)
            if learned is not None:
                result[key] = learned
        return result

    # ── Internal helpers ───────────────────────────────────────────────

    def _score_fields(self, normalized: str) -> dict[str, tuple[float, str]]:
        """canonical field → (best score, best synonym) for one header."""
        scores: dict[str, tuple[float, str]] = {}
        for canonical_field, synonyms in self.synonyms.items():
            best_score, best_synonym = 0.0, ""
            for synonym in synonyms:
                score = similarity(normalized, synonym)
                if score > best_score:
                    best_score, best_synonym = score, synonym
            scores[canonical_field] = (best_score, best_synonym)
        return scores

    def _near_misses(
        self,
        scores: dict[str, tuple[float, str]],
        exclude: str,
    ) -> tuple[str, ...]:
        ranked = sorted(
            (
                (score, synonym)
                for canonical_field, (score, synonym) in scores.items()
                if canonical_field != exclude and score >= NEAR_MISS_THRESHOLD
            ),
            key=lambda pair: -pair[0],
        )
        seen: list[str] = []
        for _, synonym in ranked:
            if synonym not in seen:
                seen.append(synonym)
        return tuple(seen[:MAX_NEAR_MISSES])


def validate_mapping(
    mapping: ColumnMapping,
    satisfied_fields: tuple[str, ...] = (),
) -> MappingValidation:
    """
    Check that every required field is mapped.

    Args:
        mapping: The (possibly manually overridden) column mapping.
        satisfied_fields: Required fields supplied from elsewhere, e.g. the
                          supplier name of a template.

    Returns:
        MappingValidation naming any missing required fields.
    """
    missing = mapping.missing_required(satisfied_fields)
    if not missing:
        return MappingValidation(is_valid=True)

    message = (
        f"Missing required field(s): {', '.join(missing)}. "
        "Map a column to each of them before ingesting."
    )
    logger.warning(message)
    return MappingValidation(is_valid=False, missing_fields=missing, message=message)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def check_field(canonical_field: str) -> None:
    if canonical_field != SKIP_FIELD and canonical_field not in CANONICAL_FIELDS:
        raise ValueError(
            f"Unknown canonical field '{canonical_field}' "
            f"(expected one of {', '.join(CANONICAL_FIELDS)} or '{SKIP_FIELD}')"
        )
