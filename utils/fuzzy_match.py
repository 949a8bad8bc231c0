"""
Fuzzy string matching utilities.

Two kinds of score live here:
  - similarity(): normalized edit-distance similarity in [0, 1], used by the
    header mapper (rapidfuzz Levenshtein).
  - best_match(): token-sort ratio in [0, 100] over a candidates dict, used
    by the entity registry to recognise "Acme Inc." and "ACME, Inc" as the
    same supplier (thefuzz).
"""

import logging

from rapidfuzz.distance import Levenshtein
from thefuzz import fuzz

logger = logging.getLogger(__name__)


def similarity(first: str, second: str) -> float:
    """
    Normalized edit-distance similarity.

    (max(len(a), len(b)) − levenshtein(a, b)) / max(len(a), len(b)).
    Symmetric; two empty strings score 1.0.

    Args:
        first: First string (compared as-is, normalize before calling).
        second: Second string.

    Returns:
        Score in [0, 1].
    """
    longest = max(len(first), len(second))
    if longest == 0:
        return 1.0
    distance = Levenshtein.distance(first, second)
    return (longest - distance) / longest


def best_match(
    value: str,
    candidates: dict[str, str],
    threshold: int = 80,
) -> tuple[str | None, int]:
    """
    Find the best fuzzy match for *value* among *candidates* keys.

    Uses token_sort_ratio which handles word reordering well (e.g.
    "Steel Supplies Acme" vs "Acme Steel Supplies").

    Args:
        value: The string to match (will be lowercased internally).
        candidates: Dict of candidate_key (lowercase) → canonical_value.
        threshold: Minimum score (0-100) to accept a match.

    Returns:
        (canonical_value, score) if a match is found at or above threshold,
        or (None, 0) if no match qualifies.
    """
    if not value or not candidates:
        return None, 0

    value_lower = value.strip().lower()

    best_canonical: str | None = None
    best_score: int = 0

    for candidate_key, canonical_value in candidates.items():
        score = fuzz.token_sort_ratio(value_lower, candidate_key)
        if score > best_score:
            best_score = score
            best_canonical = canonical_value

    if best_score >= threshold:
        logger.debug(
            f"Fuzzy matched '{value}' → '{best_canonical}' (score={best_score})"
        )
        return best_canonical, best_score

    logger.debug(
        f"No fuzzy match for '{value}' above threshold {threshold} "
        f"(best was '{best_canonical}' at {best_score})"
    )
    return None, 0
