"""
Text utilities for product-name comparison.

Used to key imported names against the catalog and to suggest the closest
existing product for a new name.
"""

import re
from typing import Iterable, Optional

TOKEN_SPLIT = re.compile(r"[\s\-_,]+")
MIN_TOKEN_LENGTH = 3

EXACT_SCORE = 1.0
SUBSTRING_SCORE = 0.9


def name_key(name: Optional[str]) -> str:
    """
    Case-insensitive comparison key for a product or size name.

    - "  Canvas Print " → "canvas print"
    - None → ""
    """
    if not name:
        return ""
    return name.strip().lower()


def escape_like(value: str) -> str:
    """Escape ILIKE wildcards so the pattern matches the literal text."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def clean_text(value: Optional[str], max_length: int = 255) -> Optional[str]:
    """
    Clean free text for storage.

    - Strips whitespace
    - Truncates to max length
    - Returns None for empty/whitespace-only strings
    """
    if value is None:
        return None

    value = str(value).strip()

    if not value:
        return None

    if len(value) > max_length:
        value = value[:max_length]

    return value


def tokenize(name: str) -> set[str]:
    """
    Split a lower-cased name into comparison tokens.

    Splits on whitespace, hyphens, underscores and commas and drops tokens of
    two characters or fewer ("8x", "of", "a").
    """
    return {
        token for token in TOKEN_SPLIT.split(name.lower())
        if len(token) >= MIN_TOKEN_LENGTH
    }


def similarity(name1: str, name2: str) -> float:
    """
    Score how likely two product names refer to the same product (0-1).

    First matching rule wins:
        1. Case-insensitive equality → 1.0
        2. One contains the other → 0.9
        3. Share of tokens in name1 that overlap (substring either way) a
           token of name2, over the larger token count

    Examples:
        similarity("Canvas Print", "canvas print") → 1.0
        similarity("8x10 Metal Print", "Metal Print") → 0.9
        similarity("Mug", "Tote Bag") → 0.0
    """
    n1 = (name1 or "").lower()
    n2 = (name2 or "").lower()

    if n1 == n2:
        return EXACT_SCORE

    if n1 in n2 or n2 in n1:
        return SUBSTRING_SCORE

    words1 = tokenize(n1)
    words2 = tokenize(n2)

    if not words1 or not words2:
        return 0.0

    matches = sum(
        1 for w1 in words1
        if any(w1 in w2 or w2 in w1 for w2 in words2)
    )
    return matches / max(len(words1), len(words2))


def find_best_match(
    name: str,
    candidates: Iterable[str],
    threshold: float = 0.4,
) -> Optional[tuple[str, float]]:
    """
    Find the candidate most similar to name.

    Ties keep the earliest candidate. A best score at or below threshold
    means "no match" so callers create a new product instead of forcing a
    weak one.

    Returns:
        (candidate, score) or None
    """
    best: Optional[str] = None
    best_score = -1.0

    for candidate in candidates:
        score = similarity(name, candidate)
        if score > best_score:
            best, best_score = candidate, score

    if best is None or best_score <= threshold:
        return None

    return best, best_score
