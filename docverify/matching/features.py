"""
Feature Extraction for fuzzy matching.

Responsibilities:
- Compute individual similarity features between claim and record values.
- Normalize before comparing.

Non-Responsibilities:
- No weighting logic.
- No threshold logic.
- No persistence.

Invariant:
Every feature lies in [0, 1]; a missing value on either side scores 0.
"""

from typing import Any

from rapidfuzz.distance import Levenshtein

from ..normalize import normalize_name
from ..rules.checks import parse_date


def edit_similarity(a: Any, b: Any) -> float:
    """1 - levenshtein(a, b) / max(len(a), len(b), 1) on normalized text."""
    left = normalize_name(a)
    right = normalize_name(b)
    if not left or not right:
        return 0.0
    distance = Levenshtein.distance(left, right)
    return 1.0 - distance / max(len(left), len(right), 1)


def same_day(a: Any, b: Any) -> bool:
    left = parse_date(a)
    right = parse_date(b)
    return left is not None and left == right


def same_text(a: Any, b: Any) -> bool:
    left = normalize_name(a)
    return bool(left) and left == normalize_name(b)
