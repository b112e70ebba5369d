"""
Keyword-driven difficulty distribution.

Keyword density is used as a cheap proxy for the difficulty profile of the
source material. Two keywords feed each tier; every tier is smoothed by one
so documents without any hits still get an even split.
"""

from __future__ import annotations

import math
import re
from typing import Dict, Tuple

from pdfquiz.utils.types import DifficultyTarget

DEFAULT_TOTAL = 36
IDEAL_FLOOR = 8
BUDGET_FLOOR = 4

TIER_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("easy", "expert"),
    ("medium", "master"),
    ("hard", "champion"),
)

_KEYWORD_PATTERNS: Dict[str, re.Pattern[str]] = {
    word: re.compile(rf"\b{word}\b") for pair in TIER_KEYWORDS for word in pair
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def keyword_counts(text: str) -> Dict[str, int]:
    lowered = (text or "").lower()
    return {word: len(pattern.findall(lowered)) for word, pattern in _KEYWORD_PATTERNS.items()}


def compute_distribution(text: str, *, total: int = DEFAULT_TOTAL, floor: int = IDEAL_FLOOR) -> DifficultyTarget:
    """Return the ideal per-tier counts for ``text``.

    Rounding and flooring are applied per tier, so the three counts do not
    necessarily add up to ``total``.
    """
    counts = keyword_counts(text)
    buckets = [counts[low] + counts[high] + 1 for low, high in TIER_KEYWORDS]
    grand = sum(buckets)
    tiers = [max(floor, _round_half_up(bucket / grand * total)) for bucket in buckets]
    return DifficultyTarget(*tiers)


def rescale_distribution(target: DifficultyTarget, max_total: int, *, floor: int = BUDGET_FLOOR) -> DifficultyTarget:
    """Scale every tier down to fit ``max_total`` while keeping each tier at ``floor`` or above."""
    raw_sum = target.total
    if raw_sum <= 0:
        return DifficultyTarget(floor, floor, floor)
    scale = min(max_total, raw_sum) / raw_sum
    return DifficultyTarget(*(max(floor, math.floor(value * scale)) for value in target.as_tuple()))


__all__ = ["compute_distribution", "rescale_distribution", "keyword_counts", "DEFAULT_TOTAL", "IDEAL_FLOOR", "BUDGET_FLOOR"]
