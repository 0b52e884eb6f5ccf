"""
similarity.py
--------------
Pairwise similarity scores used for clustering and deduplication.

Both scores are in [0, 1] and use coarse steps rather than a continuous
distance: callers only ever compare them against fixed thresholds.
"""

from typing import Callable, Optional

from core.normalizer import normalize_merchant


def merchant_similarity(
    name1: Optional[str],
    name2: Optional[str],
    normalize: Callable[[Optional[str]], str] = normalize_merchant,
) -> float:
    """
    Scores how likely two merchant strings name the same merchant.

        1.0  normalized names are identical
        0.8  one normalized name contains the other
        else shared words (len > 2) / word count of the longer name
    """
    normalized1 = normalize(name1)
    normalized2 = normalize(name2)

    if normalized1 == normalized2:
        return 1.0

    if normalized1 in normalized2 or normalized2 in normalized1:
        return 0.8

    words1 = [w for w in normalized1.split(" ") if len(w) > 2]
    words2 = [w for w in normalized2.split(" ") if len(w) > 2]

    if not words1 or not words2:
        return 0.0

    common_words = sum(1 for w in words1 if w in words2)
    total_words = max(len(words1), len(words2))

    return common_words / total_words


def amount_similarity(amount1: float, amount2: float) -> float:
    """
    Scores how close two charge amounts are. Expects non-negative amounts.

    Small charges (average under $50) get an absolute $1 tolerance;
    otherwise the relative difference decides.
    """
    diff = abs(amount1 - amount2)
    avg_amount = (amount1 + amount2) / 2

    if diff == 0:
        return 1.0
    if avg_amount < 50 and diff <= 1:
        return 0.9
    if avg_amount == 0:
        return 0.0
    if diff / avg_amount <= 0.05:
        return 0.8
    if diff / avg_amount <= 0.10:
        return 0.6

    return 0.0
