"""
merger.py
----------
Deduplication and ranking of detected subscriptions.

The cluster detector and the heuristic scorer can both report the same
service (e.g. "SPOTIFY PREMIUM" clustered, a stray "SPOTIFY" charge scored
alone). The merger folds candidates into an accepted list; a candidate that
matches an accepted entry on both merchant and amount only replaces it when
the candidate is high confidence and the entry is not. Nothing is averaged.
"""

from typing import Iterable

from config.config_loader import get_subscription_detection_config
from core.models import DetectedSubscription
from core.normalizer import MerchantNormalizer
from core.similarity import amount_similarity, merchant_similarity


class SubscriptionMerger:
    """
    Collapses duplicate subscriptions and ranks the survivors.

    Usage:
        merger = SubscriptionMerger()
        ranked = merger.rank(merger.merge(candidates))
    """

    def __init__(self, config: dict | None = None):
        self.config = config if config is not None else get_subscription_detection_config()
        merge_cfg = self.config["merge"]
        self.min_merchant_similarity = merge_cfg["min_merchant_similarity"]
        self.min_amount_similarity = merge_cfg["min_amount_similarity"]
        self.normalize = MerchantNormalizer(self.config)

    def merge(self, candidates: Iterable[DetectedSubscription]) -> list[DetectedSubscription]:
        """Folds candidates, in order, into a deduplicated list."""
        accepted: list[DetectedSubscription] = []

        for candidate in candidates:
            position = self._find_duplicate(accepted, candidate)
            if position is None:
                accepted.append(candidate)
            elif candidate.confidence == "high" and accepted[position].confidence != "high":
                accepted[position] = candidate

        return accepted

    @staticmethod
    def rank(subscriptions: Iterable[DetectedSubscription]) -> list[DetectedSubscription]:
        """Confidence descending, then monthly cost descending. Stable."""
        return sorted(subscriptions, key=lambda s: (-s.confidence_rank, -s.monthly_equivalent))

    def _find_duplicate(self, accepted: list[DetectedSubscription], candidate: DetectedSubscription) -> int | None:
        for position, existing in enumerate(accepted):
            if (
                merchant_similarity(existing.merchant_name, candidate.merchant_name, self.normalize)
                > self.min_merchant_similarity
                and amount_similarity(existing.amount, candidate.amount) > self.min_amount_similarity
            ):
                return position
        return None
