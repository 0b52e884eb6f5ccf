"""
cluster_detector.py
--------------------
Pairwise clustering of repeated charges into recurring subscriptions.

It answers one question per expense transaction:

    "Which later charges look like the same merchant billing the same amount?"

Output: a DetectedSubscription per accepted cluster, plus the indices of the
transactions those clusters consumed (the heuristic scorer skips them).

Design decisions:
    - Seeds are visited in input order. A seed gathers every later,
      unconsumed transaction that passes both the merchant and amount
      similarity gates against the seed itself (not against other members).
    - Members of a group are marked consumed whether or not the group is
      accepted, so no transaction seeds or joins twice.
    - Cadence comes from FrequencyAnalyzer over the date-sorted members.
    - The scan is O(n^2). use_amount_blocking narrows candidates to the amount
      window that can possibly pass the amount gate; results are identical.
    - All thresholds are read from config.yaml.
"""

import bisect
import logging
from typing import Iterable, Sequence

import numpy as np

from config.config_loader import get_subscription_detection_config
from core.categorizer import Categorizer
from core.frequency import FrequencyAnalyzer
from core.models import DetectedSubscription, Transaction, assign_confidence, monthly_equivalent
from core.normalizer import MerchantNormalizer
from core.similarity import amount_similarity, merchant_similarity

logger = logging.getLogger(__name__)


class AmountWindowIndex:
    """
    Sorted index over charge amounts for candidate blocking.

    Two amounts can only score above zero in amount_similarity when they are
    within $1 of each other or within 10% of their average. window() returns
    every index inside that reach, in input order.
    """

    # diff <= 0.10 * avg  <=>  ratio <= 1.05 / 0.95
    _MAX_RATIO = 1.05 / 0.95

    def __init__(self, amounts: Sequence[float]):
        order = sorted(range(len(amounts)), key=lambda i: amounts[i])
        self._sorted_amounts = [amounts[i] for i in order]
        self._sorted_indices = order

    def window(self, amount: float) -> list[int]:
        low = min(amount - 1.0, amount / self._MAX_RATIO) - 1e-9
        high = max(amount + 1.0, amount * self._MAX_RATIO) + 1e-9
        start = bisect.bisect_left(self._sorted_amounts, low)
        stop = bisect.bisect_right(self._sorted_amounts, high)
        return sorted(self._sorted_indices[start:stop])


class ClusterDetector:
    """
    Detects recurring charge clusters in expense transactions.

    Usage:
        detector = ClusterDetector()
        subscriptions, consumed = detector.detect(expenses)
    """

    def __init__(self, config: dict | None = None):
        self.config = config if config is not None else get_subscription_detection_config()
        cluster_cfg = self.config["cluster"]
        self.min_merchant_similarity = cluster_cfg["min_merchant_similarity"]
        self.min_amount_similarity = cluster_cfg["min_amount_similarity"]
        self.min_members = cluster_cfg["min_members"]
        self.min_frequency_confidence = cluster_cfg["min_frequency_confidence"]
        self.use_amount_blocking = bool(cluster_cfg.get("use_amount_blocking", False))
        self.confidence_tiers = self.config["confidence_tiers"]

        self.normalize = MerchantNormalizer(self.config)
        self.frequency_analyzer = FrequencyAnalyzer(self.config)
        self.categorizer = Categorizer(self.config)

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def detect(
        self, expenses: Sequence[Transaction], id_prefix: str = "fuzzy"
    ) -> tuple[list[DetectedSubscription], set[int]]:
        """
        Run pairwise cluster detection.

        Args:
            expenses: Expense transactions, in a stable order.
            id_prefix: Prefix for generated subscription ids.

        Returns:
            Tuple of (accepted subscriptions, indices into expenses that are
            members of an accepted subscription).
        """
        amounts = [abs(t.amount) for t in expenses]
        index = self._build_index(amounts)

        processed: set[int] = set()
        claimed: set[int] = set()
        results: list[DetectedSubscription] = []

        for i, seed in enumerate(expenses):
            if i in processed:
                continue

            members = [i]
            for j in self._candidates(i, amounts, index):
                if j in processed:
                    continue
                if self._matches(seed, expenses[j], amounts[i], amounts[j]):
                    members.append(j)

            processed.update(members)

            # Filter: minimum members gate
            if len(members) < self.min_members:
                continue

            subscription = self._build_subscription(
                f"{id_prefix}-{len(results)}", seed, [expenses[m] for m in members]
            )
            if subscription is not None:
                results.append(subscription)
                claimed.update(members)

        logger.debug(f"Cluster scan: {len(expenses)} expenses, {len(results)} clusters accepted.")
        return results, claimed

    # -------------------------------------------------------------------------
    # INTERNAL: CANDIDATE SELECTION
    # -------------------------------------------------------------------------

    def _build_index(self, amounts: Sequence[float]) -> AmountWindowIndex | None:
        # A non-positive gate admits any amount pair, so nothing can be pruned.
        if not self.use_amount_blocking or self.min_amount_similarity <= 0:
            return None
        return AmountWindowIndex(amounts)

    @staticmethod
    def _candidates(i: int, amounts: Sequence[float], index: AmountWindowIndex | None) -> Iterable[int]:
        """Later indices worth comparing against seed i, in input order."""
        if index is None:
            return range(i + 1, len(amounts))
        return (j for j in index.window(amounts[i]) if j > i)

    def _matches(self, seed: Transaction, other: Transaction, seed_amount: float, other_amount: float) -> bool:
        merchant_sim = merchant_similarity(seed.name, other.name, self.normalize)
        if merchant_sim < self.min_merchant_similarity:
            return False
        return amount_similarity(seed_amount, other_amount) >= self.min_amount_similarity

    # -------------------------------------------------------------------------
    # INTERNAL: SUBSCRIPTION CONSTRUCTION
    # -------------------------------------------------------------------------

    def _build_subscription(
        self, subscription_id: str, seed: Transaction, members: list[Transaction]
    ) -> DetectedSubscription | None:
        """
        Builds a DetectedSubscription from one candidate group.

        Returns None when the group's cadence is not consistent enough to be
        called recurring.
        """
        ordered = sorted(members, key=lambda t: t.date)
        intervals = FrequencyAnalyzer.intervals_between([t.date for t in ordered])

        frequency, score = self.frequency_analyzer.analyze(intervals)
        if score <= self.min_frequency_confidence:
            logger.debug(
                f"Rejected cluster '{seed.name}' ({len(members)} members): "
                f"{frequency} confidence {score:.2f} too low."
            )
            return None

        amount = float(np.mean([abs(t.amount) for t in ordered]))
        last_charge = ordered[-1].date

        return DetectedSubscription(
            id=subscription_id,
            name=seed.name.upper(),
            merchant_name=seed.name,
            category=self.categorizer.categorize(seed.name),
            amount=amount,
            frequency=frequency,
            monthly_equivalent=monthly_equivalent(amount, frequency),
            last_charge=last_charge,
            next_estimated_charge=self.frequency_analyzer.next_charge(last_charge, frequency),
            confidence=assign_confidence(score, self.confidence_tiers),
            detection_method=f"Fuzzy Pattern ({len(members)} transactions)",
            transactions=ordered,
            average_interval=float(np.mean(intervals)),
        )
