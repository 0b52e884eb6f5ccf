"""
heuristic_scorer.py
--------------------
Single-transaction subscription scoring.

Catches subscriptions that have been charged only once in the window (new
sign-ups, yearly plans, short histories), which the cluster detector can
never see. Each transaction accumulates an additive score from independent
name and price signals:

    Name signals     known service keyword, confirmed-service allow-list,
                     "subscription", "premium", "plus", "pro", "membership",
                     student plans, cloud storage plans
    Price signals    typical subscription price window, common price points,
                     whole-dollar or .99 pricing

A deny-list of one-time purchase keywords (rides, delivery, P2P transfers,
books) rejects a transaction before scoring. Weights, lists and the
acceptance threshold come from config.yaml.
"""

import logging
from typing import Iterable, Sequence

import pandas as pd

from config.config_loader import get_subscription_detection_config
from core.categorizer import Categorizer
from core.models import DetectedSubscription, Transaction, assign_confidence
from core.normalizer import MerchantNormalizer

logger = logging.getLogger(__name__)


class HeuristicScorer:
    """
    Scores unclustered expense transactions for subscription likelihood.

    Usage:
        scorer = HeuristicScorer()
        subscriptions = scorer.detect(remaining_expenses)
    """

    def __init__(self, config: dict | None = None):
        self.config = config if config is not None else get_subscription_detection_config()
        heuristic_cfg = self.config["heuristic"]
        self.acceptance_threshold = heuristic_cfg["acceptance_threshold"]
        self.deny_keywords = [k.lower() for k in heuristic_cfg["one_time_purchase_keywords"]]
        self.confirmed_services = [s.lower() for s in heuristic_cfg["confirmed_services"]]
        self.weights = heuristic_cfg["weights"]
        self.price_min = heuristic_cfg["price_window"]["min"]
        self.price_max = heuristic_cfg["price_window"]["max"]
        self.common_prices = {float(p) for p in heuristic_cfg["common_prices"]}
        self.confidence_tiers = self.config["confidence_tiers"]

        self.normalize = MerchantNormalizer(self.config)
        self.categorizer = Categorizer(self.config)

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def detect(
        self, expenses: Iterable[Transaction], id_prefix: str = "heuristic", id_offset: int = 0
    ) -> list[DetectedSubscription]:
        """
        Score each transaction and keep those at or above the threshold.

        Args:
            expenses: Expense transactions not already part of a cluster.
            id_prefix: Prefix for generated subscription ids.
            id_offset: First id number, so ids stay unique across detectors.

        Returns:
            One single-transaction DetectedSubscription per accepted charge.
        """
        results: list[DetectedSubscription] = []

        for transaction in expenses:
            score, reasons = self.score(transaction)
            if score < self.acceptance_threshold:
                continue

            logger.debug(f"Heuristic hit '{transaction.name}' score={score:.2f}: {'; '.join(reasons)}")
            results.append(
                self._build_subscription(f"{id_prefix}-{id_offset + len(results)}", transaction, score)
            )

        return results

    def score(self, transaction: Transaction) -> tuple[float, list[str]]:
        """
        Computes the subscription score for one transaction.

        Returns:
            Tuple of (score, reason strings). Deny-listed transactions score
            0.0 with a single rejection reason.
        """
        name = self.normalize(transaction.name)
        amount = abs(transaction.amount)

        blocked = next((k for k in self.deny_keywords if k in name), None)
        if blocked is not None:
            return 0.0, [f"One-time purchase keyword '{blocked}'"]

        w = self.weights
        score = 0.0
        reasons: list[str] = []

        def add(weight_key: str, reason: str) -> None:
            nonlocal score
            score += w[weight_key]
            reasons.append(f"{reason} (+{w[weight_key]})")

        # --- Name signals ---
        known_category = self.categorizer.match_known_service(name)
        if known_category is not None:
            add("known_service", f"Known {known_category} service")
        if any(service in name for service in self.confirmed_services):
            add("confirmed_service", "Confirmed subscription service")

        is_student = "student" in name
        if "subscription" in name:
            add("subscription", 'Contains "subscription"')
        if "premium" in name and not is_student:
            add("premium", 'Contains "premium"')
        if "plus" in name and not is_student:
            add("plus", 'Contains "plus"')
        if "pro" in name and not is_student:
            add("pro", 'Contains "pro"')
        if "membership" in name:
            add("membership", 'Contains "membership"')
        if is_student and ("subscription" in name or "premium" in name):
            add("student_subscription", "Student subscription service")
        if ("storage" in name or "cloud" in name) and (
            "subscription" in name or "premium" in name or "pro" in name
        ):
            add("cloud_storage", "Cloud/storage service")

        # --- Price signals ---
        if self.price_min <= amount <= self.price_max:
            add("price_window", "Typical subscription amount range")
        if amount in self.common_prices:
            add("common_price", f"Common subscription amount ${amount}")
        if self._is_psychological_price(amount):
            add("psychological_price", "Round/psychological pricing")

        # Weights are decimal tenths; strip float accumulation noise.
        return round(score, 4), reasons

    # -------------------------------------------------------------------------
    # INTERNAL
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_psychological_price(amount: float) -> bool:
        return amount % 1 == 0 or str(amount).endswith(".99")

    def _build_subscription(self, subscription_id: str, transaction: Transaction, score: float) -> DetectedSubscription:
        amount = abs(transaction.amount)
        next_charge = (pd.Timestamp(transaction.date) + pd.DateOffset(months=1)).date()

        return DetectedSubscription(
            id=subscription_id,
            name=transaction.name.upper(),
            merchant_name=transaction.name,
            category=self.categorizer.categorize(transaction.name),
            amount=amount,
            frequency="monthly",
            monthly_equivalent=amount,
            last_charge=transaction.date,
            next_estimated_charge=next_charge,
            confidence=assign_confidence(score, self.confidence_tiers),
            detection_method=f"Heuristic Analysis ({score * 100:.0f}% match)",
            transactions=[transaction],
            average_interval=30.0,
        )


def score_transactions(scorer: HeuristicScorer, transactions: Sequence[Transaction]) -> pd.DataFrame:
    """
    Scores every transaction and returns a table for tuning the weights.

    Columns: transaction_id, name, amount, score, accepted, reasons.
    """
    rows = []
    for t in transactions:
        score, reasons = scorer.score(t)
        rows.append({
            "transaction_id": t.transaction_id,
            "name": t.name,
            "amount": abs(t.amount),
            "score": score,
            "accepted": score >= scorer.acceptance_threshold,
            "reasons": " | ".join(reasons),
        })
    return pd.DataFrame(rows, columns=["transaction_id", "name", "amount", "score", "accepted", "reasons"])
