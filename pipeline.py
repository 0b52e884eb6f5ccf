"""
pipeline.py
------------
Main orchestration layer. Wires together:
    1. Expense filter            →  amount < 0
    2. ClusterDetector           →  recurring clusters (2+ charges)
    3. HeuristicScorer           →  single-charge subscriptions from the rest
    4. SubscriptionMerger        →  deduplicated, ranked subscriptions
    5. Output serialization      →  flat DataFrame for CSV export

This is the single entry point for running the engine. Everything else
is internal machinery. A run keeps no state between calls, so one pipeline
instance can serve many independent transaction lists.

Usage:
    from pipeline import SubscriptionPipeline

    pipeline = SubscriptionPipeline()
    subscriptions = pipeline.run(transactions)
"""

import logging
from typing import List, Sequence

import pandas as pd

from config.config_loader import get_subscription_detection_config
from core.cluster_detector import ClusterDetector
from core.heuristic_scorer import HeuristicScorer
from core.merger import SubscriptionMerger
from core.models import DetectedSubscription, Transaction

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = [
    "id", "name", "merchant_name", "category", "amount", "frequency",
    "monthly_equivalent", "confidence", "last_charge", "next_estimated_charge",
    "average_interval", "transaction_count", "transaction_ids", "detection_method",
]


class SubscriptionPipeline:
    """
    End-to-end subscription detection pipeline.

    Orchestrates clustering → heuristic scoring → merge → ranking without
    exposing internal objects to callers.
    """

    def __init__(self, config: dict | None = None, use_amount_blocking: bool | None = None):
        """
        Args:
            config: The subscription_detection config block. Defaults to
                the bundled config.yaml.
            use_amount_blocking: Override the cluster blocking switch.
        """
        self.config = config if config is not None else get_subscription_detection_config()
        if use_amount_blocking is not None:
            self.config = {
                **self.config,
                "cluster": {**self.config["cluster"], "use_amount_blocking": use_amount_blocking},
            }

        self.cluster_detector = ClusterDetector(self.config)
        self.heuristic_scorer = HeuristicScorer(self.config)
        self.merger = SubscriptionMerger(self.config)

        logger.info(
            f"Pipeline initialized. "
            f"Amount blocking: {self.cluster_detector.use_amount_blocking}. "
            f"Heuristic threshold: {self.heuristic_scorer.acceptance_threshold}."
        )

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def run(self, transactions: Sequence[Transaction]) -> List[DetectedSubscription]:
        """
        Run the full detection pipeline.

        Args:
            transactions: Transactions in a stable order (order breaks ties
                in the cluster scan).

        Returns:
            Ranked, deduplicated subscriptions. Empty for empty input.
        """
        logger.info(f"Pipeline starting. Input: {len(transactions):,} transactions.")

        # --- Stage 1: Expenses only ---
        expenses = [t for t in transactions if t.is_expense]
        if not expenses:
            logger.info("No expense transactions. Nothing to detect.")
            return []

        # --- Stage 2: Pairwise clustering ---
        clustered, claimed = self.cluster_detector.detect(expenses)
        logger.info(
            f"Stage 2 complete. Clusters: {len(clustered):,} "
            f"covering {len(claimed):,} of {len(expenses):,} expenses."
        )

        # --- Stage 3: Heuristic scoring of the remainder ---
        remaining = [t for i, t in enumerate(expenses) if i not in claimed]
        single = self.heuristic_scorer.detect(remaining, id_offset=len(clustered))
        logger.info(f"Stage 3 complete. Heuristic detections: {len(single):,}.")

        # --- Stage 4: Merge + rank ---
        merged = self.merger.merge(clustered + single)
        ranked = self.merger.rank(merged)
        logger.info(
            f"Pipeline complete. Subscriptions: {len(ranked):,} "
            f"({len(clustered) + len(single) - len(merged):,} duplicates merged)."
        )

        return ranked

    def run_to_frame(self, transactions: Sequence[Transaction]) -> pd.DataFrame:
        """Runs the pipeline and serializes the result."""
        return self.to_frame(self.run(transactions))

    # -------------------------------------------------------------------------
    # OUTPUT SERIALIZATION
    # -------------------------------------------------------------------------

    @staticmethod
    def to_frame(subscriptions: Sequence[DetectedSubscription]) -> pd.DataFrame:
        """
        Converts DetectedSubscription objects to a flat DataFrame, one row
        per subscription, keeping the ranked order. Money and interval
        columns are rounded to cents here; the objects keep full precision.
        """
        if not subscriptions:
            return pd.DataFrame(columns=OUTPUT_COLUMNS)

        rows = []
        for s in subscriptions:
            rows.append({
                "id": s.id,
                "name": s.name,
                "merchant_name": s.merchant_name,
                "category": s.category,
                "amount": round(s.amount, 2),
                "frequency": s.frequency,
                "monthly_equivalent": round(s.monthly_equivalent, 2),
                "confidence": s.confidence,
                "last_charge": s.last_charge.isoformat(),
                "next_estimated_charge": s.next_estimated_charge.isoformat(),
                "average_interval": (
                    round(s.average_interval, 2) if s.average_interval is not None else None
                ),
                "transaction_count": len(s.transactions),
                "transaction_ids": "|".join(s.transaction_ids),
                "detection_method": s.detection_method,
            })

        return pd.DataFrame(rows, columns=OUTPUT_COLUMNS)
