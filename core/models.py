"""
models.py
----------
Core domain models. These are the typed contracts between engine layers.

- Transaction: Immutable input record, as delivered by the bank-data
  integration. Negative amounts are expenses.

- DetectedSubscription: Output of the engine. One per recurring service,
  with cadence, confidence bucket, cost estimates and the transactions
  that support it.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


FREQUENCIES = ("weekly", "biweekly", "monthly", "yearly")

# Confidence buckets are only ever compared through this ordering.
CONFIDENCE_ORDER = {"high": 3, "medium": 2, "low": 1}

# Charge -> monthly cost. Yearly charges are divided instead.
_MONTHLY_MULTIPLIERS = {"weekly": 4.33, "biweekly": 2.17, "monthly": 1.0}


@dataclass(frozen=True)
class Transaction:
    """A single bank transaction. Never mutated by the engine."""

    transaction_id: str
    account_id: str
    amount: float                    # Signed. Negative = money leaving the account.
    date: date
    name: str                        # Raw merchant / description string
    category: Optional[tuple[str, ...]] = None
    merchant_name: Optional[str] = None

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    @property
    def primary_category(self) -> str:
        return self.category[0] if self.category else "Other"


@dataclass
class DetectedSubscription:
    """
    A recurring charge detected in the transaction history.

    Produced by ClusterDetector (two or more matching charges) or
    HeuristicScorer (a single charge that looks like a subscription).
    """

    # Identity
    id: str
    name: str                        # Display name
    merchant_name: str               # Raw name of the seed transaction
    category: str

    # Cost & cadence
    amount: float                    # Representative charge (mean of |amount|)
    frequency: str                   # "weekly" | "biweekly" | "monthly" | "yearly"
    monthly_equivalent: float

    # Timing
    last_charge: date
    next_estimated_charge: date

    # Confidence
    confidence: str                  # "high" | "medium" | "low"
    detection_method: str            # Human-readable, e.g. "Fuzzy Pattern (5 transactions)"

    # Evidence
    transactions: list[Transaction] = field(default_factory=list)
    average_interval: Optional[float] = None

    @property
    def transaction_ids(self) -> list[str]:
        return [t.transaction_id for t in self.transactions]

    @property
    def confidence_rank(self) -> int:
        return CONFIDENCE_ORDER[self.confidence]


def monthly_equivalent(amount: float, frequency: str) -> float:
    """Normalizes a charge to its monthly cost."""
    if frequency == "yearly":
        return amount / 12
    return amount * _MONTHLY_MULTIPLIERS[frequency]


def assign_confidence(score: float, tiers: dict[str, float]) -> str:
    """
    Maps a continuous score to a confidence bucket.

    Tiers are checked in order; the first whose bound the score strictly
    exceeds wins. Scores that clear no bound are "low".
    """
    for tier_name, lower_bound in tiers.items():
        if score > lower_bound:
            return tier_name
    return "low"
