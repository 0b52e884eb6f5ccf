"""
summary.py
-----------
Aggregate summary handed to the insight generator.

The engine never calls the insight service itself. This module only shapes
the payload it receives: spending totals, the detected subscriptions, cost
breakdowns by category and the largest expenses.
"""

from dataclasses import asdict, dataclass, field
from typing import Sequence

import pandas as pd

from config.config_loader import get_insights_config
from core.models import DetectedSubscription, Transaction


@dataclass
class InsightSummary:
    """Aggregate view of one detection run."""

    total_monthly_spending: float
    total_monthly_subscription_cost: float
    annual_subscription_cost: float
    subscriptions: list[dict] = field(default_factory=list)
    subscription_cost_by_category: dict[str, float] = field(default_factory=dict)
    spending_by_category: dict[str, float] = field(default_factory=dict)
    top_transactions: list[dict] = field(default_factory=list)
    duplicate_categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def build_insight_summary(
    transactions: Sequence[Transaction],
    subscriptions: Sequence[DetectedSubscription],
    top_n: int | None = None,
    config: dict | None = None,
) -> InsightSummary:
    """
    Builds the insight payload for one run.

    Args:
        transactions: The transactions the engine ran on.
        subscriptions: The engine's ranked output.
        top_n: Number of largest expenses to include. Defaults to config.
        config: The insights config block. Defaults to config.yaml.

    Returns:
        InsightSummary. All amounts are positive and rounded to cents.
    """
    cfg = config if config is not None else get_insights_config()
    if top_n is None:
        top_n = cfg["top_transactions"]

    expenses = _expense_frame(transactions)
    subs = _subscription_frame(subscriptions)

    monthly_cost = round(float(subs["monthly_equivalent"].sum()), 2)

    if subs.empty:
        cost_by_category: dict[str, float] = {}
        duplicate_categories: list[str] = []
    else:
        by_category = subs.groupby("category", sort=False)["monthly_equivalent"]
        cost_by_category = {k: round(float(v), 2) for k, v in by_category.sum().items()}
        counts = by_category.count()
        duplicate_categories = [str(k) for k, v in counts.items() if v > 1]

    if expenses.empty:
        spending_by_category: dict[str, float] = {}
        top_transactions: list[dict] = []
    else:
        spending_by_category = {
            k: round(float(v), 2)
            for k, v in expenses.groupby("category", sort=False)["amount"].sum().items()
        }
        top = expenses.sort_values("amount", ascending=False, kind="stable").head(top_n)
        top_transactions = [
            {
                "description": row.description,
                "amount": round(float(row.amount), 2),
                "category": row.category,
                "date": row.date,
            }
            for row in top.itertuples(index=False)
        ]

    return InsightSummary(
        total_monthly_spending=round(float(expenses["amount"].sum()), 2),
        total_monthly_subscription_cost=monthly_cost,
        annual_subscription_cost=round(monthly_cost * cfg["annual_multiplier"], 2),
        subscriptions=[
            {
                "name": s.name,
                "amount": s.amount,
                "frequency": s.frequency,
                "category": s.category,
                "confidence": s.confidence,
            }
            for s in subscriptions
        ],
        subscription_cost_by_category=cost_by_category,
        spending_by_category=spending_by_category,
        top_transactions=top_transactions,
        duplicate_categories=duplicate_categories,
    )


def _expense_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "description": t.name,
            "amount": abs(t.amount),
            "category": t.primary_category,
            "date": t.date.isoformat(),
        }
        for t in transactions
        if t.is_expense
    ]
    return pd.DataFrame(rows, columns=["description", "amount", "category", "date"])


def _subscription_frame(subscriptions: Sequence[DetectedSubscription]) -> pd.DataFrame:
    rows = [{"category": s.category, "monthly_equivalent": s.monthly_equivalent} for s in subscriptions]
    return pd.DataFrame(rows, columns=["category", "monthly_equivalent"])
