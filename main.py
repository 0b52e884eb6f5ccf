"""
main.py
--------
Entry point for the Subscription Detection Engine.

Reads a transactions CSV, runs the detection pipeline, and writes the
detected subscriptions to the outputs/ folder.

Usage (from the project root):
    python main.py --input transactions.csv

    # With optional arguments:
    python main.py --input transactions.csv --min-confidence medium
    python main.py --input transactions.csv --summary-json outputs/summary.json
    python main.py --input transactions.csv --explain
"""

import sys
import os
import argparse
import json
import logging
from datetime import datetime

# Ensure project root is on path (for runs from any working directory)
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from core.heuristic_scorer import score_transactions
from core.models import CONFIDENCE_ORDER
from core.transaction_loader import load_transactions_csv
from insights.summary import build_insight_summary
from pipeline import SubscriptionPipeline


# =============================================================================
# LOGGING SETUP
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("main")


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Subscription Detection Engine: find recurring charges in bank transactions."
    )
    parser.add_argument(
        "--input", type=str, required=True,
        help="Path to input transactions CSV (transaction_id, account_id, amount, date, name, category)."
    )
    parser.add_argument(
        "--min-confidence", type=str, default="low",
        choices=["high", "medium", "low"],
        help="Minimum confidence to include in output. Default: low (keep everything)."
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Output directory. Defaults to outputs/ in project root."
    )
    parser.add_argument(
        "--summary-json", type=str, default=None,
        help="Also write the insight summary as JSON to this path."
    )
    parser.add_argument(
        "--use-blocking", action="store_true", default=False,
        help="Prefilter cluster candidates by amount window."
    )
    parser.add_argument(
        "--explain", action="store_true", default=False,
        help="Also write per-transaction heuristic scores for tuning."
    )
    return parser.parse_args(argv)


# =============================================================================
# MAIN
# =============================================================================

def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    # --- Resolve paths ---
    output_dir = args.output_dir or os.path.join(PROJECT_ROOT, "outputs")
    os.makedirs(output_dir, exist_ok=True)

    # --- Load transactions ---
    logger.info(f"Loading transactions from: {args.input}")
    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        transactions = load_transactions_csv(args.input)
    except ValueError as e:
        logger.error(f"Invalid transactions file: {e}")
        return 1

    # --- Run pipeline ---
    pipeline = SubscriptionPipeline(use_amount_blocking=args.use_blocking or None)
    subscriptions = pipeline.run(transactions)

    # --- Apply confidence filter ---
    min_rank = CONFIDENCE_ORDER[args.min_confidence]
    filtered = [s for s in subscriptions if s.confidence_rank >= min_rank]
    logger.info(
        f"After filtering (>= {args.min_confidence}): {len(filtered):,} subscriptions. "
        f"Filtered out: {len(subscriptions) - len(filtered):,}."
    )

    # --- Output: Subscriptions ---
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    subscriptions_path = os.path.join(output_dir, f"subscriptions_{timestamp}.csv")
    SubscriptionPipeline.to_frame(filtered).to_csv(subscriptions_path, index=False)
    logger.info(f"Subscriptions saved to: {subscriptions_path}")

    # --- Optional: heuristic score table ---
    if args.explain:
        scores_path = os.path.join(output_dir, f"heuristic_scores_{timestamp}.csv")
        expenses = [t for t in transactions if t.is_expense]
        score_transactions(pipeline.heuristic_scorer, expenses).to_csv(scores_path, index=False)
        logger.info(f"Heuristic scores saved to: {scores_path}")

    # --- Optional: insight summary ---
    summary = build_insight_summary(transactions, filtered)
    if args.summary_json:
        with open(args.summary_json, "w") as f:
            json.dump(summary.to_dict(), f, indent=2)
        logger.info(f"Insight summary saved to: {args.summary_json}")

    _print_summary(filtered, summary.total_monthly_subscription_cost)
    return 0


def _print_summary(subscriptions: list, monthly_cost: float):
    """Prints a clean summary table to the console."""
    if not subscriptions:
        print("\n  No subscriptions detected.\n")
        return

    print("\n" + "=" * 80)
    print("  SUBSCRIPTION DETECTION SUMMARY")
    print("=" * 80)

    print("\n  Detected Subscriptions:")
    print("  " + "-" * 76)
    for s in subscriptions:
        print(
            f"    {s.name[:30]:30s}  ${s.amount:>8,.2f}/{s.frequency:8s}  "
            f"${s.monthly_equivalent:>8,.2f}/mo  {s.confidence:6s}  {s.category}"
        )

    print(f"\n  Confidence Mix:")
    print("  " + "-" * 76)
    for tier in ["high", "medium", "low"]:
        count = sum(1 for s in subscriptions if s.confidence == tier)
        pct = count / len(subscriptions) * 100
        print(f"    {tier:10s}  {count:>5,}  ({pct:.1f}%)")

    print(f"\n  Monthly subscription cost: ${monthly_cost:,.2f}  (${monthly_cost * 12:,.2f}/year)")
    print("=" * 80 + "\n")


if __name__ == "__main__":
    sys.exit(main())
