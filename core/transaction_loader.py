"""
transaction_loader.py
----------------------
Input boundary. Converts external transaction data (bank API records, CSV
exports) into immutable Transaction objects.

All validation happens here so the detection core can treat its input as
given: missing columns, unparseable dates and non-numeric amounts raise
ValueError before anything reaches the engine.
"""

import logging
from datetime import date, datetime
from typing import Any, Iterable, Mapping

import pandas as pd

from core.models import Transaction

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["transaction_id", "account_id", "amount", "date", "name"]


def transactions_from_records(records: Iterable[Mapping[str, Any]]) -> list[Transaction]:
    """
    Builds Transactions from bank-API style dicts.

    Expected keys: transaction_id, account_id, amount, date, name, and
    optionally category (list or None) and merchant_name.

    Raises:
        ValueError: On missing keys or unparseable values.
    """
    transactions = []
    for position, record in enumerate(records):
        missing = [c for c in REQUIRED_COLUMNS if c not in record]
        if missing:
            raise ValueError(f"Missing required columns: {missing} (record {position})")
        transactions.append(_build_transaction(record, position))
    return transactions


def transactions_from_frame(df: pd.DataFrame) -> list[Transaction]:
    """
    Builds Transactions from a DataFrame, preserving row order.

    The category column may hold lists, pipe-separated strings or blanks.

    Raises:
        ValueError: If required columns are missing or values do not parse.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    records = df.to_dict(orient="records")
    return [_build_transaction(record, position) for position, record in enumerate(records)]


def load_transactions_csv(path: str) -> list[Transaction]:
    """Reads a transactions CSV export. Ids are kept as strings."""
    df = pd.read_csv(path, dtype={"transaction_id": str, "account_id": str})
    logger.info(f"Read {len(df):,} rows from {path}.")
    return transactions_from_frame(df)


# -----------------------------------------------------------------------------
# INTERNAL: FIELD PARSING
# -----------------------------------------------------------------------------

def _build_transaction(record: Mapping[str, Any], position: int) -> Transaction:
    try:
        amount = float(record["amount"])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid amount {record['amount']!r} (record {position})") from e
    if pd.isna(amount):
        raise ValueError(f"Missing amount (record {position})")

    merchant_name = record.get("merchant_name")
    return Transaction(
        transaction_id=str(record["transaction_id"]),
        account_id=str(record["account_id"]),
        amount=amount,
        date=_parse_date(record["date"], position),
        name=_clean_text(record["name"]),
        category=_parse_category(record.get("category")),
        merchant_name=_clean_text(merchant_name) or None,
    )


def _parse_date(value: Any, position: int) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = pd.to_datetime(value, format="ISO8601")
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid date {value!r} (record {position})") from e
    if pd.isna(parsed):
        raise ValueError(f"Missing date (record {position})")
    return parsed.date()


def _parse_category(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        parts = [p.strip() for p in value.split("|") if p.strip()]
        return tuple(parts) or None
    if isinstance(value, (list, tuple)):
        parts = [str(p).strip() for p in value if p is not None and str(p).strip()]
        return tuple(parts) or None
    # NaN from an empty CSV cell
    if pd.isna(value):
        return None
    return (str(value),)


def _clean_text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()
