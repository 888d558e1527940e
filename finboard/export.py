import csv
import logging
from datetime import date
from typing import Iterable, Optional

import pandas as pd

from finboard.domain import DEFAULT_CURRENCY, Transaction
from finboard.errors import ExportError

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Date", "Type", "Category", "Description", "Amount", "Currency"]


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = []
    for t in transactions:
        rows.append({
            "id": t.id,
            "date": pd.to_datetime(t.date, errors="coerce"),
            "type": t.type,
            "category": t.category,
            "description": t.description,
            "amount": float(t.amount or 0),
            "currency": t.currency or DEFAULT_CURRENCY,
        })
    return pd.DataFrame(rows, columns=["id", "date", "type", "category", "description", "amount", "currency"])


def amount_cell(amount) -> str:
    """Number as JavaScript prints it: 600.0 -> "600", 12.5 -> "12.5"."""
    amount = float(amount or 0)
    return str(int(amount)) if amount.is_integer() else repr(amount)


def export_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            [t.date or "", t.type or "", t.category or "", t.description or "", amount_cell(t.amount), t.currency or DEFAULT_CURRENCY]
            for t in transactions
        ],
        columns=CSV_COLUMNS,
    )


def default_filename(today: Optional[date] = None) -> str:
    return f"transactions_{(today or date.today()).isoformat()}.csv"


def export_to_csv(transactions: Iterable[Transaction], path: Optional[str] = None, today: Optional[date] = None) -> str:
    """Write every transaction to CSV with all cells quoted; returns the path written."""
    df = export_frame(transactions)
    if df.empty:
        raise ExportError("No data to export")
    path = path or default_filename(today)
    try:
        df.to_csv(path, index=False, quoting=csv.QUOTE_ALL)
    except OSError as e:
        logger.error("CSV export to %s failed: %s", path, e)
        raise ExportError(f"Failed to export CSV: {e}") from e
    logger.info("exported %d transactions to %s", len(df), path)
    return path
