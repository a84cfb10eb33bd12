"""
Analytics Module

Summary figures for the overview cards and the analytics dashboard.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Sequence

import pandas as pd

from .records import STOCK_STATUSES, InventoryRecord, as_utc
from .stock_views import LOW_STOCK, NORMAL, OUT_OF_STOCK, classify_quantity


def records_to_frame(records: Sequence[InventoryRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "stock_number": r.stock_number,
                "batch_number": r.batch_number,
                "quantity": r.quantity,
                "status": r.status,
                "date_added": as_utc(r.date_added) if r.date_added else pd.NaT,
            }
            for r in records
        ],
        columns=["stock_number", "batch_number", "quantity", "status", "date_added"],
    )


def stock_overview(records: Sequence[InventoryRecord]) -> Dict:
    """Totals shown above the stock table. low_stock counts everything under 10, including 0."""
    quantities = [r.quantity for r in records]
    return {
        "total_items": len(records),
        "total_quantity": sum(quantities),
        "low_stock": sum(1 for q in quantities if q < 10),
        "out_of_stock": sum(1 for q in quantities if q == 0),
    }


def compute_analytics(records: Sequence[InventoryRecord], now: Optional[datetime] = None) -> Optional[Dict]:
    """
    Compute dashboard metrics.

    Args:
        records: All stock records
        now: Reference time for the 7 and 30 day windows

    Returns:
        Dict of metrics, or None when there are no records.
    """
    if not records:
        return None

    now = as_utc(now) if now else datetime.now(timezone.utc)
    df = records_to_frame(records)
    dates = pd.to_datetime(df["date_added"], utc=True)

    last_week = now - timedelta(days=7)
    last_month = now - timedelta(days=30)

    by_stock = df.groupby("stock_number")["quantity"].sum().sort_values(ascending=False, kind="stable")
    by_batch = df.groupby("batch_number").size().sort_values(ascending=False, kind="stable")

    classes = df["quantity"].map(classify_quantity).value_counts()
    statuses = df["status"].value_counts()

    total_quantity = int(df["quantity"].sum())

    return {
        "total_items": len(df),
        "total_quantity": total_quantity,
        "recent_additions": int((dates >= last_week).sum()),
        "monthly_additions": int((dates >= last_month).sum()),
        "low_stock_count": int(((df["quantity"] > 0) & (df["quantity"] < 10)).sum()),
        "out_of_stock_count": int((df["quantity"] == 0).sum()),
        "top_stocks": [(key, int(value)) for key, value in by_stock.head(5).items()],
        "top_batches": [(key, int(value)) for key, value in by_batch.head(5).items()],
        "avg_quantity_per_item": total_quantity / len(df),
        "unique_stock_numbers": int(df["stock_number"].nunique()),
        "unique_batch_numbers": int(df["batch_number"].nunique()),
        "status_breakdown": {status: int(statuses.get(status, 0)) for status in STOCK_STATUSES},
        "quantity_classes": {name: int(classes.get(name, 0)) for name in (OUT_OF_STOCK, LOW_STOCK, NORMAL)},
    }
