"""
Stock Views Module

Search, sort and grouping for the stock tables, and the quantity
classification behind the stock badges.
"""

from datetime import datetime, timezone
from typing import Dict, List, Sequence

from .records import InventoryRecord

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
NORMAL = "normal"

LOW_STOCK_LIMIT = 10

SORT_FIELDS = {
    "batchNumber": lambda r: r.batch_number.lower(),
    "stockNumber": lambda r: r.stock_number.lower(),
    "quantity": lambda r: r.quantity,
    "dateAdded": lambda r: r.date_added or datetime.min.replace(tzinfo=timezone.utc),
}


def classify_quantity(quantity: int) -> str:
    """0 is out of stock, 1-9 is low stock, 10 and above is normal."""
    if quantity <= 0:
        return OUT_OF_STOCK
    if quantity < LOW_STOCK_LIMIT:
        return LOW_STOCK
    return NORMAL


def search_records(records: Sequence[InventoryRecord], term: str) -> List[InventoryRecord]:
    term = (term or "").strip().lower()
    if not term:
        return list(records)
    return [
        r for r in records
        if term in r.batch_number.lower() or term in r.stock_number.lower() or term in r.description.lower()
    ]


def sort_records(records: Sequence[InventoryRecord], field: str = "dateAdded",
                 direction: str = "desc") -> List[InventoryRecord]:
    if field not in SORT_FIELDS:
        raise ValueError(f"Cannot sort by '{field}'")
    return sorted(records, key=SORT_FIELDS[field], reverse=(direction == "desc"))


def filter_and_sort(records: Sequence[InventoryRecord], term: str = "",
                    field: str = "dateAdded", direction: str = "desc") -> List[InventoryRecord]:
    return sort_records(search_records(records, term), field, direction)


def group_records(records: Sequence[InventoryRecord], by: str = "stock") -> List[Dict]:
    """
    Group records by stock number or batch number.

    Returns:
        Groups sorted by key, each with items newest first, total_quantity and item_count.
    """
    if by not in ("stock", "batch"):
        raise ValueError("Group by must be 'stock' or 'batch'")

    groups: Dict[str, Dict] = {}
    for record in records:
        key = record.stock_number if by == "stock" else record.batch_number
        group = groups.setdefault(key, {"key": key, "items": [], "total_quantity": 0, "item_count": 0})
        group["items"].append(record)
        group["total_quantity"] += record.quantity
        group["item_count"] += 1

    result = []
    for key in sorted(groups):
        group = groups[key]
        group["items"] = sort_records(group["items"], "dateAdded", "desc")
        result.append(group)
    return result
