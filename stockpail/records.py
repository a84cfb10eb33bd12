"""
Inventory Records Module

The in-memory stock record, its validation rules, and conversion between
the camelCase record shape and the snake_case database row shape.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

from .results import ValidationError


STOCK_STATUSES = ("available", "pending", "shipped", "missing", "contaminated")
DEFAULT_STATUS = "available"

# camelCase record key -> snake_case row column
FIELD_TO_COLUMN = {
    "id": "id",
    "batchNumber": "batch_number",
    "stockNumber": "stock_number",
    "description": "description",
    "quantity": "quantity",
    "status": "status",
    "dateAdded": "date_added",
}

EDITABLE_FIELDS = ("batchNumber", "stockNumber", "description", "quantity", "status")


class InventoryRecord:
    """One stock line as held by the application."""

    def __init__(self, id: Optional[str], batch_number: str, stock_number: str,
                 description: str = "", quantity: int = 0,
                 status: str = DEFAULT_STATUS, date_added: Optional[datetime] = None):
        self.id = id
        self.batch_number = batch_number
        self.stock_number = stock_number
        self.description = description
        self.quantity = quantity
        self.status = status
        self.date_added = date_added

    def to_dict(self) -> Dict:
        """In-memory shape, camelCase keys, JSON-safe values."""
        return {
            "id": self.id,
            "batchNumber": self.batch_number,
            "stockNumber": self.stock_number,
            "description": self.description,
            "quantity": self.quantity,
            "status": self.status,
            "dateAdded": self.date_added.isoformat() if self.date_added else None,
        }

    def __eq__(self, other):
        if not isinstance(other, InventoryRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"<InventoryRecord(batch='{self.batch_number}', stock='{self.stock_number}', qty={self.quantity})>"


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


# ═══════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════

def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number.")
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative.")
    return quantity


def _validate_status(status: str) -> str:
    if status not in STOCK_STATUSES:
        raise ValidationError(f"Unknown status '{status}'. Expected one of: {', '.join(STOCK_STATUSES)}.")
    return status


def validate_new_record(fields: Dict) -> Dict:
    """
    Validate a camelCase input dict for record creation.

    Returns:
        A normalized copy with defaults applied.

    Raises:
        ValidationError: if batch or stock number is empty, or quantity/status is invalid.
    """
    batch_number = str(fields.get("batchNumber") or "").strip()
    stock_number = str(fields.get("stockNumber") or "").strip()

    if not batch_number or not stock_number:
        raise ValidationError("Batch number and stock number are required.")

    return {
        "batchNumber": batch_number,
        "stockNumber": stock_number,
        "description": str(fields.get("description") or ""),
        "quantity": _validate_quantity(fields.get("quantity") or 0),
        "status": _validate_status(fields.get("status") or DEFAULT_STATUS),
    }


def validate_updates(updates: Dict) -> Dict:
    """Validate a partial camelCase update. Only keys present are checked."""
    unknown = [key for key in updates if key not in EDITABLE_FIELDS]
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(unknown)}.")

    clean = {}
    for key, value in updates.items():
        if key in ("batchNumber", "stockNumber"):
            value = str(value or "").strip()
            if not value:
                raise ValidationError("Batch number and stock number are required.")
        elif key == "description":
            value = str(value or "")
        elif key == "quantity":
            value = _validate_quantity(value)
        elif key == "status":
            value = _validate_status(value)
        clean[key] = value
    return clean


# ═══════════════════════════════════════════════════════════════
# SHAPE CONVERSION
# ═══════════════════════════════════════════════════════════════

def record_from_row(row: Dict) -> InventoryRecord:
    """Convert a snake_case database row into a record."""
    return InventoryRecord(
        id=row.get("id"),
        batch_number=row.get("batch_number") or "",
        stock_number=row.get("stock_number") or "",
        description=row.get("description") or "",
        quantity=int(row.get("quantity") or 0),
        status=row.get("status") or DEFAULT_STATUS,
        date_added=_parse_timestamp(row.get("date_added")),
    )


def record_to_row(fields: Dict) -> Dict:
    """Convert a camelCase input dict to a row for insertion. id and date_added are left to the store."""
    return {
        "batch_number": fields["batchNumber"],
        "stock_number": fields["stockNumber"],
        "description": fields.get("description", ""),
        "quantity": fields.get("quantity", 0),
        "status": fields.get("status", DEFAULT_STATUS),
    }


def updates_to_row(updates: Dict) -> Dict:
    """Map only the keys that are present."""
    return {FIELD_TO_COLUMN[key]: value for key, value in updates.items() if key in FIELD_TO_COLUMN}
