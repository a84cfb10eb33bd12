"""
Stock Service Module

Owns the session's list of stock records and mediates every
create/update/delete against the record store. Operations never raise:
each returns an OperationResult and hands it to the optional listener.
"""

from typing import Callable, Dict, List, Optional

from .logging import get_logger
from .records import (
    InventoryRecord,
    record_from_row,
    record_to_row,
    updates_to_row,
    validate_new_record,
    validate_updates,
)
from .results import CollaboratorError, OperationResult, ValidationError
from .store import RecordStore

logger = get_logger(__name__)

Listener = Callable[[OperationResult], None]


class StockService:
    """Stock records for one session, backed by a RecordStore."""

    def __init__(self, store: RecordStore, listener: Optional[Listener] = None):
        self.store = store
        self.listener = listener
        self.stocks: List[InventoryRecord] = []

    def _emit(self, result: OperationResult) -> OperationResult:
        if self.listener is not None:
            self.listener(result)
        return result

    def get(self, stock_id: str) -> Optional[InventoryRecord]:
        for stock in self.stocks:
            if stock.id == stock_id:
                return stock
        return None

    def refresh(self) -> OperationResult:
        """Reload all stocks, newest first. On failure the current list is kept."""
        try:
            rows = self.store.list(order_by="date_added", descending=True)
        except CollaboratorError as e:
            logger.warning("stocks_fetch_failed", error=str(e))
            return self._emit(OperationResult.collaborator_failure("Failed to fetch stocks"))

        self.stocks = [record_from_row(row) for row in rows]
        logger.debug("stocks_fetched", count=len(self.stocks))
        return self._emit(OperationResult.ok(self.stocks))

    def add_stock(self, fields: Dict) -> OperationResult:
        """
        Validate and create one stock record.

        Args:
            fields: camelCase input (batchNumber, stockNumber, description, quantity, status)

        Returns:
            OperationResult whose value is the created InventoryRecord
        """
        try:
            clean = validate_new_record(fields)
        except ValidationError as e:
            return self._emit(OperationResult.invalid(str(e)))

        try:
            row = self.store.create(record_to_row(clean))
        except CollaboratorError as e:
            logger.warning("stock_create_failed", stock_number=clean["stockNumber"], error=str(e))
            return self._emit(OperationResult.collaborator_failure("Failed to add stock item"))

        record = record_from_row(row)
        self.stocks.insert(0, record)
        logger.info("stock_added", stock_id=record.id, stock_number=record.stock_number)
        return self._emit(OperationResult.ok(record, "Stock item added successfully"))

    def update_stock(self, stock_id: str, updates: Dict) -> OperationResult:
        try:
            clean = validate_updates(updates)
        except ValidationError as e:
            return self._emit(OperationResult.invalid(str(e)))

        try:
            row = self.store.update(stock_id, updates_to_row(clean))
        except CollaboratorError as e:
            logger.warning("stock_update_failed", stock_id=stock_id, error=str(e))
            return self._emit(OperationResult.collaborator_failure("Failed to update stock item"))

        record = record_from_row(row)
        self.stocks = [record if stock.id == stock_id else stock for stock in self.stocks]
        logger.info("stock_updated", stock_id=stock_id, fields=sorted(clean))
        return self._emit(OperationResult.ok(record, "Stock item updated successfully"))

    def delete_stock(self, stock_id: str) -> OperationResult:
        try:
            self.store.delete(stock_id)
        except CollaboratorError as e:
            logger.warning("stock_delete_failed", stock_id=stock_id, error=str(e))
            return self._emit(OperationResult.collaborator_failure("Failed to delete stock item"))

        self.stocks = [stock for stock in self.stocks if stock.id != stock_id]
        logger.info("stock_deleted", stock_id=stock_id)
        return self._emit(OperationResult.ok(stock_id, "Stock item deleted successfully"))
