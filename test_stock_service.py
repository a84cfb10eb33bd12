"""
Tests for the Stock Service

Run with: python -m pytest test_stock_service.py -v
"""

import pytest

from stockpail.records import (
    InventoryRecord,
    record_from_row,
    record_to_row,
    updates_to_row,
    validate_new_record,
)
from stockpail.results import (
    COLLABORATOR_ERROR,
    CollaboratorError,
    OK,
    VALIDATION_ERROR,
    ValidationError,
)
from stockpail.stock_service import StockService


class _RecordingStore:
    """Store fake that records every call and can be told to fail."""

    def __init__(self, rows=None, fail=False):
        self.rows = list(rows or [])
        self.fail = fail
        self.calls = []

    def list(self, order_by="date_added", descending=True):
        self.calls.append("list")
        if self.fail:
            raise CollaboratorError("database unavailable")
        return list(self.rows)

    def create(self, row):
        self.calls.append("create")
        if self.fail:
            raise CollaboratorError("database unavailable")
        saved = dict(row, id="new-id", date_added="2024-01-05T10:00:00Z")
        self.rows.insert(0, saved)
        return saved

    def update(self, record_id, fields):
        self.calls.append("update")
        raise CollaboratorError("database unavailable")

    def delete(self, record_id):
        self.calls.append("delete")
        raise CollaboratorError("database unavailable")


def _fields(**overrides):
    fields = {"batchNumber": "BT001", "stockNumber": "SK001", "description": "Bolts", "quantity": 10}
    fields.update(overrides)
    return fields


class TestRecordConversion:
    """Test camelCase <-> snake_case shape conversion."""

    def test_record_to_row(self):
        row = record_to_row(validate_new_record(_fields()))
        assert row == {
            "batch_number": "BT001",
            "stock_number": "SK001",
            "description": "Bolts",
            "quantity": 10,
            "status": "available",
        }

    def test_record_from_row(self):
        record = record_from_row({
            "id": "x", "batch_number": "B", "stock_number": "S", "description": None,
            "quantity": None, "status": None, "date_added": "2024-01-05T10:00:00Z",
        })
        assert record.description == ""
        assert record.quantity == 0
        assert record.status == "available"
        assert record.date_added.year == 2024
        assert record.date_added.utcoffset().total_seconds() == 0

    def test_updates_map_only_present_keys(self):
        assert updates_to_row({"quantity": 3}) == {"quantity": 3}
        assert updates_to_row({"stockNumber": "S2", "status": "pending"}) == {
            "stock_number": "S2", "status": "pending"
        }

    def test_validation(self):
        with pytest.raises(ValidationError):
            validate_new_record(_fields(batchNumber="   "))
        with pytest.raises(ValidationError):
            validate_new_record(_fields(quantity=-1))
        with pytest.raises(ValidationError):
            validate_new_record(_fields(quantity="5"))
        with pytest.raises(ValidationError):
            validate_new_record(_fields(status="lost"))

    def test_whitespace_is_stripped(self):
        clean = validate_new_record(_fields(batchNumber="  BT001 ", stockNumber="\tSK001"))
        assert clean["batchNumber"] == "BT001"
        assert clean["stockNumber"] == "SK001"


class TestStockServiceCrud:
    """Test create/update/delete against a real SQLite store."""

    def test_add_stock(self, service):
        result = service.add_stock(_fields())
        assert result.status == OK
        assert result.message == "Stock item added successfully"
        record = result.value
        assert isinstance(record, InventoryRecord)
        assert record.id
        assert record.date_added is not None
        assert service.stocks == [record]

    def test_new_records_are_prepended(self, service):
        service.add_stock(_fields(stockNumber="FIRST"))
        service.add_stock(_fields(stockNumber="SECOND"))
        assert [s.stock_number for s in service.stocks] == ["SECOND", "FIRST"]

    def test_refresh_returns_newest_first(self, service):
        service.add_stock(_fields(stockNumber="FIRST"))
        service.add_stock(_fields(stockNumber="SECOND"))
        service.stocks = []

        result = service.refresh()
        assert result.is_ok
        assert [s.stock_number for s in service.stocks] == ["SECOND", "FIRST"]

    def test_update_stock(self, service):
        record = service.add_stock(_fields()).value
        result = service.update_stock(record.id, {"quantity": 3, "status": "pending"})
        assert result.is_ok
        assert service.get(record.id).quantity == 3
        assert service.get(record.id).status == "pending"
        assert service.get(record.id).batch_number == "BT001"

    def test_update_every_editable_field(self, service):
        record = service.add_stock(_fields()).value
        result = service.update_stock(record.id, {
            "batchNumber": " BT900 ",
            "stockNumber": "SK900",
            "description": "Lock washers",
            "quantity": 0,
            "status": "missing",
        })
        assert result.is_ok, result.message
        updated = service.get(record.id)
        assert (updated.batch_number, updated.stock_number, updated.description) == ("BT900", "SK900", "Lock washers")
        assert (updated.quantity, updated.status) == (0, "missing")
        service.refresh()
        assert service.get(record.id).stock_number == "SK900"

    def test_update_rejects_blank_stock_number(self, service):
        record = service.add_stock(_fields()).value
        assert service.update_stock(record.id, {"stockNumber": "  "}).status == VALIDATION_ERROR
        assert service.get(record.id).stock_number == "SK001"

    def test_delete_stock(self, service, store):
        record = service.add_stock(_fields()).value
        result = service.delete_stock(record.id)
        assert result.is_ok
        assert service.stocks == []
        assert store.list() == []

    def test_unknown_id_is_collaborator_error(self, service):
        assert service.update_stock("missing", {"quantity": 1}).status == COLLABORATOR_ERROR
        assert service.delete_stock("missing").status == COLLABORATOR_ERROR


class TestStockServiceFailures:
    """Test validation and collaborator failure paths."""

    def test_invalid_input_never_reaches_store(self):
        store = _RecordingStore()
        service = StockService(store)
        result = service.add_stock(_fields(stockNumber=""))
        assert result.status == VALIDATION_ERROR
        assert store.calls == []
        assert service.stocks == []

    def test_invalid_update_never_reaches_store(self):
        store = _RecordingStore()
        service = StockService(store)
        assert service.update_stock("x", {"quantity": -5}).status == VALIDATION_ERROR
        assert service.update_stock("x", {"dateAdded": "2024-01-01"}).status == VALIDATION_ERROR
        assert store.calls == []

    def test_failed_refresh_keeps_stale_list(self):
        store = _RecordingStore()
        service = StockService(store)
        service.add_stock(_fields())
        store.fail = True

        result = service.refresh()
        assert result.status == COLLABORATOR_ERROR
        assert result.message == "Failed to fetch stocks"
        assert len(service.stocks) == 1

    def test_failed_create_leaves_list_unchanged(self):
        service = StockService(_RecordingStore(fail=True))
        result = service.add_stock(_fields())
        assert result.status == COLLABORATOR_ERROR
        assert result.message == "Failed to add stock item"
        assert service.stocks == []

    def test_failed_update_and_delete_leave_list_unchanged(self):
        service = StockService(_RecordingStore())
        record = service.add_stock(_fields()).value
        assert service.update_stock(record.id, {"quantity": 1}).status == COLLABORATOR_ERROR
        assert service.delete_stock(record.id).status == COLLABORATOR_ERROR
        assert service.stocks == [record]
        assert service.stocks[0].quantity == 10

    def test_listener_sees_every_result(self):
        seen = []
        service = StockService(_RecordingStore(), listener=seen.append)
        service.add_stock(_fields())
        service.add_stock(_fields(batchNumber=""))
        assert [r.status for r in seen] == [OK, VALIDATION_ERROR]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
