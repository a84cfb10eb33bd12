"""
Tests for Data Export

Run with: python -m pytest test_data_export.py -v
"""

import io
import json
from datetime import datetime, timezone

import pandas as pd
import pytest

from stockpail.data_export import (
    export_csv,
    export_excel,
    export_html_table,
    export_json,
    export_records,
    export_sql,
    iso_timestamp,
    short_date,
)
from stockpail.records import InventoryRecord
from stockpail.results import VALIDATION_ERROR


ADDED = datetime(2024, 1, 5, 10, 30, 15, 250000, tzinfo=timezone.utc)


def _record(**overrides):
    values = dict(id="a1", batch_number="BT001", stock_number="SK001",
                  description="Sample Item", quantity=50, status="available", date_added=ADDED)
    values.update(overrides)
    return InventoryRecord(**values)


class TestCsvExport:
    """Test CSV rendering."""

    def test_header_and_row(self):
        text = export_csv([_record()])
        assert text.split("\n") == [
            "Batch Number,Stock Number,Description,Quantity,Date Added",
            "BT001,SK001,Sample Item,50,1/5/2024",
        ]

    def test_rows_keep_input_order(self):
        text = export_csv([_record(stock_number="B"), _record(stock_number="A")])
        lines = text.split("\n")
        assert lines[1].split(",")[1] == "B"
        assert lines[2].split(",")[1] == "A"

    def test_commas_are_not_escaped(self):
        line = export_csv([_record(description="red, large")]).split("\n")[1]
        assert line == "BT001,SK001,red, large,50,1/5/2024"

    def test_short_date(self):
        assert short_date(datetime(2023, 12, 25)) == "12/25/2023"
        assert short_date(None) == ""


class TestJsonExport:
    """Test JSON rendering."""

    def test_camel_case_keys_and_indent(self):
        text = export_json([_record()])
        assert text.startswith("[\n  {\n    \"id\"")
        data = json.loads(text)
        assert data[0]["batchNumber"] == "BT001"
        assert data[0]["stockNumber"] == "SK001"
        assert data[0]["quantity"] == 50
        assert data[0]["dateAdded"].startswith("2024-01-05T10:30:15")


class TestSqlExport:
    """Test SQL rendering."""

    def test_create_statement(self):
        sql = export_sql([_record()])
        assert sql.startswith("-- Stock Data Export\n\nCREATE TABLE IF NOT EXISTS stocks (\n")
        assert "  id VARCHAR(36) PRIMARY KEY,\n" in sql
        assert "  quantity INTEGER DEFAULT 0,\n" in sql
        assert "  date_added TIMESTAMP DEFAULT CURRENT_TIMESTAMP\n);" in sql

    def test_insert_statement(self):
        sql = export_sql([_record()])
        assert (
            "INSERT INTO stocks (id, batch_number, stock_number, description, quantity, date_added) "
            "VALUES ('a1', 'BT001', 'SK001', 'Sample Item', 50, '2024-01-05T10:30:15.250Z');"
        ) in sql

    def test_single_quotes_are_doubled(self):
        sql = export_sql([_record(description="O'Brien's crate")])
        assert "'O''Brien''s crate'" in sql

    def test_one_insert_per_record(self):
        sql = export_sql([_record(id="1"), _record(id="2"), _record(id="3")])
        assert sql.count("INSERT INTO stocks") == 3

    def test_iso_timestamp_of_naive_value_is_utc(self):
        assert iso_timestamp(datetime(2024, 2, 1, 8, 0, 0)) == "2024-02-01T08:00:00.000Z"


class TestSpreadsheetExport:
    """Test workbook and HTML-table rendering."""

    def test_workbook_columns(self):
        data = export_excel([_record(), _record(stock_number="SK002", quantity=3)])
        df = pd.read_excel(io.BytesIO(data), sheet_name="Stock Data", engine="openpyxl")
        assert list(df.columns) == ["Batch Number", "Stock Number", "Description", "Quantity", "Date Added"]
        assert df["Quantity"].tolist() == [50, 3]

    def test_html_table(self):
        html = export_html_table([_record(description="<b>")])
        assert html.startswith("<html>")
        assert "<th>Batch Number</th>" in html
        assert "<td>&lt;b&gt;</td>" in html


class TestExportRecords:
    """Test the export entry point."""

    def test_filename_uses_unix_ms(self):
        result = export_records([_record()], "csv", now=ADDED)
        assert result.is_ok
        assert result.value.filename == f"stock-export-{int(ADDED.timestamp() * 1000)}.csv"
        assert result.value.mime_type == "text/csv"
        assert result.message == "Exported 1 stock items"

    def test_sql_message(self):
        result = export_records([_record()], "sql", now=ADDED)
        assert result.message == "Exported 1 stock items as SQL"
        assert result.value.filename.endswith(".sql")

    def test_empty_list_is_rejected(self):
        result = export_records([], "json")
        assert result.status == VALIDATION_ERROR
        assert result.message == "No stock data to export"

    def test_unknown_format(self):
        result = export_records([_record()], "yaml")
        assert result.status == VALIDATION_ERROR


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
