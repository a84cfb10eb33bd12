"""
Data Export Module

Serializes stock records to CSV, JSON, SQL and spreadsheet downloads.

CSV values are comma-joined without quoting, so a comma inside a
description shifts that row's columns.
"""

import io
import json
import time
from datetime import datetime, timezone
from html import escape
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .logging import get_logger
from .records import InventoryRecord, as_utc
from .results import OperationResult

logger = get_logger(__name__)


EXPORT_COLUMNS = ["Batch Number", "Stock Number", "Description", "Quantity", "Date Added"]

STOCKS_TABLE_SQL = (
    "CREATE TABLE IF NOT EXISTS stocks (\n"
    "  id VARCHAR(36) PRIMARY KEY,\n"
    "  batch_number VARCHAR(255) NOT NULL,\n"
    "  stock_number VARCHAR(255) NOT NULL,\n"
    "  description TEXT,\n"
    "  quantity INTEGER DEFAULT 0,\n"
    "  date_added TIMESTAMP DEFAULT CURRENT_TIMESTAMP\n"
    ");\n"
)

MIME_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
    "sql": "text/sql",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "xls": "application/vnd.ms-excel",
    "txt": "text/plain",
    "doc": "application/msword",
    "html": "text/html",
}


class ExportFile:
    """A rendered download."""

    def __init__(self, filename: str, content, mime_type: str):
        self.filename = filename
        self.content = content
        self.mime_type = mime_type


def unix_ms(now: Optional[datetime] = None) -> int:
    if now is None:
        return int(time.time() * 1000)
    return int(as_utc(now).timestamp() * 1000)


def short_date(value: Optional[datetime]) -> str:
    """US locale short date, e.g. 1/5/2024."""
    if value is None:
        return ""
    return f"{value.month}/{value.day}/{value.year}"


def iso_timestamp(value: Optional[datetime]) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix."""
    if value is None:
        value = datetime.now(timezone.utc)
    value = as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def sql_string(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _export_rows(records: Sequence[InventoryRecord]) -> List[Dict]:
    return [
        {
            "Batch Number": record.batch_number,
            "Stock Number": record.stock_number,
            "Description": record.description,
            "Quantity": record.quantity,
            "Date Added": short_date(record.date_added),
        }
        for record in records
    ]


# ═══════════════════════════════════════════════════════════════
# FORMAT WRITERS
# ═══════════════════════════════════════════════════════════════

def export_csv(records: Sequence[InventoryRecord]) -> str:
    lines = [",".join(EXPORT_COLUMNS)]
    for row in _export_rows(records):
        lines.append(",".join(str(row[column]) for column in EXPORT_COLUMNS))
    return "\n".join(lines)


def export_json(records: Sequence[InventoryRecord]) -> str:
    return json.dumps([record.to_dict() for record in records], indent=2)


def export_sql(records: Sequence[InventoryRecord]) -> str:
    sql = "-- Stock Data Export\n\n"
    sql += STOCKS_TABLE_SQL + "\n"

    for record in records:
        values = ", ".join([
            sql_string(record.id or ""),
            sql_string(record.batch_number),
            sql_string(record.stock_number),
            sql_string(record.description),
            str(int(record.quantity)),
            sql_string(iso_timestamp(record.date_added)),
        ])
        sql += (
            "INSERT INTO stocks (id, batch_number, stock_number, description, quantity, date_added) "
            f"VALUES ({values});\n"
        )
    return sql


def export_excel(records: Sequence[InventoryRecord]) -> bytes:
    """Workbook bytes with a single 'Stock Data' sheet."""
    df = pd.DataFrame(_export_rows(records), columns=EXPORT_COLUMNS)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Stock Data", index=False)
    return buffer.getvalue()


def export_html_table(records: Sequence[InventoryRecord]) -> str:
    """HTML table that spreadsheet programs open as .xls."""
    html = '<html><head><meta charset="utf-8"/></head><body><table>'
    html += "<tr>" + "".join(f"<th>{escape(column)}</th>" for column in EXPORT_COLUMNS) + "</tr>"
    for row in _export_rows(records):
        html += "<tr>" + "".join(f"<td>{escape(str(row[column]))}</td>" for column in EXPORT_COLUMNS) + "</tr>"
    html += "</table></body></html>"
    return html


WRITERS = {
    "csv": export_csv,
    "json": export_json,
    "sql": export_sql,
    "xlsx": export_excel,
    "xls": export_html_table,
}


# ═══════════════════════════════════════════════════════════════
# MAIN EXPORT FUNCTION
# ═══════════════════════════════════════════════════════════════

def export_records(records: Sequence[InventoryRecord], fmt: str,
                   now: Optional[datetime] = None) -> OperationResult:
    """
    Render records as a downloadable file.

    Args:
        records: Stock records in display order
        fmt: One of csv, json, sql, xlsx, xls
        now: Timestamp used for the file name (defaults to the current time)

    Returns:
        OperationResult whose value is an ExportFile named stock-export-<unix-ms>.<fmt>
    """
    fmt = fmt.lower().lstrip(".")
    if fmt not in WRITERS:
        return OperationResult.invalid(f"Unsupported export format '{fmt}'.")

    if not records:
        return OperationResult.invalid("No stock data to export")

    content = WRITERS[fmt](records)
    filename = f"stock-export-{unix_ms(now)}.{fmt}"
    logger.info("stocks_exported", format=fmt, count=len(records), filename=filename)

    suffix = " as SQL" if fmt == "sql" else ""
    return OperationResult.ok(
        ExportFile(filename, content, MIME_TYPES[fmt]),
        f"Exported {len(records)} stock items{suffix}",
    )
