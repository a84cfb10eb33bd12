"""
Data Import Module

Turns pasted CSV text or an uploaded workbook into stock records.

Rows are parsed into an ordered task list first, then created one at a
time through the stock service. A bad row is counted and skipped; it
never aborts the rest of the batch.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .logging import get_logger
from .records import InventoryRecord
from .results import OperationResult

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════
# HEADER MATCHING RULES
# ═══════════════════════════════════════════════════════════════

# Lowercased, trimmed CSV header -> record field
HEADER_SYNONYMS = {
    "batch_number": "batchNumber",
    "batch number": "batchNumber",
    "batch": "batchNumber",
    "stock_number": "stockNumber",
    "stock number": "stockNumber",
    "stock": "stockNumber",
    "description": "description",
    "desc": "description",
    "quantity": "quantity",
    "qty": "quantity",
    "amount": "quantity",
}

# Spreadsheet column headers tried in priority order
SPREADSHEET_HEADERS = {
    "batchNumber": ["Batch Number", "batch_number", "Batch"],
    "stockNumber": ["Stock Number", "stock_number", "Stock"],
    "description": ["Description", "description"],
    "quantity": ["Quantity", "quantity"],
}

MISSING_FIELDS = "Missing required fields"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(value) -> int:
    """Leading-integer parse: '12 boxes' -> 12, 'n/a' -> 0."""
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def map_headers(headers: Sequence[str]) -> List[str]:
    """Normalize headers and translate known synonyms. Unknown headers pass through."""
    mapped = []
    for header in headers:
        key = header.strip().lower()
        mapped.append(HEADER_SYNONYMS.get(key, key))
    return mapped


# ═══════════════════════════════════════════════════════════════
# IMPORT TASKS
# ═══════════════════════════════════════════════════════════════

class ImportTask:
    """One source row: either parsed fields or the reason it cannot be imported."""

    def __init__(self, row_number: int, fields: Optional[Dict] = None, error: Optional[str] = None):
        self.row_number = row_number
        self.fields = fields
        self.error = error


class ImportSummary:
    """Counts and per-row outcomes of an import batch."""

    def __init__(self):
        self.imported = 0
        self.failed = 0
        self.records: List[InventoryRecord] = []
        self.errors: List[str] = []

    @property
    def message(self) -> str:
        return f"Imported {self.imported} items. {self.failed} failed."

    def to_dict(self) -> Dict:
        return {
            "imported": self.imported,
            "failed": self.failed,
            "message": self.message,
            "errors": list(self.errors),
        }


def _row_fields(values: Dict) -> Optional[Dict]:
    if not values.get("batchNumber") or not values.get("stockNumber"):
        return None
    return {
        "batchNumber": values["batchNumber"],
        "stockNumber": values["stockNumber"],
        "description": values.get("description") or "",
        "quantity": values.get("quantity") or 0,
        "status": "available",
    }


def csv_tasks(headers: List[str], lines: Sequence[str]) -> List[ImportTask]:
    """
    Build import tasks from data lines.

    Args:
        headers: Mapped header names, positionally aligned with values
        lines: Data lines, excluding the header line

    Returns:
        One ImportTask per line, numbered from 2 (the header is row 1)
    """
    tasks = []
    for offset, line in enumerate(lines):
        row_number = offset + 2
        values = [value.strip() for value in line.split(",")]

        row = {}
        for index, header in enumerate(headers):
            if index < len(values) and values[index]:
                row[header] = parse_int(values[index]) if header == "quantity" else values[index]

        fields = _row_fields(row)
        if fields is None:
            tasks.append(ImportTask(row_number, error=MISSING_FIELDS))
        else:
            tasks.append(ImportTask(row_number, fields=fields))
    return tasks


def _cell(row: Dict, candidates: List[str]):
    for name in candidates:
        value = row.get(name)
        if value is None or (isinstance(value, float) and pd.isna(value)):
            continue
        if str(value).strip() == "":
            continue
        return str(value).strip()
    return None


def spreadsheet_tasks(df: pd.DataFrame) -> List[ImportTask]:
    """Build import tasks from the rows of a sheet, trying several header spellings per field."""
    tasks = []
    for offset, row in enumerate(df.to_dict(orient="records")):
        row_number = offset + 2
        values = {
            "batchNumber": _cell(row, SPREADSHEET_HEADERS["batchNumber"]),
            "stockNumber": _cell(row, SPREADSHEET_HEADERS["stockNumber"]),
            "description": _cell(row, SPREADSHEET_HEADERS["description"]) or "",
            "quantity": parse_int(_cell(row, SPREADSHEET_HEADERS["quantity"])),
        }
        fields = _row_fields(values)
        if fields is None:
            tasks.append(ImportTask(row_number, error=MISSING_FIELDS))
        else:
            tasks.append(ImportTask(row_number, fields=fields))
    return tasks


def run_import(tasks: Sequence[ImportTask], service) -> ImportSummary:
    """
    Create records for each task strictly in order, one at a time.

    A rejected row (bad fields, validation or store failure) increments
    the failure count; processing continues with the next task.
    """
    summary = ImportSummary()
    for task in tasks:
        if task.error is not None:
            summary.failed += 1
            summary.errors.append(f"Row {task.row_number}: {task.error}")
            continue

        result = service.add_stock(task.fields)
        if result:
            summary.imported += 1
            summary.records.append(result.value)
        else:
            summary.failed += 1
            summary.errors.append(f"Row {task.row_number}: {result.message}")
            logger.debug("import_row_failed", row=task.row_number, reason=result.message)

    return summary


# ═══════════════════════════════════════════════════════════════
# MAIN IMPORT FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def import_csv(text: str, service) -> OperationResult:
    """
    Import pasted CSV text.

    Args:
        text: Header line followed by data lines
        service: StockService (or anything with add_stock returning OperationResult)

    Returns:
        OperationResult whose value is an ImportSummary. Validation errors
        are returned before any row is processed.
    """
    if not text or not text.strip():
        return OperationResult.invalid("Please paste CSV data to import")

    lines = text.strip().split("\n")
    headers = map_headers(lines[0].split(","))

    if "batchNumber" not in headers or "stockNumber" not in headers:
        return OperationResult.invalid("CSV must contain batch_number and stock_number columns")

    summary = run_import(csv_tasks(headers, lines[1:]), service)
    logger.info("csv_import_finished", imported=summary.imported, failed=summary.failed)
    return OperationResult.ok(summary, summary.message)


def read_first_sheet(uploaded_file) -> pd.DataFrame:
    """Read the first sheet with every cell as text."""
    return pd.read_excel(uploaded_file, sheet_name=0, engine="openpyxl", dtype=str)


def import_excel(uploaded_file, service, file_name: Optional[str] = None) -> OperationResult:
    """
    Import an uploaded workbook.

    Args:
        uploaded_file: Path or file-like object (e.g. a Streamlit UploadedFile)
        service: StockService
        file_name: Name used for the extension check when uploaded_file has none

    Returns:
        OperationResult whose value is an ImportSummary
    """
    if uploaded_file is None:
        return OperationResult.invalid("No file uploaded.")

    name = file_name or getattr(uploaded_file, "name", None) or str(uploaded_file)
    if Path(name).suffix.lower() not in (".xlsx", ".xls"):
        return OperationResult.invalid("Unsupported file format. Please upload an Excel file (.xlsx).")

    try:
        df = read_first_sheet(uploaded_file)
    except Exception as e:
        logger.warning("excel_read_failed", file=name, error=str(e))
        return OperationResult.invalid(
            "Unable to read the Excel file. Please ensure it is not corrupted or password-protected."
        )

    summary = run_import(spreadsheet_tasks(df), service)
    logger.info("excel_import_finished", file=name, imported=summary.imported, failed=summary.failed)
    return OperationResult.ok(summary, summary.message)
