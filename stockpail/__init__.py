"""
Stock Pail

Inventory tracking: stock records, import/export, schema design,
documents and analytics.
"""

from .results import (
    OperationResult,
    StockPailError,
    ValidationError,
    CollaboratorError
)
from .records import InventoryRecord, STOCK_STATUSES
from .stock_service import StockService
from .store import SqlRecordStore, SqlDocumentStore, LocalFileStore
from .data_import import import_csv, import_excel, ImportSummary
from .data_export import export_records, ExportFile
from .schema_designer import (
    SchemaDesigner,
    SchemaTable,
    SchemaField,
    generate_sql,
    import_sql
)
from .stock_views import classify_quantity, filter_and_sort, group_records
from .analytics import compute_analytics, stock_overview
from .documents import DocumentService, parse_document
from .spreadsheet import SpreadsheetGrid

__all__ = [
    "OperationResult",
    "StockPailError",
    "ValidationError",
    "CollaboratorError",
    "InventoryRecord",
    "STOCK_STATUSES",
    "StockService",
    "SqlRecordStore",
    "SqlDocumentStore",
    "LocalFileStore",
    "import_csv",
    "import_excel",
    "ImportSummary",
    "export_records",
    "ExportFile",
    "SchemaDesigner",
    "SchemaTable",
    "SchemaField",
    "generate_sql",
    "import_sql",
    "classify_quantity",
    "filter_and_sort",
    "group_records",
    "compute_analytics",
    "stock_overview",
    "DocumentService",
    "parse_document",
    "SpreadsheetGrid"
]
