"""
Spreadsheet Grid Module

A small editable grid of text cells with CSV and HTML (.xls) export.
"""

from datetime import datetime
from html import escape
from typing import Dict, List, Optional, Tuple

from .data_export import MIME_TYPES, ExportFile, unix_ms
from .results import OperationResult

MIN_ROWS = 10
MIN_COLS = 6


def column_label(col: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    label = ""
    col += 1
    while col > 0:
        col, remainder = divmod(col - 1, 26)
        label = chr(65 + remainder) + label
    return label


class SpreadsheetGrid:
    """Sparse grid; unset cells read as empty strings."""

    def __init__(self, rows: int = MIN_ROWS, cols: int = MIN_COLS):
        self.rows = rows
        self.cols = cols
        self.cells: Dict[Tuple[int, int], str] = {}

    def get(self, row: int, col: int) -> str:
        return self.cells.get((row, col), "")

    def set(self, row: int, col: int, value: str) -> None:
        if row < 0 or col < 0:
            raise IndexError("Cell coordinates must be non-negative")
        self.cells[(row, col)] = value
        self.rows = max(self.rows, row + 1)
        self.cols = max(self.cols, col + 1)

    def labels(self) -> List[str]:
        return [column_label(c) for c in range(self.cols)]

    def values(self) -> List[List[str]]:
        return [[self.get(r, c) for c in range(self.cols)] for r in range(self.rows)]

    def to_csv(self) -> str:
        return "\n".join(",".join(row) for row in self.values())

    def to_html_xls(self) -> str:
        html = '<html><head><meta charset="utf-8"/></head><body><table>'
        for row in self.values():
            html += "<tr>" + "".join(f"<td>{escape(value)}</td>" for value in row) + "</tr>"
        html += "</table></body></html>"
        return html

    @classmethod
    def from_csv(cls, text: str) -> "SpreadsheetGrid":
        lines = text.split("\n")
        first = lines[0].split(",") if lines and lines[0] else []
        grid = cls(rows=max(len(lines), MIN_ROWS), cols=max(len(first), MIN_COLS))
        # Cells past the first line's width are kept but not shown
        for r, line in enumerate(lines):
            for c, value in enumerate(line.split(",")):
                grid.cells[(r, c)] = value.strip()
        return grid

    def export_file(self, fmt: str = "csv", now: Optional[datetime] = None) -> OperationResult:
        if fmt == "csv":
            content = self.to_csv()
        elif fmt == "xls":
            content = self.to_html_xls()
        else:
            return OperationResult.invalid(f"Unsupported spreadsheet format '{fmt}'.")
        filename = f"spreadsheet-{unix_ms(now)}.{fmt}"
        return OperationResult.ok(ExportFile(filename, content, MIME_TYPES[fmt]), "Spreadsheet saved")
