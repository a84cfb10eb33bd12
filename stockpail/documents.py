"""
Documents Module

Document upload, download and deletion against the file store and the
document metadata store, the best-effort document parser, and text
export of edited document content.
"""

import json
import re
from html import escape
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .data_export import MIME_TYPES, ExportFile, unix_ms
from .logging import get_logger
from .results import CollaboratorError, OperationResult

logger = get_logger(__name__)

EXCEL_TYPES = (
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)


# ═══════════════════════════════════════════════════════════════
# DOCUMENT PARSING
# ═══════════════════════════════════════════════════════════════

def parse_csv_document(text: str) -> Dict:
    lines = text.strip().split("\n")
    headers = [header.strip() for header in lines[0].split(",")]

    content = []
    for line in lines[1:]:
        values = [value.strip() for value in line.split(",")]
        content.append({
            header: (values[index] if index < len(values) else "")
            for index, header in enumerate(headers)
        })

    return {"type": "csv", "content": content, "rows": len(content), "columns": headers}


def parse_document(file_name: str, data: bytes, content_type: str = "") -> Dict:
    """
    Best-effort parse of an uploaded file.

    Returns:
        Dict with 'type' and either 'content' (plus 'rows'/'columns' for CSV) or 'error'.
        Excel and PDF are recognized but not parsed.
    """
    name = file_name.lower()
    content_type = content_type or ""

    if content_type == "text/csv" or name.endswith(".csv"):
        try:
            return parse_csv_document(data.decode("utf-8-sig"))
        except UnicodeDecodeError as e:
            return {"type": "csv", "error": str(e)}

    if content_type in EXCEL_TYPES or name.endswith((".xlsx", ".xls")):
        return {
            "type": "excel",
            "content": {"message": "Excel file detected. For best results, please convert to CSV format."},
            "error": "Excel parsing requires client-side library. Please use CSV format.",
        }

    if content_type == "application/pdf" or name.endswith(".pdf"):
        return {
            "type": "pdf",
            "content": {"message": "PDF file uploaded successfully"},
            "error": "PDF text extraction not yet implemented. File stored successfully.",
        }

    if content_type.startswith("image/"):
        return {"type": "image", "content": {"message": "Image file uploaded successfully"}}

    return {"type": "csv", "error": "Unsupported file type"}


# ═══════════════════════════════════════════════════════════════
# DOCUMENT SERVICE
# ═══════════════════════════════════════════════════════════════

class DocumentService:
    """Uploaded documents for one session."""

    def __init__(self, store, files, parser: Callable[[str, bytes, str], Dict] = parse_document):
        self.store = store
        self.files = files
        self.parser = parser
        self.documents: List[Dict] = []
        self.prepared: Dict[str, bytes] = {}

    def refresh(self) -> OperationResult:
        try:
            self.documents = self.store.list()
        except CollaboratorError as e:
            logger.warning("documents_fetch_failed", error=str(e))
            return OperationResult.collaborator_failure("Failed to load documents")
        return OperationResult.ok(self.documents)

    def upload(self, file_name: str, data: bytes, content_type: str = "",
               category: Optional[str] = None, description: Optional[str] = None) -> OperationResult:
        """
        Store a file, record its metadata and parse it.

        The parsed result is saved on the metadata row only when the parser
        produced content; a parse failure does not fail the upload.
        """
        file_name = Path(file_name or "").name
        if not file_name:
            return OperationResult.invalid("No file uploaded.")

        file_path = f"{unix_ms()}-{file_name}"
        try:
            self.files.upload(file_path, data)
            document = self.store.create({
                "file_name": file_name,
                "file_path": file_path,
                "file_size": len(data),
                "file_type": content_type,
                "category": category or None,
                "description": description or None,
            })
        except CollaboratorError as e:
            logger.warning("document_upload_failed", file=file_name, error=str(e))
            return OperationResult.collaborator_failure(str(e) or "Failed to upload document")

        parsed = self.parser(file_name, data, content_type)
        if parsed.get("content") is not None:
            try:
                document = self.store.update(document["id"], {"processed": True, "parsed_data": parsed})
            except CollaboratorError as e:
                logger.warning("document_parse_save_failed", document_id=document["id"], error=str(e))
        elif parsed.get("error"):
            logger.info("document_not_parsed", document_id=document["id"], reason=parsed["error"])

        self.documents.insert(0, document)
        logger.info("document_uploaded", document_id=document["id"], file=file_name, type=parsed.get("type"))
        return OperationResult.ok(document, "Document uploaded successfully")

    def download(self, document: Dict) -> OperationResult:
        try:
            data = self.files.download(document["file_path"])
        except CollaboratorError as e:
            logger.warning("document_download_failed", document_id=document.get("id"), error=str(e))
            return OperationResult.collaborator_failure("Failed to download document")
        return OperationResult.ok(data, "Document downloaded")

    def prepare_download(self, document: Dict) -> OperationResult:
        """Read a document's bytes once and keep them until it is deleted."""
        if document["id"] in self.prepared:
            return OperationResult.ok(self.prepared[document["id"]], "Document downloaded")
        result = self.download(document)
        if result:
            self.prepared[document["id"]] = result.value
        return result

    def delete(self, document_id: str, file_path: str) -> OperationResult:
        try:
            self.files.remove([file_path])
            self.store.delete(document_id)
        except CollaboratorError as e:
            logger.warning("document_delete_failed", document_id=document_id, error=str(e))
            return OperationResult.collaborator_failure("Failed to delete document")

        self.documents = [d for d in self.documents if d.get("id") != document_id]
        self.prepared.pop(document_id, None)
        return OperationResult.ok(document_id, "Document deleted")


# ═══════════════════════════════════════════════════════════════
# DOCUMENT EDITOR
# ═══════════════════════════════════════════════════════════════

EDIT_FORMATS = ("txt", "doc", "html")

_EXTENSION = re.compile(r"\.[^/.]+$")


def document_text(document: Dict) -> str:
    """
    Editable text for a stored document.

    String content is used as is. Anything else is shown as indented JSON,
    preferring parsed content, then a 'data' entry, then the whole parse result.
    """
    parsed = document.get("parsed_data")
    if not parsed:
        return ""
    content = parsed.get("content")
    if isinstance(content, str) and content:
        return content
    if content:
        return json.dumps(content, indent=2)
    return json.dumps(parsed.get("data") or parsed, indent=2)


def edited_base_name(file_name: str) -> str:
    """'report.final.csv' -> 'report.final'"""
    return _EXTENSION.sub("", file_name)


def export_edited(document: Dict, text: str, fmt: str = "txt") -> OperationResult:
    """
    Render edited document text as a download named <base>-edited.<fmt>.

    Args:
        document: Document metadata row (needs 'file_name')
        text: The edited text
        fmt: txt (plain text), doc (HTML that word processors open) or html (printable page)

    Returns:
        OperationResult whose value is an ExportFile
    """
    if fmt not in EDIT_FORMATS:
        return OperationResult.invalid(f"Unsupported document format '{fmt}'.")

    base = edited_base_name(document.get("file_name") or "document")
    text = text or ""

    if fmt == "txt":
        content = text
    elif fmt == "doc":
        body = escape(text).replace("\n", "<br/>")
        content = f'<html><head><meta charset="utf-8"/></head><body>{body}</body></html>'
    else:
        content = (
            "<!DOCTYPE html>\n"
            "<html>\n"
            "<head>\n"
            '  <meta charset="utf-8"/>\n'
            f"  <title>{escape(base)}</title>\n"
            "  <style>\n"
            "    body { font-family: Arial, sans-serif; padding: 40px; max-width: 800px; margin: 0 auto; }\n"
            "    pre { white-space: pre-wrap; }\n"
            "  </style>\n"
            "</head>\n"
            f"<body><pre>{escape(text)}</pre></body>\n"
            "</html>\n"
        )

    filename = f"{base}-edited.{fmt}"
    logger.info("document_edit_exported", document_id=document.get("id"), filename=filename)
    return OperationResult.ok(ExportFile(filename, content, MIME_TYPES[fmt]), "Document downloaded successfully")
