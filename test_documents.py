"""
Tests for Document Handling

Run with: python -m pytest test_documents.py -v
"""

import pytest

from stockpail.documents import (
    DocumentService,
    document_text,
    edited_base_name,
    export_edited,
    parse_document,
)
from stockpail.results import COLLABORATOR_ERROR, VALIDATION_ERROR, CollaboratorError
from stockpail.store import LocalFileStore, SqlDocumentStore


@pytest.fixture
def documents(tmp_path):
    store = SqlDocumentStore(f"sqlite:///{tmp_path / 'documents.db'}")
    files = LocalFileStore(tmp_path / "bucket")
    return DocumentService(store, files)


class TestParseDocument:
    """Test best-effort parsing by file type."""

    def test_csv(self):
        parsed = parse_document("stock.csv", b"\xef\xbb\xbfsku,qty\nA1,5\nB2\n", "text/csv")
        assert parsed["type"] == "csv"
        assert parsed["columns"] == ["sku", "qty"]
        assert parsed["rows"] == 2
        assert parsed["content"] == [{"sku": "A1", "qty": "5"}, {"sku": "B2", "qty": ""}]

    def test_csv_by_extension(self):
        assert parse_document("STOCK.CSV", b"a\n1")["rows"] == 1

    def test_excel_is_detected_not_parsed(self):
        parsed = parse_document("book.xlsx", b"PK...")
        assert parsed["type"] == "excel"
        assert "Please use CSV format" in parsed["error"]

    def test_pdf_is_detected_not_parsed(self):
        parsed = parse_document("manifest.pdf", b"%PDF-1.4", "application/pdf")
        assert parsed["type"] == "pdf"
        assert "not yet implemented" in parsed["error"]

    def test_image(self):
        parsed = parse_document("label.png", b"\x89PNG", "image/png")
        assert parsed["type"] == "image"
        assert "error" not in parsed

    def test_unsupported(self):
        parsed = parse_document("notes.docx", b"...", "application/msword")
        assert parsed["error"] == "Unsupported file type"


class TestLocalFileStore:
    """Test the directory-backed file store."""

    def test_round_trip(self, tmp_path):
        files = LocalFileStore(tmp_path)
        files.upload("1-a.txt", b"hello")
        assert files.download("1-a.txt") == b"hello"
        files.remove(["1-a.txt"])
        with pytest.raises(CollaboratorError):
            files.download("1-a.txt")

    def test_duplicate_upload(self, tmp_path):
        files = LocalFileStore(tmp_path)
        files.upload("1-a.txt", b"hello")
        with pytest.raises(CollaboratorError, match="already exists"):
            files.upload("1-a.txt", b"again")

    def test_path_outside_root(self, tmp_path):
        files = LocalFileStore(tmp_path / "bucket")
        with pytest.raises(CollaboratorError):
            files.upload("../escape.txt", b"x")


class TestDocumentService:
    """Test upload, download and delete."""

    def test_upload_csv_is_processed(self, documents):
        result = documents.upload("stock.csv", b"sku,qty\nA1,5", "text/csv", category="Manifests")
        assert result.is_ok, result.message
        assert result.message == "Document uploaded successfully"
        document = result.value
        assert document["processed"] is True
        assert document["parsed_data"]["rows"] == 1
        assert document["category"] == "Manifests"
        assert document["file_path"].endswith("-stock.csv")
        assert document["file_size"] == len(b"sku,qty\nA1,5")

    def test_upload_unsupported_is_stored_unprocessed(self, documents):
        document = documents.upload("notes.docx", b"...", "application/msword").value
        assert not document["processed"]
        assert document["parsed_data"] is None

    def test_excel_placeholder_is_saved(self, documents):
        document = documents.upload("book.xlsx", b"PK", "").value
        assert document["processed"] is True
        assert document["parsed_data"]["type"] == "excel"

    def test_upload_requires_a_name(self, documents):
        assert documents.upload("", b"x").status == VALIDATION_ERROR

    def test_download(self, documents):
        document = documents.upload("stock.csv", b"sku\nA1", "text/csv").value
        assert documents.download(document).value == b"sku\nA1"

    def test_delete(self, documents):
        document = documents.upload("stock.csv", b"sku\nA1", "text/csv").value
        result = documents.delete(document["id"], document["file_path"])
        assert result.is_ok
        assert documents.documents == []
        assert documents.store.list() == []
        assert documents.download(document).status == COLLABORATOR_ERROR

    def test_refresh_lists_newest_first(self, documents):
        documents.upload("a.csv", b"x\n1", "text/csv")
        documents.upload("b.csv", b"x\n1", "text/csv")
        documents.documents = []
        documents.refresh()
        assert [d["file_name"] for d in documents.documents] == ["b.csv", "a.csv"]

    def test_parser_is_injectable(self, tmp_path):
        seen = []

        def parser(name, data, content_type):
            seen.append(name)
            return {"type": "csv", "content": []}

        service = DocumentService(
            SqlDocumentStore("sqlite://"), LocalFileStore(tmp_path), parser=parser
        )
        assert service.upload("x.csv", b"", "text/csv").is_ok
        assert seen == ["x.csv"]


class _CountingFiles(LocalFileStore):
    """File store that counts downloads."""

    def __init__(self, root):
        super().__init__(root)
        self.downloads = 0

    def download(self, path):
        self.downloads += 1
        return super().download(path)


class TestPreparedDownloads:
    """File bytes are read only on request."""

    def test_listing_reads_no_files(self, tmp_path):
        files = _CountingFiles(tmp_path / "bucket")
        service = DocumentService(SqlDocumentStore("sqlite://"), files)
        service.upload("a.csv", b"x\n1", "text/csv")
        service.upload("b.csv", b"x\n2", "text/csv")
        service.refresh()
        assert files.downloads == 0
        assert service.prepared == {}

    def test_prepare_reads_once(self, tmp_path):
        files = _CountingFiles(tmp_path / "bucket")
        service = DocumentService(SqlDocumentStore("sqlite://"), files)
        document = service.upload("a.csv", b"x\n1", "text/csv").value

        assert service.prepare_download(document).value == b"x\n1"
        assert service.prepare_download(document).value == b"x\n1"
        assert files.downloads == 1
        assert service.prepared[document["id"]] == b"x\n1"

    def test_delete_drops_prepared_bytes(self, tmp_path):
        service = DocumentService(SqlDocumentStore("sqlite://"), LocalFileStore(tmp_path / "bucket"))
        document = service.upload("a.csv", b"x\n1", "text/csv").value
        service.prepare_download(document)
        service.delete(document["id"], document["file_path"])
        assert document["id"] not in service.prepared

    def test_failed_prepare_is_not_cached(self, tmp_path):
        service = DocumentService(SqlDocumentStore("sqlite://"), LocalFileStore(tmp_path / "bucket"))
        missing = {"id": "gone", "file_path": "0-gone.csv"}
        assert service.prepare_download(missing).status == COLLABORATOR_ERROR
        assert service.prepared == {}


class TestDocumentEditor:
    """Test editable text and edited-document export."""

    def test_text_from_string_content(self):
        assert document_text({"parsed_data": {"type": "pdf", "content": "line one\nline two"}}) == "line one\nline two"

    def test_structured_content_is_json(self):
        document = {"parsed_data": {"type": "csv", "content": [{"sku": "A1"}], "rows": 1}}
        assert document_text(document) == '[\n  {\n    "sku": "A1"\n  }\n]'

    def test_falls_back_to_whole_parse_result(self):
        document = {"parsed_data": {"type": "csv", "error": "Unsupported file type"}}
        assert '"error": "Unsupported file type"' in document_text(document)

    def test_unparsed_document_is_empty(self):
        assert document_text({"parsed_data": None}) == ""

    def test_base_name_strips_last_extension_only(self):
        assert edited_base_name("report.final.csv") == "report.final"
        assert edited_base_name("notes") == "notes"

    def test_text_export(self):
        export = export_edited({"file_name": "manifest.pdf"}, "a\nb", "txt").value
        assert export.filename == "manifest-edited.txt"
        assert export.content == "a\nb"
        assert export.mime_type == "text/plain"

    def test_word_export_breaks_lines(self):
        export = export_edited({"file_name": "manifest.pdf"}, "a & b\nc", "doc").value
        assert export.filename == "manifest-edited.doc"
        assert export.mime_type == "application/msword"
        assert "<body>a &amp; b<br/>c</body>" in export.content

    def test_html_export(self):
        export = export_edited({"file_name": "stock.list.csv"}, "<qty> 5", "html").value
        assert export.filename == "stock.list-edited.html"
        assert export.mime_type == "text/html"
        assert export.content.startswith("<!DOCTYPE html>")
        assert "<title>stock.list</title>" in export.content
        assert "<pre>&lt;qty&gt; 5</pre>" in export.content

    def test_unknown_format(self):
        assert export_edited({"file_name": "a.txt"}, "x", "pdf").status == VALIDATION_ERROR


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
