"""
Unit tests for uploaded file text extraction
"""

import io
import pytest
from unittest.mock import patch

import fitz
from docx import Document as DocxDocument

from smartdocs.services.file_service import (
    DOCX_TYPE,
    FileTooLargeError,
    UnsupportedFileError,
    extract_text,
    format_file_context,
    resolve_content_type,
)


def _docx_bytes(*lines):
    document = DocxDocument()
    for line in lines:
        document.add_paragraph(line)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _pdf_bytes(text):
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.mark.unit
class TestFileExtraction:

    def test_resolve_content_type(self):
        assert resolve_content_type("notes.txt", "text/plain") == "text/plain"
        assert resolve_content_type("spec.docx", "application/octet-stream") == DOCX_TYPE
        assert resolve_content_type("image.png", "image/png") == "image/png"
        assert resolve_content_type("blob", None) == "application/octet-stream"

    def test_plain_text(self):
        assert extract_text("notes.md", "text/markdown", "# Goals\nShip fast".encode()) == "# Goals\nShip fast"

    def test_docx(self):
        text = extract_text("spec.docx", DOCX_TYPE, _docx_bytes("First", "Second"))
        assert text == "First\nSecond"

    def test_pdf(self):
        assert "Revenue model" in extract_text("plan.pdf", "application/pdf", _pdf_bytes("Revenue model"))

    def test_legacy_doc_placeholder(self):
        text = extract_text("old.doc", "application/msword", b"\xd0\xcf\x11\xe0")
        assert text.startswith("[Legacy Word document: old.doc.")

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedFileError):
            extract_text("image.png", "image/png", b"\x89PNG")

    def test_too_large(self):
        with patch("smartdocs.services.file_service.settings") as mock_settings:
            mock_settings.MAX_UPLOAD_SIZE = 4
            with pytest.raises(FileTooLargeError):
                extract_text("notes.txt", "text/plain", b"12345")

    def test_format_file_context(self):
        assert format_file_context("a.txt", "hello") == "File: a.txt\nContent:\nhello"
