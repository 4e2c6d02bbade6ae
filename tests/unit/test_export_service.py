"""
Unit tests for document export helpers
"""

import io
import pytest
from docx import Document as DocxDocument

from smartdocs.services.export_service import (
    build_docx,
    build_print_html,
    markdown_to_html,
    safe_filename,
    word_count,
)


@pytest.mark.unit
class TestExportHelpers:

    def test_safe_filename(self):
        assert safe_filename("My BRD: v2") == "My_BRD__v2"
        assert safe_filename("") == "document"

    def test_word_count(self):
        assert word_count("one two\nthree") == 3
        assert word_count(None) == 0

    def test_markdown_to_html(self):
        rendered = markdown_to_html("# Title\n## Scope\nSome **bold** text")
        assert rendered == "<h1>Title</h1><br><h2>Scope</h2><br>Some <strong>bold</strong> text"

    def test_markdown_to_html_escapes_markup(self):
        rendered = markdown_to_html("<script>alert(1)</script>")
        assert "<script>" not in rendered
        assert "&lt;script&gt;" in rendered

    def test_print_html_wraps_body(self):
        page = build_print_html("Plan <v1>", "# Heading")
        assert "<title>Plan &lt;v1&gt;</title>" in page
        assert "<h1>Heading</h1>" in page


@pytest.mark.unit
class TestDocxExport:

    def test_headings_and_bold_lines(self):
        data = build_docx("# Title\n\n## Section\nplain line\n**Important**")

        document = DocxDocument(io.BytesIO(data))
        paragraphs = [(p.style.name, p.text) for p in document.paragraphs]

        assert ("Heading 1", "Title") in paragraphs
        assert ("Heading 2", "Section") in paragraphs
        assert ("Normal", "plain line") in paragraphs
        bold = [p for p in document.paragraphs if p.text == "Important"][0]
        assert bold.runs[0].bold is True

    def test_returns_zip_bytes(self):
        assert build_docx("").startswith(b"PK")
