"""
Document export - markdown to Word, print-ready HTML and previews
"""

import html
import io
import re
from pathlib import Path

from docx import Document as DocxDocument
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
HTML_CONTENT_TYPE = "text/html"
MARKDOWN_CONTENT_TYPE = "text/markdown"

SUPPORTED_FORMATS = ("docx", "pdf")

HEADING_PREFIXES = (("### ", 3), ("## ", 2), ("# ", 1))

_templates = Environment(
    loader=FileSystemLoader(Path(__file__).parent.parent / "templates" / "export"),
    autoescape=select_autoescape(['html', 'xml']),
)


def safe_filename(title: str) -> str:
    """Replace everything but ASCII letters and digits with underscores"""
    return re.sub(r"[^a-zA-Z0-9]", "_", title or "document")


def word_count(content: str) -> int:
    return len((content or "").split())


def markdown_to_html(markdown: str) -> str:
    """
    Headings, bold and line breaks only

    The text is escaped first, so the result is safe to embed.
    """
    text = html.escape(markdown or "")
    text = re.sub(r"^### (.+)$", r"<h3>\1</h3>", text, flags=re.MULTILINE)
    text = re.sub(r"^## (.+)$", r"<h2>\1</h2>", text, flags=re.MULTILINE)
    text = re.sub(r"^# (.+)$", r"<h1>\1</h1>", text, flags=re.MULTILINE)
    text = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", text)
    return text.replace("\n", "<br>")


def build_print_html(title: str, content: str) -> str:
    template = _templates.get_template("print.html")
    return template.render(title=title, body=Markup(markdown_to_html(content)))


def build_docx(content: str) -> bytes:
    """Convert markdown lines to a Word document and return the file bytes"""
    document = DocxDocument()

    for line in (content or "").split("\n"):
        if not line.strip():
            document.add_paragraph("")
            continue

        for prefix, level in HEADING_PREFIXES:
            if line.startswith(prefix):
                document.add_heading(line[len(prefix):], level=level)
                break
        else:
            stripped = line.strip()
            if len(stripped) > 4 and stripped.startswith("**") and stripped.endswith("**"):
                paragraph = document.add_paragraph()
                run = paragraph.add_run(stripped[2:-2])
                run.bold = True
            else:
                document.add_paragraph(line)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()
