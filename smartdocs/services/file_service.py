"""
Uploaded file text extraction

Turns supporting documents (text, markdown, PDF, Word) into plain text
that is pasted into document generation prompts.
"""

import io
import logging
from typing import Optional

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from smartdocs.config import settings

logger = logging.getLogger(__name__)

TEXT_TYPES = {"text/plain", "text/markdown"}
PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_TYPE = "application/msword"

SUPPORTED_TYPES = TEXT_TYPES | {PDF_TYPE, DOCX_TYPE, DOC_TYPE}

EXTENSION_TYPES = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".pdf": PDF_TYPE,
    ".docx": DOCX_TYPE,
    ".doc": DOC_TYPE,
}


class UnsupportedFileError(ValueError):
    pass


class FileTooLargeError(ValueError):
    pass


def resolve_content_type(filename: str, content_type: Optional[str]) -> str:
    """Trust the declared type when supported, otherwise fall back to the extension"""
    if content_type in SUPPORTED_TYPES:
        return content_type
    name = (filename or "").lower()
    for extension, mapped in EXTENSION_TYPES.items():
        if name.endswith(extension):
            return mapped
    return content_type or "application/octet-stream"


def extract_pdf_text(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc).strip()


def extract_docx_text(data: bytes) -> str:
    document = DocxDocument(io.BytesIO(data))
    return "\n".join(p.text for p in document.paragraphs).strip()


def extract_text(filename: str, content_type: Optional[str], data: bytes) -> str:
    """
    Extract plain text from an uploaded file

    Raises:
        FileTooLargeError: the file exceeds MAX_UPLOAD_SIZE
        UnsupportedFileError: the type is not one of SUPPORTED_TYPES
    """
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise FileTooLargeError(f"File {filename} exceeds the {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB limit")

    kind = resolve_content_type(filename, content_type)
    if kind not in SUPPORTED_TYPES:
        raise UnsupportedFileError(f"Unsupported file type: {content_type or filename}")

    if kind in TEXT_TYPES:
        return data.decode("utf-8", errors="replace")
    if kind == PDF_TYPE:
        return extract_pdf_text(data)
    if kind == DOCX_TYPE:
        return extract_docx_text(data)

    # Legacy binary .doc is not parsed
    return f"[Legacy Word document: {filename}. Please convert it to DOCX or PDF for full text extraction.]"


def format_file_context(filename: str, text: str) -> str:
    return f"File: {filename}\nContent:\n{text}"
