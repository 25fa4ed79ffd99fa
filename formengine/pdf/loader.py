"""PDF loading helpers."""

from __future__ import annotations

from pathlib import Path

import fitz

from formengine.model.document import PdfDocument


class DocumentLoadError(RuntimeError):
    """Raised when a PDF cannot be opened."""


def load_pdf_bytes(data: bytes) -> PdfDocument:
    if not data:
        raise DocumentLoadError("PDF data is empty")

    try:
        handle = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise DocumentLoadError("Failed to open PDF") from exc

    if handle.page_count == 0:
        handle.close()
        raise DocumentLoadError("PDF has no pages")

    return PdfDocument(data=bytes(data), handle=handle)


def load_pdf(path: str | Path) -> PdfDocument:
    source_path = Path(path)
    if not source_path.exists():
        raise DocumentLoadError(f"File not found: {source_path}")

    try:
        data = source_path.read_bytes()
    except OSError as exc:
        raise DocumentLoadError(f"Failed to read PDF: {source_path}") from exc
    return load_pdf_bytes(data)
