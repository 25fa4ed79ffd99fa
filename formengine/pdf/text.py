"""Extract positioned text runs from PDF pages using PyMuPDF."""

from __future__ import annotations

from dataclasses import dataclass

import fitz

from formengine.model.document import PdfDocument


@dataclass(frozen=True, slots=True)
class TextRun:
    """A run of text in document space: ``x``/``baseline_y`` is its origin, bottom-left based."""

    text: str
    x: float
    baseline_y: float
    width: float
    height: float


def page_text_runs(page: fitz.Page) -> list[TextRun]:
    page_height = float(page.rect.height)
    runs: list[TextRun] = []
    text_dict = page.get_text("dict", flags=fitz.TEXT_PRESERVE_WHITESPACE)
    for block in text_dict.get("blocks", []):
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text.strip():
                    continue
                origin_x, origin_y = span["origin"]
                x0, y0, x1, y1 = span["bbox"]
                runs.append(
                    TextRun(
                        text=text,
                        x=float(origin_x),
                        baseline_y=page_height - float(origin_y),
                        width=float(x1 - x0),
                        height=float(y1 - y0),
                    )
                )
    return runs


def extract_text_runs(document: PdfDocument) -> list[list[TextRun]]:
    return [page_text_runs(document.handle.load_page(index)) for index in range(document.page_count)]
