"""Document model for a loaded source PDF and its page metrics."""

from __future__ import annotations

from dataclasses import dataclass

import fitz


@dataclass(frozen=True, slots=True)
class PageMetrics:
    width_pt: float
    height_pt: float

    def rendered_size(self, scale: float) -> tuple[float, float]:
        return self.width_pt * scale, self.height_pt * scale


@dataclass(slots=True)
class PdfDocument:
    data: bytes
    handle: fitz.Document

    @property
    def page_count(self) -> int:
        return self.handle.page_count

    @property
    def pages(self) -> list[PageMetrics]:
        return [self.page_metrics(index) for index in range(self.handle.page_count)]

    def page_metrics(self, page_index: int) -> PageMetrics:
        rect = self.handle.load_page(page_index).rect
        return PageMetrics(width_pt=float(rect.width), height_pt=float(rect.height))

    def close(self) -> None:
        if not self.handle.is_closed:
            self.handle.close()

    def __enter__(self) -> PdfDocument:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
