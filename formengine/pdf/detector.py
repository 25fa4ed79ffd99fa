"""Detect candidate form fields in an uploaded PDF.

Detection runs page by page. A page that carries AcroForm widgets yields one
field per usable widget. A page without any widget falls back to matching its
text against a table of common form labels and proposing a field to the right
of each match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Iterable, Sequence
import uuid

from formengine.config import (
    DEFAULT_SCALE,
    DETECT_BASELINE_LIFT,
    DETECT_DUPLICATE_TOLERANCE,
    DETECT_FIELD_SIZE,
    DETECT_LABEL_GAP,
    DETECT_SIGNATURE_SIZE,
    MIN_FIELD_SIZE,
)
from formengine.model.document import PageMetrics, PdfDocument
from formengine.model.field import FieldType, FormField, field_name_from_label
from formengine.model.geometry import DeviceRect, clamp_device_rect, to_percent_geom
from formengine.pdf.importer import PageWidgets, PdfImportError, WidgetAnnotation, import_widgets
from formengine.pdf.text import TextRun, page_text_runs

logger = logging.getLogger(__name__)

WIDGET_TYPES = {
    "Tx": FieldType.TEXT,
    "Btn": FieldType.CHECKBOX,
    "Ch": FieldType.TEXT,
    "Sig": FieldType.SIGNATURE,
}


@dataclass(frozen=True, slots=True)
class FieldPattern:
    pattern: re.Pattern[str]
    field_type: FieldType
    label: str


def _pattern(expr: str, field_type: FieldType, label: str) -> FieldPattern:
    return FieldPattern(re.compile(expr, re.IGNORECASE), field_type, label)


# Order matters: the first pattern that matches a run wins.
FIELD_PATTERNS: tuple[FieldPattern, ...] = (
    _pattern(r"name", FieldType.TEXT, "Name"),
    _pattern(r"email", FieldType.EMAIL, "Email"),
    _pattern(r"phone|tel|mobile", FieldType.TEL, "Phone"),
    _pattern(r"date|dob|birth", FieldType.DATE, "Date"),
    _pattern(r"signature", FieldType.SIGNATURE, "Signature"),
    _pattern(r"address", FieldType.TEXT, "Address"),
    _pattern(r"city", FieldType.TEXT, "City"),
    _pattern(r"state", FieldType.TEXT, "State"),
    _pattern(r"zip|postal", FieldType.TEXT, "Zip Code"),
    _pattern(r"ssn|social security", FieldType.TEXT, "SSN"),
    _pattern(r"employer", FieldType.TEXT, "Employer"),
    _pattern(r"occupation|job|position", FieldType.TEXT, "Occupation"),
)


@dataclass(slots=True)
class PageContent:
    metrics: PageMetrics
    widgets: PageWidgets = field(default_factory=PageWidgets)
    text_runs: list[TextRun] = field(default_factory=list)


@dataclass(slots=True)
class DetectionResult:
    fields: list[FormField] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def __len__(self) -> int:
        return len(self.fields)


class FieldDetector:
    def __init__(
        self,
        scale: float = DEFAULT_SCALE,
        patterns: Sequence[FieldPattern] = FIELD_PATTERNS,
    ) -> None:
        if scale <= 0:
            raise ValueError(f"Render scale must be positive, got {scale}")
        self.scale = scale
        self.patterns = tuple(patterns)

    def detect(self, document: PdfDocument) -> DetectionResult:
        try:
            widgets = import_widgets(document.data)
        except PdfImportError as exc:
            logger.warning("Widget extraction failed, using text matching only: %s", exc)
            widgets = []

        pages: list[PageContent] = []
        for index in range(document.page_count):
            page_widgets = widgets[index] if index < len(widgets) else PageWidgets()
            page = document.handle.load_page(index)
            content = PageContent(
                metrics=PageMetrics(width_pt=float(page.rect.width), height_pt=float(page.rect.height)),
                widgets=page_widgets,
            )
            if page_widgets.annotation_count == 0:
                content.text_runs = page_text_runs(page)
            pages.append(content)
        return self.detect_pages(pages)

    def detect_pages(self, pages: Iterable[PageContent]) -> DetectionResult:
        run_token = uuid.uuid4().hex[:8]
        detected: list[FormField] = []

        for page_number, content in enumerate(pages, start=1):
            before = len(detected)
            if content.widgets.annotation_count > 0:
                for widget in content.widgets.widgets:
                    detected.append(self._widget_field(widget, content.metrics, page_number, detected, run_token))
                source = "widgets"
            else:
                self._match_text(content, page_number, detected, run_token)
                source = "text"
            logger.debug(
                "Page %d: %d field(s) detected from %s",
                page_number,
                len(detected) - before,
                source,
            )

        if detected:
            logger.info("Detected %d form field(s)", len(detected))
        else:
            logger.info("No form fields detected")
        return DetectionResult(fields=detected)

    def _widget_field(
        self,
        widget: WidgetAnnotation,
        metrics: PageMetrics,
        page_number: int,
        detected: list[FormField],
        run_token: str,
    ) -> FormField:
        render_w, render_h = metrics.rendered_size(self.scale)
        rect = clamp_device_rect(
            DeviceRect(
                x=widget.rect.x * self.scale,
                y=render_h - widget.rect.top * self.scale,
                width=widget.rect.width * self.scale,
                height=widget.rect.height * self.scale,
            ),
            MIN_FIELD_SIZE,
        )
        number = len(detected) + 1
        return FormField(
            id=f"field_{run_token}_{len(detected)}",
            name=widget.name or f"field_{number}",
            label=widget.alternate_text or widget.name or f"Field {number}",
            field_type=WIDGET_TYPES.get(widget.field_type, FieldType.TEXT),
            page=page_number,
            geometry=to_percent_geom(rect, render_w, render_h),
            required=widget.required,
        )

    def _match_text(
        self,
        content: PageContent,
        page_number: int,
        detected: list[FormField],
        run_token: str,
    ) -> None:
        render_w, render_h = content.metrics.rendered_size(self.scale)
        accepted: list[tuple[float, str]] = []

        for run in content.text_runs:
            text = run.text.strip()
            if len(text) < 2:
                continue

            match = next((p for p in self.patterns if p.pattern.search(text)), None)
            if match is None:
                continue

            x = (run.x + run.width) * self.scale + DETECT_LABEL_GAP
            y = max(0.0, render_h - run.baseline_y * self.scale - DETECT_BASELINE_LIFT)

            label_key = match.label.lower()
            if any(
                abs(seen_y - y) < DETECT_DUPLICATE_TOLERANCE and seen_label == label_key
                for seen_y, seen_label in accepted
            ):
                continue

            width, height = (
                DETECT_SIGNATURE_SIZE if match.field_type is FieldType.SIGNATURE else DETECT_FIELD_SIZE
            )
            width = min(width, render_w)
            x = max(0.0, min(x, render_w - width))

            accepted.append((y, label_key))
            detected.append(
                FormField(
                    id=f"field_{run_token}_{len(detected)}",
                    name=field_name_from_label(match.label),
                    label=match.label,
                    field_type=match.field_type,
                    page=page_number,
                    geometry=to_percent_geom(DeviceRect(x, y, width, height), render_w, render_h),
                )
            )


def detect_fields(document: PdfDocument, scale: float = DEFAULT_SCALE) -> DetectionResult:
    return FieldDetector(scale=scale).detect(document)
