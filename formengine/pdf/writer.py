"""Fill engine: burn submitted values into the original PDF.

Values are drawn with ReportLab onto one overlay page per touched source page;
pypdf merges each overlay onto its page and serializes the document once.
"""

from __future__ import annotations

import hashlib
from io import BytesIO
import logging
from typing import Any, Mapping, Sequence

from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.generic import ArrayObject, ByteStringObject
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from formengine import config as cfg
from formengine.config import FontConfig
from formengine.model.document import PageMetrics
from formengine.model.field import FieldType, FormField
from formengine.model.geometry import DocumentRect, to_document_rect
from formengine.model.value import CheckedValue, FieldValue, SignatureValue, parse_value
from formengine.pdf.fonts import (
    FontLoadError,
    load_font_assets,
    load_unicode_font,
    register_font,
    register_fonts,
)
from formengine.pdf.loader import DocumentLoadError

logger = logging.getLogger(__name__)

CHECK_GLYPH = "4"  # ZapfDingbats heavy check mark
SIGNATURE_COLOR = (0.0, 0.0, 0.5)
TEXT_COLOR = (0.0, 0.0, 0.0)


def _is_truetype(font_name: str) -> bool:
    return isinstance(pdfmetrics.getFont(font_name), TTFont)


def _winansi_encodable(text: str) -> bool:
    # Standard (Type 1) fonts are drawn with WinAnsiEncoding, i.e. cp1252.
    try:
        text.encode("cp1252")
    except UnicodeEncodeError:
        return False
    return True


class PdfWriteError(RuntimeError):
    """Raised when output generation fails."""


class _Overlay:
    """A ReportLab canvas sized to one source page."""

    def __init__(self, width: float, height: float, origin: tuple[float, float]) -> None:
        self.buffer = BytesIO()
        # invariant: no timestamps or random ids, so equal input gives equal bytes.
        self.canvas = canvas.Canvas(self.buffer, pagesize=(width, height), invariant=1)
        if origin != (0.0, 0.0):
            self.canvas.translate(*origin)

    def finish(self) -> bytes:
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


class FillEngine:
    def __init__(
        self,
        config: FontConfig | None = None,
        font_data: Mapping[str, bytes] | None = None,
        unicode_font_data: bytes | None = None,
    ) -> None:
        self.config = config or FontConfig()
        self._signature_fonts = register_fonts(font_data or {})
        self._unicode_font: str | None = None
        if unicode_font_data is not None:
            try:
                self._unicode_font = register_font("unicode text", unicode_font_data)
            except FontLoadError as exc:
                logger.warning("%s; text outside WinAnsi will not render", exc)

    @classmethod
    def from_config(cls, config: FontConfig | None = None) -> FillEngine:
        """Engine with every font in ``config`` (default: :meth:`FontConfig.default`) loaded."""
        config = config or FontConfig.default()
        return cls(config, load_font_assets(config), load_unicode_font(config))

    def signature_font(self, font_key: str) -> str:
        return self._signature_fonts.get(font_key, self.config.fallback_font)

    def generate(
        self,
        original_bytes: bytes,
        fields: Sequence[FormField],
        values: Mapping[str, FieldValue | Any],
        page_dimensions: Sequence[PageMetrics] | None = None,
    ) -> bytes:
        reader = self._read(original_bytes)

        try:
            writer = PdfWriter(clone_from=reader)
            overlays: dict[int, _Overlay] = {}
            for form_field in fields:
                value = self._resolve_value(form_field, values)
                if value is None:
                    continue

                page_index = form_field.page - 1
                if page_index < 0 or page_index >= len(writer.pages):
                    logger.debug("Skipping %s: page %d out of range", form_field.id, form_field.page)
                    continue

                page = writer.pages[page_index]
                metrics = self._page_metrics(page, page_index, page_dimensions)
                rect = to_document_rect(form_field.geometry, metrics.width_pt, metrics.height_pt)

                overlay = overlays.get(page_index)
                if overlay is None:
                    overlay = _Overlay(
                        float(page.mediabox.width),
                        float(page.mediabox.height),
                        (float(page.cropbox.left), float(page.cropbox.bottom)),
                    )
                    overlays[page_index] = overlay
                self._draw(overlay.canvas, form_field, value, rect)

            overlay_digest = hashlib.md5()
            for page_index in sorted(overlays):
                overlay_bytes = overlays[page_index].finish()
                overlay_digest.update(overlay_bytes)
                writer.pages[page_index].merge_page(PdfReader(BytesIO(overlay_bytes)).pages[0])

            self._set_file_identifiers(writer, original_bytes, overlay_digest.digest())

            buffer = BytesIO()
            writer.write(buffer)
        except Exception as exc:
            raise PdfWriteError("Failed to generate filled PDF") from exc

        logger.info("Generated filled PDF: %d page(s) annotated", len(overlays))
        return buffer.getvalue()

    def _read(self, original_bytes: bytes) -> PdfReader:
        if not original_bytes:
            raise DocumentLoadError("PDF data is empty")
        try:
            reader = PdfReader(BytesIO(original_bytes))
            if reader.is_encrypted and not reader.decrypt(""):
                raise DocumentLoadError("PDF is encrypted")
            page_count = len(reader.pages)
        except DocumentLoadError:
            raise
        except Exception as exc:
            raise DocumentLoadError("Failed to load original PDF") from exc
        if page_count == 0:
            raise DocumentLoadError("PDF has no pages")
        return reader

    def _resolve_value(self, form_field: FormField, values: Mapping[str, Any]) -> FieldValue | None:
        raw = values.get(form_field.id)
        if raw is None:
            return None
        try:
            value = parse_value(raw)
        except ValueError:
            logger.warning("Skipping %s: unsupported value %r", form_field.id, raw)
            return None
        if value.is_empty():
            return None
        if form_field.field_type is FieldType.CHECKBOX and not isinstance(value, CheckedValue):
            logger.debug("Skipping %s: checkbox given a non-boolean value", form_field.id)
            return None
        return value

    @staticmethod
    def _page_metrics(
        page: PageObject,
        page_index: int,
        page_dimensions: Sequence[PageMetrics] | None,
    ) -> PageMetrics:
        if page_dimensions is not None and page_index < len(page_dimensions):
            return page_dimensions[page_index]
        return PageMetrics(width_pt=float(page.cropbox.width), height_pt=float(page.cropbox.height))

    @staticmethod
    def _set_file_identifiers(writer: PdfWriter, original_bytes: bytes, changes: bytes) -> None:
        # Derive /ID from content rather than time so output is reproducible.
        permanent = hashlib.md5(original_bytes).digest()
        changing = hashlib.md5(permanent + changes).digest()
        writer._ID = ArrayObject([ByteStringObject(permanent), ByteStringObject(changing)])

    def _draw(self, report: canvas.Canvas, form_field: FormField, value: FieldValue, rect: DocumentRect) -> None:
        if form_field.field_type is FieldType.CHECKBOX:
            self._draw_check(report, value, rect)
        elif form_field.field_type is FieldType.SIGNATURE:
            self._draw_signature(report, form_field, value, rect)
        elif form_field.field_type is FieldType.TEXTAREA:
            self._draw_lines(report, form_field, value.as_text(), rect)
        else:
            self._draw_text(report, form_field, value.as_text(), rect)

    def _draw_check(self, report: canvas.Canvas, value: FieldValue, rect: DocumentRect) -> None:
        if not (isinstance(value, CheckedValue) and value.checked):
            return
        size = min(rect.width, rect.height) - cfg.CHECK_MARGIN
        if size <= 0:
            return
        report.setFillColorRGB(*TEXT_COLOR)
        report.setFont(self.config.check_font, size)
        report.drawString(rect.x + cfg.CHECK_INSET, rect.y + cfg.CHECK_INSET, CHECK_GLYPH)

    def _font_for(self, form_field: FormField, text: str, font_name: str) -> str:
        """``font_name`` unless it is a standard font that cannot encode ``text``."""
        if _is_truetype(font_name) or _winansi_encodable(text):
            return font_name
        if self._unicode_font is not None:
            return self._unicode_font
        logger.warning(
            "Value for %s has characters outside WinAnsi and no Unicode font is configured; "
            "they will not render correctly",
            form_field.id,
        )
        return font_name

    def _draw_signature(
        self,
        report: canvas.Canvas,
        form_field: FormField,
        value: FieldValue,
        rect: DocumentRect,
    ) -> None:
        if isinstance(value, SignatureValue):
            text, font_key = value.text, value.font_key
        else:
            text, font_key = value.as_text(), ""
        if not text:
            return
        font_name = self.signature_font(font_key)
        if font_key and font_name == self.config.fallback_font:
            logger.debug("No font registered for %r, using %s", font_key, font_name)
        font_name = self._font_for(form_field, text, font_name)
        size = min(rect.height * cfg.FONT_HEIGHT_RATIO, cfg.MAX_SIGNATURE_FONT_SIZE)
        report.setFillColorRGB(*SIGNATURE_COLOR)
        report.setFont(font_name, size)
        report.drawString(rect.x + cfg.SIGNATURE_INSET, rect.y + (rect.height - size) / 2, text)

    def _draw_lines(self, report: canvas.Canvas, form_field: FormField, text: str, rect: DocumentRect) -> None:
        size = cfg.TEXTAREA_FONT_SIZE
        lines = [line.rstrip("\r") for line in text.split("\n")]
        report.setFillColorRGB(*TEXT_COLOR)
        report.setFont(self._font_for(form_field, text, self.config.text_font), size)
        current_y = rect.y + rect.height - size - cfg.TEXTAREA_LINE_GAP
        for drawn, line in enumerate(lines):
            if current_y < rect.y:
                logger.debug("Truncated %s: %d of %d line(s) fit", form_field.id, drawn, len(lines))
                break
            report.drawString(rect.x + cfg.TEXT_INSET, current_y, line)
            current_y -= size + cfg.TEXTAREA_LINE_GAP

    def _draw_text(self, report: canvas.Canvas, form_field: FormField, text: str, rect: DocumentRect) -> None:
        size = min(rect.height * cfg.FONT_HEIGHT_RATIO, cfg.MAX_TEXT_FONT_SIZE)
        if size <= 0:
            return
        report.setFillColorRGB(*TEXT_COLOR)
        report.setFont(self._font_for(form_field, text, self.config.text_font), size)
        report.drawString(rect.x + cfg.TEXT_INSET, rect.y + (rect.height - size) / 2, text)
