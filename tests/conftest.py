from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, Sequence

import pytest
import reportlab
from pypdf import PdfReader, PdfWriter
from pypdf.generic import RectangleObject
from reportlab.pdfgen import canvas

from formengine.model.field import FieldType, FormField
from formengine.model.geometry import Geometry

TextSpec = tuple[float, float, str]
WidgetSpec = dict


@pytest.fixture()
def blank_pdf() -> Callable[..., bytes]:
    def _create(width: float = 600, height: float = 800, pages: int = 1) -> bytes:
        writer = PdfWriter()
        for _ in range(pages):
            writer.add_blank_page(width=width, height=height)
        buffer = BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    return _create


@pytest.fixture()
def text_pdf() -> Callable[..., bytes]:
    """PDF whose pages carry plain text at (x, baseline y) in PDF points."""

    def _create(
        pages: Sequence[Sequence[TextSpec]],
        width: float = 612,
        height: float = 792,
        font_size: float = 12,
    ) -> bytes:
        buffer = BytesIO()
        report = canvas.Canvas(buffer, pagesize=(width, height), invariant=1)
        for runs in pages:
            report.setFont("Helvetica", font_size)
            for x, y, text in runs:
                report.drawString(x, y, text)
            report.showPage()
        report.save()
        return buffer.getvalue()

    return _create


@pytest.fixture()
def widget_pdf() -> Callable[..., bytes]:
    """PDF with AcroForm widgets; each spec is a dict with kind/name/x/y/width/height."""

    def _create(
        pages: Sequence[Sequence[WidgetSpec]],
        width: float = 612,
        height: float = 792,
    ) -> bytes:
        buffer = BytesIO()
        report = canvas.Canvas(buffer, pagesize=(width, height), invariant=1)
        for widgets in pages:
            report.setFont("Helvetica", 12)
            for spec in widgets:
                if spec.get("label"):
                    report.drawString(spec["x"] - 80, spec["y"] + 4, spec["label"])
                if spec["kind"] == "checkbox":
                    report.acroForm.checkbox(
                        name=spec["name"],
                        x=spec["x"],
                        y=spec["y"],
                        size=spec.get("size", 18),
                        buttonStyle="check",
                        fieldFlags="required" if spec.get("required") else "",
                    )
                else:
                    report.acroForm.textfield(
                        name=spec["name"],
                        tooltip=spec.get("tooltip", ""),
                        x=spec["x"],
                        y=spec["y"],
                        width=spec.get("width", 140),
                        height=spec.get("height", 24),
                        fieldFlags="required" if spec.get("required") else "",
                    )
            report.showPage()
        report.save()
        return buffer.getvalue()

    return _create


@pytest.fixture()
def crop_pdf() -> Callable[..., bytes]:
    """Copy of a PDF with every page's CropBox set to ``box`` (llx, lly, urx, ury)."""

    def _crop(data: bytes, box: tuple[float, float, float, float]) -> bytes:
        writer = PdfWriter(clone_from=PdfReader(BytesIO(data)))
        for page in writer.pages:
            page.cropbox = RectangleObject(box)
        buffer = BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    return _crop


@pytest.fixture()
def make_field() -> Callable[..., FormField]:
    def _create(
        field_id: str,
        field_type: FieldType = FieldType.TEXT,
        x: float = 10,
        y: float = 10,
        width: float = 30,
        height: float = 5,
        page: int = 1,
        required: bool = False,
    ) -> FormField:
        return FormField(
            id=field_id,
            name=field_id,
            label=field_id.title(),
            field_type=field_type,
            page=page,
            geometry=Geometry(x=x, y=y, width=width, height=height),
            required=required,
        )

    return _create


@pytest.fixture(scope="session")
def vera_font() -> bytes:
    return (Path(reportlab.__file__).parent / "fonts" / "Vera.ttf").read_bytes()
