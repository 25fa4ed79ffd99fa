"""Read existing AcroForm widget annotations from a PDF."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO

from pypdf import PdfReader

from formengine.model.geometry import DocumentRect

_REQUIRED_FLAG = 2


class PdfImportError(RuntimeError):
    """Raised when existing form fields cannot be imported."""


@dataclass(frozen=True, slots=True)
class WidgetAnnotation:
    field_type: str
    rect: DocumentRect
    name: str = ""
    alternate_text: str = ""
    required: bool = False


@dataclass(slots=True)
class PageWidgets:
    # Every /Widget annotation on the page counts, usable or not.
    annotation_count: int = 0
    widgets: list[WidgetAnnotation] = field(default_factory=list)


def import_widgets(data: bytes) -> list[PageWidgets]:
    imported: list[PageWidgets] = []

    try:
        reader = PdfReader(BytesIO(data))
        for page in reader.pages:
            page_widgets = PageWidgets()
            imported.append(page_widgets)

            # Rects are reported relative to the visible (crop) box, as PyMuPDF sees the page.
            origin_x = float(page.cropbox.left)
            origin_y = float(page.cropbox.bottom)

            annots = page.get("/Annots") or []
            for annot_ref in annots:
                annot = annot_ref.get_object()
                if annot.get("/Subtype") != "/Widget":
                    continue
                page_widgets.annotation_count += 1

                parent = annot.get("/Parent")
                parent_obj = parent.get_object() if parent is not None else None

                field_type = annot.get("/FT") or (parent_obj.get("/FT") if parent_obj else None)
                rect = annot.get("/Rect")
                if field_type is None or rect is None:
                    continue

                llx, lly, urx, ury = (float(value) for value in rect)
                llx, urx = sorted((llx, urx))
                lly, ury = sorted((lly, ury))

                name = str(annot.get("/T") or (parent_obj.get("/T") if parent_obj else "") or "")
                alternate = str(annot.get("/TU") or (parent_obj.get("/TU") if parent_obj else "") or "")
                flags = annot.get("/Ff")
                if flags is None and parent_obj is not None:
                    flags = parent_obj.get("/Ff")

                page_widgets.widgets.append(
                    WidgetAnnotation(
                        field_type=str(field_type).lstrip("/"),
                        rect=DocumentRect(
                            x=llx - origin_x,
                            y=lly - origin_y,
                            width=urx - llx,
                            height=ury - lly,
                        ),
                        name=name,
                        alternate_text=alternate,
                        required=bool(int(flags or 0) & _REQUIRED_FLAG),
                    )
                )
    except Exception as exc:
        raise PdfImportError("Failed to import form fields from PDF") from exc

    return imported
