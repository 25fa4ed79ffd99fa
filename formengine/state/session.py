"""In-memory editing state for the fields placed on a document."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
import uuid

from formengine.config import (
    CHECKBOX_SIZE,
    DEFAULT_SCALE,
    LARGE_FIELD_SIZE,
    MIN_FIELD_SIZE,
    NEW_FIELD_ORIGIN,
    TEXT_FIELD_SIZE,
)
from formengine.model.document import PageMetrics
from formengine.model.field import FieldType, FormField, field_name_from_label
from formengine.model.geometry import DeviceRect, Geometry, to_device_rect, to_percent_geom
from formengine.model.schema import Form, PdfFormSchema
from formengine.model.value import ValidationError

DUPLICATE_OFFSET = 12.0


def default_size(field_type: FieldType) -> tuple[float, float]:
    if field_type is FieldType.CHECKBOX:
        return CHECKBOX_SIZE
    if field_type in (FieldType.TEXTAREA, FieldType.SIGNATURE):
        return LARGE_FIELD_SIZE
    return TEXT_FIELD_SIZE


@dataclass(slots=True)
class EditorSession:
    """Fields of one form being built, plus the operator's selection and view.

    Geometry is stored in page percentages; device units are the page rendered
    at ``scale``. Drag and resize go through :meth:`move` and :meth:`resize`,
    which convert immediately at the active scale.
    """

    pages: list[PageMetrics]
    scale: float = DEFAULT_SCALE
    fields: list[FormField] = field(default_factory=list)
    selected_field_id: str | None = None
    current_page: int = 1

    def __post_init__(self) -> None:
        if not self.pages:
            raise ValueError("An editor session needs at least one page")
        if self.scale <= 0:
            raise ValueError(f"Render scale must be positive, got {self.scale}")
        self._check_page(self.current_page)

    @classmethod
    def from_schema(
        cls,
        schema: PdfFormSchema,
        pages: list[PageMetrics],
        scale: float = DEFAULT_SCALE,
    ) -> EditorSession:
        return cls(pages=list(pages), scale=scale, fields=deepcopy(schema.fields))

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def selected(self) -> FormField | None:
        if self.selected_field_id is None:
            return None
        return self._find(self.selected_field_id)

    def get(self, field_id: str) -> FormField:
        found = self._find(field_id)
        if found is None:
            raise KeyError(field_id)
        return found

    def page_fields(self, page: int | None = None) -> list[FormField]:
        target = self.current_page if page is None else page
        return [form_field for form_field in self.fields if form_field.page == target]

    def render_size(self, page: int | None = None) -> tuple[float, float]:
        target = self.current_page if page is None else page
        self._check_page(target)
        return self.pages[target - 1].rendered_size(self.scale)

    def go_to_page(self, page: int) -> None:
        self._check_page(page)
        self.current_page = page

    def set_scale(self, scale: float) -> None:
        if scale <= 0:
            raise ValueError(f"Render scale must be positive, got {scale}")
        self.scale = scale

    def select(self, field_id: str | None) -> None:
        if field_id is not None and self._find(field_id) is None:
            raise KeyError(field_id)
        self.selected_field_id = field_id

    def add(self, field_type: FieldType | str) -> FormField:
        field_type = FieldType(field_type)
        render_w, render_h = self.render_size()
        width, height = default_size(field_type)
        origin_x, origin_y = NEW_FIELD_ORIGIN
        number = len(self.fields) + 1
        new_field = FormField(
            id=self._new_id(),
            name=f"field_{number}",
            label=f"Field {number}",
            field_type=field_type,
            page=self.current_page,
            geometry=self._constrain(
                self.current_page,
                to_percent_geom(DeviceRect(origin_x, origin_y, width, height), render_w, render_h),
            ),
        )
        self.fields.append(new_field)
        self.selected_field_id = new_field.id
        return new_field

    def update(
        self,
        field_id: str,
        *,
        name: str | None = None,
        label: str | None = None,
        field_type: FieldType | str | None = None,
        required: bool | None = None,
        page: int | None = None,
        x: float | None = None,
        y: float | None = None,
        width: float | None = None,
        height: float | None = None,
    ) -> FormField:
        target = self.get(field_id)

        if page is not None:
            self._check_page(page)
            target.page = page
        if name is not None:
            target.name = field_name_from_label(name)
        if label is not None:
            target.label = label
        if field_type is not None:
            target.field_type = FieldType(field_type)
        if required is not None:
            target.required = bool(required)

        geom = target.geometry
        target.geometry = self._constrain(
            target.page,
            Geometry(
                x=geom.x if x is None else x,
                y=geom.y if y is None else y,
                width=geom.width if width is None else width,
                height=geom.height if height is None else height,
            ),
        )
        return target

    def move(self, field_id: str, device_x: float, device_y: float) -> FormField:
        target = self.get(field_id)
        render_w, render_h = self.render_size(target.page)
        rect = to_device_rect(target.geometry, render_w, render_h)
        moved = replace(
            rect,
            x=max(0.0, min(device_x, render_w - rect.width)),
            y=max(0.0, min(device_y, render_h - rect.height)),
        )
        geom = to_percent_geom(moved, render_w, render_h)
        return self.update(field_id, x=geom.x, y=geom.y)

    def resize(self, field_id: str, device_width: float, device_height: float) -> FormField:
        target = self.get(field_id)
        render_w, render_h = self.render_size(target.page)
        rect = to_device_rect(target.geometry, render_w, render_h)
        resized = replace(
            rect,
            width=max(MIN_FIELD_SIZE, min(device_width, render_w - rect.x)),
            height=max(MIN_FIELD_SIZE, min(device_height, render_h - rect.y)),
        )
        geom = to_percent_geom(resized, render_w, render_h)
        return self.update(field_id, width=geom.width, height=geom.height)

    def remove(self, field_id: str) -> None:
        target = self.get(field_id)
        self.fields.remove(target)
        if self.selected_field_id == field_id:
            self.selected_field_id = None

    def duplicate(self, field_id: str) -> FormField:
        source = self.get(field_id)
        render_w, render_h = self.render_size(source.page)
        rect = to_device_rect(source.geometry, render_w, render_h)
        shifted = replace(rect, x=rect.x + DUPLICATE_OFFSET, y=rect.y + DUPLICATE_OFFSET)
        copy = replace(
            deepcopy(source),
            id=self._new_id(),
            name=f"field_{len(self.fields) + 1}",
            geometry=self._constrain(source.page, to_percent_geom(shifted, render_w, render_h)),
        )
        self.fields.append(copy)
        self.selected_field_id = copy.id
        return copy

    def clear(self) -> None:
        self.fields.clear()
        self.selected_field_id = None

    def replace_fields(self, fields: list[FormField]) -> None:
        for form_field in fields:
            self._check_page(form_field.page)
        self.fields = deepcopy(list(fields))
        self.selected_field_id = None

    def to_schema(self, pdf_url: str) -> PdfFormSchema:
        return PdfFormSchema(pdf_url=pdf_url, fields=deepcopy(self.fields))

    def build_form(self, form_name: str, pdf_url: str | None, form_id: str | None = None) -> Form:
        if not pdf_url:
            raise ValidationError("Please upload a PDF first")
        if not form_name.strip():
            raise ValidationError("Please enter a form name")
        if not self.fields:
            raise ValidationError("Please add at least one field")
        return Form(form_name=form_name.strip(), schema=self.to_schema(pdf_url), id=form_id)

    def _constrain(self, page: int, geom: Geometry) -> Geometry:
        render_w, render_h = self.render_size(page)
        min_width = min(100.0, MIN_FIELD_SIZE / render_w * 100.0)
        min_height = min(100.0, MIN_FIELD_SIZE / render_h * 100.0)
        width = min(100.0, max(min_width, geom.width))
        height = min(100.0, max(min_height, geom.height))
        return Geometry(
            x=max(0.0, min(geom.x, 100.0 - width)),
            y=max(0.0, min(geom.y, 100.0 - height)),
            width=width,
            height=height,
        )

    def _check_page(self, page: int) -> None:
        if page < 1 or page > len(self.pages):
            raise ValueError(f"Page out of range: {page} (document has {len(self.pages)})")

    def _find(self, field_id: str) -> FormField | None:
        for form_field in self.fields:
            if form_field.id == field_id:
                return form_field
        return None

    def _new_id(self) -> str:
        while True:
            candidate = f"field_{uuid.uuid4().hex[:12]}"
            if self._find(candidate) is None:
                return candidate
