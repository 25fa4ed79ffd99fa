"""Form field model definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import re
from typing import Any

from formengine.model.geometry import Geometry

_WHITESPACE = re.compile(r"\s+")


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    NUMBER = "number"
    DATE = "date"
    CHECKBOX = "checkbox"
    SIGNATURE = "signature"
    TEXTAREA = "textarea"


class ManualFieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    TEXTAREA = "textarea"
    FILE = "file"


def field_name_from_label(label: str) -> str:
    """Machine key for a display label: lower-cased, whitespace runs become ``_``."""
    return _WHITESPACE.sub("_", label.lower())


@dataclass(slots=True)
class FormField:
    id: str
    name: str
    label: str
    field_type: FieldType
    page: int
    geometry: Geometry
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "type": self.field_type.value,
            "x": self.geometry.x,
            "y": self.geometry.y,
            "width": self.geometry.width,
            "height": self.geometry.height,
            "page": self.page,
            "required": self.required,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormField:
        # Persisted fields are flat; a nested "geometry" object is accepted too.
        geom = data.get("geometry") or data
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            label=str(data.get("label") or ""),
            field_type=FieldType(data["type"]),
            page=int(data.get("page", 1)),
            geometry=Geometry(
                x=float(geom["x"]),
                y=float(geom["y"]),
                width=float(geom["width"]),
                height=float(geom["height"]),
            ),
            required=bool(data.get("required", False)),
        )


@dataclass(slots=True)
class ManualField:
    """A field of a form built without a backing PDF."""

    name: str
    field_type: ManualFieldType
    label: str
    required: bool = False
    options: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.field_type.value,
            "label": self.label,
            "required": self.required,
        }
        if self.options:
            data["options"] = list(self.options)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ManualField:
        return cls(
            name=str(data["name"]),
            field_type=ManualFieldType(data.get("type", "text")),
            label=str(data.get("label") or data["name"]),
            required=bool(data.get("required", False)),
            options=[str(option) for option in data.get("options") or []],
        )
