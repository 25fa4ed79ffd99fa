"""Submitted field values and submission-time validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

from formengine.model.field import FormField


class ValidationError(ValueError):
    """Raised when a form or submission is incomplete."""

    def __init__(self, message: str, missing: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.missing = list(missing)


@dataclass(frozen=True, slots=True)
class TextValue:
    text: str

    def is_empty(self) -> bool:
        return self.text == ""

    def as_text(self) -> str:
        return self.text

    def to_wire(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class CheckedValue:
    checked: bool

    def is_empty(self) -> bool:
        return not self.checked

    def as_text(self) -> str:
        return "true" if self.checked else "false"

    def to_wire(self) -> bool:
        return self.checked


@dataclass(frozen=True, slots=True)
class SignatureValue:
    text: str
    font_key: str = ""

    def is_empty(self) -> bool:
        return self.text == ""

    def as_text(self) -> str:
        return self.text

    def to_wire(self) -> dict[str, str]:
        return {"text": self.text, "font": self.font_key}


FieldValue = Union[TextValue, CheckedValue, SignatureValue]


def parse_value(raw: Any) -> FieldValue:
    """Decode one wire value: a string, a boolean or ``{"text", "font"}``."""
    if isinstance(raw, (TextValue, CheckedValue, SignatureValue)):
        return raw
    if isinstance(raw, bool):
        return CheckedValue(raw)
    if isinstance(raw, str):
        return TextValue(raw)
    if isinstance(raw, (int, float)):
        return TextValue(str(raw))
    if isinstance(raw, Mapping) and "text" in raw:
        return SignatureValue(text=str(raw.get("text") or ""), font_key=str(raw.get("font") or ""))
    raise ValueError(f"Unsupported field value: {raw!r}")


def parse_values(raw: Mapping[str, Any]) -> dict[str, FieldValue]:
    return {str(key): parse_value(value) for key, value in raw.items() if value is not None}


def values_to_wire(values: Mapping[str, FieldValue]) -> dict[str, Any]:
    return {key: value.to_wire() for key, value in values.items()}


def missing_required(fields: Sequence[FormField], values: Mapping[str, FieldValue]) -> list[FormField]:
    missing: list[FormField] = []
    for form_field in fields:
        if not form_field.required:
            continue
        value = values.get(form_field.id)
        if value is None or value.is_empty():
            missing.append(form_field)
    return missing


def validate_submission(fields: Sequence[FormField], values: Mapping[str, FieldValue]) -> None:
    missing = missing_required(fields, values)
    if missing:
        labels = ", ".join(form_field.label for form_field in missing)
        raise ValidationError(
            f"Please fill in required fields: {labels}",
            missing=[form_field.id for form_field in missing],
        )
