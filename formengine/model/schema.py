"""Persisted form schema: PDF-backed or manual, resolved once at load time."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any, Mapping, Union

from formengine.model.field import FormField, ManualField, field_name_from_label
from formengine.model.value import FieldValue, parse_values, values_to_wire


class SchemaError(ValueError):
    """Raised when a persisted schema document cannot be decoded."""


@dataclass(slots=True)
class PdfFormSchema:
    pdf_url: str
    fields: list[FormField] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "pdf",
            "pdfUrl": self.pdf_url,
            "fields": [form_field.to_dict() for form_field in self.fields],
        }


@dataclass(slots=True)
class ManualFormSchema:
    fields: list[ManualField] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"fields": [form_field.to_dict() for form_field in self.fields]}


FormSchema = Union[PdfFormSchema, ManualFormSchema]


def schema_from_dict(data: Mapping[str, Any] | None) -> FormSchema:
    if not isinstance(data, Mapping):
        raise SchemaError("Form schema must be a JSON object")

    raw_fields = data.get("fields") or []
    if not isinstance(raw_fields, list):
        raise SchemaError("Form schema 'fields' must be a list")

    try:
        if data.get("type") == "pdf":
            pdf_url = data.get("pdfUrl")
            if not pdf_url:
                raise SchemaError("PDF form schema has no pdfUrl")
            fields = [FormField.from_dict(item) for item in raw_fields]
            ids = [form_field.id for form_field in fields]
            if len(set(ids)) != len(ids):
                raise SchemaError("PDF form schema has duplicate field ids")
            return PdfFormSchema(pdf_url=str(pdf_url), fields=fields)
        return ManualFormSchema(fields=[ManualField.from_dict(item) for item in raw_fields])
    except SchemaError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise SchemaError(f"Malformed form schema: {exc}") from exc


def schema_from_json(text: str) -> FormSchema:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError("Form schema is not valid JSON") from exc
    return schema_from_dict(data)


def schema_to_json(schema: FormSchema) -> str:
    return json.dumps(schema.to_dict())


@dataclass(slots=True)
class Form:
    form_name: str
    schema: FormSchema
    id: str | None = None

    @property
    def form_type(self) -> str:
        return field_name_from_label(self.form_name)

    @property
    def is_pdf(self) -> bool:
        return isinstance(self.schema, PdfFormSchema)

    def to_record(self) -> dict[str, Any]:
        return {
            "form_name": self.form_name,
            "form_type": self.form_type,
            "fields_schema": self.schema.to_dict(),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Form:
        schema = record.get("fields_schema")
        if isinstance(schema, str):
            resolved = schema_from_json(schema)
        else:
            resolved = schema_from_dict(schema)
        return cls(
            form_name=str(record.get("form_name") or ""),
            schema=resolved,
            id=None if record.get("id") is None else str(record["id"]),
        )


@dataclass(slots=True)
class Submission:
    form_id: str
    values: dict[str, FieldValue]
    generated_pdf_url: str | None = None
    status: str = "pending"
    id: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "form_id": self.form_id,
            "data": values_to_wire(self.values),
            "status": self.status,
            "signed_pdf_url": self.generated_pdf_url,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Submission:
        return cls(
            form_id=str(record["form_id"]),
            values=parse_values(record.get("data") or {}),
            generated_pdf_url=record.get("signed_pdf_url"),
            status=str(record.get("status") or "pending"),
            id=None if record.get("id") is None else str(record["id"]),
        )
