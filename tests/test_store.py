from __future__ import annotations

import itertools
from pathlib import Path

import fitz
import pytest

from formengine.model.field import FieldType, ManualField, ManualFieldType
from formengine.model.schema import Form, ManualFormSchema, PdfFormSchema
from formengine.model.value import TextValue, ValidationError
from formengine.pdf.loader import DocumentLoadError
from formengine.store.backends import DirectoryBlobStore, MemoryBlobStore, MemoryRecordStore, StoreError
from formengine.store.forms import FORMS, SUBMISSIONS, FormService


@pytest.fixture()
def service() -> FormService:
    ticks = itertools.count(1_700_000_000_000)
    return FormService(MemoryBlobStore(), MemoryRecordStore(), clock=lambda: next(ticks) / 1000)


@pytest.fixture()
def intake_form(service: FormService, text_pdf) -> Form:
    url = service.upload_pdf("intake.pdf", text_pdf([[(72, 700, "Full Name:"), (72, 650, "Email:")]]))
    detected = service.detect_fields(url)
    session = service.open_editor(url)
    session.replace_fields(detected.fields)
    session.update(session.fields[0].id, required=True)
    return service.save_form(session.build_form("Intake Form", url))


def _text(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as document:
        return "".join(page.get_text() for page in document)


def test_upload_stores_timestamped_blob(service: FormService, blank_pdf) -> None:
    data = blank_pdf()

    url = service.upload_pdf("w4.pdf", data)

    assert url == "memory://forms/1700000000000_w4.pdf"
    assert service.blobs.get(url) == data


def test_upload_rejects_non_pdf(service: FormService) -> None:
    with pytest.raises(DocumentLoadError):
        service.upload_pdf("notes.pdf", b"plain text")


def test_saved_form_round_trips(service: FormService, intake_form: Form) -> None:
    loaded = service.load_form(intake_form.id)

    assert loaded.form_name == "Intake Form"
    assert loaded.form_type == "intake_form"
    assert isinstance(loaded.schema, PdfFormSchema)
    assert [f.label for f in loaded.schema.fields] == ["Name", "Email"]
    assert loaded.schema.fields[0].required is True
    assert loaded.schema == intake_form.schema


def test_resaving_replaces_schema(service: FormService, intake_form: Form) -> None:
    session = service.open_editor(intake_form.schema.pdf_url, intake_form)
    session.remove(session.fields[1].id)

    service.save_form(session.build_form("Intake Form", intake_form.schema.pdf_url, intake_form.id))

    forms = service.list_forms()
    assert len(forms) == 1
    assert [f.label for f in forms[0].schema.fields] == ["Name"]


def test_submit_generates_filled_pdf(service: FormService, intake_form: Form) -> None:
    name, email = intake_form.schema.fields

    submission = service.submit(intake_form.id, {name.id: "Jane Doe", email.id: "jane@example.test"})

    assert submission.id is not None
    assert submission.generated_pdf_url.startswith("memory://forms/submissions/")
    assert submission.generated_pdf_url.endswith("_Intake_Form_signed.pdf")
    text = _text(service.blobs.get(submission.generated_pdf_url))
    assert "Jane Doe" in text
    assert "jane@example.test" in text

    (stored,) = service.list_submissions(intake_form.id)
    assert stored.values == {name.id: TextValue("Jane Doe"), email.id: TextValue("jane@example.test")}
    assert stored.status == "pending"
    assert stored.generated_pdf_url == submission.generated_pdf_url


def test_submit_requires_required_fields(service: FormService, intake_form: Form) -> None:
    name, email = intake_form.schema.fields

    with pytest.raises(ValidationError) as excinfo:
        service.submit(intake_form.id, {email.id: "jane@example.test"})

    assert excinfo.value.missing == [name.id]
    assert "Name" in str(excinfo.value)
    assert service.records.query(SUBMISSIONS) == []


def test_manual_form_submission_skips_generation(service: FormService) -> None:
    schema = ManualFormSchema(fields=[ManualField("team", ManualFieldType.SELECT, "Team", options=["A", "B"])])
    form = service.save_form(Form(form_name="Team Signup", schema=schema))

    submission = service.submit(form.id, {"team": "A"})

    assert submission.generated_pdf_url is None
    assert service.load_form(form.id).is_pdf is False


def test_list_submissions_filters(service: FormService, intake_form: Form) -> None:
    name, _ = intake_form.schema.fields
    first = service.submit(intake_form.id, {name.id: "One"})
    service.submit(intake_form.id, {name.id: "Two"})
    service.records.update(SUBMISSIONS, first.id, {"status": "approved"})

    assert len(service.list_submissions(intake_form.id)) == 2
    assert [s.id for s in service.list_submissions(intake_form.id, status="approved")] == [first.id]
    assert service.list_submissions("other") == []


def test_open_editor_uses_document_pages(service: FormService, blank_pdf) -> None:
    url = service.upload_pdf("two.pdf", blank_pdf(300, 400, pages=2))

    session = service.open_editor(url, scale=2.0)

    assert session.page_count == 2
    assert session.render_size(2) == pytest.approx((600, 800))
    added = session.add(FieldType.CHECKBOX)
    assert added.page == 1


def test_memory_blob_store_errors() -> None:
    blobs = MemoryBlobStore()
    blobs.put("a.pdf", b"x")

    with pytest.raises(StoreError):
        blobs.put("a.pdf", b"y")
    with pytest.raises(StoreError):
        blobs.get("memory://forms/missing.pdf")


def test_directory_blob_store(tmp_path: Path) -> None:
    blobs = DirectoryBlobStore(tmp_path / "blobs")

    url = blobs.put("submissions/out.pdf", b"%PDF")

    assert url.startswith("file://")
    assert blobs.get(url) == b"%PDF"
    with pytest.raises(StoreError):
        blobs.put("submissions/out.pdf", b"again")
    with pytest.raises(StoreError):
        blobs.put("../escape.pdf", b"x")
    with pytest.raises(StoreError):
        blobs.get((tmp_path / "nope.pdf").as_uri())


def test_record_store_isolates_rows() -> None:
    records = MemoryRecordStore()
    row_id = records.insert(FORMS, {"form_name": "A", "fields_schema": {"fields": []}})

    fetched = records.get(FORMS, row_id)
    fetched["fields_schema"]["fields"].append("mutated")

    assert records.get(FORMS, row_id)["fields_schema"] == {"fields": []}
    assert records.query(FORMS, form_name="B") == []
    with pytest.raises(StoreError):
        records.update(FORMS, "missing", {})
    with pytest.raises(StoreError):
        records.get(SUBMISSIONS, row_id)


def test_directory_blob_store_round_trips_quoted_names(tmp_path: Path, blank_pdf) -> None:
    blobs = DirectoryBlobStore(tmp_path / "blobs")

    url = blobs.put("1700_my form.pdf", b"%PDF")

    assert "%20" in url
    assert blobs.get(url) == b"%PDF"

    ticks = itertools.count(1_700_000_000_000)
    service = FormService(blobs, MemoryRecordStore(), clock=lambda: next(ticks) / 1000)
    data = blank_pdf()
    uploaded = service.upload_pdf("my form.pdf", data)
    assert service.blobs.get(uploaded) == data
    assert service.open_editor(uploaded).page_count == 1


def test_default_service_loads_signature_fonts(monkeypatch, tmp_path: Path, blank_pdf, make_field, vera_font) -> None:
    (tmp_path / "Pacifico-Regular.ttf").write_bytes(vera_font)
    monkeypatch.setenv("FORMENGINE_FONT_DIR", str(tmp_path))
    service = FormService(MemoryBlobStore(), MemoryRecordStore())
    url = service.upload_pdf("sign.pdf", blank_pdf())
    signature = make_field("sig", FieldType.SIGNATURE, x=10, y=50, width=40, height=8)
    form = service.save_form(Form(form_name="Consent", schema=PdfFormSchema(pdf_url=url, fields=[signature])))

    submission = service.submit(form.id, {"sig": {"text": "Jane Doe", "font": "'Pacifico', cursive"}})

    with fitz.open(stream=service.blobs.get(submission.generated_pdf_url), filetype="pdf") as document:
        spans = [
            span
            for block in document.load_page(0).get_text("dict")["blocks"]
            if block.get("type") == 0
            for line in block["lines"]
            for span in line["spans"]
            if span["text"].strip()
        ]
    assert [span["text"] for span in spans] == ["Jane Doe"]
    assert "Vera" in spans[0]["font"]
