"""Form build, save and submit workflow over the blob and record stores."""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Mapping

from formengine.config import DEFAULT_SCALE
from formengine.model.schema import Form, PdfFormSchema, Submission
from formengine.model.value import parse_values, validate_submission
from formengine.pdf.detector import DetectionResult, FieldDetector
from formengine.pdf.loader import load_pdf_bytes
from formengine.pdf.writer import FillEngine
from formengine.state.session import EditorSession
from formengine.store.backends import BlobStore, RecordStore

logger = logging.getLogger(__name__)

FORMS = "forms"
SUBMISSIONS = "form_submissions"

_WHITESPACE = re.compile(r"\s+")


class FormService:
    def __init__(
        self,
        blobs: BlobStore,
        records: RecordStore,
        engine: FillEngine | None = None,
        detector: FieldDetector | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.blobs = blobs
        self.records = records
        self.engine = engine or FillEngine.from_config()
        self.detector = detector or FieldDetector()
        self._clock = clock

    def _stamp(self) -> int:
        return int(self._clock() * 1000)

    def upload_pdf(self, filename: str, data: bytes) -> str:
        # Refuse anything that does not open as a PDF before it reaches storage.
        with load_pdf_bytes(data):
            pass
        url = self.blobs.put(f"{self._stamp()}_{filename}", data)
        logger.info("Uploaded %s to %s", filename, url)
        return url

    def detect_fields(self, pdf_url: str) -> DetectionResult:
        with load_pdf_bytes(self.blobs.get(pdf_url)) as document:
            return self.detector.detect(document)

    def open_editor(self, pdf_url: str, form: Form | None = None, scale: float = DEFAULT_SCALE) -> EditorSession:
        with load_pdf_bytes(self.blobs.get(pdf_url)) as document:
            pages = document.pages
        if form is not None and isinstance(form.schema, PdfFormSchema):
            return EditorSession.from_schema(form.schema, pages, scale=scale)
        return EditorSession(pages=pages, scale=scale)

    def save_form(self, form: Form) -> Form:
        record = form.to_record()
        if form.id is None:
            form.id = self.records.insert(FORMS, record)
            logger.info("Created form %s (%s)", form.id, form.form_name)
        else:
            self.records.update(FORMS, form.id, record)
            logger.info("Replaced schema of form %s", form.id)
        return form

    def load_form(self, form_id: str) -> Form:
        return Form.from_record(self.records.get(FORMS, form_id))

    def list_forms(self) -> list[Form]:
        return [Form.from_record(record) for record in self.records.query(FORMS)]

    def submit(self, form_id: str, values: Mapping[str, Any]) -> Submission:
        form = self.load_form(form_id)
        parsed = parse_values(values)
        submission = Submission(form_id=form_id, values=parsed)

        if isinstance(form.schema, PdfFormSchema):
            validate_submission(form.schema.fields, parsed)
            original = self.blobs.get(form.schema.pdf_url)
            output = self.engine.generate(original, form.schema.fields, parsed)
            safe_name = _WHITESPACE.sub("_", form.form_name)
            submission.generated_pdf_url = self.blobs.put(
                f"submissions/{self._stamp()}_{safe_name}_signed.pdf",
                output,
            )

        submission.id = self.records.insert(SUBMISSIONS, submission.to_record())
        logger.info("Stored submission %s for form %s", submission.id, form_id)
        return submission

    def list_submissions(self, form_id: str | None = None, status: str | None = None) -> list[Submission]:
        filters: dict[str, Any] = {}
        if form_id is not None:
            filters["form_id"] = form_id
        if status is not None:
            filters["status"] = status
        return [Submission.from_record(record) for record in self.records.query(SUBMISSIONS, **filters)]
