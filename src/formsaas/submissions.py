from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from formsaas.errors import StorageFailure
from formsaas.fields import normalize_value
from formsaas.forms import FormDefinition
from formsaas.utils import new_ulid, now_utc, parse_dt, to_iso

logger = logging.getLogger(__name__)

EXPORT_EXTRA_COLUMNS = ("file_path", "submitted_at")


@dataclass(frozen=True)
class Submission:
    id: str
    form_id: str
    data: dict[str, str]
    file_path: str | None = None
    submitted_at: datetime = dataclasses.field(default_factory=now_utc)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "form_id": self.form_id,
            "data": dict(self.data),
            "file_path": self.file_path,
            "submitted_at": to_iso(self.submitted_at),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Submission:
        return cls(
            id=record["id"],
            form_id=record["form_id"],
            data=dict(record.get("data") or {}),
            file_path=record.get("file_path") or None,
            submitted_at=parse_dt(record.get("submitted_at")),
        )


def is_upload(raw_file: Any) -> bool:
    return raw_file is not None and bool(getattr(raw_file, "filename", ""))


def _submitted_value(raw_body: Mapping[str, Any], name: str) -> Any:
    # multi-dicts may carry a file part under the same name as a text field
    if hasattr(raw_body, "getlist"):
        values = list(raw_body.getlist(name))
    else:
        value = raw_body.get(name)
        values = list(value) if isinstance(value, (list, tuple)) else [value]
    for value in values:
        if value is None or is_upload(value) or hasattr(value, "read"):
            continue
        return value
    return None


def first_upload(raw_body: Any, name: str) -> Any:
    values = raw_body.getlist(name) if hasattr(raw_body, "getlist") else [raw_body.get(name)]
    for value in values:
        if is_upload(value):
            return value
    return None


def collect_data(form: FormDefinition, raw_body: Mapping[str, Any]) -> dict[str, str]:
    """One entry per declared field, in declared order; missing input becomes ""."""
    data: dict[str, str] = {}
    for field in form.fields:
        data[field.name] = normalize_value(field.type, _submitted_value(raw_body, field.name))
    return data


async def build_submission(
    form: FormDefinition,
    raw_body: Mapping[str, Any],
    raw_file: Any = None,
    file_store: Any = None,
) -> Submission:
    data = collect_data(form, raw_body)
    file_path = None
    if is_upload(raw_file):
        if file_store is None:
            raise StorageFailure("No file store is configured for attachments")
        if not form.allow_file:
            logger.info("Attachment accepted on a form without file upload: form=%s", form.id)
        file_path = await file_store.save(raw_file, form_id=form.id)
    return Submission(
        id=new_ulid(),
        form_id=form.id,
        data=data,
        file_path=file_path,
        submitted_at=now_utc(),
    )


def submission_table(
    form: FormDefinition, submissions: Iterable[Submission]
) -> tuple[list[str], list[list[str]]]:
    """Rows keyed by the form's current fields; older submissions may lack some keys."""
    names = form.field_names
    headers = names + list(EXPORT_EXTRA_COLUMNS)
    rows = [
        [submission.data.get(name, "") for name in names]
        + [submission.file_path or "", to_iso(submission.submitted_at)]
        for submission in submissions
    ]
    return headers, rows
