"""Form definitions and the builder that turns request payloads into them.

A definition is an ordered list of typed fields plus presentation metadata.
Create and edit payloads arrive in the form-encoded shape used by the
builder page::

    {"title": "Survey", "fieldNames": ["email", "age"],
     "fieldTypes": ["email", "number"], "template": "default",
     "allowFile": "on"}

where ``fieldNames``/``fieldTypes`` are either scalars (one field) or
index-aligned lists.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from formsaas.errors import ValidationError
from formsaas.fields import Field, resolve_field_type
from formsaas.guard import authorize
from formsaas.utils import new_ulid, now_utc, parse_dt, to_iso

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "default"
TEMPLATE_CHOICES = ("default", "compact", "card")
CHECKBOX_ON = "on"

TITLE_REQUIRED = "Title is required."


@dataclass(frozen=True)
class FormDefinition:
    id: str
    owner_tenant_id: str
    title: str
    fields: tuple[Field, ...] = ()
    template: str = DEFAULT_TEMPLATE
    allow_file: bool = False
    created_at: datetime = dataclasses.field(default_factory=now_utc)
    updated_at: datetime = dataclasses.field(default_factory=now_utc)

    @property
    def field_names(self) -> list[str]:
        return [field.name for field in self.fields]

    def replace_content(
        self,
        title: str,
        fields: Iterable[Field],
        template: str = DEFAULT_TEMPLATE,
        allow_file: bool = False,
    ) -> FormDefinition:
        fields = tuple(fields)
        _raise_for_errors(self.owner_tenant_id, title, fields)
        return dataclasses.replace(
            self,
            title=title,
            fields=fields,
            template=template or DEFAULT_TEMPLATE,
            allow_file=bool(allow_file),
            updated_at=now_utc(),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_tenant_id": self.owner_tenant_id,
            "title": self.title,
            "fields": [field.to_record() for field in self.fields],
            "template": self.template,
            "allow_file": self.allow_file,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> FormDefinition:
        return cls(
            id=record["id"],
            owner_tenant_id=record["owner_tenant_id"],
            title=record.get("title", ""),
            fields=tuple(Field.from_record(item) for item in record.get("fields") or []),
            template=record.get("template") or DEFAULT_TEMPLATE,
            allow_file=bool(record.get("allow_file", False)),
            created_at=parse_dt(record.get("created_at")),
            updated_at=parse_dt(record.get("updated_at") or record.get("created_at")),
        )


def _validation_errors(owner_tenant_id: Any, title: Any, fields: tuple[Field, ...]) -> list[str]:
    errors: list[str] = []
    if not owner_tenant_id:
        errors.append("An owning company is required.")
    if not isinstance(title, str) or not title.strip():
        errors.append(TITLE_REQUIRED)
    seen: set[str] = set()
    for field in fields:
        if not field.name:
            errors.append("Field names cannot be empty.")
        elif field.name in seen:
            errors.append(f"Field name is used more than once: {field.name}")
        else:
            seen.add(field.name)
    return errors


def _raise_for_errors(owner_tenant_id: Any, title: Any, fields: tuple[Field, ...]) -> None:
    errors = _validation_errors(owner_tenant_id, title, fields)
    if errors:
        raise ValidationError(errors)


def new_form_definition(
    owner_tenant_id: str,
    title: str,
    fields: Iterable[Field] = (),
    template: str = DEFAULT_TEMPLATE,
    allow_file: bool = False,
) -> FormDefinition:
    fields = tuple(fields)
    _raise_for_errors(owner_tenant_id, title, fields)
    now = now_utc()
    return FormDefinition(
        id=new_ulid(),
        owner_tenant_id=owner_tenant_id,
        title=title,
        fields=fields,
        template=template or DEFAULT_TEMPLATE,
        allow_file=bool(allow_file),
        created_at=now,
        updated_at=now,
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_field_input(raw_names: Any, raw_types: Any) -> list[tuple[str, Any]]:
    """Turn the scalar-or-list request shape into ordered (name, type) pairs.

    Empty names are kept so that callers can skip them without shifting the
    positional alignment between names and types.
    """
    if isinstance(raw_names, (list, tuple)):
        if isinstance(raw_types, (list, tuple)):
            types = list(raw_types)
        elif raw_types is None:
            types = []
        else:
            types = [raw_types]
        return [
            (_text(name), types[index] if index < len(types) else None)
            for index, name in enumerate(raw_names)
        ]
    if raw_names is None:
        return []
    if isinstance(raw_types, (list, tuple)):
        raw_types = raw_types[0] if raw_types else None
    return [(_text(raw_names), raw_types)]


def build_fields(raw_names: Any, raw_types: Any = None) -> list[Field]:
    fields: list[Field] = []
    for name, raw_type in normalize_field_input(raw_names, raw_types):
        name = name.strip()
        if not name:
            continue
        fields.append(Field(name=name, type=resolve_field_type(raw_type)))
    return fields


def _content_from_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "title": _text(payload.get("title")).strip(),
        "fields": build_fields(payload.get("fieldNames"), payload.get("fieldTypes")),
        "template": _text(payload.get("template")).strip() or DEFAULT_TEMPLATE,
        "allow_file": payload.get("allowFile") == CHECKBOX_ON,
    }


def draft_from_payload(payload: Mapping[str, Any], form_id: str | None = None) -> dict[str, Any]:
    """Builder page values used when a create/edit is re-rendered with errors."""
    return {"id": form_id, **_content_from_payload(payload)}


def create_form(owner_tenant_id: str, payload: Mapping[str, Any]) -> FormDefinition:
    form = new_form_definition(owner_tenant_id, **_content_from_payload(payload))
    logger.info("Form built: id=%s owner=%s fields=%d", form.id, owner_tenant_id, len(form.fields))
    return form


def edit_form(
    existing: FormDefinition, acting_tenant_id: str, payload: Mapping[str, Any]
) -> FormDefinition:
    authorize(existing, acting_tenant_id)
    updated = existing.replace_content(**_content_from_payload(payload))
    logger.info("Form rebuilt: id=%s fields=%d", updated.id, len(updated.fields))
    return updated


def payload_from_form_data(form_data: Any) -> dict[str, Any]:
    """Flatten a multi-dict: repeated keys become lists, single keys stay scalars."""
    payload: dict[str, Any] = {}
    for key in dict.fromkeys(form_data.keys()):
        values = [value for value in form_data.getlist(key) if isinstance(value, str)]
        if not values:
            continue
        payload[key] = values if len(values) > 1 else values[0]
    return payload
