from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    DATE = "date"


DEFAULT_FIELD_TYPE = FieldType.TEXT


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class FieldTypeRule:
    input_type: str
    normalize: Callable[[Any], str]


# Every type is stored as submitted text; number/date only change the input widget.
FIELD_TYPE_RULES: dict[FieldType, FieldTypeRule] = {
    FieldType.TEXT: FieldTypeRule(input_type="text", normalize=_as_text),
    FieldType.EMAIL: FieldTypeRule(input_type="email", normalize=_as_text),
    FieldType.NUMBER: FieldTypeRule(input_type="number", normalize=_as_text),
    FieldType.DATE: FieldTypeRule(input_type="date", normalize=_as_text),
}


def resolve_field_type(token: Any) -> FieldType:
    """Map a raw type token to a FieldType; anything unrecognized becomes TEXT."""
    if isinstance(token, FieldType):
        return token
    if not isinstance(token, str):
        return DEFAULT_FIELD_TYPE
    try:
        return FieldType(token.strip().lower())
    except ValueError:
        return DEFAULT_FIELD_TYPE


def input_type(field_type: Any) -> str:
    return FIELD_TYPE_RULES[resolve_field_type(field_type)].input_type


def normalize_value(field_type: Any, raw: Any) -> str:
    return FIELD_TYPE_RULES[resolve_field_type(field_type)].normalize(raw)


@dataclass(frozen=True)
class Field:
    name: str
    type: FieldType = DEFAULT_FIELD_TYPE

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Field:
        return cls(name=str(record.get("name") or ""), type=resolve_field_type(record.get("type")))

    def to_record(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type.value}

    @property
    def input_type(self) -> str:
        return input_type(self.type)
