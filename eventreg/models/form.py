"""Form models.

A Form is the per-event registration schema: an ordered list of typed
fields. Field types form a closed set; raw type strings are parsed once,
at the boundary, into FieldType.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from eventreg.errors import InvalidSchemaError

EMAIL_FIELD = "Email"


class FieldType(str, Enum):
    """Supported form field types."""

    EMAIL = "email"
    NUMBER = "number"
    DATE = "date"
    PHONE = "phone"
    TEXT = "text"

    @classmethod
    def parse(cls, value: "str | FieldType") -> "FieldType":
        """Parse a field type case-insensitively.

        Raises:
            InvalidSchemaError: If the type is not supported.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidSchemaError(f"Unknown field type '{value}'") from None


class FormField(BaseModel):
    """One typed field of a form."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType


class Form(BaseModel):
    """A registration form as read from the graph."""

    id: int
    event_id: int = 0
    fields: list[FormField] = Field(default_factory=list)

    @property
    def field_names(self) -> list[str]:
        return [field.name for field in self.fields]


def default_fields() -> list[FormField]:
    """Field list every new form starts with."""
    return [FormField(name=EMAIL_FIELD, type=FieldType.EMAIL)]


def parse_field_list(raw_fields: Iterable[Mapping[str, Any] | FormField]) -> list[FormField]:
    """Parse and check a submitted field list.

    The list must contain exactly one field named Email, of type email.
    Names must be non-blank and unique; every type must be supported.

    Args:
        raw_fields: Mappings with "name" and "type" keys, or FormField objects.

    Returns:
        The parsed fields in submission order.

    Raises:
        InvalidSchemaError: If any rule is violated.
    """
    fields: list[FormField] = []
    for position, raw in enumerate(raw_fields, start=1):
        if isinstance(raw, FormField):
            fields.append(raw)
            continue
        if not isinstance(raw, Mapping):
            raise InvalidSchemaError(f"Field #{position} must be an object with name and type")

        name = str(raw.get("name") or "").strip()
        if not name:
            raise InvalidSchemaError(f"Field #{position} has an empty name")
        fields.append(FormField(name=name, type=FieldType.parse(raw.get("type") or "")))

    seen: set[str] = set()
    for field in fields:
        if field.name in seen:
            raise InvalidSchemaError(f"Field '{field.name}' is defined more than once")
        seen.add(field.name)

    email_fields = [field for field in fields if field.name == EMAIL_FIELD]
    if len(email_fields) != 1:
        raise InvalidSchemaError("The form must contain exactly one 'Email' field")
    if email_fields[0].type is not FieldType.EMAIL:
        raise InvalidSchemaError("The 'Email' field must have type 'email'")

    return fields
