"""Conversion between graph properties and domain models.

Queries return nodes as map projections (``n {.*}``), so every function
here takes a plain mapping of stored property names (camelCase) and
builds a fresh pydantic model. Store-native temporal values are converted
to the standard library types on the way in.

Two stored shapes predate the typed schema and are migrated explicitly:

- Form.fields as a list of field-name strings: "Email" becomes an email
  field, every other name a text field.
- ParticipantData.data as a native map rather than a JSON string.

Anything else that does not decode raises InvalidSchemaError.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from eventreg.errors import InvalidSchemaError
from eventreg.models.event import Event, EventStatus
from eventreg.models.form import EMAIL_FIELD, FieldType, Form, FormField
from eventreg.models.participant import ParticipantData
from eventreg.models.user import User

_FIELDS_ADAPTER = TypeAdapter(list[FormField])
_DATA_ADAPTER = TypeAdapter(dict[str, str])


def _native(value: Any) -> Any:
    """Convert store temporal types (neo4j.time.*) to datetime."""
    if value is not None and hasattr(value, "to_native"):
        return value.to_native()
    return value


def _text(props: Mapping[str, Any], key: str) -> str:
    value = props.get(key)
    return "" if value is None else str(value)


# =============================================================================
# Users
# =============================================================================

def user_from_props(props: Mapping[str, Any]) -> User:
    """Build a User from stored node properties."""
    requested_at = _native(props.get("passwordResetRequestedAt"))
    if requested_at is not None and not isinstance(requested_at, datetime):
        requested_at = datetime.fromisoformat(str(requested_at))

    can_be_staff = props.get("canBeStaff")
    return User(
        id=props["id"],
        name=_text(props, "name"),
        email=_text(props, "email"),
        password_hash=_text(props, "passwordHash"),
        can_be_staff=True if can_be_staff is None else bool(can_be_staff),
        is_email_confirmed=bool(props.get("isEmailConfirmed") or False),
        email_confirmation_code=_text(props, "emailConfirmationCode"),
        password_reset_token=_text(props, "passwordResetToken"),
        password_reset_requested_at=requested_at,
        password_reset_attempts=int(props.get("passwordResetAttempts") or 0),
    )


def user_to_props(user: User) -> dict[str, Any]:
    """Stored properties for a User node."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "passwordHash": user.password_hash,
        "canBeStaff": user.can_be_staff,
        "isEmailConfirmed": user.is_email_confirmed,
        "emailConfirmationCode": user.email_confirmation_code,
        "passwordResetToken": user.password_reset_token,
        "passwordResetRequestedAt": user.password_reset_requested_at,
        "passwordResetAttempts": user.password_reset_attempts,
    }


# =============================================================================
# Events
# =============================================================================

def event_from_props(props: Mapping[str, Any], created_by: int | None = None) -> Event:
    """Build an Event from stored properties and its CREATED edge owner."""
    status = props.get("status") or EventStatus.UPCOMING.value
    return Event(
        id=props["id"],
        name=_text(props, "name"),
        description=_text(props, "description"),
        image_base64=_text(props, "imageBase64"),
        created_by=created_by,
        date_time=_text(props, "dateTime"),
        category=_text(props, "category"),
        location=_text(props, "location"),
        status=EventStatus.parse(status),
        invitation_template_id=int(props.get("invitationTemplateId") or 0),
    )


# =============================================================================
# Forms
# =============================================================================

def fields_to_property(fields: list[FormField]) -> str:
    """Encode a field list for storage."""
    return _FIELDS_ADAPTER.dump_json(fields).decode("utf-8")


def fields_from_property(raw: Any) -> list[FormField]:
    """Decode a stored field list.

    Raises:
        InvalidSchemaError: If the stored value has an unknown shape.
    """
    if raw is None:
        return []

    if isinstance(raw, str):
        try:
            return _FIELDS_ADAPTER.validate_json(raw)
        except ValidationError as e:
            raise InvalidSchemaError(f"Stored form fields are invalid: {e.error_count()} error(s)") from e

    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        # Legacy: field names only
        return [
            FormField(name=name, type=FieldType.EMAIL if name == EMAIL_FIELD else FieldType.TEXT)
            for name in raw
        ]

    raise InvalidSchemaError(f"Stored form fields have an unsupported shape: {type(raw).__name__}")


def form_from_props(props: Mapping[str, Any]) -> Form:
    """Build a Form from stored node properties."""
    return Form(
        id=props["id"],
        event_id=int(props.get("eventId") or 0),
        fields=fields_from_property(props.get("fields")),
    )


# =============================================================================
# Participants
# =============================================================================

def data_to_property(data: Mapping[str, str]) -> str:
    """Encode participant data for storage."""
    return _DATA_ADAPTER.dump_json(dict(data)).decode("utf-8")


def data_from_property(raw: Any) -> dict[str, str]:
    """Decode stored participant data.

    Raises:
        InvalidSchemaError: If the stored value has an unknown shape.
    """
    if raw is None:
        return {}

    if isinstance(raw, str):
        try:
            return _DATA_ADAPTER.validate_json(raw)
        except ValidationError as e:
            raise InvalidSchemaError("Stored participant data is invalid") from e

    if isinstance(raw, Mapping):
        # Legacy: native map property
        return {str(key): "" if value is None else str(value) for key, value in raw.items()}

    raise InvalidSchemaError(f"Stored participant data has an unsupported shape: {type(raw).__name__}")


def participant_from_props(props: Mapping[str, Any]) -> ParticipantData:
    """Build a ParticipantData from stored node properties."""
    return ParticipantData(
        id=props["id"],
        form_id=int(props.get("formId") or 0),
        data=data_from_property(props.get("data")),
        invited=bool(props.get("invited") or False),
        attended=bool(props.get("attended") or False),
        qr_code=_text(props, "qrCode"),
    )
