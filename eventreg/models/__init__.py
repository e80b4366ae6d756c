"""Data models for the event registration core.

This package contains:
- graph.py: node labels, health response
- user.py: user accounts
- event.py: events and their status
- form.py: registration forms and field types
- participant.py: participant records
"""

from eventreg.models.graph import HealthResponse, NodeLabel
from eventreg.models.user import User, UserRead
from eventreg.models.event import Event, EventCreate, EventStatus, EventUpdate
from eventreg.models.form import (
    EMAIL_FIELD,
    FieldType,
    Form,
    FormField,
    default_fields,
    parse_field_list,
)
from eventreg.models.participant import ParticipantData

__all__ = [
    # Graph models
    "HealthResponse",
    "NodeLabel",
    # User models
    "User",
    "UserRead",
    # Event models
    "Event",
    "EventCreate",
    "EventStatus",
    "EventUpdate",
    # Form models
    "EMAIL_FIELD",
    "FieldType",
    "Form",
    "FormField",
    "default_fields",
    "parse_field_list",
    # Participant models
    "ParticipantData",
]
