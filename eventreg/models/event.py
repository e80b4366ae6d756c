"""Event models."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from eventreg.errors import InvalidInputError


class EventStatus(str, Enum):
    """Lifecycle status of an event. Any status is reachable from any other."""

    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"

    @classmethod
    def parse(cls, value: "str | EventStatus") -> "EventStatus":
        """Parse a status case-insensitively.

        Raises:
            InvalidInputError: If the value is not a known status.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(status.value for status in cls)
            raise InvalidInputError(
                f"Unknown event status '{value}'. Allowed: {allowed}"
            ) from None


class Event(BaseModel):
    """An event as read from the graph.

    created_by is derived from the incoming CREATED edge, never stored.
    """

    id: int
    name: str = ""
    description: str = ""
    image_base64: str = ""
    created_by: int | None = None
    date_time: str = ""
    category: str = ""
    location: str = ""
    status: EventStatus = EventStatus.UPCOMING
    invitation_template_id: int = 0


class EventCreate(BaseModel):
    """Schema for creating an event."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    image_base64: str = ""
    date_time: str = ""
    category: str = ""
    location: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Event name is required")
        return v.strip()


class EventUpdate(BaseModel):
    """Patch for an event. Omitted fields are written as empty strings."""

    name: str | None = None
    description: str | None = None
    image_base64: str | None = None
    date_time: str | None = None
    category: str | None = None
    location: str | None = None
