"""Pydantic models and enums describing the property graph.

Node Labels:
- User: accounts (organizers and staff)
- Event: events owned by an organizer
- Form: the per-event registration schema
- ParticipantData: one registrant's submission
- Sequence: store-side id counters

Relationship Types:
- CREATED: User -> Event (organizer)
- HAS_FORM: Event -> Form
- HAS_PARTICIPANT_DATA: Form -> ParticipantData
- STAFF_FOR: User -> Event
"""

from enum import Enum

from pydantic import BaseModel, Field


# =============================================================================
# Node Labels
# =============================================================================

class NodeLabel(str, Enum):
    """Node labels used by the registration graph."""

    USER = "User"
    EVENT = "Event"
    FORM = "Form"
    PARTICIPANT_DATA = "ParticipantData"
    SEQUENCE = "Sequence"


# =============================================================================
# Health Check Response
# =============================================================================

class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Database connection status")
    version: str = Field(..., description="API version")
