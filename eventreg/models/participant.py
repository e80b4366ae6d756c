"""Participant models."""

from pydantic import BaseModel, Field

from eventreg.models.form import EMAIL_FIELD


class ParticipantData(BaseModel):
    """One registrant's submitted values plus invitation state."""

    id: int
    form_id: int = 0
    data: dict[str, str] = Field(default_factory=dict)
    invited: bool = False
    attended: bool = False
    qr_code: str = ""

    @property
    def email(self) -> str:
        return self.data.get(EMAIL_FIELD, "").strip()
