"""User models.

Users are stored as (:User) nodes. The password hash and the
confirmation/reset tokens never leave the core through UserRead.
"""

from datetime import datetime

from pydantic import BaseModel


class User(BaseModel):
    """A user account as stored in the graph."""

    id: int
    name: str = ""
    email: str = ""
    password_hash: str = ""
    can_be_staff: bool = True
    is_email_confirmed: bool = False
    email_confirmation_code: str = ""
    password_reset_token: str = ""
    password_reset_requested_at: datetime | None = None
    password_reset_attempts: int = 0


class UserRead(BaseModel):
    """Public view of a user (excludes secrets)."""

    id: int
    name: str
    email: str
    can_be_staff: bool = True
    is_email_confirmed: bool = False

    @classmethod
    def from_user(cls, user: User) -> "UserRead":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            can_be_staff=user.can_be_staff,
            is_email_confirmed=user.is_email_confirmed,
        )
