"""Account workflows: registration, email confirmation and passwords.

Email uniqueness is checked by lookup before the write, in separate
transactions, so two concurrent registrations of one address can both
succeed.
"""

import uuid
from datetime import datetime, timedelta, timezone

from eventreg.auth.security import get_password_hash, verify_password
from eventreg.config import Settings, get_settings
from eventreg.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from eventreg.models.user import User
from eventreg.repositories.users import UserRepository
from eventreg.services.mail import EmailSender
from eventreg.validation import is_valid_email


class AccountService:
    """User-facing account operations built on UserRepository."""

    def __init__(
        self,
        sender: EmailSender,
        users: UserRepository | None = None,
        settings: Settings | None = None,
    ):
        self._sender = sender
        self._users = users or UserRepository()
        self._settings = settings or get_settings()

    def _check_email(self, email: str) -> None:
        if not is_valid_email(email):
            raise InvalidInputError(f"'{email}' is not a valid email address")
        allowed = self._settings.ALLOWED_EMAIL_DOMAINS
        domain = email.rsplit("@", 1)[1].lower()
        if allowed and domain not in allowed:
            raise InvalidInputError(f"Email domain '{domain}' is not allowed")

    def _link(self, path: str, **params: str) -> str:
        query = "&".join(f"{key}={value}" for key, value in params.items())
        return f"{self._settings.FRONTEND_URL.rstrip('/')}/{path}?{query}"

    async def register(self, name: str, email: str, password: str, can_be_staff: bool = True) -> User:
        """Create an account and email its confirmation link.

        Raises:
            InvalidInputError: If the email is malformed or its domain is not allowed.
            ConflictError: If the email is already registered.
            TransportError: If the confirmation email could not be sent.
        """
        email = email.strip()
        self._check_email(email)
        if await self._users.get_by_email(email) is not None:
            raise ConflictError(f"A user with email {email} already exists")

        code = str(uuid.uuid4())
        user = await self._users.create(
            name=name.strip(),
            email=email,
            password_hash=get_password_hash(password),
            can_be_staff=can_be_staff,
            email_confirmation_code=code,
        )
        await self._sender.send_email(
            user.email,
            "Confirm your email",
            f"To confirm your email, open this link: {self._link('confirm-email', code=code)}",
        )
        return user

    async def confirm_email(self, code: str) -> bool:
        """Confirm the account holding code.

        Returns:
            False if the email was already confirmed.

        Raises:
            NotFoundError: If no account holds the code.
        """
        # Confirmed accounts hold an empty code
        user = await self._users.get_by_confirmation_code(code) if code else None
        if user is None:
            raise NotFoundError("Unknown confirmation code")
        if user.is_email_confirmed:
            return False
        return await self._users.confirm_email(user.id)

    async def authenticate(self, email: str, password: str) -> User | None:
        user = await self._users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    async def request_password_reset(self, email: str) -> None:
        """Issue a reset token and email the reset link.

        Raises:
            NotFoundError: If no account uses the email.
            ConflictError: If too many resets were requested, or the last
                one was too recent.
        """
        user = await self._users.get_by_email(email)
        if user is None:
            raise NotFoundError(f"User with email {email} not found")

        settings = self._settings
        now = datetime.now(timezone.utc)
        if user.password_reset_attempts >= settings.PASSWORD_RESET_MAX_ATTEMPTS:
            raise ConflictError("Too many password reset requests")
        last = user.password_reset_requested_at
        if last is not None and now - _aware(last) < timedelta(seconds=settings.PASSWORD_RESET_COOLDOWN_SECONDS):
            raise ConflictError("A password reset was requested moments ago; try again later")

        token = str(uuid.uuid4())
        updated = user.model_copy(update={
            "password_reset_token": token,
            "password_reset_requested_at": now,
            "password_reset_attempts": user.password_reset_attempts + 1,
        })
        await self._users.update_credentials(updated)
        await self._sender.send_email(
            user.email,
            "Password reset",
            f"To reset your password, open this link (valid for "
            f"{settings.PASSWORD_RESET_TTL_MINUTES} minutes): "
            f"{self._link('reset-password', token=token)}",
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password using a reset token.

        Raises:
            NotFoundError: If the token is unknown.
            ConflictError: If the token has expired.
        """
        user = await self._users.get_by_reset_token(token) if token else None
        if user is None:
            raise NotFoundError("Unknown or expired reset token")

        requested_at = user.password_reset_requested_at
        ttl = timedelta(minutes=self._settings.PASSWORD_RESET_TTL_MINUTES)
        if requested_at is None or datetime.now(timezone.utc) - _aware(requested_at) > ttl:
            raise ConflictError("The reset link has expired; request a new one")

        await self._users.update_credentials(user.model_copy(update={
            "password_hash": get_password_hash(new_password),
            "password_reset_token": "",
            "password_reset_requested_at": None,
            "password_reset_attempts": 0,
        }))

    async def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        """Replace the password after checking the current one.

        Raises:
            NotFoundError: If the user does not exist.
            ForbiddenError: If old_password is wrong.
        """
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        if not verify_password(old_password, user.password_hash):
            raise ForbiddenError("The current password is incorrect")

        await self._users.update_credentials(
            user.model_copy(update={"password_hash": get_password_hash(new_password)})
        )


def _aware(moment: datetime) -> datetime:
    """Treat naive stored timestamps as UTC."""
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)
