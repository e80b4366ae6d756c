"""Tests for account workflows and the user repository."""

from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from eventreg.auth.security import get_password_hash
from eventreg.config import get_settings
from eventreg.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from eventreg.models import User
from eventreg.repositories.users import UserRepository
from eventreg.services.accounts import AccountService
from tests.conftest import make_result


@pytest.fixture
def users():
    repo = MagicMock()
    for name in (
        "get", "get_by_email", "get_by_confirmation_code", "get_by_reset_token",
        "create", "update_credentials", "confirm_email",
    ):
        setattr(repo, name, AsyncMock())
    repo.get_by_email.return_value = None
    repo.create.side_effect = lambda **values: User(id=501, **values)
    return repo


@pytest.fixture
def service(mock_sender, users):
    return AccountService(mock_sender, users=users, settings=get_settings())


@pytest.fixture
def user():
    return User(id=501, name="Ada", email="ada@example.com", password_hash=get_password_hash("correct-horse"))


class TestRegister:
    """Tests for registration."""

    @pytest.mark.asyncio
    async def test_register_sends_confirmation(self, service, users, mock_sender):
        created = await service.register(" Ada ", "ada@example.com", "correct-horse")

        assert created.name == "Ada"
        assert created.password_hash != "correct-horse"
        code = created.email_confirmation_code
        assert code
        to, subject, body = mock_sender.send_email.call_args.args
        assert to == "ada@example.com"
        assert f"https://app.test.example/confirm-email?code={code}" in body

    @pytest.mark.asyncio
    async def test_register_duplicate(self, service, users, user):
        users.get_by_email.return_value = user

        with pytest.raises(ConflictError):
            await service.register("Ada", "ada@example.com", "correct-horse")

        users.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_register_bad_email(self, service):
        with pytest.raises(InvalidInputError):
            await service.register("Ada", "not-an-email", "correct-horse")

    @pytest.mark.asyncio
    async def test_register_domain_not_allowed(self, mock_sender, users):
        settings = get_settings().model_copy(update={"ALLOWED_EMAIL_DOMAINS": ["school.edu"]})
        service = AccountService(mock_sender, users=users, settings=settings)

        with pytest.raises(InvalidInputError):
            await service.register("Ada", "ada@example.com", "correct-horse")

        created = await service.register("Ada", "ada@School.edu", "correct-horse")
        assert created.email == "ada@School.edu"


class TestConfirmAndAuthenticate:
    """Tests for email confirmation and login checks."""

    @pytest.mark.asyncio
    async def test_confirm(self, service, users, user):
        users.get_by_confirmation_code.return_value = user
        users.confirm_email.return_value = True

        assert await service.confirm_email("code") is True
        users.confirm_email.assert_awaited_once_with(501)

    @pytest.mark.asyncio
    async def test_confirm_twice(self, service, users, user):
        users.get_by_confirmation_code.return_value = user.model_copy(update={"is_email_confirmed": True})

        assert await service.confirm_email("code") is False

    @pytest.mark.asyncio
    async def test_confirm_unknown(self, service, users):
        users.get_by_confirmation_code.return_value = None

        with pytest.raises(NotFoundError):
            await service.confirm_email("nope")

    @pytest.mark.asyncio
    async def test_confirm_empty_code(self, service, users, user):
        """An empty code never matches, even though confirmed users store one."""
        users.get_by_confirmation_code.return_value = user.model_copy(update={"is_email_confirmed": True})

        with pytest.raises(NotFoundError):
            await service.confirm_email("")

        users.get_by_confirmation_code.assert_not_awaited()
        users.confirm_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authenticate(self, service, users, user):
        users.get_by_email.return_value = user

        assert (await service.authenticate("ada@example.com", "correct-horse")).id == 501
        assert await service.authenticate("ada@example.com", "wrong") is None


class TestPasswordReset:
    """Tests for the reset flow."""

    @pytest.mark.asyncio
    async def test_request_issues_token(self, service, users, user, mock_sender):
        users.get_by_email.return_value = user

        await service.request_password_reset("ada@example.com")

        updated = users.update_credentials.call_args.args[0]
        assert updated.password_reset_token
        assert updated.password_reset_attempts == 1
        assert updated.password_reset_requested_at is not None
        body = mock_sender.send_email.call_args.args[2]
        assert f"reset-password?token={updated.password_reset_token}" in body

    @pytest.mark.asyncio
    async def test_request_cooldown(self, service, users, user):
        users.get_by_email.return_value = user.model_copy(update={
            "password_reset_requested_at": datetime.now(timezone.utc) - timedelta(seconds=30),
            "password_reset_attempts": 1,
        })

        with pytest.raises(ConflictError):
            await service.request_password_reset("ada@example.com")

    @pytest.mark.asyncio
    async def test_request_too_many(self, service, users, user):
        users.get_by_email.return_value = user.model_copy(update={"password_reset_attempts": 10})

        with pytest.raises(ConflictError):
            await service.request_password_reset("ada@example.com")

    @pytest.mark.asyncio
    async def test_request_unknown_user(self, service, users):
        with pytest.raises(NotFoundError):
            await service.request_password_reset("ghost@example.com")

    @pytest.mark.asyncio
    async def test_reset(self, service, users, user):
        users.get_by_reset_token.return_value = user.model_copy(update={
            "password_reset_token": "tok",
            "password_reset_requested_at": datetime.now(timezone.utc) - timedelta(minutes=5),
            "password_reset_attempts": 3,
        })

        await service.reset_password("tok", "new-password")

        updated = users.update_credentials.call_args.args[0]
        assert updated.password_reset_token == ""
        assert updated.password_reset_requested_at is None
        assert updated.password_reset_attempts == 0
        assert updated.password_hash != user.password_hash

    @pytest.mark.asyncio
    async def test_reset_expired(self, service, users, user):
        users.get_by_reset_token.return_value = user.model_copy(update={
            "password_reset_token": "tok",
            "password_reset_requested_at": datetime.now(timezone.utc) - timedelta(minutes=21),
        })

        with pytest.raises(ConflictError):
            await service.reset_password("tok", "new-password")

    @pytest.mark.asyncio
    async def test_reset_unknown_token(self, service, users):
        users.get_by_reset_token.return_value = None

        with pytest.raises(NotFoundError):
            await service.reset_password("nope", "new-password")


class TestChangePassword:
    """Tests for changing a password."""

    @pytest.mark.asyncio
    async def test_change(self, service, users, user):
        users.get.return_value = user

        await service.change_password(501, "correct-horse", "battery-staple")

        users.update_credentials.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wrong_old_password(self, service, users, user):
        users.get.return_value = user

        with pytest.raises(ForbiddenError):
            await service.change_password(501, "wrong", "battery-staple")

        users.update_credentials.assert_not_awaited()


class TestUserRepository:
    """Tests for user persistence."""

    @pytest.mark.asyncio
    async def test_create(self, graph):
        graph.queue(make_result(single={"last": 501}), make_result())

        created = await UserRepository().create("Ada", "ada@example.com", "hash", email_confirmation_code="c")

        assert created.id == 501
        props = graph.params(1)["props"]
        assert props["email"] == "ada@example.com"
        assert props["canBeStaff"] is True
        assert props["emailConfirmationCode"] == "c"

    @pytest.mark.asyncio
    async def test_get_by_email_case_insensitive(self, graph):
        graph.queue(make_result(single={"user": {"id": 501, "email": "ada@example.com"}}))

        found = await UserRepository().get_by_email(" ADA@example.com ")

        assert found.id == 501
        assert "toLower(u.email) = toLower($email)" in graph.queries[0]
        assert graph.params(0) == {"email": "ADA@example.com"}

    @pytest.mark.asyncio
    async def test_update_credentials_writes_only_credentials(self, graph, user):
        graph.queue(make_result(single={"id": 501}))

        assert await UserRepository().update_credentials(user) is True

        props = graph.params(0)["props"]
        assert set(props) == {
            "passwordHash", "passwordResetToken", "passwordResetRequestedAt", "passwordResetAttempts",
        }

    @pytest.mark.asyncio
    async def test_confirm_email(self, graph):
        graph.queue(make_result(single={"id": 501}))

        assert await UserRepository().confirm_email(501) is True
        assert graph.params(0)["props"] == {"isEmailConfirmed": True, "emailConfirmationCode": ""}

    @pytest.mark.asyncio
    async def test_update_name_missing_user(self, graph):
        graph.queue(make_result(single=None))

        assert await UserRepository().update_name(404, "New") is False
