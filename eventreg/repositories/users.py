"""User account persistence."""

from typing import Any

from neo4j import AsyncTransaction

from eventreg.db.mapper import user_from_props, user_to_props
from eventreg.db.neo4j import allocate_ids, read_transaction, write_transaction
from eventreg.errors import NotFoundError
from eventreg.models.graph import NodeLabel
from eventreg.models.user import User


async def _create(tx: AsyncTransaction, values: dict[str, Any]) -> User:
    (user_id,) = await allocate_ids(tx, NodeLabel.USER.value)
    user = User(id=user_id, **values)
    result = await tx.run(
        "CREATE (u:User) SET u = $props",
        {"props": user_to_props(user)},
    )
    await result.consume()
    return user


async def _find_one(tx: AsyncTransaction, where: str, params: dict[str, Any]) -> User | None:
    result = await tx.run(f"MATCH (u:User) WHERE {where} RETURN u {{.*}} AS user LIMIT 1", params)
    record = await result.single()
    return user_from_props(record["user"]) if record else None


async def _set_props(tx: AsyncTransaction, user_id: int, props: dict[str, Any]) -> bool:
    result = await tx.run(
        "MATCH (u:User {id: $user_id}) SET u += $props RETURN u.id AS id",
        {"user_id": user_id, "props": props},
    )
    return await result.single() is not None


async def _toggle_can_be_staff(tx: AsyncTransaction, user_id: int) -> bool:
    result = await tx.run(
        """
        MATCH (u:User {id: $user_id})
        SET u.canBeStaff = NOT coalesce(u.canBeStaff, true)
        RETURN u.canBeStaff AS can_be_staff
        """,
        {"user_id": user_id},
    )
    record = await result.single()
    if record is None:
        raise NotFoundError(f"User {user_id} not found")
    return record["can_be_staff"]


class UserRepository:
    """Users stored as (:User) nodes."""

    async def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        can_be_staff: bool = True,
        email_confirmation_code: str = "",
    ) -> User:
        """Create a user with a fresh id.

        Email uniqueness is the caller's responsibility (see AccountService.register).
        """
        return await write_transaction(_create, {
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "can_be_staff": can_be_staff,
            "email_confirmation_code": email_confirmation_code,
        })

    async def get(self, user_id: int) -> User | None:
        return await read_transaction(_find_one, "u.id = $user_id", {"user_id": user_id})

    async def get_by_email(self, email: str) -> User | None:
        return await read_transaction(
            _find_one, "toLower(u.email) = toLower($email)", {"email": email.strip()}
        )

    async def get_by_confirmation_code(self, code: str) -> User | None:
        return await read_transaction(_find_one, "u.emailConfirmationCode = $code", {"code": code})

    async def get_by_reset_token(self, token: str) -> User | None:
        return await read_transaction(_find_one, "u.passwordResetToken = $token", {"token": token})

    async def update_credentials(self, user: User) -> bool:
        """Persist the password hash and password-reset state of user."""
        props = user_to_props(user)
        return await write_transaction(_set_props, user.id, {
            key: props[key]
            for key in (
                "passwordHash",
                "passwordResetToken",
                "passwordResetRequestedAt",
                "passwordResetAttempts",
            )
        })

    async def update_name(self, user_id: int, name: str) -> bool:
        return await write_transaction(_set_props, user_id, {"name": name})

    async def confirm_email(self, user_id: int) -> bool:
        return await write_transaction(
            _set_props, user_id, {"isEmailConfirmed": True, "emailConfirmationCode": ""}
        )

    async def toggle_can_be_staff(self, user_id: int) -> bool:
        """Flip canBeStaff and return the new value.

        Existing STAFF_FOR edges are kept when the flag is turned off.

        Raises:
            NotFoundError: If the user does not exist.
        """
        return await write_transaction(_toggle_can_be_staff, user_id)
