"""Staff assignment through STAFF_FOR edges.

Staff never own an event. Whether a user may be assigned is checked
once, at assignment time, through the user's canBeStaff flag.
"""

from neo4j import AsyncTransaction

from eventreg.db.mapper import user_from_props
from eventreg.db.neo4j import read_transaction, write_transaction
from eventreg.errors import ConflictError, InvalidInputError, NotFoundError
from eventreg.models.user import UserRead
from eventreg.repositories.events import check_owner

CANDIDATE_LIMIT = 20


def _users(rows: list[dict]) -> list[UserRead]:
    return [UserRead.from_user(user_from_props(row["user"])) for row in rows]


async def _event_owner(tx: AsyncTransaction, event_id: int, owner_id: int | None) -> None:
    result = await tx.run(
        """
        MATCH (e:Event {id: $event_id})
        OPTIONAL MATCH (u:User)-[:CREATED]->(e)
        RETURN u.id AS created_by
        """,
        {"event_id": event_id},
    )
    record = await result.single()
    if record is None:
        raise NotFoundError(f"Event {event_id} not found")
    check_owner(record["created_by"], owner_id, f"event {event_id}")


async def _find_candidates(tx: AsyncTransaction, fragment: str, limit: int) -> list[UserRead]:
    result = await tx.run(
        """
        MATCH (u:User)
        WHERE toLower(u.email) CONTAINS toLower($fragment) AND u.canBeStaff = true
        RETURN u {.*} AS user
        ORDER BY u.email
        LIMIT $limit
        """,
        {"fragment": fragment, "limit": limit},
    )
    return _users(await result.data())


async def _assign(tx: AsyncTransaction, event_id: int, user_id: int, owner_id: int | None) -> None:
    await _event_owner(tx, event_id, owner_id)

    result = await tx.run(
        "MATCH (u:User {id: $user_id}) RETURN u.canBeStaff AS can_be_staff",
        {"user_id": user_id},
    )
    record = await result.single()
    if record is None:
        raise NotFoundError(f"User {user_id} not found")
    if record["can_be_staff"] is False:
        raise ConflictError(f"User {user_id} cannot be assigned as staff")

    result = await tx.run(
        """
        MATCH (u:User {id: $user_id}), (e:Event {id: $event_id})
        MERGE (u)-[:STAFF_FOR]->(e)
        """,
        {"user_id": user_id, "event_id": event_id},
    )
    await result.consume()


async def _unassign(
    tx: AsyncTransaction, event_id: int, user_id: int, owner_id: int | None
) -> None:
    if owner_id is not None:
        await _event_owner(tx, event_id, owner_id)
    result = await tx.run(
        """
        MATCH (:User {id: $user_id})-[r:STAFF_FOR]->(:Event {id: $event_id})
        DELETE r
        """,
        {"user_id": user_id, "event_id": event_id},
    )
    await result.consume()


async def _list_by_event(tx: AsyncTransaction, event_id: int) -> list[UserRead]:
    result = await tx.run(
        """
        MATCH (u:User)-[:STAFF_FOR]->(:Event {id: $event_id})
        RETURN u {.*} AS user
        ORDER BY u.id
        """,
        {"event_id": event_id},
    )
    return _users(await result.data())


class StaffAssignment:
    """Manage which users staff which events."""

    async def find_candidates(self, email_fragment: str, limit: int = CANDIDATE_LIMIT) -> list[UserRead]:
        """Users whose email contains the fragment and who accept staff roles.

        Raises:
            InvalidInputError: If the fragment is blank.
        """
        fragment = (email_fragment or "").strip()
        if not fragment:
            raise InvalidInputError("An email fragment is required")
        return await read_transaction(_find_candidates, fragment, limit)

    async def assign(self, event_id: int, user_id: int, owner_id: int | None = None) -> None:
        """Make user_id staff of the event. Assigning twice is a no-op.

        Raises:
            NotFoundError: If the event or the user does not exist.
            ForbiddenError: If owner_id is not the organizer.
            ConflictError: If the user does not accept staff roles.
        """
        await write_transaction(_assign, event_id, user_id, owner_id)

    async def remove(self, event_id: int, user_id: int, owner_id: int | None = None) -> None:
        """Remove a staff member. No error if they were not assigned."""
        await write_transaction(_unassign, event_id, user_id, owner_id)

    async def leave(self, event_id: int, user_id: int) -> None:
        """A staff member leaves the event. No error if not assigned."""
        await write_transaction(_unassign, event_id, user_id, None)

    async def list_by_event(self, event_id: int) -> list[UserRead]:
        return await read_transaction(_list_by_event, event_id)
