"""Event persistence.

The organizer of an event is whoever holds its incoming CREATED edge;
Event.created_by is filled from that edge on every read.
"""

from typing import Any

from neo4j import AsyncTransaction

from eventreg.db.mapper import event_from_props
from eventreg.db.neo4j import allocate_ids, read_transaction, write_transaction
from eventreg.errors import ConflictError, ForbiddenError, NotFoundError
from eventreg.models.event import Event, EventCreate, EventStatus, EventUpdate
from eventreg.models.graph import NodeLabel

EVENT_QUERY = """
MATCH (e:Event {id: $event_id})
OPTIONAL MATCH (u:User)-[:CREATED]->(e)
RETURN e {.*} AS event, u.id AS created_by
"""

# Patch field -> stored property
_EVENT_PROPERTIES = {
    "name": "name",
    "description": "description",
    "image_base64": "imageBase64",
    "date_time": "dateTime",
    "category": "category",
    "location": "location",
}


def check_owner(created_by: int | None, owner_id: int | None, what: str) -> None:
    """Raise ForbiddenError unless owner_id is unset or is the organizer."""
    if owner_id is not None and created_by != owner_id:
        raise ForbiddenError(f"User {owner_id} does not own {what}")


async def fetch_event(tx: AsyncTransaction, event_id: int) -> Event | None:
    """Load an event and its organizer inside an open transaction."""
    result = await tx.run(EVENT_QUERY, {"event_id": event_id})
    record = await result.single()
    if record is None:
        return None
    return event_from_props(record["event"], created_by=record["created_by"])


async def fetch_event_by_form(tx: AsyncTransaction, form_id: int) -> Event | None:
    """Load the event owning a form inside an open transaction."""
    result = await tx.run(
        """
        MATCH (e:Event)-[:HAS_FORM]->(:Form {id: $form_id})
        OPTIONAL MATCH (u:User)-[:CREATED]->(e)
        RETURN e {.*} AS event, u.id AS created_by
        """,
        {"form_id": form_id},
    )
    record = await result.single()
    if record is None:
        return None
    return event_from_props(record["event"], created_by=record["created_by"])


async def _require_event(tx: AsyncTransaction, event_id: int, owner_id: int | None) -> Event:
    event = await fetch_event(tx, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")
    check_owner(event.created_by, owner_id, f"event {event_id}")
    return event


def _event_properties(values: dict[str, Any]) -> dict[str, str]:
    return {
        prop: "" if values.get(field) is None else str(values[field])
        for field, prop in _EVENT_PROPERTIES.items()
    }


async def _create(tx: AsyncTransaction, event: EventCreate, created_by: int) -> int:
    result = await tx.run("MATCH (u:User {id: $user_id}) RETURN u.id AS id", {"user_id": created_by})
    if await result.single() is None:
        raise NotFoundError(f"User {created_by} not found")

    (event_id,) = await allocate_ids(tx, NodeLabel.EVENT.value)
    props = _event_properties(event.model_dump())
    props.update({
        "id": event_id,
        "status": EventStatus.UPCOMING.value,
        "invitationTemplateId": 0,
    })
    result = await tx.run(
        """
        MATCH (u:User {id: $user_id})
        CREATE (e:Event)
        SET e = $props
        CREATE (u)-[:CREATED]->(e)
        """,
        {"user_id": created_by, "props": props},
    )
    await result.consume()
    return event_id


async def _update(
    tx: AsyncTransaction, event_id: int, patch: EventUpdate, owner_id: int | None
) -> None:
    await _require_event(tx, event_id, owner_id)
    result = await tx.run(
        "MATCH (e:Event {id: $event_id}) SET e += $props",
        {"event_id": event_id, "props": _event_properties(patch.model_dump())},
    )
    await result.consume()


async def _update_status(
    tx: AsyncTransaction, event_id: int, status: EventStatus, owner_id: int | None
) -> None:
    await _require_event(tx, event_id, owner_id)
    result = await tx.run(
        "MATCH (e:Event {id: $event_id}) SET e.status = $status",
        {"event_id": event_id, "status": status.value},
    )
    await result.consume()


async def _delete(tx: AsyncTransaction, event_id: int, owner_id: int | None) -> None:
    result = await tx.run(
        """
        MATCH (e:Event {id: $event_id})
        OPTIONAL MATCH (u:User)-[:CREATED]->(e)
        OPTIONAL MATCH (e)-[:HAS_FORM]->(:Form)-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData)
        RETURN e.status AS status,
               u.id AS created_by,
               count(CASE WHEN p.invited THEN 1 END) AS invited
        """,
        {"event_id": event_id},
    )
    record = await result.single()
    if record is None:
        raise NotFoundError(f"Event {event_id} not found")
    check_owner(record["created_by"], owner_id, f"event {event_id}")

    status = EventStatus.parse(record["status"] or EventStatus.UPCOMING.value)
    if status is not EventStatus.FINISHED and record["invited"] > 0:
        raise ConflictError(
            f"Event {event_id} has invited participants and is not finished"
        )

    result = await tx.run(
        """
        MATCH (e:Event {id: $event_id})
        OPTIONAL MATCH (e)-[:HAS_FORM]->(f:Form)
        OPTIONAL MATCH (f)-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData)
        WITH e, collect(DISTINCT f) AS forms, collect(DISTINCT p) AS participants
        FOREACH (n IN participants | DETACH DELETE n)
        FOREACH (n IN forms | DETACH DELETE n)
        DETACH DELETE e
        """,
        {"event_id": event_id},
    )
    await result.consume()


async def _list_events(tx: AsyncTransaction, query: str, user_id: int) -> list[Event]:
    result = await tx.run(query, {"user_id": user_id})
    return [
        event_from_props(row["event"], created_by=row["created_by"])
        for row in await result.data()
    ]


class EventRepository:
    """Event CRUD, status transitions and ownership checks."""

    async def create(self, event: EventCreate, created_by: int) -> int:
        """Create an upcoming event owned by created_by.

        Raises:
            NotFoundError: If the organizer does not exist.
        """
        return await write_transaction(_create, event, created_by)

    async def get(self, event_id: int) -> Event | None:
        return await read_transaction(fetch_event, event_id)

    async def get_by_form(self, form_id: int) -> Event | None:
        return await read_transaction(fetch_event_by_form, form_id)

    async def list_by_user(self, user_id: int) -> list[Event]:
        """Events the user organizes."""
        return await read_transaction(
            _list_events,
            """
            MATCH (u:User {id: $user_id})-[:CREATED]->(e:Event)
            RETURN e {.*} AS event, u.id AS created_by
            ORDER BY e.id
            """,
            user_id,
        )

    async def list_by_staff(self, user_id: int) -> list[Event]:
        """Events the user is assigned to as staff."""
        return await read_transaction(
            _list_events,
            """
            MATCH (:User {id: $user_id})-[:STAFF_FOR]->(e:Event)
            OPTIONAL MATCH (o:User)-[:CREATED]->(e)
            RETURN e {.*} AS event, o.id AS created_by
            ORDER BY e.id
            """,
            user_id,
        )

    async def update(self, event_id: int, patch: EventUpdate, owner_id: int | None = None) -> None:
        """Overwrite the event's descriptive fields.

        Fields left out of the patch are stored as empty strings.

        Raises:
            NotFoundError: If the event does not exist.
            ForbiddenError: If owner_id is not the organizer.
        """
        await write_transaction(_update, event_id, patch, owner_id)

    async def update_status(
        self, event_id: int, status: str | EventStatus, owner_id: int | None = None
    ) -> None:
        """Move the event to any status.

        Raises:
            InvalidInputError: If status is not a known value.
            NotFoundError: If the event does not exist.
            ForbiddenError: If owner_id is not the organizer.
        """
        parsed = EventStatus.parse(status)
        await write_transaction(_update_status, event_id, parsed, owner_id)

    async def delete(self, event_id: int, owner_id: int | None = None) -> None:
        """Delete the event together with its form and participants.

        A finished event is always deletable. Any other event is kept
        while one of its participants has been invited.

        Raises:
            NotFoundError: If the event does not exist.
            ForbiddenError: If owner_id is not the organizer.
            ConflictError: If an unfinished event has invited participants.
        """
        await write_transaction(_delete, event_id, owner_id)

    async def ensure_owner(self, event_id: int, user_id: int) -> Event:
        """Return the event if user_id organizes it.

        Raises:
            NotFoundError: If the event does not exist.
            ForbiddenError: If user_id is not the organizer.
        """
        return await read_transaction(_require_event, event_id, user_id)
