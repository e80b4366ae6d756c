"""Registration form persistence.

Invariants kept here rather than by store constraints:

- An event has at most one form (HAS_FORM edge).
- A form's field list is frozen, and the form cannot be deleted, once
  any participant data is linked to it.
- Only the event organizer may mutate the form, when an acting user is
  given.

Each public operation runs its checks and its mutation in a single
write transaction.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from neo4j import AsyncTransaction

from eventreg.db.mapper import fields_to_property, form_from_props
from eventreg.db.neo4j import allocate_ids, read_transaction, write_transaction
from eventreg.errors import AlreadyExistsError, ConflictError, NotFoundError
from eventreg.models.form import Form, FormField, default_fields, parse_field_list
from eventreg.models.graph import NodeLabel
from eventreg.repositories.events import check_owner
from eventreg.services.spreadsheet import build_workbook

FORM_CONTEXT_QUERY = """
MATCH (f:Form {id: $form_id})
OPTIONAL MATCH (e:Event)-[:HAS_FORM]->(f)
OPTIONAL MATCH (u:User)-[:CREATED]->(e)
RETURN f {.*} AS form,
       e.id AS event_id,
       u.id AS created_by,
       size([(f)-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData) | p]) AS participants
"""


async def fetch_form_context(tx: AsyncTransaction, form_id: int) -> dict[str, Any] | None:
    """Load a form with its event, organizer and participant count."""
    result = await tx.run(FORM_CONTEXT_QUERY, {"form_id": form_id})
    record = await result.single()
    if record is None:
        return None
    return {
        "form": form_from_props(record["form"]),
        "event_id": record["event_id"],
        "created_by": record["created_by"],
        "participants": record["participants"],
    }


async def _require_mutable_form(
    tx: AsyncTransaction, form_id: int, owner_id: int | None
) -> dict[str, Any]:
    context = await fetch_form_context(tx, form_id)
    if context is None:
        raise NotFoundError(f"Form {form_id} not found")
    check_owner(context["created_by"], owner_id, f"form {form_id}")
    if context["participants"] > 0:
        raise ConflictError(f"Form {form_id} already has participant data")
    return context


async def _create_form(tx: AsyncTransaction, event_id: int, owner_id: int | None) -> int:
    result = await tx.run(
        """
        MATCH (e:Event {id: $event_id})
        OPTIONAL MATCH (u:User)-[:CREATED]->(e)
        RETURN u.id AS created_by, size([(e)-[:HAS_FORM]->(f:Form) | f]) AS forms
        """,
        {"event_id": event_id},
    )
    record = await result.single()
    if record is None:
        raise NotFoundError(f"Event {event_id} not found")
    check_owner(record["created_by"], owner_id, f"event {event_id}")
    if record["forms"] > 0:
        raise AlreadyExistsError(f"Event {event_id} already has a form")

    (form_id,) = await allocate_ids(tx, NodeLabel.FORM.value)
    result = await tx.run(
        """
        MATCH (e:Event {id: $event_id})
        CREATE (f:Form {id: $form_id, eventId: $event_id, fields: $fields})
        CREATE (e)-[:HAS_FORM]->(f)
        SET e.invitationTemplateId = $form_id
        RETURN size([(e)-[:HAS_FORM]->(x:Form) | x]) AS forms
        """,
        {
            "event_id": event_id,
            "form_id": form_id,
            "fields": fields_to_property(default_fields()),
        },
    )
    record = await result.single()
    # A concurrent creator got there first; abort so only one form survives
    if record is None or record["forms"] > 1:
        raise AlreadyExistsError(f"Event {event_id} already has a form")
    return form_id


async def _update_form(
    tx: AsyncTransaction,
    form_id: int,
    raw_fields: Iterable[Mapping[str, Any] | FormField],
    owner_id: int | None,
) -> None:
    await _require_mutable_form(tx, form_id, owner_id)
    fields = parse_field_list(raw_fields)
    result = await tx.run(
        "MATCH (f:Form {id: $form_id}) SET f.fields = $fields",
        {"form_id": form_id, "fields": fields_to_property(fields)},
    )
    await result.consume()


async def _delete_form(
    tx: AsyncTransaction, form_id: int, event_id: int, owner_id: int | None
) -> None:
    context = await _require_mutable_form(tx, form_id, owner_id)
    if context["event_id"] is not None and context["event_id"] != event_id:
        raise NotFoundError(f"Form {form_id} does not belong to event {event_id}")

    result = await tx.run(
        """
        MATCH (f:Form {id: $form_id})
        OPTIONAL MATCH (e:Event {id: $event_id})-[:HAS_FORM]->(f)
        SET e.invitationTemplateId = 0
        DETACH DELETE f
        """,
        {"form_id": form_id, "event_id": event_id},
    )
    await result.consume()


async def fetch_form(tx: AsyncTransaction, form_id: int) -> Form | None:
    """Load a form by id inside an open transaction."""
    result = await tx.run("MATCH (f:Form {id: $form_id}) RETURN f {.*} AS form", {"form_id": form_id})
    record = await result.single()
    return form_from_props(record["form"]) if record else None


async def _get_form_by_event(tx: AsyncTransaction, event_id: int) -> Form | None:
    result = await tx.run(
        "MATCH (:Event {id: $event_id})-[:HAS_FORM]->(f:Form) RETURN f {.*} AS form LIMIT 1",
        {"event_id": event_id},
    )
    record = await result.single()
    return form_from_props(record["form"]) if record else None


async def _count_participants(tx: AsyncTransaction, form_id: int) -> int:
    result = await tx.run(
        """
        MATCH (f:Form {id: $form_id})-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData)
        RETURN count(p) AS participants
        """,
        {"form_id": form_id},
    )
    record = await result.single()
    return record["participants"] if record else 0


class FormRepository:
    """CRUD for registration forms."""

    async def create_form(self, event_id: int, owner_id: int | None = None) -> int:
        """Create the event's form with the default Email field.

        The form id is also stored on the event as its invitation template.

        Args:
            event_id: The event to attach the form to.
            owner_id: Acting user; must be the organizer when given.

        Returns:
            The new form id.

        Raises:
            NotFoundError: If the event does not exist.
            ForbiddenError: If owner_id is not the organizer.
            AlreadyExistsError: If the event already has a form.
        """
        return await write_transaction(_create_form, event_id, owner_id)

    async def update_form(
        self,
        form_id: int,
        fields: Iterable[Mapping[str, Any] | FormField],
        owner_id: int | None = None,
    ) -> None:
        """Replace a form's field list, preserving submission order.

        Raises:
            NotFoundError: If the form does not exist.
            ForbiddenError: If owner_id is not the organizer.
            ConflictError: If participant data already exists for the form.
            InvalidSchemaError: If the field list is not acceptable.
        """
        await write_transaction(_update_form, form_id, list(fields), owner_id)

    async def delete_form(self, form_id: int, event_id: int, owner_id: int | None = None) -> None:
        """Delete a form and reset the event's invitation template.

        Raises:
            NotFoundError: If the form does not exist or belongs to another event.
            ForbiddenError: If owner_id is not the organizer.
            ConflictError: If participant data already exists for the form.
        """
        await write_transaction(_delete_form, form_id, event_id, owner_id)

    async def form_has_participants(self, form_id: int) -> bool:
        return await read_transaction(_count_participants, form_id) > 0

    async def get(self, form_id: int) -> Form | None:
        return await read_transaction(fetch_form, form_id)

    async def get_by_event(self, event_id: int) -> Form | None:
        return await read_transaction(_get_form_by_event, event_id)

    async def build_template(self, form_id: int) -> bytes:
        """Build an .xlsx import template whose header is the form's fields.

        Raises:
            NotFoundError: If the form does not exist.
        """
        form = await self.get(form_id)
        if form is None:
            raise NotFoundError(f"Form {form_id} not found")
        return build_workbook(form.field_names)
