"""Participant data persistence and lifecycle mutations."""

import base64
from collections.abc import Mapping, Sequence

from neo4j import AsyncTransaction

from eventreg.config import get_settings
from eventreg.db.mapper import data_to_property, form_from_props, participant_from_props
from eventreg.db.neo4j import allocate_ids, read_transaction, write_transaction
from eventreg.errors import NotFoundError
from eventreg.models.graph import NodeLabel
from eventreg.models.participant import ParticipantData
from eventreg.repositories.forms import fetch_form
from eventreg.services.imaging import make_thumbnail
from eventreg.services.spreadsheet import read_table
from eventreg.validation import ValidationIssue, validate_batch, validate_record


async def _add_participants(
    tx: AsyncTransaction, form_id: int, records: list[Mapping[str, str]]
) -> list[ValidationIssue]:
    form = await fetch_form(tx, form_id)
    if form is None:
        raise NotFoundError(f"Form {form_id} not found")

    accepted, issues = validate_batch(form.fields, records)
    if not accepted:
        return issues

    ids = await allocate_ids(tx, NodeLabel.PARTICIPANT_DATA.value, len(accepted))
    rows = [
        {"id": participant_id, "data": data_to_property(data)}
        for participant_id, data in zip(ids, accepted)
    ]
    result = await tx.run(
        """
        MATCH (f:Form {id: $form_id})
        UNWIND $rows AS row
        CREATE (p:ParticipantData {
            id: row.id, formId: $form_id, data: row.data,
            invited: false, attended: false, qrCode: ""
        })
        CREATE (f)-[:HAS_PARTICIPANT_DATA]->(p)
        """,
        {"form_id": form_id, "rows": rows},
    )
    await result.consume()
    return issues


async def _set_flag(
    tx: AsyncTransaction, participant_id: int, prop: str, value: object
) -> bool:
    # prop is one of a fixed set of property names, never caller input
    result = await tx.run(
        f"MATCH (p:ParticipantData {{id: $participant_id}}) SET p.{prop} = $value RETURN p.id AS id",
        {"participant_id": participant_id, "value": value},
    )
    return await result.single() is not None


async def _set_attendance(
    tx: AsyncTransaction, form_id: int, participant_id: int, attended: bool
) -> bool:
    result = await tx.run(
        """
        MATCH (:Form {id: $form_id})-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData {id: $participant_id})
        SET p.attended = $attended
        RETURN p.id AS id
        """,
        {"form_id": form_id, "participant_id": participant_id, "attended": attended},
    )
    return await result.single() is not None


async def _update_data(
    tx: AsyncTransaction, participant_id: int, new_data: Mapping[str, str]
) -> list[ValidationIssue]:
    result = await tx.run(
        """
        MATCH (f:Form)-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData {id: $participant_id})
        RETURN f {.*} AS form
        """,
        {"participant_id": participant_id},
    )
    record = await result.single()
    if record is None:
        raise NotFoundError(f"Participant {participant_id} not found")

    form = form_from_props(record["form"])
    issues = validate_record(form.fields, new_data)
    if issues:
        return issues

    data = {key: str(value) for key, value in new_data.items()}
    result = await tx.run(
        "MATCH (p:ParticipantData {id: $participant_id}) SET p.data = $data",
        {"participant_id": participant_id, "data": data_to_property(data)},
    )
    await result.consume()
    return []


async def _remove(tx: AsyncTransaction, participant_id: int) -> None:
    result = await tx.run(
        "MATCH (p:ParticipantData {id: $participant_id}) DETACH DELETE p",
        {"participant_id": participant_id},
    )
    await result.consume()


async def fetch_participant(tx: AsyncTransaction, participant_id: int) -> ParticipantData | None:
    """Load a participant by id inside an open transaction."""
    result = await tx.run(
        "MATCH (p:ParticipantData {id: $participant_id}) RETURN p {.*} AS participant",
        {"participant_id": participant_id},
    )
    record = await result.single()
    return participant_from_props(record["participant"]) if record else None


async def _list_by_form(tx: AsyncTransaction, form_id: int) -> list[ParticipantData]:
    result = await tx.run(
        """
        MATCH (:Form {id: $form_id})-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData)
        RETURN p {.*} AS participant
        ORDER BY p.id
        """,
        {"form_id": form_id},
    )
    return [participant_from_props(row["participant"]) for row in await result.data()]


async def _list_by_event(tx: AsyncTransaction, event_id: int) -> list[ParticipantData]:
    result = await tx.run(
        """
        MATCH (:Event {id: $event_id})-[:HAS_FORM]->(:Form)-[:HAS_PARTICIPANT_DATA]->(p:ParticipantData)
        RETURN p {.*} AS participant
        ORDER BY p.id
        """,
        {"event_id": event_id},
    )
    return [participant_from_props(row["participant"]) for row in await result.data()]


class ParticipantRepository:
    """Participant records collected against a form."""

    async def add_participants(
        self, form_id: int, records: Sequence[Mapping[str, str]]
    ) -> list[ValidationIssue]:
        """Validate records and persist every one that passes.

        Valid records are stored even when others in the batch fail.

        Args:
            form_id: The form the records were submitted against.
            records: Field name to value, one mapping per registrant.

        Returns:
            Issues of the rejected records; empty means all were stored.

        Raises:
            NotFoundError: If the form does not exist.
        """
        return await write_transaction(_add_participants, form_id, list(records))

    async def import_from_spreadsheet(self, form_id: int, content: bytes) -> list[ValidationIssue]:
        """Import participants from an .xlsx file whose first row is the header.

        Raises:
            EmptySheetError: If the sheet has no header row.
            InvalidInputError: If the bytes are not a workbook.
            NotFoundError: If the form does not exist.
        """
        table = read_table(content)
        return await self.add_participants(form_id, table.records())

    async def attach_qr_code(self, participant_id: int, image_bytes: bytes) -> bool:
        """Store a resized PNG of the QR image on the participant.

        Returns:
            False if the participant does not exist.

        Raises:
            InvalidImageError: If the bytes are not a readable image.
        """
        png, _ = make_thumbnail(image_bytes, get_settings().QR_THUMBNAIL_SIZE)
        encoded = base64.b64encode(png).decode("ascii")
        return await write_transaction(_set_flag, participant_id, "qrCode", encoded)

    async def set_attendance(self, form_id: int, participant_id: int, attended: bool) -> bool:
        """Set the attended flag if the participant belongs to the form."""
        return await write_transaction(_set_attendance, form_id, participant_id, attended)

    async def update_data(
        self, participant_id: int, new_data: Mapping[str, str]
    ) -> list[ValidationIssue]:
        """Overwrite a participant's data after validating it against the form.

        Nothing is written when issues are returned.

        Raises:
            NotFoundError: If the participant (or its form) does not exist.
        """
        return await write_transaction(_update_data, participant_id, dict(new_data))

    async def mark_invited(self, participant_id: int) -> bool:
        return await write_transaction(_set_flag, participant_id, "invited", True)

    async def remove(self, participant_id: int) -> None:
        """Delete a participant. Removing an absent id is not an error."""
        await write_transaction(_remove, participant_id)

    async def get(self, participant_id: int) -> ParticipantData | None:
        return await read_transaction(fetch_participant, participant_id)

    async def list_by_form(self, form_id: int) -> list[ParticipantData]:
        return await read_transaction(_list_by_form, form_id)

    async def list_by_event(self, event_id: int) -> list[ParticipantData]:
        return await read_transaction(_list_by_event, event_id)
