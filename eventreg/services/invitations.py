"""Invitation sending.

A participant moves from not invited to invited only after the email
collaborator accepted the message. Nothing is retried: a transport
failure propagates and the participant stays uninvited, so the caller
can simply repeat the call.
"""

from html import escape

from eventreg.errors import MissingEmailError, MissingQrCodeError, NotFoundError
from eventreg.models.event import Event
from eventreg.models.participant import ParticipantData
from eventreg.repositories.events import EventRepository
from eventreg.repositories.forms import FormRepository
from eventreg.repositories.participants import ParticipantRepository
from eventreg.services.mail import EmailSender


def render_subject(event: Event) -> str:
    return f'Invitation to "{event.name}"'


def render_body(event: Event, qr_code_base64: str) -> str:
    """HTML invitation with the QR code inlined as a data URI."""
    rows = [
        ("Event", event.name),
        ("Description", event.description),
        ("Date and time", event.date_time),
        ("Location", event.location),
    ]
    items = "\n".join(
        f"    <li><strong>{label}:</strong> {escape(value)}</li>"
        for label, value in rows
        if value
    )
    return (
        "<p>Hello!</p>\n"
        "<p>You are invited to the following event:</p>\n"
        f"<ul>\n{items}\n</ul>\n"
        "<p>Please show this QR code at the entrance:</p>\n"
        f"<img src='data:image/png;base64,{qr_code_base64}' alt='QR Code' />\n"
        "<p>See you there!</p>"
    )


class InvitationWorkflow:
    """Email invitations and the invited flag they set."""

    def __init__(
        self,
        sender: EmailSender,
        participants: ParticipantRepository | None = None,
        events: EventRepository | None = None,
        forms: FormRepository | None = None,
    ):
        self._sender = sender
        self._participants = participants or ParticipantRepository()
        self._events = events or EventRepository()
        self._forms = forms or FormRepository()

    async def _deliver(self, participant: ParticipantData, event: Event) -> None:
        await self._sender.send_email(
            participant.email,
            render_subject(event),
            render_body(event, participant.qr_code),
            is_html=True,
        )
        await self._participants.mark_invited(participant.id)

    async def send_invitation(self, participant_id: int, form_id: int) -> None:
        """Email one participant and mark them invited.

        Args:
            participant_id: The participant to invite.
            form_id: The form the participant registered through.

        Raises:
            NotFoundError: If the participant or the form's event does not
                exist, or the participant belongs to another form.
            MissingEmailError: If the participant has no Email value.
            MissingQrCodeError: If no QR code has been attached yet.
            TransportError: If the email could not be sent.
        """
        participant = await self._participants.get(participant_id)
        if participant is None:
            raise NotFoundError(f"Participant {participant_id} not found")
        if participant.form_id != form_id:
            raise NotFoundError(f"Participant {participant_id} is not registered through form {form_id}")
        if not participant.email:
            raise MissingEmailError(f"Participant {participant_id} has no email address")
        if not participant.qr_code:
            raise MissingQrCodeError(f"Participant {participant_id} has no QR code")

        event = await self._events.get_by_form(form_id)
        if event is None:
            raise NotFoundError(f"No event found for form {form_id}")

        await self._deliver(participant, event)

    async def send_invitations(self, event_id: int) -> int:
        """Email every participant of the event that has an email and a QR code.

        Participants missing either are skipped. Already invited
        participants are emailed again.

        Returns:
            The number of invitations sent.

        Raises:
            NotFoundError: If the event or its form does not exist.
            TransportError: On the first email that could not be sent;
                participants emailed before it stay invited.
        """
        event = await self._events.get(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        form = await self._forms.get_by_event(event_id)
        if form is None:
            raise NotFoundError(f"Event {event_id} has no form")

        sent = 0
        for participant in await self._participants.list_by_form(form.id):
            if not participant.email or not participant.qr_code:
                continue
            await self._deliver(participant, event)
            sent += 1
        return sent
