"""Error taxonomy for the event registration core.

Every failure the core raises derives from EventRegError. Callers
translate the kinds below into protocol responses (see eventreg.main).

Field-level data errors are not raised: they are returned as lists of
ValidationIssue so that batch operations can report partial failure.
"""


class EventRegError(Exception):
    """Base class for domain failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EventRegError):
    """The referenced entity does not exist."""


class ConflictError(EventRegError):
    """A state precondition was violated."""


class AlreadyExistsError(ConflictError):
    """The entity being created already exists."""


class MissingEmailError(ConflictError):
    """The participant has no Email value to send to."""


class MissingQrCodeError(ConflictError):
    """The participant has no QR code attached yet."""


class ForbiddenError(EventRegError):
    """The acting user does not own the entity being mutated."""


class InvalidInputError(EventRegError):
    """The caller supplied malformed input."""


class InvalidSchemaError(InvalidInputError):
    """A form field list does not satisfy the schema rules."""


class EmptySheetError(InvalidInputError):
    """An uploaded spreadsheet has no header row."""


class InvalidImageError(InvalidInputError):
    """Uploaded bytes could not be decoded as an image."""


class TransportError(EventRegError):
    """The outbound email transport failed."""
