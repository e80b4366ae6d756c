"""Validation of participant records against a form schema.

Each field type has one rule. Every field of a record is checked and
every record of a batch is checked, so a caller receives the complete
set of issues in one pass. Issues are returned, never raised.
"""

import re
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime

from pydantic import BaseModel

from eventreg.models.form import FieldType, FormField

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
PHONE_PATTERN = re.compile(r"\+?[0-9\s\-]+")
INTEGER_PATTERN = re.compile(r"[+-]?\d+")

DATE_FORMATS = (
    "%d.%m.%Y",
    "%d.%m.%Y %H:%M",
    "%d/%m/%Y",
    "%Y/%m/%d",
)


class ValidationIssue(BaseModel):
    """One field-level problem with a submitted record."""

    row: int | None = None
    field: str | None = None
    message: str

    def __str__(self) -> str:
        prefix = f"Row {self.row}: " if self.row is not None else ""
        if self.field is not None:
            return f"{prefix}field '{self.field}': {self.message}"
        return f"{prefix}{self.message}"


def is_valid_email(value: str) -> bool:
    return EMAIL_PATTERN.fullmatch(value) is not None


def _is_integer(value: str) -> bool:
    return INTEGER_PATTERN.fullmatch(value.strip()) is not None


def _is_date(value: str) -> bool:
    value = value.strip()
    if not value:
        return False
    try:
        datetime.fromisoformat(value)
        return True
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(value, fmt)
            return True
        except ValueError:
            continue
    return False


def _is_phone(value: str) -> bool:
    return PHONE_PATTERN.fullmatch(value) is not None


def _is_text(value: str) -> bool:
    return bool(value.strip())


_RULES: dict[FieldType, tuple[Callable[[str], bool], str]] = {
    FieldType.EMAIL: (is_valid_email, "must be a valid email address"),
    FieldType.NUMBER: (_is_integer, "must be a whole number"),
    FieldType.DATE: (_is_date, "must be a valid date"),
    FieldType.PHONE: (_is_phone, "must be a valid phone number"),
    FieldType.TEXT: (_is_text, "must not be empty"),
}


def validate_record(
    fields: Sequence[FormField],
    record: Mapping[str, str],
    row: int | None = None,
) -> list[ValidationIssue]:
    """Validate one record against a form's fields.

    Missing keys are validated as empty strings. Keys that are not form
    fields are reported as unexpected.

    Args:
        fields: The form schema.
        record: Field name to submitted value.
        row: 1-based row number to tag issues with, if part of a batch.

    Returns:
        All issues found; empty when the record is acceptable.
    """
    issues: list[ValidationIssue] = []

    for field in fields:
        rule = _RULES.get(field.type)
        # Fallback for fields built without validation; parsed schemas never get here
        if rule is None:
            issues.append(ValidationIssue(
                row=row, field=field.name, message=f"unknown field type '{field.type}'"
            ))
            continue

        check, message = rule
        value = record.get(field.name)
        if not check("" if value is None else str(value)):
            issues.append(ValidationIssue(row=row, field=field.name, message=message))

    known = {field.name for field in fields}
    for key in record:
        if key not in known:
            issues.append(ValidationIssue(row=row, field=key, message="unexpected field"))

    return issues


def validate_batch(
    fields: Sequence[FormField],
    records: Sequence[Mapping[str, str]],
) -> tuple[list[dict[str, str]], list[ValidationIssue]]:
    """Validate a batch of records.

    Records are independent: a failing record never affects whether
    another one is accepted.

    Returns:
        The accepted records (as plain dicts, in input order) and the
        issues of the rejected ones, tagged with 1-based row numbers.
    """
    accepted: list[dict[str, str]] = []
    issues: list[ValidationIssue] = []

    for row, record in enumerate(records, start=1):
        record_issues = validate_record(fields, record, row=row)
        if record_issues:
            issues.extend(record_issues)
        else:
            accepted.append({key: str(value) for key, value in record.items()})

    return accepted, issues
