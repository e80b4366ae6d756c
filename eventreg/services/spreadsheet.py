"""Tabular file reading and writing (.xlsx) with openpyxl.

Only the first worksheet is read. Row 1 is the header (field names);
every following non-blank row is a record. Cell values are returned as
strings so they can be validated like form submissions.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from io import BytesIO
from typing import Any
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from eventreg.errors import EmptySheetError, InvalidInputError

TEMPLATE_SHEET_TITLE = "Form"


@dataclass
class Table:
    """Header row plus data rows, all cells as strings."""

    header: list[str]
    rows: list[list[str]] = field(default_factory=list)

    def records(self) -> list[dict[str, str]]:
        """Rows keyed by header; short rows are padded with empty strings."""
        width = len(self.header)
        return [
            dict(zip(self.header, row[:width] + [""] * (width - len(row))))
            for row in self.rows
        ]


def cell_to_text(value: Any) -> str:
    """Render one cell value as the string a user would have typed."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ", timespec="minutes")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value).strip()


def read_table(content: bytes) -> Table:
    """Parse an .xlsx file into a header and string rows.

    Args:
        content: Raw bytes of the uploaded workbook.

    Returns:
        The parsed Table.

    Raises:
        InvalidInputError: If the bytes are not a readable workbook.
        EmptySheetError: If the first worksheet has no header row.
    """
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError) as e:
        raise InvalidInputError("The uploaded file is not a valid .xlsx workbook") from e

    try:
        worksheet = workbook.worksheets[0] if workbook.worksheets else None
        if worksheet is None:
            raise EmptySheetError("The workbook has no worksheets")

        rows = iter(worksheet.iter_rows(values_only=True))
        first = next(rows, None)
        header = [cell_to_text(value) for value in first] if first is not None else []
        while header and not header[-1]:
            header.pop()
        if not header:
            raise EmptySheetError("The worksheet has no header row")

        table = Table(header=header)
        for values in rows:
            cells = [cell_to_text(value) for value in values]
            if any(cells):
                table.rows.append(cells)
        return table
    finally:
        workbook.close()


def build_workbook(header: list[str]) -> bytes:
    """Create an .xlsx file whose first row is the given header."""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = TEMPLATE_SHEET_TITLE
    worksheet.append(header)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
