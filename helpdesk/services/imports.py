"""
Bulk import of users and computers from ``.xlsx`` workbooks.

Only the first worksheet is read. Row 1 holds the column headers; every
following non-blank row is validated and inserted on its own, so a bad row
never blocks the good ones. Each row's fate is recorded in an
``ImportResult`` keyed by its sheet row number.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, Iterator
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..crud import computers as computers_crud
from ..crud import users as users_crud
from ..schemas.imports import ImportResult

LOGGER = logging.getLogger(__name__)

PARSE_ERROR = "Failed to parse Excel file. Please make sure you are using the correct template."

USER_IMPORT_HEADERS = ("email", "full_name", "department", "role")
USER_REQUIRED_FIELDS = USER_IMPORT_HEADERS
USER_TEMPLATE_ROWS = (
    ("john@example.com", "John Doe", "IT", "user"),
    ("jane@example.com", "Jane Smith", "HR", "technician"),
)
USER_COLUMN_WIDTHS = (20, 20, 15, 10)

COMPUTER_IMPORT_HEADERS = (
    "asset_tag",
    "name",
    "type",
    "manufacturer",
    "model",
    "status",
    "serial_number",
    "location",
    "department",
    "notes",
)
COMPUTER_REQUIRED_FIELDS = ("asset_tag", "name", "type", "manufacturer", "model")
COMPUTER_TEMPLATE_ROWS = (
    ("COMP001", "Dev Laptop 1", "laptop", "Dell", "XPS 15", "active", "SN123456", "Main Office", "IT", "Development machine"),
    ("COMP002", "Reception PC", "desktop", "HP", "ProDesk 600", "active", "SN789012", "Reception", "Admin", "Front desk computer"),
)
COMPUTER_COLUMN_WIDTHS = (15, 20, 12, 15, 15, 12, 15, 15, 15, 30)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class WorkbookParseError(ValueError):
    """Raised when an upload cannot be read as a workbook."""


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def parse_workbook(content: bytes) -> Iterator[tuple[int, dict[str, str]]]:
    """
    Yield ``(sheet_row_number, {header: text})`` for each non-blank data row.

    Headers are lower-cased; cells are stripped strings ("" when empty).
    Raises ``WorkbookParseError`` when the bytes are not a readable workbook.
    """
    try:
        workbook = load_workbook(filename=BytesIO(content), data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as exc:
        raise WorkbookParseError(PARSE_ERROR) from exc

    try:
        sheet = workbook.worksheets[0] if workbook.worksheets else None
        if sheet is None:
            return
        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if not header_row:
            return
        headers = [_cell_text(cell).lower() for cell in header_row]
        for row_number, values in enumerate(rows, start=2):
            if values is None or all(_cell_text(cell) == "" for cell in values):
                continue
            record = {
                headers[idx]: _cell_text(values[idx])
                for idx in range(min(len(headers), len(values)))
                if headers[idx]
            }
            yield row_number, record
    finally:
        workbook.close()


def _read_rows(content: bytes) -> list[tuple[int, dict[str, str]]] | None:
    try:
        return list(parse_workbook(content))
    except WorkbookParseError:
        LOGGER.warning("import.parse_failed", extra={"extra_data": {"size": len(content or b"")}})
        return None


def _missing(record: dict[str, str], required: tuple[str, ...]) -> bool:
    return any(not record.get(name) for name in required)


def import_users(db: Session, content: bytes) -> ImportResult:
    """Create one account per row; each gets a generated temporary password."""

    rows = _read_rows(content)
    if rows is None:
        return ImportResult.file_error(PARSE_ERROR)

    result = ImportResult()
    for row_number, record in rows:
        email = record.get("email") or None
        if _missing(record, USER_REQUIRED_FIELDS):
            result.record_failure(row_number, "Missing required fields", key=email)
            continue
        try:
            user, temporary = users_crud.create_user(
                db,
                email=record["email"],
                full_name=record["full_name"],
                department=record["department"],
                role=record["role"],
            )
        except ValueError as exc:
            result.record_failure(row_number, str(exc), key=email)
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("import.user_row_failed", extra={"extra_data": {"row": row_number}})
            result.record_failure(row_number, str(getattr(exc, "orig", None) or exc), key=email)
            continue
        result.record_success(row_number, key=user.email, temporary_password=temporary)

    LOGGER.info(
        "import.users",
        extra={"extra_data": {"total": result.total, "successful": result.successful, "failed": result.failed}},
    )
    return result


def import_computers(db: Session, content: bytes) -> ImportResult:
    """Create one asset per row. Status defaults to active."""

    rows = _read_rows(content)
    if rows is None:
        return ImportResult.file_error(PARSE_ERROR)

    result = ImportResult()
    for row_number, record in rows:
        tag = record.get("asset_tag") or None
        if _missing(record, COMPUTER_REQUIRED_FIELDS):
            result.record_failure(row_number, "Missing required fields", key=tag)
            continue
        payload = {name: record.get(name) or None for name in COMPUTER_IMPORT_HEADERS}
        try:
            computer = computers_crud.create_computer(db, payload)
        except ValueError as exc:
            result.record_failure(row_number, str(exc), key=tag)
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("import.computer_row_failed", extra={"extra_data": {"row": row_number}})
            result.record_failure(row_number, str(getattr(exc, "orig", None) or exc), key=tag)
            continue
        result.record_success(row_number, key=computer.asset_tag)

    LOGGER.info(
        "import.computers",
        extra={"extra_data": {"total": result.total, "successful": result.successful, "failed": result.failed}},
    )
    return result


def _template(title: str, headers: tuple[str, ...], rows: tuple[tuple[str, ...], ...], widths: tuple[int, ...]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append(list(headers))
    for row in rows:
        sheet.append(list(row))
    for idx, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(idx)].width = width
    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def user_import_template() -> bytes:
    return _template("Users Template", USER_IMPORT_HEADERS, USER_TEMPLATE_ROWS, USER_COLUMN_WIDTHS)


def computer_import_template() -> bytes:
    return _template("Computers Template", COMPUTER_IMPORT_HEADERS, COMPUTER_TEMPLATE_ROWS, COMPUTER_COLUMN_WIDTHS)
