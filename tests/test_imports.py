from io import BytesIO

from openpyxl import Workbook, load_workbook

from helpdesk.crud import computers as computers_crud
from helpdesk.crud import users as users_crud
from helpdesk.services import imports as imports_service


def _workbook(headers, rows):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(headers))
    for row in rows:
        sheet.append(list(row))
    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def test_import_users_records_each_row(db_session, make_user):
    make_user(email="taken@example.com")
    content = _workbook(
        ("Email", "Full_Name", "Department", "Role"),
        [
            ("new@example.com", "New Person", "IT", "user"),
            ("taken@example.com", "Dup Person", "IT", "user"),
            ("", "No Email", "IT", "user"),
            (None, None, None, None),
            ("tech@example.com", "Tech Person", "Ops", "technician"),
        ],
    )

    result = imports_service.import_users(db_session, content)

    assert (result.total, result.successful, result.failed) == (4, 2, 2)
    assert result.errors == [
        "Row 3: User with email taken@example.com already exists",
        "Row 4: Missing required fields",
    ]
    imported = [o for o in result.outcomes if o.status == "imported"]
    assert [o.row for o in imported] == [2, 6]
    assert all(o.temporary_password for o in imported)
    tech = users_crud.get_user_by_email(db_session, "tech@example.com")
    assert tech.role == "technician"
    assert users_crud.authenticate(db_session, "tech@example.com", imported[1].temporary_password) is not None


def test_import_users_reports_invalid_role(db_session):
    content = _workbook(imports_service.USER_IMPORT_HEADERS, [("x@example.com", "X", "IT", "owner")])

    result = imports_service.import_users(db_session, content)

    assert result.failed == 1
    assert result.errors == ["Row 2: Invalid role - owner"]


def test_import_computers_from_template_then_rejects_duplicates(db_session):
    template = imports_service.computer_import_template()

    first = imports_service.import_computers(db_session, template)
    second = imports_service.import_computers(db_session, template)

    assert (first.total, first.successful, first.failed) == (2, 2, 0)
    assert second.successful == 0
    assert second.errors == [
        "Row 2: Computer with asset tag COMP001 already exists",
        "Row 3: Computer with asset tag COMP002 already exists",
    ]
    laptop = computers_crud.get_computer_by_tag(db_session, "COMP001")
    assert laptop.type == "laptop"
    assert laptop.department == "IT"


def test_import_computers_numeric_cells_and_missing_fields(db_session):
    content = _workbook(
        imports_service.COMPUTER_IMPORT_HEADERS,
        [
            (1001, "Numbered", "desktop", "Lenovo", "M70", None, 555.0, None, None, None),
            ("NO-MODEL", "Missing", "desktop", "Lenovo", None, None, None, None, None, None),
            ("BAD-TYPE", "Tablet", "tablet", "Apple", "iPad", None, None, None, None, None),
        ],
    )

    result = imports_service.import_computers(db_session, content)

    assert result.successful == 1
    assert result.errors == ["Row 3: Missing required fields", "Row 4: Invalid type - tablet"]
    computer = computers_crud.get_computer_by_tag(db_session, "1001")
    assert computer.serial_number == "555"
    assert computer.status == "active"


def test_unreadable_upload_is_a_single_file_error(db_session):
    result = imports_service.import_computers(db_session, b"this is not a workbook")

    assert result.total == 0
    assert result.failed == 1
    assert result.errors == [imports_service.PARSE_ERROR]


def test_user_template_layout():
    workbook = load_workbook(BytesIO(imports_service.user_import_template()))
    sheet = workbook.active

    assert sheet.title == "Users Template"
    assert [cell.value for cell in sheet[1]] == list(imports_service.USER_IMPORT_HEADERS)
    assert sheet.max_row == 1 + len(imports_service.USER_TEMPLATE_ROWS)
    assert sheet.column_dimensions["A"].width == 20


def test_duplicate_rows_leave_existing_records_untouched(db_session, make_user):
    make_user(email="taken@example.com", full_name="Original Name", department="Finance")
    imports_service.import_computers(db_session, imports_service.computer_import_template())

    users = imports_service.import_users(
        db_session,
        _workbook(imports_service.USER_IMPORT_HEADERS, [("taken@example.com", "Changed Name", "Sales", "admin")]),
    )
    computers = imports_service.import_computers(
        db_session,
        _workbook(
            imports_service.COMPUTER_IMPORT_HEADERS,
            [("COMP001", "Renamed", "server", "Acme", "R1", "retired", "SN-X", "Basement", "Ops", "changed")],
        ),
    )

    assert users.errors == ["Row 2: User with email taken@example.com already exists"]
    assert computers.errors == ["Row 2: Computer with asset tag COMP001 already exists"]
    db_session.expire_all()
    existing = users_crud.get_user_by_email(db_session, "taken@example.com")
    assert (existing.full_name, existing.department, existing.role) == ("Original Name", "Finance", "user")
    laptop = computers_crud.get_computer_by_tag(db_session, "COMP001")
    assert (laptop.name, laptop.type, laptop.status, laptop.department) == ("Dev Laptop 1", "laptop", "active", "IT")
