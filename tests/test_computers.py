import pytest

from helpdesk.core.errors import AlreadyExistsError
from helpdesk.crud import computers as computers_crud


def _payload(**overrides):
    payload = {
        "asset_tag": "LT-001",
        "name": "Dev laptop",
        "type": "laptop",
        "manufacturer": "Dell",
        "model": "XPS 15",
    }
    payload.update(overrides)
    return payload


def test_create_computer_defaults_and_specifications(db_session):
    computer = computers_crud.create_computer(
        db_session,
        _payload(department="  ", specifications={"cpu": "i7", "ram": "32GB", "os": ""}),
    )

    assert computer.status == "active"
    assert computer.department is None
    assert computer.specifications == {"cpu": "i7", "ram": "32GB"}


def test_create_computer_validation(db_session):
    with pytest.raises(ValueError, match="Missing required fields"):
        computers_crud.create_computer(db_session, _payload(model=""))
    with pytest.raises(ValueError, match="Invalid type - tablet"):
        computers_crud.create_computer(db_session, _payload(type="tablet"))
    with pytest.raises(ValueError, match="Invalid status - lost"):
        computers_crud.create_computer(db_session, _payload(status="lost"))


def test_asset_tag_is_unique_case_insensitively(db_session):
    computers_crud.create_computer(db_session, _payload())

    with pytest.raises(AlreadyExistsError, match="already exists"):
        computers_crud.create_computer(db_session, _payload(asset_tag="lt-001"))


def test_list_computers_filters_and_orders_by_tag(db_session):
    computers_crud.create_computer(db_session, _payload(asset_tag="B-2", department="IT"))
    computers_crud.create_computer(db_session, _payload(asset_tag="A-1", type="desktop", manufacturer="HP", department="HR"))
    computers_crud.create_computer(db_session, _payload(asset_tag="C-3", status="retired", department="IT"))

    assert [c.asset_tag for c in computers_crud.list_computers(db_session)] == ["A-1", "B-2", "C-3"]
    assert [c.asset_tag for c in computers_crud.list_computers(db_session, department="IT", status="active")] == ["B-2"]
    assert [c.asset_tag for c in computers_crud.list_computers(db_session, search="hp")] == ["A-1"]
    assert computers_crud.list_departments(db_session) == ["HR", "IT"]


def test_update_computer_ignores_status_and_unknown_keys(db_session):
    computer = computers_crud.create_computer(db_session, _payload())

    computers_crud.update_computer(
        db_session, computer, {"name": "Renamed", "status": "retired", "location": "", "bogus": 1}
    )

    assert computer.name == "Renamed"
    assert computer.status == "active"
    assert computer.location is None


def test_status_change_to_maintenance_files_record(db_session, make_user):
    tech = make_user(role="technician")
    computer = computers_crud.create_computer(db_session, _payload())

    computers_crud.change_computer_status(db_session, computer, "maintenance", tech)
    computers_crud.change_computer_status(db_session, computer, "maintenance", tech)

    records = computers_crud.list_maintenance(db_session, computer.id)
    assert computer.status == "maintenance"
    assert len(records) == 1
    assert records[0].maintenance_type == "Status Change"
    assert records[0].description == "Status changed to maintenance"
    assert records[0].performed_by_name == tech.full_name


def test_status_change_requires_staff(db_session, make_user):
    computer = computers_crud.create_computer(db_session, _payload())

    with pytest.raises(PermissionError):
        computers_crud.change_computer_status(db_session, computer, "retired", make_user())
    assert computer.status == "active"


def test_maintenance_cost_validation_and_scoped_lookup(db_session, make_user):
    tech = make_user(role="technician")
    first = computers_crud.create_computer(db_session, _payload())
    second = computers_crud.create_computer(db_session, _payload(asset_tag="LT-002"))

    with pytest.raises(ValueError, match="number"):
        computers_crud.add_maintenance(db_session, first, {"maintenance_type": "Repair", "cost": "abc"}, tech)
    with pytest.raises(ValueError, match="negative"):
        computers_crud.add_maintenance(db_session, first, {"maintenance_type": "Repair", "cost": -5}, tech)
    for not_finite in ("nan", "inf", "-inf"):
        with pytest.raises(ValueError, match="number"):
            computers_crud.add_maintenance(db_session, first, {"maintenance_type": "Repair", "cost": not_finite}, tech)
    assert computers_crud.list_maintenance(db_session, first.id) == []

    record = computers_crud.add_maintenance(
        db_session, first, {"maintenance_type": "Repair", "cost": "120.50", "performed_at": "2024-03-01"}, tech
    )
    assert record.cost == 120.5
    assert computers_crud.get_maintenance(db_session, second.id, record.id) is None

    computers_crud.delete_maintenance(db_session, computers_crud.get_maintenance(db_session, first.id, record.id))
    assert computers_crud.list_maintenance(db_session, first.id) == []


def test_software_listing_sorted_by_name(db_session):
    computer = computers_crud.create_computer(db_session, _payload())
    computers_crud.add_software(db_session, computer, {"software_name": "Zoom"})
    computers_crud.add_software(db_session, computer, {"software_name": "Acrobat", "version": "2024", "status": "expired"})

    software = computers_crud.list_software(db_session, computer.id)

    assert [s.software_name for s in software] == ["Acrobat", "Zoom"]
    assert software[0].status == "expired"
    assert software[1].status == "active"
    with pytest.raises(ValueError, match="Software name is required"):
        computers_crud.add_software(db_session, computer, {"software_name": " "})


def test_delete_computer_removes_sub_records(db_session, make_user):
    tech = make_user(role="technician")
    computer = computers_crud.create_computer(db_session, _payload())
    computers_crud.add_software(db_session, computer, {"software_name": "Office"})
    computers_crud.add_maintenance(db_session, computer, {"maintenance_type": "Cleaning"}, tech)
    computer_id = computer.id

    computers_crud.delete_computer(db_session, computer)

    assert computers_crud.get_computer(db_session, computer_id) is None
    assert computers_crud.list_software(db_session, computer_id) == []
    assert computers_crud.list_maintenance(db_session, computer_id) == []
