import pytest
from sqlalchemy.exc import OperationalError

from helpdesk.crud import assignments
from helpdesk.crud import computers as computers_crud
from helpdesk.crud import tickets as tickets_crud
from helpdesk.models.computer import ComputerAssignmentHistory
from helpdesk.models.ticket import TicketAssignmentHistory


@pytest.fixture()
def ticket(db_session, make_user, category):
    return tickets_crud.create_ticket(
        db_session,
        {
            "title": "Laptop will not boot",
            "description": "Black screen after update",
            "type": "incident",
            "priority": "high",
            "category_id": category.id,
        },
        make_user(),
    )


@pytest.fixture()
def computer(db_session):
    return computers_crud.create_computer(
        db_session,
        {"asset_tag": "PC-100", "name": "Front desk", "type": "desktop", "manufacturer": "HP", "model": "Z2"},
    )


def _open(db_session, model, owner_fk, owner_id):
    return assignments.open_rows(db_session, model, owner_fk, owner_id)


def test_reassigning_ticket_closes_previous_row(db_session, make_user, ticket):
    admin = make_user(role="admin")
    first = make_user(role="technician")
    second = make_user(role="technician")

    tickets_crud.assign_ticket(db_session, ticket, first.id, admin, notes="first pass")
    row = tickets_crud.assign_ticket(db_session, ticket, second.id, admin)

    assert ticket.assigned_to == second.id
    assert ticket.assigned_date == row.assigned_at
    open_rows = _open(db_session, TicketAssignmentHistory, "ticket_id", ticket.id)
    assert [r.user_id for r in open_rows] == [second.id]

    history = tickets_crud.list_ticket_assignments(db_session, ticket.id)
    assert len(history) == 2
    closed = [r for r in history if r.user_id == first.id][0]
    assert closed.unassigned_at is not None
    assert closed.notes == "first pass"
    assert closed.assigned_by_name == admin.full_name


def test_assigning_same_user_twice_is_rejected(db_session, make_user, ticket):
    tech = make_user(role="technician")
    tickets_crud.assign_ticket(db_session, ticket, tech.id, tech)

    with pytest.raises(ValueError, match="Already assigned"):
        tickets_crud.assign_ticket(db_session, ticket, tech.id, tech)
    assert len(tickets_crud.list_ticket_assignments(db_session, ticket.id)) == 1


def test_unassign_ticket_clears_owner_and_closes_row(db_session, make_user, ticket):
    tech = make_user(role="technician")
    tickets_crud.assign_ticket(db_session, ticket, tech.id, tech)

    tickets_crud.unassign_ticket(db_session, ticket)

    assert ticket.assigned_to is None
    assert ticket.assigned_date is None
    assert _open(db_session, TicketAssignmentHistory, "ticket_id", ticket.id) == []
    with pytest.raises(ValueError, match="Not currently assigned"):
        tickets_crud.unassign_ticket(db_session, ticket)


def test_computer_assignment_history_tracks_each_holder(db_session, make_user, computer):
    tech = make_user(role="technician")
    alice = make_user(full_name="Alice")
    bob = make_user(full_name="Bob")

    computers_crud.assign_computer(db_session, computer, alice.id, tech)
    computers_crud.assign_computer(db_session, computer, bob.id, tech, notes="swap")
    computers_crud.unassign_computer(db_session, computer)

    assert computer.assigned_to is None
    history = computers_crud.list_assignment_history(db_session, computer.id)
    assert {r.user_name for r in history} == {"Alice", "Bob"}
    assert all(r.unassigned_at for r in history)
    assert _open(db_session, ComputerAssignmentHistory, "computer_id", computer.id) == []


def test_assign_computer_to_missing_user_fails(db_session, make_user, computer):
    tech = make_user(role="technician")

    with pytest.raises(ValueError, match="User not found"):
        computers_crud.assign_computer(db_session, computer, 12345, tech)
    assert computers_crud.list_assignment_history(db_session, computer.id) == []


def _failing_commit():
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


def test_failed_ticket_reassignment_rolls_back(db_session, make_user, ticket, monkeypatch):
    admin = make_user(role="admin")
    first = make_user(role="technician")
    second = make_user(role="technician")
    first_row = tickets_crud.assign_ticket(db_session, ticket, first.id, admin)

    monkeypatch.setattr(db_session, "commit", _failing_commit)
    with pytest.raises(OperationalError):
        tickets_crud.assign_ticket(db_session, ticket, second.id, admin)
    monkeypatch.undo()

    assert ticket.assigned_to == first.id
    open_rows = _open(db_session, TicketAssignmentHistory, "ticket_id", ticket.id)
    assert [r.id for r in open_rows] == [first_row.id]
    assert len(tickets_crud.list_ticket_assignments(db_session, ticket.id)) == 1


def test_failed_computer_release_keeps_holder(db_session, make_user, computer, monkeypatch):
    tech = make_user(role="technician")
    holder = make_user()
    computers_crud.assign_computer(db_session, computer, holder.id, tech)

    monkeypatch.setattr(db_session, "commit", _failing_commit)
    with pytest.raises(OperationalError):
        computers_crud.unassign_computer(db_session, computer)
    monkeypatch.undo()

    assert computer.assigned_to == holder.id
    assert len(_open(db_session, ComputerAssignmentHistory, "computer_id", computer.id)) == 1


def test_assign_without_user_is_rejected(db_session, make_user, ticket, computer):
    tech = make_user(role="technician")

    with pytest.raises(ValueError, match="User not found"):
        tickets_crud.assign_ticket(db_session, ticket, None, tech)
    with pytest.raises(ValueError, match="User not found"):
        computers_crud.assign_computer(db_session, computer, None, tech)
