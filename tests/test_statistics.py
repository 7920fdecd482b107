from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest
from openpyxl import load_workbook

from helpdesk.crud import computers as computers_crud
from helpdesk.crud import tickets as tickets_crud
from helpdesk.models.ticket import TicketComment
from helpdesk.services import statistics as statistics_service
from helpdesk.services.timecalc import format_duration, to_iso

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _ticket(db_session, user, category, *, created, priority="medium", type="incident", **fields):
    ticket = tickets_crud.create_ticket(
        db_session,
        {
            "title": "Issue",
            "description": "Details",
            "type": type,
            "priority": priority,
            "category_id": category.id,
        },
        user,
    )
    ticket.created_at = to_iso(created)
    for key, value in fields.items():
        setattr(ticket, key, value)
    db_session.commit()
    return ticket


def _comment(db_session, ticket, user, at, is_system=False):
    db_session.add(
        TicketComment(ticket_id=ticket.id, user_id=user.id, content="reply", is_system=is_system, created_at=to_iso(at))
    )
    db_session.commit()


def test_format_duration_allows_more_than_a_day():
    assert format_duration(None) == "00:00:00"
    assert format_duration(3725) == "01:02:05"
    assert format_duration(90000) == "25:00:00"


def test_backlog_ranges_follow_cutoff():
    assert statistics_service.backlog_ranges(7) == ("0-7 days", "7-14 days", "14+ days")


def test_ticket_stats_groups_tickets_created_in_window(db_session, make_user, category):
    user = make_user()
    _ticket(db_session, user, category, created=NOW - timedelta(days=1), priority="high")
    _ticket(db_session, user, category, created=NOW - timedelta(days=2), priority="high")
    _ticket(db_session, user, category, created=NOW - timedelta(days=3), priority="low", type="request")
    _ticket(db_session, user, category, created=NOW - timedelta(days=60), priority="high")

    start, end = statistics_service.default_window(30, NOW)
    stats = statistics_service.ticket_stats(db_session, start, end)

    counts = {(s.status, s.priority, s.type): s.count for s in stats}
    assert counts == {("open", "high", "incident"): 2, ("open", "low", "request"): 1}


def test_response_times_use_first_reply_from_someone_else(db_session, make_user, category):
    user = make_user()
    tech = make_user(role="technician")
    created = NOW - timedelta(days=2)
    ticket = _ticket(
        db_session,
        user,
        category,
        created=created,
        status="resolved",
        resolved_at=to_iso(created + timedelta(hours=5)),
    )
    _comment(db_session, ticket, user, created + timedelta(minutes=10))
    _comment(db_session, ticket, tech, created + timedelta(minutes=20), is_system=True)
    _comment(db_session, ticket, tech, created + timedelta(minutes=30))
    _comment(db_session, ticket, tech, created + timedelta(minutes=50))
    _ticket(db_session, user, category, created=NOW - timedelta(days=1))

    start, end = statistics_service.default_window(30, NOW)
    times = statistics_service.response_times(db_session, start, end)

    assert times.avg_first_response == "00:30:00"
    assert times.avg_resolution_time == "05:00:00"
    assert times.tickets_resolved == 1


def test_technician_stats_sorted_by_workload(db_session, make_user, category):
    user = make_user()
    busy = make_user(role="technician", full_name="Busy Tech")
    idle = make_user(role="admin", full_name="Admin One")
    created = NOW - timedelta(days=3)
    for _ in range(2):
        _ticket(db_session, user, category, created=created, assigned_to=busy.id)
    _ticket(
        db_session,
        user,
        category,
        created=created,
        assigned_to=idle.id,
        status="closed",
        resolved_at=to_iso(created + timedelta(hours=2)),
    )

    start, end = statistics_service.default_window(30, NOW)
    stats = statistics_service.technician_stats(db_session, start, end)

    assert [(s.technician_name, s.tickets_assigned, s.tickets_resolved) for s in stats] == [
        ("Busy Tech", 2, 0),
        ("Admin One", 1, 1),
    ]
    assert stats[0].avg_resolution_time == "00:00:00"
    assert stats[1].avg_resolution_time == "02:00:00"


def test_computer_stats_counts_statuses_and_unspecified_department(db_session, make_user):
    tech = make_user(role="technician")
    base = {"name": "PC", "manufacturer": "HP", "model": "Z"}
    computers_crud.create_computer(db_session, dict(base, asset_tag="A", type="desktop", department="IT"))
    computers_crud.create_computer(db_session, dict(base, asset_tag="B", type="laptop", status="retired"))
    assigned = computers_crud.create_computer(db_session, dict(base, asset_tag="C", type="laptop", status="maintenance"))
    computers_crud.assign_computer(db_session, assigned, tech.id, tech)

    stats = statistics_service.computer_stats(db_session)

    assert stats.total_computers == 3
    assert (stats.active_computers, stats.in_maintenance, stats.retired_computers) == (1, 1, 1)
    assert stats.unassigned_computers == 2
    assert stats.computers_by_type == {"desktop": 1, "laptop": 2}
    assert stats.computers_by_department == {"IT": 1, "Unspecified": 2}


def test_backlog_buckets_active_tickets_by_age(db_session, make_user, category):
    user = make_user()
    _ticket(db_session, user, category, created=NOW - timedelta(days=1), priority="high")
    _ticket(db_session, user, category, created=NOW - timedelta(days=10), status="in_progress")
    _ticket(db_session, user, category, created=NOW - timedelta(days=40), type="request")
    _ticket(db_session, user, category, created=NOW - timedelta(days=40), status="closed")

    backlog = statistics_service.backlog_stats(db_session, 7, now=NOW)

    assert [(b.age_range, b.ticket_count) for b in backlog] == [
        ("0-7 days", 1),
        ("7-14 days", 1),
        ("14+ days", 1),
    ]
    assert backlog[0].priority_breakdown == {"high": 1}
    assert backlog[2].type_breakdown == {"request": 1}


def test_backlog_always_returns_three_buckets(db_session):
    backlog = statistics_service.backlog_stats(db_session, 3, now=NOW)

    assert [b.ticket_count for b in backlog] == [0, 0, 0]
    with pytest.raises(ValueError):
        statistics_service.backlog_stats(db_session, 0, now=NOW)


def test_export_workbook_has_one_sheet_per_section(db_session, make_user, category):
    user = make_user()
    _ticket(db_session, user, category, created=NOW - timedelta(days=1))
    report = statistics_service.build_report(db_session, days=7, backlog_cutoff_days=7, now=NOW)

    workbook = load_workbook(BytesIO(statistics_service.export_statistics_workbook(report)))

    assert workbook.sheetnames == [
        "Ticket Statistics",
        "Response Times",
        "Technician Performance",
        "Computer Inventory",
        "Backlog Analysis",
    ]
    ticket_sheet = workbook["Ticket Statistics"]
    assert [c.value for c in ticket_sheet[2]] == ["open", "medium", "incident", 1]
    backlog_sheet = workbook["Backlog Analysis"]
    assert backlog_sheet.max_row == 4
    assert backlog_sheet["C2"].value == '{"medium": 1}'
