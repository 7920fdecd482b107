from __future__ import annotations

import json
from collections import Counter, defaultdict
from datetime import datetime
from io import BytesIO
from typing import Iterable

from openpyxl import Workbook
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.choices import (
    ACTIVE_TICKET_STATUSES,
    COMPUTER_STATUS_ACTIVE,
    COMPUTER_STATUS_MAINTENANCE,
    COMPUTER_STATUS_RETIRED,
    FINISHED_TICKET_STATUSES,
    STAFF_ROLES,
)
from ..models.computer import ComputerAsset
from ..models.ticket import Ticket, TicketComment
from ..models.user import User
from ..schemas.statistics import (
    BacklogStat,
    ComputerStats,
    ResponseTimes,
    StatisticsReport,
    TechnicianStat,
    TicketStat,
)
from .timecalc import days_ago_iso, format_duration, parse_iso, seconds_between, to_iso, utc_now

RANGE_CHOICES = {"7d": 7, "30d": 30, "90d": 90}
BACKLOG_CUTOFF_CHOICES = (3, 7, 14, 30)
DEFAULT_BACKLOG_CUTOFF = 7
UNSPECIFIED_DEPARTMENT = "Unspecified"


def default_window(days: int = 30, now: datetime | None = None) -> tuple[str, str]:
    """Return ``(start, end)`` ISO strings covering the last ``days`` days."""

    current = now or utc_now()
    return days_ago_iso(days, current), to_iso(current)


def window_for_range(value: str | None, now: datetime | None = None) -> tuple[str, str]:
    """Map a UI range token (``7d``/``30d``/``90d``) to a window; unknown means 30d."""

    return default_window(RANGE_CHOICES.get(value or "", 30), now)


def _tickets_in_window(db: Session, start: str, end: str) -> list[Ticket]:
    stmt = select(Ticket).where(Ticket.created_at >= start, Ticket.created_at <= end)
    return db.execute(stmt).scalars().all()


def _average(values: Iterable[float | None]) -> float | None:
    present = [value for value in values if value is not None]
    if not present:
        return None
    return sum(present) / len(present)


def ticket_stats(db: Session, start: str, end: str) -> list[TicketStat]:
    """Ticket counts grouped by (status, priority, type) for tickets created in the window."""

    stmt = (
        select(Ticket.status, Ticket.priority, Ticket.type, func.count(Ticket.id))
        .where(Ticket.created_at >= start, Ticket.created_at <= end)
        .group_by(Ticket.status, Ticket.priority, Ticket.type)
        .order_by(Ticket.status, Ticket.priority, Ticket.type)
    )
    return [
        TicketStat(status=status, priority=priority, type=ticket_type, count=count)
        for status, priority, ticket_type, count in db.execute(stmt).all()
    ]


def _first_responses(db: Session, tickets: list[Ticket]) -> dict[int, str]:
    """Earliest human comment per ticket written by someone other than its requestor."""

    if not tickets:
        return {}
    requestors = {ticket.id: ticket.requestor_id for ticket in tickets}
    stmt = (
        select(TicketComment.ticket_id, TicketComment.user_id, TicketComment.created_at)
        .where(
            TicketComment.ticket_id.in_(list(requestors)),
            TicketComment.is_system.is_(False),
        )
        .order_by(TicketComment.created_at, TicketComment.id)
    )
    first: dict[int, str] = {}
    for ticket_id, user_id, created_at in db.execute(stmt).all():
        if ticket_id in first or user_id == requestors[ticket_id]:
            continue
        first[ticket_id] = created_at
    return first


def response_times(db: Session, start: str, end: str) -> ResponseTimes:
    """
    Average time to first response and to resolution for tickets created in
    the window. Durations are rendered as ``HH:MM:SS``.
    """
    tickets = _tickets_in_window(db, start, end)
    first = _first_responses(db, tickets)
    response_seconds = [seconds_between(ticket.created_at, first.get(ticket.id)) for ticket in tickets]
    resolved = [ticket for ticket in tickets if ticket.resolved_at]
    resolution_seconds = [seconds_between(ticket.created_at, ticket.resolved_at) for ticket in resolved]
    return ResponseTimes(
        avg_first_response=format_duration(_average(response_seconds)),
        avg_resolution_time=format_duration(_average(resolution_seconds)),
        tickets_resolved=len(resolved),
    )


def technician_stats(db: Session, start: str, end: str) -> list[TechnicianStat]:
    """Workload per technician/admin over tickets created in the window and assigned to them."""

    tickets = [ticket for ticket in _tickets_in_window(db, start, end) if ticket.assigned_to]
    by_assignee: dict[int, list[Ticket]] = defaultdict(list)
    for ticket in tickets:
        by_assignee[ticket.assigned_to].append(ticket)
    if not by_assignee:
        return []

    staff = db.execute(
        select(User).where(User.id.in_(list(by_assignee)), User.role.in_(tuple(STAFF_ROLES)))
    ).scalars().all()

    stats = []
    for user in staff:
        assigned = by_assignee[user.id]
        finished = [ticket for ticket in assigned if ticket.status in FINISHED_TICKET_STATUSES]
        stats.append(
            TechnicianStat(
                technician_id=user.id,
                technician_name=user.full_name,
                tickets_assigned=len(assigned),
                tickets_resolved=len(finished),
                avg_resolution_time=format_duration(
                    _average(seconds_between(ticket.created_at, ticket.resolved_at) for ticket in finished)
                ),
            )
        )
    stats.sort(key=lambda stat: (-stat.tickets_assigned, stat.technician_name))
    return stats


def computer_stats(db: Session) -> ComputerStats:
    computers = db.execute(select(ComputerAsset)).scalars().all()
    statuses = Counter(computer.status for computer in computers)
    by_type = Counter(computer.type for computer in computers)
    by_department = Counter(computer.department or UNSPECIFIED_DEPARTMENT for computer in computers)
    return ComputerStats(
        total_computers=len(computers),
        active_computers=statuses.get(COMPUTER_STATUS_ACTIVE, 0),
        in_maintenance=statuses.get(COMPUTER_STATUS_MAINTENANCE, 0),
        retired_computers=statuses.get(COMPUTER_STATUS_RETIRED, 0),
        unassigned_computers=sum(1 for computer in computers if computer.assigned_to is None),
        computers_by_type=dict(sorted(by_type.items())),
        computers_by_department=dict(sorted(by_department.items())),
    )


def backlog_ranges(cutoff_days: int) -> tuple[str, str, str]:
    cutoff = int(cutoff_days)
    return (f"0-{cutoff} days", f"{cutoff}-{cutoff * 2} days", f"{cutoff * 2}+ days")


def backlog_stats(db: Session, cutoff_days: int = DEFAULT_BACKLOG_CUTOFF, now: datetime | None = None) -> list[BacklogStat]:
    """
    Open and in-progress tickets bucketed by age.

    A ticket younger than ``cutoff_days`` lands in the first range, younger
    than twice the cutoff in the second, anything older in the last. All
    three ranges are always returned.
    """
    cutoff = int(cutoff_days)
    if cutoff <= 0:
        raise ValueError("Backlog cutoff must be a positive number of days")
    current = now or utc_now()
    labels = backlog_ranges(cutoff)
    buckets = {label: [] for label in labels}

    active = db.execute(select(Ticket).where(Ticket.status.in_(ACTIVE_TICKET_STATUSES))).scalars().all()
    for ticket in active:
        created = parse_iso(ticket.created_at)
        age_days = (current - created).total_seconds() / 86400 if created else 0
        if age_days < cutoff:
            buckets[labels[0]].append(ticket)
        elif age_days < cutoff * 2:
            buckets[labels[1]].append(ticket)
        else:
            buckets[labels[2]].append(ticket)

    return [
        BacklogStat(
            age_range=label,
            ticket_count=len(tickets),
            priority_breakdown=dict(Counter(ticket.priority for ticket in tickets)),
            type_breakdown=dict(Counter(ticket.type for ticket in tickets)),
        )
        for label, tickets in buckets.items()
    ]


def build_report(
    db: Session,
    *,
    days: int = 30,
    backlog_cutoff_days: int = DEFAULT_BACKLOG_CUTOFF,
    now: datetime | None = None,
) -> StatisticsReport:
    start, end = default_window(days, now)
    return StatisticsReport(
        start_date=start,
        end_date=end,
        backlog_cutoff_days=backlog_cutoff_days,
        ticket_stats=ticket_stats(db, start, end),
        response_times=response_times(db, start, end),
        technician_stats=technician_stats(db, start, end),
        computer_stats=computer_stats(db),
        backlog_stats=backlog_stats(db, backlog_cutoff_days, now),
    )


def _append_sheet(workbook: Workbook, title: str, headers: list[str], rows: list[list[object]]) -> None:
    sheet = workbook.create_sheet(title=title)
    sheet.append(headers)
    for row in rows:
        sheet.append(row)


def export_statistics_workbook(report: StatisticsReport) -> bytes:
    """Render a report as an ``.xlsx`` workbook with one sheet per aggregation."""

    workbook = Workbook()
    workbook.remove(workbook.active)

    _append_sheet(
        workbook,
        "Ticket Statistics",
        ["Status", "Priority", "Type", "Count"],
        [[stat.status, stat.priority, stat.type, stat.count] for stat in report.ticket_stats],
    )
    times = report.response_times
    _append_sheet(
        workbook,
        "Response Times",
        ["Average First Response", "Average Resolution Time", "Tickets Resolved"],
        [[times.avg_first_response, times.avg_resolution_time, times.tickets_resolved]],
    )
    _append_sheet(
        workbook,
        "Technician Performance",
        ["Name", "Tickets Assigned", "Tickets Resolved", "Average Resolution Time"],
        [
            [stat.technician_name, stat.tickets_assigned, stat.tickets_resolved, stat.avg_resolution_time]
            for stat in report.technician_stats
        ],
    )
    computers = report.computer_stats
    _append_sheet(
        workbook,
        "Computer Inventory",
        ["Total Computers", "Active Computers", "In Maintenance", "Retired Computers", "Unassigned Computers"],
        [[
            computers.total_computers,
            computers.active_computers,
            computers.in_maintenance,
            computers.retired_computers,
            computers.unassigned_computers,
        ]],
    )
    _append_sheet(
        workbook,
        "Backlog Analysis",
        ["Age Range", "Ticket Count", "Priority Breakdown", "Type Breakdown"],
        [
            [
                stat.age_range,
                stat.ticket_count,
                json.dumps(stat.priority_breakdown, sort_keys=True),
                json.dumps(stat.type_breakdown, sort_keys=True),
            ]
            for stat in report.backlog_stats
        ],
    )

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()
