from __future__ import annotations

import logging

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from ..core.choices import (
    ACTIVE_TICKET_STATUSES,
    FINISHED_TICKET_STATUSES,
    PRIORITY_CHOICES,
    PRIORITY_CRITICAL,
    PRIORITY_RANK,
    STAFF_ROLES,
    TICKET_STATUS_CHOICES,
    TICKET_STATUS_OPEN,
    TICKET_TYPE_CHOICES,
    humanize_status,
    normalize_choice,
)
from ..models.ticket import Ticket, TicketAssignmentHistory, TicketCategory, TicketComment
from ..models.user import User
from ..services.statistics import default_window, response_times
from ..services.timecalc import days_ago_iso, utc_now_iso
from . import assignments

LOGGER = logging.getLogger(__name__)

REQUIRED_TICKET_FIELDS = ("title", "description", "type", "priority", "category_id")

PRIORITY_ORDER = case(PRIORITY_RANK, value=Ticket.priority, else_=0)


def _clean_text(value: object) -> str:
    return str(value).strip() if value is not None else ""


def create_ticket(db: Session, payload: dict, actor: User) -> Ticket:
    """Open a new ticket on behalf of ``actor``.

    Staff may raise a ticket for someone else through ``requestor_id``; for
    everyone else the requestor is always the acting user.
    """

    missing = [name for name in REQUIRED_TICKET_FIELDS if not _clean_text(payload.get(name))]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    ticket_type = normalize_choice(payload["type"], TICKET_TYPE_CHOICES, "type")
    priority = normalize_choice(payload["priority"], PRIORITY_CHOICES, "priority")

    try:
        category_id = int(payload["category_id"])
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid category") from exc
    category = db.get(TicketCategory, category_id)
    if not category or not category.is_active:
        raise ValueError("Invalid category")

    requestor_id = actor.id
    requested = payload.get("requestor_id")
    if requested not in (None, "") and actor.role in STAFF_ROLES:
        try:
            requestor = db.get(User, int(requested))
        except (TypeError, ValueError) as exc:
            raise ValueError("Requestor not found") from exc
        if not requestor:
            raise ValueError("Requestor not found")
        requestor_id = requestor.id

    now = utc_now_iso()
    ticket = Ticket(
        title=_clean_text(payload["title"]),
        description=_clean_text(payload["description"]),
        type=ticket_type,
        priority=priority,
        status=TICKET_STATUS_OPEN,
        category_id=category.id,
        requestor_id=requestor_id,
        created_by=actor.id,
        created_at=now,
        updated_at=now,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    LOGGER.info(
        "ticket.created",
        extra={"extra_data": {"ticket_id": ticket.id, "priority": ticket.priority, "requestor_id": requestor_id}},
    )
    return ticket


def list_tickets(
    db: Session,
    *,
    status: str | None = None,
    priority: str | None = None,
    category_id: int | None = None,
    requestor_id: int | None = None,
    assigned_to: int | None = None,
    date_range_days: int | None = None,
    search: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[Ticket]:
    """Filtered ticket listing.

    Every filter narrows the result independently, so combining filters
    yields the intersection of applying each alone. Ordered most urgent
    first, then newest first.
    """

    requestor = aliased(User)
    assignee = aliased(User)
    stmt = (
        select(Ticket)
        .outerjoin(requestor, requestor.id == Ticket.requestor_id)
        .outerjoin(assignee, assignee.id == Ticket.assigned_to)
    )
    if status:
        stmt = stmt.where(Ticket.status == status)
    if priority:
        stmt = stmt.where(Ticket.priority == priority)
    if category_id:
        stmt = stmt.where(Ticket.category_id == category_id)
    if requestor_id:
        stmt = stmt.where(Ticket.requestor_id == requestor_id)
    if assigned_to:
        stmt = stmt.where(Ticket.assigned_to == assigned_to)
    if date_range_days:
        stmt = stmt.where(Ticket.created_at >= days_ago_iso(int(date_range_days)))
    term = (search or "").strip()
    if term:
        stmt = stmt.where(
            or_(
                Ticket.title.icontains(term, autoescape=True),
                requestor.full_name.icontains(term, autoescape=True),
                assignee.full_name.icontains(term, autoescape=True),
            )
        )
    stmt = (
        stmt.order_by(PRIORITY_ORDER.desc(), Ticket.created_at.desc(), Ticket.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return db.execute(stmt).scalars().all()


def get_ticket(db: Session, ticket_id: int) -> Ticket | None:
    return db.get(Ticket, ticket_id)


def delete_ticket(db: Session, ticket: Ticket) -> None:
    db.delete(ticket)
    db.commit()


def list_comments(db: Session, ticket_id: int) -> list[TicketComment]:
    stmt = (
        select(TicketComment)
        .where(TicketComment.ticket_id == ticket_id)
        .order_by(TicketComment.created_at, TicketComment.id)
    )
    return db.execute(stmt).scalars().all()


def add_comment(db: Session, ticket: Ticket, actor: User, content: str) -> TicketComment:
    text = (content or "").strip()
    if not text:
        raise ValueError("Comment cannot be empty")
    comment = TicketComment(
        ticket_id=ticket.id,
        user_id=actor.id,
        content=text,
        is_system=False,
        created_at=utc_now_iso(),
    )
    db.add(comment)
    ticket.updated_at = comment.created_at
    db.commit()
    db.refresh(comment)
    return comment


def change_ticket_status(db: Session, ticket: Ticket, new_status: str, actor: User) -> Ticket:
    """Move a ticket to ``new_status`` and log a system comment about it."""

    status = normalize_choice(new_status, TICKET_STATUS_CHOICES, "status")
    if status == ticket.status:
        return ticket

    now = utc_now_iso()
    previous = ticket.status
    try:
        ticket.status = status
        ticket.updated_at = now
        if status in FINISHED_TICKET_STATUSES:
            if not ticket.resolved_at:
                ticket.resolved_at = now
        else:
            ticket.resolved_at = None
        db.add(
            TicketComment(
                ticket_id=ticket.id,
                user_id=actor.id,
                content=f"Status changed to {humanize_status(status)}",
                is_system=True,
                created_at=now,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(ticket)
    LOGGER.info(
        "ticket.status_changed",
        extra={"extra_data": {"ticket_id": ticket.id, "from": previous, "to": status}},
    )
    return ticket


def assign_ticket(
    db: Session,
    ticket: Ticket,
    user_id: int | None,
    actor: User,
    notes: str | None = None,
) -> TicketAssignmentHistory:
    assignee = db.get(User, user_id) if user_id is not None else None
    if not assignee:
        raise ValueError("User not found")
    if assignee.role not in STAFF_ROLES:
        raise ValueError("Tickets can only be assigned to technicians or admins")
    return assignments.reassign(
        db,
        ticket,
        history_model=TicketAssignmentHistory,
        owner_fk="ticket_id",
        user_id=assignee.id,
        actor_id=actor.id,
        notes=notes,
    )


def unassign_ticket(db: Session, ticket: Ticket) -> None:
    assignments.release(db, ticket, history_model=TicketAssignmentHistory, owner_fk="ticket_id")


def list_ticket_assignments(db: Session, ticket_id: int) -> list[TicketAssignmentHistory]:
    return assignments.list_history(db, TicketAssignmentHistory, "ticket_id", ticket_id)


def count_tickets(db: Session, *, statuses: tuple[str, ...] | None = None, priority: str | None = None) -> int:
    stmt = select(func.count()).select_from(Ticket)
    if statuses:
        stmt = stmt.where(Ticket.status.in_(statuses))
    if priority:
        stmt = stmt.where(Ticket.priority == priority)
    return db.scalar(stmt) or 0


def list_active_tickets(db: Session, limit: int = 5) -> list[Ticket]:
    stmt = (
        select(Ticket)
        .where(Ticket.status.in_(ACTIVE_TICKET_STATUSES))
        .order_by(PRIORITY_ORDER.desc(), Ticket.created_at.desc(), Ticket.id.desc())
        .limit(limit)
    )
    return db.execute(stmt).scalars().all()


def dashboard_summary(db: Session) -> dict[str, object]:
    """Headline numbers for the landing page."""

    start, end = default_window(30)
    return {
        "total_tickets": count_tickets(db),
        "active_tickets": count_tickets(db, statuses=ACTIVE_TICKET_STATUSES),
        "critical_issues": count_tickets(db, statuses=ACTIVE_TICKET_STATUSES, priority=PRIORITY_CRITICAL),
        "avg_response_time": response_times(db, start, end).avg_first_response,
        "recent_tickets": list_active_tickets(db, limit=5),
    }
