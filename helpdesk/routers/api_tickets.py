"""Beginner-friendly overview for this module.

WHAT: JSON endpoints for tickets, their comments, status and assignment.
WHEN: Called by API clients (bearer JWT) or by the browser session.
WHY: Mirrors every ticket action the HTML pages offer.
HOW: Thin handlers that resolve the caller, call ``crud.tickets`` and map
domain errors to HTTP status codes.

File: helpdesk/routers/api_tickets.py
"""


from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.choices import STAFF_ROLES
from ..core.errors import domain_http_error
from ..crud import tickets as tickets_crud
from ..db.session import get_db
from ..deps.auth import require_admin, require_api_user, require_staff
from ..models.ticket import Ticket
from ..models.user import User
from ..schemas.ticket import (
    AssignmentOut,
    AssignmentRequest,
    CommentCreate,
    CommentOut,
    DashboardOut,
    StatusChange,
    TicketCreate,
    TicketDetailOut,
    TicketOut,
)

router = APIRouter(prefix="/api/v1/tickets", tags=["tickets"])


def _visible_ticket(db: Session, ticket_id: int, user: User) -> Ticket:
    """Staff see every ticket; everyone else only the ones they requested."""

    ticket = tickets_crud.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(404, "Not found")
    if user.role not in STAFF_ROLES and ticket.requestor_id != user.id:
        raise HTTPException(403, "Not allowed to access this ticket")
    return ticket


def _serialize_detail(db: Session, ticket: Ticket) -> TicketDetailOut:
    payload = TicketDetailOut.model_validate(ticket, from_attributes=True)
    payload.comments = [CommentOut.model_validate(c) for c in tickets_crud.list_comments(db, ticket.id)]
    payload.assignment_history = [
        AssignmentOut.model_validate(row) for row in tickets_crud.list_ticket_assignments(db, ticket.id)
    ]
    return payload


@router.get("", response_model=list[TicketOut])
def api_list(
    status: str | None = Query(default=None),
    priority: str | None = Query(default=None),
    category_id: int | None = Query(default=None),
    requestor_id: int | None = Query(default=None),
    assigned_to: int | None = Query(default=None),
    date_range_days: int | None = Query(default=None, ge=1),
    search: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    if user.role not in STAFF_ROLES:
        requestor_id = user.id
    return tickets_crud.list_tickets(
        db,
        status=status,
        priority=priority,
        category_id=category_id,
        requestor_id=requestor_id,
        assigned_to=assigned_to,
        date_range_days=date_range_days,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.get("/dashboard", response_model=DashboardOut, dependencies=[Depends(require_api_user)])
def api_dashboard(db: Session = Depends(get_db)):
    return tickets_crud.dashboard_summary(db)


@router.post("", response_model=TicketOut, status_code=201)
def api_create(payload: TicketCreate, user: User = Depends(require_api_user), db: Session = Depends(get_db)):
    try:
        return tickets_crud.create_ticket(db, payload.model_dump(), user)
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.get("/{ticket_id}", response_model=TicketDetailOut)
def api_get(ticket_id: int, user: User = Depends(require_api_user), db: Session = Depends(get_db)):
    return _serialize_detail(db, _visible_ticket(db, ticket_id, user))


@router.delete("/{ticket_id}", dependencies=[Depends(require_admin)])
def api_delete(ticket_id: int, db: Session = Depends(get_db)):
    ticket = tickets_crud.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(404, "Not found")
    tickets_crud.delete_ticket(db, ticket)
    return {"status": "deleted"}


@router.post("/{ticket_id}/status", response_model=TicketOut)
def api_change_status(
    ticket_id: int,
    payload: StatusChange,
    user: User = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    ticket = _visible_ticket(db, ticket_id, user)
    try:
        return tickets_crud.change_ticket_status(db, ticket, payload.status, user)
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.get("/{ticket_id}/comments", response_model=list[CommentOut])
def api_list_comments(ticket_id: int, user: User = Depends(require_api_user), db: Session = Depends(get_db)):
    ticket = _visible_ticket(db, ticket_id, user)
    return tickets_crud.list_comments(db, ticket.id)


@router.post("/{ticket_id}/comments", response_model=CommentOut, status_code=201)
def api_add_comment(
    ticket_id: int,
    payload: CommentCreate,
    user: User = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    ticket = _visible_ticket(db, ticket_id, user)
    try:
        return tickets_crud.add_comment(db, ticket, user, payload.content)
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.get("/{ticket_id}/assignments", response_model=list[AssignmentOut])
def api_list_assignments(ticket_id: int, user: User = Depends(require_api_user), db: Session = Depends(get_db)):
    ticket = _visible_ticket(db, ticket_id, user)
    return tickets_crud.list_ticket_assignments(db, ticket.id)


@router.post("/{ticket_id}/assign", response_model=AssignmentOut, status_code=201)
def api_assign(
    ticket_id: int,
    payload: AssignmentRequest,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ticket = tickets_crud.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(404, "Not found")
    try:
        return tickets_crud.assign_ticket(db, ticket, payload.user_id, user, payload.notes)
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.post("/{ticket_id}/unassign", response_model=TicketOut, dependencies=[Depends(require_staff)])
def api_unassign(ticket_id: int, db: Session = Depends(get_db)):
    ticket = tickets_crud.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(404, "Not found")
    try:
        tickets_crud.unassign_ticket(db, ticket)
    except ValueError as exc:
        raise domain_http_error(exc) from exc
    return ticket
