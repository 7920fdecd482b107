"""Beginner-friendly overview for this module.

WHAT: Server-rendered pages for tickets, inventory, admin, profile and statistics.
WHEN: Every browser request outside ``/api`` and ``/login`` lands here.
WHY: Gives help-desk staff and requestors a UI without a separate frontend.
HOW: GET handlers build a template context from the crud layer. POST
handlers run one action and redirect back (303) on success; on failure
they log, roll back, and re-render the same page with a fixed message.

File: helpdesk/routers/ui.py
"""


from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.choices import (
    COMPUTER_STATUS_CHOICES,
    COMPUTER_TYPE_CHOICES,
    PRIORITY_CHOICES,
    ROLE_CHOICES,
    SOFTWARE_STATUS_CHOICES,
    STAFF_ROLES,
    TICKET_STATUS_CHOICES,
    TICKET_TYPE_CHOICES,
)
from ..core.jinja import get_templates
from ..crud import categories as categories_crud
from ..crud import computers as computers_crud
from ..crud import tickets as tickets_crud
from ..crud import users as users_crud
from ..db.session import get_db
from ..deps.ui_auth import require_ui_admin, require_ui_staff, require_ui_user
from ..models.computer import ComputerAsset
from ..models.ticket import Ticket
from ..models.user import User
from ..services import imports as imports_service
from ..services import statistics as statistics_service

LOGGER = logging.getLogger(__name__)

templates = get_templates()

router = APIRouter(dependencies=[Depends(require_ui_user)])

DEFAULT_TICKET_RANGE_DAYS = 30
TICKET_RANGE_OPTIONS = {"7": 7, "30": 30, "90": 90, "all": None}

# Admin "settings" tab: shown and toggled in the page, never persisted.
DEFAULT_ADMIN_SETTINGS = {
    "email_notifications": True,
    "auto_assign_tickets": False,
    "require_approval": False,
}


def _render(request: Request, template: str, context: dict[str, Any], status_code: int = 200) -> HTMLResponse:
    payload = {"request": request, "user": getattr(request.state, "user", None)}
    payload.update(context)
    return templates.TemplateResponse(template, payload, status_code=status_code)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _action_failed(db: Session, event: str, exc: Exception, **data: Any) -> str | None:
    """Log a failed form action and return the detail worth showing, if any."""

    if isinstance(exc, SQLAlchemyError):
        db.rollback()
    LOGGER.exception(event, extra={"extra_data": data})
    if isinstance(exc, (ValueError, PermissionError)):
        return str(exc)
    return None


def _optional_int(value: str | None) -> int | None:
    value = (value or "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


# --- dashboard --------------------------------------------------------------

@router.get("/", response_class=HTMLResponse)
def index_page(request: Request, db: Session = Depends(get_db)):
    return _render(request, "index.html", {"summary": tickets_crud.dashboard_summary(db)})


# --- tickets ----------------------------------------------------------------

def _visible_ticket(db: Session, ticket_id: int, user: User) -> Ticket:
    ticket = tickets_crud.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(404, "Ticket not found")
    if user.role not in STAFF_ROLES and ticket.requestor_id != user.id:
        raise HTTPException(403, "Not allowed to view this ticket")
    return ticket


@router.get("/tickets", response_class=HTMLResponse)
def tickets_page(
    request: Request,
    status: str = "",
    priority: str = "",
    category_id: str = "",
    assigned_to: str = "",
    range_key: str = Query(default=str(DEFAULT_TICKET_RANGE_DAYS), alias="range"),
    search: str = "",
    user: User = Depends(require_ui_user),
    db: Session = Depends(get_db),
):
    if range_key not in TICKET_RANGE_OPTIONS:
        range_key = str(DEFAULT_TICKET_RANGE_DAYS)
    filters = {
        "status": status,
        "priority": priority,
        "category_id": category_id,
        "assigned_to": assigned_to,
        "range": range_key,
        "search": search,
    }
    records = tickets_crud.list_tickets(
        db,
        status=status or None,
        priority=priority or None,
        category_id=_optional_int(category_id),
        requestor_id=None if user.is_staff else user.id,
        assigned_to=_optional_int(assigned_to),
        date_range_days=TICKET_RANGE_OPTIONS[range_key],
        search=search or None,
    )
    context = {
        "records": records,
        "filters": filters,
        "categories": categories_crud.list_categories(db),
        "technicians": users_crud.list_user_options(db, roles=tuple(sorted(STAFF_ROLES))),
        "statuses": TICKET_STATUS_CHOICES,
        "priorities": PRIORITY_CHOICES,
    }
    return _render(request, "tickets.html", context)


def _new_ticket_context(db: Session, user: User, form: dict[str, Any] | None = None, error: str | None = None, detail: str | None = None) -> dict[str, Any]:
    return {
        "categories": categories_crud.list_categories(db, active_only=True),
        "requestors": users_crud.list_user_options(db) if user.is_staff else [],
        "types": TICKET_TYPE_CHOICES,
        "priorities": PRIORITY_CHOICES,
        "form": form or {"type": "incident", "priority": "medium"},
        "error": error,
        "error_detail": detail,
    }


@router.get("/tickets/new", response_class=HTMLResponse)
def new_ticket_page(request: Request, user: User = Depends(require_ui_user), db: Session = Depends(get_db)):
    return _render(request, "ticket_new.html", _new_ticket_context(db, user))


@router.post("/tickets/new", response_class=HTMLResponse)
def new_ticket_submit(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    type: str = Form("incident"),
    priority: str = Form("medium"),
    category_id: str = Form(""),
    requestor_id: str = Form(""),
    user: User = Depends(require_ui_user),
    db: Session = Depends(get_db),
):
    form = {
        "title": title,
        "description": description,
        "type": type,
        "priority": priority,
        "category_id": category_id,
        "requestor_id": requestor_id,
    }
    try:
        ticket = tickets_crud.create_ticket(db, form, user)
    except (ValueError, SQLAlchemyError) as exc:
        detail = _action_failed(db, "ui.ticket_create_failed", exc)
        context = _new_ticket_context(db, user, form, "Failed to create ticket. Please try again.", detail)
        return _render(request, "ticket_new.html", context, status_code=422)
    return _redirect(f"/tickets/{ticket.id}")


def _ticket_detail_context(db: Session, ticket: Ticket, error: str | None = None, detail: str | None = None) -> dict[str, Any]:
    return {
        "ticket": ticket,
        "comments": tickets_crud.list_comments(db, ticket.id),
        "assignments": tickets_crud.list_ticket_assignments(db, ticket.id),
        "technicians": users_crud.list_user_options(db, roles=tuple(sorted(STAFF_ROLES))),
        "statuses": TICKET_STATUS_CHOICES,
        "error": error,
        "error_detail": detail,
    }


@router.get("/tickets/{ticket_id}", response_class=HTMLResponse)
def ticket_detail_page(ticket_id: int, request: Request, user: User = Depends(require_ui_user), db: Session = Depends(get_db)):
    ticket = _visible_ticket(db, ticket_id, user)
    return _render(request, "ticket_detail.html", _ticket_detail_context(db, ticket))


@router.post("/tickets/{ticket_id}/status", response_class=HTMLResponse)
def ticket_status_submit(
    ticket_id: int,
    request: Request,
    status: str = Form(...),
    user: User = Depends(require_ui_user),
    db: Session = Depends(get_db),
):
    ticket = _visible_ticket(db, ticket_id, user)
    try:
        tickets_crud.change_ticket_status(db, ticket, status, user)
    except (ValueError, SQLAlchemyError) as exc:
        detail = _action_failed(db, "ui.ticket_status_failed", exc, ticket_id=ticket_id)
        context = _ticket_detail_context(db, ticket, "Failed to update ticket status", detail)
        return _render(request, "ticket_detail.html", context, status_code=422)
    return _redirect(f"/tickets/{ticket_id}")


@router.post("/tickets/{ticket_id}/comments", response_class=HTMLResponse)
def ticket_comment_submit(
    ticket_id: int,
    request: Request,
    content: str = Form(""),
    user: User = Depends(require_ui_user),
    db: Session = Depends(get_db),
):
    ticket = _visible_ticket(db, ticket_id, user)
    try:
        tickets_crud.add_comment(db, ticket, user, content)
    except (ValueError, SQLAlchemyError) as exc:
        detail = _action_failed(db, "ui.ticket_comment_failed", exc, ticket_id=ticket_id)
        context = _ticket_detail_context(db, ticket, "Failed to submit comment", detail)
        return _render(request, "ticket_detail.html", context, status_code=422)
    return _redirect(f"/tickets/{ticket_id}")


@router.post("/tickets/{ticket_id}/assign", response_class=HTMLResponse)
def ticket_assign_submit(
    ticket_id: int,
    request: Request,
    user_id: str = Form(""),
    notes: str = Form(""),
    user: User = Depends(require_ui_staff),
    db: Session = Depends(get_db),
):
    ticket = _visible_ticket(db, ticket_id, user)
    try:
        tickets_crud.assign_ticket(db, ticket, _optional_int(user_id), user, notes)
    except (ValueError, SQLAlchemyError) as exc:
        detail = _action_failed(db, "ui.ticket_assign_failed", exc, ticket_id=ticket_id)
        context = _ticket_detail_context(db, ticket, "Failed to assign ticket", detail)
        return _render(request, "ticket_detail.html", context, status_code=422)
    return _redirect(f"/tickets/{ticket_id}")


@router.post("/tickets/{ticket_id}/unassign", response_class=HTMLResponse)
def ticket_unassign_submit(
    ticket_id: int,
    request: Request,
    user: User = Depends(require_ui_staff),
    db: Session = Depends(get_db),
):
    ticket = _visible_ticket(db, ticket_id, user)
    try:
        tickets_crud.unassign_ticket(db, ticket)
    except (ValueError, SQLAlchemyError) as exc:
        detail = _action_failed(db, "ui.ticket_unassign_failed", exc, ticket_id=ticket_id)
        context = _ticket_detail_context(db, ticket, "Failed to unassign ticket", detail)
        return _render(request, "ticket_detail.html", context, status_code=422)
    return _redirect(f"/tickets/{ticket_id}")


# --- inventory --------------------------------------------------------------

def _inventory_context(
    db: Session,
    filters: dict[str, str] | None = None,
    import_result: Any = None,
    error: str | None = None,
) -> dict[str, Any]:
    filters = filters or {"status": "", "type": "", "department": "", "search": ""}
    records = computers_crud.list_computers(
        db,
        status=filters["status"] or None,
        type=filters["type"] or None,
        department=filters["department"] or None,
        search=filters["search"] or None,
    )
    return {
        "records": records,
        "filters": filters,
        "departments": computers_crud.list_departments(db),
        "statuses": COMPUTER_STATUS_CHOICES,
        "types": COMPUTER_TYPE_CHOICES,
        "import_result": import_result,
        "error": error,
    }


@router.get("/inventory", response_class=HTMLResponse)
def inventory_page(
    request: Request,
    status: str = "",
    type: str = "",
    department: str = "",
    search: str = "",
    db: Session = Depends(get_db),
):
    filters = {"status": status, "type": type, "department": department, "search": search}
    return _render(request, "inventory.html", _inventory_context(db, filters))


@router.get("/inventory/template", dependencies=[Depends(require_ui_staff)])
def inventory_template_download():
    return Response(
        content=imports_service.computer_import_template(),
        media_type=imports_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="computer_import_template.xlsx"'},
    )


@router.post("/inventory/import", response_class=HTMLResponse, dependencies=[Depends(require_ui_staff)])
def inventory_import_submit(request: Request, file: UploadFile = File(...), db: Session = Depends(get_db)):
    # Must stay sync: imports block on bcrypt and the database.
    content = file.file.read()
    result = imports_service.import_computers(db, content)
    return _render(request, "inventory.html", _inventory_context(db, import_result=result))


def _new_computer_context(form: dict[str, Any] | None = None, error: str | None = None, detail: str | None = None) -> dict[str, Any]:
    return {
        "types": COMPUTER_TYPE_CHOICES,
        "statuses": COMPUTER_STATUS_CHOICES,
        "form": form or {"type": "desktop", "status": "active"},
        "error": error,
        "error_detail": detail,
    }


@router.get("/inventory/new", response_class=HTMLResponse, dependencies=[Depends(require_ui_staff)])
def new_computer_page(request: Request):
    return _render(request, "computer_new.html", _new_computer_context())


@router.post("/inventory/new", response_class=HTMLResponse, dependencies=[Depends(require_ui_staff)])
def new_computer_submit(
    request: Request,
    asset_tag: str = Form(""),
    serial_number: str = Form(""),
    name: str = Form(""),
    type: str = Form("desktop"),
    manufacturer: str = Form(""),
    model: str = Form(""),
    status: str = Form("active"),
    location: str = Form(""),
    department: str = Form(""),
    notes: str = Form(""),
    cpu: str = Form(""),
    ram: str = Form(""),
    storage: str = Form(""),
    os: str = Form(""),
    db: Session = Depends(get_db),
):
    form = {
        "asset_tag": asset_tag,
        "serial_number": serial_number,
        "name": name,
        "type": type,
        "manufacturer": manufacturer,
        "model": model,
        "status": status,
        "location": location,
        "department": department,
        "notes": notes,
    }
    specifications = {"cpu": cpu, "ram": ram, "storage": storage, "os": os}
    payload = dict(form, specifications=specifications)
    form.update(specifications)
    try:
        computer = computers_crud.create_computer(db, payload)
    except (ValueError, SQLAlchemyError) as exc:
        detail = _action_failed(db, "ui.computer_create_failed", exc)
        context = _new_computer_context(form, "Failed to create computer asset", detail)
        return _render(request, "computer_new.html", context, status_code=422)
    return _redirect(f"/inventory/{computer.id}")


def _computer_or_404(db: Session, computer_id: int) -> ComputerAsset:
    computer = computers_crud.get_computer(db, computer_id)
    if not computer:
        raise HTTPException(404, "Computer not found")
    return computer


def _computer_detail_context(db: Session, computer: ComputerAsset, error: str | None = None, detail: str | None = None) -> dict[str, Any]:
    return {
        "computer": computer,
        "assignments": computers_crud.list_assignment_history(db, computer.id),
        "maintenance": computers_crud.list_maintenance(db, computer.id),
        "software": computers_crud.list_software(db, computer.id),
        "users": users_crud.list_user_options(db),
        "statuses": COMPUTER_STATUS_CHOICES,
        "software_statuses": SOFTWARE_STATUS_CHOICES,
        "error": error,
        "error_detail": detail,
    }


def _computer_action_failed(request: Request, db: Session, computer: ComputerAsset, event: str, message: str, exc: Exception) -> HTMLResponse:
    detail = _action_failed(db, event, exc, computer_id=computer.id)
    context = _computer_detail_context(db, computer, message, detail)
    return _render(request, "computer_detail.html", context, status_code=422)


@router.get("/inventory/{computer_id}", response_class=HTMLResponse)
def computer_detail_page(computer_id: int, request: Request, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    return _render(request, "computer_detail.html", _computer_detail_context(db, computer))


@router.post("/inventory/{computer_id}/status", response_class=HTMLResponse)
def computer_status_submit(
    computer_id: int,
    request: Request,
    status: str = Form(...),
    user: User = Depends(require_ui_user),
    db: Session = Depends(get_db),
):
    computer = _computer_or_404(db, computer_id)
    try:
        computers_crud.change_computer_status(db, computer, status, user)
    except (ValueError, PermissionError, SQLAlchemyError) as exc:
        return _computer_action_failed(request, db, computer, "ui.computer_status_failed", "Failed to update computer status", exc)
    return _redirect(f"/inventory/{computer_id}")


@router.post("/inventory/{computer_id}/assign", response_class=HTMLResponse)
def computer_assign_submit(
    computer_id: int,
    request: Request,
    user_id: str = Form(""),
    notes: str = Form(""),
    user: User = Depends(require_ui_staff),
    db: Session = Depends(get_db),
):
    computer = _computer_or_404(db, computer_id)
    try:
        computers_crud.assign_computer(db, computer, _optional_int(user_id), user, notes)
    except (ValueError, SQLAlchemyError) as exc:
        return _computer_action_failed(request, db, computer, "ui.computer_assign_failed", "Failed to assign computer", exc)
    return _redirect(f"/inventory/{computer_id}")


@router.post("/inventory/{computer_id}/unassign", response_class=HTMLResponse, dependencies=[Depends(require_ui_staff)])
def computer_unassign_submit(computer_id: int, request: Request, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    try:
        computers_crud.unassign_computer(db, computer)
    except (ValueError, SQLAlchemyError) as exc:
        return _computer_action_failed(request, db, computer, "ui.computer_unassign_failed", "Failed to unassign computer", exc)
    return _redirect(f"/inventory/{computer_id}")


@router.post("/inventory/{computer_id}/maintenance", response_class=HTMLResponse)
def computer_maintenance_submit(
    computer_id: int,
    request: Request,
    maintenance_type: str = Form(""),
    description: str = Form(""),
    performed_at: str = Form(""),
    cost: str = Form(""),
    next_maintenance_date: str = Form(""),
    notes: str = Form(""),
    user: User = Depends(require_ui_staff),
    db: Session = Depends(get_db),
):
    computer = _computer_or_404(db, computer_id)
    payload = {
        "maintenance_type": maintenance_type,
        "description": description,
        "performed_at": performed_at,
        "cost": cost,
        "next_maintenance_date": next_maintenance_date,
        "notes": notes,
    }
    try:
        computers_crud.add_maintenance(db, computer, payload, user)
    except (ValueError, SQLAlchemyError) as exc:
        return _computer_action_failed(request, db, computer, "ui.maintenance_add_failed", "Failed to add maintenance record", exc)
    return _redirect(f"/inventory/{computer_id}")


@router.post("/inventory/{computer_id}/maintenance/{record_id}/delete", dependencies=[Depends(require_ui_staff)])
def computer_maintenance_delete(computer_id: int, record_id: int, db: Session = Depends(get_db)):
    record = computers_crud.get_maintenance(db, computer_id, record_id)
    if not record:
        raise HTTPException(404, "Not found")
    computers_crud.delete_maintenance(db, record)
    return _redirect(f"/inventory/{computer_id}")


@router.post("/inventory/{computer_id}/software", response_class=HTMLResponse, dependencies=[Depends(require_ui_staff)])
def computer_software_submit(
    computer_id: int,
    request: Request,
    software_name: str = Form(""),
    version: str = Form(""),
    license_key: str = Form(""),
    installation_date: str = Form(""),
    expiry_date: str = Form(""),
    status: str = Form("active"),
    notes: str = Form(""),
    db: Session = Depends(get_db),
):
    computer = _computer_or_404(db, computer_id)
    payload = {
        "software_name": software_name,
        "version": version,
        "license_key": license_key,
        "installation_date": installation_date,
        "expiry_date": expiry_date,
        "status": status,
        "notes": notes,
    }
    try:
        computers_crud.add_software(db, computer, payload)
    except (ValueError, SQLAlchemyError) as exc:
        return _computer_action_failed(request, db, computer, "ui.software_add_failed", "Failed to add software", exc)
    return _redirect(f"/inventory/{computer_id}")


@router.post("/inventory/{computer_id}/software/{record_id}/delete", dependencies=[Depends(require_ui_staff)])
def computer_software_delete(computer_id: int, record_id: int, db: Session = Depends(get_db)):
    record = computers_crud.get_software(db, computer_id, record_id)
    if not record:
        raise HTTPException(404, "Not found")
    computers_crud.delete_software(db, record)
    return _redirect(f"/inventory/{computer_id}")


# --- admin ------------------------------------------------------------------

def _admin_context(
    db: Session,
    *,
    tab: str = "users",
    error: str | None = None,
    detail: str | None = None,
    notice: str | None = None,
    import_result: Any = None,
    temporary_password: str | None = None,
    admin_settings: dict[str, bool] | None = None,
) -> dict[str, Any]:
    return {
        "tab": tab,
        "users": users_crud.list_users(db),
        "categories": categories_crud.list_categories(db),
        "roles": ROLE_CHOICES,
        "ticket_types": TICKET_TYPE_CHOICES,
        "admin_settings": admin_settings or dict(DEFAULT_ADMIN_SETTINGS),
        "import_result": import_result,
        "temporary_password": temporary_password,
        "notice": notice,
        "error": error,
        "error_detail": detail,
    }


def _admin_failed(request: Request, db: Session, tab: str, event: str, message: str, exc: Exception) -> HTMLResponse:
    detail = _action_failed(db, event, exc)
    return _render(request, "admin.html", _admin_context(db, tab=tab, error=message, detail=detail), status_code=422)


@router.get("/admin", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_page(request: Request, tab: str = "users", db: Session = Depends(get_db)):
    return _render(request, "admin.html", _admin_context(db, tab=tab))


@router.post("/admin/users", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_user_create(
    request: Request,
    email: str = Form(""),
    full_name: str = Form(""),
    role: str = Form("user"),
    department: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        user, temporary = users_crud.create_user(
            db,
            email=email,
            full_name=full_name,
            role=role,
            department=department,
            password=password or None,
        )
    except (ValueError, SQLAlchemyError) as exc:
        return _admin_failed(request, db, "users", "ui.user_create_failed", "Failed to create user. Please try again.", exc)
    context = _admin_context(db, notice=f"User {user.email} created", temporary_password=temporary)
    return _render(request, "admin.html", context)


@router.get("/admin/users/template", dependencies=[Depends(require_ui_admin)])
def admin_user_template():
    return Response(
        content=imports_service.user_import_template(),
        media_type=imports_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="user_import_template.xlsx"'},
    )


@router.post("/admin/users/import", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_user_import(request: Request, file: UploadFile = File(...), db: Session = Depends(get_db)):
    # Must stay sync: imports block on bcrypt and the database.
    content = file.file.read()
    result = imports_service.import_users(db, content)
    return _render(request, "admin.html", _admin_context(db, tab="users", import_result=result))


@router.post("/admin/users/{user_id}", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_user_update(
    user_id: int,
    request: Request,
    full_name: str = Form(""),
    role: str = Form("user"),
    department: str = Form(""),
    db: Session = Depends(get_db),
):
    target = users_crud.get_user(db, user_id)
    if not target:
        raise HTTPException(404, "User not found")
    try:
        users_crud.update_user(db, target, {"full_name": full_name, "role": role, "department": department})
    except (ValueError, SQLAlchemyError) as exc:
        return _admin_failed(request, db, "users", "ui.user_update_failed", "Failed to update user. Please try again.", exc)
    return _redirect("/admin?tab=users")


@router.post("/admin/users/{user_id}/delete", response_class=HTMLResponse)
def admin_user_delete(
    user_id: int,
    request: Request,
    admin: User = Depends(require_ui_admin),
    db: Session = Depends(get_db),
):
    target = users_crud.get_user(db, user_id)
    if not target:
        raise HTTPException(404, "User not found")
    try:
        if target.id == admin.id:
            raise ValueError("You cannot delete your own account")
        users_crud.delete_user(db, target)
    except (ValueError, SQLAlchemyError) as exc:
        return _admin_failed(request, db, "users", "ui.user_delete_failed", "Failed to delete user. Please try again.", exc)
    return _redirect("/admin?tab=users")


@router.post("/admin/categories", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_category_create(
    request: Request,
    name: str = Form(""),
    description: str = Form(""),
    ticket_type: str = Form("incident"),
    is_active: str = Form(""),
    db: Session = Depends(get_db),
):
    payload = {"name": name, "description": description, "ticket_type": ticket_type, "is_active": bool(is_active)}
    try:
        categories_crud.create_category(db, payload)
    except (ValueError, SQLAlchemyError) as exc:
        return _admin_failed(request, db, "categories", "ui.category_create_failed", "Failed to create category. Please try again.", exc)
    return _redirect("/admin?tab=categories")


@router.post("/admin/categories/{category_id}", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_category_update(
    category_id: int,
    request: Request,
    name: str = Form(""),
    description: str = Form(""),
    ticket_type: str = Form("incident"),
    is_active: str = Form(""),
    db: Session = Depends(get_db),
):
    category = categories_crud.get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Category not found")
    payload = {"name": name, "description": description, "ticket_type": ticket_type, "is_active": bool(is_active)}
    try:
        categories_crud.update_category(db, category, payload)
    except (ValueError, SQLAlchemyError) as exc:
        return _admin_failed(request, db, "categories", "ui.category_update_failed", "Failed to update category. Please try again.", exc)
    return _redirect("/admin?tab=categories")


@router.post("/admin/categories/{category_id}/delete", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_category_delete(category_id: int, request: Request, db: Session = Depends(get_db)):
    category = categories_crud.get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Category not found")
    try:
        categories_crud.delete_category(db, category)
    except SQLAlchemyError as exc:
        return _admin_failed(request, db, "categories", "ui.category_delete_failed", "Failed to delete category. Please try again.", exc)
    return _redirect("/admin?tab=categories")


@router.post("/admin/settings", response_class=HTMLResponse, dependencies=[Depends(require_ui_admin)])
def admin_settings_submit(
    request: Request,
    email_notifications: str = Form(""),
    auto_assign_tickets: str = Form(""),
    require_approval: str = Form(""),
    db: Session = Depends(get_db),
):
    toggles = {
        "email_notifications": bool(email_notifications),
        "auto_assign_tickets": bool(auto_assign_tickets),
        "require_approval": bool(require_approval),
    }
    context = _admin_context(
        db,
        tab="settings",
        admin_settings=toggles,
        notice="Settings applied for this page only; they are not saved.",
    )
    return _render(request, "admin.html", context)


# --- profile ----------------------------------------------------------------

@router.get("/profile", response_class=HTMLResponse)
def profile_page(request: Request):
    return _render(request, "profile.html", {"error": None, "notice": None})


@router.post("/profile/password", response_class=HTMLResponse)
def profile_password_submit(
    request: Request,
    current_password: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    user: User = Depends(require_ui_user),
    db: Session = Depends(get_db),
):
    try:
        users_crud.change_password(
            db,
            user,
            current_password=current_password,
            new_password=new_password,
            confirm_password=confirm_password,
        )
    except (ValueError, SQLAlchemyError) as exc:
        detail = _action_failed(db, "ui.password_change_failed", exc, user_id=user.id)
        return _render(request, "profile.html", {"error": detail or "Failed to update password", "notice": None}, status_code=422)
    return _render(request, "profile.html", {"error": None, "notice": "Password updated successfully"})


# --- statistics -------------------------------------------------------------

def _statistics_params(range_key: str, backlog_cutoff: int) -> tuple[str, int]:
    if range_key not in statistics_service.RANGE_CHOICES:
        range_key = "30d"
    cutoff = backlog_cutoff if backlog_cutoff in statistics_service.BACKLOG_CUTOFF_CHOICES else statistics_service.DEFAULT_BACKLOG_CUTOFF
    return range_key, cutoff


@router.get("/statistics", response_class=HTMLResponse, dependencies=[Depends(require_ui_staff)])
def statistics_page(
    request: Request,
    range_key: str = Query(default="30d", alias="range"),
    backlog_cutoff: int = statistics_service.DEFAULT_BACKLOG_CUTOFF,
    db: Session = Depends(get_db),
):
    range_key, cutoff = _statistics_params(range_key, backlog_cutoff)
    try:
        report = statistics_service.build_report(
            db,
            days=statistics_service.RANGE_CHOICES[range_key],
            backlog_cutoff_days=cutoff,
        )
    except SQLAlchemyError as exc:
        _action_failed(db, "ui.statistics_failed", exc)
        report = None
    context = {
        "report": report,
        "range": range_key,
        "ranges": list(statistics_service.RANGE_CHOICES),
        "backlog_cutoff": cutoff,
        "cutoffs": statistics_service.BACKLOG_CUTOFF_CHOICES,
        "error": None if report else "Failed to load statistics",
    }
    return _render(request, "statistics.html", context)


@router.get("/statistics/export", dependencies=[Depends(require_ui_staff)])
def statistics_export(
    range_key: str = Query(default="30d", alias="range"),
    backlog_cutoff: int = statistics_service.DEFAULT_BACKLOG_CUTOFF,
    db: Session = Depends(get_db),
):
    range_key, cutoff = _statistics_params(range_key, backlog_cutoff)
    report = statistics_service.build_report(
        db,
        days=statistics_service.RANGE_CHOICES[range_key],
        backlog_cutoff_days=cutoff,
    )
    return Response(
        content=statistics_service.export_statistics_workbook(report),
        media_type=imports_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="help-desk-statistics.xlsx"'},
    )
