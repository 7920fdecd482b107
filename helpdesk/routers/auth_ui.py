"""Beginner-friendly overview for this module.

WHAT: Sign-in, sign-up, sign-out and admin bootstrap pages.
WHEN: Reached before a session exists, so no login dependency is applied.
WHY: Every other HTML page redirects here on a 401.
HOW: Credentials are checked with bcrypt via ``crud.users``; success stores
the user id in the signed session cookie.

File: helpdesk/routers/auth_ui.py
"""


from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.jinja import get_templates
from ..crud import users as users_crud
from ..db.session import get_db
from ..deps.ui_auth import login_session, logout_session, session_user_id

LOGGER = logging.getLogger(__name__)

router = APIRouter()
templates = get_templates()

INVALID_LOGIN = (
    "Invalid login credentials. If you haven't created an admin user yet, "
    'please click the "Create Admin User" button below.'
)


def _safe_next(value: str | None) -> str:
    """Only allow local redirect targets."""

    target = (value or "").strip()
    if not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


def _login_page(request: Request, *, next: str = "/", error: str = "", notice: str = "", status_code: int = 200):
    context = {
        "request": request,
        "next": _safe_next(next),
        "error": error,
        "notice": notice,
        "admin_email": settings.ADMIN_EMAIL,
    }
    return templates.TemplateResponse("login.html", context, status_code=status_code)


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, next: str = "/"):
    if session_user_id(request) is not None:
        return RedirectResponse(url=_safe_next(next), status_code=302)
    return _login_page(request, next=next)


@router.post("/login", response_class=HTMLResponse)
def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
    db: Session = Depends(get_db),
):
    user = users_crud.authenticate(db, email, password)
    if not user:
        return _login_page(request, next=next, error=INVALID_LOGIN, status_code=401)
    login_session(request, user)
    LOGGER.info("auth.login", extra={"extra_data": {"user_id": user.id}})
    return RedirectResponse(url=_safe_next(next), status_code=302)


@router.post("/login/create-admin", response_class=HTMLResponse)
def create_admin_submit(request: Request, db: Session = Depends(get_db)):
    try:
        _, created = users_crud.ensure_admin_user(db)
    except (ValueError, SQLAlchemyError):
        db.rollback()
        LOGGER.exception("auth.create_admin_failed")
        return _login_page(request, error="Failed to create admin user", status_code=500)
    credentials = f"{settings.ADMIN_EMAIL} / {settings.ADMIN_PASSWORD}"
    if created:
        notice = f"Admin user created successfully! You can now login with {credentials}"
    else:
        notice = f"Admin user already exists. You can login with {credentials}"
    return _login_page(request, notice=notice)


@router.get("/signup", response_class=HTMLResponse)
def signup_page(request: Request):
    return templates.TemplateResponse("signup.html", {"request": request, "error": "", "form": {}})


@router.post("/signup", response_class=HTMLResponse)
def signup_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    full_name: str = Form(""),
    department: str = Form(""),
    db: Session = Depends(get_db),
):
    form = {"email": email, "full_name": full_name, "department": department}
    try:
        user = users_crud.sign_up(db, email=email, password=password, full_name=full_name, department=department)
    except ValueError as exc:
        LOGGER.info("auth.signup_rejected", extra={"extra_data": {"reason": str(exc)}})
        context = {"request": request, "error": str(exc), "form": form}
        return templates.TemplateResponse("signup.html", context, status_code=422)
    login_session(request, user)
    return RedirectResponse(url="/", status_code=302)


@router.get("/logout")
def logout(request: Request):
    logout_session(request)
    return RedirectResponse(url="/login", status_code=302)
