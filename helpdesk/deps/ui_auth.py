"""Beginner-friendly overview for this module.

WHAT: Session helpers for the browser pages (sign-in, sign-out, current user).
WHEN: Used by the login routes and every HTML page handler.
WHY: The UI keeps the signed-in user's id in the Starlette session cookie.
HOW: ``login_session`` stores the id, ``require_ui_user`` loads the user
back or raises 401, which the error handler turns into a /login redirect.

File: helpdesk/deps/ui_auth.py
"""


from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..core.choices import ROLE_ADMIN, STAFF_ROLES
from ..db.session import get_db
from ..middlewares import principal_ctx_var
from ..models.user import User

SESSION_USER_KEY = "user_id"


def session_user_id(request: Request) -> int | None:
    if "session" not in request.scope:
        return None
    raw = request.session.get(SESSION_USER_KEY)
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def set_principal(request: Request, user: User) -> None:
    principal = f"user:{user.id}"
    principal_ctx_var.set(principal)
    request.state.principal = principal
    request.state.user = user


def login_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def logout_session(request: Request) -> None:
    request.session.clear()


def session_user(request: Request, db: Session) -> User | None:
    user_id = session_user_id(request)
    if user_id is None:
        return None
    user = db.get(User, user_id)
    if user is None:
        # Account deleted while the cookie was still alive.
        logout_session(request)
    return user


def require_ui_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Gate for UI routes: requires a valid session created by the login flow.
    Raises 401 so the HTML error handler can redirect to /login.
    """
    user = session_user(request, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login required")
    set_principal(request, user)
    return user


def require_ui_staff(user: User = Depends(require_ui_user)) -> User:
    if user.role not in STAFF_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Technician or admin role required")
    return user


def require_ui_admin(user: User = Depends(require_ui_user)) -> User:
    if user.role != ROLE_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user
