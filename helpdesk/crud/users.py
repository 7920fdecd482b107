"""User account helpers: sign-up, sign-in, password changes and admin CRUD."""

from __future__ import annotations

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.choices import ROLE_ADMIN, ROLE_CHOICES, ROLE_USER, normalize_choice
from ..core.config import settings
from ..core.errors import AlreadyExistsError
from ..core.security import (
    MIN_PASSWORD_LENGTH,
    generate_temporary_password,
    hash_password,
    verify_password,
)
from ..models.user import User
from ..services.timecalc import utc_now_iso

LOGGER = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def is_valid_email(value: str | None) -> bool:
    return bool(EMAIL_RE.match((value or "").strip()))


def _check_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str | None) -> User | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    stmt = select(User).where(func.lower(User.email) == normalized)
    return db.execute(stmt).scalars().first()


def list_users(db: Session) -> list[User]:
    """All accounts, newest first (admin table)."""

    stmt = select(User).order_by(User.created_at.desc(), User.id.desc())
    return db.execute(stmt).scalars().all()


def list_user_options(db: Session, roles: tuple[str, ...] | None = None) -> list[User]:
    """Accounts ordered by name for requestor/assignee pickers."""

    stmt = select(User)
    if roles:
        stmt = stmt.where(User.role.in_(roles))
    stmt = stmt.order_by(User.full_name, User.id)
    return db.execute(stmt).scalars().all()


def create_user(
    db: Session,
    *,
    email: str,
    full_name: str,
    role: str = ROLE_USER,
    department: str | None = None,
    password: str | None = None,
    commit: bool = True,
) -> tuple[User, str | None]:
    """Create an account.

    Returns ``(user, temporary_password)``. The second item is only set when
    no password was supplied and one had to be generated.
    """

    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        raise ValueError(f"Invalid email format - {email}")
    name = (full_name or "").strip()
    if not name:
        raise ValueError("Full name is required")
    role_value = normalize_choice(role or ROLE_USER, ROLE_CHOICES, "role")
    if get_user_by_email(db, normalized):
        raise AlreadyExistsError(f"User with email {normalized} already exists")

    temporary = None
    if password is None:
        temporary = generate_temporary_password()
        password = temporary
    _check_password(password)

    user = User(
        email=normalized,
        password_hash=hash_password(password),
        role=role_value,
        full_name=name,
        department=(department or "").strip() or None,
        created_at=utc_now_iso(),
    )
    db.add(user)
    if commit:
        db.commit()
        db.refresh(user)
    else:
        db.flush()
    LOGGER.info("user.created", extra={"extra_data": {"user_id": user.id, "role": user.role}})
    return user, temporary


def sign_up(
    db: Session,
    *,
    email: str,
    password: str,
    full_name: str,
    department: str | None = None,
) -> User:
    """Self-service registration; new accounts always start as plain users."""

    _check_password(password)
    user, _ = create_user(
        db,
        email=email,
        full_name=full_name,
        role=ROLE_USER,
        department=department,
        password=password,
    )
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password or "", user.password_hash):
        LOGGER.info("auth.failed", extra={"extra_data": {"email": normalize_email(email)}})
        return None
    return user


def change_password(
    db: Session,
    user: User,
    *,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> User:
    if new_password != confirm_password:
        raise ValueError("New passwords do not match")
    if not verify_password(current_password or "", user.password_hash):
        raise ValueError("Current password is incorrect")
    _check_password(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(user)
    LOGGER.info("user.password_changed", extra={"extra_data": {"user_id": user.id}})
    return user


def update_user(db: Session, user: User, payload: dict) -> User:
    """Apply admin edits. Only name, role and department are editable."""

    if "full_name" in payload and payload["full_name"] is not None:
        name = str(payload["full_name"]).strip()
        if not name:
            raise ValueError("Full name is required")
        user.full_name = name
    if "role" in payload and payload["role"] is not None:
        user.role = normalize_choice(payload["role"], ROLE_CHOICES, "role")
    if "department" in payload:
        user.department = (payload["department"] or "").strip() or None
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValueError("User is still referenced by tickets or computers") from exc
    LOGGER.info("user.deleted", extra={"extra_data": {"user_id": user.id}})


def ensure_admin_user(db: Session) -> tuple[User, bool]:
    """Create the configured bootstrap admin unless it already exists.

    Returns ``(user, created)``.
    """

    existing = get_user_by_email(db, settings.ADMIN_EMAIL)
    if existing:
        return existing, False
    user, _ = create_user(
        db,
        email=settings.ADMIN_EMAIL,
        full_name="Admin User",
        role=ROLE_ADMIN,
        department="IT",
        password=settings.ADMIN_PASSWORD,
    )
    return user, True
