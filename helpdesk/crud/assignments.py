"""Assignment-history bookkeeping shared by tickets and computer assets.

Both owners carry ``assigned_to``/``assigned_date`` columns and an append-only
history table whose open row (``unassigned_at IS NULL``) names the current
holder. Every change runs as one transaction so an owner never ends up with
zero or two open rows while ``assigned_to`` says otherwise.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..services.timecalc import utc_now_iso

LOGGER = logging.getLogger(__name__)


def _owner_column(history_model: Any, owner_fk: str):
    return getattr(history_model, owner_fk)


def list_history(db: Session, history_model: Any, owner_fk: str, owner_id: int) -> list[Any]:
    """History rows for one owner, newest assignment first."""

    stmt = (
        select(history_model)
        .where(_owner_column(history_model, owner_fk) == owner_id)
        .order_by(history_model.assigned_at.desc(), history_model.id.desc())
    )
    return db.execute(stmt).scalars().all()


def open_rows(db: Session, history_model: Any, owner_fk: str, owner_id: int) -> list[Any]:
    stmt = select(history_model).where(
        _owner_column(history_model, owner_fk) == owner_id,
        history_model.unassigned_at.is_(None),
    )
    return db.execute(stmt).scalars().all()


def _close_open_rows(db: Session, history_model: Any, owner_fk: str, owner_id: int, when: str) -> None:
    db.execute(
        update(history_model)
        .where(
            _owner_column(history_model, owner_fk) == owner_id,
            history_model.unassigned_at.is_(None),
        )
        .values(unassigned_at=when)
        .execution_options(synchronize_session="fetch")
    )


def reassign(
    db: Session,
    owner: Any,
    *,
    history_model: Any,
    owner_fk: str,
    user_id: int,
    actor_id: int | None,
    notes: str | None = None,
) -> Any:
    """Hand ``owner`` to ``user_id``.

    Closes any open history row, opens a new one and updates the owner's
    ``assigned_to``/``assigned_date``, committing once at the end. On failure
    the session is rolled back and the error propagates.
    """

    if owner.assigned_to == user_id and open_rows(db, history_model, owner_fk, owner.id):
        raise ValueError("Already assigned to this user")

    now = utc_now_iso()
    try:
        _close_open_rows(db, history_model, owner_fk, owner.id, now)
        row = history_model(
            user_id=user_id,
            assigned_by=actor_id,
            assigned_at=now,
            notes=(notes or "").strip() or None,
        )
        setattr(row, owner_fk, owner.id)
        db.add(row)
        owner.assigned_to = user_id
        owner.assigned_date = now
        owner.updated_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        LOGGER.exception(
            "assignment.failed",
            extra={"extra_data": {"owner": owner.__tablename__, "owner_id": owner.id, "user_id": user_id}},
        )
        raise
    db.refresh(owner)
    db.refresh(row)
    LOGGER.info(
        "assignment.changed",
        extra={"extra_data": {"owner": owner.__tablename__, "owner_id": owner.id, "user_id": user_id}},
    )
    return row


def release(db: Session, owner: Any, *, history_model: Any, owner_fk: str) -> None:
    """Close the open history row and clear the owner's assignment."""

    if owner.assigned_to is None and not open_rows(db, history_model, owner_fk, owner.id):
        raise ValueError("Not currently assigned")

    now = utc_now_iso()
    try:
        _close_open_rows(db, history_model, owner_fk, owner.id, now)
        owner.assigned_to = None
        owner.assigned_date = None
        owner.updated_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        LOGGER.exception(
            "assignment.release_failed",
            extra={"extra_data": {"owner": owner.__tablename__, "owner_id": owner.id}},
        )
        raise
    db.refresh(owner)
    LOGGER.info(
        "assignment.released",
        extra={"extra_data": {"owner": owner.__tablename__, "owner_id": owner.id}},
    )
