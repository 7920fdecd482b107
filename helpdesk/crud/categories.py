from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.choices import TICKET_TYPE_CHOICES, normalize_choice
from ..models.ticket import Ticket, TicketCategory
from ..services.timecalc import utc_now_iso


def list_categories(db: Session, active_only: bool = False) -> list[TicketCategory]:
    stmt = select(TicketCategory)
    if active_only:
        stmt = stmt.where(TicketCategory.is_active.is_(True))
    stmt = stmt.order_by(TicketCategory.name)
    return db.execute(stmt).scalars().all()


def get_category(db: Session, category_id: int) -> TicketCategory | None:
    return db.get(TicketCategory, category_id)


def create_category(db: Session, payload: dict) -> TicketCategory:
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("Category name is required")
    category = TicketCategory(
        name=name,
        description=(payload.get("description") or "").strip() or None,
        is_active=bool(payload.get("is_active", True)),
        ticket_type=normalize_choice(payload.get("ticket_type") or "incident", TICKET_TYPE_CHOICES, "ticket type"),
        created_at=utc_now_iso(),
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category: TicketCategory, payload: dict) -> TicketCategory:
    for key, value in payload.items():
        if value is None:
            continue
        if key == "name":
            value = value.strip()
            if not value:
                raise ValueError("Category name is required")
        elif key == "description":
            value = value.strip() or None
        elif key == "ticket_type":
            value = normalize_choice(value, TICKET_TYPE_CHOICES, "ticket type")
        elif key == "is_active":
            value = bool(value)
        else:
            continue
        setattr(category, key, value)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category: TicketCategory) -> None:
    """Delete a category; tickets filed under it stay, uncategorised."""

    db.execute(update(Ticket).where(Ticket.category_id == category.id).values(category_id=None))
    db.delete(category)
    db.commit()
