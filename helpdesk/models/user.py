"""SQLAlchemy model for help-desk accounts."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..core.choices import ROLE_USER, STAFF_ROLES
from ..db.session import Base


class User(Base):
    """A person who can raise tickets, work them, or hold computer assets."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(Text, nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=True)
    role = Column(Text, nullable=False, default=ROLE_USER)
    full_name = Column(Text, nullable=False)
    department = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


__all__ = ["User"]
