"""Beginner-friendly overview for this module.

WHAT: Ticket, category, comment and ticket-assignment tables for the Help Desk app.
WHEN: Imported at start-up so ``Base.metadata`` knows about every table.
WHY: Tickets are the unit of work the help desk tracks from intake to closure.
HOW: Plain declarative columns; timestamps are ISO-8601 UTC strings.

File: helpdesk/models/ticket.py
"""


from __future__ import annotations
from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from ..core.choices import TICKET_STATUS_OPEN
from ..db.session import Base


class TicketCategory(Base):
    __tablename__ = "ticket_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    ticket_type = Column(Text, nullable=False, default="incident")
    created_at = Column(Text, nullable=False)


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    priority = Column(Text, nullable=False, index=True)
    status = Column(Text, nullable=False, default=TICKET_STATUS_OPEN, index=True)
    category_id = Column(Integer, ForeignKey("ticket_categories.id"), nullable=True, index=True)
    requestor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assigned_date = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, index=True)
    updated_at = Column(Text, nullable=False)
    # Set the first time the ticket reaches resolved/closed; cleared on re-open.
    resolved_at = Column(Text, nullable=True)

    category = relationship("TicketCategory", lazy="joined")
    requestor = relationship("User", foreign_keys=[requestor_id], lazy="joined")
    assignee = relationship("User", foreign_keys=[assigned_to], lazy="joined")
    comments = relationship(
        "TicketComment",
        back_populates="ticket",
        order_by="TicketComment.created_at",
        cascade="all, delete-orphan",
    )
    assignment_history = relationship(
        "TicketAssignmentHistory",
        back_populates="ticket",
        order_by="TicketAssignmentHistory.assigned_at.desc()",
        cascade="all, delete-orphan",
    )

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def requestor_name(self) -> str | None:
        return self.requestor.full_name if self.requestor else None

    @property
    def assignee_name(self) -> str | None:
        return self.assignee.full_name if self.assignee else None


class TicketComment(Base):
    __tablename__ = "ticket_comments"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    content = Column(Text, nullable=False)
    # Status-change notes written by the system rather than typed by a person.
    is_system = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)

    ticket = relationship("Ticket", back_populates="comments")
    user = relationship("User", lazy="joined")

    @property
    def author_name(self) -> str | None:
        return self.user.full_name if self.user else None


class TicketAssignmentHistory(Base):
    __tablename__ = "ticket_assignment_history"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at = Column(Text, nullable=False)
    unassigned_at = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    ticket = relationship("Ticket", back_populates="assignment_history")
    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    assigner = relationship("User", foreign_keys=[assigned_by], lazy="joined")

    @property
    def user_name(self) -> str | None:
        return self.user.full_name if self.user else None

    @property
    def assigned_by_name(self) -> str | None:
        return self.assigner.full_name if self.assigner else None


__all__ = ["Ticket", "TicketAssignmentHistory", "TicketCategory", "TicketComment"]
