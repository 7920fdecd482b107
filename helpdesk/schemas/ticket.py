"""Beginner-friendly overview for this module.

WHAT: Request/response shapes for tickets, comments, categories and assignments.
WHEN: Used by the JSON API routers to validate input and serialise ORM rows.
WHY: Keeps the enumerated fields (type, priority, status) checked at the edge.
HOW: Pydantic models; ``from_attributes`` lets us return ORM objects directly.

File: helpdesk/schemas/ticket.py
"""


from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional

from ..core.choices import (
    PRIORITY_CHOICES,
    TICKET_STATUS_CHOICES,
    TICKET_TYPE_CHOICES,
    choice_pattern,
)

TYPE_PATTERN = choice_pattern(TICKET_TYPE_CHOICES)
PRIORITY_PATTERN = choice_pattern(PRIORITY_CHOICES)
STATUS_PATTERN = choice_pattern(TICKET_STATUS_CHOICES)


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_active: bool = True
    ticket_type: str = Field(default="incident", pattern=TYPE_PATTERN)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    ticket_type: Optional[str] = Field(default=None, pattern=TYPE_PATTERN)


class CategoryOut(CategoryBase):
    id: int
    created_at: str

    class Config:
        from_attributes = True


class TicketCreate(BaseModel):
    title: str
    description: str
    type: str = Field(..., pattern=TYPE_PATTERN)
    priority: str = Field(..., pattern=PRIORITY_PATTERN)
    category_id: int
    requestor_id: Optional[int] = None


class StatusChange(BaseModel):
    status: str = Field(..., pattern=STATUS_PATTERN)


class AssignmentRequest(BaseModel):
    user_id: int
    notes: Optional[str] = None


class CommentCreate(BaseModel):
    content: str


class CommentOut(BaseModel):
    id: int
    ticket_id: int
    user_id: Optional[int]
    author_name: Optional[str] = None
    content: str
    is_system: bool
    created_at: str

    class Config:
        from_attributes = True


class AssignmentOut(BaseModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    assigned_by: Optional[int]
    assigned_by_name: Optional[str] = None
    assigned_at: str
    unassigned_at: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True


class TicketOut(BaseModel):
    id: int
    title: str
    description: str
    type: str
    priority: str
    status: str
    category_id: Optional[int]
    category_name: Optional[str] = None
    requestor_id: int
    requestor_name: Optional[str] = None
    created_by: Optional[int]
    assigned_to: Optional[int]
    assignee_name: Optional[str] = None
    assigned_date: Optional[str]
    created_at: str
    updated_at: str
    resolved_at: Optional[str]

    class Config:
        from_attributes = True


class TicketDetailOut(TicketOut):
    comments: list[CommentOut] = Field(default_factory=list)
    assignment_history: list[AssignmentOut] = Field(default_factory=list)


class DashboardOut(BaseModel):
    total_tickets: int
    active_tickets: int
    critical_issues: int
    avg_response_time: str
    recent_tickets: list[TicketOut] = Field(default_factory=list)
