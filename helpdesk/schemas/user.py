from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..core.choices import ROLE_CHOICES, choice_pattern

ROLE_PATTERN = choice_pattern(ROLE_CHOICES)


class UserCreate(BaseModel):
    email: str
    full_name: str = Field(..., min_length=1)
    role: str = Field(default="user", pattern=ROLE_PATTERN)
    department: Optional[str] = None
    password: Optional[str] = None


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = Field(default=None, pattern=ROLE_PATTERN)
    department: Optional[str] = None


class UserOut(BaseModel):
    id: int
    email: str
    role: str
    full_name: str
    department: Optional[str] = None
    created_at: str

    class Config:
        from_attributes = True


class UserCreated(UserOut):
    # Only populated when the server generated the password.
    temporary_password: Optional[str] = None
