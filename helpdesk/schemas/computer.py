from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..core.choices import (
    COMPUTER_STATUS_CHOICES,
    COMPUTER_TYPE_CHOICES,
    SOFTWARE_STATUS_CHOICES,
    choice_pattern,
)
from .ticket import AssignmentOut

TYPE_PATTERN = choice_pattern(COMPUTER_TYPE_CHOICES)
STATUS_PATTERN = choice_pattern(COMPUTER_STATUS_CHOICES)


class ComputerCreate(BaseModel):
    asset_tag: str = Field(..., min_length=1)
    serial_number: Optional[str] = None
    name: str = Field(..., min_length=1)
    type: str = Field(..., pattern=TYPE_PATTERN)
    manufacturer: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    status: str = Field(default="active", pattern=STATUS_PATTERN)
    location: Optional[str] = None
    department: Optional[str] = None
    specifications: dict[str, str] = Field(default_factory=dict)
    notes: Optional[str] = None


class ComputerUpdate(BaseModel):
    serial_number: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = Field(default=None, pattern=TYPE_PATTERN)
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    specifications: Optional[dict[str, str]] = None
    notes: Optional[str] = None


class ComputerStatusChange(BaseModel):
    status: str = Field(..., pattern=STATUS_PATTERN)


class ComputerOut(BaseModel):
    id: int
    asset_tag: str
    serial_number: Optional[str]
    name: str
    type: str
    manufacturer: str
    model: str
    status: str
    assigned_to: Optional[int]
    assignee_name: Optional[str] = None
    assigned_date: Optional[str]
    location: Optional[str]
    department: Optional[str]
    specifications: dict[str, str] = Field(default_factory=dict)
    notes: Optional[str]
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class MaintenanceCreate(BaseModel):
    maintenance_type: str = Field(..., min_length=1)
    description: Optional[str] = None
    performed_at: Optional[str] = None
    cost: Optional[float] = Field(default=None, ge=0)
    next_maintenance_date: Optional[str] = None
    notes: Optional[str] = None


class MaintenanceOut(BaseModel):
    id: int
    computer_id: int
    maintenance_type: str
    description: Optional[str]
    performed_by: Optional[int]
    performed_by_name: Optional[str] = None
    performed_at: str
    cost: Optional[float]
    next_maintenance_date: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True


class SoftwareCreate(BaseModel):
    software_name: str = Field(..., min_length=1)
    version: Optional[str] = None
    license_key: Optional[str] = None
    installation_date: Optional[str] = None
    expiry_date: Optional[str] = None
    status: str = Field(default="active", pattern=choice_pattern(SOFTWARE_STATUS_CHOICES))
    notes: Optional[str] = None


class SoftwareOut(BaseModel):
    id: int
    computer_id: int
    software_name: str
    version: Optional[str]
    license_key: Optional[str]
    installation_date: Optional[str]
    expiry_date: Optional[str]
    status: str
    notes: Optional[str]

    class Config:
        from_attributes = True


class ComputerDetailOut(ComputerOut):
    assignment_history: list[AssignmentOut] = Field(default_factory=list)
    maintenance: list[MaintenanceOut] = Field(default_factory=list)
    software: list[SoftwareOut] = Field(default_factory=list)
