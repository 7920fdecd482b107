"""SQLAlchemy models for the computer inventory and its sub-records."""

from __future__ import annotations

import json

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.choices import COMPUTER_STATUS_ACTIVE
from ..db.session import Base


class ComputerAsset(Base):
    """A managed device that can be assigned to one user at a time."""

    __tablename__ = "computer_assets"

    id = Column(Integer, primary_key=True, index=True)
    asset_tag = Column(Text, nullable=False, unique=True, index=True)
    serial_number = Column(Text, nullable=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    manufacturer = Column(Text, nullable=False)
    model = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=COMPUTER_STATUS_ACTIVE, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assigned_date = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    department = Column(Text, nullable=True, index=True)
    specifications_blob = Column("specifications", Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    assignee = relationship("User", lazy="joined")
    assignment_history = relationship(
        "ComputerAssignmentHistory",
        back_populates="computer",
        order_by="ComputerAssignmentHistory.assigned_at.desc()",
        cascade="all, delete-orphan",
    )
    maintenance_records = relationship(
        "ComputerMaintenance",
        back_populates="computer",
        cascade="all, delete-orphan",
    )
    software = relationship(
        "ComputerSoftware",
        back_populates="computer",
        cascade="all, delete-orphan",
    )

    @property
    def assignee_name(self) -> str | None:
        return self.assignee.full_name if self.assignee else None

    @property
    def specifications(self) -> dict[str, str]:
        raw = self.specifications_blob
        if not raw:
            return {}
        try:
            decoded = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return {}
        if not isinstance(decoded, dict):
            return {}
        return {str(k): str(v) for k, v in decoded.items() if v not in (None, "")}

    @specifications.setter
    def specifications(self, value: dict[str, object] | None) -> None:
        if not value:
            self.specifications_blob = None
            return
        if not isinstance(value, dict):
            raise ValueError("specifications must be an object")
        cleaned = {
            str(k).strip(): str(v).strip()
            for k, v in value.items()
            if str(k).strip() and v is not None and str(v).strip()
        }
        self.specifications_blob = json.dumps(cleaned) if cleaned else None


class ComputerAssignmentHistory(Base):
    __tablename__ = "computer_assignment_history"

    id = Column(Integer, primary_key=True, index=True)
    computer_id = Column(Integer, ForeignKey("computer_assets.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at = Column(Text, nullable=False)
    unassigned_at = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    computer = relationship("ComputerAsset", back_populates="assignment_history")
    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    assigner = relationship("User", foreign_keys=[assigned_by], lazy="joined")

    @property
    def user_name(self) -> str | None:
        return self.user.full_name if self.user else None

    @property
    def assigned_by_name(self) -> str | None:
        return self.assigner.full_name if self.assigner else None


class ComputerMaintenance(Base):
    __tablename__ = "computer_maintenance"

    id = Column(Integer, primary_key=True, index=True)
    computer_id = Column(Integer, ForeignKey("computer_assets.id"), nullable=False, index=True)
    maintenance_type = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    performed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    performed_at = Column(Text, nullable=False)
    cost = Column(Float, nullable=True)
    next_maintenance_date = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    computer = relationship("ComputerAsset", back_populates="maintenance_records")
    performer = relationship("User", lazy="joined")

    @property
    def performed_by_name(self) -> str | None:
        return self.performer.full_name if self.performer else None


class ComputerSoftware(Base):
    __tablename__ = "computer_software"

    id = Column(Integer, primary_key=True, index=True)
    computer_id = Column(Integer, ForeignKey("computer_assets.id"), nullable=False, index=True)
    software_name = Column(Text, nullable=False)
    version = Column(Text, nullable=True)
    license_key = Column(Text, nullable=True)
    installation_date = Column(Text, nullable=True)
    expiry_date = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active")
    notes = Column(Text, nullable=True)

    computer = relationship("ComputerAsset", back_populates="software")


__all__ = [
    "ComputerAsset",
    "ComputerAssignmentHistory",
    "ComputerMaintenance",
    "ComputerSoftware",
]
