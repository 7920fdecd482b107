# helpdesk/crud/computers.py
from __future__ import annotations

import logging
import math

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.choices import (
    COMPUTER_STATUS_ACTIVE,
    COMPUTER_STATUS_CHOICES,
    COMPUTER_STATUS_MAINTENANCE,
    COMPUTER_TYPE_CHOICES,
    SOFTWARE_STATUS_CHOICES,
    STAFF_ROLES,
    normalize_choice,
)
from ..core.errors import AlreadyExistsError
from ..models.computer import (
    ComputerAsset,
    ComputerAssignmentHistory,
    ComputerMaintenance,
    ComputerSoftware,
)
from ..models.user import User
from ..services.timecalc import utc_now_iso
from . import assignments

LOGGER = logging.getLogger(__name__)

REQUIRED_COMPUTER_FIELDS = ("asset_tag", "name", "type", "manufacturer", "model")
OPTIONAL_TEXT_FIELDS = ("serial_number", "location", "department", "notes")


def _text(value: object) -> str:
    return str(value).strip() if value is not None else ""


def _optional_text(value: object) -> str | None:
    return _text(value) or None


def get_computer_by_tag(db: Session, asset_tag: str | None) -> ComputerAsset | None:
    tag = _text(asset_tag)
    if not tag:
        return None
    stmt = select(ComputerAsset).where(func.lower(ComputerAsset.asset_tag) == tag.lower())
    return db.execute(stmt).scalars().first()


def create_computer(db: Session, payload: dict, *, commit: bool = True) -> ComputerAsset:
    """
    Register a new asset from a payload dict.

    Raises ``ValueError`` for missing or invalid fields and
    ``AlreadyExistsError`` when the asset tag is taken.
    """
    missing = [name for name in REQUIRED_COMPUTER_FIELDS if not _text(payload.get(name))]
    if missing:
        raise ValueError("Missing required fields")

    computer_type = normalize_choice(payload["type"], COMPUTER_TYPE_CHOICES, "type")
    status = normalize_choice(payload.get("status") or COMPUTER_STATUS_ACTIVE, COMPUTER_STATUS_CHOICES, "status")

    asset_tag = _text(payload["asset_tag"])
    if get_computer_by_tag(db, asset_tag):
        raise AlreadyExistsError(f"Computer with asset tag {asset_tag} already exists")

    now = utc_now_iso()
    computer = ComputerAsset(
        asset_tag=asset_tag,
        name=_text(payload["name"]),
        type=computer_type,
        manufacturer=_text(payload["manufacturer"]),
        model=_text(payload["model"]),
        status=status,
        created_at=now,
        updated_at=now,
    )
    for key in OPTIONAL_TEXT_FIELDS:
        setattr(computer, key, _optional_text(payload.get(key)))
    computer.specifications = payload.get("specifications") or None

    db.add(computer)
    if commit:
        db.commit()
        db.refresh(computer)
    else:
        db.flush()
    LOGGER.info("computer.created", extra={"extra_data": {"computer_id": computer.id, "asset_tag": asset_tag}})
    return computer


def list_computers(
    db: Session,
    *,
    status: str | None = None,
    type: str | None = None,
    department: str | None = None,
    search: str | None = None,
    limit: int = 500,
    offset: int = 0,
) -> list[ComputerAsset]:
    """
    Inventory listing ordered by asset tag. Filters combine as an intersection.
    """
    stmt = select(ComputerAsset)
    if status:
        stmt = stmt.where(ComputerAsset.status == status)
    if type:
        stmt = stmt.where(ComputerAsset.type == type)
    if department:
        stmt = stmt.where(ComputerAsset.department == department)
    term = (search or "").strip()
    if term:
        stmt = stmt.where(
            or_(
                ComputerAsset.asset_tag.icontains(term, autoescape=True),
                ComputerAsset.name.icontains(term, autoescape=True),
                ComputerAsset.manufacturer.icontains(term, autoescape=True),
                ComputerAsset.model.icontains(term, autoescape=True),
            )
        )
    stmt = stmt.order_by(ComputerAsset.asset_tag).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def list_departments(db: Session) -> list[str]:
    stmt = (
        select(ComputerAsset.department)
        .where(ComputerAsset.department.is_not(None))
        .distinct()
        .order_by(ComputerAsset.department)
    )
    return [row for row in db.execute(stmt).scalars().all() if row]


def get_computer(db: Session, computer_id: int) -> ComputerAsset | None:
    return db.get(ComputerAsset, computer_id)


def update_computer(db: Session, computer: ComputerAsset, payload: dict) -> ComputerAsset:
    """
    Apply edits to descriptive fields. Status and assignment have their own
    operations; unknown keys are ignored.
    """
    for key, value in payload.items():
        if value is None:
            continue
        if key in ("name", "manufacturer", "model"):
            value = _text(value)
            if not value:
                raise ValueError(f"{key} is required")
            setattr(computer, key, value)
        elif key == "type":
            computer.type = normalize_choice(value, COMPUTER_TYPE_CHOICES, "type")
        elif key in OPTIONAL_TEXT_FIELDS:
            setattr(computer, key, _optional_text(value))
        elif key == "specifications":
            computer.specifications = value
    computer.updated_at = utc_now_iso()
    db.commit()
    db.refresh(computer)
    return computer


def delete_computer(db: Session, computer: ComputerAsset) -> None:
    db.delete(computer)
    db.commit()
    LOGGER.info("computer.deleted", extra={"extra_data": {"computer_id": computer.id}})


def change_computer_status(db: Session, computer: ComputerAsset, new_status: str, actor: User) -> ComputerAsset:
    """
    Set the asset status. Moving into maintenance also files a maintenance
    record in the same commit.
    """
    if actor.role not in STAFF_ROLES:
        raise PermissionError("Only technicians and admins can change computer status")
    status = normalize_choice(new_status, COMPUTER_STATUS_CHOICES, "status")

    now = utc_now_iso()
    previous = computer.status
    try:
        computer.status = status
        computer.updated_at = now
        if status == COMPUTER_STATUS_MAINTENANCE and previous != status:
            db.add(
                ComputerMaintenance(
                    computer_id=computer.id,
                    maintenance_type="Status Change",
                    description="Status changed to maintenance",
                    performed_by=actor.id,
                    performed_at=now,
                    notes="Automatic entry for status change",
                )
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(computer)
    LOGGER.info(
        "computer.status_changed",
        extra={"extra_data": {"computer_id": computer.id, "from": previous, "to": status}},
    )
    return computer


def assign_computer(
    db: Session,
    computer: ComputerAsset,
    user_id: int | None,
    actor: User,
    notes: str | None = None,
) -> ComputerAssignmentHistory:
    if user_id is None or not db.get(User, user_id):
        raise ValueError("User not found")
    return assignments.reassign(
        db,
        computer,
        history_model=ComputerAssignmentHistory,
        owner_fk="computer_id",
        user_id=user_id,
        actor_id=actor.id,
        notes=notes,
    )


def unassign_computer(db: Session, computer: ComputerAsset) -> None:
    assignments.release(db, computer, history_model=ComputerAssignmentHistory, owner_fk="computer_id")


def list_assignment_history(db: Session, computer_id: int) -> list[ComputerAssignmentHistory]:
    return assignments.list_history(db, ComputerAssignmentHistory, "computer_id", computer_id)


# --- maintenance ------------------------------------------------------------

def list_maintenance(db: Session, computer_id: int) -> list[ComputerMaintenance]:
    stmt = (
        select(ComputerMaintenance)
        .where(ComputerMaintenance.computer_id == computer_id)
        .order_by(ComputerMaintenance.performed_at.desc(), ComputerMaintenance.id.desc())
    )
    return db.execute(stmt).scalars().all()


def add_maintenance(db: Session, computer: ComputerAsset, payload: dict, actor: User) -> ComputerMaintenance:
    maintenance_type = _text(payload.get("maintenance_type"))
    if not maintenance_type:
        raise ValueError("Maintenance type is required")
    cost = payload.get("cost")
    if cost in (None, ""):
        cost = None
    else:
        try:
            cost = float(cost)
        except (TypeError, ValueError) as exc:
            raise ValueError("Cost must be a number") from exc
        if not math.isfinite(cost):
            raise ValueError("Cost must be a number")
        if cost < 0:
            raise ValueError("Cost cannot be negative")

    record = ComputerMaintenance(
        computer_id=computer.id,
        maintenance_type=maintenance_type,
        description=_optional_text(payload.get("description")),
        performed_by=actor.id,
        performed_at=_text(payload.get("performed_at")) or utc_now_iso(),
        cost=cost,
        next_maintenance_date=_optional_text(payload.get("next_maintenance_date")),
        notes=_optional_text(payload.get("notes")),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_maintenance(db: Session, computer_id: int, record_id: int) -> ComputerMaintenance | None:
    record = db.get(ComputerMaintenance, record_id)
    if not record or record.computer_id != computer_id:
        return None
    return record


def delete_maintenance(db: Session, record: ComputerMaintenance) -> None:
    db.delete(record)
    db.commit()


# --- software ---------------------------------------------------------------

def list_software(db: Session, computer_id: int) -> list[ComputerSoftware]:
    stmt = (
        select(ComputerSoftware)
        .where(ComputerSoftware.computer_id == computer_id)
        .order_by(ComputerSoftware.software_name, ComputerSoftware.id)
    )
    return db.execute(stmt).scalars().all()


def add_software(db: Session, computer: ComputerAsset, payload: dict) -> ComputerSoftware:
    name = _text(payload.get("software_name"))
    if not name:
        raise ValueError("Software name is required")
    record = ComputerSoftware(
        computer_id=computer.id,
        software_name=name,
        version=_optional_text(payload.get("version")),
        license_key=_optional_text(payload.get("license_key")),
        installation_date=_optional_text(payload.get("installation_date")),
        expiry_date=_optional_text(payload.get("expiry_date")),
        status=normalize_choice(payload.get("status") or "active", SOFTWARE_STATUS_CHOICES, "status"),
        notes=_optional_text(payload.get("notes")),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_software(db: Session, computer_id: int, record_id: int) -> ComputerSoftware | None:
    record = db.get(ComputerSoftware, record_id)
    if not record or record.computer_id != computer_id:
        return None
    return record


def delete_software(db: Session, record: ComputerSoftware) -> None:
    db.delete(record)
    db.commit()


def count_computers(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(ComputerAsset)) or 0
