from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..core.errors import domain_http_error
from ..crud import computers as computers_crud
from ..db.session import get_db
from ..deps.auth import require_admin, require_api_user, require_staff
from ..models.computer import ComputerAsset
from ..models.user import User
from ..schemas.computer import (
    ComputerCreate,
    ComputerDetailOut,
    ComputerOut,
    ComputerStatusChange,
    ComputerUpdate,
    MaintenanceCreate,
    MaintenanceOut,
    SoftwareCreate,
    SoftwareOut,
)
from ..schemas.imports import ImportResult
from ..schemas.ticket import AssignmentOut, AssignmentRequest
from ..services import imports as imports_service

router = APIRouter(prefix="/api/v1/computers", tags=["computers"])


def _computer_or_404(db: Session, computer_id: int) -> ComputerAsset:
    computer = computers_crud.get_computer(db, computer_id)
    if not computer:
        raise HTTPException(404, "Not found")
    return computer


def _serialize_detail(db: Session, computer: ComputerAsset) -> ComputerDetailOut:
    payload = ComputerDetailOut.model_validate(ComputerOut.model_validate(computer).model_dump())
    payload.assignment_history = [
        AssignmentOut.model_validate(row) for row in computers_crud.list_assignment_history(db, computer.id)
    ]
    payload.maintenance = [MaintenanceOut.model_validate(row) for row in computers_crud.list_maintenance(db, computer.id)]
    payload.software = [SoftwareOut.model_validate(row) for row in computers_crud.list_software(db, computer.id)]
    return payload


@router.get("", response_model=list[ComputerOut], dependencies=[Depends(require_api_user)])
def api_list(
    status: str | None = Query(default=None),
    type: str | None = Query(default=None),
    department: str | None = Query(default=None),
    search: str | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=2000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return computers_crud.list_computers(
        db,
        status=status,
        type=type,
        department=department,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=ComputerOut, status_code=201, dependencies=[Depends(require_staff)])
def api_create(payload: ComputerCreate, db: Session = Depends(get_db)):
    try:
        return computers_crud.create_computer(db, payload.model_dump())
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.get("/import/template", dependencies=[Depends(require_staff)])
def api_import_template():
    return Response(
        content=imports_service.computer_import_template(),
        media_type=imports_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="computer_import_template.xlsx"'},
    )


@router.post("/import", response_model=ImportResult, dependencies=[Depends(require_staff)])
def api_import(file: UploadFile = File(...), db: Session = Depends(get_db)):
    # Must stay sync: imports block on bcrypt and the database.
    content = file.file.read()
    return imports_service.import_computers(db, content)


@router.get("/{computer_id}", response_model=ComputerDetailOut, dependencies=[Depends(require_api_user)])
def api_get(computer_id: int, db: Session = Depends(get_db)):
    return _serialize_detail(db, _computer_or_404(db, computer_id))


@router.patch("/{computer_id}", response_model=ComputerOut, dependencies=[Depends(require_staff)])
def api_update(computer_id: int, payload: ComputerUpdate, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    try:
        return computers_crud.update_computer(db, computer, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.delete("/{computer_id}", dependencies=[Depends(require_admin)])
def api_delete(computer_id: int, db: Session = Depends(get_db)):
    computers_crud.delete_computer(db, _computer_or_404(db, computer_id))
    return {"status": "deleted"}


@router.post("/{computer_id}/status", response_model=ComputerOut)
def api_change_status(
    computer_id: int,
    payload: ComputerStatusChange,
    user: User = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    computer = _computer_or_404(db, computer_id)
    try:
        return computers_crud.change_computer_status(db, computer, payload.status, user)
    except (ValueError, PermissionError) as exc:
        raise domain_http_error(exc) from exc


@router.get("/{computer_id}/assignments", response_model=list[AssignmentOut], dependencies=[Depends(require_api_user)])
def api_assignment_history(computer_id: int, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    return computers_crud.list_assignment_history(db, computer.id)


@router.post("/{computer_id}/assign", response_model=AssignmentOut, status_code=201)
def api_assign(
    computer_id: int,
    payload: AssignmentRequest,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    computer = _computer_or_404(db, computer_id)
    try:
        return computers_crud.assign_computer(db, computer, payload.user_id, user, payload.notes)
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.post("/{computer_id}/unassign", response_model=ComputerOut, dependencies=[Depends(require_staff)])
def api_unassign(computer_id: int, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    try:
        computers_crud.unassign_computer(db, computer)
    except ValueError as exc:
        raise domain_http_error(exc) from exc
    return computer


@router.get("/{computer_id}/maintenance", response_model=list[MaintenanceOut], dependencies=[Depends(require_api_user)])
def api_list_maintenance(computer_id: int, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    return computers_crud.list_maintenance(db, computer.id)


@router.post("/{computer_id}/maintenance", response_model=MaintenanceOut, status_code=201)
def api_add_maintenance(
    computer_id: int,
    payload: MaintenanceCreate,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    computer = _computer_or_404(db, computer_id)
    try:
        return computers_crud.add_maintenance(db, computer, payload.model_dump(), user)
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.delete("/{computer_id}/maintenance/{record_id}", dependencies=[Depends(require_staff)])
def api_delete_maintenance(computer_id: int, record_id: int, db: Session = Depends(get_db)):
    record = computers_crud.get_maintenance(db, computer_id, record_id)
    if not record:
        raise HTTPException(404, "Not found")
    computers_crud.delete_maintenance(db, record)
    return {"status": "deleted"}


@router.get("/{computer_id}/software", response_model=list[SoftwareOut], dependencies=[Depends(require_api_user)])
def api_list_software(computer_id: int, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    return computers_crud.list_software(db, computer.id)


@router.post(
    "/{computer_id}/software",
    response_model=SoftwareOut,
    status_code=201,
    dependencies=[Depends(require_staff)],
)
def api_add_software(computer_id: int, payload: SoftwareCreate, db: Session = Depends(get_db)):
    computer = _computer_or_404(db, computer_id)
    try:
        return computers_crud.add_software(db, computer, payload.model_dump())
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.delete("/{computer_id}/software/{record_id}", dependencies=[Depends(require_staff)])
def api_delete_software(computer_id: int, record_id: int, db: Session = Depends(get_db)):
    record = computers_crud.get_software(db, computer_id, record_id)
    if not record:
        raise HTTPException(404, "Not found")
    computers_crud.delete_software(db, record)
    return {"status": "deleted"}
