from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..core.choices import STAFF_ROLES
from ..core.errors import domain_http_error
from ..crud import users as users_crud
from ..db.session import get_db
from ..deps.auth import require_admin, require_staff
from ..models.user import User
from ..schemas.imports import ImportResult
from ..schemas.user import UserCreate, UserCreated, UserOut, UserUpdate
from ..services import imports as imports_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[UserOut], dependencies=[Depends(require_admin)])
def api_list(db: Session = Depends(get_db)):
    return users_crud.list_users(db)


@router.get("/options", response_model=list[UserOut], dependencies=[Depends(require_staff)])
def api_options(staff_only: bool = False, db: Session = Depends(get_db)):
    """Name-ordered accounts for requestor and assignee pickers."""

    roles = tuple(sorted(STAFF_ROLES)) if staff_only else None
    return users_crud.list_user_options(db, roles=roles)


@router.post("", response_model=UserCreated, status_code=201, dependencies=[Depends(require_admin)])
def api_create(payload: UserCreate, db: Session = Depends(get_db)):
    try:
        user, temporary = users_crud.create_user(db, **payload.model_dump())
    except ValueError as exc:
        raise domain_http_error(exc) from exc
    result = UserCreated.model_validate(user, from_attributes=True)
    result.temporary_password = temporary
    return result


@router.get("/import/template", dependencies=[Depends(require_admin)])
def api_import_template():
    return Response(
        content=imports_service.user_import_template(),
        media_type=imports_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="user_import_template.xlsx"'},
    )


@router.post("/import", response_model=ImportResult, dependencies=[Depends(require_admin)])
def api_import(file: UploadFile = File(...), db: Session = Depends(get_db)):
    # Must stay sync: imports block on bcrypt and the database.
    content = file.file.read()
    return imports_service.import_users(db, content)


@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(require_admin)])
def api_get(user_id: int, db: Session = Depends(get_db)):
    user = users_crud.get_user(db, user_id)
    if not user:
        raise HTTPException(404, "Not found")
    return user


@router.patch("/{user_id}", response_model=UserOut, dependencies=[Depends(require_admin)])
def api_update(user_id: int, payload: UserUpdate, db: Session = Depends(get_db)):
    user = users_crud.get_user(db, user_id)
    if not user:
        raise HTTPException(404, "Not found")
    try:
        return users_crud.update_user(db, user, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.delete("/{user_id}")
def api_delete(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    user = users_crud.get_user(db, user_id)
    if not user:
        raise HTTPException(404, "Not found")
    if user.id == admin.id:
        raise HTTPException(422, "You cannot delete your own account")
    try:
        users_crud.delete_user(db, user)
    except ValueError as exc:
        raise domain_http_error(exc) from exc
    return {"status": "deleted"}
