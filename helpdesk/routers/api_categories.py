from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.errors import domain_http_error
from ..crud import categories as categories_crud
from ..db.session import get_db
from ..deps.auth import require_admin, require_api_user
from ..schemas.ticket import CategoryCreate, CategoryOut, CategoryUpdate

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut], dependencies=[Depends(require_api_user)])
def api_list(active_only: bool = Query(default=False), db: Session = Depends(get_db)):
    return categories_crud.list_categories(db, active_only=active_only)


@router.post("", response_model=CategoryOut, status_code=201, dependencies=[Depends(require_admin)])
def api_create(payload: CategoryCreate, db: Session = Depends(get_db)):
    try:
        return categories_crud.create_category(db, payload.model_dump())
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.patch("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_admin)])
def api_update(category_id: int, payload: CategoryUpdate, db: Session = Depends(get_db)):
    category = categories_crud.get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Not found")
    try:
        return categories_crud.update_category(db, category, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.delete("/{category_id}", dependencies=[Depends(require_admin)])
def api_delete(category_id: int, db: Session = Depends(get_db)):
    category = categories_crud.get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Not found")
    categories_crud.delete_category(db, category)
    return {"status": "deleted"}
