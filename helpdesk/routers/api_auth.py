from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.errors import domain_http_error
from ..core.security import issue_token_pair, refresh_access_token
from ..crud import users as users_crud
from ..db.session import get_db
from ..deps.auth import require_api_user
from ..models.user import User
from ..schemas.auth import PasswordChange, RefreshRequest, SignUpRequest, TokenRequest, TokenResponse
from ..schemas.user import UserOut

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse, summary="Exchange email and password for JWTs")
def exchange_token(payload: TokenRequest, db: Session = Depends(get_db)):
    user = users_crud.authenticate(db, payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    pair = issue_token_pair(user.id, role=user.role)
    return TokenResponse(**pair.model_dump())


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def refresh_token(payload: RefreshRequest):
    try:
        pair = refresh_access_token(payload.refresh_token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return TokenResponse(**pair.model_dump())


@router.post("/signup", response_model=UserOut, status_code=201, summary="Self-service registration")
def sign_up(payload: SignUpRequest, db: Session = Depends(get_db)):
    try:
        return users_crud.sign_up(
            db,
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            department=payload.department,
        )
    except ValueError as exc:
        raise domain_http_error(exc) from exc


@router.get("/me", response_model=UserOut)
def current_user(user: User = Depends(require_api_user)):
    return user


@router.post("/password", status_code=204)
def change_password(
    payload: PasswordChange,
    user: User = Depends(require_api_user),
    db: Session = Depends(get_db),
):
    try:
        users_crud.change_password(
            db,
            user,
            current_password=payload.current_password,
            new_password=payload.new_password,
            confirm_password=payload.confirm_password,
        )
    except ValueError as exc:
        raise domain_http_error(exc) from exc
