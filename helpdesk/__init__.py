"""Application factory and top-level wiring for the Help Desk app.

This module is the glue that brings together configuration, database setup,
middleware, API routers and error handling. Reading it top to bottom gives a
bird's-eye view of *what* pieces exist and the order they are initialised in.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import database_exception_handler, http_exception_handler, validation_exception_handler
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the SQLAlchemy models registers them with the metadata. Without
# this step ``Base.metadata.create_all`` would not know about our tables.
from .models import computer as _computer  # noqa: F401
from .models import ticket as _ticket  # noqa: F401
from .models import user as _user  # noqa: F401

from .routers import api_auth, api_categories, api_computers, api_statistics, api_tickets, api_users, auth_ui, ui

# ---------- App init ----------
app = FastAPI(title=settings.APP_NAME)

# ``mount`` glues the /static URL path to the stylesheet folder.
app.mount("/static", StaticFiles(directory=str(settings.STATIC_DIR)), name="static")

# ---------- DB init ----------
# ``create_all`` only creates missing tables; there are no migrations.
Base.metadata.create_all(bind=engine)

# ---------- Middleware ----------
# Added innermost first: the request-id wrapper ends up outermost so its
# log line covers the whole stack.
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.APP_SECRET,
    session_cookie=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=False,  # set True once the app is always accessed via HTTPS at the edge
)
if settings.ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)

# ---------- Routers ----------
# Login/sign-up pages carry no session requirement.
app.include_router(auth_ui.router)
app.include_router(api_auth.router)
app.include_router(api_tickets.router)
app.include_router(api_categories.router)
app.include_router(api_users.router)
app.include_router(api_computers.router)
app.include_router(api_statistics.router)
# HTML pages last; every route here requires a session.
app.include_router(ui.router)

# ---------- Exception handling ----------
# HTML 401s redirect to /login; everything else gets the JSON error envelope.
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)


__all__ = ["app"]
