"""Shared pytest fixtures: an in-memory database and small row factories."""


import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from helpdesk.crud.categories import create_category
from helpdesk.crud.users import create_user
from helpdesk.db.session import Base

# Ensure models are registered so metadata tables are created
from helpdesk.models import computer as computer_model  # noqa: F401
from helpdesk.models import ticket as ticket_model  # noqa: F401
from helpdesk.models import user as user_model  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make(role="user", full_name=None, email=None, password="secret123", department=None):
        counter["n"] += 1
        user, _ = create_user(
            db_session,
            email=email or f"{role}{counter['n']}@example.com",
            full_name=full_name or f"{role.title()} {counter['n']}",
            role=role,
            department=department,
            password=password,
        )
        return user

    return _make


@pytest.fixture()
def category(db_session):
    return create_category(db_session, {"name": "Hardware", "ticket_type": "incident"})
