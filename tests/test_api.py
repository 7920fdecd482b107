"""HTTP-level checks for the JSON API and the session-backed pages."""


import inspect

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from helpdesk import app
from helpdesk.crud.categories import create_category
from helpdesk.crud.users import create_user
from helpdesk.db.session import Base, get_db
from helpdesk.deps import auth as api_deps
from helpdesk.deps import ui_auth as ui_deps
from helpdesk.services.imports import XLSX_MEDIA_TYPE

PASSWORD = "secret123"


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def seed(session_factory):
    db = session_factory()
    try:
        users = {}
        for role in ("user", "technician", "admin"):
            user, _ = create_user(
                db, email=f"{role}@example.com", full_name=f"{role.title()} Person", role=role, password=PASSWORD
            )
            users[role] = user.id
        users["other"] = create_user(
            db, email="other@example.com", full_name="Other Person", password=PASSWORD
        )[0].id
        category = create_category(db, {"name": "Network"})
        return {"users": users, "category_id": category.id}
    finally:
        db.close()


def _auth(client, email):
    resp = client.post("/api/v1/auth/token", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def _new_ticket(client, headers, category_id, **overrides):
    body = {
        "title": "Wifi drops",
        "description": "Every afternoon",
        "type": "incident",
        "priority": "high",
        "category_id": category_id,
    }
    body.update(overrides)
    resp = client.post("/api/v1/tickets", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_signup_then_token_then_me(client):
    resp = client.post(
        "/api/v1/auth/signup",
        json={"email": "Fresh@Example.com", "password": PASSWORD, "full_name": "Fresh User"},
    )
    assert resp.status_code == 201
    assert resp.json()["role"] == "user"

    headers = _auth(client, "fresh@example.com")
    me = client.get("/api/v1/auth/me", headers=headers)
    assert me.json()["email"] == "fresh@example.com"

    duplicate = client.post(
        "/api/v1/auth/signup",
        json={"email": "fresh@example.com", "password": PASSWORD, "full_name": "Again"},
    )
    assert duplicate.status_code == 409


def test_bad_credentials_and_missing_token(client, seed):
    resp = client.post("/api/v1/auth/token", json={"email": "user@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid email or password"

    anonymous = client.get("/api/v1/tickets")
    assert anonymous.status_code == 401
    assert anonymous.headers["WWW-Authenticate"] == "Bearer"


def test_requestors_only_see_their_own_tickets(client, seed):
    user = _auth(client, "user@example.com")
    other = _auth(client, "other@example.com")
    tech = _auth(client, "technician@example.com")
    mine = _new_ticket(client, user, seed["category_id"])
    _new_ticket(client, other, seed["category_id"], title="Other ticket")

    listed = client.get("/api/v1/tickets", headers=user).json()
    assert [t["id"] for t in listed] == [mine["id"]]
    assert client.get(f"/api/v1/tickets/{mine['id']}", headers=other).status_code == 403
    assert len(client.get("/api/v1/tickets", headers=tech).json()) == 2


def test_ticket_workflow_through_api(client, seed):
    user = _auth(client, "user@example.com")
    tech = _auth(client, "technician@example.com")
    ticket = _new_ticket(client, user, seed["category_id"])
    ticket_id = ticket["id"]

    forbidden = client.post(
        f"/api/v1/tickets/{ticket_id}/assign", json={"user_id": seed["users"]["technician"]}, headers=user
    )
    assert forbidden.status_code == 403

    assigned = client.post(
        f"/api/v1/tickets/{ticket_id}/assign", json={"user_id": seed["users"]["technician"]}, headers=tech
    )
    assert assigned.status_code == 201
    assert assigned.json()["user_name"] == "Technician Person"

    comment = client.post(f"/api/v1/tickets/{ticket_id}/comments", json={"content": "Looking"}, headers=tech)
    assert comment.status_code == 201

    resolved = client.post(f"/api/v1/tickets/{ticket_id}/status", json={"status": "resolved"}, headers=tech)
    assert resolved.json()["resolved_at"]

    invalid = client.post(f"/api/v1/tickets/{ticket_id}/status", json={"status": "done"}, headers=tech)
    assert invalid.status_code == 422

    detail = client.get(f"/api/v1/tickets/{ticket_id}", headers=user).json()
    assert detail["assignee_name"] == "Technician Person"
    assert [c["is_system"] for c in detail["comments"]] == [False, True]
    assert len(detail["assignment_history"]) == 1


def test_categories_are_admin_managed(client, seed):
    user = _auth(client, "user@example.com")
    admin = _auth(client, "admin@example.com")

    assert client.post("/api/v1/categories", json={"name": "Email"}, headers=user).status_code == 403
    created = client.post("/api/v1/categories", json={"name": "Email"}, headers=admin)
    assert created.status_code == 201
    names = [c["name"] for c in client.get("/api/v1/categories", headers=user).json()]
    assert names == ["Email", "Network"]


def test_computer_endpoints_enforce_roles(client, seed):
    user = _auth(client, "user@example.com")
    tech = _auth(client, "technician@example.com")
    body = {"asset_tag": "SRV-1", "name": "File server", "type": "server", "manufacturer": "Dell", "model": "R740"}

    assert client.post("/api/v1/computers", json=body, headers=user).status_code == 403
    created = client.post("/api/v1/computers", json=body, headers=tech)
    assert created.status_code == 201
    assert client.post("/api/v1/computers", json=body, headers=tech).status_code == 409

    computer_id = created.json()["id"]
    denied = client.post(f"/api/v1/computers/{computer_id}/status", json={"status": "retired"}, headers=user)
    assert denied.status_code == 403
    moved = client.post(f"/api/v1/computers/{computer_id}/status", json={"status": "maintenance"}, headers=tech)
    assert moved.json()["status"] == "maintenance"

    detail = client.get(f"/api/v1/computers/{computer_id}", headers=user).json()
    assert [m["maintenance_type"] for m in detail["maintenance"]] == ["Status Change"]


def test_statistics_require_staff_and_export_xlsx(client, seed):
    user = _auth(client, "user@example.com")
    tech = _auth(client, "technician@example.com")

    assert client.get("/api/v1/statistics", headers=user).status_code == 403
    report = client.get("/api/v1/statistics", params={"range": "7d", "backlog_cutoff": 3}, headers=tech).json()
    assert [b["age_range"] for b in report["backlog_stats"]] == ["0-3 days", "3-6 days", "6+ days"]

    export = client.get("/api/v1/statistics/export", headers=tech)
    assert export.status_code == 200
    assert export.headers["content-type"] == XLSX_MEDIA_TYPE
    assert export.content[:2] == b"PK"


def test_pages_redirect_to_login_until_signed_in(client, seed):
    resp = client.get("/", headers={"Accept": "text/html"}, follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"].startswith("/login")

    failed = client.post("/login", data={"email": "user@example.com", "password": "nope"})
    assert failed.status_code == 401
    assert "Invalid login credentials" in failed.text

    login = client.post(
        "/login", data={"email": "user@example.com", "password": PASSWORD, "next": "/tickets"}, follow_redirects=False
    )
    assert login.status_code == 302
    assert login.headers["location"] == "/tickets"

    page = client.get("/tickets")
    assert page.status_code == 200
    assert "User Person" in page.text
    assert page.headers["X-Frame-Options"] == "DENY"
    assert page.headers["X-Request-ID"]

    assert client.get("/statistics").status_code == 403


def test_ui_ticket_form_creates_and_shows_ticket(client, seed):
    client.post("/login", data={"email": "user@example.com", "password": PASSWORD})

    bad = client.post("/tickets/new", data={"title": "", "description": "x", "category_id": str(seed["category_id"])})
    assert bad.status_code == 422
    assert "Failed to create ticket" in bad.text

    created = client.post(
        "/tickets/new",
        data={
            "title": "Monitor flickers",
            "description": "Desk 12",
            "type": "incident",
            "priority": "low",
            "category_id": str(seed["category_id"]),
        },
        follow_redirects=False,
    )
    assert created.status_code == 303
    detail = client.get(created.headers["location"])
    assert "Monitor flickers" in detail.text


def test_create_admin_button_bootstraps_account(client):
    first = client.post("/login/create-admin")
    second = client.post("/login/create-admin")

    assert "Admin user created successfully" in first.text
    assert "Admin user already exists" in second.text


def test_assign_forms_without_a_selection_rerender_the_page(client, seed):
    client.post("/login", data={"email": "technician@example.com", "password": PASSWORD})
    ticket = _new_ticket(client, {}, seed["category_id"])
    computer = client.post(
        "/api/v1/computers",
        json={"asset_tag": "LT-9", "name": "Loaner", "type": "laptop", "manufacturer": "Dell", "model": "5440"},
    ).json()

    ticket_page = client.post(f"/tickets/{ticket['id']}/assign", data={"user_id": "", "notes": ""})
    computer_page = client.post(f"/inventory/{computer['id']}/assign", data={"user_id": ""})

    assert ticket_page.status_code == 422
    assert "Failed to assign ticket" in ticket_page.text
    assert "User not found" in ticket_page.text
    assert computer_page.status_code == 422
    assert "Failed to assign computer" in computer_page.text


def test_blocking_handlers_run_in_threadpool():
    dependencies = [
        api_deps.require_api_user,
        api_deps.require_staff,
        api_deps.require_admin,
        ui_deps.require_ui_user,
        ui_deps.require_ui_staff,
        ui_deps.require_ui_admin,
    ]
    import_routes = [
        route for route in app.routes if getattr(route, "path", "").endswith("/import") and "POST" in route.methods
    ]

    assert len(import_routes) == 4
    for func in dependencies + [route.endpoint for route in import_routes]:
        assert not inspect.iscoroutinefunction(func), func.__name__
