import pytest

from helpdesk.core.errors import AlreadyExistsError
from helpdesk.core.security import decode_token, issue_token_pair, refresh_access_token
from helpdesk.crud import users as users_crud


def test_create_user_normalizes_email_and_hashes_password(db_session):
    user, temporary = users_crud.create_user(
        db_session,
        email="  Alice@Example.COM ",
        full_name=" Alice Smith ",
        department="IT",
        password="secret123",
    )

    assert temporary is None
    assert user.email == "alice@example.com"
    assert user.full_name == "Alice Smith"
    assert user.role == "user"
    assert user.password_hash != "secret123"
    assert user.created_at.endswith("Z")
    assert users_crud.authenticate(db_session, "ALICE@example.com", "secret123").id == user.id
    assert users_crud.authenticate(db_session, "alice@example.com", "wrong-pass") is None


def test_create_user_without_password_generates_temporary_one(db_session):
    user, temporary = users_crud.create_user(
        db_session, email="bob@example.com", full_name="Bob", role="technician"
    )

    assert temporary
    assert user.is_staff
    assert users_crud.authenticate(db_session, "bob@example.com", temporary).id == user.id


def test_create_user_rejects_duplicate_email_case_insensitively(db_session, make_user):
    make_user(email="dup@example.com")

    with pytest.raises(AlreadyExistsError):
        users_crud.create_user(db_session, email="DUP@example.com", full_name="Other", password="secret123")


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"email": "not-an-email", "full_name": "X"}, "Invalid email format"),
        ({"email": "x@example.com", "full_name": "  "}, "Full name is required"),
        ({"email": "x@example.com", "full_name": "X", "role": "superuser"}, "Invalid role"),
        ({"email": "x@example.com", "full_name": "X", "password": "123"}, "at least 6"),
    ],
)
def test_create_user_validation_errors(db_session, kwargs, message):
    with pytest.raises(ValueError) as excinfo:
        users_crud.create_user(db_session, **kwargs)

    assert message in str(excinfo.value)


def test_sign_up_always_creates_plain_user(db_session):
    user = users_crud.sign_up(
        db_session, email="new@example.com", password="secret123", full_name="New Person"
    )

    assert user.role == "user"
    assert not user.is_staff


def test_change_password_checks_current_and_confirmation(db_session, make_user):
    user = make_user(password="secret123")

    with pytest.raises(ValueError, match="do not match"):
        users_crud.change_password(
            db_session, user, current_password="secret123", new_password="abcdef1", confirm_password="abcdef2"
        )
    with pytest.raises(ValueError, match="incorrect"):
        users_crud.change_password(
            db_session, user, current_password="nope", new_password="abcdef1", confirm_password="abcdef1"
        )

    users_crud.change_password(
        db_session, user, current_password="secret123", new_password="abcdef1", confirm_password="abcdef1"
    )
    assert users_crud.authenticate(db_session, user.email, "abcdef1") is not None
    assert users_crud.authenticate(db_session, user.email, "secret123") is None


def test_update_user_changes_role_and_clears_department(db_session, make_user):
    user = make_user(department="Sales")

    users_crud.update_user(db_session, user, {"role": "Technician", "department": ""})

    assert user.role == "technician"
    assert user.department is None


def test_ensure_admin_user_is_idempotent(db_session):
    admin, created = users_crud.ensure_admin_user(db_session)
    again, created_again = users_crud.ensure_admin_user(db_session)

    assert created is True
    assert created_again is False
    assert admin.id == again.id
    assert admin.role == "admin"


def test_list_user_options_filters_roles_and_sorts_by_name(db_session, make_user):
    make_user(role="technician", full_name="Zed Tech")
    make_user(role="user", full_name="Amy User")
    make_user(role="admin", full_name="Bea Admin")

    names = [u.full_name for u in users_crud.list_user_options(db_session, roles=("admin", "technician"))]

    assert names == ["Bea Admin", "Zed Tech"]


def test_token_pair_round_trip_and_type_check():
    pair = issue_token_pair(42, role="admin")

    access = decode_token(pair.access_token, verify_type="access")
    assert access.user_id == 42
    assert access.role == "admin"

    with pytest.raises(ValueError):
        decode_token(pair.refresh_token, verify_type="access")

    refreshed = refresh_access_token(pair.refresh_token)
    assert decode_token(refreshed.access_token, verify_type="access").user_id == 42


def test_decode_token_rejects_garbage():
    with pytest.raises(ValueError):
        decode_token("not-a-jwt")
