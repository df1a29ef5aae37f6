"""Tests for registration, login and token verification."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from runstore import config
from runstore.core.errors import Conflict, NotFound, Unauthorized, ValidationError
from runstore.core.security import create_access_token
from runstore.schemas import Role


def test_register_issues_token_for_new_user(identity):
    token, view = identity.register("carol@example.com", "secret1", "Carol")

    caller = identity.verify(token)
    assert caller is not None
    assert caller.user_id == view.id
    assert caller.role == Role.USER
    assert view.email == "carol@example.com"
    assert view.role == Role.USER


def test_distinct_registrations_get_distinct_ids(identity):
    emails = [f"user{i}@example.com" for i in range(5)]
    views = [identity.register(email, "secret1", "User")[1] for email in emails]

    assert len({view.id for view in views}) == len(emails)
    for view in views:
        assert identity.current_user(view.id).email == view.email


def test_public_view_has_no_password_hash(identity, user):
    _, view = user
    dumped = view.model_dump(by_alias=True)

    assert "hashedPassword" not in dumped
    assert "hashed_password" not in dumped
    assert set(dumped) == {"id", "email", "name", "role"}


def test_password_is_stored_hashed(identity, user):
    _, view = user
    account = identity.get_account(view.id)

    assert account.hashed_password != "secret1"
    assert account.hashed_password.startswith("$2")


def test_duplicate_email_conflicts_and_keeps_first_account(identity, user):
    _, first = user

    with pytest.raises(Conflict):
        identity.register("alice@example.com", "another1", "Impostor")

    token, view = identity.login("alice@example.com", "secret1")
    assert view.id == first.id
    assert view.name == "Alice"
    assert identity.verify(token).user_id == first.id


def test_email_is_case_sensitive_as_stored(identity):
    identity.register("Dave@Example.com", "secret1", "Dave")

    assert identity.users.get_by_email("Dave@Example.com") is not None
    assert identity.users.get_by_email("dave@example.com") is None


@pytest.mark.parametrize(
    "email, password, name, field",
    [
        ("not-an-email", "secret1", "Eve", "email"),
        ("eve@example.com", "12345", "Eve", "password"),
        ("eve@example.com", "secret1", "E", "name"),
    ],
)
def test_register_validation(identity, email, password, name, field):
    with pytest.raises(ValidationError) as exc_info:
        identity.register(email, password, name)

    assert field in exc_info.value.errors
    assert identity.users.list_all() == []


def test_login_failures_are_indistinguishable(identity, user):
    with pytest.raises(Unauthorized) as wrong_password:
        identity.login("alice@example.com", "wrong-password")
    with pytest.raises(Unauthorized) as unknown_email:
        identity.login("nobody@example.com", "secret1")

    assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"
    assert wrong_password.value.to_dict() == unknown_email.value.to_dict()


def test_login_returns_working_token(identity, user):
    _, view = user
    token, login_view = identity.login("alice@example.com", "secret1")

    assert login_view == view
    assert identity.verify(token).user_id == view.id


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
def test_verify_degrades_to_anonymous(identity, token):
    assert identity.verify(token) is None


def test_verify_rejects_expired_token(identity, user):
    _, view = user
    token = create_access_token({"sub": view.id, "role": "user"}, expires_delta=timedelta(seconds=-30))

    assert identity.verify(token) is None


def test_verify_rejects_foreign_signature(identity, user):
    _, view = user
    token = jwt.encode(
        {"sub": view.id, "role": "admin", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "some-other-secret",
        algorithm=config.ALGORITHM,
    )

    assert identity.verify(token) is None


@pytest.mark.parametrize("claims", [{"sub": "user-1", "role": "superuser"}, {"role": "admin"}, {"sub": "user-1"}])
def test_verify_rejects_incomplete_claims(identity, claims):
    assert identity.verify(create_access_token(claims)) is None


def test_verify_does_not_consult_storage(identity):
    token = create_access_token({"sub": "user-never-stored", "role": "user"})

    caller = identity.verify(token)
    assert caller.user_id == "user-never-stored"
    with pytest.raises(NotFound):
        identity.current_user(caller.user_id)


def test_seed_admin_is_idempotent_and_can_log_in(identity):
    first = identity.seed_admin()
    second = identity.seed_admin()

    assert first == second
    assert first.id == config.ADMIN_ID
    assert first.role == Role.ADMIN
    assert len(identity.users.list_all()) == 1

    token, view = identity.login(config.ADMIN_EMAIL, config.ADMIN_PASSWORD)
    assert view.role == Role.ADMIN
    assert identity.verify(token).role == Role.ADMIN


def test_admin_email_cannot_be_registered_again(identity, admin):
    with pytest.raises(Conflict):
        identity.register(config.ADMIN_EMAIL, "secret1", "Fake Admin")


def test_lookups_during_concurrent_registrations(identity):
    errors = []

    def read_loop():
        try:
            for _ in range(300):
                identity.users.get_by_email("nobody@example.com")
                identity.users.list_all()
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    def register(n):
        return identity.register(f"user{n}@example.com", "secret1", f"User {n}")

    with ThreadPoolExecutor(max_workers=6) as pool:
        readers = [pool.submit(read_loop) for _ in range(4)]
        writers = [pool.submit(register, n) for n in range(40)]
        for future in writers + readers:
            future.result()

    assert errors == []
    assert len(identity.users.list_all()) == 40
    assert identity.users.get_by_email("user7@example.com").name == "User 7"
