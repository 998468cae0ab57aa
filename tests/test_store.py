"""Integration tests for auth/store.py and auth/accounts.py against in-memory SQLite.

Each test gets a fresh named shared-memory database, so no state leaks
between tests.
"""

from __future__ import annotations

import itertools

import pytest

from auth.accounts import DuplicateAccountError, register_account, sign_in
from auth.models import User
from auth.roles import SYSTEM_ROLES
from auth.schema import column_names
from auth.store import UserStore
from auth.tokens import hash_password
from auth.validators import validate_login, validate_registration

_counter = itertools.count()


@pytest.fixture
def store():
    s = UserStore(db_url=f"sqlite:///file:test_store_{next(_counter)}?mode=memory&cache=shared&uri=true")
    s.seed_roles()
    yield s
    s.close()


def _make_user(store: UserStore, email: str = "ada@edonis.io", password: str = "longenough1") -> int:
    return store.create_user(User(email=email, full_name="Ada Lovelace", hashed_password=hash_password(password)))


class TestSchemaOnInit:
    def test_terms_column_present(self, store):
        assert "terms_accepted_version" in column_names(store.engine, "users")


class TestUsers:
    def test_create_and_fetch(self, store):
        uid = _make_user(store)
        user = store.get_by_id(uid)
        assert user.email == "ada@edonis.io"
        assert user.is_active is True
        assert user.terms_accepted_version is None
        assert user.created_at is not None
        assert user.roles is None
        assert store.get_by_email("ada@edonis.io").id == uid
        assert store.has_users()

    def test_missing_user(self, store):
        assert store.get_by_id(999) is None
        assert store.get_by_email("nobody@edonis.io") is None
        assert not store.has_users()

    def test_update_user_rejects_unknown_fields(self, store):
        uid = _make_user(store)
        with pytest.raises(ValueError):
            store.update_user(uid, email="other@edonis.io")

    def test_update_user(self, store):
        uid = _make_user(store)
        assert store.update_user(uid, full_name="Augusta Ada King", is_active=False)
        user = store.get_by_id(uid)
        assert user.full_name == "Augusta Ada King"
        assert user.is_active is False
        assert not store.update_user(999, full_name="Nobody")

    def test_accept_terms(self, store):
        uid = _make_user(store)
        store.accept_terms(uid, "2024-05")
        assert store.get_by_id(uid).terms_accepted_version == "2024-05"
        store.accept_terms(uid, "")
        assert store.get_by_id(uid).terms_accepted_version is None


class TestRoles:
    def test_seed_is_idempotent(self, store):
        assert store.seed_roles() == len(SYSTEM_ROLES)
        for entry in SYSTEM_ROLES:
            role = store.get_role_by_slug(entry["slug"])
            assert role is not None
            assert role.permissions == entry["permissions"]

    def test_assign_and_load(self, store):
        uid = _make_user(store)
        store.assign_role(uid, "teacher")
        store.assign_role(uid, "student")
        assert [r.slug for r in store.try_load_roles(uid)] == ["student", "teacher"]

    def test_assign_twice_is_a_no_op(self, store):
        uid = _make_user(store)
        store.assign_role(uid, "student")
        store.assign_role(uid, "student")
        assert [r.slug for r in store.try_load_roles(uid)] == ["student"]

    def test_course_scoped_role_listed_once(self, store):
        uid = _make_user(store)
        store.assign_role(uid, "teacher", course_id=1)
        store.assign_role(uid, "teacher", course_id=2)
        assert [r.slug for r in store.try_load_roles(uid)] == ["teacher"]

    def test_unknown_role(self, store):
        uid = _make_user(store)
        with pytest.raises(ValueError):
            store.assign_role(uid, "superuser")

    def test_remove_role(self, store):
        uid = _make_user(store)
        store.assign_role(uid, "student")
        assert store.remove_role(uid, "student")
        assert store.try_load_roles(uid) == []
        assert not store.remove_role(uid, "student")


class TestAccounts:
    def test_register_assigns_student(self, store):
        registration = validate_registration(
            {
                "fullName": "Nia Newcomer",
                "email": "Nia@Edonis.io",
                "password": "longenough1",
                "passwordConfirmation": "longenough1",
            }
        )
        user = register_account(store, registration)
        assert user.email == "Nia@edonis.io"
        assert user.hashed_password != "longenough1"
        assert [r.slug for r in store.try_load_roles(user.id)] == ["student"]

    def test_register_duplicate(self, store):
        _make_user(store)
        registration = validate_registration(
            {
                "fullName": "Ada Again",
                "email": "ada@edonis.io",
                "password": "longenough1",
                "passwordConfirmation": "longenough1",
            }
        )
        with pytest.raises(DuplicateAccountError):
            register_account(store, registration)

    def test_sign_in_stamps_last_login(self, store):
        uid = _make_user(store)
        user = sign_in(store, validate_login({"email": "ada@edonis.io", "password": "longenough1"}))
        assert user is not None
        assert user.id == uid
        assert user.last_login_at is not None

    def test_sign_in_wrong_password(self, store):
        _make_user(store)
        assert sign_in(store, validate_login({"email": "ada@edonis.io", "password": "wrong"})) is None
        assert store.get_by_email("ada@edonis.io").last_login_at is None

    def test_sign_in_disabled_account(self, store):
        uid = _make_user(store)
        store.update_user(uid, is_active=False)
        assert sign_in(store, validate_login({"email": "ada@edonis.io", "password": "longenough1"})) is None
