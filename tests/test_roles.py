"""Unit tests for auth/roles.py -- best-effort role loading.

load_user_with_roles() must never raise: a failing fetch is logged exactly
once at WARNING on the logger the caller hands in, and the user comes back
unchanged.
"""

import logging

from sqlalchemy.exc import OperationalError

from auth.models import Role, User
from auth.roles import DEFAULT_ROLE, EVALUATOR_ROLES, SYSTEM_ROLES, load_user_with_roles


class _FailingStore:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls = 0

    def try_load_roles(self, user_id: int) -> list[Role]:
        self.calls += 1
        raise self.exc


class _StaticStore:
    def __init__(self, roles: list[Role]) -> None:
        self.roles = roles

    def try_load_roles(self, user_id: int) -> list[Role]:
        return list(self.roles)


def _user() -> User:
    return User(id=7, email="ada@edonis.io", full_name="Ada Lovelace")


class TestLoadUserWithRoles:
    def test_success_attaches_roles(self):
        user = _user()
        roles = [Role(name="Teacher", slug="teacher", id=3)]
        result = load_user_with_roles(user, _StaticStore(roles))
        assert result is user
        assert user.role_slugs() == {"teacher"}

    def test_user_without_roles_gets_empty_list(self):
        user = load_user_with_roles(_user(), _StaticStore([]))
        assert user.roles == []

    def test_failure_returns_user_without_raising(self, caplog):
        user = _user()
        store = _FailingStore(OperationalError("SELECT", {}, Exception("database is locked")))
        log = logging.getLogger("edonis.test.roles")
        with caplog.at_level(logging.WARNING, logger="edonis.test.roles"):
            result = load_user_with_roles(user, store, log)
        assert result is user
        assert user.roles is None
        assert store.calls == 1

        warnings = [r for r in caplog.records if r.name == "edonis.test.roles"]
        assert len(warnings) == 1
        assert warnings[0].levelno == logging.WARNING
        assert "database is locked" in warnings[0].getMessage()

    def test_one_warning_per_call(self, caplog):
        store = _FailingStore(RuntimeError("boom"))
        log = logging.getLogger("edonis.test.roles")
        with caplog.at_level(logging.WARNING, logger="edonis.test.roles"):
            load_user_with_roles(_user(), store, log)
            load_user_with_roles(_user(), store, log)
        assert len([r for r in caplog.records if r.name == "edonis.test.roles"]) == 2

    def test_previously_loaded_roles_kept_on_failure(self):
        user = _user()
        user.roles = [Role(name="Student", slug="student")]
        load_user_with_roles(user, _FailingStore(RuntimeError("boom")))
        assert user.role_slugs() == {"student"}


class TestRoleCatalogue:
    def test_default_and_evaluator_roles_are_seeded(self):
        slugs = {r["slug"] for r in SYSTEM_ROLES}
        assert DEFAULT_ROLE in slugs
        assert set(EVALUATOR_ROLES) <= slugs
        assert DEFAULT_ROLE not in EVALUATOR_ROLES

    def test_has_permission(self):
        admin = next(r for r in SYSTEM_ROLES if r["slug"] == "admin")
        role = Role(name=admin["name"], slug="admin", permissions=admin["permissions"])
        assert role.has_permission("users.delete")
        assert not role.has_permission("does.not.exist")
