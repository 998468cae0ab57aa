"""
tests/conftest.py -- Shared test fixtures for Edonis portal integration tests.

This module provides:
  - _make_test_store(): creates an isolated in-memory auth DB with roles seeded
  - _make_user(): inserts an account holding one role
  - _patch_lifespan(): wires the test store and logger into app.state,
    bypassing real startup
  - api_client: TestClient with student and teacher JWTs for API tests
  - web_client: TestClient with follow_redirects=False for web route tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import itertools
import logging
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from core.limiter import limiter

# Login/register limits (5 and 3 per minute) would trip across a test module.
limiter.enabled = False

STUDENT_EMAIL = "student@edonis.io"
TEACHER_EMAIL = "teacher@edonis.io"
PASSWORD = "correct-horse-9"

_db_ids = itertools.count()


@dataclass
class Session:
    client: TestClient
    store: UserStore
    student_token: str
    teacher_token: str
    student_id: int
    teacher_id: int

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store with system roles.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'web').
    """
    store = UserStore(
        db_url=f"sqlite:///file:test_auth_{db_suffix}_{next(_db_ids)}?mode=memory&cache=shared&uri=true"
    )
    store.seed_roles()
    return store


def _make_user(store: UserStore, email: str, full_name: str, role: str, password: str = PASSWORD) -> int:
    uid = store.create_user(User(email=email, full_name=full_name, hashed_password=hash_password(password)))
    store.assign_role(uid, role)
    return uid


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see
    an isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.logger = logging.getLogger("edonis.app")
        yield

    return test_lifespan


def _session(db_suffix: str, **client_kwargs) -> Generator[Session, None, None]:
    store = _make_test_store(db_suffix)
    student_id = _make_user(store, STUDENT_EMAIL, "Sam Student", "student")
    teacher_id = _make_user(store, TEACHER_EMAIL, "Tess Teacher", "teacher")

    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True, **client_kwargs) as client:
        yield Session(
            client=client,
            store=store,
            student_token=create_access_token(student_id, STUDENT_EMAIL, expire_seconds=3600),
            teacher_token=create_access_token(teacher_id, TEACHER_EMAIL, expire_seconds=3600),
            student_id=student_id,
            teacher_id=teacher_id,
        )

    store.close()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[Session, None, None]:
    """Yield a Session for API integration tests.

    A student and a teacher exist before the client starts; their JWTs go in
    Authorization headers via Session.auth().
    """
    yield from _session("api")


@pytest.fixture(scope="module")
def web_client() -> Generator[Session, None, None]:
    """Yield a Session for web route integration tests.

    follow_redirects=False is essential for web route tests: we assert on
    redirect *locations* (e.g. 302 to /login), which are invisible once
    the client follows the redirect and returns the final 200 response.
    """
    yield from _session("web", follow_redirects=False)
