"""
auth/store.py -- SQLAlchemy Core persistence layer for users and roles.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_role are the mappers.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Schema:
  The tables below mirror the Alembic revisions in auth/migrations/ and are
  used only to build queries. __init__ runs upgrade_schema() instead of
  metadata.create_all(), so existing databases pick up new revisions (e.g.
  users.terms_accepted_version) on first startup.

  UNIQUE(user_id, role_id, course_id) cannot stop duplicate global roles on
  SQLite because two NULL course_id values are distinct. assign_role()
  checks for an existing row in code before inserting.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.models import Role, User
from auth.roles import SYSTEM_ROLES
from auth.schema import create_db_engine, upgrade_schema
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema (query-building only; Alembic owns DDL)
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("full_name", String(255)),
    Column("email", String(254), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("is_active", Boolean, nullable=False),
    Column("terms_accepted_version", String(20)),
    Column("last_login_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

_roles = Table(
    "roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False),
    Column("slug", String(50), nullable=False, unique=True),
    Column("description", Text),
    Column("permissions", JSON),
    Column("is_system", Boolean, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)

_user_roles = Table(
    "user_roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("role_id", Integer, ForeignKey("roles.id"), nullable=False),
    Column("course_id", Integer),  # NULL = global role
    Column("created_at", String(32), nullable=False),
)

# Fields update_user() accepts. Anything else is a programming error.
_MUTABLE_USER_FIELDS = {"full_name", "hashed_password", "is_active", "terms_accepted_version"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Role entities.

    Usage:
        store = UserStore()
        uid = store.create_user(User(email="ada@edonis.io", full_name="Ada", hashed_password=hash_password("secret")))
        store.assign_role(uid, "student")
        roles = store.try_load_roles(uid)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = create_db_engine(db_url or get_settings().database_url)
        upgrade_schema(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers (registration routes) catch it and report a duplicate account.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    full_name=user.full_name,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    is_active=user.is_active,
                    terms_accepted_version=user.terms_accepted_version,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact (already normalized) email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user and stamp updated_at.

        Accepted fields: full_name, hashed_password, is_active,
        terms_accepted_version. Unknown fields raise ValueError.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login_at for the given user."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login_at=_now_iso()))
            conn.commit()

    def accept_terms(self, user_id: int, version: str | None) -> bool:
        """Record that the user accepted the given terms version (None clears it)."""
        return self.update_user(user_id, terms_accepted_version=version or None)

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def seed_roles(self) -> int:
        """Create or update the system roles. Returns the number of roles written.

        Upsert keyed on slug, so running it on every deploy is safe.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            for entry in SYSTEM_ROLES:
                existing = conn.execute(select(_roles.c.id).where(_roles.c.slug == entry["slug"])).scalar()
                values = {
                    "name": entry["name"],
                    "description": entry["description"],
                    "permissions": entry["permissions"],
                    "is_system": True,
                    "updated_at": now,
                }
                if existing is None:
                    conn.execute(_roles.insert().values(slug=entry["slug"], created_at=now, **values))
                else:
                    conn.execute(_roles.update().where(_roles.c.id == existing).values(**values))
            conn.commit()
        return len(SYSTEM_ROLES)

    def get_role_by_slug(self, slug: str) -> Role | None:
        with self.engine.connect() as conn:
            row = conn.execute(_roles.select().where(_roles.c.slug == slug)).fetchone()
        return _row_to_role(row) if row is not None else None

    def assign_role(self, user_id: int, slug: str, course_id: int | None = None) -> None:
        """Give a user a role, globally (course_id=None) or for one course.

        Raises ValueError if the role slug does not exist. Assigning a role the
        user already holds in the same context is a no-op.
        """
        role = self.get_role_by_slug(slug)
        if role is None:
            raise ValueError(f"Role {slug!r} not found")
        context = _user_roles.c.course_id.is_(None) if course_id is None else _user_roles.c.course_id == course_id
        with self.engine.connect() as conn:
            existing = conn.execute(
                select(_user_roles.c.id).where(
                    (_user_roles.c.user_id == user_id) & (_user_roles.c.role_id == role.id) & context
                )
            ).scalar()
            if existing is None:
                conn.execute(
                    _user_roles.insert().values(
                        user_id=user_id, role_id=role.id, course_id=course_id, created_at=_now_iso()
                    )
                )
                conn.commit()

    def remove_role(self, user_id: int, slug: str, course_id: int | None = None) -> bool:
        """Withdraw a role in one context. Returns True if a row was deleted."""
        role = self.get_role_by_slug(slug)
        if role is None:
            raise ValueError(f"Role {slug!r} not found")
        context = _user_roles.c.course_id.is_(None) if course_id is None else _user_roles.c.course_id == course_id
        with self.engine.connect() as conn:
            result = conn.execute(
                _user_roles.delete().where(
                    (_user_roles.c.user_id == user_id) & (_user_roles.c.role_id == role.id) & context
                )
            )
            conn.commit()
        return result.rowcount > 0

    def try_load_roles(self, user_id: int) -> list[Role]:
        """Return every distinct role the user holds in any context, ordered by slug.

        Raises whatever the database raises (OperationalError, timeouts...).
        Request handlers go through auth.roles.load_user_with_roles(), which
        turns a failure into "no roles" plus a warning.
        """
        stmt = (
            select(_roles)
            .where(_roles.c.id.in_(select(_user_roles.c.role_id).where(_user_roles.c.user_id == user_id)))
            .order_by(_roles.c.slug)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_role(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        hashed_password=row.hashed_password,
        is_active=bool(row.is_active),
        terms_accepted_version=row.terms_accepted_version,
        last_login_at=row.last_login_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_role(row) -> Role:
    return Role(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description,
        permissions=dict(row.permissions or {}),
        is_system=bool(row.is_system),
        created_at=row.created_at,
    )
