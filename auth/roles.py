"""
auth/roles.py -- System role catalogue and best-effort role loading.

load_user_with_roles() is the only way request handlers attach roles to a
user. Roles enrich the dashboard; they are not needed to render it, so a
failed fetch is logged once at WARNING and the request carries on with
user.roles left as it was.

The logger is passed in by the caller (RequestContext.log in the web layer)
instead of being looked up here, so tests can hand in their own.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from typing import Protocol

from auth.models import Role, User

logger = logging.getLogger("edonis.auth")

# Role assigned to every self-registered account.
DEFAULT_ROLE = "student"

# Roles that may open the evaluations page.
EVALUATOR_ROLES: tuple[str, ...] = ("teacher", "manager", "admin")

# System roles seeded by UserStore.seed_roles(). Slugs are stable identifiers
# referenced by require_role(); names and descriptions are display text.
SYSTEM_ROLES: list[dict] = [
    {
        "name": "Administrator",
        "slug": "admin",
        "description": "Full access to the platform, including user management.",
        "permissions": {
            "system.manage": True,
            "users.create": True,
            "users.read": True,
            "users.update": True,
            "users.delete": True,
            "courses.create": True,
            "courses.read": True,
            "courses.update": True,
            "courses.delete": True,
            "content.create": True,
            "content.update": True,
            "content.delete": True,
            "grades.manage": True,
            "reports.view": True,
        },
    },
    {
        "name": "Manager",
        "slug": "manager",
        "description": "Supervises a course track and its evaluations. Cannot manage users.",
        "permissions": {
            "courses.read": True,
            "courses.supervise": True,
            "groups.manage": True,
            "grades.view": True,
            "grades.supervise": True,
            "reports.view": True,
        },
    },
    {
        "name": "Teacher",
        "slug": "teacher",
        "description": "Creates and manages their own courses and grades students.",
        "permissions": {
            "courses.create": True,
            "courses.read": True,
            "courses.update.own": True,
            "content.create": True,
            "content.update.own": True,
            "content.delete.own": True,
            "grades.manage.own": True,
            "students.view": True,
        },
    },
    {
        "name": "Student",
        "slug": "student",
        "description": "Follows enrolled courses, submits assignments and sees their own grades.",
        "permissions": {
            "courses.read.enrolled": True,
            "content.view": True,
            "assignments.submit": True,
            "grades.view.own": True,
            "forums.participate": True,
        },
    },
    {
        "name": "Guest",
        "slug": "guest",
        "description": "Read-only access to public courses.",
        "permissions": {
            "courses.read.public": True,
            "content.view.public": True,
        },
    },
]


class RoleSource(Protocol):
    """Anything that can fetch a user's roles. UserStore implements it."""

    def try_load_roles(self, user_id: int) -> list[Role]: ...


def load_user_with_roles(user: User, store: RoleSource, log: logging.Logger = logger) -> User:
    """Attach the user's roles and return the user. Never raises.

    On any failure of the fetch, exactly one warning carrying the error
    message is written to `log` and user.roles is left untouched (None when
    it was never loaded).
    """
    try:
        user.roles = store.try_load_roles(user.id)
    except Exception as exc:
        log.warning("Could not load roles for user %s: %s", user.id, exc)
    return user
