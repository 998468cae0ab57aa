"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, almost no logic). Stores and
routes do the work; these classes only own the domain shape.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Role:
    """A named permission grouping (admin, manager, teacher, student, guest).

    permissions maps a permission name ("courses.create") to True. Missing
    keys mean the permission is not granted.
    """

    name: str
    slug: str
    id: int | None = None
    description: str | None = None
    permissions: dict[str, bool] = field(default_factory=dict)
    is_system: bool = True
    created_at: str | None = None

    def has_permission(self, permission: str) -> bool:
        return self.permissions.get(permission) is True


@dataclass
class User:
    """An account in the portal.

    email is stored in normalized form (see auth.validators.normalize_email)
    and doubles as the login identifier.

    roles is None until the role relationship has been loaded. A failed
    best-effort load leaves it None; a successful load sets a (possibly
    empty) list.
    """

    email: str
    full_name: str | None = None
    id: int | None = None
    hashed_password: str | None = None
    is_active: bool = True
    terms_accepted_version: str | None = None  # VARCHAR(20), NULL until accepted
    last_login_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    roles: list[Role] | None = None

    def role_slugs(self) -> set[str]:
        return {r.slug for r in self.roles or []}
