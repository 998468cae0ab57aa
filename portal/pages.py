"""
portal/pages.py -- Plain, serializable payloads for each page.

Every function here is a pure transformation from domain objects to dicts of
JSON-safe values. The same payload feeds the Jinja2 template (web/) and the
JSON API (api/), so both surfaces always agree on what a page shows.

Credential and internal attributes never cross this boundary: UserPayload
simply has no field for hashed_password, so there is nothing to forget to
strip.

Keys are camelCase because the payloads are also consumed by browser code.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from auth.models import Role, User

STATIC_PAGES: tuple[str, ...] = ("about", "contact", "privacy")


# ---------------------------------------------------------------------------
# Serialized entities
# ---------------------------------------------------------------------------


class RolePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int]
    name: str
    slug: str
    description: Optional[str]
    permissions: dict[str, bool]

    @classmethod
    def from_role(cls, role: Role) -> "RolePayload":
        return cls(
            id=role.id,
            name=role.name,
            slug=role.slug,
            description=role.description,
            permissions=dict(role.permissions),
        )


class UserPayload(BaseModel):
    """Public view of a User. roles is None when the relationship was not loaded."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: Optional[int]
    full_name: Optional[str]
    email: str
    is_active: bool
    terms_accepted_version: Optional[str]
    last_login_at: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]
    roles: Optional[list[RolePayload]] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPayload":
        return cls(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            is_active=user.is_active,
            terms_accepted_version=user.terms_accepted_version,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
            roles=[RolePayload.from_role(r) for r in user.roles] if user.roles is not None else None,
        )


def serialize_user(user: User) -> dict:
    """Return the camelCase dict for a user; "roles" only appears once loaded."""
    exclude = {"roles"} if user.roles is None else None
    return UserPayload.from_user(user).model_dump(by_alias=True, exclude=exclude)


# ---------------------------------------------------------------------------
# Page payloads
# ---------------------------------------------------------------------------


def dashboard_payload(user: User) -> dict:
    return {"user": serialize_user(user)}


def evaluations_payload() -> dict:
    """Evaluations awaiting grading for an instructor.

    There is no grading data source yet: the page shows an empty list and
    zeroed counters. A new list and dict are built on every call.
    """
    return {
        "pendingEvaluations": [],
        "stats": {"total": 0, "pending": 0, "graded": 0},
    }


def home_payload(user: Optional[User]) -> dict:
    return {"auth": {"user": serialize_user(user) if user is not None else None}}


def static_page(name: str) -> dict:
    """Payload for an informational page: just its identifier.

    Raises KeyError for names outside STATIC_PAGES.
    """
    if name not in STATIC_PAGES:
        raise KeyError(name)
    return {"page": name}


def shared_props(user: Optional[User], terms_version: str) -> dict:
    """Props every page receives alongside its own payload.

    termsConsentRequired is True when a terms version is configured and the
    signed-in user has not accepted that exact version.
    """
    required = bool(terms_version) and user is not None and user.terms_accepted_version != terms_version
    return {"termsConsentRequired": required}
