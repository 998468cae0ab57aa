"""
API response models for the Edonis portal REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
Request bodies for login and registration are NOT modelled here: they are
accepted as raw JSON objects and handed to auth.validators, which owns the
field rules and reports every violation at once.

Separation of concerns: auth/ dataclasses = domain truth; portal/ payloads =
what a page shows; api/ models = envelope and API-only responses.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from portal.pages import UserPayload

# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    """One violated rule on one request field."""

    model_config = ConfigDict(frozen=True)

    field: str
    kind: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    fields: Optional[list[FieldError]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserPayload


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


class DashboardResponse(BaseModel):
    """Response for GET /api/v1/dashboard."""

    model_config = ConfigDict(frozen=True)

    user: UserPayload


class EvaluationStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    pending: int
    graded: int


class EvaluationsResponse(BaseModel):
    """Response for GET /api/v1/evaluations."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    pending_evaluations: list[dict]
    stats: EvaluationStats
