"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login         -- email/password login; sets JWT cookie
  POST /api/v1/auth/register      -- create account (role "student"); sets JWT cookie
  POST /api/v1/auth/logout        -- clears cookie; 200
  GET  /api/v1/auth/me            -- current user with roles (requires auth)
  POST /api/v1/auth/accept-terms  -- record acceptance of the current terms (requires auth)

Request bodies are taken as raw JSON objects and passed to auth.validators.
A ValidationFailure propagates to the handler in api/main.py, which answers
422 with every offending field listed. Nothing past validation runs for an
invalid payload.

Security:
  Login and register are rate-limited per IP (LOGIN_RATE_LIMIT,
  REGISTER_RATE_LIMIT).
  Login returns one generic error for unknown email, wrong password and
  disabled account so account existence does not leak.
  Cache-Control: no-store on responses carrying a token.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import LoginResponse
from auth.accounts import DuplicateAccountError, register_account, sign_in
from auth.dependencies import RequestContext, app_logger, get_request_context
from auth.roles import load_user_with_roles
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, create_access_token, set_auth_cookie
from auth.validators import validate_login, validate_registration
from core.config import get_settings
from core.limiter import limiter
from portal.pages import UserPayload, serialize_user

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/login:         public
# - POST /api/v1/auth/register:      public, unless SELF_REGISTRATION_ENABLED=false
# - POST /api/v1/auth/logout:        public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/me:            requires auth
# - POST /api/v1/auth/accept-terms:  requires auth
router = APIRouter()


def _session_response(user, status_code: int = 200) -> JSONResponse:
    token = create_access_token(user.id, user.email)
    resp = JSONResponse(
        status_code=status_code,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=_settings.token_expire_seconds,
            user=UserPayload.from_user(user),
        ).model_dump(by_alias=True, exclude={"user": {"roles"}} if user.roles is None else None),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, payload: dict[str, Any] = Body(...)) -> JSONResponse:  # noqa: B008
    """Authenticate with email and password; set the session cookie."""
    credentials = validate_login(payload)
    user_store: UserStore = request.app.state.user_store
    user = sign_in(user_store, credentials)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp
    load_user_with_roles(user, user_store, app_logger(request))
    return _session_response(user)


@limiter.limit(_settings.register_rate_limit)
@router.post("/auth/register", response_model=LoginResponse, status_code=201)
def register(request: Request, payload: dict[str, Any] = Body(...)) -> JSONResponse:  # noqa: B008
    """Create an account, assign the student role and sign it in."""
    if not _settings.self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    registration = validate_registration(payload)
    user_store: UserStore = request.app.state.user_store
    try:
        user = register_account(user_store, registration)
    except DuplicateAccountError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "An account with that email already exists."},
        ) from exc
    load_user_with_roles(user, user_store, app_logger(request))
    return _session_response(user, status_code=201)


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the JWT cookie and end the session."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie(COOKIE_NAME)
    return resp


@router.get("/auth/me", response_model=UserPayload, response_model_exclude_unset=True)
def me(ctx: RequestContext = Depends(get_request_context)) -> dict:  # noqa: B008
    """Return the current user, with roles when they could be loaded."""
    load_user_with_roles(ctx.user, ctx.store, ctx.log)
    return serialize_user(ctx.user)


@router.post("/auth/accept-terms", response_model=UserPayload, response_model_exclude_unset=True)
def accept_terms(ctx: RequestContext = Depends(get_request_context)) -> dict:  # noqa: B008
    """Store the currently configured terms version on the user.

    With no TERMS_VERSION configured the stored version is cleared, matching
    "nothing to consent to".
    """
    ctx.store.accept_terms(ctx.user.id, _settings.terms_version)
    user = ctx.store.get_by_id(ctx.user.id)
    ctx.log.info("User %s accepted terms version %r", user.id, _settings.terms_version)
    return serialize_user(user)
