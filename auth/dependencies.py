"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and request context.

Two credential sources are checked in priority order:
  1. JWT cookie ("access_token") -- set by the web UI login flow.
  2. Authorization: Bearer <token> header -- API clients.

Handlers never reach into app.state for the store or the logger themselves.
They receive a RequestContext (request, user, store, log) built here:
  try_get_request_context() -- soft variant, None when unauthenticated (web
                               routes turn that into a redirect to /login).
  get_request_context()     -- raises HTTP 401 when unauthenticated (API).
  require_role(*slugs)      -- loads roles, raises HTTP 403 without a match.

The process-wide logger is created once in the lifespan and stored on
app.state.logger; RequestContext.log is that instance.

Layer rule: no imports from web/ or api/.
  auth/dependencies.py may import from fastapi because it is part of the
  FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import HTTPException, Request

from auth.models import User
from auth.roles import load_user_with_roles
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, decode_access_token

logger = logging.getLogger("edonis.auth")


@dataclass
class RequestContext:
    """Everything a handler needs for one authenticated request."""

    request: Request
    user: User
    store: UserStore
    log: logging.Logger


def try_get_current_user(request: Request) -> User | None:
    """Authenticate the request via cookie or Bearer header.

    Returns the active User on success, None on any failure. Never raises.
    """
    token: str | None = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if not token:
        return None

    payload = decode_access_token(token)
    if not payload:
        return None
    user = request.app.state.user_store.get_by_id(payload["user_id"])
    if user and user.is_active:
        return user
    return None


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated."""
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def app_logger(request: Request) -> logging.Logger:
    return getattr(request.app.state, "logger", logger)


def build_request_context(request: Request, user: User) -> RequestContext:
    return RequestContext(
        request=request,
        user=user,
        store=request.app.state.user_store,
        log=app_logger(request),
    )


def try_get_request_context(request: Request) -> RequestContext | None:
    user = try_get_current_user(request)
    return build_request_context(request, user) if user is not None else None


def get_request_context(request: Request) -> RequestContext:
    """Dependency: authenticated RequestContext or HTTP 401.

    Use as:
        @router.get("/protected")
        def route(ctx: RequestContext = Depends(get_request_context)): ...
    """
    return build_request_context(request, get_current_user(request))


def has_any_role(ctx: RequestContext, slugs: set[str]) -> bool:
    """Load the user's roles (best effort) and check for an intersection.

    A failed role load leaves user.roles as None, which matches nothing.
    """
    if ctx.user.roles is None:
        load_user_with_roles(ctx.user, ctx.store, ctx.log)
    return bool(ctx.user.role_slugs() & slugs)


def require_role(*slugs: str) -> Callable[[Request], RequestContext]:
    """Dependency factory: the user must hold at least one of `slugs`.

    Raises HTTP 401 if unauthenticated, HTTP 403 if no role matches.
    """
    wanted = set(slugs)

    def dependency(request: Request) -> RequestContext:
        ctx = get_request_context(request)
        if not has_any_role(ctx, wanted):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "You do not have access to this resource."},
            )
        return ctx

    return dependency
