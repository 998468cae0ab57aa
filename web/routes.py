"""
web/routes.py -- Jinja2 template routes for the Edonis portal web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same UserStore, same process logger) but return HTML instead of JSON.
Every page is rendered from a portal.pages payload, exposed to the template
as `props`, plus the shared props every page receives.

Routes:
  GET  /                          -- home page (public; shows the signed-in user)
  GET  /login                     -- login form
  POST /login                     -- handle login form, redirect to ?next= or /dashboard
  GET  /register                  -- registration form
  POST /register                  -- create account (role "student"), sign in
  POST /logout                    -- clear cookie, redirect /login
  GET  /dashboard                 -- dashboard (auth required)
  GET  /evaluations               -- evaluations awaiting grading (teacher, manager, admin)
  GET  /about, /contact, /privacy -- informational pages (public)
  POST /user/account/accept-terms -- record acceptance of the current terms (auth required)

Invalid form input never leaves this module as an exception: the form is
rendered again with the messages for each rejected field and what the user
typed (password fields excepted).
"""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlencode

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.accounts import DuplicateAccountError, register_account, sign_in
from auth.dependencies import RequestContext, has_any_role, try_get_current_user, try_get_request_context
from auth.models import User
from auth.roles import EVALUATOR_ROLES, load_user_with_roles
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, create_access_token, set_auth_cookie
from auth.validators import ValidationFailure, validate_login, validate_registration
from core.config import get_settings
from core.limiter import limiter
from portal.pages import dashboard_payload, evaluations_payload, home_payload, shared_props, static_page

logger = logging.getLogger("edonis.web")

_settings = get_settings()

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
templates.env.globals["app_name"] = _settings.app_name
router = APIRouter()

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= query params on /login.
# The raw query param is NEVER passed to templates -- only the message from
# this dict is. Prevents reflected XSS via crafted error query strings.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid email or password.",
    "registration_disabled": "Self-registration is disabled. Contact an administrator.",
}

_DUPLICATE_EMAIL_MESSAGE = "An account with that email already exists."


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs (https://attacker.com) and protocol-relative URLs
    (//attacker.com), both of which would redirect off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/dashboard"


def _require_context(request: Request) -> Union[RequestContext, RedirectResponse]:
    """Return the RequestContext, or a redirect to /login when not signed in.

    Call at the top of protected route handlers:
        ctx = _require_context(request)
        if isinstance(ctx, RedirectResponse):
            return ctx
    """
    ctx = try_get_request_context(request)
    if ctx is None:
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        return RedirectResponse("/login?" + urlencode({"next": target}, safe="/"), status_code=302)
    return ctx


def _signed_in_redirect(user: User, next_url: str, status_code: int = 302) -> RedirectResponse:
    resp = RedirectResponse(next_url, status_code=status_code)
    set_auth_cookie(resp, create_access_token(user.id, user.email))
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _render(
    request: Request,
    template: str,
    props: dict,
    user: Optional[User] = None,
    status_code: int = 200,
    **extra,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        template,
        {
            "props": props,
            "shared": shared_props(user, _settings.terms_version),
            "current_user": user,
            **extra,
        },
        status_code=status_code,
    )


def _form_data(**fields: Optional[str]) -> dict[str, str]:
    # Omitted inputs stay absent so the validator reports them as required.
    return {name: value for name, value in fields.items() if value is not None}


# ---------------------------------------------------------------------------
# GET / -- home
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    user = try_get_current_user(request)
    return _render(request, "home.html", home_payload(user), user=user)


# ---------------------------------------------------------------------------
# Login / registration / logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login form."""
    if try_get_current_user(request) is not None:
        return RedirectResponse("/dashboard", status_code=302)

    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""), None)
    return _render(
        request,
        "auth/login.html",
        {},
        error_msg=error_msg,
        errors={},
        old={},
        next_url=_safe_next(request.query_params.get("next")),
    )


@limiter.limit(_settings.login_rate_limit)
@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
) -> HTMLResponse:
    """Handle the login form submission."""
    next_url = _safe_next(request.query_params.get("next"))
    try:
        credentials = validate_login(_form_data(email=email, password=password))
    except ValidationFailure as exc:
        return _render(
            request,
            "auth/login.html",
            {},
            errors=exc.messages_by_field(),
            old={"email": email or ""},
            next_url=next_url,
        )

    user_store: UserStore = request.app.state.user_store
    user = sign_in(user_store, credentials)
    if user is None:
        query = urlencode({"error": "bad_credentials", "next": next_url}, safe="/")
        return RedirectResponse(f"/login?{query}", status_code=302)
    logger.info("User %s signed in", user.id)
    return _signed_in_redirect(user, next_url)


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    """Render the registration form."""
    if not _settings.self_registration_enabled:
        return RedirectResponse("/login?error=registration_disabled", status_code=302)
    if try_get_current_user(request) is not None:
        return RedirectResponse("/dashboard", status_code=302)
    return _render(request, "auth/register.html", {}, errors={}, old={})


@limiter.limit(_settings.register_rate_limit)
@router.post("/register", response_class=HTMLResponse)
def register_post(
    request: Request,
    full_name: Optional[str] = Form(None, alias="fullName"),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    password_confirmation: Optional[str] = Form(None, alias="passwordConfirmation"),
) -> HTMLResponse:
    """Create an account from the registration form and sign it in.

    Validation errors and an already-registered email both re-render the
    form with the offending fields marked.
    """
    if not _settings.self_registration_enabled:
        return RedirectResponse("/login?error=registration_disabled", status_code=302)

    old = {"fullName": full_name or "", "email": email or ""}
    try:
        registration = validate_registration(
            _form_data(
                fullName=full_name,
                email=email,
                password=password,
                passwordConfirmation=password_confirmation,
            )
        )
    except ValidationFailure as exc:
        return _render(request, "auth/register.html", {}, errors=exc.messages_by_field(), old=old)

    user_store: UserStore = request.app.state.user_store
    try:
        user = register_account(user_store, registration)
    except DuplicateAccountError:
        return _render(
            request,
            "auth/register.html",
            {},
            errors={"email": [_DUPLICATE_EMAIL_MESSAGE]},
            old=old,
        )
    return _signed_in_redirect(user, "/dashboard")


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the JWT cookie and redirect to the login page."""
    resp = RedirectResponse("/login", status_code=302)
    resp.delete_cookie(COOKIE_NAME)
    return resp


# ---------------------------------------------------------------------------
# Signed-in pages
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    ctx = _require_context(request)
    if isinstance(ctx, RedirectResponse):
        return ctx
    user = load_user_with_roles(ctx.user, ctx.store, ctx.log)
    return _render(request, "dashboard.html", dashboard_payload(user), user=user)


@router.get("/evaluations", response_class=HTMLResponse)
def evaluations(request: Request) -> HTMLResponse:
    """Evaluations awaiting grading. Students get the 403 page."""
    ctx = _require_context(request)
    if isinstance(ctx, RedirectResponse):
        return ctx
    if not has_any_role(ctx, set(EVALUATOR_ROLES)):
        return _render(request, "errors/403.html", {}, user=ctx.user, status_code=403)
    return _render(request, "evaluations/index.html", evaluations_payload(), user=ctx.user)


@router.post("/user/account/accept-terms")
def accept_terms(request: Request) -> RedirectResponse:
    """Store the configured terms version on the user and go back to the dashboard."""
    ctx = _require_context(request)
    if isinstance(ctx, RedirectResponse):
        return ctx
    ctx.store.accept_terms(ctx.user.id, _settings.terms_version)
    ctx.log.info("User %s accepted terms version %r", ctx.user.id, _settings.terms_version)
    return RedirectResponse("/dashboard", status_code=303)


# ---------------------------------------------------------------------------
# Informational pages
# ---------------------------------------------------------------------------


def _static(request: Request, name: str) -> HTMLResponse:
    user = try_get_current_user(request)
    return _render(request, f"pages/{name}.html", static_page(name), user=user)


@router.get("/about", response_class=HTMLResponse)
def about(request: Request) -> HTMLResponse:
    return _static(request, "about")


@router.get("/contact", response_class=HTMLResponse)
def contact(request: Request) -> HTMLResponse:
    return _static(request, "contact")


@router.get("/privacy", response_class=HTMLResponse)
def privacy(request: Request) -> HTMLResponse:
    return _static(request, "privacy")
