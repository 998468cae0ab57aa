"""
auth/accounts.py -- Account creation and sign-in bookkeeping.

Both the HTML form (web/routes.py) and the JSON API (api/routes/v1/auth.py)
register and sign users in through these functions, so the two surfaces
cannot drift apart. Callers must validate first: these functions accept only
the normalized models produced by auth.validators.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.roles import DEFAULT_ROLE
from auth.store import UserStore
from auth.tokens import authenticate_user, hash_password
from auth.validators import LoginRequest, RegistrationRequest

logger = logging.getLogger("edonis.auth")


class DuplicateAccountError(ValueError):
    """Raised when the normalized email is already registered."""


def register_account(store: UserStore, registration: RegistrationRequest) -> User:
    """Create an active account with the default role and return it.

    Raises DuplicateAccountError if the email is taken, including when a
    concurrent request inserts the same email first (UNIQUE constraint).
    """
    if store.get_by_email(registration.email) is not None:
        raise DuplicateAccountError(registration.email)
    try:
        user_id = store.create_user(
            User(
                email=registration.email,
                full_name=registration.full_name,
                hashed_password=hash_password(registration.password),
            )
        )
    except IntegrityError as exc:
        raise DuplicateAccountError(registration.email) from exc

    store.assign_role(user_id, DEFAULT_ROLE)
    logger.info("Registered account %s", user_id)
    return store.get_by_id(user_id)


def sign_in(store: UserStore, credentials: LoginRequest) -> User | None:
    """Check credentials and stamp last_login_at. Returns None on any failure."""
    user = authenticate_user(store, credentials.email, credentials.password)
    if user is None:
        return None
    store.update_last_login(user.id)
    return store.get_by_id(user.id)
