"""
auth/validators.py -- Input validation for the login and registration forms.

Two entry points, each taking the raw (untyped) form or JSON payload:

  validate_login(data)         -> LoginRequest
  validate_registration(data)  -> RegistrationRequest

Both either return a normalized Pydantic model or raise ValidationFailure
listing EVERY offending field. Pydantic already collects all field errors
in one pass; the only cross-field rule (password confirmation) is checked
outside the model so that it is reported together with any length error on
the same field rather than being skipped when the field itself fails.

Email normalization rule (normalize_email):
  1. surrounding whitespace is stripped
  2. email-validator parses the address (syntax only, no DNS) and returns
     its normalized form: domain lowercased, local part case preserved
  3. gmail.com / googlemail.com only: local part lowercased, dots and any
     +tag removed, domain rewritten to gmail.com; an address with nothing
     left before the @ after that (e.g. "+news@gmail.com") is rejected

These functions are pure. A failed validation is an expected user-input
condition and is never logged as an error.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator
from pydantic_core import PydanticCustomError

_CANONICAL_GMAIL = "gmail.com"
_GMAIL_DOMAINS = {"gmail.com", "googlemail.com"}

# Pydantic error type -> violation kind reported to the form.
_KIND_BY_ERROR_TYPE: dict[str, str] = {
    "missing": "required",
    "string_type": "string",
    "string_too_short": "min_length",
    "string_too_long": "max_length",
    "email": "email",
    "model_type": "object",
    "dict_type": "object",
}


# ---------------------------------------------------------------------------
# Failure type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldViolation:
    """One violated rule on one input field.

    field uses the wire name ("fullName", "passwordConfirmation"), not the
    Python attribute name, so forms can attach the message to the right input.
    """

    field: str
    kind: str  # required | string | min_length | max_length | email | confirmed
    message: str


class ValidationFailure(ValueError):
    """Raised when a login or registration payload is rejected."""

    def __init__(self, violations: list[FieldViolation]) -> None:
        self.violations = list(violations)
        summary = ", ".join(f"{v.field}:{v.kind}" for v in self.violations)
        super().__init__(f"Validation failed ({summary})")

    def fields(self) -> set[str]:
        return {v.field for v in self.violations}

    def kinds(self, field: str) -> list[str]:
        return [v.kind for v in self.violations if v.field == field]

    def messages_by_field(self) -> dict[str, list[str]]:
        """Group messages per field for template rendering."""
        grouped: dict[str, list[str]] = {}
        for v in self.violations:
            grouped.setdefault(v.field, []).append(v.message)
        return grouped

    def as_dicts(self) -> list[dict[str, str]]:
        return [asdict(v) for v in self.violations]


# ---------------------------------------------------------------------------
# Email normalization
# ---------------------------------------------------------------------------


def normalize_email(value: str) -> str:
    """Return the canonical form of an email address.

    Raises email_validator.EmailNotValidError (a ValueError) when the address
    is syntactically invalid, or when a Gmail address has no mailbox name
    once its +tag and dots are removed.
    """
    result = validate_email(value.strip(), check_deliverability=False)
    if result.domain.lower() in _GMAIL_DOMAINS:
        local = result.local_part.split("+", 1)[0].replace(".", "").lower()
        if not local:
            raise EmailNotValidError("There must be a mailbox name before the +tag of a Gmail address.")
        return f"{local}@{_CANONICAL_GMAIL}"
    return result.normalized


def _strip(value: Any) -> Any:
    # Non-strings pass through untouched so the strict str check reports them.
    return value.strip() if isinstance(value, str) else value


def _checked_email(value: str) -> str:
    try:
        return normalize_email(value)
    except EmailNotValidError as exc:
        raise PydanticCustomError(
            "email",
            "The email field must be a valid email address ({reason})",
            {"reason": str(exc)},
        ) from exc


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Normalized login payload. Build it through validate_login()."""

    model_config = ConfigDict(strict=True, frozen=True)

    email: StrictStr = Field(max_length=255)
    # Presence only -- the login path does not judge password strength.
    password: StrictStr = Field(min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _checked_email(value)


class RegistrationRequest(BaseModel):
    """Normalized registration payload. Build it through validate_registration().

    passwordConfirmation is not a field: it is only compared against
    password and then discarded.
    """

    model_config = ConfigDict(strict=True, frozen=True, populate_by_name=True)

    full_name: StrictStr = Field(alias="fullName", min_length=2, max_length=255)
    email: StrictStr = Field(max_length=255)
    password: StrictStr = Field(min_length=8, max_length=255)

    @field_validator("full_name", "email", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _checked_email(value)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _violations_from(exc: ValidationError) -> list[FieldViolation]:
    violations = []
    for err in exc.errors():
        loc = err.get("loc") or ()
        violations.append(
            FieldViolation(
                field=str(loc[0]) if loc else "input",
                kind=_KIND_BY_ERROR_TYPE.get(err["type"], err["type"]),
                message=err["msg"],
            )
        )
    return violations


def validate_login(data: Any) -> LoginRequest:
    """Validate a login payload ({email, password}).

    Returns LoginRequest with the normalized email and the password exactly
    as submitted. Raises ValidationFailure otherwise.
    """
    try:
        return LoginRequest.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure(_violations_from(exc)) from None


def validate_registration(data: Any) -> RegistrationRequest:
    """Validate a registration payload ({fullName, email, password, passwordConfirmation}).

    All violations are collected before raising: a password that is both
    too short and unconfirmed yields both a min_length and a confirmed
    violation on "password".
    """
    violations: list[FieldViolation] = []
    request: RegistrationRequest | None = None
    try:
        request = RegistrationRequest.model_validate(data)
    except ValidationError as exc:
        violations.extend(_violations_from(exc))

    if isinstance(data, Mapping) and data.get("password") != data.get("passwordConfirmation"):
        violations.append(
            FieldViolation(
                field="password",
                kind="confirmed",
                message="The password field and passwordConfirmation field must be the same",
            )
        )

    if violations or request is None:
        raise ValidationFailure(violations)
    return request
