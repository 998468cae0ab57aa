"""Unit tests for core/config.py -- SECRET_KEY policy and field limits."""

import pytest

from core.config import Settings

_KEY = "k" * 32


def test_production_requires_secret_key():
    with pytest.raises(ValueError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_debug_generates_secret_key():
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_short_secret_key_rejected():
    with pytest.raises(ValueError, match="at least 32 characters"):
        Settings(debug=False, secret_key="too-short")


def test_terms_version_fits_column():
    with pytest.raises(ValueError, match="20 characters"):
        Settings(secret_key=_KEY, terms_version="x" * 21)


def test_defaults():
    settings = Settings(secret_key=_KEY)
    assert settings.token_expire_seconds == 3600
    assert settings.login_rate_limit == "5/minute"
    assert settings.register_rate_limit == "3/minute"
    assert settings.self_registration_enabled is True
