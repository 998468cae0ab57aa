"""Unit tests for auth/tokens.py -- password hashing and session JWTs."""

from jose import jwt

from auth.tokens import create_access_token, decode_access_token, hash_password, verify_password
from core.config import get_settings


class TestPasswords:
    def test_hash_verifies(self):
        hashed = hash_password("longenough1")
        assert hashed != "longenough1"
        assert verify_password("longenough1", hashed)
        assert not verify_password("longenough2", hashed)

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestAccessTokens:
    def test_round_trip(self):
        payload = decode_access_token(create_access_token(5, "ada@edonis.io"))
        assert payload["user_id"] == 5
        assert payload["sub"] == "ada@edonis.io"

    def test_tampered_token_rejected(self):
        header, _, signature = create_access_token(5, "ada@edonis.io").split(".")
        _, payload, _ = create_access_token(6, "eve@edonis.io").split(".")
        assert decode_access_token(f"{header}.{payload}.{signature}") is None

    def test_foreign_key_rejected(self):
        forged = jwt.encode({"sub": "ada@edonis.io", "user_id": 1}, "x" * 32, algorithm="HS256")
        assert decode_access_token(forged) is None

    def test_expired_token_rejected(self):
        token = jwt.encode(
            {"sub": "ada@edonis.io", "user_id": 1, "exp": 1},
            get_settings().secret_key,
            algorithm="HS256",
        )
        assert decode_access_token(token) is None
