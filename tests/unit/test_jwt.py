"""JWT creation and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from elp.auth.jwt import create_access_token, create_refresh_token, verify_token
from elp.config import get_settings


class TestTokens:
    def test_access_token_round_trip(self):
        payload = verify_token(create_access_token(42, "a@example.com"))
        assert payload["sub"] == "42"
        assert payload["email"] == "a@example.com"
        assert payload["type"] == "access"

    def test_refresh_token_carries_jti(self):
        token = create_refresh_token(42, "a@example.com", token_id="abc-123")
        payload = verify_token(token, expected_type="refresh")
        assert payload["jti"] == "abc-123"

    def test_type_mismatch_rejected(self):
        token = create_refresh_token(42, "a@example.com", token_id="abc")
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token, expected_type="access")

    def test_expired_token_rejected(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "1", "iat": past, "exp": past + timedelta(minutes=1), "iss": settings.jwt_issuer, "type": "access"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_secret_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "1", "iss": settings.jwt_issuer, "type": "access"},
            "some-other-secret-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_wrong_issuer_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "1", "iss": "someone-else", "type": "access"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
