"""
Unit tests for JWT issuance and validation.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from onemployment.auth.errors import ConfigurationError, UnauthorizedError
from onemployment.auth.jwt_handler import (
    DEVELOPMENT_SECRET_KEY,
    JWTHandler,
    TokenIssuer,
)
from onemployment.config import Settings

from .conftest import TEST_SECRET


def _shifted_clock(delta: timedelta):
    return lambda: datetime.now(timezone.utc) + delta


class TestIssueAndValidate:
    """Test the happy path."""

    def test_is_token_issuer(self, tokens):
        assert isinstance(tokens, TokenIssuer)

    def test_round_trip(self, tokens, identity):
        """Validated claims match the source identity."""
        payload = tokens.validate(tokens.issue(identity))

        assert payload.user_id == identity.user_id
        assert payload.email == identity.email
        assert payload.username == identity.username
        assert payload.issuer == "onemployment-auth"
        assert payload.audience == "onemployment-api"

    def test_lifetime_is_eight_hours(self, tokens, identity):
        payload = tokens.validate(tokens.issue(identity))
        assert payload.expires_at - payload.issued_at == timedelta(hours=8)

    def test_configured_lifetime(self, settings, identity):
        settings.jwt_lifetime_seconds = 60
        handler = JWTHandler.from_settings(settings)

        payload = handler.validate(handler.issue(identity))
        assert payload.expires_at - payload.issued_at == timedelta(seconds=60)

    def test_claims_on_the_wire(self, tokens, identity):
        claims = jwt.decode(tokens.issue(identity), options={"verify_signature": False})

        assert claims["sub"] == identity.user_id
        assert claims["iss"] == "onemployment-auth"
        assert claims["aud"] == "onemployment-api"
        assert {"iat", "nbf", "exp", "email", "username"} <= set(claims)


class TestRejection:
    """Every rejection collapses to the same error message."""

    def _assert_rejected(self, handler, token):
        with pytest.raises(UnauthorizedError) as exc_info:
            handler.validate(token)
        assert exc_info.value.message == "Invalid or expired token"

    def test_expired(self, identity):
        """Scenario: token past its expiry fails validation but can be peeked."""
        issued_long_ago = JWTHandler(TEST_SECRET, clock=_shifted_clock(timedelta(hours=-9)))
        handler = JWTHandler(TEST_SECRET)

        token = issued_long_ago.issue(identity)

        self._assert_rejected(handler, token)
        claims = handler.peek(token)
        assert claims["sub"] == identity.user_id
        assert claims["email"] == identity.email
        assert claims["username"] == identity.username

    def test_not_yet_valid(self, identity):
        issued_in_future = JWTHandler(TEST_SECRET, clock=_shifted_clock(timedelta(hours=1)))
        self._assert_rejected(JWTHandler(TEST_SECRET), issued_in_future.issue(identity))

    def test_bad_signature(self, identity):
        other = JWTHandler("another-secret-key-with-at-least-32-bytes")
        self._assert_rejected(JWTHandler(TEST_SECRET), other.issue(identity))

    def test_tampered_payload(self, tokens, identity):
        header, _, signature = tokens.issue(identity).split(".")
        forged_claims = jwt.encode({"sub": "someone-else"}, "x" * 32, algorithm="HS256").split(".")[1]

        self._assert_rejected(tokens, f"{header}.{forged_claims}.{signature}")

    def test_wrong_issuer(self, identity):
        other = JWTHandler(TEST_SECRET, issuer="someone-else")
        self._assert_rejected(JWTHandler(TEST_SECRET), other.issue(identity))

    def test_wrong_audience(self, identity):
        other = JWTHandler(TEST_SECRET, audience="another-api")
        self._assert_rejected(JWTHandler(TEST_SECRET), other.issue(identity))

    def test_missing_claims(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "user-1",
                "iss": "onemployment-auth",
                "aud": "onemployment-api",
                "iat": now,
                "exp": now + timedelta(hours=1),
            },
            TEST_SECRET,
            algorithm="HS256",
        )
        self._assert_rejected(tokens, token)

    def test_unsigned_token(self, tokens, identity):
        claims = jwt.decode(tokens.issue(identity), options={"verify_signature": False})
        token = jwt.encode(claims, None, algorithm="none")
        self._assert_rejected(tokens, token)

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c", "a.b", None, 42])
    def test_malformed(self, tokens, token):
        self._assert_rejected(tokens, token)

    def test_no_revocation(self, tokens, identity):
        """The same token stays valid on repeated use."""
        token = tokens.issue(identity)
        for _ in range(3):
            assert tokens.validate(token).user_id == identity.user_id


class TestPeek:
    """Test unverified decoding."""

    def test_peek_ignores_signature(self, identity):
        token = JWTHandler("another-secret-key-with-at-least-32-bytes").issue(identity)
        assert JWTHandler(TEST_SECRET).peek(token)["sub"] == identity.user_id

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_peek_garbage_returns_none(self, tokens, token):
        assert tokens.peek(token) is None


class TestFromSettings:
    """Test signing key selection."""

    def test_production_requires_secret(self):
        settings = Settings(environment="production", jwt_secret=None)
        with pytest.raises(ConfigurationError):
            JWTHandler.from_settings(settings)

    def test_production_with_secret(self):
        settings = Settings(environment="production", jwt_secret=TEST_SECRET)
        assert JWTHandler.from_settings(settings).secret_key == TEST_SECRET

    @pytest.mark.parametrize("environment", ["development", "test"])
    def test_non_production_falls_back_to_development_key(self, environment):
        settings = Settings(environment=environment, jwt_secret=None)
        assert JWTHandler.from_settings(settings).secret_key == DEVELOPMENT_SECRET_KEY

    def test_empty_secret_rejected(self):
        with pytest.raises(ConfigurationError):
            JWTHandler("")
