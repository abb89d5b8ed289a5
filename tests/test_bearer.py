"""
Unit tests for bearer header authentication.
"""

from datetime import datetime, timedelta, timezone

import pytest

from onemployment.auth.bearer import BearerAuthenticator
from onemployment.auth.errors import UnauthorizedError
from onemployment.auth.jwt_handler import JWTHandler

from .conftest import TEST_SECRET


@pytest.fixture
def authenticator(tokens):
    return BearerAuthenticator(tokens)


class TestAuthenticate:
    """Test Authorization header handling."""

    def test_valid_header(self, authenticator, tokens, identity):
        context = authenticator.authenticate(f"Bearer {tokens.issue(identity)}")

        assert context.user_id == identity.user_id
        assert context.email == identity.email
        assert context.username == identity.username

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic dXNlcjpwYXNz", "bearer abc"])
    def test_missing_token(self, authenticator, header):
        with pytest.raises(UnauthorizedError) as exc_info:
            authenticator.authenticate(header)
        assert exc_info.value.message == "No token provided"

    def test_invalid_token(self, authenticator):
        with pytest.raises(UnauthorizedError) as exc_info:
            authenticator.authenticate("Bearer not-a-jwt")
        assert exc_info.value.message == "Invalid or expired token"

    def test_expired_token(self, authenticator, identity):
        old = JWTHandler(TEST_SECRET, clock=lambda: datetime.now(timezone.utc) - timedelta(hours=9))

        with pytest.raises(UnauthorizedError) as exc_info:
            authenticator.authenticate(f"Bearer {old.issue(identity)}")
        assert exc_info.value.message == "Invalid or expired token"

    def test_oversized_token(self, authenticator):
        with pytest.raises(UnauthorizedError) as exc_info:
            authenticator.authenticate("Bearer " + "a" * 10000)
        assert exc_info.value.message == "Invalid or expired token"
