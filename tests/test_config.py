"""
Tests for settings and the composition root.
"""

import pytest

from onemployment.auth.errors import ConfigurationError
from onemployment.auth.identity_service import IdentityService
from onemployment.config import Settings
from onemployment.container import create_bearer_authenticator, create_identity_service


class TestSettings:
    """Test settings defaults and environment loading."""

    def test_defaults(self, monkeypatch):
        for name in ("ENVIRONMENT", "BCRYPT_ROUNDS", "JWT_SECRET", "JWT_LIFETIME_SECONDS", "LOG_LEVEL"):
            monkeypatch.delenv(f"ONEMPLOYMENT_{name}", raising=False)

        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.bcrypt_rounds == 12
        assert settings.jwt_secret is None
        assert settings.jwt_issuer == "onemployment-auth"
        assert settings.jwt_audience == "onemployment-api"
        assert settings.jwt_lifetime_seconds == 8 * 60 * 60

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ONEMPLOYMENT_BCRYPT_ROUNDS", "10")
        monkeypatch.setenv("ONEMPLOYMENT_ENVIRONMENT", "production")
        monkeypatch.setenv("ONEMPLOYMENT_JWT_SECRET", "from-the-environment")

        settings = Settings(_env_file=None)

        assert settings.bcrypt_rounds == 10
        assert settings.is_production
        assert settings.jwt_secret == "from-the-environment"

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_rejects_bad_rounds(self, rounds):
        with pytest.raises(ValueError):
            Settings(bcrypt_rounds=rounds)

    @pytest.mark.parametrize("environment, level", [
        ("production", "WARNING"),
        ("test", "ERROR"),
        ("development", "DEBUG"),
    ])
    def test_log_level_per_environment(self, environment, level):
        assert Settings(environment=environment, log_level=None).effective_log_level() == level

    def test_explicit_log_level(self):
        assert Settings(environment="production", log_level="info").effective_log_level() == "INFO"


class TestContainer:
    """Test service wiring."""

    def test_create_identity_service(self, settings):
        service = create_identity_service(settings)

        assert isinstance(service, IdentityService)
        registered, token = service.register(
            email="a@x.com",
            password="Secret123",
            username="bob",
            first_name="Alice",
            last_name="Smith",
        )
        assert service.login("a@x.com", "Secret123").identity.user_id == registered.user_id

        authenticator = create_bearer_authenticator(settings)
        assert authenticator.authenticate(f"Bearer {token}").user_id == registered.user_id

    def test_production_without_secret_fails(self, tmp_path):
        settings = Settings(
            environment="production",
            jwt_secret=None,
            database_path=tmp_path / "users.db",
        )
        with pytest.raises(ConfigurationError):
            create_identity_service(settings)
