"""
Shared fixtures for identity tests.

Bcrypt runs at its minimum cost so the suite stays fast.
"""

from datetime import datetime, timezone

import pytest

from onemployment.auth.database import UserDatabase
from onemployment.auth.identity_service import IdentityService
from onemployment.auth.jwt_handler import JWTHandler
from onemployment.auth.models import Identity
from onemployment.auth.password import BcryptHasher
from onemployment.auth.suggestions import UsernameSuggestionEngine
from onemployment.config import Settings


TEST_SECRET = "test-secret-key-with-at-least-32-bytes!!"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        bcrypt_rounds=4,
        jwt_secret=TEST_SECRET,
        database_path=tmp_path / "users.db",
    )


@pytest.fixture
def db(settings):
    return UserDatabase(settings.database_path)


@pytest.fixture
def hasher():
    return BcryptHasher(rounds=4)


@pytest.fixture
def tokens(settings):
    return JWTHandler.from_settings(settings)


@pytest.fixture
def engine(db):
    return UsernameSuggestionEngine(db)


@pytest.fixture
def service(db, hasher, tokens, engine):
    return IdentityService(store=db, hasher=hasher, tokens=tokens, suggestions=engine)


@pytest.fixture
def identity():
    now = datetime.now(timezone.utc)
    return Identity(
        user_id="5f0c6a3e-8a0e-4f7d-9d51-2f7b1c3e9a10",
        email="ada@example.com",
        username="Ada",
        password_hash=None,
        first_name="Ada",
        last_name="Lovelace",
        created_at=now,
        updated_at=now,
    )
