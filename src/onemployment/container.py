"""
Composition root.

Builds the identity service and its collaborators from settings. Each call
creates fresh instances, so tests and separate apps never share state.
"""

from typing import Optional

from .auth.bearer import BearerAuthenticator
from .auth.database import UserDatabase
from .auth.identity_service import IdentityService
from .auth.jwt_handler import JWTHandler
from .auth.password import BcryptHasher
from .auth.suggestions import UsernameSuggestionEngine
from .config import Settings, get_settings
from .log import setup_logging


def create_identity_service(settings: Optional[Settings] = None) -> IdentityService:
    """
    Wire an IdentityService.

    Args:
        settings: Application settings, loaded from the environment if omitted

    Returns:
        Ready-to-use IdentityService

    Raises:
        ConfigurationError: If running in production without a JWT secret
    """
    settings = settings or get_settings()
    setup_logging(settings)

    tokens = JWTHandler.from_settings(settings)
    store = UserDatabase(settings.database_path)

    return IdentityService(
        store=store,
        hasher=BcryptHasher(settings.bcrypt_rounds),
        tokens=tokens,
        suggestions=UsernameSuggestionEngine(store),
    )


def create_bearer_authenticator(settings: Optional[Settings] = None) -> BearerAuthenticator:
    settings = settings or get_settings()
    return BearerAuthenticator(JWTHandler.from_settings(settings))
