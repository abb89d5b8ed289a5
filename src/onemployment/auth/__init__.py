"""
Authentication and identity module for onemployment.

Provides local registration/login with bcrypt password hashing, stateless
JWT bearer tokens and username conflict resolution.
"""

from .models import (
    AuthResult,
    EmailAvailability,
    Identity,
    UsernameAvailability,
)
from .errors import (
    ConfigurationError,
    ConflictError,
    DuplicateIdentityError,
    IdentityError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
)
from .database import IdentityStore, UserDatabase
from .password import PasswordHasher, BcryptHasher
from .jwt_handler import JWTHandler, TokenIssuer, TokenPayload
from .suggestions import UsernameSuggestionEngine
from .identity_service import IdentityService
from .bearer import AuthContext, BearerAuthenticator

__all__ = [
    # Models
    "AuthResult",
    "EmailAvailability",
    "Identity",
    "UsernameAvailability",
    # Errors
    "ConfigurationError",
    "ConflictError",
    "DuplicateIdentityError",
    "IdentityError",
    "InternalError",
    "InvalidInputError",
    "NotFoundError",
    "StorageError",
    "UnauthorizedError",
    # Storage
    "IdentityStore",
    "UserDatabase",
    # Credentials and tokens
    "PasswordHasher",
    "BcryptHasher",
    "JWTHandler",
    "TokenIssuer",
    "TokenPayload",
    # Services
    "UsernameSuggestionEngine",
    "IdentityService",
    "AuthContext",
    "BearerAuthenticator",
]
