"""
JWT token generation and validation.

Handles creation and verification of the bearer tokens handed out after a
successful registration or login. Tokens are stateless: validity depends
only on the signature, the issuer/audience labels and the time window.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass

import jwt
from loguru import logger

from ..config import Settings
from .errors import ConfigurationError, UnauthorizedError
from .models import Identity


ALGORITHM = "HS256"
DEFAULT_ISSUER = "onemployment-auth"
DEFAULT_AUDIENCE = "onemployment-api"
DEFAULT_LIFETIME = timedelta(hours=8)

# Only used outside production when no secret is configured
DEVELOPMENT_SECRET_KEY = "onemployment-development-secret-key-not-for-production"

INVALID_TOKEN_MESSAGE = "Invalid or expired token"

REQUIRED_CLAIMS = ["sub", "email", "username", "iss", "aud", "iat", "exp"]


@dataclass
class TokenPayload:
    """
    Decoded and verified token claims.

    Attributes:
        user_id: Identity id (``sub`` claim)
        email: Identity email at issuance
        username: Identity username at issuance
        issuer: ``iss`` claim
        audience: ``aud`` claim
        issued_at: ``iat`` claim
        expires_at: ``exp`` claim
    """
    user_id: str
    email: str
    username: str
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer(ABC):
    """Signs and verifies bearer tokens carrying identity claims."""

    @abstractmethod
    def issue(self, identity: Identity) -> str:
        """Mint a token for ``identity``."""

    @abstractmethod
    def validate(self, token: str) -> TokenPayload:
        """Return verified claims or raise ``UnauthorizedError``."""

    @abstractmethod
    def peek(self, token: str) -> Optional[Dict[str, Any]]:
        """Decode claims without any verification, None if undecodable."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JWTHandler(TokenIssuer):
    """
    JWT token handler.

    Creates and validates HS256 JWTs with a fixed lifetime from issuance.
    """

    def __init__(
        self,
        secret_key: str,
        issuer: str = DEFAULT_ISSUER,
        audience: str = DEFAULT_AUDIENCE,
        lifetime: timedelta = DEFAULT_LIFETIME,
        algorithm: str = ALGORITHM,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize handler.

        Args:
            secret_key: Secret key for signing tokens
            issuer: Value of the ``iss`` claim
            audience: Value of the ``aud`` claim
            lifetime: Time from issuance to expiry
            algorithm: JWT algorithm (default: HS256)
            clock: Source of the issuance time
        """
        if not secret_key:
            raise ConfigurationError("JWT secret key must not be empty")

        self.secret_key = secret_key
        self.issuer = issuer
        self.audience = audience
        self.lifetime = lifetime
        self.algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "JWTHandler":
        """
        Build a handler from application settings.

        Raises:
            ConfigurationError: If running in production without a secret
        """
        secret_key = settings.jwt_secret
        if not secret_key:
            if settings.is_production:
                raise ConfigurationError("JWT secret must be set in production")
            logger.warning("No JWT secret configured, using the development key")
            secret_key = DEVELOPMENT_SECRET_KEY

        return cls(
            secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            lifetime=timedelta(seconds=settings.jwt_lifetime_seconds),
            **kwargs,
        )

    def issue(self, identity: Identity) -> str:
        """
        Create a signed access token.

        Args:
            identity: Identity the token asserts

        Returns:
            JWT token string
        """
        now = self._clock()
        payload = {
            "sub": identity.user_id,
            "email": identity.email,
            "username": identity.username,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "nbf": now,
            "exp": now + self.lifetime,
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Access token issued for user {identity.user_id}")

        return token

    def validate(self, token: str) -> TokenPayload:
        """
        Verify and decode a token.

        Args:
            token: JWT token string

        Returns:
            TokenPayload with the verified claims

        Raises:
            UnauthorizedError: For any bad signature, wrong issuer or
                audience, expired or not-yet-valid token, or malformed
                input. The message is the same for all of them.
        """
        if not isinstance(token, str) or not token:
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": REQUIRED_CLAIMS},
            )
            return TokenPayload(
                user_id=payload["sub"],
                email=payload["email"],
                username=payload["username"],
                issuer=payload["iss"],
                audience=payload["aud"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )

        except jwt.ExpiredSignatureError:
            logger.debug("Token rejected: expired")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from None
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {type(e).__name__}: {e}")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from None
        except (TypeError, ValueError, OverflowError, OSError) as e:
            logger.debug(f"Token rejected: bad claim values: {e}")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from None

    def peek(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode token without verifying (for inspection only).

        Args:
            token: JWT token string

        Returns:
            Decoded payload dict, or None on error

        Warning:
            This method does NOT verify the signature or expiry.
            Never use the result for authorization decisions.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            logger.debug(f"Failed to decode token: {e}")
            return None

        return payload if isinstance(payload, dict) else None
