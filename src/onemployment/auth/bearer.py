"""
Bearer token authentication for transports.

Turns an ``Authorization`` header value into an authenticated context. It is
not tied to any web framework: the HTTP layer passes the raw header and maps
``UnauthorizedError`` to its own response.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .errors import UnauthorizedError
from .jwt_handler import INVALID_TOKEN_MESSAGE, TokenIssuer


BEARER_PREFIX = "Bearer "
NO_TOKEN_MESSAGE = "No token provided"

# JWTs issued here are well under 1KB
MAX_TOKEN_LENGTH = 8192


@dataclass
class AuthContext:
    """
    Caller identity after successful authentication.

    Contains the claims carried by the token; no lookup is performed.
    """
    user_id: str
    email: str
    username: str


class BearerAuthenticator:
    """Validates ``Authorization: Bearer <token>`` headers."""

    def __init__(self, tokens: TokenIssuer):
        """
        Initialize authenticator.

        Args:
            tokens: Token issuer used for validation
        """
        self.tokens = tokens

    def authenticate(self, authorization: Optional[str]) -> AuthContext:
        """
        Authenticate a request from its Authorization header.

        Args:
            authorization: Raw header value, None if the header was absent

        Returns:
            AuthContext for the token's subject

        Raises:
            UnauthorizedError: "No token provided" if the header is missing
                or not a bearer header, "Invalid or expired token" otherwise
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise UnauthorizedError(NO_TOKEN_MESSAGE)

        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise UnauthorizedError(NO_TOKEN_MESSAGE)

        if len(token) > MAX_TOKEN_LENGTH:
            logger.warning(f"Token too large: {len(token)} chars")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)

        payload = self.tokens.validate(token)
        logger.debug(f"User authenticated: {payload.username} ({payload.user_id})")

        return AuthContext(
            user_id=payload.user_id,
            email=payload.email,
            username=payload.username,
        )
