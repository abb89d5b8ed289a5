"""
Identity service.

Combines the identity store, password hashing, token issuance and username
suggestions into the registration, login and profile flows.
"""

import secrets
from contextlib import contextmanager
from typing import Iterator, List, Optional

from loguru import logger

from .database import IdentityStore
from .errors import (
    ConflictError,
    DuplicateIdentityError,
    IdentityError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
)
from .jwt_handler import TokenIssuer, TokenPayload
from .models import AuthResult, EmailAvailability, Identity, UsernameAvailability
from .password import PasswordHasher
from .suggestions import UsernameSuggestionEngine
from .validation import (
    is_reserved_username,
    sanitize_email,
    sanitize_name,
    validate_email,
    validate_username,
)


INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
EMAIL_TAKEN_MESSAGE = "Email already registered. Please sign in instead"
USERNAME_TAKEN_MESSAGE = "Username already taken"
USERNAME_RESERVED_MESSAGE = "Username is reserved and cannot be used"
USERNAME_FORMAT_MESSAGE = (
    "Username must be 1-39 characters, start and end with alphanumeric, "
    "and can contain hyphens"
)
EMAIL_FORMAT_MESSAGE = "Invalid email address"
USER_NOT_FOUND_MESSAGE = "User not found"

STANDALONE_SUGGESTION_COUNT = 5

# Sentinel so update_profile can tell "leave display name alone" from "clear it"
UNSET = object()


class IdentityService:
    """
    Registration, login and profile operations.

    All methods either return a domain result or raise an ``IdentityError``
    subclass. Storage, hashing and signing failures surface as
    ``InternalError`` without collaborator detail in the message.
    """

    def __init__(
        self,
        store: IdentityStore,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        suggestions: UsernameSuggestionEngine,
    ):
        """
        Initialize service.

        Args:
            store: Identity persistence
            hasher: Password hasher
            tokens: Token issuer
            suggestions: Username suggestion engine
        """
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.suggestions = suggestions

        # Digest for login attempts that have no stored hash to check
        self._dummy_hash = self._hash_password(secrets.token_urlsafe(16))

    # ========================================================================
    # Collaborator guards
    # ========================================================================

    @contextmanager
    def _storage(self, action: str) -> Iterator[None]:
        try:
            yield
        except StorageError as e:
            logger.error(f"Storage failure during {action}: {e}")
            raise InternalError() from e

    def _hash_password(self, password: str) -> str:
        try:
            return self.hasher.hash(password)
        except IdentityError:
            raise
        except Exception as e:
            logger.error(f"Password hashing failed: {e}")
            raise InternalError() from e

    def _issue_token(self, identity: Identity) -> str:
        try:
            return self.tokens.issue(identity)
        except IdentityError:
            raise
        except Exception as e:
            logger.error(f"Token signing failed for {identity.user_id}: {e}")
            raise InternalError() from e

    def _burn_verification(self, password: str) -> None:
        """Spend one verification's worth of time when there is no hash to check."""
        self.hasher.verify(password, self._dummy_hash)

    # ========================================================================
    # Registration and login
    # ========================================================================

    def register(
        self,
        email: str,
        password: str,
        username: str,
        first_name: str,
        last_name: str,
    ) -> AuthResult:
        """
        Register a local account and issue its first token.

        Checks run in order and stop at the first problem: username and
        email format, reserved username, email taken, username taken.

        Args:
            email: Email address (compared and stored lowercased)
            password: Plain text password
            username: Requested username
            first_name: Given name
            last_name: Family name

        Returns:
            AuthResult with the persisted identity and its token

        Raises:
            InvalidInputError: If the username or email is malformed, or the
                username is reserved
            ConflictError: If the email or username is already taken
            InternalError: On storage, hashing or signing failure
        """
        email = sanitize_email(email)

        if not validate_username(username):
            raise InvalidInputError(USERNAME_FORMAT_MESSAGE)
        if not validate_email(email):
            raise InvalidInputError(EMAIL_FORMAT_MESSAGE)

        if is_reserved_username(username):
            raise InvalidInputError(USERNAME_RESERVED_MESSAGE)

        with self._storage("registration"):
            if self.store.is_email_taken(email):
                raise ConflictError(EMAIL_TAKEN_MESSAGE)

            if self.store.is_username_taken(username):
                raise ConflictError(USERNAME_TAKEN_MESSAGE)

        password_hash = self._hash_password(password)

        with self._storage("registration"):
            try:
                identity = self.store.create_user(
                    email=email,
                    username=username,
                    password_hash=password_hash,
                    first_name=sanitize_name(first_name),
                    last_name=sanitize_name(last_name),
                    account_creation_method="local",
                )
            except DuplicateIdentityError as e:
                # Lost a race with a concurrent registration
                if e.field == "username":
                    raise ConflictError(USERNAME_TAKEN_MESSAGE) from None
                raise ConflictError(EMAIL_TAKEN_MESSAGE) from None

        token = self._issue_token(identity)
        logger.info(f"Registered user {identity.username} ({identity.user_id})")

        return AuthResult(identity, token)

    def login(self, email: str, password: str) -> AuthResult:
        """
        Authenticate with email and password.

        Unknown email, federated-only account and wrong password all raise
        the same error after the same amount of hashing work.

        Args:
            email: Email address (case-insensitive)
            password: Plain text password

        Returns:
            AuthResult with the identity as updated by the login

        Raises:
            UnauthorizedError: If the credentials are not accepted
            InternalError: On storage or signing failure
        """
        email = sanitize_email(email)

        with self._storage("login"):
            identity = self.store.find_by_email(email)

        if identity is None or not identity.has_local_credential:
            self._burn_verification(password)
            reason = "no such account" if identity is None else "no local credential"
            logger.warning(f"Login failed for {email}: {reason}")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        if not self.hasher.verify(password, identity.password_hash):
            logger.warning(f"Login failed for {email}: wrong password")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        with self._storage("login"):
            updated = self.store.update_last_login(identity.user_id)

        if updated is None:
            logger.warning(f"Login failed for {email}: account removed during login")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        token = self._issue_token(updated)
        logger.info(f"User logged in: {updated.username} ({updated.user_id})")

        return AuthResult(updated, token)

    def verify_token(self, token: str) -> TokenPayload:
        """
        Verify a bearer token.

        Raises:
            UnauthorizedError: If the token is invalid or expired
        """
        return self.tokens.validate(token)

    # ========================================================================
    # Availability and suggestions
    # ========================================================================

    def validate_username(self, candidate: str) -> UsernameAvailability:
        """
        Check whether a username can be registered.

        Format, reserved words and uniqueness are checked in that order.
        Suggestions are derived from the raw candidate, even a malformed one.

        Args:
            candidate: Requested username

        Returns:
            UsernameAvailability, with suggestions only when unavailable
        """
        if not validate_username(candidate):
            logger.debug(f"Username '{candidate}' rejected: format")
        elif is_reserved_username(candidate):
            logger.debug(f"Username '{candidate}' rejected: reserved")
        elif not self.suggestions.is_available(candidate):
            logger.debug(f"Username '{candidate}' rejected: taken")
        else:
            return UsernameAvailability(available=True)

        return UsernameAvailability(
            available=False,
            suggestions=self.suggestions.suggest(candidate),
        )

    def validate_email(self, email: str) -> EmailAvailability:
        """
        Check whether an email address can be registered.

        Args:
            email: Email address

        Returns:
            EmailAvailability
        """
        email = sanitize_email(email)
        if not validate_email(email):
            return EmailAvailability(available=False)

        with self._storage("email check"):
            taken = self.store.is_email_taken(email)

        return EmailAvailability(available=not taken)

    def suggest_usernames(self, base: str) -> List[str]:
        """Up to five available usernames derived from ``base``."""
        return self.suggestions.suggest(base, STANDALONE_SUGGESTION_COUNT)

    # ========================================================================
    # Profile
    # ========================================================================

    def get_profile(self, user_id: str) -> Identity:
        """
        Get an identity by id.

        Raises:
            NotFoundError: If the identity does not exist
        """
        with self._storage("profile lookup"):
            identity = self.store.find_by_id(user_id)

        if identity is None:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        return identity

    def update_profile(
        self,
        user_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        display_name=UNSET,
    ) -> Identity:
        """
        Update profile fields, normalizing whitespace in the supplied names.

        Args:
            user_id: Identity id
            first_name: New given name, None to keep
            last_name: New family name, None to keep
            display_name: New display name, None to clear, omitted to keep

        Returns:
            The updated Identity

        Raises:
            NotFoundError: If the identity does not exist
        """
        updates = {}
        if first_name is not None:
            updates["first_name"] = sanitize_name(first_name)
        if last_name is not None:
            updates["last_name"] = sanitize_name(last_name)
        if display_name is not UNSET:
            updates["display_name"] = sanitize_name(display_name) if display_name else None

        with self._storage("profile update"):
            identity = self.store.update_profile(user_id, **updates)

        if identity is None:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        return identity
