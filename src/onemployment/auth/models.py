"""
Identity data models.

Data classes for accounts and the results returned by the identity service.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, NamedTuple, Optional


@dataclass
class Identity:
    """
    Account record.

    Attributes:
        user_id: Unique identifier (UUID string)
        email: Email address, stored lowercased
        username: Username, display case preserved
        password_hash: Bcrypt digest, None for federated-only accounts
        first_name: Given name
        last_name: Family name
        created_at: Account creation timestamp
        updated_at: Last modification timestamp
        display_name: Optional display name set after registration
        google_id: External identity link (unique when set)
        email_verified: Whether the email address was confirmed
        is_active: Whether the account is active
        account_creation_method: "local" or "google"
        last_login_at: Last successful login, None until the first one
        last_password_change: When the password hash was last set
    """
    user_id: str
    email: str
    username: str
    password_hash: Optional[str]
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime
    display_name: Optional[str] = None
    google_id: Optional[str] = None
    email_verified: bool = False
    is_active: bool = True
    account_creation_method: str = "local"
    last_login_at: Optional[datetime] = None
    last_password_change: Optional[datetime] = None

    @property
    def has_local_credential(self) -> bool:
        return bool(self.password_hash)


class AuthResult(NamedTuple):
    """Identity plus the bearer token minted for it."""
    identity: Identity
    token: str


@dataclass
class UsernameAvailability:
    """
    Result of a username check.

    Attributes:
        available: Whether the username can be registered
        suggestions: Alternatives, only present when unavailable
    """
    available: bool
    suggestions: Optional[List[str]] = None


@dataclass
class EmailAvailability:
    """Result of an email check."""
    available: bool
