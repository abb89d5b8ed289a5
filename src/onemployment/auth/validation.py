"""
Input validation and normalization for identity fields.

The transport layer validates request shapes; these helpers are the subset
the identity core re-checks or needs for normalization.
"""

import re
from typing import FrozenSet, List


RESERVED_USERNAMES: FrozenSet[str] = frozenset({
    # Infrastructure
    "admin", "api", "www", "mail", "ftp", "localhost", "root",
    # Site pages
    "support", "help", "info", "contact", "about", "terms", "privacy",
    "legal", "blog", "news", "app", "mobile", "web", "test", "demo",
    # Literals that confuse clients
    "null", "undefined", "true", "false",
    # Brand and product words
    "onemployment", "employment", "job", "jobs", "career", "careers",
    "hire", "hiring", "recruit", "recruiting",
})

USERNAME_MAX_LENGTH = 39
EMAIL_MAX_LENGTH = 255
NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100

# Starts and ends alphanumeric, hyphens allowed in between
_USERNAME_RE = re.compile(r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,37}[a-zA-Z0-9])?")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_NAME_RE = re.compile(r"[a-zA-Z\s\-'.]+")
_WHITESPACE_RE = re.compile(r"\s+")


def is_reserved_username(username: str) -> bool:
    return username.lower() in RESERVED_USERNAMES


def validate_username(username: str) -> bool:
    """
    Check username format: 1-39 characters, alphanumeric and inner hyphens.

    Args:
        username: Candidate username

    Returns:
        True if the format is acceptable
    """
    if not username or len(username) > USERNAME_MAX_LENGTH:
        return False
    return _USERNAME_RE.fullmatch(username) is not None


def sanitize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(email: str) -> bool:
    return len(email) <= EMAIL_MAX_LENGTH and _EMAIL_RE.fullmatch(email) is not None


def validate_name(name: str) -> bool:
    """Letters, spaces, hyphens, apostrophes and dots; 1-100 characters."""
    if not name or len(name) > NAME_MAX_LENGTH:
        return False
    return _NAME_RE.fullmatch(name) is not None and bool(name.strip())


def sanitize_name(name: str) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    return _WHITESPACE_RE.sub(" ", name.strip())


def check_password_complexity(password: str) -> List[str]:
    """
    List every complexity rule a password breaks.

    Args:
        password: Plain text password

    Returns:
        Human-readable problems, empty if the password is acceptable
    """
    if not password:
        return ["Password is required"]

    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be no more than {PASSWORD_MAX_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one digit")

    return errors


def validate_password(password: str) -> bool:
    return not check_password_complexity(password)
