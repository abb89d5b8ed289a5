"""
Identity error kinds.

Every failure the identity core reports to its callers is one of the
``IdentityError`` subclasses below. The transport layer maps ``kind`` to a
status code; ``message`` is safe to show to end users.
"""

from typing import Optional


class IdentityError(Exception):
    """
    Base class for errors returned by the identity core.

    Attributes:
        kind: Machine-readable error kind
        message: Caller-safe description
    """
    kind = "identity_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(IdentityError):
    """Input the caller can fix (e.g. a reserved username)."""
    kind = "invalid_input"


class ConflictError(IdentityError):
    """Email or username already taken."""
    kind = "conflict"


class UnauthorizedError(IdentityError):
    """
    Credential or token rejected.

    The message is deliberately generic across sub-causes.
    """
    kind = "unauthorized"


class NotFoundError(IdentityError):
    """Referenced identity does not exist."""
    kind = "not_found"


class InternalError(IdentityError):
    """
    Opaque collaborator failure (storage, hashing, signing).

    The original exception is kept as ``__cause__`` for logging only.
    """
    kind = "internal"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class ConfigurationError(Exception):
    """Raised at start-up when the deployment configuration is unusable."""


class StorageError(Exception):
    """Raised by identity stores when the backing database fails."""


class DuplicateIdentityError(StorageError):
    """
    Raised by identity stores when a uniqueness constraint rejects a write.

    Attributes:
        field: Column that collided ("email", "username" or "google_id"),
            or None if the store could not tell
    """

    def __init__(self, field: Optional[str] = None):
        self.field = field
        super().__init__(f"Duplicate identity ({field or 'unknown field'})")
