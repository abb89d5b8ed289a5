"""
SQLite identity store.

Thread-safe account storage. Uniqueness of email, casefolded username
and external identity link is enforced by the schema, so concurrent
registrations that slip past the service's pre-checks are still rejected.
"""

import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Union

from loguru import logger

from .errors import DuplicateIdentityError, StorageError
from .models import Identity


PROFILE_FIELDS = ("first_name", "last_name", "display_name")

_COLUMNS = (
    "user_id, email, username, password_hash, first_name, last_name, display_name, "
    "google_id, email_verified, is_active, account_creation_method, created_at, "
    "updated_at, last_login_at, last_password_change"
)


class IdentityStore(Protocol):
    """Persistence operations the identity service relies on."""

    def find_by_id(self, user_id: str) -> Optional[Identity]: ...

    def find_by_email(self, email: str) -> Optional[Identity]: ...

    def find_by_username(self, username: str) -> Optional[Identity]: ...

    def create_user(
        self,
        email: str,
        username: str,
        password_hash: Optional[str],
        first_name: str,
        last_name: str,
        account_creation_method: str = "local",
        google_id: Optional[str] = None,
    ) -> Identity: ...

    def update_last_login(self, user_id: str) -> Optional[Identity]: ...

    def update_profile(self, user_id: str, **fields) -> Optional[Identity]: ...

    def is_email_taken(self, email: str) -> bool: ...

    def is_username_taken(self, username: str) -> bool: ...

    def find_users_by_username_prefix(self, prefix: str) -> List[Identity]: ...


def username_key(username: str) -> str:
    """Comparison key for usernames; folds non-ASCII case too."""
    return username.casefold()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


_UNIQUE_FAILED = "UNIQUE constraint failed:"

# Constrained column -> field reported to callers
_UNIQUE_COLUMNS = {
    "users.email": "email",
    "users.username": "username",
    "users.username_key": "username",
    "users.google_id": "google_id",
}


def _translate_integrity_error(error: sqlite3.IntegrityError) -> StorageError:
    """
    Map an IntegrityError to a store error.

    Only uniqueness violations become DuplicateIdentityError; NOT NULL,
    CHECK and other constraint failures are plain StorageErrors.
    """
    message = str(error)
    if not message.startswith(_UNIQUE_FAILED):
        return StorageError("User database constraint violated")

    columns = [c.strip() for c in message[len(_UNIQUE_FAILED):].split(",")]
    for column in columns:
        if column in _UNIQUE_COLUMNS:
            return DuplicateIdentityError(_UNIQUE_COLUMNS[column])
    return DuplicateIdentityError(None)


class UserDatabase:
    """
    Thread-safe identity store backed by SQLite.

    Every operation opens a short-lived connection and is serialized by an
    RLock, so one instance can be shared across request threads. The
    database must be a file; ``:memory:`` would not survive between calls.
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and translate sqlite errors."""
        with self._lock:
            try:
                conn = sqlite3.connect(str(self.db_path))
            except sqlite3.Error as e:
                logger.error(f"Could not open user database {self.db_path}: {e}")
                raise StorageError("Could not open user database") from e

            conn.row_factory = sqlite3.Row
            try:
                yield conn
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                error = _translate_integrity_error(e)
                if isinstance(error, DuplicateIdentityError):
                    logger.warning(f"Uniqueness constraint rejected write on {error.field or 'unknown field'}")
                else:
                    logger.error(f"User database constraint error: {e}")
                raise error from e
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"User database error: {e}")
                raise StorageError("User database operation failed") from e
            finally:
                conn.close()

    def _init_db(self):
        """Create tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    user_id TEXT PRIMARY KEY,
                    email TEXT UNIQUE NOT NULL COLLATE NOCASE,
                    username TEXT NOT NULL COLLATE NOCASE,
                    username_key TEXT UNIQUE NOT NULL,
                    password_hash TEXT,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    display_name TEXT,
                    google_id TEXT UNIQUE,
                    email_verified INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    account_creation_method TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    last_login_at TEXT,
                    last_password_change TEXT
                )
            """)

            # Migration: databases created before usernames were casefolded
            try:
                conn.execute("SELECT username_key FROM users LIMIT 1")
            except sqlite3.OperationalError:
                conn.execute("ALTER TABLE users ADD COLUMN username_key TEXT")
                rows = conn.execute("SELECT user_id, username FROM users").fetchall()
                conn.executemany(
                    "UPDATE users SET username_key = ? WHERE user_id = ?",
                    [(username_key(row["username"]), row["user_id"]) for row in rows],
                )
                conn.execute(
                    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_username_key ON users(username_key)"
                )
                logger.info("Migrated database: Added username_key column to users table")

            conn.execute("CREATE INDEX IF NOT EXISTS idx_users_created_at ON users(created_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_users_last_login ON users(last_login_at)")

        logger.info(f"User database initialized: {self.db_path}")

    @staticmethod
    def _row_to_identity(row: sqlite3.Row) -> Identity:
        return Identity(
            user_id=row["user_id"],
            email=row["email"],
            username=row["username"],
            password_hash=row["password_hash"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            display_name=row["display_name"],
            google_id=row["google_id"],
            email_verified=bool(row["email_verified"]),
            is_active=bool(row["is_active"]),
            account_creation_method=row["account_creation_method"],
            created_at=_from_iso(row["created_at"]),
            updated_at=_from_iso(row["updated_at"]),
            last_login_at=_from_iso(row["last_login_at"]),
            last_password_change=_from_iso(row["last_password_change"]),
        )

    def _fetch_one(self, where: str, value: str) -> Optional[Identity]:
        with self._connect() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM users WHERE {where}", (value,)).fetchone()

        return self._row_to_identity(row) if row else None

    # ========================================================================
    # Identity Operations
    # ========================================================================

    def create_user(
        self,
        email: str,
        username: str,
        password_hash: Optional[str],
        first_name: str,
        last_name: str,
        account_creation_method: str = "local",
        google_id: Optional[str] = None,
    ) -> Identity:
        """
        Insert a new identity.

        Args:
            email: Email address (stored lowercased)
            username: Username, display case preserved
            password_hash: Digest from a PasswordHasher, None for federated accounts
            first_name: Given name
            last_name: Family name
            account_creation_method: "local" or "google"
            google_id: External identity link

        Returns:
            Created Identity

        Raises:
            DuplicateIdentityError: If email, username or google_id is taken
            StorageError: On any other database failure
        """
        now = _utcnow()
        identity = Identity(
            user_id=str(uuid.uuid4()),
            email=email.lower(),
            username=username,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            created_at=now,
            updated_at=now,
            google_id=google_id,
            account_creation_method=account_creation_method,
            last_password_change=now if password_hash else None,
        )

        with self._connect() as conn:
            conn.execute(f"""
                INSERT INTO users ({_COLUMNS}, username_key)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                identity.user_id,
                identity.email,
                identity.username,
                identity.password_hash,
                identity.first_name,
                identity.last_name,
                identity.display_name,
                identity.google_id,
                1 if identity.email_verified else 0,
                1 if identity.is_active else 0,
                identity.account_creation_method,
                _to_iso(identity.created_at),
                _to_iso(identity.updated_at),
                _to_iso(identity.last_login_at),
                _to_iso(identity.last_password_change),
                username_key(identity.username),
            ))

        logger.info(f"User created: {identity.username} ({identity.user_id})")
        return identity

    def find_by_id(self, user_id: str) -> Optional[Identity]:
        return self._fetch_one("user_id = ?", user_id)

    def find_by_email(self, email: str) -> Optional[Identity]:
        """
        Get identity by email (case-insensitive).

        Args:
            email: Email address to search for

        Returns:
            Identity if found, None otherwise
        """
        return self._fetch_one("email = ?", email.lower())

    def find_by_username(self, username: str) -> Optional[Identity]:
        """
        Get identity by username, compared by casefolded key.

        Args:
            username: Username to search for

        Returns:
            Identity if found, None otherwise
        """
        return self._fetch_one("username_key = ?", username_key(username))

    def is_email_taken(self, email: str) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE email = ?", (email.lower(),)).fetchone()
        return row is not None

    def is_username_taken(self, username: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM users WHERE username_key = ?", (username_key(username),)
            ).fetchone()
        return row is not None

    def find_users_by_username_prefix(self, prefix: str) -> List[Identity]:
        """
        Get identities whose username starts with ``prefix`` (case-insensitive).

        Args:
            prefix: Username prefix

        Returns:
            Matching identities ordered by username
        """
        escaped = username_key(prefix).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE username_key LIKE ? ESCAPE '\\' ORDER BY username",
                (escaped + "%",),
            ).fetchall()

        return [self._row_to_identity(row) for row in rows]

    def update_last_login(self, user_id: str) -> Optional[Identity]:
        """
        Stamp a successful login.

        Args:
            user_id: Identity id

        Returns:
            The updated Identity, None if it no longer exists
        """
        now = _to_iso(_utcnow())

        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET last_login_at = ?, updated_at = ? WHERE user_id = ?",
                (now, now, user_id),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id = ?", (user_id,)).fetchone()

        return self._row_to_identity(row)

    def update_profile(self, user_id: str, **fields) -> Optional[Identity]:
        """
        Update profile fields.

        Args:
            user_id: Identity id
            **fields: Any of first_name, last_name, display_name

        Returns:
            The updated Identity, None if it does not exist

        Raises:
            ValueError: If a field other than the profile fields is given
        """
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValueError(f"Not profile fields: {', '.join(sorted(unknown))}")

        assignments = [f"{name} = ?" for name in fields] + ["updated_at = ?"]
        values = list(fields.values()) + [_to_iso(_utcnow()), user_id]

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE users SET {', '.join(assignments)} WHERE user_id = ?",
                values,
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id = ?", (user_id,)).fetchone()

        if fields:
            logger.info(f"Profile updated for {user_id}: {', '.join(fields)}")
        return self._row_to_identity(row)
