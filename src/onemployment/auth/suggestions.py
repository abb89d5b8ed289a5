"""
Username suggestions for registration conflicts.

Candidates are the base username followed by 2, 3, 4, ... and are checked
one by one against the identity store.
"""

import threading
import time
from typing import Callable, List, Protocol

from loguru import logger


FIRST_SUFFIX = 2
LAST_SUFFIX = 100
DEFAULT_SUGGESTION_COUNT = 3


class UsernameOracle(Protocol):
    """Anything that can tell whether a username is taken (case-insensitive)."""

    def is_username_taken(self, username: str) -> bool:
        ...


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class UsernameSuggestionEngine:
    """
    Generates available usernames from a base string.

    One engine should be built per composition root and shared; it owns the
    counter that keeps time-based fallbacks unique within the process.
    """

    def __init__(self, oracle: UsernameOracle, clock_ms: Callable[[], int] = _now_ms):
        """
        Initialize engine.

        Args:
            oracle: Uniqueness check, usually the identity store
            clock_ms: Current time in milliseconds, used for fallbacks
        """
        self.oracle = oracle
        self._clock_ms = clock_ms
        self._lock = threading.Lock()
        self._last_fallback = 0

    def is_available(self, candidate: str) -> bool:
        """
        Check a single username.

        Args:
            candidate: Username to check

        Returns:
            True only if the oracle positively reports the name as free.
            Oracle errors count as taken.
        """
        try:
            return not self.oracle.is_username_taken(candidate)
        except Exception as e:
            logger.warning(f"Availability check failed for '{candidate}', treating as taken: {e}")
            return False

    def suggest(self, base: str, count: int = DEFAULT_SUGGESTION_COUNT) -> List[str]:
        """
        Collect up to ``count`` available candidates.

        Args:
            base: Base username (may be empty or malformed)
            count: Maximum number of suggestions

        Returns:
            Available candidates in ascending suffix order, possibly empty

        Examples:
            With "bob" and "bob2" taken:
            >>> engine.suggest("bob", 3)
            ['bob3', 'bob4', 'bob5']
        """
        suggestions: List[str] = []
        if count <= 0:
            return suggestions

        for suffix in range(FIRST_SUFFIX, LAST_SUFFIX + 1):
            candidate = f"{base}{suffix}"
            if self.is_available(candidate):
                suggestions.append(candidate)
                if len(suggestions) >= count:
                    break

        return suggestions

    def first_available(self, base: str) -> str:
        """
        Return one candidate, falling back to a time-based suffix.

        The fallback is only unique within this process; callers still have
        to rely on the store's constraint at commit time.
        """
        suggestions = self.suggest(base, 1)
        if suggestions:
            return suggestions[0]

        fallback = f"{base}{self._next_disambiguator()}"
        logger.info(f"No numbered suggestion free for '{base}', falling back to '{fallback}'")
        return fallback

    def _next_disambiguator(self) -> int:
        """Millisecond timestamp, bumped so repeated calls never collide."""
        with self._lock:
            value = max(self._clock_ms(), self._last_fallback + 1)
            self._last_fallback = value
            return value
