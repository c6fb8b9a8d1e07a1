"""Clock abstraction for testable TTL handling.

All timestamps in this module are UTC epoch seconds. Market-data caches read
the current time through a TimeProvider so tests can freeze and advance it
instead of sleeping.
"""
import time
from datetime import datetime, timezone
from typing import Optional


class TimeProvider:
    """Provides the current time, allowing tests to freeze it.

    Usage:
        # Production: uses real wall-clock time
        provider = TimeProvider()
        now = provider.now()

        # Testing: freeze, then move forward explicitly
        provider = TimeProvider(frozen_time=1_760_000_000.0)
        provider.advance(3601)
    """

    _instance: Optional['TimeProvider'] = None

    def __init__(self, frozen_time: Optional[float] = None):
        """Initialize TimeProvider.

        Args:
            frozen_time: If provided, now() returns this value until advance()
                        is called. If None, returns actual epoch time.
        """
        self._frozen_time = frozen_time

    def now(self) -> float:
        """Get current UTC epoch seconds (or the frozen value)."""
        if self._frozen_time is not None:
            return self._frozen_time
        return time.time()

    def advance(self, seconds: float) -> None:
        """Move a frozen clock forward. No-op on a live clock."""
        if self._frozen_time is not None:
            self._frozen_time += seconds

    @classmethod
    def get_default(cls) -> 'TimeProvider':
        """Get the default TimeProvider instance (singleton for production)."""
        if cls._instance is None:
            cls._instance = TimeProvider()
        return cls._instance


def to_iso(epoch_seconds: float) -> str:
    """Format epoch seconds as an ISO-8601 UTC string."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat()
