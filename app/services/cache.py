"""In-memory TTL cache holding one market data value with last-good fallback."""
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from app.services.time_provider import TimeProvider, to_iso

logger = logging.getLogger('market_data')

DEFAULT_TTL = 3600
DEFAULT_RETRY_SECONDS = 60


@dataclass(frozen=True)
class MarketDataEntry:
    """A cached market value and where it came from."""
    value: Any
    fetched_at: float   # epoch seconds
    source: str
    stale: bool = False

    def to_dict(self) -> dict:
        return {
            'value': self.value,
            'source': self.source,
            'fetched_at': to_iso(self.fetched_at),
            'stale': self.stale,
        }


@dataclass
class RefreshResult:
    """Outcome of a refresh. On failure, entry is the untouched previous value."""
    success: bool
    entry: Optional[MarketDataEntry] = None
    error: Optional[str] = None


class _Flight:
    """One in-flight fetch shared by every concurrent refresh() caller."""

    def __init__(self):
        self.done = threading.Event()
        self.result: Optional[RefreshResult] = None


def _spawn_thread(target: Callable[[], Any]) -> None:
    threading.Thread(target=target, daemon=True, name='market-data-refresh').start()


class MarketDataCache:
    """TTL cache for a single scalar fed by a fetcher.

    The fetcher returns ``(value, source)`` or raises. A failed refresh never
    discards the stored entry, and concurrent refreshes collapse into one
    underlying fetch. After a failure (or a seeded placeholder) background
    refreshes back off until the retry window has passed.
    """

    def __init__(
        self,
        name: str,
        fetcher: Callable[[], tuple[Any, str]],
        ttl_seconds: int = DEFAULT_TTL,
        time_provider: Optional[TimeProvider] = None,
        spawn: Optional[Callable[[Callable[[], Any]], None]] = None,
        wait_timeout: Optional[float] = None,
        retry_seconds: float = DEFAULT_RETRY_SECONDS,
    ):
        """Initialize the cache.

        Args:
            name: Label used in logs and status output.
            fetcher: Callable performing the network fetch.
            ttl_seconds: Age after which the entry is stale.
            time_provider: Clock; defaults to TimeProvider.get_default().
            spawn: Runs a background refresh; defaults to a daemon thread.
            wait_timeout: Max seconds a follower waits on another caller's fetch.
            retry_seconds: Minimum gap between background refreshes after a
                failure, capped at ttl_seconds.
        """
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.retry_seconds = min(ttl_seconds, retry_seconds)
        self._fetcher = fetcher
        self._time_provider = time_provider
        self._spawn = spawn or _spawn_thread
        self._wait_timeout = wait_timeout
        self._lock = threading.Lock()
        self._entry: Optional[MarketDataEntry] = None
        self._expires_at = 0.0
        self._retry_at = 0.0
        self._flight: Optional[_Flight] = None
        self._last_error: Optional[str] = None
        self.fetch_count = 0

    def _now(self) -> float:
        return (self._time_provider or TimeProvider.get_default()).now()

    def peek(self) -> Optional[MarketDataEntry]:
        """Return the stored entry (stale flag set) without side effects."""
        with self._lock:
            entry, expires_at = self._entry, self._expires_at
        if entry is None:
            return None
        return replace(entry, stale=self._now() >= expires_at)

    def is_fresh(self) -> bool:
        with self._lock:
            return self._entry is not None and self._now() < self._expires_at

    def get(self) -> Optional[MarketDataEntry]:
        """Return the freshest known entry.

        Fresh entries return immediately. Stale entries return immediately
        and schedule a background refresh. Only a cold cache blocks, on a
        single shared fetch. Returns None if a cold fetch fails.
        """
        entry = self.peek()
        if entry is None:
            return self.refresh().entry
        if entry.stale:
            self.refresh_in_background()
        return entry

    def refresh(self) -> RefreshResult:
        """Fetch a new value, replacing the entry only on success.

        Explicit refreshes ignore the retry window; only background
        scheduling backs off.
        """
        with self._lock:
            flight = self._flight
            leader = flight is None
            if leader:
                flight = self._flight = _Flight()

        if not leader:
            flight.done.wait(self._wait_timeout)
            if flight.result is not None:
                return flight.result
            return RefreshResult(False, self.peek(), f'{self.name} refresh still in flight')

        return self._fly(flight)

    def _fly(self, flight: _Flight) -> RefreshResult:
        """Run the fetch for a flight this caller has reserved."""
        try:
            flight.result = self._do_fetch()
        finally:
            with self._lock:
                self._flight = None
            flight.done.set()
        return flight.result

    def _do_fetch(self) -> RefreshResult:
        with self._lock:
            self.fetch_count += 1
        try:
            value, source = self._fetcher()
        except Exception as e:
            logger.warning(f"{self.name} refresh failed, keeping previous value: {e}")
            now = self._now()
            with self._lock:
                self._last_error = str(e)
                self._retry_at = now + self.retry_seconds
            return RefreshResult(False, self.peek(), str(e))

        now = self._now()
        entry = MarketDataEntry(value=value, fetched_at=now, source=source)
        with self._lock:
            self._entry = entry
            self._expires_at = now + self.ttl_seconds
            self._retry_at = 0.0
            self._last_error = None
        logger.info(f"{self.name} refreshed: {value} ({source})")
        return RefreshResult(True, entry)

    def refresh_in_background(self) -> bool:
        """Schedule a refresh unless one is running or the retry window is open.

        The flight is reserved before the refresh is spawned, so concurrent
        stale readers schedule at most one fetch.
        """
        now = self._now()
        with self._lock:
            if self._flight is not None or now < self._retry_at:
                return False
            flight = self._flight = _Flight()
        try:
            self._spawn(lambda: self._fly(flight))
        except Exception:
            with self._lock:
                self._flight = None
            flight.done.set()
            raise
        return True

    def seed(self, value: Any, source: str) -> MarketDataEntry:
        """Store a placeholder if the cache is empty.

        A seeded entry is stale from the start. The next real refresh is
        attempted once the retry window has passed.
        """
        now = self._now()
        with self._lock:
            if self._entry is None:
                self._entry = MarketDataEntry(value=value, fetched_at=now, source=source)
                self._expires_at = now
                self._retry_at = max(self._retry_at, now + self.retry_seconds)
                logger.warning(f"{self.name} seeded with {value} ({source})")
        return self.peek()

    def clear(self) -> None:
        with self._lock:
            self._entry = None
            self._expires_at = 0.0
            self._retry_at = 0.0
            self._last_error = None

    def status(self) -> dict:
        entry = self.peek()
        now = self._now()
        with self._lock:
            last_error = self._last_error
            in_flight = self._flight is not None
            retry_at = self._retry_at
        return {
            'name': self.name,
            'ttl_seconds': self.ttl_seconds,
            'entry': entry.to_dict() if entry else None,
            'refresh_in_flight': in_flight,
            'last_error': last_error,
            'next_retry_at': to_iso(retry_at) if retry_at > now else None,
        }
