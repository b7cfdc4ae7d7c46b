"""
Thread-safe MX record cache with TTL expiration and LRU eviction.
Shields email validation from repeated DNS round-trips and tracks
hit/miss/eviction statistics for monitoring.
"""

import math
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import timedelta

DEFAULT_TTL_SECONDS = 300.0  # 5 minutes
DEFAULT_MAX_SIZE = 1000


@dataclass(frozen=True)
class MXRecord:
    """A mail exchange host and its priority (lower is preferred)."""

    exchange: str
    priority: int

    def __post_init__(self) -> None:
        if not 0 <= self.priority <= 65535:
            raise ValueError(f"MX priority must be between 0 and 65535, got {self.priority}")

    def to_dict(self) -> dict:
        return {"exchange": self.exchange, "priority": self.priority}


@dataclass
class CacheEntry:
    """Cached record set for one domain. Recency is its position in the cache map."""

    records: list[MXRecord]
    inserted_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class CacheStatistics:
    """Point-in-time snapshot of cache counters."""

    hits: int
    misses: int
    evictions: int
    size: int

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage (0-100), rounded to 2 decimals."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return round(self.hits / total * 100, 2)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["hit_rate"] = self.hit_rate
        return data


def normalize_domain(domain: str) -> str:
    """Canonical cache key for a domain: stripped, lowercased, no trailing dot."""
    return domain.strip().lower().rstrip(".")


def _ttl_to_seconds(ttl: float | timedelta) -> float:
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"TTL must be a positive finite number, got {ttl!r}")
    return seconds


class MXCache:
    """
    Bounded MX record cache with per-entry TTL and LRU eviction.

    Features:
    - Case-insensitive domain keys
    - Lazy expiry on get() plus clean_expired() for periodic sweeps
    - Strict LRU order (ties broken by access order, never arbitrarily)
    - Hit/miss/eviction counters that survive flush()
    - Single lock around every operation
    """

    def __init__(
        self,
        enabled: bool = True,
        default_ttl: float | timedelta = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the MX cache.

        Args:
            enabled: When False, the cache stores nothing and get() always misses silently.
            default_ttl: TTL in seconds (or timedelta) used when set() gets no ttl.
            max_size: Maximum number of cached domains.
            clock: Monotonic time source, injectable for tests.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._enabled = enabled
        self._default_ttl = _ttl_to_seconds(default_ttl)
        self._max_size = max_size
        self._clock = clock

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    @property
    def max_size(self) -> int:
        return self._max_size

    def is_enabled(self) -> bool:
        """Return whether caching is enabled."""
        return self._enabled

    def get(self, domain: str) -> list[MXRecord] | None:
        """
        Get cached MX records for a domain.

        Args:
            domain: The domain to look up.

        Returns:
            Cached records (possibly an empty list for a cached negative answer),
            or None if not cached or expired.
        """
        if not self._enabled:
            return None

        key = normalize_domain(domain)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                # Expired, remove from cache
                del self._entries[key]
                self._evictions += 1
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return list(entry.records)

    def set(
        self,
        domain: str,
        records: list[MXRecord],
        ttl: float | timedelta | None = None,
    ) -> None:
        """
        Cache MX records for a domain.

        Replaces an existing entry (refreshing its TTL and recency), or
        evicts the least-recently-used entry first when the cache is full.

        Args:
            domain: The domain to cache records for.
            records: MX records to cache; an empty list caches a negative answer.
            ttl: Optional TTL in seconds or timedelta; defaults to default_ttl.
        """
        if not self._enabled:
            return

        ttl_seconds = self._default_ttl if ttl is None else _ttl_to_seconds(ttl)
        key = normalize_domain(domain)
        with self._lock:
            now = self._clock()
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self._max_size:
                self._entries.popitem(last=False)
                self._evictions += 1

            self._entries[key] = CacheEntry(
                records=list(records),
                inserted_at=now,
                expires_at=now + ttl_seconds,
            )

    def delete(self, domain: str) -> bool:
        """
        Remove a domain from the cache.

        Returns:
            True if an entry was removed, False if the domain was not cached.
        """
        key = normalize_domain(domain)
        with self._lock:
            return self._entries.pop(key, None) is not None

    def flush(self) -> None:
        """Remove all entries. Statistics are kept."""
        with self._lock:
            self._entries.clear()

    def reset_statistics(self) -> None:
        """Zero hit/miss/eviction counters. Entries are kept."""
        with self._lock:
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def get_statistics(self) -> CacheStatistics:
        """Return a snapshot of the cache counters and current size."""
        with self._lock:
            return CacheStatistics(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._entries),
            )

    def clean_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns:
            Number of entries removed
        """
        if not self._enabled:
            return 0

        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._evictions += len(expired)
            return len(expired)

    def size(self) -> int:
        """Return the number of cached entries (including not yet swept expired ones)."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, domain: object) -> bool:
        if not isinstance(domain, str):
            return False
        key = normalize_domain(domain)
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def __repr__(self) -> str:
        return (
            f"MXCache(enabled={self._enabled}, default_ttl={self._default_ttl}, "
            f"max_size={self._max_size}, size={self.size()})"
        )
