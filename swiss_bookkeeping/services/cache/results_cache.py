"""
Processing Results Cache

Process-wide store for finished BookkeepingResults, keyed by an opaque
result id, so a caller can fetch a result after the run returned.

Contract:
- A stored result stays retrievable for at least `ttl_seconds`
- After that it may disappear at any time (on `get` or on a sweep)

The periodic sweep is the only writer that runs concurrently with new
insertions, so every access to the entry dict holds a lock.

Usage:
    cache = ResultsCache(ttl_seconds=3600)
    result_id = cache.put(result)
    ...
    cache.get(result_id)
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """A cached result with its insertion time."""

    result_id: str
    value: Any
    stored_at: datetime = field(default_factory=_utc_now)


class ResultsCache:
    """
    TTL cache for processing results.

    Attributes:
        _entries: result_id -> CacheEntry
        _ttl_seconds: Age after which an entry may be evicted
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize ResultsCache.

        Args:
            ttl_seconds: Minimum lifetime of an entry
            clock: Time source, injectable for tests
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._entries: dict[str, CacheEntry] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock or _utc_now
        self._lock = threading.Lock()

    def _is_expired(self, entry: CacheEntry, now: datetime) -> bool:
        return (now - entry.stored_at).total_seconds() > self._ttl_seconds

    def new_result_id(self) -> str:
        now = self._clock()
        return f"result-{int(now.timestamp() * 1000)}-{uuid4().hex[:8]}"

    def put(self, value: Any, result_id: Optional[str] = None) -> str:
        """
        Store a result.

        Returns:
            The result id to retrieve it with
        """
        result_id = result_id or self.new_result_id()
        entry = CacheEntry(result_id=result_id, value=value, stored_at=self._clock())
        with self._lock:
            self._entries[result_id] = entry
        return result_id

    def get(self, result_id: str) -> Optional[Any]:
        """
        Retrieve a result, or None if unknown or expired.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(result_id)
            if entry is None:
                return None
            if self._is_expired(entry, now):
                del self._entries[result_id]
                return None
            return entry.value

    def sweep(self) -> int:
        """
        Evict every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [
                result_id
                for result_id, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            for result_id in expired:
                del self._entries[result_id]

        if expired:
            logger.info("results_swept", removed=len(expired), remaining=self.size)
        return len(expired)

    async def run_sweeper(
        self,
        interval_seconds: float,
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Sweep every `interval_seconds` until `stop_event` is set
        (or forever, until the task is cancelled).
        """
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                self.sweep()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)
