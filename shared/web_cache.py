"""
TTL cache for external web search results.

Queries are normalized (lowercased, trimmed, whitespace collapsed) so that
"Clima en Lima" and "  clima   en lima " share one entry. Stale entries are
misses on read but are only removed by the periodic sweep.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    payload: Any
    inserted_at: float


def normalize_query(query: str) -> str:
    return " ".join(query.lower().split())


class WebSearchCache:
    """Process-local cache of search payloads keyed by normalized query."""

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        cleanup_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.ttl_seconds = ttl_seconds
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._sweeper: asyncio.Task | None = None

    async def get(self, query: str) -> tuple[Any, bool]:
        """Return (payload, True) for a fresh entry, (None, False) otherwise."""
        key = normalize_query(query)

        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            if self._clock() - entry.inserted_at > self.ttl_seconds:
                return None, False
            return entry.payload, True

    async def set(self, query: str, payload: Any) -> None:
        key = normalize_query(query)

        async with self._lock:
            self._entries[key] = CacheEntry(payload=payload, inserted_at=self._clock())

    async def cleanup(self) -> int:
        """Remove every entry older than the TTL. Returns the number removed."""
        async with self._lock:
            now = self._clock()
            stale = [
                key
                for key, entry in self._entries.items()
                if now - entry.inserted_at > self.ttl_seconds
            ]
            for key in stale:
                del self._entries[key]

        if stale:
            logger.debug(f"Web cache sweep removed {len(stale)} stale entries")
        return len(stale)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
        logger.info("Web search cache cleared")

    def size(self) -> int:
        """Number of stored entries, stale ones included until swept."""
        return len(self._entries)

    def start(self) -> None:
        """Start the periodic sweep on the running event loop (idempotent)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever())
            logger.info(
                f"Web search cache started | ttl={self.ttl_seconds}s | "
                f"sweep={self.cleanup_interval}s"
            )

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            await self.cleanup()
