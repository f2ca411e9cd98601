"""
In-process fixed-window rate limiter for inbound chat messages.

Each identifier (conversation id, "client_<id>" or "anonymous") gets a counter
that resets once its window elapses. The check-then-increment in allow() runs
under one asyncio.Lock, so concurrent turns for the same identifier can never
jointly exceed the limit.

A background sweep task (start()/stop()) deletes expired entries so the map
stays bounded by the number of identifiers active within one window.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTIFIER = "anonymous"


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single allow() call."""

    allowed: bool
    retry_after: float = 0.0

    @property
    def message(self) -> str:
        """User-facing denial text, empty when allowed."""
        if self.allowed:
            return ""
        return (
            "límite de mensajes excedido. "
            f"Intenta de nuevo en {format_wait(self.retry_after)}"
        )


def format_wait(seconds: float) -> str:
    """Render a wait time compactly: 42s, 1m5s."""
    total = max(0, math.ceil(seconds))
    minutes, secs = divmod(total, 60)
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


class RateLimiter:
    """Per-identifier message counter with a fixed window."""

    def __init__(
        self,
        max_messages: int = 20,
        window_seconds: float = 60.0,
        cleanup_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()
        self._sweeper: asyncio.Task | None = None

    async def allow(self, identifier: str) -> RateLimitDecision:
        """Count one message for identifier and decide whether it may proceed."""
        identifier = identifier or ANONYMOUS_IDENTIFIER

        async with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)

            if entry is None or now >= entry.reset_at:
                self._entries[identifier] = RateLimitEntry(
                    count=1, reset_at=now + self.window_seconds
                )
                return RateLimitDecision(allowed=True)

            if entry.count < self.max_messages:
                entry.count += 1
                return RateLimitDecision(allowed=True)

            retry_after = entry.reset_at - now

        logger.warning(
            f"Rate limit exceeded | identifier={identifier} | "
            f"limit={self.max_messages} | retry_after={retry_after:.1f}s"
        )
        return RateLimitDecision(allowed=False, retry_after=retry_after)

    async def get_remaining(self, identifier: str) -> int:
        """Messages still accepted for identifier in its current window."""
        identifier = identifier or ANONYMOUS_IDENTIFIER

        async with self._lock:
            entry = self._entries.get(identifier)
            if entry is None or self._clock() >= entry.reset_at:
                return self.max_messages
            return max(0, self.max_messages - entry.count)

    async def reset(self, identifier: str) -> None:
        """Forget the counter for a single identifier."""
        async with self._lock:
            self._entries.pop(identifier or ANONYMOUS_IDENTIFIER, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    async def cleanup(self) -> int:
        """Delete every entry whose window has elapsed. Returns the number removed."""
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now >= entry.reset_at]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Rate limiter sweep removed {len(expired)} expired entries")
        return len(expired)

    def start(self) -> None:
        """Start the periodic sweep on the running event loop (idempotent)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever())
            logger.info(
                f"Rate limiter started | limit={self.max_messages} | "
                f"window={self.window_seconds}s | sweep={self.cleanup_interval}s"
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
