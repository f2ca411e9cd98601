"""
Unit tests for the in-process fixed-window rate limiter.
"""

import asyncio

import pytest

from shared.rate_limiter import RateLimitDecision, RateLimiter, format_wait


class TestFormatWait:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(42, "42s"), (41.2, "42s"), (65, "1m5s"), (60, "1m0s"), (0, "0s"), (-3, "0s")],
    )
    def test_format(self, seconds, expected):
        assert format_wait(seconds) == expected

    def test_denial_message(self):
        decision = RateLimitDecision(allowed=False, retry_after=30)

        assert decision.message == "límite de mensajes excedido. Intenta de nuevo en 30s"

    def test_allowed_has_no_message(self):
        assert RateLimitDecision(allowed=True).message == ""


class TestAllow:
    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self, fake_clock):
        limiter = RateLimiter(max_messages=3, window_seconds=60, clock=fake_clock)

        results = [(await limiter.allow("conv-1")).allowed for _ in range(4)]

        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_denial_reports_remaining_window(self, fake_clock):
        limiter = RateLimiter(max_messages=1, window_seconds=60, clock=fake_clock)
        await limiter.allow("conv-1")
        fake_clock.advance(15)

        decision = await limiter.allow("conv-1")

        assert decision.allowed is False
        assert decision.retry_after == pytest.approx(45)
        assert "45s" in decision.message

    @pytest.mark.asyncio
    async def test_window_resets(self, fake_clock):
        limiter = RateLimiter(max_messages=1, window_seconds=60, clock=fake_clock)
        await limiter.allow("conv-1")
        fake_clock.advance(60)

        assert (await limiter.allow("conv-1")).allowed is True

    @pytest.mark.asyncio
    async def test_identifiers_are_independent(self, fake_clock):
        limiter = RateLimiter(max_messages=1, window_seconds=60, clock=fake_clock)
        await limiter.allow("conv-1")

        assert (await limiter.allow("conv-2")).allowed is True

    @pytest.mark.asyncio
    async def test_empty_identifier_is_anonymous(self, fake_clock):
        limiter = RateLimiter(max_messages=1, window_seconds=60, clock=fake_clock)
        await limiter.allow("")

        assert (await limiter.allow("anonymous")).allowed is False

    @pytest.mark.asyncio
    async def test_concurrent_calls_never_exceed_limit(self):
        """Two concurrent allow() with limit=1: exactly one succeeds."""
        limiter = RateLimiter(max_messages=1, window_seconds=60)

        decisions = await asyncio.gather(limiter.allow("conv-1"), limiter.allow("conv-1"))

        allowed = [decision for decision in decisions if decision.allowed]
        denied = [decision for decision in decisions if not decision.allowed]
        assert len(allowed) == 1
        assert len(denied) == 1
        assert "límite de mensajes excedido" in denied[0].message

    @pytest.mark.asyncio
    async def test_many_concurrent_calls(self):
        limiter = RateLimiter(max_messages=5, window_seconds=60)

        decisions = await asyncio.gather(*(limiter.allow("conv-1") for _ in range(20)))

        assert sum(decision.allowed for decision in decisions) == 5

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            RateLimiter(max_messages=0)
        with pytest.raises(ValueError):
            RateLimiter(window_seconds=0)


class TestBookkeeping:
    @pytest.mark.asyncio
    async def test_get_remaining(self, fake_clock):
        limiter = RateLimiter(max_messages=3, window_seconds=60, clock=fake_clock)
        assert await limiter.get_remaining("conv-1") == 3

        await limiter.allow("conv-1")

        assert await limiter.get_remaining("conv-1") == 2

    @pytest.mark.asyncio
    async def test_reset(self, fake_clock):
        limiter = RateLimiter(max_messages=1, window_seconds=60, clock=fake_clock)
        await limiter.allow("conv-1")

        await limiter.reset("conv-1")

        assert (await limiter.allow("conv-1")).allowed is True

    @pytest.mark.asyncio
    async def test_cleanup_removes_only_expired(self, fake_clock):
        limiter = RateLimiter(max_messages=5, window_seconds=60, clock=fake_clock)
        await limiter.allow("old")
        fake_clock.advance(30)
        await limiter.allow("recent")
        fake_clock.advance(30)

        removed = await limiter.cleanup()

        assert removed == 1
        assert limiter.size() == 1

    @pytest.mark.asyncio
    async def test_clear(self, fake_clock):
        limiter = RateLimiter(clock=fake_clock)
        await limiter.allow("a")
        await limiter.allow("b")

        await limiter.clear()

        assert limiter.size() == 0

    @pytest.mark.asyncio
    async def test_start_and_stop_sweeper(self):
        limiter = RateLimiter(cleanup_interval=0.01)

        limiter.start()
        limiter.start()
        await asyncio.sleep(0.03)
        await limiter.stop()

        assert limiter._sweeper is None
