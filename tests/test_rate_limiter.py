"""Tests for the token bucket rate limiter."""

import asyncio
import random

import pytest

from avscraper.models.config import RateLimitConfig
from avscraper.utils.rate_limiter import RateLimiter


class TestRateLimiter:
    """Test cases for RateLimiter."""

    @pytest.fixture
    def limiter(self, fake_clock):
        config = RateLimitConfig(requests_per_second=1.0, burst_size=5, cooldown_seconds=60)
        return RateLimiter(config, clock=fake_clock)

    def test_burst_then_refill(self, limiter, fake_clock):
        """Five immediate grants, a denial half a second later, a grant after a full second."""
        assert all(limiter.try_acquire() for _ in range(5))

        fake_clock.advance(0.5)
        assert limiter.try_acquire() is False

        fake_clock.advance(0.5)
        assert limiter.try_acquire() is True

    def test_tokens_never_exceed_capacity(self, limiter, fake_clock):
        fake_clock.advance(3600)
        assert limiter.available_tokens() == limiter.capacity

    def test_token_bounds_random_sequence(self, fake_clock):
        """Tokens stay within [0, capacity] for any acquire/refill sequence."""
        config = RateLimitConfig(requests_per_second=2.0, burst_size=3, cooldown_after_denials=1000)
        limiter = RateLimiter(config, clock=fake_clock)
        rng = random.Random(7)

        for _ in range(500):
            if rng.random() < 0.6:
                limiter.try_acquire()
            else:
                fake_clock.advance(rng.random())
            tokens = limiter.available_tokens()
            assert 0.0 <= tokens <= limiter.capacity

    def test_cooldown_after_repeated_denials(self, limiter, fake_clock):
        """Three consecutive denials open a cooldown that denies even with tokens."""
        events = []
        limiter.listeners.add_listener(events.append)

        for _ in range(5):
            limiter.try_acquire()
        for _ in range(3):
            assert limiter.try_acquire() is False

        assert limiter.in_cooldown
        assert [e.name for e in events] == ['cooldown_started']

        fake_clock.advance(10)
        assert limiter.available_tokens() >= 1
        assert limiter.try_acquire() is False

        fake_clock.advance(60)
        assert not limiter.in_cooldown
        assert limiter.try_acquire() is True

    def test_grant_resets_denial_streak(self, limiter, fake_clock):
        for _ in range(5):
            limiter.try_acquire()
        assert limiter.try_acquire() is False
        assert limiter.try_acquire() is False

        fake_clock.advance(1)
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False
        assert not limiter.in_cooldown

    @pytest.mark.asyncio
    async def test_acquire_without_wait(self, limiter):
        assert await limiter.acquire() is True
        assert limiter.get_stats()['granted'] == 1

    @pytest.mark.asyncio
    async def test_acquire_zero_timeout_denies(self, limiter):
        for _ in range(5):
            limiter.try_acquire()
        assert await limiter.acquire(timeout=0) is False

    @pytest.mark.asyncio
    async def test_acquire_waits_for_refill(self):
        """A queued waiter is granted once a token refills."""
        limiter = RateLimiter(RateLimitConfig(requests_per_second=50.0, burst_size=1))
        assert await limiter.acquire() is True

        granted = await limiter.acquire(timeout=2.0)
        assert granted is True
        await limiter.stop()

    @pytest.mark.asyncio
    async def test_acquire_timeout(self):
        limiter = RateLimiter(RateLimitConfig(requests_per_second=0.1, burst_size=1, min_rate=0.1))
        assert await limiter.acquire() is True

        assert await limiter.acquire(timeout=0.05) is False
        assert limiter.queue_length == 0
        assert limiter.last_denial_reason == "timeout"
        await limiter.stop()

    @pytest.mark.asyncio
    async def test_priority_order(self):
        """Higher priority waiters are served before lower priority ones."""
        limiter = RateLimiter(RateLimitConfig(requests_per_second=20.0, burst_size=1))
        assert limiter.try_acquire() is True

        order = []

        async def waiter(name, priority):
            if await limiter.acquire(priority=priority, timeout=5):
                order.append(name)

        low = asyncio.create_task(waiter('low', 0))
        await asyncio.sleep(0)
        high = asyncio.create_task(waiter('high', 10))
        await asyncio.gather(low, high)

        assert order == ['high', 'low']
        await limiter.stop()

    @pytest.mark.asyncio
    async def test_queue_full_denies(self):
        config = RateLimitConfig(requests_per_second=0.1, burst_size=1, max_queue_size=0, min_rate=0.1)
        limiter = RateLimiter(config)
        limiter.try_acquire()

        assert await limiter.acquire(timeout=1) is False

    @pytest.mark.asyncio
    async def test_stop_rejects_waiters(self):
        limiter = RateLimiter(RateLimitConfig(requests_per_second=0.1, burst_size=1, min_rate=0.1))
        limiter.try_acquire()

        task = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0.01)
        await limiter.stop()

        assert await task is False

    def test_adjust_halves_on_errors(self, fake_clock):
        config = RateLimitConfig(requests_per_second=2.0, min_samples=10)
        limiter = RateLimiter(config, clock=fake_clock)
        for _ in range(10):
            limiter.record_result(False, 100)

        assert limiter.adjust() == 1.0
        assert limiter.refill_rate == 1.0

    def test_adjust_increases_when_healthy(self, fake_clock):
        config = RateLimitConfig(requests_per_second=1.0, min_samples=10)
        limiter = RateLimiter(config, clock=fake_clock)
        for _ in range(10):
            limiter.record_result(True, 100)

        assert limiter.adjust() == pytest.approx(1.2)

    def test_adjust_needs_samples(self, fake_clock):
        limiter = RateLimiter(RateLimitConfig(min_samples=10), clock=fake_clock)
        for _ in range(5):
            limiter.record_result(False)
        assert limiter.adjust() is None

    def test_rate_bounds(self, fake_clock):
        config = RateLimitConfig(requests_per_second=1.0, min_rate=0.5, max_rate=2.0)
        limiter = RateLimiter(config, clock=fake_clock)

        assert limiter.set_rate(100) == 2.0
        assert limiter.set_rate(0.01) == 0.5

    def test_window_expires_old_samples(self, fake_clock):
        limiter = RateLimiter(RateLimitConfig(window_seconds=60), clock=fake_clock)
        limiter.record_result(False)
        fake_clock.advance(61)

        assert limiter.window_metrics()['samples'] == 0

    def test_reset(self, limiter, fake_clock):
        for _ in range(8):
            limiter.try_acquire()
        limiter.reset()

        assert not limiter.in_cooldown
        assert limiter.available_tokens() == limiter.capacity

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            RateLimitConfig(requests_per_second=0)
        with pytest.raises(ValueError):
            RateLimitConfig(min_rate=5, max_rate=1)
