"""Token bucket admission control with adaptive rate adjustment."""

import asyncio
import heapq
import itertools
import logging
import time
from collections import deque
from contextlib import suppress
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from .events import EventListeners
from ..models.config import RateLimitConfig


class RateLimiter:
    """
    Token bucket rate limiter for outgoing requests.

    Tokens refill continuously at ``refill_rate`` per second up to
    ``capacity``. Callers that find the bucket empty wait in a bounded
    priority queue. Repeated denials open a cooldown window during which
    every admission is denied. An optional background loop halves the rate
    when the recent error rate is high and raises it by 20% when errors and
    rejections are low.

    All state changes happen in synchronous methods, so concurrent tasks
    never observe a partial update.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the rate limiter.

        Args:
            config: Rate limit settings
            clock: Monotonic time source in seconds
        """
        self.config = config or RateLimitConfig()
        self.capacity = float(self.config.burst_size)
        self.refill_rate = float(self.config.requests_per_second)
        self.tokens = self.capacity

        self._clock = clock
        self._last_refill = clock()
        self._waiters: List[list] = []
        self._sequence = itertools.count()
        self._drain_task: Optional[asyncio.Task] = None
        self._adjust_task: Optional[asyncio.Task] = None

        self._consecutive_denials = 0
        self.last_denial_reason: Optional[str] = None
        self._cooldown_until = 0.0

        self._admissions: Deque[Tuple[float, bool]] = deque()
        self._results: Deque[Tuple[float, bool, float]] = deque()

        self.listeners = EventListeners("rate limiter")
        self.logger = logging.getLogger(__name__)

        self.stats = {
            'granted': 0,
            'denied': 0,
            'queued': 0,
            'cooldowns': 0,
            'adjustments': 0,
        }

    @property
    def queue_length(self) -> int:
        return len(self._waiters)

    @property
    def in_cooldown(self) -> bool:
        return self._clock() < self._cooldown_until

    def available_tokens(self) -> float:
        """Current token count after applying refill."""
        self._refill()
        return self.tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
            self._last_refill = now

    def _take_token(self) -> bool:
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def _outranked(self, priority: int) -> bool:
        """True when a queued waiter has equal or higher priority."""
        return bool(self._waiters) and -self._waiters[0][0] >= priority

    def _record_admission(self, granted: bool) -> None:
        self._admissions.append((self._clock(), granted))
        self._trim_windows()

    def _grant(self) -> bool:
        self.stats['granted'] += 1
        self._consecutive_denials = 0
        self._record_admission(True)
        return True

    def _deny(self, reason: str) -> bool:
        self.stats['denied'] += 1
        self.last_denial_reason = reason
        self._record_admission(False)

        if self.in_cooldown:
            return False

        self._consecutive_denials += 1
        self.logger.debug(f"Admission denied ({reason}), streak {self._consecutive_denials}")

        if self._consecutive_denials >= self.config.cooldown_after_denials:
            self._start_cooldown()
        return False

    def _start_cooldown(self) -> None:
        self._cooldown_until = self._clock() + self.config.cooldown_seconds
        self._consecutive_denials = 0
        self.stats['cooldowns'] += 1
        self.logger.warning(
            f"Rate limiter entering cooldown for {self.config.cooldown_seconds:.0f}s after repeated denials"
        )
        self.listeners.emit('cooldown_started', until=self._cooldown_until,
                            duration=self.config.cooldown_seconds)
        self._reject_waiters()

    def _reject_waiters(self) -> None:
        while self._waiters:
            _, _, future = heapq.heappop(self._waiters)
            if not future.done():
                future.set_result(False)
                self.stats['denied'] += 1
                self._record_admission(False)

    def try_acquire(self, priority: int = 0) -> bool:
        """
        Grant or deny immediately without queueing.

        Args:
            priority: Request priority; queued waiters of equal or higher priority go first

        Returns:
            True if a token was consumed
        """
        if self.in_cooldown:
            return self._deny("cooldown")

        self._refill()
        if not self._outranked(priority) and self._take_token():
            return self._grant()
        return self._deny("no tokens")

    async def acquire(self, priority: int = 0, timeout: Optional[float] = None) -> bool:
        """
        Wait for a token.

        Args:
            priority: Higher values are served first
            timeout: Maximum seconds to wait (None waits indefinitely, 0 never waits)

        Returns:
            True when granted, False when denied (cooldown, full queue or timeout)
        """
        if self.in_cooldown:
            return self._deny("cooldown")

        self._refill()
        if not self._outranked(priority) and self._take_token():
            return self._grant()

        if len(self._waiters) >= self.config.max_queue_size:
            return self._deny("queue full")
        if timeout is not None and timeout <= 0:
            return self._deny("no tokens")

        future = asyncio.get_running_loop().create_future()
        entry = [-priority, next(self._sequence), future]
        heapq.heappush(self._waiters, entry)
        self.stats['queued'] += 1
        self._ensure_drain()

        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(asyncio.shield(future), timeout)
        except asyncio.TimeoutError:
            if future.done() and not future.cancelled():
                return future.result()
            future.cancel()
            self._remove_waiter(entry)
            return self._deny("timeout")
        except asyncio.CancelledError:
            if future.done() and not future.cancelled() and future.result():
                # Token was handed over as we were cancelled; give it back
                self.tokens = min(self.capacity, self.tokens + 1.0)
            else:
                future.cancel()
                self._remove_waiter(entry)
            raise

    def _remove_waiter(self, entry: list) -> None:
        try:
            self._waiters.remove(entry)
        except ValueError:
            return
        heapq.heapify(self._waiters)

    def _ensure_drain(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        """Hand tokens to queued waiters as they refill."""
        while self._waiters:
            if self.in_cooldown:
                self._reject_waiters()
                break

            self._refill()
            while self._waiters and self.tokens >= 1.0:
                _, _, future = heapq.heappop(self._waiters)
                if future.done():
                    continue
                self.tokens -= 1.0
                future.set_result(True)
                self._grant()

            if not self._waiters:
                break

            wait = (1.0 - self.tokens) / self.refill_rate
            await asyncio.sleep(max(wait, 0.001))

    def record_result(self, success: bool, latency_ms: Optional[float] = None) -> None:
        """Feed the outcome of an admitted request into the adaptive window."""
        self._results.append((self._clock(), success, float(latency_ms or 0.0)))
        self._trim_windows()

    def _trim_windows(self) -> None:
        horizon = self._clock() - self.config.window_seconds
        while self._results and self._results[0][0] < horizon:
            self._results.popleft()
        while self._admissions and self._admissions[0][0] < horizon:
            self._admissions.popleft()

    def set_rate(self, rate: float) -> float:
        """Change the refill rate within the configured bounds; returns the applied rate."""
        self._refill()
        bounded = max(self.config.min_rate, min(self.config.max_rate, rate))
        if bounded != self.refill_rate:
            old = self.refill_rate
            self.refill_rate = bounded
            self.stats['adjustments'] += 1
            self.logger.info(f"Rate adjusted: {old:.3f}/s -> {bounded:.3f}/s")
            self.listeners.emit('rate_adjusted', old_rate=old, new_rate=bounded)
        return self.refill_rate

    def window_metrics(self) -> Dict[str, float]:
        self._trim_windows()
        samples = len(self._results)
        failures = sum(1 for _, ok, _ in self._results if not ok)
        admissions = len(self._admissions)
        denials = sum(1 for _, granted in self._admissions if not granted)
        return {
            'samples': samples,
            'error_rate': failures / samples if samples else 0.0,
            'avg_latency_ms': (sum(l for _, _, l in self._results) / samples) if samples else 0.0,
            'rejection_rate': denials / admissions if admissions else 0.0,
        }

    def adjust(self) -> Optional[float]:
        """
        Run one step of the adaptive control loop.

        Returns:
            The new rate if it changed, otherwise None
        """
        metrics = self.window_metrics()
        if metrics['samples'] < self.config.min_samples:
            return None

        current = self.refill_rate
        if metrics['error_rate'] > self.config.error_threshold:
            target = current / 2
        elif (metrics['error_rate'] < self.config.low_error_threshold
              and metrics['rejection_rate'] < self.config.rejection_threshold
              and metrics['avg_latency_ms'] < self.config.latency_threshold_ms):
            target = current * 1.2
        else:
            return None

        applied = self.set_rate(target)
        return applied if applied != current else None

    async def _adjust_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.adjust_interval)
            self.adjust()

    def start(self) -> None:
        """Start the adaptive control loop (requires a running event loop)."""
        if not self.config.adaptive:
            return
        if self._adjust_task is None or self._adjust_task.done():
            self._adjust_task = asyncio.get_running_loop().create_task(self._adjust_loop())
            self.logger.debug("Started adaptive rate loop")

    async def stop(self) -> None:
        """Stop background tasks and deny anything still waiting."""
        for task in (self._adjust_task, self._drain_task):
            if task and not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
        self._adjust_task = None
        self._drain_task = None
        self._reject_waiters()

    def reset(self) -> None:
        """Refill the bucket and clear cooldown and history."""
        self.tokens = self.capacity
        self._last_refill = self._clock()
        self._consecutive_denials = 0
        self.last_denial_reason = None
        self._cooldown_until = 0.0
        self._admissions.clear()
        self._results.clear()

    def get_stats(self) -> Dict[str, Any]:
        self._refill()
        return {
            **self.stats,
            'tokens': self.tokens,
            'capacity': self.capacity,
            'refill_rate': self.refill_rate,
            'queue_length': self.queue_length,
            'in_cooldown': self.in_cooldown,
            'cooldown_remaining': max(0.0, self._cooldown_until - self._clock()),
            **self.window_metrics(),
        }
