"""
Admission control for Prime API requests.

Limits enforced by default:
- 60 requests per minute (refilled in whole one-minute intervals)
- 5000 requests per day (reset at midnight in the reference timezone)
- 5 concurrent requests maximum, admitted in FIFO order

Every admission decision runs between two await points, so the event loop
serializes them and two callers can never interleave a check with a charge.
"""

import asyncio
import math
import time
from collections import deque
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Awaitable, Callable, Deque, Optional
from zoneinfo import ZoneInfo

from ..core.config import Settings
from ..core.exceptions import QuotaExceededError, SlotReleaseError
from ..core.logging import get_logger
from ..models.quota import QuotaStatus

logger = get_logger(__name__)


class AdmissionController:
    """
    Concurrency-aware rate limiter guarding every outbound call.

    ``acquire_slot`` must be paired with exactly one ``release_slot``,
    normally through ``async with controller.slot():``.
    """

    def __init__(
        self,
        minute_cap: int = 60,
        day_cap: int = 5000,
        concurrency_cap: int = 5,
        refill_interval: float = 60.0,
        reset_timezone: str = "UTC",
        minute_low_water: int = 5,
        day_low_water: int = 100,
        min_poll_interval: float = 0.1,
        strict_release: bool = False,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if minute_cap < 1 or day_cap < 1 or concurrency_cap < 1:
            raise ValueError("minute_cap, day_cap and concurrency_cap must be positive")

        self.minute_cap = minute_cap
        self.day_cap = day_cap
        self.concurrency_cap = concurrency_cap
        self.refill_interval = refill_interval
        self.reset_timezone = ZoneInfo(reset_timezone)
        self.minute_low_water = minute_low_water
        self.day_low_water = day_low_water
        self.min_poll_interval = min_poll_interval
        self.strict_release = strict_release
        self._clock = clock
        self._sleep = sleep

        now = self._clock()
        self._minute_remaining = minute_cap
        self._window_start = now
        self._day_remaining = day_cap
        self._next_day_reset = self._next_midnight(now)
        self._in_flight = 0
        self._waiters: Deque[asyncio.Future] = deque()
        self.release_underflows = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdmissionController":
        """Build a controller from application settings."""
        return cls(
            minute_cap=settings.RATE_LIMIT_PER_MINUTE,
            day_cap=settings.RATE_LIMIT_PER_DAY,
            concurrency_cap=settings.MAX_CONCURRENT_REQUESTS,
            reset_timezone=settings.RATE_LIMIT_TIMEZONE,
            minute_low_water=settings.MINUTE_LOW_WATER_MARK,
            day_low_water=settings.DAY_LOW_WATER_MARK,
            strict_release=settings.STRICT_SLOT_RELEASE,
        )

    async def acquire_slot(self) -> None:
        """
        Wait for admission and charge one request against the quotas.

        Raises:
            QuotaExceededError: If the daily allowance is exhausted. This is
                never waited out.
        """
        self._refill()
        self._check_daily_allowance()

        if self._in_flight >= self.concurrency_cap or self._waiters:
            await self._wait_for_slot()
        else:
            self._in_flight += 1

        # A concurrency slot is held from here on; give it back on any failure
        try:
            while True:
                self._refill()
                self._check_daily_allowance()
                if self._minute_remaining > 0:
                    break
                wait = max(self._seconds_until_refill(), self.min_poll_interval)
                logger.debug(f"Per-minute quota exhausted, waiting {wait:.2f}s for refill")
                await self._sleep(wait)
        except BaseException:
            self.release_slot()
            raise

        self._minute_remaining -= 1
        self._day_remaining -= 1

    def release_slot(self) -> None:
        """Release a concurrency slot, handing it to the oldest waiter if any."""
        if self._in_flight <= 0:
            self.release_underflows += 1
            if self.strict_release:
                raise SlotReleaseError()
            logger.warning("release_slot() called with no slot held; in-flight count stays at zero")
            self._in_flight = 0
            return

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Slot ownership moves to the waiter; in-flight count is unchanged
                waiter.set_result(None)
                return

        self._in_flight -= 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold a slot for the duration of the block."""
        await self.acquire_slot()
        try:
            yield
        finally:
            self.release_slot()

    def sync_from_server_hints(
        self,
        minute_remaining: Optional[int] = None,
        day_remaining: Optional[int] = None,
    ) -> None:
        """
        Reconcile local counters with values reported by the service.

        The per-minute allowance only ever moves down to the reported value.
        The daily allowance is taken from the server, clamped to the cap.
        """
        if minute_remaining is not None:
            self._minute_remaining = max(0, min(minute_remaining, self._minute_remaining))
        if day_remaining is not None:
            self._day_remaining = max(0, min(day_remaining, self.day_cap))

    def status(self) -> QuotaStatus:
        """Get current rate limit status."""
        self._refill()
        return QuotaStatus(
            minute_remaining=self._minute_remaining,
            day_remaining=self._day_remaining,
            in_flight=self._in_flight,
            next_minute_refill=self._to_datetime(self._window_start + self.refill_interval),
            next_day_reset=self._to_datetime(self._next_day_reset),
        )

    def is_near_exhaustion(self) -> bool:
        """Check if we're near rate limits."""
        self._refill()
        return (
            self._minute_remaining <= self.minute_low_water
            or self._day_remaining <= self.day_low_water
        )

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        """Number of callers queued for a concurrency slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    def _refill(self) -> None:
        now = self._clock()

        if now >= self._next_day_reset:
            self._day_remaining = self.day_cap
            self._next_day_reset = self._next_midnight(now)
            logger.info(f"Daily quota reset; next reset at {self._to_datetime(self._next_day_reset).isoformat()}")

        elapsed = now - self._window_start
        if elapsed >= self.refill_interval:
            refills = int(elapsed // self.refill_interval)
            self._minute_remaining = min(self.minute_cap, self._minute_remaining + refills * self.minute_cap)
            self._window_start = now - (elapsed % self.refill_interval)

    def _check_daily_allowance(self) -> None:
        if self._day_remaining > 0:
            return
        retry_after = max(0, math.ceil(self._next_day_reset - self._clock()))
        hours = math.ceil(retry_after / 3600)
        raise QuotaExceededError(
            f"Daily limit of {self.day_cap} requests exceeded. Resets in {hours} hours.",
            retry_after=retry_after,
        )

    async def _wait_for_slot(self) -> None:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # A slot was handed over just before the cancellation landed
                self.release_slot()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def _seconds_until_refill(self) -> float:
        return self._window_start + self.refill_interval - self._clock()

    def _next_midnight(self, now: float) -> float:
        local_now = datetime.fromtimestamp(now, self.reset_timezone)
        tomorrow = local_now.date() + timedelta(days=1)
        midnight = datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=self.reset_timezone)
        return midnight.timestamp()

    @staticmethod
    def _to_datetime(instant: float) -> datetime:
        return datetime.fromtimestamp(instant, timezone.utc)
