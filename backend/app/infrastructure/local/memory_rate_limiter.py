"""In-memory chat rate limiter implementation."""

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable

from app.core.exceptions import RateLimitedError
from app.interfaces.rate_limiter import IChatRateLimiter
from app.models.enums import RateLimitType
from app.models.rate_limit import RateLimitInfo

MINUTE_WINDOW_SECONDS = 60
DAILY_WINDOW_SECONDS = 86400


@dataclass
class _Window:
    started_at: float
    count: int = 0


class InMemoryChatRateLimiter(IChatRateLimiter):
    """Fixed-window message counters kept in process memory.

    A window opens with the first message counted in it and lasts for its
    full length, like a key with a TTL set on first increment. Suitable for
    a single instance; with several workers each one counts separately.
    """

    def __init__(
        self,
        per_minute: int,
        daily: int,
        clock: Callable[[], float] = time.time,
    ):
        self._per_minute = per_minute
        self._daily = daily
        self._clock = clock
        self._minute_windows: dict[str, _Window] = {}
        self._daily_windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    async def check(self, user_id: str) -> RateLimitInfo:
        """Count one message, or raise if a quota is exhausted."""
        async with self._lock:
            now = self._clock()
            minute = self._current(self._minute_windows, user_id, now, MINUTE_WINDOW_SECONDS)
            daily = self._current(self._daily_windows, user_id, now, DAILY_WINDOW_SECONDS)

            # Per-minute window is checked before the daily quota
            if minute.count >= self._per_minute:
                raise self._rejection(RateLimitType.PER_MINUTE, minute, daily, now)
            if daily.count >= self._daily:
                raise self._rejection(RateLimitType.DAILY, minute, daily, now)

            minute.count += 1
            daily.count += 1
            return self._snapshot(minute, daily, now)

    async def usage(self, user_id: str) -> RateLimitInfo:
        """Read counters without counting."""
        async with self._lock:
            now = self._clock()
            minute = self._peek(self._minute_windows, user_id, now, MINUTE_WINDOW_SECONDS)
            daily = self._peek(self._daily_windows, user_id, now, DAILY_WINDOW_SECONDS)
            return self._snapshot(minute, daily, now)

    @staticmethod
    def _expired(window: _Window, now: float, length: int) -> bool:
        return now - window.started_at >= length

    def _current(self, windows: dict[str, _Window], user_id: str, now: float, length: int) -> _Window:
        window = windows.get(user_id)
        if window is None or self._expired(window, now, length):
            window = _Window(started_at=now)
            windows[user_id] = window
        return window

    def _peek(self, windows: dict[str, _Window], user_id: str, now: float, length: int) -> _Window:
        window = windows.get(user_id)
        if window is None or self._expired(window, now, length):
            return _Window(started_at=now)
        return window

    def _snapshot(self, minute: _Window, daily: _Window, now: float) -> RateLimitInfo:
        return RateLimitInfo(
            minute_limit=self._per_minute,
            minute_remaining=max(self._per_minute - minute.count, 0),
            minute_reset=int(minute.started_at + MINUTE_WINDOW_SECONDS),
            daily_limit=self._daily,
            daily_remaining=max(self._daily - daily.count, 0),
            daily_reset=int(daily.started_at + DAILY_WINDOW_SECONDS),
        )

    def _rejection(
        self,
        limit_type: RateLimitType,
        minute: _Window,
        daily: _Window,
        now: float,
    ) -> RateLimitedError:
        if limit_type == RateLimitType.PER_MINUTE:
            window, length = minute, MINUTE_WINDOW_SECONDS
        else:
            window, length = daily, DAILY_WINDOW_SECONDS
        retry_after = max(math.ceil(window.started_at + length - now), 0)
        info = self._snapshot(minute, daily, now).model_copy(
            update={
                "limit_type": limit_type,
                "current": window.count,
                "retry_after": retry_after,
            }
        )
        return RateLimitedError(
            f"You have exceeded the {limit_type.value} rate limit. "
            f"Please try again in {retry_after} seconds.",
            info=info,
        )
