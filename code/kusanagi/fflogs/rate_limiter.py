import asyncio
import logging
import time
from collections import deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """Bounds FFLogs API calls per period and pauses after a 429 response."""

    MAX_SLEEP_SECONDS: int = 3600

    def __init__(self, max_calls: int = 30, period_seconds: float = 60.0) -> None:
        self.max_calls = max_calls
        self.period_seconds = period_seconds
        self._calls: deque[float] = deque()  # monotonic times of recent calls
        self._throttled_until: float = 0.0  # monotonic time

    @property
    def calls_remaining(self) -> int:
        self._expire(time.monotonic())
        return self.max_calls - len(self._calls)

    def _expire(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period_seconds:
            self._calls.popleft()

    def mark_throttled(self, retry_after: int | None = None) -> None:
        """Record a 429 throttle so the next wait_if_needed() sleeps."""
        wait = retry_after if retry_after is not None else 60  # conservative fallback
        wait = max(1, min(wait, self.MAX_SLEEP_SECONDS))
        self._throttled_until = time.monotonic() + wait
        logger.warning(
            "Rate limited (429), will wait %ds before next request", wait,
        )

    async def wait_if_needed(self) -> None:
        # Honour 429 throttle first
        now = time.monotonic()
        if self._throttled_until > now:
            sleep_duration = self._throttled_until - now
            logger.warning(
                "Waiting %.0fs for rate limit reset (429 throttle)",
                sleep_duration,
            )
            await asyncio.sleep(sleep_duration)
            self._throttled_until = 0.0
            now = time.monotonic()

        self._expire(now)
        if len(self._calls) >= self.max_calls:
            sleep_duration = min(
                self.period_seconds - (now - self._calls[0]), self.MAX_SLEEP_SECONDS,
            )
            if sleep_duration > 0:
                logger.info(
                    "Call budget spent (%d per %.0fs), sleeping %.1fs",
                    self.max_calls, self.period_seconds, sleep_duration,
                )
                await asyncio.sleep(sleep_duration)
            self._calls.popleft()
            now = time.monotonic()
        self._calls.append(now)
