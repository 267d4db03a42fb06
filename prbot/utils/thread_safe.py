"""Concurrency-safe utilities for the patch worker pool.

Counters and statistics shared by the fan-out workers, plus a sliding-window
rate limiter for blob fetches.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from prbot.utils.logger import log_debug, log_info


class PatchStats:
    """Statistics for one run of the patch worker pool."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._stats: Dict[str, Any] = {
            "candidates": 0,
            "processed": 0,
            "unchanged": 0,
            "changed": 0,
            "fetch_failures": 0,
            "check_failures": 0,
            "unexpected_errors": 0,
            "start_time": None,
            "end_time": None,
        }

    async def set_candidates(self, count: int):
        """Set total number of candidates to process."""
        async with self._lock:
            self._stats["candidates"] = count

    async def record_start(self):
        """Record processing start time."""
        async with self._lock:
            self._stats["start_time"] = datetime.now()

    async def record_end(self):
        """Record processing end time."""
        async with self._lock:
            self._stats["end_time"] = datetime.now()

    async def record(self, outcome: str):
        """Record one finished candidate.

        Args:
            outcome: One of ``unchanged``, ``changed``, ``fetch_failures``,
                ``check_failures`` or ``unexpected_errors``
        """
        async with self._lock:
            if outcome not in self._stats:
                raise KeyError(f"Unknown outcome: {outcome}")
            self._stats[outcome] += 1
            self._stats["processed"] += 1

    async def get_summary(self) -> Dict[str, Any]:
        """Get statistics summary with derived duration."""
        async with self._lock:
            stats = dict(self._stats)

        start, end = stats["start_time"], stats["end_time"]
        stats["duration_seconds"] = (end - start).total_seconds() if start and end else 0.0
        stats["failures"] = (
            stats["fetch_failures"] + stats["check_failures"] + stats["unexpected_errors"]
        )
        if start:
            stats["start_time"] = start.isoformat()
        if end:
            stats["end_time"] = end.isoformat()
        return stats

    async def log_progress(self):
        """Log current progress."""
        async with self._lock:
            processed = self._stats["processed"]
            total = self._stats["candidates"]
            percent = (processed / total * 100) if total > 0 else 0

            log_info(
                "Patch processing progress",
                processed=processed,
                total=total,
                percent=f"{percent:.1f}%",
                changed=self._stats["changed"],
            )


class RateLimiter:
    """Sliding-window rate limiter for API calls."""

    def __init__(self, max_calls: int, time_window: float):
        """Initialize rate limiter.

        Args:
            max_calls: Maximum calls allowed in time window
            time_window: Time window in seconds
        """
        self.max_calls = max_calls
        self.time_window = time_window
        self._calls: List[float] = []
        self._lock = asyncio.Lock()

    async def acquire(self):
        """Wait until rate limit allows another call."""
        async with self._lock:
            now = datetime.now().timestamp()

            # Remove old calls outside time window
            self._calls = [t for t in self._calls if now - t < self.time_window]

            if len(self._calls) >= self.max_calls:
                oldest_call = min(self._calls)
                sleep_time = self.time_window - (now - oldest_call)
                if sleep_time > 0:
                    log_debug("Rate limit reached, waiting", sleep_seconds=sleep_time)
                    await asyncio.sleep(sleep_time)
                    now = datetime.now().timestamp()

            self._calls.append(now)


def build_rate_limiter(calls_per_second: float) -> Optional[RateLimiter]:
    """Return a one-second-window limiter, or None when throttling is off."""
    if calls_per_second <= 0:
        return None
    return RateLimiter(max_calls=max(1, int(calls_per_second)), time_window=1.0)
