"""
throttle.py — Admission control for the batch scheduler
=======================================================
Two independent gates that every request passes before it reaches the
upstream chat endpoint:

  RateWindow        Rolling-window quota (≤ limit admissions per window).
                    Polling admission loop: purge, check, record — or sleep
                    for ``poll_interval`` and try again.  Never fails, only
                    delays.  No FIFO ordering between concurrent waiters.
  ConcurrencyGate   Counting semaphore bounding in-flight requests.
                    ``async with gate.permit():`` releases on every exit path.

Both objects are owned by a single scheduler run; nothing here is global.
Clock and sleep are injectable so tests can shrink the 60 s window.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateWindow:
    """Rolling-window admission: at most ``limit`` slots per ``window_seconds``."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        poll_interval: float = 1.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

        self.limit          = limit
        self.window_seconds = window_seconds
        self.poll_interval  = poll_interval
        self._clock         = clock
        self._sleep         = sleep
        self._timestamps: deque[float] = deque()
        self._lock          = asyncio.Lock()

    def _purge(self, now: float) -> None:
        window_start = now - self.window_seconds
        while self._timestamps and self._timestamps[0] < window_start:
            self._timestamps.popleft()

    async def acquire_slot(self) -> None:
        """Suspend until a slot is free inside the window, then record it."""
        waited = 0
        while True:
            async with self._lock:
                now = self._clock()
                self._purge(now)
                if len(self._timestamps) < self.limit:
                    self._timestamps.append(now)
                    if waited:
                        logger.debug("Rate slot admitted after %d poll(s)", waited)
                    return
            # lock is released before sleeping
            waited += 1
            await self._sleep(self.poll_interval)

    def in_window(self) -> int:
        """Number of admissions currently inside the trailing window."""
        now = self._clock()
        window_start = now - self.window_seconds
        return sum(1 for ts in self._timestamps if ts >= window_start)


class ConcurrencyGate:
    """Fixed-capacity permit pool for in-flight requests."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity   = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self.in_flight  = 0
        self.peak       = 0

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        await self._semaphore.acquire()
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            yield
        finally:
            self.in_flight -= 1
            self._semaphore.release()
