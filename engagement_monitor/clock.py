"""
Clock / Timer Source - time, repeating timers and background sends for monitor sessions

Every session object owns its timers through a TimerHandle obtained from a
Clock, so stopping a session cancels exactly its own timers.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Coroutine, List, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """Handle for a repeating timer; cancel() is idempotent."""

    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback
        self._active = True
        self._pending: Optional[asyncio.TimerHandle] = None

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self):
        """Stop the timer. Safe to call more than once."""
        self._active = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


class Clock(ABC):
    """Source of time and repeating timers."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""

    @abstractmethod
    def utcnow(self) -> datetime:
        """Current wall-clock time as a naive UTC datetime."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Invoke callback every `interval` seconds until the handle is cancelled."""

    @abstractmethod
    def spawn(self, coro: Coroutine) -> Optional[asyncio.Task]:
        """Run a coroutine in the background; the caller does not wait for it."""


class SystemClock(Clock):
    """
    Real clock backed by time.time() and the running asyncio loop.

    Timers re-arm with loop.call_later, so callbacks run on the event loop
    thread and never interleave.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def now(self) -> float:
        return time.time()

    def utcnow(self) -> datetime:
        return datetime.utcnow()

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        handle = TimerHandle(interval, callback)

        def _fire():
            if not handle.active:
                return
            handle._pending = loop.call_later(interval, _fire)
            try:
                callback()
            except Exception:
                logger.exception(f"Timer callback failed: {callback!r}")

        handle._pending = loop.call_later(interval, _fire)
        return handle

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        loop = self._loop or asyncio.get_running_loop()
        return loop.create_task(coro)


class _Scheduled:
    def __init__(self, handle: TimerHandle, due: float):
        self.handle = handle
        self.due = due


class ManualClock(Clock):
    """
    Deterministic clock for tests and simulations.

    advance() moves time forward and fires every due timer in temporal
    order; timers created or cancelled by a callback take effect immediately.

    Spawned coroutines are queued, not run, until run_pending() or the
    next advance(), so a caller can observe that spawning never waits.
    """

    def __init__(self, start: float = 0.0, epoch: Optional[datetime] = None):
        self._now = start
        self._start = start
        self._epoch = epoch or datetime(2024, 1, 1)
        self._timers: List[_Scheduled] = []
        self._background: List[Coroutine] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def now(self) -> float:
        return self._now

    def utcnow(self) -> datetime:
        return self._epoch + timedelta(seconds=self._now - self._start)

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(interval, callback)
        self._timers.append(_Scheduled(handle, self._now + interval))
        return handle

    def spawn(self, coro: Coroutine) -> None:
        self._background.append(coro)
        return None

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if t.handle.active)

    @property
    def pending_tasks(self) -> int:
        return len(self._background)

    def run_pending(self):
        """Run queued coroutines to completion in spawn order."""
        while self._background:
            coro = self._background.pop(0)
            if self._loop is None:
                self._loop = asyncio.new_event_loop()
            self._loop.run_until_complete(coro)

    def advance(self, seconds: float):
        """Move time forward by `seconds`, firing due timers in order."""
        target = self._now + seconds
        self.run_pending()
        while True:
            self._timers = [t for t in self._timers if t.handle.active]
            due = [t for t in self._timers if t.due <= target]
            if not due:
                break
            nxt = min(due, key=lambda t: t.due)
            self._now = nxt.due
            nxt.due += nxt.handle.interval
            nxt.handle.callback()
            self.run_pending()
        self._now = target

    def close(self):
        """Discard queued coroutines and close the private event loop."""
        for coro in self._background:
            coro.close()
        self._background = []
        if self._loop is not None:
            self._loop.close()
            self._loop = None
