"""One-shot timers on the frame-processing lane.

Cooldowns and pose holds are deferred callbacks. They run on the same lane as
frame delivery, so a timer fires between frames and never concurrently with one.

Two schedulers are provided:
- ManualScheduler: virtual millisecond clock moved by ``advance()``. Used for
  deterministic replay of recordings and in tests.
- AsyncioScheduler: real time, backed by ``loop.call_later``.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, Optional

Callback = Callable[[], None]


class TimerHandle:
    """A scheduled one-shot callback."""

    def __init__(self, due_ms: float, callback: Callback):
        self.due_ms = due_ms
        self._callback = callback
        self._cancelled = False
        self._fired = False
        self._native: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._fired)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Cancel the callback. No-op once fired or already cancelled."""
        if not self.pending:
            return
        self._cancelled = True
        if self._native is not None:
            self._native.cancel()

    def _fire(self):
        if not self.pending:
            return
        self._fired = True
        self._callback()


class Scheduler(ABC):
    """Source of one-shot timers and of the current time in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        ...

    @abstractmethod
    def now(self) -> float:
        ...


class ManualScheduler(Scheduler):
    """Scheduler driven by an explicit virtual clock.

    Usage:
        scheduler = ManualScheduler()
        scheduler.call_later(1000, on_elapse)
        scheduler.advance(999)   # nothing fires
        scheduler.advance(1)     # on_elapse runs
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(self._now + max(0.0, float(delay_ms)), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))
        return handle

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward, firing due timers in order. Returns fired count."""
        return self.advance_to(self._now + delta_ms)

    def advance_to(self, target_ms: float) -> int:
        if target_ms < self._now:
            raise ValueError(f"Cannot move clock backwards ({target_ms} < {self._now})")

        fired = 0
        # Callbacks may schedule new timers; those are picked up if due
        while self._queue and self._queue[0][0] <= target_ms:
            due, _, handle = heapq.heappop(self._queue)
            if not handle.pending:
                continue
            self._now = due
            handle._fire()
            fired += 1

        self._now = float(target_ms)
        return fired

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if h.pending)


class AsyncioScheduler(Scheduler):
    """Real-time scheduler on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(self.now() + delay_ms, callback)
        handle._native = self.loop.call_later(max(0.0, delay_ms) / 1000.0, handle._fire)
        return handle
