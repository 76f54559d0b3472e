"""
KeySort Scheduling

Cancellable one-shot timers behind a single ``arm(delay, callback)``
primitive. The sorting core never sleeps; it arms a timer and cancels it
before arming the next one.
"""

import asyncio
import heapq
import itertools
from typing import Any, Callable, List, Optional, Protocol, Tuple

# Clock comparisons tolerate float drift from summed advance() steps
CLOCK_TOLERANCE = 1e-9


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def arm(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...


# ═══════════════════════════════════════════════════════════════════════════
# MANUAL (FAKE CLOCK) SCHEDULER
# ═══════════════════════════════════════════════════════════════════════════

class ScheduledCall:
    """Handle for a callback armed on a ManualScheduler"""

    def __init__(self, due: float, callback: Callable[[], Any]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class ManualScheduler:
    """
    Deterministic scheduler driven by an explicit clock.

    Nothing fires until ``advance`` is called, which makes debounce
    behaviour testable without real delays.

    Example usage:
        scheduler = ManualScheduler()
        scheduler.arm(1.0, on_timeout)
        scheduler.advance(0.999)   # nothing yet
        scheduler.advance(0.001)   # on_timeout fires
    """

    def __init__(self, start: float = 0.0):
        self.now = start
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def arm(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall(self.now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    def pending(self) -> List[ScheduledCall]:
        """Get armed callbacks that have neither fired nor been cancelled"""
        return sorted(
            (call for _, _, call in self._queue if call.active),
            key=lambda call: call.due,
        )

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every callback that falls due.

        Callbacks armed while advancing fire too if their due time is
        inside the advanced window.

        Returns:
            Number of callbacks fired
        """
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target + CLOCK_TOLERANCE:
            due, _, call = heapq.heappop(self._queue)
            if not call.active:
                continue
            self.now = max(self.now, due)
            call.fired = True
            call.callback()
            fired += 1
        self.now = target
        return fired

    def run_all(self) -> int:
        """Advance until no armed callbacks remain"""
        fired = 0
        while self.pending():
            fired += self.advance(self.pending()[0].due - self.now)
        return fired


# ═══════════════════════════════════════════════════════════════════════════
# ASYNCIO SCHEDULER
# ═══════════════════════════════════════════════════════════════════════════

class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later`` for asyncio hosts"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def arm(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


def cancel(handle: Optional[TimerHandle]) -> None:
    """Cancel a timer handle if one is set"""
    if handle is not None:
        handle.cancel()
