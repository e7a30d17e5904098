"""
Reconnection policy and scheduling for relay endpoints.

The policy is flat: every retry waits the same interval (plus
optional jitter), retries never stop, and nothing grows between attempts.
The scheduler is injected so tests can replace wall-clock time with a
manually advanced clock.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol, Set

from ..config import RELAY_RECONNECT_JITTER, RELAY_RECONNECT_SECONDS

logger = logging.getLogger(__name__)

RetryCallback = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class ReconnectPolicy:
    """Fixed-interval retry policy."""
    interval: float = RELAY_RECONNECT_SECONDS
    jitter: float = RELAY_RECONNECT_JITTER

    def next_delay(self, rng: Optional[random.Random] = None) -> float:
        if self.jitter <= 0:
            return self.interval
        return self.interval + (rng or random).uniform(0, self.jitter)


class ScheduledCall(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: RetryCallback) -> ScheduledCall:
        ...


class _AsyncioCall:
    """A timer that becomes a task when it fires; cancel() stops either."""

    def __init__(self, scheduler: "AsyncioScheduler", callback: RetryCallback):
        self._scheduler = scheduler
        self._callback = callback
        self.handle: Optional[asyncio.TimerHandle] = None
        self.task: Optional[asyncio.Task] = None

    def fire(self) -> None:
        self.task = asyncio.get_running_loop().create_task(self._callback())
        self._scheduler._track(self.task)

    def cancel(self) -> None:
        if self.handle is not None:
            self.handle.cancel()
        task = self.task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()


class AsyncioScheduler:
    """
    Runs retry callbacks on the running event loop.

    Fired callbacks are held as tasks until they finish; a callback that
    fails is logged here instead of surfacing as an unretrieved task error.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> int:
        return len(self._tasks)

    def call_later(self, delay: float, callback: RetryCallback) -> _AsyncioCall:
        call = _AsyncioCall(self, callback)
        call.handle = asyncio.get_running_loop().call_later(delay, call.fire)
        return call

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduled retry failed: %s", exc, exc_info=exc)


class _ManualCall:
    def __init__(self, due: float, callback: RetryCallback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler driven by an explicit clock.

    ``advance(seconds)`` moves the clock forward and awaits every callback
    that became due, in due order.
    """

    def __init__(self):
        self.now = 0.0
        self._calls: List[_ManualCall] = []

    @property
    def pending(self) -> List[float]:
        return [call.due for call in self._calls if not call.cancelled]

    def call_later(self, delay: float, callback: RetryCallback) -> _ManualCall:
        call = _ManualCall(self.now + delay, callback)
        self._calls.append(call)
        return call

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [c for c in self._calls if not c.cancelled and c.due <= target]
            if not due:
                break
            call = min(due, key=lambda c: c.due)
            self._calls.remove(call)
            self.now = call.due
            await call.callback()
        self.now = target
        self._calls = [c for c in self._calls if not c.cancelled]
