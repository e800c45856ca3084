"""One-shot deferred callbacks for attempt countdowns.

The engine needs "run this once at the deadline unless cancelled first".
AsyncioScheduler does that with ``loop.call_later`` inside the API process.
ManualScheduler does it against a FakeClock so races can be replayed
deterministically in tests.

Neither implementation is relied on for correctness: a timer that fires
after a manual submission is made inert by the attempt's terminal slot,
so a lost cancel is harmless.  Timers do not survive a restart; the
attempt controller re-arms them from persisted in-progress attempts on
startup.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from assessflow.services.clock import FakeClock

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


@dataclass(eq=False)
class TimerHandle:
    id: str
    delay_seconds: float
    cancelled: bool = False
    fired: bool = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class Scheduler(Protocol):
    def schedule_once(
        self, delay_seconds: float, callback: TimerCallback
    ) -> TimerHandle: ...
    def cancel(self, handle: TimerHandle) -> bool: ...


async def _run_callback(handle: TimerHandle, callback: TimerCallback) -> None:
    try:
        await callback()
    except Exception:
        logger.exception("Timer %s callback failed", handle.id)


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def __init__(self) -> None:
        self._timers: dict[str, asyncio.TimerHandle] = {}
        # Strong refs: the loop only keeps weak refs to running tasks.
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    def schedule_once(self, delay_seconds: float, callback: TimerCallback) -> TimerHandle:
        loop = asyncio.get_running_loop()
        handle = TimerHandle(id=uuid.uuid4().hex, delay_seconds=delay_seconds)

        def _fire() -> None:
            self._timers.pop(handle.id, None)
            handle.fired = True
            task = loop.create_task(_run_callback(handle, callback))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        self._timers[handle.id] = loop.call_later(max(0.0, delay_seconds), _fire)
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        timer = self._timers.pop(handle.id, None)
        if timer is None:
            return False
        timer.cancel()
        handle.cancelled = True
        return True

    async def shutdown(self) -> None:
        """Cancel pending timers and wait for callbacks already running."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


@dataclass(eq=False)
class _ManualEntry:
    handle: TimerHandle
    due_at: datetime
    callback: TimerCallback
    seq: int


class ManualScheduler:
    """Fires callbacks only when the test advances the clock."""

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self._entries: list[_ManualEntry] = []
        self._seq = 0

    @property
    def pending_count(self) -> int:
        return sum(1 for e in self._entries if e.handle.pending)

    def schedule_once(self, delay_seconds: float, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle(id=uuid.uuid4().hex, delay_seconds=delay_seconds)
        self._seq += 1
        self._entries.append(
            _ManualEntry(
                handle=handle,
                due_at=self._clock.now() + timedelta(seconds=max(0.0, delay_seconds)),
                callback=callback,
                seq=self._seq,
            )
        )
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        if not handle.pending:
            return False
        handle.cancelled = True
        self._entries = [e for e in self._entries if e.handle is not handle]
        return True

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due callbacks in deadline order."""
        target = self._clock.now() + timedelta(seconds=seconds)
        while True:
            due = [e for e in self._entries if e.handle.pending and e.due_at <= target]
            if not due:
                break
            entry = min(due, key=lambda e: (e.due_at, e.seq))
            self._entries.remove(entry)
            if entry.due_at > self._clock.now():
                self._clock.set(entry.due_at)
            entry.handle.fired = True
            await _run_callback(entry.handle, entry.callback)
        if target > self._clock.now():
            self._clock.set(target)
