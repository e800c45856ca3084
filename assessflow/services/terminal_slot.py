"""First-writer-wins commit for per-entity terminal transitions.

Every attempt (and every assignment/submitter pair) gets a slot guarded by
an asyncio.Lock.  A transition acquires the lock, reloads the persisted
entity, and either:

  - finds it already terminal  → returns that record, won=False
  - finds it still open        → runs the writer, returns its result, won=True

The winner is whoever takes the lock first, not whichever reason sounds
more important; a timeout arriving a microsecond after a manual submit
simply observes the manual result.  The writer persists before the lock
is released, so the next holder always reloads the committed record.

Slots are reference-counted and dropped once nobody holds or waits on
them, so the registry does not grow with the number of attempts ever
started.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Hashable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Commit(Generic[T]):
    value: T
    won: bool


class TerminalSlot(Generic[T]):
    def __init__(self, is_terminal: Callable[[T], bool]) -> None:
        self._lock = asyncio.Lock()
        self._is_terminal = is_terminal

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def guard(self) -> AsyncIterator[None]:
        """Exclusive section for non-terminal writes (e.g. answer autosave)."""
        async with self._lock:
            yield

    async def commit(
        self,
        load: Callable[[], Awaitable[T]],
        write: Callable[[T], Awaitable[T]],
    ) -> Commit[T]:
        """Run ``write`` unless the loaded entity is already terminal.

        Exceptions raised by ``write`` propagate with nothing committed.
        """
        async with self._lock:
            current = await load()
            if self._is_terminal(current):
                return Commit(current, won=False)
            return Commit(await write(current), won=True)


@dataclass(eq=False)
class _Entry(Generic[T]):
    slot: TerminalSlot[T]
    users: int = 0


class TerminalSlots(Generic[T]):
    """Keyed registry of TerminalSlot objects, created on first use."""

    def __init__(self, is_terminal: Callable[[T], bool]) -> None:
        self._is_terminal = is_terminal
        self._entries: dict[Hashable, _Entry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def acquire(self, key: Hashable) -> AsyncIterator[TerminalSlot[T]]:
        entry = self._entries.get(key)
        if entry is None:
            entry = _Entry(TerminalSlot(self._is_terminal))
            self._entries[key] = entry
        entry.users += 1
        try:
            yield entry.slot
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]
