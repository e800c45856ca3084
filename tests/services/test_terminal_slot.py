"""First-writer-wins semantics of TerminalSlot / TerminalSlots."""

from __future__ import annotations

import asyncio

import pytest

from assessflow.services.terminal_slot import TerminalSlot, TerminalSlots


class _Store:
    """Persisted state for one entity: None while open, a string once closed."""

    def __init__(self) -> None:
        self.value: str | None = None
        self.writes = 0

    async def load(self) -> str | None:
        await asyncio.sleep(0)
        return self.value

    def writer(self, result: str):
        async def _write(_current: str | None) -> str:
            await asyncio.sleep(0)
            self.writes += 1
            self.value = result
            return result

        return _write


def _is_closed(value: str | None) -> bool:
    return value is not None


def test_first_commit_wins_and_second_observes() -> None:
    async def scenario() -> None:
        store = _Store()
        slot: TerminalSlot[str | None] = TerminalSlot(_is_closed)
        first = await slot.commit(store.load, store.writer("manual"))
        second = await slot.commit(store.load, store.writer("timeout"))
        assert first.won is True
        assert first.value == "manual"
        assert second.won is False
        assert second.value == "manual"
        assert store.writes == 1

    asyncio.run(scenario())


def test_concurrent_commits_write_exactly_once() -> None:
    async def scenario() -> None:
        store = _Store()
        slot: TerminalSlot[str | None] = TerminalSlot(_is_closed)
        results = await asyncio.gather(
            *(slot.commit(store.load, store.writer(f"w{i}")) for i in range(20))
        )
        winners = [r for r in results if r.won]
        assert len(winners) == 1
        assert store.writes == 1
        assert {r.value for r in results} == {winners[0].value}

    asyncio.run(scenario())


def test_writer_exception_commits_nothing() -> None:
    async def scenario() -> None:
        store = _Store()
        slot: TerminalSlot[str | None] = TerminalSlot(_is_closed)

        async def failing(_current: str | None) -> str:
            raise RuntimeError("db down")

        with pytest.raises(RuntimeError):
            await slot.commit(store.load, failing)
        assert slot.locked is False
        retry = await slot.commit(store.load, store.writer("manual"))
        assert retry.won is True

    asyncio.run(scenario())


def test_commit_reloads_state_written_elsewhere() -> None:
    async def scenario() -> None:
        store = _Store()
        slot: TerminalSlot[str | None] = TerminalSlot(_is_closed)
        store.value = "closed-by-another-process"
        result = await slot.commit(store.load, store.writer("manual"))
        assert result.won is False
        assert result.value == "closed-by-another-process"

    asyncio.run(scenario())


def test_guard_serializes_with_commit() -> None:
    async def scenario() -> None:
        store = _Store()
        slot: TerminalSlot[str | None] = TerminalSlot(_is_closed)
        order: list[str] = []

        async def autosave() -> None:
            async with slot.guard():
                order.append("save-start")
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                order.append("save-end")

        async def finalize() -> None:
            await slot.commit(store.load, store.writer("manual"))
            order.append("finalized")

        await asyncio.gather(autosave(), finalize())
        assert order == ["save-start", "save-end", "finalized"]

    asyncio.run(scenario())


def test_registry_shares_slot_per_key_and_drops_idle_slots() -> None:
    async def scenario() -> None:
        slots: TerminalSlots[str | None] = TerminalSlots(_is_closed)
        async with slots.acquire("a") as one, slots.acquire("a") as two:
            assert one is two
            async with slots.acquire("b") as other:
                assert other is not one
                assert len(slots) == 2
        assert len(slots) == 0

    asyncio.run(scenario())
