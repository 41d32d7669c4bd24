"""
Tests for per-key asyncio locks.
"""

from __future__ import annotations

import asyncio

import pytest

from ticket_store.services.locks import KeyedLocks


class TestKeyedLocks:
    @pytest.mark.asyncio
    async def test_serializes_same_key(self):
        locks = KeyedLocks()
        events = []

        async def worker(name: str) -> None:
            async with locks.hold("registry"):
                events.append(f"{name}-start")
                await asyncio.sleep(0)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_different_keys_interleave(self):
        locks = KeyedLocks()
        events = []

        async def worker(key: str) -> None:
            async with locks.hold(key):
                events.append(f"{key}-start")
                await asyncio.sleep(0)
                events.append(f"{key}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a-start", "b-start", "a-end", "b-end"]

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self):
        locks = KeyedLocks()

        async with locks.hold(("skill-builds", "42")):
            assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        locks = KeyedLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold("k"):
                raise RuntimeError("boom")

        assert len(locks) == 0
        async with locks.hold("k"):
            pass
