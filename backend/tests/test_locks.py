"""Tests for per-venue critical sections."""

from __future__ import annotations

import asyncio

from backend.restorany.locks import VenueLocks


class TestVenueLocks:
    def test_same_venue_is_serialized(self):
        locks = VenueLocks()
        counter = {"value": 0, "inside": 0}
        peaks = []

        async def bump():
            async with locks.hold("venue-1"):
                counter["inside"] += 1
                peaks.append(counter["inside"])
                current = counter["value"]
                await asyncio.sleep(0.001)
                counter["value"] = current + 1
                counter["inside"] -= 1

        async def scenario():
            await asyncio.gather(*(bump() for _ in range(20)))

        asyncio.run(scenario())

        assert counter["value"] == 20
        assert max(peaks) == 1
        assert locks.active() == 0

    def test_different_venues_run_concurrently(self):
        locks = VenueLocks()

        async def scenario():
            entered = asyncio.Event()

            async def first():
                async with locks.hold("a"):
                    await asyncio.wait_for(entered.wait(), timeout=1.0)

            async def second():
                async with locks.hold("b"):
                    entered.set()

            await asyncio.gather(first(), second())

        asyncio.run(scenario())

    def test_idle_locks_are_dropped(self):
        locks = VenueLocks()

        async def scenario():
            async with locks.hold("a"):
                assert locks.active() == 1
            assert locks.active() == 0

        asyncio.run(scenario())
