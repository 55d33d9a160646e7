"""
Unit tests for the per-ranch lock registry.

Tests cover:
- Mutual exclusion on one ranch
- Independence between ranches
- Locks dropped only once nobody holds or waits on them
"""
import asyncio
import pytest


async def _critical_section(locks, ranch_id, name, trace):
    async with locks.hold(ranch_id):
        trace.append(f"{name}-in")
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        trace.append(f"{name}-out")


# ============================================================
# Exclusion Tests
# ============================================================

class TestHold:
    """Tests for RanchLockRegistry.hold."""

    @pytest.mark.asyncio
    async def test_same_ranch_is_serialized(self, locks):
        trace = []

        await asyncio.gather(
            *(_critical_section(locks, "ranch-1", name, trace) for name in "abc")
        )

        assert trace == ["a-in", "a-out", "b-in", "b-out", "c-in", "c-out"]

    @pytest.mark.asyncio
    async def test_different_ranches_interleave(self, locks):
        trace = []

        await asyncio.gather(
            _critical_section(locks, "ranch-1", "a", trace),
            _critical_section(locks, "ranch-2", "b", trace),
        )

        assert trace.index("b-in") < trace.index("a-out")

    @pytest.mark.asyncio
    async def test_lock_dropped_after_last_holder(self, locks):
        async with locks.hold("ranch-1"):
            assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_waiter_keeps_lock_alive_after_release(self, locks):
        """A newcomer must queue behind a waiter even after the first holder left."""
        trace = []
        first_in = asyncio.Event()
        release_first = asyncio.Event()

        async def first():
            async with locks.hold("ranch-1"):
                trace.append("first-in")
                first_in.set()
                await release_first.wait()
                trace.append("first-out")

        first_task = asyncio.create_task(first())
        await first_in.wait()
        waiter = asyncio.create_task(_critical_section(locks, "ranch-1", "waiter", trace))
        await asyncio.sleep(0)
        release_first.set()
        await first_task
        newcomer = asyncio.create_task(_critical_section(locks, "ranch-1", "newcomer", trace))
        await asyncio.gather(waiter, newcomer)

        assert trace == [
            "first-in", "first-out",
            "waiter-in", "waiter-out",
            "newcomer-in", "newcomer-out",
        ]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_failure_inside_releases_lock(self, locks):
        with pytest.raises(RuntimeError):
            async with locks.hold("ranch-1"):
                raise RuntimeError("boom")

        assert len(locks) == 0
        async with locks.hold("ranch-1"):
            pass


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
