"""
Unit tests for storage/gate.py
"""

import asyncio
import pytest

from defcache.storage.gate import MutationGate, MutationGateError


class TestMutationGate:
    """Test MutationGate serialization."""

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        gate = MutationGate()

        async def work():
            return 42

        assert await gate.run(work, owner="test") == 42
        assert not gate.is_locked
        assert gate.admitted_count == 1

    @pytest.mark.asyncio
    async def test_work_is_serialized_in_fifo_order(self):
        gate = MutationGate()
        events = []

        def make_work(name):
            async def work():
                events.append(f"start {name}")
                await asyncio.sleep(0.01)
                events.append(f"end {name}")
                return name
            return work

        results = await asyncio.gather(*(gate.run(make_work(n), owner=n) for n in ("a", "b", "c")))

        assert results == ["a", "b", "c"]
        assert events == ["start a", "end a", "start b", "end b", "start c", "end c"]

    @pytest.mark.asyncio
    async def test_failure_releases_gate(self):
        gate = MutationGate()

        async def fail():
            raise RuntimeError("boom")

        async def ok():
            return "ok"

        with pytest.raises(RuntimeError):
            await gate.run(fail)
        assert await gate.run(ok) == "ok"

    @pytest.mark.asyncio
    async def test_owner_tracked_while_held(self):
        gate = MutationGate()
        async with gate.exclusive_access("prune"):
            assert gate.is_locked
            assert gate.owner == "prune"
        assert gate.owner is None

    @pytest.mark.asyncio
    async def test_waiting_count(self):
        gate = MutationGate()
        await gate.acquire("first")

        waiter = asyncio.ensure_future(gate.acquire("second"))
        await asyncio.sleep(0)
        assert gate.waiting == 1

        gate.release("first")
        await waiter
        assert gate.owner == "second"
        assert gate.waiting == 0
        gate.release("second")

    @pytest.mark.asyncio
    async def test_release_by_wrong_owner(self):
        gate = MutationGate()
        await gate.acquire("first")
        with pytest.raises(MutationGateError):
            gate.release("second")
        gate.release("first")

    def test_release_unheld_gate(self):
        with pytest.raises(MutationGateError):
            MutationGate().release("anyone")
