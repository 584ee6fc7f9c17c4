"""Unit tests for the fetch gate and cancellation tokens."""

import asyncio

import pytest

from market_radar.core.concurrency import CancellationToken, FetchGate
from market_radar.core.errors import CancellationError


class TestFetchGate:
    """Tests for FetchGate."""

    @pytest.mark.asyncio
    async def test_enter_and_release(self):
        gate = FetchGate("test_gate")

        async with gate.try_enter() as entered:
            assert entered
            assert gate.busy

        assert not gate.busy

    @pytest.mark.asyncio
    async def test_second_caller_dropped_not_queued(self):
        gate = FetchGate("test_gate")
        results = []
        release = asyncio.Event()

        async def holder():
            async with gate.try_enter() as entered:
                results.append(("holder", entered))
                await release.wait()

        async def latecomer():
            async with gate.try_enter() as entered:
                results.append(("latecomer", entered))

        task = asyncio.create_task(holder())
        await asyncio.sleep(0)
        await latecomer()
        release.set()
        await task

        assert results == [("holder", True), ("latecomer", False)]
        assert gate.dropped_count() == 1
        assert not gate.busy

    @pytest.mark.asyncio
    async def test_released_on_exception(self):
        gate = FetchGate("test_gate")

        with pytest.raises(RuntimeError):
            async with gate.try_enter():
                raise RuntimeError("boom")

        assert not gate.busy

    @pytest.mark.asyncio
    async def test_concurrent_starts_admit_exactly_one(self):
        gate = FetchGate("test_gate")
        admitted = []

        async def worker(worker_id):
            async with gate.try_enter() as entered:
                if entered:
                    admitted.append(worker_id)
                    await asyncio.sleep(0.01)

        await asyncio.gather(*(worker(i) for i in range(5)))

        assert len(admitted) == 1
        assert gate.dropped_count() == 4


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initial_state(self):
        token = CancellationToken()

        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel_runs_callbacks_once(self):
        token = CancellationToken()
        calls = []
        token.add_callback(lambda: calls.append("a"))

        token.cancel()
        token.cancel()

        assert token.cancelled
        assert calls == ["a"]

    def test_callback_after_cancel_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        calls = []

        token.add_callback(lambda: calls.append("late"))

        assert calls == ["late"]

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationError):
            token.raise_if_cancelled()

    def test_ids_increase(self):
        first = CancellationToken()
        second = CancellationToken()

        assert second.id > first.id
