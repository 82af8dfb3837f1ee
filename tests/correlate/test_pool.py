"""Tests for correlate/pool.py."""

from __future__ import annotations

import asyncio

import pytest

from actionlens.correlate.models import CancellationSignal
from actionlens.correlate.pool import ResolutionPool


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class TestAcquire:
    def test_given_non_positive_limit_then_value_error(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            ResolutionPool(0)

    @pytest.mark.asyncio
    async def test_given_unbounded_pool_then_never_waits(self) -> None:
        pool = ResolutionPool()

        assert all([await pool.acquire() for _ in range(100)])

    @pytest.mark.asyncio
    async def test_given_full_pool_then_waits_for_release(self) -> None:
        # Given
        pool = ResolutionPool(1)
        assert await pool.acquire()
        waiter = asyncio.ensure_future(pool.acquire())
        await _settle()
        assert not waiter.done()

        # When
        pool.release()

        # Then
        assert await asyncio.wait_for(waiter, timeout=1) is True

    @pytest.mark.asyncio
    async def test_given_cancelled_signal_then_false_without_slot(self) -> None:
        pool = ResolutionPool(1)
        signal = CancellationSignal()
        signal.cancel()

        assert await pool.acquire(signal) is False
        assert await asyncio.wait_for(pool.acquire(), timeout=1) is True

    @pytest.mark.asyncio
    async def test_given_cancel_while_waiting_then_false_and_slot_not_leaked(self) -> None:
        # Given
        pool = ResolutionPool(1)
        signal = CancellationSignal()
        assert await pool.acquire(signal)
        waiter = asyncio.ensure_future(pool.acquire(signal))
        await _settle()

        # When
        signal.cancel()

        # Then
        assert await asyncio.wait_for(waiter, timeout=1) is False
        pool.release()
        assert await asyncio.wait_for(pool.acquire(), timeout=1) is True


class TestSpawnAndDrain:
    @pytest.mark.asyncio
    async def test_spawned_task_releases_slot_when_done(self) -> None:
        pool = ResolutionPool(1)
        await pool.acquire()

        task = pool.spawn(asyncio.sleep(0, result="done"))
        await pool.drain()

        assert task.result() == "done"
        assert pool.in_flight == frozenset()
        assert await asyncio.wait_for(pool.acquire(), timeout=1)

    @pytest.mark.asyncio
    async def test_spawned_task_releases_slot_on_error(self) -> None:
        async def boom() -> None:
            raise RuntimeError("boom")

        pool = ResolutionPool(1)
        await pool.acquire()

        task = pool.spawn(boom())
        await pool.drain()

        assert isinstance(task.exception(), RuntimeError)
        assert await asyncio.wait_for(pool.acquire(), timeout=1)

    @pytest.mark.asyncio
    async def test_drain_waits_for_every_in_flight_task(self) -> None:
        pool = ResolutionPool(3)
        finished: list[float] = []

        async def work(delay: float) -> None:
            await asyncio.sleep(delay)
            finished.append(delay)

        for delay in (0.03, 0.01, 0.02):
            await pool.acquire()
            pool.spawn(work(delay))
        assert len(pool.in_flight) == 3

        await pool.drain()

        assert finished == [0.01, 0.02, 0.03]
        assert not pool.in_flight

    @pytest.mark.asyncio
    async def test_drain_with_nothing_in_flight_returns(self) -> None:
        await asyncio.wait_for(ResolutionPool(2).drain(), timeout=1)


class TestAbandon:
    @pytest.mark.asyncio
    async def test_abandon_stops_tracking_without_cancelling(self) -> None:
        # Given
        gate = asyncio.Event()
        pool = ResolutionPool(1)
        await pool.acquire()
        task = pool.spawn(gate.wait())
        await _settle()

        # When
        pool.abandon()

        # Then
        assert pool.in_flight == frozenset()
        assert task in pool.detached
        gate.set()
        await _settle()
        assert task.done() and not task.cancelled()
        assert task not in pool.detached

    @pytest.mark.asyncio
    async def test_detached_failure_is_consumed(self) -> None:
        async def boom() -> None:
            await asyncio.sleep(0)
            raise RuntimeError("late failure")

        pool = ResolutionPool(1)
        task = asyncio.ensure_future(boom())

        pool.detach(task)
        assert task in pool.detached
        await _settle()

        assert task.done()
        assert not pool.detached

    @pytest.mark.asyncio
    async def test_detach_of_finished_task_is_immediate(self) -> None:
        task = asyncio.ensure_future(asyncio.sleep(0))
        await task
        pool = ResolutionPool(1)

        pool.detach(task)

        assert not pool.detached

    @pytest.mark.asyncio
    async def test_detached_tasks_are_per_pool(self) -> None:
        gate = asyncio.Event()
        first, second = ResolutionPool(1), ResolutionPool(1)
        task = asyncio.ensure_future(gate.wait())

        first.detach(task)

        assert first.detached == frozenset({task})
        assert second.detached == frozenset()
        gate.set()
        await _settle()
        assert not first.detached
