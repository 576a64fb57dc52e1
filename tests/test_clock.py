"""
Tests for the clock and timer source
"""
import asyncio

import pytest

from engagement_monitor.clock import ManualClock, SystemClock


class TestManualClock:
    """Tests for the deterministic test clock"""

    def test_advance_moves_time(self, clock):
        clock.advance(12.5)
        assert clock.now() == 12.5

    def test_utcnow_follows_offset(self, clock):
        clock.advance(90)
        assert clock.utcnow().isoformat() == "2024-01-01T00:01:30"

    def test_call_every_fires_per_interval(self, clock):
        """A 10s timer fires three times in 35s"""
        fired = []
        clock.call_every(10, lambda: fired.append(clock.now()))

        clock.advance(35)

        assert fired == [10, 20, 30]

    def test_timers_fire_in_temporal_order(self, clock):
        fired = []
        clock.call_every(3, lambda: fired.append(("a", clock.now())))
        clock.call_every(2, lambda: fired.append(("b", clock.now())))

        clock.advance(6)

        times = [t for _, t in fired]
        assert times == sorted(times)
        assert ("b", 2) in fired and ("a", 3) in fired

    def test_cancel_is_idempotent(self, clock):
        fired = []
        handle = clock.call_every(1, lambda: fired.append(1))

        handle.cancel()
        handle.cancel()
        clock.advance(5)

        assert fired == []
        assert handle.active is False
        assert clock.active_timers == 0

    def test_callback_can_cancel_its_own_timer(self, clock):
        fired = []
        handle = None

        def callback():
            fired.append(clock.now())
            if len(fired) == 2:
                handle.cancel()

        handle = clock.call_every(1, callback)
        clock.advance(10)

        assert fired == [1, 2]

    def test_rejects_non_positive_interval(self, clock):
        with pytest.raises(ValueError):
            clock.call_every(0, lambda: None)


class TestSystemClock:
    """Tests for the asyncio-backed clock"""

    def test_call_every_on_event_loop(self):
        loop = asyncio.new_event_loop()
        try:
            clock = SystemClock(loop=loop)
            fired = []
            handle = clock.call_every(0.01, lambda: fired.append(1))

            loop.run_until_complete(asyncio.sleep(0.1))
            handle.cancel()
            count = len(fired)
            loop.run_until_complete(asyncio.sleep(0.05))
        finally:
            loop.close()

        assert count >= 1
        assert len(fired) == count

    def test_failing_callback_keeps_timer_running(self):
        loop = asyncio.new_event_loop()
        calls = []

        def callback():
            calls.append(1)
            raise RuntimeError("boom")

        try:
            handle = SystemClock(loop=loop).call_every(0.01, callback)
            loop.run_until_complete(asyncio.sleep(0.1))
            handle.cancel()
        finally:
            loop.close()

        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_spawn_runs_on_running_loop(self):
        done = []

        async def job():
            done.append(1)

        task = SystemClock().spawn(job())
        assert done == []

        await task

        assert done == [1]


class TestManualClockBackground:
    """Tests for coroutines spawned on the deterministic clock"""

    def test_spawn_queues_without_running(self, clock):
        done = []

        async def job():
            done.append(1)

        assert clock.spawn(job()) is None
        assert clock.pending_tasks == 1
        assert done == []

    def test_run_pending_keeps_spawn_order(self, clock):
        done = []

        async def job(name):
            await asyncio.sleep(0)
            done.append(name)

        clock.spawn(job("first"))
        clock.spawn(job("second"))
        clock.run_pending()

        assert done == ["first", "second"]
        assert clock.pending_tasks == 0

    def test_advance_runs_pending_coroutines(self, clock):
        done = []

        async def job():
            done.append(clock.now())

        clock.spawn(job())
        clock.advance(5)

        assert done == [0.0]

    def test_coroutines_spawned_by_timers_run_during_advance(self, clock):
        done = []

        async def job(at):
            done.append(at)

        clock.call_every(2, lambda: clock.spawn(job(clock.now())))
        clock.advance(5)

        assert done == [2, 4]
