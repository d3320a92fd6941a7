"""
Tests for throttle.py — RateWindow and ConcurrencyGate.
Windows are shrunk to fractions of a second so the suite runs in real time.
Run: python -m pytest tests/test_throttle.py -v
"""
import asyncio
import time

import pytest

from factories import FakeClock

from letopia.throttle import ConcurrencyGate, RateWindow


class TestRateWindow:
    def test_admits_up_to_limit_without_waiting(self):
        async def scenario():
            window = RateWindow(3, window_seconds=10.0, poll_interval=0.01)
            t0 = time.monotonic()
            for _ in range(3):
                await window.acquire_slot()
            return time.monotonic() - t0, window.in_window()

        elapsed, count = asyncio.run(scenario())
        assert elapsed < 0.05
        assert count == 3

    def test_blocks_until_oldest_slot_leaves_window(self):
        async def scenario():
            window = RateWindow(2, window_seconds=0.2, poll_interval=0.01)
            t0 = time.monotonic()
            for _ in range(3):
                await window.acquire_slot()
            return time.monotonic() - t0

        assert asyncio.run(scenario()) >= 0.18

    def test_never_more_than_limit_admissions_in_any_window(self):
        limit, span = 3, 0.3

        async def scenario():
            window = RateWindow(limit, window_seconds=span, poll_interval=0.01)
            admitted: list[float] = []

            async def worker():
                await window.acquire_slot()
                admitted.append(time.monotonic())

            await asyncio.gather(*(worker() for _ in range(8)))
            return sorted(admitted)

        admitted = asyncio.run(scenario())
        assert len(admitted) == 8
        tolerance = 0.02
        for start in admitted:
            in_window = [t for t in admitted if start <= t < start + span - tolerance]
            assert len(in_window) <= limit

    def test_injected_clock_controls_waiting(self):
        clock = FakeClock()

        async def scenario():
            window = RateWindow(2, window_seconds=60.0, poll_interval=1.0, clock=clock, sleep=clock.sleep)
            for _ in range(3):
                await window.acquire_slot()

        asyncio.run(scenario())
        # both t=0 slots expire only once now - 60 > 0
        assert clock.now == 61.0
        assert clock.sleeps == [1.0] * 61

    def test_in_window_drops_expired_entries(self):
        clock = FakeClock()

        async def scenario():
            window = RateWindow(5, window_seconds=10.0, clock=clock, sleep=clock.sleep)
            await window.acquire_slot()
            clock.now = 5.0
            await window.acquire_slot()
            clock.now = 12.0
            return window.in_window()

        assert asyncio.run(scenario()) == 1

    @pytest.mark.parametrize("kwargs", [
        {"limit": 0},
        {"limit": 5, "window_seconds": 0},
        {"limit": 5, "poll_interval": -1},
    ])
    def test_invalid_arguments_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RateWindow(**kwargs)


class TestConcurrencyGate:
    def test_peak_never_exceeds_capacity(self):
        async def scenario():
            gate = ConcurrencyGate(3)

            async def worker():
                async with gate.permit():
                    await asyncio.sleep(0.01)

            await asyncio.gather(*(worker() for _ in range(10)))
            return gate

        gate = asyncio.run(scenario())
        assert gate.peak == 3
        assert gate.in_flight == 0

    def test_permit_released_when_body_raises(self):
        async def scenario():
            gate = ConcurrencyGate(1)
            with pytest.raises(RuntimeError):
                async with gate.permit():
                    raise RuntimeError("boom")

            async def reacquire():
                async with gate.permit():
                    return gate.in_flight

            held = await asyncio.wait_for(reacquire(), timeout=1.0)
            return held, gate.in_flight

        held, after = asyncio.run(scenario())
        assert held == 1
        assert after == 0

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            ConcurrencyGate(0)
