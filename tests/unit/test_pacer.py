"""Tests for the rate pacer."""

import asyncio
import math
import time

import pytest

from trafficgen.engine.pacer import Pacer


async def _count_ticks(pacer: Pacer, window: float) -> int:
    ticks = 0
    deadline = time.monotonic() + window
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return ticks
        try:
            got = await asyncio.wait_for(pacer.next_tick(), timeout=remaining)
        except TimeoutError:
            return ticks
        if not got:
            return ticks
        ticks += 1


class TestPacer:
    @pytest.mark.parametrize("rate", [0, -1])
    def test_non_positive_rate_rejected(self, rate):
        with pytest.raises(ValueError):
            Pacer(rate, asyncio.Event())

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate(self, stop_event):
        async with Pacer(1.0, stop_event) as pacer:
            started = time.monotonic()
            assert await pacer.next_tick() is True
            assert time.monotonic() - started < 0.1

    @pytest.mark.asyncio
    async def test_tick_count_bounded_by_rate(self, stop_event):
        rate, window = 50.0, 0.5
        async with Pacer(rate, stop_event) as pacer:
            ticks = await _count_ticks(pacer, window)
        assert ticks <= math.ceil(rate * window) + 1
        assert ticks >= 10

    @pytest.mark.asyncio
    async def test_idle_consumer_gets_at_most_one_buffered_tick_plus_burst(self, stop_event):
        rate = 10.0
        async with Pacer(rate, stop_event) as pacer:
            assert await pacer.next_tick()
            # Idle for several intervals; tokens do not accumulate past one
            await asyncio.sleep(0.35)

            for _ in range(2):
                started = time.monotonic()
                assert await pacer.next_tick()
                assert time.monotonic() - started < 0.05

            started = time.monotonic()
            assert await pacer.next_tick()
            assert time.monotonic() - started >= 0.05

    @pytest.mark.asyncio
    async def test_stop_before_first_tick(self, stop_event):
        stop_event.set()
        async with Pacer(100.0, stop_event) as pacer:
            assert await pacer.next_tick() is False

    @pytest.mark.asyncio
    async def test_stop_wakes_waiting_consumer(self, stop_event):
        async with Pacer(0.5, stop_event) as pacer:
            assert await pacer.next_tick()
            asyncio.get_running_loop().call_later(0.05, stop_event.set)
            started = time.monotonic()
            assert await pacer.next_tick() is False
            assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_no_tick_after_stop_even_if_buffered(self, stop_event):
        async with Pacer(1000.0, stop_event) as pacer:
            await asyncio.sleep(0.05)
            stop_event.set()
            assert await pacer.next_tick() is False
            assert await pacer.next_tick() is False
