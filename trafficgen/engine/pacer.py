"""Rate pacing for the dispatch loop."""

from __future__ import annotations

import asyncio
import contextlib
import time

import structlog

logger = structlog.get_logger()


class Pacer:
    """Turns a target rate into a stream of go-ticks.

    Behaves as a token bucket with a burst of one: the first tick is
    available immediately and every further tick becomes due ``1 / rate``
    seconds after the previous one was released. At most one released tick
    waits unconsumed in the buffer.
    """

    def __init__(self, rate: float, stop_event: asyncio.Event) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be > 0, got {rate}")
        self.rate = rate
        self.interval = 1.0 / rate
        self._stop_event = stop_event
        self._ticks: asyncio.Queue[float] = asyncio.Queue(maxsize=1)
        self._task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> Pacer:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="pacer")

    async def _run(self) -> None:
        next_slot = time.monotonic()
        while not self._stop_event.is_set():
            # Release a tick only once the previous one was taken
            await self._ticks.join()
            next_slot = max(next_slot, time.monotonic())
            delay = next_slot - time.monotonic()
            if delay > 0:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            if self._stop_event.is_set():
                break
            self._ticks.put_nowait(next_slot)
            next_slot += self.interval
        logger.debug("pacer_stopped", rate=self.rate)

    async def next_tick(self) -> bool:
        """Wait for the next tick. Returns False once the stop event fired."""
        if self._stop_event.is_set():
            return False
        self.start()

        get_tick = asyncio.ensure_future(self._ticks.get())
        stopped = asyncio.ensure_future(self._stop_event.wait())
        got_tick = False
        try:
            await asyncio.wait({get_tick, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
            if not get_tick.done():
                get_tick.cancel()
            elif not get_tick.cancelled():
                got_tick = True
                self._ticks.task_done()

        if self._stop_event.is_set():
            return False
        return got_tick

    async def aclose(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
