"""Per-scenario execution: pacing, dispatch, workers and tally."""

from __future__ import annotations

import asyncio
import contextlib

import httpx
import structlog

from trafficgen.config import Settings
from trafficgen.errors import ScenarioConfigError
from trafficgen.scenarios.models import RunState, Scenario, ScenarioReport

from .aggregator import merge, tally
from .executor import RequestExecutor
from .pacer import Pacer
from .transport import TransportFactory, TransportManager, build_transport
from .validators import build_rules
from .workers import END_OF_DISPATCH, DispatchQueue, OutcomeQueue, WorkerPool

logger = structlog.get_logger()


class ScenarioRunner:
    """Runs one scenario to completion or until the stop event fires.

    State moves ``idle -> dispatching -> draining -> done``. The stop event
    only halts new dispatches; requests already handed to a worker finish
    and are counted.
    """

    def __init__(
        self,
        scenario: Scenario,
        settings: Settings,
        transport_factory: TransportFactory = build_transport,
    ) -> None:
        self.scenario = scenario
        self.settings = settings
        self.transport_factory = transport_factory
        self.state = RunState.IDLE
        self.dispatched = 0
        self._log = logger.bind(scenario=scenario.name)

    def _set_state(self, state: RunState) -> None:
        self._log.debug("scenario_state", previous=self.state, state=state)
        self.state = state

    def check_url(self) -> None:
        try:
            url = httpx.URL(self.scenario.url)
        except httpx.InvalidURL as exc:
            raise ScenarioConfigError(
                self.scenario.name, f"invalid url {self.scenario.url!r}: {exc}"
            ) from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ScenarioConfigError(
                self.scenario.name,
                f"url must be absolute http(s), got {self.scenario.url!r}",
            )

    async def run(self, stop_event: asyncio.Event) -> ScenarioReport:
        self.check_url()
        count = self.scenario.request_count
        self._log.info(
            "scenario_started",
            url=self.scenario.url,
            count=count,
            throughput=self.scenario.throughput,
            workers=self.settings.worker_count,
        )

        if count == 0:
            self._set_state(RunState.DONE)
            return ScenarioReport()

        policy = self.scenario.keepalive_policy(self.settings.default_policy())
        transports = TransportManager(
            policy,
            self.settings,
            transport_factory=self.transport_factory,
            scenario=self.scenario.name,
        )
        executor = RequestExecutor(transports, self.settings.request_timeout_seconds)
        pool = WorkerPool(
            self.scenario,
            executor,
            build_rules(self.scenario.validates),
            self.settings.worker_count,
        )

        dispatch: DispatchQueue = asyncio.Queue(maxsize=pool.size)
        outcomes: OutcomeQueue = asyncio.Queue(maxsize=pool.size)
        pool.start(dispatch, outcomes)
        merged = merge(pool, outcomes)
        reporter = asyncio.create_task(tally(outcomes), name=f"{self.scenario.name}-tally")

        try:
            self._set_state(RunState.DISPATCHING)
            await self._dispatch(count, dispatch, stop_event)

            self._set_state(RunState.DRAINING)
            for _ in range(pool.size):
                await dispatch.put(END_OF_DISPATCH)
            report = await reporter
            await merged
        finally:
            pending = [t for t in (*pool.tasks, merged, reporter) if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                with contextlib.suppress(asyncio.CancelledError):
                    await asyncio.gather(*pending, return_exceptions=True)
            await transports.aclose()

        self._set_state(RunState.DONE)
        self._log.info(
            "scenario_completed",
            dispatched=self.dispatched,
            success=report.success,
            validation_failed=report.validation_failed,
            request_failed=report.request_failed,
            transport_rotations=transports.rotations,
        )
        return report

    async def _dispatch(self, count: int, dispatch: DispatchQueue, stop_event: asyncio.Event) -> None:
        async with Pacer(self.scenario.throughput, stop_event) as pacer:
            for _ in range(count):
                if not await pacer.next_tick():
                    self._log.info("dispatch_stopped", dispatched=self.dispatched, planned=count)
                    return
                await dispatch.put(self.scenario)
                self.dispatched += 1
