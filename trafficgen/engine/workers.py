"""Fixed-size pool of request workers for one scenario."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from trafficgen.errors import RequestFailedError
from trafficgen.scenarios.models import Outcome, Scenario

from .executor import RequestExecutor
from .validators import ResponseRule, validate

logger = structlog.get_logger()

# Placed once per worker on the dispatch queue to close it
END_OF_DISPATCH = None

DispatchQueue = asyncio.Queue[Scenario | None]
OutcomeQueue = asyncio.Queue[Outcome | None]


class WorkerPool:
    """Runs ``size`` workers that each emit exactly one outcome per dispatch."""

    def __init__(
        self,
        scenario: Scenario,
        executor: RequestExecutor,
        rules: Sequence[ResponseRule],
        size: int,
    ) -> None:
        if size <= 0:
            raise ValueError(f"worker pool size must be > 0, got {size}")
        self.scenario = scenario
        self.executor = executor
        self.rules = list(rules)
        self.size = size
        self.tasks: list[asyncio.Task[None]] = []
        self._log = logger.bind(scenario=scenario.name)

    def start(self, dispatch: DispatchQueue, outcomes: OutcomeQueue) -> None:
        self.tasks = [
            asyncio.create_task(
                self._worker(dispatch, outcomes),
                name=f"{self.scenario.name}-worker-{i}",
            )
            for i in range(self.size)
        ]

    async def _worker(self, dispatch: DispatchQueue, outcomes: OutcomeQueue) -> None:
        while True:
            scenario = await dispatch.get()
            if scenario is END_OF_DISPATCH:
                return
            try:
                outcome = await self.run_one(scenario)
            except Exception:
                self._log.exception("worker_request_crashed", url=scenario.url)
                outcome = Outcome.REQUEST_FAILED
            await outcomes.put(outcome)

    async def run_one(self, scenario: Scenario) -> Outcome:
        """Execute and validate one dispatch."""
        try:
            status_code = await self.executor.execute(scenario.url)
        except RequestFailedError as exc:
            self._log.warning("request_failed", url=scenario.url, error=exc.reason)
            return Outcome.REQUEST_FAILED

        failure = validate(self.rules, status_code)
        if failure is not None:
            self._log.warning(
                "validation_failed",
                rule=failure.rule_name,
                details=failure.details,
            )
            return Outcome.VALIDATION_FAILED

        self._log.debug("request_succeeded", status_code=status_code)
        return Outcome.SUCCESS

    async def join(self) -> None:
        await asyncio.gather(*self.tasks)
