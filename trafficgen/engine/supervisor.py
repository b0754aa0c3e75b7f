"""Concurrent execution of every configured scenario."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

import structlog

from trafficgen.config import Settings
from trafficgen.errors import ScenarioConfigError
from trafficgen.scenarios.models import Scenario, ScenarioReport

from .runner import ScenarioRunner
from .transport import TransportFactory, build_transport

logger = structlog.get_logger()


class ScenarioSupervisor:
    """Runs scenarios side by side, each with its own pools and workers."""

    def __init__(
        self,
        settings: Settings,
        transport_factory: TransportFactory = build_transport,
    ) -> None:
        self.settings = settings
        self.transport_factory = transport_factory

    async def run(
        self,
        scenarios: Sequence[Scenario],
        stop_event: asyncio.Event,
        rejected: Mapping[str, str] | None = None,
    ) -> dict[str, ScenarioReport]:
        """Run all *scenarios* and return their reports keyed by name.

        A scenario that fails to start, or crashes, gets a report with
        ``error`` set; the others keep running. Entries in *rejected*
        never start and are reported with their validation error.
        """
        rejected = rejected or {}
        names = [s.name for s in scenarios] + list(rejected)
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate scenario names: {', '.join(duplicates)}")

        reports: dict[str, ScenarioReport] = {}
        for name, error in rejected.items():
            logger.error("scenario_config_error", scenario=name, error=error)
            reports[name] = ScenarioReport(error=error)
        lock = asyncio.Lock()

        async def run_one(scenario: Scenario) -> None:
            runner = ScenarioRunner(scenario, self.settings, self.transport_factory)
            try:
                report = await runner.run(stop_event)
            except ScenarioConfigError as exc:
                logger.error("scenario_config_error", scenario=scenario.name, error=str(exc))
                report = ScenarioReport(error=str(exc))
            except Exception as exc:
                logger.exception("scenario_failed", scenario=scenario.name)
                report = ScenarioReport(error=f"{type(exc).__name__}: {exc}")
            async with lock:
                reports[scenario.name] = report

        logger.info("scenarios_running", count=len(scenarios))
        await asyncio.gather(
            *(
                asyncio.create_task(run_one(s), name=f"scenario-{s.name}")
                for s in scenarios
            )
        )
        return reports
