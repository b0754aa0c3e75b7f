"""Outcome fan-in and tallying."""

from __future__ import annotations

import asyncio
import collections

from trafficgen.scenarios.models import Outcome, ScenarioReport

from .workers import OutcomeQueue, WorkerPool

# Put on the merged stream once every worker has exited
END_OF_OUTCOMES = None


def merge(pool: WorkerPool, outcomes: OutcomeQueue) -> asyncio.Task[None]:
    """Close the merged outcome stream after all of *pool*'s workers finish."""

    async def closer() -> None:
        try:
            await pool.join()
        finally:
            await outcomes.put(END_OF_OUTCOMES)

    return asyncio.create_task(closer(), name=f"{pool.scenario.name}-merge")


async def tally(outcomes: OutcomeQueue) -> ScenarioReport:
    """Count outcomes until the stream closes and return the final report."""
    counter: collections.Counter[Outcome] = collections.Counter()
    while True:
        outcome = await outcomes.get()
        if outcome is END_OF_OUTCOMES:
            break
        counter[outcome] += 1
    return ScenarioReport(
        success=counter[Outcome.SUCCESS],
        validation_failed=counter[Outcome.VALIDATION_FAILED],
        request_failed=counter[Outcome.REQUEST_FAILED],
    )
