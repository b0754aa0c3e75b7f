"""Paced HTTP GET traffic generator."""

from trafficgen.config import Settings
from trafficgen.engine.supervisor import ScenarioSupervisor
from trafficgen.scenarios.models import Outcome, Scenario, ScenarioReport, Validate

__version__ = "0.1.0"

__all__ = [
    "Outcome",
    "Scenario",
    "ScenarioReport",
    "ScenarioSupervisor",
    "Settings",
    "Validate",
]
