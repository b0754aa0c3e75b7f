"""Scenario definitions and loading."""

from .loader import load_scenario_file
from .models import (
    KeepalivePolicy,
    Outcome,
    RunState,
    Scenario,
    ScenarioFile,
    ScenarioReport,
    Validate,
)

__all__ = [
    "KeepalivePolicy",
    "Outcome",
    "RunState",
    "Scenario",
    "ScenarioFile",
    "ScenarioReport",
    "Validate",
    "load_scenario_file",
]
