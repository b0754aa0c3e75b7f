"""Scenario execution engine."""

from .executor import RequestExecutor
from .pacer import Pacer
from .runner import ScenarioRunner
from .supervisor import ScenarioSupervisor
from .transport import ConnectionPool, TransportManager, build_transport
from .validators import ResponseRule, RuleResult, StatusCodeRule, build_rules, validate
from .workers import WorkerPool

__all__ = [
    "ConnectionPool",
    "Pacer",
    "RequestExecutor",
    "ResponseRule",
    "RuleResult",
    "ScenarioRunner",
    "ScenarioSupervisor",
    "StatusCodeRule",
    "TransportManager",
    "WorkerPool",
    "build_rules",
    "build_transport",
    "validate",
]
