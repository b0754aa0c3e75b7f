"""Pydantic models for scenarios and their reports."""

import math
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class Outcome(StrEnum):
    SUCCESS = "success"
    VALIDATION_FAILED = "validation_failed"
    REQUEST_FAILED = "request_failed"


class RunState(StrEnum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    DONE = "done"


class Validate(BaseModel):
    """A named response assertion. Unset assertion fields assert nothing."""

    name: str = ""
    status_code: int | None = None

    model_config = {"frozen": True}


class KeepalivePolicy(BaseModel):
    disable_keepalive: bool = False
    keepalive_seconds: float = Field(default=10.0, ge=0)
    idle_timeout_seconds: float = Field(default=10.0, ge=0)

    model_config = {"frozen": True}


class Scenario(BaseModel):
    """One named, independently paced request campaign against one URL.

    Timing is given either as an explicit ``count`` or as ``period`` seconds
    at ``throughput`` requests per second. Giving both is rejected.
    """

    name: str = Field(min_length=1)
    url: str
    count: int | None = Field(default=None, ge=0)
    period: float | None = Field(default=None, ge=0)
    throughput: float = Field(gt=0)

    disable_keepalive: bool | None = None
    keepalive_seconds: float | None = Field(default=None, ge=0, alias="keepalive")
    idle_timeout_seconds: float | None = Field(default=None, ge=0, alias="idle_timeout")

    validates: tuple[Validate, ...] = ()

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="after")
    def _check_timing(self) -> "Scenario":
        if self.count is None and self.period is None:
            raise ValueError("either count or period must be set")
        if self.count is not None and self.period is not None:
            raise ValueError("count and period are mutually exclusive")
        return self

    @property
    def request_count(self) -> int:
        if self.period is not None:
            return math.ceil(self.period * self.throughput)
        assert self.count is not None
        return self.count

    def keepalive_policy(self, defaults: KeepalivePolicy) -> KeepalivePolicy:
        """Resolve this scenario's overrides against *defaults*."""
        return KeepalivePolicy(
            disable_keepalive=(
                defaults.disable_keepalive
                if self.disable_keepalive is None
                else self.disable_keepalive
            ),
            keepalive_seconds=(
                defaults.keepalive_seconds
                if self.keepalive_seconds is None
                else self.keepalive_seconds
            ),
            idle_timeout_seconds=(
                defaults.idle_timeout_seconds
                if self.idle_timeout_seconds is None
                else self.idle_timeout_seconds
            ),
        )


class ScenarioFile(BaseModel):
    scenarios: list[Scenario] = Field(default_factory=list)
    # Entries that failed validation, name -> reason
    rejected: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _unique_names(self) -> "ScenarioFile":
        seen: set[str] = set()
        for name in [s.name for s in self.scenarios] + list(self.rejected):
            if name in seen:
                raise ValueError(f"duplicate scenario name: {name}")
            seen.add(name)
        return self


class ScenarioReport(BaseModel):
    success: int = 0
    validation_failed: int = 0
    request_failed: int = 0
    # Set when the scenario could not start
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        return self.success + self.validation_failed + self.request_failed
