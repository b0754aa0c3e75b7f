"""Process configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings

from trafficgen.scenarios.models import KeepalivePolicy


class Settings(BaseSettings):
    app_name: str = "trafficgen"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    log_json: bool = False

    scenario_file: str = "scenario.yml"

    # Per-scenario worker concurrency
    worker_count: int = Field(default=100, gt=0)

    request_timeout_seconds: float = Field(default=10.0, gt=0)
    connect_timeout_seconds: float = Field(default=30.0, gt=0)
    follow_redirects: bool = True

    # Connection pool defaults, overridable per scenario
    disable_keepalive: bool = False
    keepalive_seconds: float = Field(default=10.0, ge=0)
    idle_timeout_seconds: float = Field(default=10.0, ge=0)
    drain_grace_seconds: float = Field(default=1.0, ge=0)
    max_keepalive_connections: int = Field(default=1000, ge=0)

    model_config = {"env_prefix": "TRAFFICGEN_", "env_file": ".env", "extra": "ignore"}

    def default_policy(self) -> KeepalivePolicy:
        return KeepalivePolicy(
            disable_keepalive=self.disable_keepalive,
            keepalive_seconds=self.keepalive_seconds,
            idle_timeout_seconds=self.idle_timeout_seconds,
        )
