"""Shared test fixtures for trafficgen tests."""

import asyncio
from collections.abc import Callable

import httpx
import pytest

from trafficgen.config import Settings
from trafficgen.scenarios.models import KeepalivePolicy, Scenario, Validate

Handler = Callable[[httpx.Request], httpx.Response]


def mock_transport_factory(handler: Handler):
    """Transport factory that routes every pool through ``httpx.MockTransport``."""

    def factory(policy: KeepalivePolicy, settings: Settings) -> httpx.AsyncBaseTransport:
        return httpx.MockTransport(handler)

    return factory


def ok_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="ok")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        worker_count=4,
        request_timeout_seconds=2.0,
        drain_grace_seconds=0.0,
        idle_timeout_seconds=0.0,
    )


@pytest.fixture
def stop_event() -> asyncio.Event:
    return asyncio.Event()


@pytest.fixture
def make_scenario() -> Callable[..., Scenario]:
    def _make(**overrides) -> Scenario:
        data = {
            "name": "ping",
            "url": "http://target.test/health",
            "throughput": 200.0,
            "count": 10,
            "validates": [Validate(name="status_code=200", status_code=200)],
        }
        data.update(overrides)
        return Scenario(**data)

    return _make
