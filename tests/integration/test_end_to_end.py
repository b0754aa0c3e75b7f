"""End-to-end scenario runs against a local HTTP server."""

import asyncio
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from trafficgen.config import Settings
from trafficgen.engine.supervisor import ScenarioSupervisor
from trafficgen.engine.transport import ConnectionPool, build_transport
from trafficgen.scenarios.models import KeepalivePolicy, Scenario, Validate

pytestmark = pytest.mark.integration


class _StatusHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:  # noqa: N802
        status = 500 if self.path.startswith("/error") else 200
        body = b"ok" if status == 200 else b"boom"
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        pass


@pytest.fixture(scope="module")
def http_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _StatusHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def unreachable_url() -> str:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/"


def _scenario(name: str, url: str, **overrides) -> Scenario:
    data = {
        "name": name,
        "url": url,
        "throughput": 10,
        "period": 2,
        "validates": [Validate(name="status_code=200", status_code=200)],
    }
    data.update(overrides)
    return Scenario(**data)


async def _run(*scenarios: Scenario, settings: Settings | None = None):
    supervisor = ScenarioSupervisor(settings or Settings(worker_count=20, request_timeout_seconds=5))
    return await supervisor.run(list(scenarios), asyncio.Event())


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_healthy_target(self, http_server):
        reports = await _run(_scenario("ok", f"{http_server}/ok"))
        report = reports["ok"]
        assert (report.success, report.validation_failed, report.request_failed) == (20, 0, 0)

    @pytest.mark.asyncio
    async def test_erroring_target(self, http_server):
        reports = await _run(_scenario("err", f"{http_server}/error", throughput=40, period=0.5))
        report = reports["err"]
        assert (report.success, report.validation_failed, report.request_failed) == (0, 20, 0)

    @pytest.mark.asyncio
    async def test_unreachable_target(self, unreachable_url):
        reports = await _run(_scenario("down", unreachable_url, throughput=40, period=0.5))
        report = reports["down"]
        assert (report.success, report.validation_failed, report.request_failed) == (0, 0, 20)

    @pytest.mark.asyncio
    async def test_rotating_pools_lose_no_requests(self, http_server):
        settings = Settings(
            worker_count=10,
            keepalive_seconds=0.2,
            idle_timeout_seconds=0.1,
            drain_grace_seconds=0.1,
        )
        scenario = _scenario("rotating", f"{http_server}/ok", throughput=50, period=1)
        reports = await _run(scenario, settings=settings)
        assert reports["rotating"].success == 50
        assert reports["rotating"].request_failed == 0

    @pytest.mark.asyncio
    async def test_keepalive_disabled(self, http_server):
        scenario = _scenario(
            "no-keepalive", f"{http_server}/ok", throughput=40, period=0.5, disable_keepalive=True
        )
        reports = await _run(scenario)
        assert reports["no-keepalive"].success == 20

    @pytest.mark.asyncio
    async def test_mixed_scenarios_in_one_run(self, http_server, unreachable_url):
        reports = await _run(
            _scenario("ok", f"{http_server}/ok", throughput=40, period=0.5),
            _scenario("err", f"{http_server}/error", throughput=40, period=0.5),
            _scenario("down", unreachable_url, throughput=40, period=0.5),
        )
        assert reports["ok"].success == 20
        assert reports["err"].validation_failed == 20
        assert reports["down"].request_failed == 20


class TestRealConnectionPool:
    @pytest.mark.asyncio
    async def test_close_idle_closes_live_keepalive_connection(self, http_server):
        settings = Settings(request_timeout_seconds=5)
        pool = ConnectionPool(build_transport(KeepalivePolicy(), settings), settings)
        try:
            response = await pool.client.get(f"{http_server}/ok")
            assert response.status_code == 200

            assert await pool.close_idle() == 1
            assert await pool.close_idle() == 0

            response = await pool.client.get(f"{http_server}/ok")
            assert response.status_code == 200
        finally:
            await pool.aclose()
