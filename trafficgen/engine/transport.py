"""Connection pool ownership and rotation for one scenario."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable

import httpx
import structlog

from trafficgen.config import Settings
from trafficgen.scenarios.models import KeepalivePolicy

logger = structlog.get_logger()

TransportFactory = Callable[[KeepalivePolicy, Settings], httpx.AsyncBaseTransport]


def build_transport(policy: KeepalivePolicy, settings: Settings) -> httpx.AsyncBaseTransport:
    """Default factory: a real pooled transport shaped by *policy*."""
    keepalive = 0 if policy.disable_keepalive else settings.max_keepalive_connections
    return httpx.AsyncHTTPTransport(
        retries=0,
        limits=httpx.Limits(
            max_connections=None,
            max_keepalive_connections=keepalive,
            keepalive_expiry=policy.idle_timeout_seconds,
        ),
    )


class ConnectionPool:
    """A pool handle: one transport plus the client that sends through it."""

    def __init__(self, transport: httpx.AsyncBaseTransport, settings: Settings) -> None:
        self.transport = transport
        self.client = httpx.AsyncClient(
            transport=transport,
            follow_redirects=settings.follow_redirects,
            timeout=httpx.Timeout(
                settings.request_timeout_seconds,
                connect=settings.connect_timeout_seconds,
            ),
        )
        self.created_at = time.monotonic()

    async def close_idle(self) -> int:
        """Close connections with no request in flight. Returns how many."""
        # httpx keeps its httpcore pool private; transports without one hold no sockets
        pool = getattr(self.transport, "_pool", None)
        if pool is None:
            return 0
        closed = 0
        for connection in list(pool.connections):
            if connection.is_idle():
                await connection.aclose()
                closed += 1
        return closed

    async def aclose(self) -> None:
        await self.client.aclose()


class TransportManager:
    """Hands out connection pools and rotates them on a keep-alive deadline.

    With keep-alive disabled a single pool is built lazily and reused
    forever. Otherwise the current pool is replaced once its refresh
    deadline passes; the retired pool keeps serving requests that already
    hold it and only has its idle connections closed after
    ``idle_timeout + drain_grace`` seconds.
    """

    def __init__(
        self,
        policy: KeepalivePolicy,
        settings: Settings,
        transport_factory: TransportFactory = build_transport,
        clock: Callable[[], float] = time.monotonic,
        scenario: str = "",
    ) -> None:
        self.policy = policy
        self._settings = settings
        self._transport_factory = transport_factory
        self._clock = clock
        self._log = logger.bind(scenario=scenario) if scenario else logger

        self._lock = asyncio.Lock()
        self._current: ConnectionPool | None = None
        self._retired: list[ConnectionPool] = []
        self._drain_tasks: set[asyncio.Task[None]] = set()
        self.refresh_deadline: float | None = None
        self.rotations = 0

    @property
    def drain_delay(self) -> float:
        return self.policy.idle_timeout_seconds + self._settings.drain_grace_seconds

    def _new_pool(self) -> ConnectionPool:
        return ConnectionPool(self._transport_factory(self.policy, self._settings), self._settings)

    async def acquire(self) -> ConnectionPool:
        async with self._lock:
            if self.policy.disable_keepalive:
                if self._current is None:
                    self._current = self._new_pool()
                    self._log.info("transport_generated", keepalive=False)
                return self._current

            now = self._clock()
            if (
                self._current is None
                or self.refresh_deadline is None
                or now > self.refresh_deadline
            ):
                old = self._current
                self._current = self._new_pool()
                self.refresh_deadline = now + self.policy.keepalive_seconds
                self.rotations += 1
                self._log.info(
                    "transport_refreshed",
                    rotation=self.rotations,
                    keepalive_seconds=self.policy.keepalive_seconds,
                )
                if old is not None:
                    self._retire(old)
            return self._current

    def _retire(self, pool: ConnectionPool) -> None:
        self._retired.append(pool)
        task = asyncio.create_task(self._drain_later(pool), name="transport-drain")
        self._drain_tasks.add(task)
        task.add_done_callback(self._drain_tasks.discard)

    async def _drain_later(self, pool: ConnectionPool) -> None:
        await asyncio.sleep(self.drain_delay)
        closed = await pool.close_idle()
        self._log.info("idle_connections_closed", closed=closed)

    async def aclose(self) -> None:
        """Release every pool. Call only once no request is in flight."""
        for task in list(self._drain_tasks):
            task.cancel()
        if self._drain_tasks:
            await asyncio.gather(*self._drain_tasks, return_exceptions=True)
        self._drain_tasks.clear()

        pools = list(self._retired)
        if self._current is not None:
            pools.append(self._current)
        for pool in pools:
            with contextlib.suppress(Exception):
                await pool.aclose()
        self._retired.clear()
        self._current = None
        self.refresh_deadline = None
