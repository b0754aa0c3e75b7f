"""Single-request execution with a request-scoped deadline."""

import asyncio

import httpx

from trafficgen.errors import RequestFailedError

from .transport import TransportManager


class RequestExecutor:
    """Issues one GET per call through the scenario's current pool.

    The deadline is opened fresh for every request and is not tied to the
    run's stop event: a request that has started runs to completion or to
    its own timeout.
    """

    def __init__(self, transports: TransportManager, timeout_seconds: float = 10.0) -> None:
        self.transports = transports
        self.timeout_seconds = timeout_seconds

    async def execute(self, url: str) -> int:
        """Return the response status code or raise ``RequestFailedError``."""
        pool = await self.transports.acquire()
        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await pool.client.get(url)
        except TimeoutError as exc:
            raise RequestFailedError(url, f"timed out after {self.timeout_seconds}s") from exc
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            raise RequestFailedError(url, f"{type(exc).__name__}: {exc}") from exc
        return response.status_code
