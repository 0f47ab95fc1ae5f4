"""HTTP client adapter delivering scheduled items downstream."""

import asyncio
import logging
import time
from types import TracebackType

import aiohttp
from aiohttp import ClientResponse, ClientTimeout

from src.adapters.driven.http.retry import retry
from src.ports.http import HttpPort
from src.ports.metrics import HttpAttemptDto, MetricsPort

__all__ = ["HttpClient", "is_success"]

logger = logging.getLogger(__name__)

PROBE_RETRIES = 5
PROBE_TIMEOUT = 10
SEND_TIMEOUT = 30
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def is_success(status: int) -> bool:
    """Return True for 2xx status codes."""
    return 200 <= status < 300


class HttpClient:
    """HTTP client posting form payloads, with metrics collection.

    Features:
    - One form-encoded POST per delivery, never retried.
    - Metrics collection (delay past due time, failure rate).
    - Context manager for proper resource cleanup.
    - Health check/probe functionality (retried, startup only).
    """

    def __init__(self, metrics: MetricsPort | None = None, timeout_sec: float = SEND_TIMEOUT) -> None:
        """Initialize HTTP client.

        Args:
            metrics: Optional metrics collector to track attempts.
            timeout_sec: Total timeout of one delivery.
        """
        self.metrics = metrics
        self.timeout_sec = timeout_sec
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpClient":
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.session:
            await self.session.close()

    @retry(times=PROBE_RETRIES)
    async def _probe_once(self, url: str, timeout: int = PROBE_TIMEOUT) -> ClientResponse:
        """Single HTTP GET request for health check (with retry).

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors (retried by decorator).
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")
        client_timeout = ClientTimeout(timeout)
        return await self.session.get(url, timeout=client_timeout, allow_redirects=True)

    async def probe(self, url: str, timeout: int = PROBE_TIMEOUT) -> bool:
        """Check if the downstream endpoint is reachable.

        Attempts up to PROBE_RETRIES times with exponential backoff.

        Args:
            url: URL to probe.
            timeout: Timeout in seconds.

        Returns:
            True if reachable with a 2xx status, False otherwise.
        """
        logger.info(f"Probing endpoint {url}...")
        try:
            resp = await self._probe_once(url, timeout)
            logger.info(f"Probe for {url} returned status {resp.status}")
            return is_success(resp.status)
        except Exception as e:
            logger.warning(f"Probe failed for {url}: {e}")
            return False

    async def _raw_send(self, req: HttpPort) -> ClientResponse:
        """Single form-encoded HTTP POST; the body is read to free the connection.

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")

        headers = {"Content-Type": FORM_CONTENT_TYPE, **req.headers}
        resp = await self.session.post(
            req.url,
            data=list(req.payload),
            headers=headers,
            timeout=ClientTimeout(total=self.timeout_sec),
        )
        await resp.read()
        return resp

    async def send(self, req: HttpPort) -> ClientResponse:
        """Deliver one item and record metrics.

        Transport errors are recorded as failed attempts and re-raised;
        the caller decides how to log them.

        Args:
            req: Outbound request.

        Returns:
            HTTP response (status available, body already read).
        """
        scheduled = req.scheduled_at.timestamp()
        fired = time.time()

        try:
            resp = await self._raw_send(req)
        except (aiohttp.ClientError, asyncio.TimeoutError):
            self._record(HttpAttemptDto(scheduled_at_sec=scheduled, fired_at_sec=fired, is_failed=True))
            raise

        self._record(
            HttpAttemptDto(
                scheduled_at_sec=scheduled,
                fired_at_sec=fired,
                is_failed=not is_success(resp.status),
                status_code=resp.status,
            )
        )
        return resp

    def _record(self, attempt: HttpAttemptDto) -> None:
        if self.metrics:
            self.metrics.update(attempt)
            logger.info(f"Delivery metrics: {self.metrics}")
