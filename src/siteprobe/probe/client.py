"""
Bounded-timeout HTTP probe for page resources and routes.
"""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Optional, Protocol
from urllib.parse import urlparse

import aiohttp
import structlog

from siteprobe.config.config import ProbeConfig
from siteprobe.models import ProbeResult
from siteprobe.observability.metrics import increment, observe

logger = structlog.get_logger(__name__)

SUPPORTED_METHODS = frozenset({"HEAD", "GET"})


class Prober(Protocol):
    """Anything that can probe a URL the way NetworkProbe does."""

    async def probe(
        self,
        url: str,
        *,
        method: str = "HEAD",
        timeout: Optional[float] = None,
        allow_redirects: bool = True,
        read_body: bool = False,
    ) -> ProbeResult: ...


class NetworkProbe:
    """
    Issues single HEAD/GET requests and folds every outcome into a ProbeResult.

    No retries: one probe per resource. Any failure (timeout, DNS, refused
    connection, malformed URL or response) is returned as a network error
    instead of being raised.
    """

    def __init__(self, config: ProbeConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.session = session
        self._owns_session = session is None
        self._probe_count = 0

    @property
    def probe_count(self) -> int:
        return self._probe_count

    async def initialize(self) -> None:
        """Open the HTTP session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(headers={"User-Agent": self.config.user_agent})
            self._owns_session = True
            logger.debug("Probe session opened", timeout=self.config.timeout)

    async def close(self) -> None:
        """Close the HTTP session if this probe created it. A failed close is logged, never raised."""
        session, self.session = self.session, None
        if session is None or not self._owns_session:
            return
        try:
            await session.close()
        except Exception as e:
            logger.warning("Probe session teardown failed", error=str(e) or type(e).__name__)

    async def __aenter__(self) -> "NetworkProbe":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def probe(
        self,
        url: str,
        *,
        method: str = "HEAD",
        timeout: Optional[float] = None,
        allow_redirects: bool = True,
        read_body: bool = False,
    ) -> ProbeResult:
        """
        Probe ``url`` once.

        Args:
            url: Absolute http(s) URL
            method: HEAD or GET
            timeout: Seconds before the request is abandoned (None = config default)
            allow_redirects: Follow redirects to the final response
            read_body: Keep the response body (GET only)

        Returns:
            ProbeResult with status, lower-cased headers and timings, or a
            network-error result.
        """
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported probe method: {method}")
        if self.session is None:
            raise RuntimeError("Probe session not initialized. Use 'async with NetworkProbe(...)'.")

        self._probe_count += 1
        timeout = self.config.timeout if timeout is None else timeout
        start = time.perf_counter()

        try:
            parsed = urlparse(url)
            well_formed = parsed.scheme in ("http", "https") and bool(parsed.netloc)
        except ValueError:
            well_formed = False
        if not well_formed:
            logger.warning("Malformed probe URL", url=url)
            increment("probe_requests_total", labels={"method": method, "outcome": "network_error"})
            return ProbeResult.failure("malformed URL")

        try:
            async with asyncio.timeout(timeout):
                async with self.session.request(method, url, allow_redirects=allow_redirects) as response:
                    ttfb_ms = (time.perf_counter() - start) * 1000
                    headers: Dict[str, str] = {key.lower(): value for key, value in response.headers.items()}
                    body = await response.read() if read_body and method == "GET" else b""
                    status = response.status
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning("Probe timed out", url=url, method=method, timeout=timeout)
            increment("probe_requests_total", labels={"method": method, "outcome": "timeout"})
            return ProbeResult.failure(f"timed out after {timeout}s", elapsed_ms)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning("Probe failed", url=url, method=method, error=str(e) or type(e).__name__)
            increment("probe_requests_total", labels={"method": method, "outcome": "network_error"})
            return ProbeResult.failure(str(e) or type(e).__name__, elapsed_ms)

        elapsed_ms = (time.perf_counter() - start) * 1000
        increment("probe_requests_total", labels={"method": method, "outcome": f"{status // 100}xx"})
        observe("probe_latency_seconds", elapsed_ms / 1000)
        logger.debug("Probe finished", url=url, method=method, status=status, elapsed_ms=round(elapsed_ms, 2))

        return ProbeResult(
            status=status,
            headers=headers,
            body=body,
            ttfb_ms=ttfb_ms,
            elapsed_ms=elapsed_ms,
        )
