"""
Route health scoring.

Each route is measured independently: one redirect-disabled request for
TTFB, headers and JSON shape, then a fixed number of sequential requests to
the resolved URL for an averaged load time. Routes fan out concurrently and a
failing route degrades to a terminal all-bad sample without touching the
others.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, List, Optional, Sequence
from urllib.parse import urljoin

import structlog

from siteprobe.errors import RouteProbeError
from siteprobe.models import HeaderCheck, HealthSeverity, JsonEmptiness, ProbeResult, RouteHealthSample
from siteprobe.observability.metrics import increment
from siteprobe.probe.client import Prober

logger = structlog.get_logger(__name__)

LOAD_SAMPLES = 3

TTFB_BAD_MS = 1000
TTFB_WARN_MS = 500
LOAD_BAD_MS = 1500
LOAD_WARN_MS = 800


# ============================================================================
# Grading
# ============================================================================


def ttfb_severity(ttfb_ms: float) -> HealthSeverity:
    if ttfb_ms > TTFB_BAD_MS:
        return HealthSeverity.BAD
    if ttfb_ms > TTFB_WARN_MS:
        return HealthSeverity.WARN
    return HealthSeverity.GOOD


def load_severity(load_ms: float) -> HealthSeverity:
    if load_ms > LOAD_BAD_MS:
        return HealthSeverity.BAD
    if load_ms > LOAD_WARN_MS:
        return HealthSeverity.WARN
    return HealthSeverity.GOOD


def status_severity(status: int) -> HealthSeverity:
    if status >= 500:
        return HealthSeverity.BAD
    if status >= 400:
        return HealthSeverity.WARN
    return HealthSeverity.GOOD


def json_severity(emptiness: JsonEmptiness) -> HealthSeverity:
    if emptiness is JsonEmptiness.EMPTY:
        return HealthSeverity.WARN
    if emptiness is JsonEmptiness.NON_EMPTY:
        return HealthSeverity.GOOD
    return HealthSeverity.NEUTRAL


def header_check(present: bool, missing: HealthSeverity) -> HeaderCheck:
    return HeaderCheck(present=present, severity=HealthSeverity.GOOD if present else missing)


def json_emptiness(payload: Any) -> JsonEmptiness:
    """An empty array or an object without keys is empty; any other JSON value is not."""
    if isinstance(payload, (list, dict)) and len(payload) == 0:
        return JsonEmptiness.EMPTY
    return JsonEmptiness.NON_EMPTY


def degraded_sample(route: str, error: str) -> RouteHealthSample:
    """Terminal sample for a route that could not be measured."""
    return RouteHealthSample(
        url=route,
        final_url=route,
        status=0,
        status_severity=HealthSeverity.BAD,
        ttfb_ms=0.0,
        ttfb_severity=HealthSeverity.BAD,
        redirects=0,
        cache_control=HeaderCheck(present=False, severity=HealthSeverity.WARN),
        cors=HeaderCheck(present=False, severity=HealthSeverity.WARN),
        content_type=HeaderCheck(present=False, severity=HealthSeverity.BAD),
        json_empty=JsonEmptiness.NOT_APPLICABLE,
        json_severity=HealthSeverity.NEUTRAL,
        load_avg_ms=0.0,
        load_severity=HealthSeverity.BAD,
        error=error,
    )


# ============================================================================
# Scorer
# ============================================================================


class RouteHealthScorer:
    """Grades latency, headers, redirects and payload shape of candidate routes."""

    def __init__(self, prober: Prober, timeout: Optional[float] = None):
        self.prober = prober
        self.timeout = timeout

    async def _get(self, url: str, *, allow_redirects: bool, read_body: bool) -> ProbeResult:
        result = await self.prober.probe(
            url,
            method="GET",
            timeout=self.timeout,
            allow_redirects=allow_redirects,
            read_body=read_body,
        )
        if result.network_error:
            raise RouteProbeError(f"{url}: {result.error or 'network error'}")
        return result

    async def _load_average(self, url: str) -> float:
        # Sequential on purpose: overlapping samples would share connections.
        total = 0.0
        for _ in range(LOAD_SAMPLES):
            sample = await self._get(url, allow_redirects=True, read_body=True)
            total += sample.elapsed_ms
        return total / LOAD_SAMPLES

    async def _measure(self, route: str) -> RouteHealthSample:
        first = await self._get(route, allow_redirects=False, read_body=True)

        redirects = 0
        final_url = route
        if 300 <= first.status < 400:
            redirects += 1
            location = first.header("location")
            final_url = urljoin(route, location) if location else route

        cache_control = header_check(first.has_header("cache-control"), HealthSeverity.WARN)
        cors = header_check(first.has_header("access-control-allow-origin"), HealthSeverity.WARN)
        content_type = header_check(first.has_header("content-type"), HealthSeverity.BAD)

        emptiness = JsonEmptiness.NOT_APPLICABLE
        if "application/json" in (first.header("content-type") or "").lower():
            try:
                payload = json.loads(first.body.decode("utf-8-sig"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise RouteProbeError(f"{route}: invalid JSON body ({e})") from e
            emptiness = json_emptiness(payload)

        load_avg = await self._load_average(final_url)

        return RouteHealthSample(
            url=route,
            final_url=final_url,
            status=first.status,
            status_severity=status_severity(first.status),
            ttfb_ms=round(first.ttfb_ms, 2),
            ttfb_severity=ttfb_severity(first.ttfb_ms),
            redirects=redirects,
            cache_control=cache_control,
            cors=cors,
            content_type=content_type,
            json_empty=emptiness,
            json_severity=json_severity(emptiness),
            load_avg_ms=round(load_avg, 2),
            load_severity=load_severity(load_avg),
        )

    async def score_route(self, route: str) -> RouteHealthSample:
        """Measure one route; never raises for route-level failures."""
        try:
            sample = await self._measure(route)
        except RouteProbeError as e:
            logger.warning("Route degraded", route=route, error=e.message)
            sample = degraded_sample(route, e.message)
        except Exception as e:
            logger.exception("Unexpected failure while scoring route", route=route)
            sample = degraded_sample(route, str(e) or type(e).__name__)

        increment("route_samples_total", labels={"severity": sample.status_severity.value})
        return sample

    async def score_routes(self, routes: Sequence[str]) -> List[RouteHealthSample]:
        """Score all routes concurrently; results keep the input order."""
        logger.info("Scoring routes", count=len(routes))
        return list(await asyncio.gather(*(self.score_route(route) for route in routes)))
