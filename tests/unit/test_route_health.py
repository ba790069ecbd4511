"""
Tests for route health scoring.

The scorer is driven by a scripted prober so that TTFB, load timings and
headers are exact.
"""

import pytest

from siteprobe.health import LOAD_SAMPLES, RouteHealthScorer, degraded_sample
from siteprobe.health.routes import json_emptiness, load_severity, status_severity, ttfb_severity
from siteprobe.models import HealthSeverity, JsonEmptiness, ProbeResult
from siteprobe.observability.metrics import METRICS

from tests.helpers import FakeProber, metric_delta

ROUTE = "https://api.example.com/v1/items"
ALL_HEADERS = {
    "content-type": "application/json; charset=utf-8",
    "cache-control": "max-age=300",
    "access-control-allow-origin": "*",
}


def response(status=200, headers=None, body=b"", ttfb=100.0, elapsed=None):
    return ProbeResult(
        status=status,
        headers=dict(ALL_HEADERS if headers is None else headers),
        body=body,
        ttfb_ms=ttfb,
        elapsed_ms=ttfb if elapsed is None else elapsed,
    )


def scripted(first, loads=(100.0, 200.0, 300.0), final_url=ROUTE):
    """A prober answering the first request with ``first`` and the load samples with ``loads``."""
    load_results = [response(elapsed=elapsed) for elapsed in loads]
    if final_url == ROUTE:
        return FakeProber({ROUTE: [first, *load_results]})
    return FakeProber({ROUTE: first, final_url: load_results})


@pytest.mark.unit
class TestGrading:
    @pytest.mark.parametrize("ttfb, expected", [(0, "good"), (500, "good"), (500.01, "warn"), (1000, "warn"), (1001, "bad")])
    def test_ttfb(self, ttfb, expected):
        assert ttfb_severity(ttfb).value == expected

    @pytest.mark.parametrize("load, expected", [(800, "good"), (801, "warn"), (1500, "warn"), (1500.5, "bad")])
    def test_load(self, load, expected):
        assert load_severity(load).value == expected

    @pytest.mark.parametrize("status, expected", [(200, "good"), (301, "good"), (404, "warn"), (499, "warn"), (500, "bad")])
    def test_status(self, status, expected):
        assert status_severity(status).value == expected

    @pytest.mark.parametrize(
        "payload, expected",
        [
            ([], JsonEmptiness.EMPTY),
            ({}, JsonEmptiness.EMPTY),
            ([1], JsonEmptiness.NON_EMPTY),
            ({"a": 1}, JsonEmptiness.NON_EMPTY),
            (0, JsonEmptiness.NON_EMPTY),
            ("", JsonEmptiness.NON_EMPTY),
            (None, JsonEmptiness.NON_EMPTY),
        ],
    )
    def test_json_emptiness(self, payload, expected):
        assert json_emptiness(payload) is expected


@pytest.mark.unit
class TestRouteHealthScorer:
    @pytest.mark.asyncio
    async def test_healthy_json_route(self):
        prober = scripted(response(body=b'{"items": [1, 2]}', ttfb=120.0))
        sample = await RouteHealthScorer(prober).score_route(ROUTE)

        assert sample.status == 200
        assert sample.status_severity is HealthSeverity.GOOD
        assert sample.ttfb_ms == 120.0
        assert sample.ttfb_severity is HealthSeverity.GOOD
        assert sample.redirects == 0
        assert sample.final_url == ROUTE
        assert sample.cache_control.present and sample.cors.present and sample.content_type.present
        assert sample.json_empty is JsonEmptiness.NON_EMPTY
        assert sample.json_severity is HealthSeverity.GOOD
        assert sample.load_avg_ms == 200.0
        assert sample.load_severity is HealthSeverity.GOOD
        assert not sample.degraded

    @pytest.mark.asyncio
    async def test_request_pattern(self):
        prober = scripted(response(body=b"[1]"))
        await RouteHealthScorer(prober, timeout=15.0).score_route(ROUTE)

        assert len(prober.calls) == 1 + LOAD_SAMPLES
        _, first_kwargs = prober.calls[0]
        assert first_kwargs["method"] == "GET"
        assert first_kwargs["allow_redirects"] is False
        assert first_kwargs["read_body"] is True
        assert all(kwargs["allow_redirects"] is True for _, kwargs in prober.calls[1:])
        assert {kwargs["timeout"] for _, kwargs in prober.calls} == {15.0}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"[]", b"{}", b"  [ ]  "])
    async def test_empty_json_is_warned(self, body):
        sample = await RouteHealthScorer(scripted(response(body=body))).score_route(ROUTE)

        assert sample.json_empty is JsonEmptiness.EMPTY
        assert sample.json_severity is HealthSeverity.WARN

    @pytest.mark.asyncio
    async def test_non_json_is_not_applicable(self):
        first = response(headers={"content-type": "text/html"}, body=b"<html></html>")
        sample = await RouteHealthScorer(scripted(first)).score_route(ROUTE)

        assert sample.json_empty is JsonEmptiness.NOT_APPLICABLE
        assert sample.json_severity is HealthSeverity.NEUTRAL

    @pytest.mark.asyncio
    async def test_missing_headers_are_graded(self):
        sample = await RouteHealthScorer(scripted(response(headers={}))).score_route(ROUTE)

        assert sample.cache_control.present is False
        assert sample.cache_control.severity is HealthSeverity.WARN
        assert sample.cors.severity is HealthSeverity.WARN
        assert sample.content_type.severity is HealthSeverity.BAD
        assert sample.json_empty is JsonEmptiness.NOT_APPLICABLE

    @pytest.mark.asyncio
    async def test_single_redirect_hop(self):
        final = "https://api.example.com/v2/items"
        first = response(status=301, headers={"location": "/v2/items"}, ttfb=80.0)
        prober = scripted(first, final_url=final)

        sample = await RouteHealthScorer(prober).score_route(ROUTE)

        assert sample.redirects == 1
        assert sample.final_url == final
        assert sample.status == 301
        assert prober.urls == [ROUTE, final, final, final]

    @pytest.mark.asyncio
    async def test_redirect_without_location_keeps_route(self):
        sample = await RouteHealthScorer(scripted(response(status=302, headers={}))).score_route(ROUTE)

        assert sample.redirects == 1
        assert sample.final_url == ROUTE

    @pytest.mark.asyncio
    async def test_slow_route_is_graded(self):
        prober = scripted(response(status=503, headers={}, ttfb=1234.5678), loads=(1600.0, 1700.0, 1800.0))
        sample = await RouteHealthScorer(prober).score_route(ROUTE)

        assert sample.ttfb_ms == 1234.57
        assert sample.ttfb_severity is HealthSeverity.BAD
        assert sample.status_severity is HealthSeverity.BAD
        assert sample.load_avg_ms == 1700.0
        assert sample.load_severity is HealthSeverity.BAD

    @pytest.mark.asyncio
    async def test_load_average_is_rounded(self):
        prober = scripted(response(body=b"[1]"), loads=(100.0, 100.0, 100.01))
        sample = await RouteHealthScorer(prober).score_route(ROUTE)
        assert sample.load_avg_ms == 100.0

    @pytest.mark.asyncio
    async def test_network_error_degrades_route(self):
        prober = FakeProber({ROUTE: ProbeResult.failure("Cannot connect to host")})

        with metric_delta(METRICS["route_samples_total"], labels={"severity": "bad"}):
            sample = await RouteHealthScorer(prober).score_route(ROUTE)

        assert sample.degraded
        assert sample.to_dict() == {
            "url": ROUTE,
            "finalUrl": ROUTE,
            "status": 0,
            "statusSeverity": "bad",
            "ttfb": 0.0,
            "ttfbSeverity": "bad",
            "redirects": 0,
            "headers": {
                "cacheControl": {"present": 0, "severity": "warn"},
                "cors": {"present": 0, "severity": "warn"},
                "contentType": {"present": 0, "severity": "bad"},
            },
            "jsonEmpty": -1,
            "jsonSeverity": "neutral",
            "loadTestAvg": 0.0,
            "loadSeverity": "bad",
            "error": f"{ROUTE}: Cannot connect to host",
        }

    @pytest.mark.asyncio
    async def test_invalid_json_degrades_route(self):
        sample = await RouteHealthScorer(scripted(response(body=b"{not json"))).score_route(ROUTE)

        assert sample.degraded
        assert sample.status == 0
        assert "invalid JSON" in sample.error

    @pytest.mark.asyncio
    async def test_failure_during_load_samples_degrades_route(self):
        prober = FakeProber({ROUTE: [response(body=b"[1]"), response(), ProbeResult.failure("reset by peer")]})
        sample = await RouteHealthScorer(prober).score_route(ROUTE)

        assert sample.degraded
        assert sample.load_severity is HealthSeverity.BAD

    @pytest.mark.asyncio
    async def test_unexpected_exception_degrades_route(self):
        prober = FakeProber({ROUTE: RuntimeError("prober exploded")})
        sample = await RouteHealthScorer(prober).score_route(ROUTE)

        assert sample.degraded
        assert sample.error == "prober exploded"

    @pytest.mark.asyncio
    async def test_routes_are_isolated_and_ordered(self):
        good = "https://example.com/ok"
        bad = "https://unreachable.invalid/"
        prober = FakeProber(
            {
                good: response(body=b"[1]", ttfb=50.0),
                bad: ProbeResult.failure("Name or service not known"),
            }
        )

        samples = await RouteHealthScorer(prober).score_routes([bad, good, bad])

        assert [sample.url for sample in samples] == [bad, good, bad]
        assert [sample.degraded for sample in samples] == [True, False, True]
        assert samples[1].status == 200

    @pytest.mark.asyncio
    async def test_no_routes(self):
        assert await RouteHealthScorer(FakeProber()).score_routes([]) == []

    def test_degraded_sample_is_all_bad(self):
        sample = degraded_sample("https://example.com", "boom")

        assert sample.status_severity is HealthSeverity.BAD
        assert sample.ttfb_severity is HealthSeverity.BAD
        assert sample.load_severity is HealthSeverity.BAD
        assert sample.json_empty is JsonEmptiness.NOT_APPLICABLE
