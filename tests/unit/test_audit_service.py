"""
Tests for the page audit services with a fake browser session.
"""

import pytest

from siteprobe.audit import PageAuditService, is_route_link
from siteprobe.errors import NavigationError
from siteprobe.models import ProbeResult, ResourceKind
from siteprobe.observability.metrics import METRICS

from tests.helpers import (
    FakeInspector,
    FakeProber,
    make_iframe,
    make_image,
    make_media,
    make_script,
    make_stylesheet,
    metric_delta,
    session_factory_for,
)


def build_service(config, inspector, prober=None):
    prober = prober or FakeProber()
    return PageAuditService(
        config,
        session_factory=session_factory_for(inspector),
        probe_factory=lambda probe_config: prober,
    )


@pytest.mark.unit
class TestPageSpeed:
    @pytest.mark.asyncio
    async def test_reports_timing_and_grade(self, test_config):
        inspector = FakeInspector(title="Home")
        inspector.console_errors.append("Uncaught TypeError: x is undefined")
        inspector.failed_requests.append("https://example.com/missing.js - 404")

        data = await build_service(test_config, inspector).page_speed("https://example.com")

        assert data["url"] == "https://example.com"
        assert data["title"] == "Home"
        assert data["loadTime"].endswith("ms")
        assert data["metrics"]["domContentLoaded"] == "120ms"
        assert data["metrics"]["timeToFirstByte"] == "35ms"
        assert data["metrics"]["domElements"] == 250
        assert data["performance"] == {"grade": "Excellent", "color": "green"}
        assert data["consoleErrors"] == ["Uncaught TypeError: x is undefined"]
        assert data["failedRequests"] == ["https://example.com/missing.js - 404"]
        assert inspector.closed

    @pytest.mark.asyncio
    async def test_waits_for_network_idle(self, test_config):
        inspector = FakeInspector()
        await build_service(test_config, inspector).page_speed("https://example.com")

        assert inspector.navigations == [
            {
                "url": "https://example.com",
                "wait_until": "networkidle",
                "timeout_ms": test_config.browser.speed_test_timeout_ms,
            }
        ]


@pytest.mark.unit
class TestDomAudit:
    @pytest.mark.asyncio
    async def test_report_counts_everything_and_lists_only_issues(self, test_config):
        inspector = FakeInspector(
            {
                ResourceKind.IMAGE: [make_image(0), make_image(1, alt="")],
                ResourceKind.VIDEO: [make_media(0), make_media(1, src="https://example.com/a.mp4")],
                ResourceKind.AUDIO: [make_media(0, kind=ResourceKind.AUDIO, sources=("https://example.com/a.mp3",))],
                ResourceKind.IFRAME: [make_iframe(0, sandbox=None)],
            },
            title="Gallery",
        )

        report = await build_service(test_config, inspector).dom("https://example.com/gallery")
        data = report.to_dict()

        assert data["title"] == "Gallery"
        assert data["resourceCounts"] == {"image": 2, "video": 2, "audio": 1, "iframe": 1}
        assert data["videoCount"] == 2
        assert data["audioCount"] == 1
        assert data["iframeCount"] == 1
        assert [issue["element"] for issue in data["issues"]] == ["image[1]", "video[0]", "iframe[0]"]
        assert data["summary"] == {"high": 2, "medium": 1, "low": 0, "total": 3}
        assert data["flaggedResources"] == {"image": 1, "video": 1, "iframe": 1}
        assert inspector.closed

    @pytest.mark.asyncio
    async def test_navigation_failure_propagates_and_releases_browser(self, test_config):
        inspector = FakeInspector(navigation_error=NavigationError("https://down.example", "net::ERR_NAME_NOT_RESOLVED"))
        prober = FakeProber()

        with metric_delta(METRICS["audits_total"], labels={"endpoint": "dom", "outcome": "error"}):
            with pytest.raises(NavigationError):
                await build_service(test_config, inspector, prober).dom("https://down.example")

        assert inspector.closed
        assert prober.calls == []

    @pytest.mark.asyncio
    async def test_untitled_page_gets_placeholder_title(self, test_config):
        report = await build_service(test_config, FakeInspector(title="")).dom("https://example.com")
        assert report.title == "No title found"

    @pytest.mark.asyncio
    async def test_records_successful_audit(self, test_config):
        with metric_delta(METRICS["audits_total"], labels={"endpoint": "dom", "outcome": "ok"}):
            await build_service(test_config, FakeInspector()).dom("https://example.com")


@pytest.mark.unit
class TestCssAudit:
    @pytest.mark.asyncio
    async def test_combines_stylesheet_and_page_rules(self, test_config):
        inspector = FakeInspector(
            {ResourceKind.STYLESHEET: [make_stylesheet(0), make_stylesheet(1, href="https://example.com/print.css", media="")]},
            inline_styles=75,
            css_timing={"cssCount": 12, "totalLoadTime": 1200.0},
        )
        prober = FakeProber({"https://example.com/css/site.css": ProbeResult(status=404)})

        report = await build_service(test_config, inspector, prober).css("https://example.com")
        data = report.to_dict()

        assert [issue["type"] for issue in data["issues"]] == [
            "not-found",
            "print-missing-media",
            "excessive-inline-styles",
            "too-many-css-files",
        ]
        assert data["stylesheetCount"] == 2
        assert data["inlineStylesCount"] == 75
        assert data["summary"]["high"] == 1


@pytest.mark.unit
class TestAssetsAudit:
    @pytest.mark.asyncio
    async def test_stylesheets_and_scripts(self, test_config):
        inspector = FakeInspector(
            {
                ResourceKind.STYLESHEET: [make_stylesheet(0, href="https://example.com/_next/static/css/x.css")],
                ResourceKind.SCRIPT: [
                    make_script(0, defer=False),
                    make_script(1, src="https://example.com/_next/static/chunks/main.js", defer=False),
                ],
            }
        )
        prober = FakeProber()

        data = (await build_service(test_config, inspector, prober).assets("https://example.com")).to_dict()

        assert [issue["type"] for issue in data["issues"]] == ["render-blocking"]
        assert data["stylesheetCount"] == 1
        assert data["scriptCount"] == 2
        assert prober.urls == ["https://example.com/js/app.js"]


@pytest.mark.unit
class TestCrawl:
    @pytest.mark.asyncio
    async def test_filters_external_and_fragment_links(self, test_config):
        links = [
            "https://example.com/",
            "https://example.com/about",
            "https://example.com/about",
            "https://example.com/#pricing",
            "https://www.facebook.com/example",
            "https://x.com/example",
            "mailto:hello@example.com",
            "tel:+15551234",
            "https://github.com/example/repo",
            "https://example.com/blog",
        ]
        inspector = FakeInspector(links=links, title="")

        data = await build_service(test_config, inspector).crawl("https://example.com")

        assert data["title"] == "No title found"
        assert data["routes"] == ["https://example.com/", "https://example.com/about", "https://example.com/blog"]
        assert len(data["allLinks"]) == 9
        assert data["stats"] == {"totalLinks": 9, "sameOriginLinks": 3}

    @pytest.mark.parametrize(
        "link, expected",
        [
            ("https://example.com/docs", True),
            ("https://example.com/docs#intro", False),
            ("https://discord.gg/abc", False),
            ("https://wa.me/15551234", False),
        ],
    )
    def test_is_route_link(self, link, expected):
        assert is_route_link(link) is expected


@pytest.mark.unit
class TestRouteHealth:
    @pytest.mark.asyncio
    async def test_delegates_to_scorer_with_route_timeout(self, test_config):
        prober = FakeProber(default=ProbeResult(status=200, headers={"content-type": "text/html"}))
        service = build_service(test_config, FakeInspector(), prober)

        samples = await service.route_health(["https://example.com/a", "https://example.com/b"])

        assert [sample.url for sample in samples] == ["https://example.com/a", "https://example.com/b"]
        assert {kwargs["timeout"] for _, kwargs in prober.calls} == {test_config.routes.timeout}
