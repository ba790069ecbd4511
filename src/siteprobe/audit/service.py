"""
Page audit services.

Each operation owns one browser session (and, where resources are verified
over the network, one probe session) for the duration of a single call.
Both are released on every exit path; navigation failures surface as
NavigationError and everything else propagates to the caller unchanged.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Dict, List, Sequence

import structlog

from siteprobe.audit.resources import ResourceAuditor
from siteprobe.browser import PageInspector, browser_session
from siteprobe.classify import CssDelivery, build_report, classify_css_delivery, grade_load_time
from siteprobe.config.config import BrowserConfig, Config, ProbeConfig
from siteprobe.health import RouteHealthScorer
from siteprobe.models import AuditReport, ResourceKind, RouteHealthSample
from siteprobe.observability.metrics import increment
from siteprobe.probe import DEFAULT_POLICY, ExemptionPolicy, NetworkProbe

logger = structlog.get_logger(__name__)

UNTITLED_PAGE = "No title found"

SessionFactory = Callable[[BrowserConfig], AsyncContextManager[PageInspector]]
ProbeFactory = Callable[[ProbeConfig], Any]

# Hosts and schemes that are never treated as crawlable routes of the site.
EXTERNAL_LINK_MARKERS = (
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "linkedin.com",
    "youtube.com",
    "pinterest.com",
    "tiktok.com",
    "reddit.com",
    "tumblr.com",
    "flickr.com",
    "wa.me",
    "api.whatsapp.com",
    "chat.whatsapp.com",
    "discord.com",
    "discord.gg",
    "medium.com",
    "github.com",
    "gitlab.com",
    "bitbucket.org",
    "x.com",
    "mailto:",
    "tel:",
    "visualstudio.com",
)


def is_route_link(link: str) -> bool:
    """True for links that point at a page of the site rather than elsewhere."""
    if "#" in link:
        return False
    return not any(marker in link for marker in EXTERNAL_LINK_MARKERS)


class PageAuditService:
    """Entry points behind the HTTP API and the CLI."""

    def __init__(
        self,
        config: Config,
        session_factory: SessionFactory = browser_session,
        probe_factory: ProbeFactory = NetworkProbe,
        policy: ExemptionPolicy = DEFAULT_POLICY,
    ):
        self.config = config
        self.session_factory = session_factory
        self.probe_factory = probe_factory
        self.policy = policy

    @asynccontextmanager
    async def _tracked(self, endpoint: str, **context: Any) -> AsyncIterator[None]:
        start = time.perf_counter()
        try:
            yield
        except Exception:
            increment("audits_total", labels={"endpoint": endpoint, "outcome": "error"})
            raise
        increment("audits_total", labels={"endpoint": endpoint, "outcome": "ok"})
        logger.info(
            "Audit finished",
            endpoint=endpoint,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            **context,
        )

    @asynccontextmanager
    async def _open_page(self, url: str) -> AsyncIterator[PageInspector]:
        async with self.session_factory(self.config.browser) as inspector:
            await inspector.navigate(url)
            await inspector.settle()
            yield inspector

    def _auditor(self, prober: Any) -> ResourceAuditor:
        return ResourceAuditor(prober, policy=self.policy, concurrency=self.config.probe.concurrency)

    async def page_speed(self, url: str) -> Dict[str, Any]:
        """Load the page once and report its timing, size and grade."""
        browser = self.config.browser
        async with self._tracked("speed", url=url):
            async with self.session_factory(browser) as inspector:
                start = time.perf_counter()
                await inspector.navigate(url, wait_until="networkidle", timeout_ms=browser.speed_test_timeout_ms)
                load_ms = round((time.perf_counter() - start) * 1000)

                title = await inspector.title()
                timing = await inspector.navigation_timing()
                counts = await inspector.element_counts()
                grade, color = grade_load_time(load_ms)

                return {
                    "url": url,
                    "title": title,
                    "loadTime": f"{load_ms}ms",
                    "metrics": {
                        "domContentLoaded": f"{timing.get('domContentLoaded', 0)}ms",
                        "pageLoadComplete": f"{timing.get('pageLoadComplete', 0)}ms",
                        "timeToFirstByte": f"{timing.get('timeToFirstByte', 0)}ms",
                        "domElements": counts.get("domElements", 0),
                        "images": counts.get("images", 0),
                        "scripts": counts.get("scripts", 0),
                        "stylesheets": counts.get("stylesheets", 0),
                    },
                    "performance": {"grade": grade, "color": color},
                    "consoleErrors": list(inspector.console_errors),
                    "failedRequests": list(inspector.failed_requests),
                }

    async def dom(self, url: str) -> AuditReport:
        """Images, video, audio and iframes of the page."""
        async with self._tracked("dom", url=url):
            async with self._open_page(url) as inspector:
                title = await inspector.title() or UNTITLED_PAGE
                images = await inspector.extract(ResourceKind.IMAGE)
                videos = await inspector.extract(ResourceKind.VIDEO)
                audios = await inspector.extract(ResourceKind.AUDIO)
                iframes = await inspector.extract(ResourceKind.IFRAME)

                async with self.probe_factory(self.config.probe) as prober:
                    auditor = self._auditor(prober)
                    findings = [
                        await auditor.images(images),
                        await auditor.media(videos),
                        await auditor.media(audios),
                        await auditor.iframes(iframes),
                    ]

            return build_report(
                title,
                {
                    ResourceKind.IMAGE.value: len(images),
                    ResourceKind.VIDEO.value: len(videos),
                    ResourceKind.AUDIO.value: len(audios),
                    ResourceKind.IFRAME.value: len(iframes),
                },
                findings,
                extras={
                    "imageCount": len(images),
                    "videoCount": len(videos),
                    "audioCount": len(audios),
                    "iframeCount": len(iframes),
                },
            )

    async def css(self, url: str) -> AuditReport:
        """Stylesheet checks plus page-level CSS delivery rules."""
        async with self._tracked("css", url=url):
            async with self._open_page(url) as inspector:
                sheets = await inspector.extract(ResourceKind.STYLESHEET)
                inline_styles = await inspector.inline_style_count()
                timing = await inspector.css_resource_timing()

                async with self.probe_factory(self.config.probe) as prober:
                    sheet_issues = await self._auditor(prober).stylesheets(sheets)

                delivery = CssDelivery(
                    inline_style_count=inline_styles,
                    css_resource_count=int(timing.get("cssCount", 0)),
                    css_load_ms=float(timing.get("totalLoadTime", 0.0)),
                )
                title = await inspector.title()

            return build_report(
                title,
                {ResourceKind.STYLESHEET.value: len(sheets)},
                [sheet_issues, classify_css_delivery(delivery)],
                extras={"stylesheetCount": len(sheets), "inlineStylesCount": inline_styles},
            )

    async def assets(self, url: str) -> AuditReport:
        """Stylesheets and external scripts of the page."""
        async with self._tracked("assets", url=url):
            async with self._open_page(url) as inspector:
                sheets = await inspector.extract(ResourceKind.STYLESHEET)
                script_tags = await inspector.extract(ResourceKind.SCRIPT)

                async with self.probe_factory(self.config.probe) as prober:
                    auditor = self._auditor(prober)
                    findings = [await auditor.stylesheets(sheets), await auditor.scripts(script_tags)]

                title = await inspector.title()

            return build_report(
                title,
                {ResourceKind.STYLESHEET.value: len(sheets), ResourceKind.SCRIPT.value: len(script_tags)},
                findings,
                extras={"stylesheetCount": len(sheets), "scriptCount": len(script_tags)},
            )

    async def crawl(self, url: str) -> Dict[str, Any]:
        """Collect the unique links of one page and keep those that look like site routes."""
        async with self._tracked("crawl", url=url):
            async with self._open_page(url) as inspector:
                title = await inspector.title() or UNTITLED_PAGE
                links = list(dict.fromkeys(await inspector.links()))

            routes = [link for link in links if is_route_link(link)]
            logger.debug("Links collected", url=url, total=len(links), routes=len(routes))
            return {
                "url": url,
                "title": title,
                "routes": routes,
                "allLinks": links,
                "stats": {"totalLinks": len(links), "sameOriginLinks": len(routes)},
            }

    async def route_health(self, routes: Sequence[str]) -> List[RouteHealthSample]:
        """Grade every route; a failing route degrades on its own."""
        async with self._tracked("routes", count=len(routes)):
            async with self.probe_factory(self.config.probe) as prober:
                scorer = RouteHealthScorer(prober, timeout=self.config.routes.timeout)
                return await scorer.score_routes(routes)
