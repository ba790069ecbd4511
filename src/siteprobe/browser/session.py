"""
Scoped Playwright browser sessions and the page inspector built on them.
"""

from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from siteprobe.browser import scripts
from siteprobe.config.config import BrowserConfig
from siteprobe.errors import NavigationError
from siteprobe.models import (
    IframeSnapshot,
    ImageSnapshot,
    MediaSnapshot,
    ResourceKind,
    ScriptSnapshot,
    StylesheetSnapshot,
)

logger = structlog.get_logger(__name__)

SELECTORS: Dict[ResourceKind, str] = {
    ResourceKind.IMAGE: "img",
    ResourceKind.VIDEO: "video",
    ResourceKind.AUDIO: "audio",
    ResourceKind.IFRAME: "iframe",
    ResourceKind.STYLESHEET: 'link[rel="stylesheet"]',
    ResourceKind.SCRIPT: "script[src]",
}


class PageInspector:
    """Read-only view of one live page: navigation plus plain-data extraction."""

    def __init__(self, page: Page, config: BrowserConfig):
        self.page = page
        self.config = config
        self.console_errors: List[str] = []
        self.failed_requests: List[str] = []
        page.on("console", self._on_console)
        page.on("response", self._on_response)

    def _on_console(self, message: Any) -> None:
        if message.type == "error":
            self.console_errors.append(message.text)

    def _on_response(self, response: Any) -> None:
        if not response.ok:
            self.failed_requests.append(f"{response.url} - {response.status}")

    async def navigate(self, url: str, wait_until: Optional[str] = None, timeout_ms: Optional[int] = None) -> None:
        """Load ``url``; any timeout, DNS or connection failure becomes a NavigationError."""
        logger.info("Navigating", url=url)
        try:
            await self.page.goto(
                url,
                wait_until=wait_until or self.config.wait_until,
                timeout=timeout_ms or self.config.navigation_timeout_ms,
            )
        except PlaywrightTimeoutError as e:
            raise NavigationError(url, "navigation timed out") from e
        except PlaywrightError as e:
            raise NavigationError(url, e.message.splitlines()[0] if e.message else "navigation failed") from e

    async def settle(self, delay_ms: Optional[int] = None) -> None:
        """Give client-side rendering time to finish."""
        delay = self.config.settle_delay_ms if delay_ms is None else delay_ms
        if delay:
            await self.page.wait_for_timeout(delay)

    async def title(self) -> str:
        try:
            return await self.page.title()
        except PlaywrightError:
            logger.warning("Could not read page title")
            return ""

    async def _extract(self, kind: ResourceKind, script: str) -> List[Dict[str, Any]]:
        return await self.page.eval_on_selector_all(SELECTORS[kind], script)

    async def extract(self, kind: ResourceKind) -> Sequence[Any]:
        """Snapshots of every resource of ``kind`` on the page, in document order."""
        if kind is ResourceKind.IMAGE:
            return [ImageSnapshot.from_dict(item) for item in await self._extract(kind, scripts.IMAGES)]
        if kind in (ResourceKind.VIDEO, ResourceKind.AUDIO):
            return [MediaSnapshot.from_dict(item, kind) for item in await self._extract(kind, scripts.MEDIA)]
        if kind is ResourceKind.IFRAME:
            return [IframeSnapshot.from_dict(item) for item in await self._extract(kind, scripts.IFRAMES)]
        if kind is ResourceKind.STYLESHEET:
            return [StylesheetSnapshot.from_dict(item) for item in await self._extract(kind, scripts.STYLESHEETS)]
        if kind is ResourceKind.SCRIPT:
            return [ScriptSnapshot.from_dict(item) for item in await self._extract(kind, scripts.SCRIPTS)]
        raise ValueError(f"Cannot extract resources of kind {kind.value}")

    async def links(self) -> List[str]:
        """Unique absolute hrefs of every anchor on the page."""
        return await self.page.eval_on_selector_all("a[href]", scripts.LINKS)

    async def navigation_timing(self) -> Dict[str, int]:
        return await self.page.evaluate(scripts.NAVIGATION_TIMING)

    async def element_counts(self) -> Dict[str, int]:
        return await self.page.evaluate(scripts.ELEMENT_COUNTS)

    async def inline_style_count(self) -> int:
        return int(await self.page.evaluate(scripts.INLINE_STYLE_COUNT))

    async def css_resource_timing(self) -> Dict[str, float]:
        return await self.page.evaluate(scripts.CSS_RESOURCE_TIMING)


async def _release(name: str, closer: Callable[[], Awaitable[Any]]) -> None:
    """Run a teardown step; a failure here must never mask the request's own error."""
    try:
        await closer()
    except Exception as e:
        logger.warning("Browser teardown failed", resource=name, error=str(e))


@asynccontextmanager
async def browser_session(config: BrowserConfig) -> AsyncIterator[PageInspector]:
    """
    Acquire Playwright, a Chromium browser, a context and a page.

    Everything acquired is released in reverse order on every exit path,
    including navigation and classification failures.
    """
    async with AsyncExitStack() as stack:
        playwright = await async_playwright().start()
        stack.push_async_callback(_release, "playwright", playwright.stop)

        browser = await playwright.chromium.launch(headless=config.headless, args=list(config.launch_args))
        stack.push_async_callback(_release, "browser", browser.close)

        context = await browser.new_context(user_agent=config.user_agent)
        stack.push_async_callback(_release, "context", context.close)

        page = await context.new_page()
        page.set_default_timeout(config.default_timeout_ms)
        logger.debug("Browser session opened", headless=config.headless)
        yield PageInspector(page, config)
