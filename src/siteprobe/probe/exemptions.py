"""
Exemption policy for build-generated and local-network assets.

Bundler output is renamed on every deploy and dev-server assets are only
reachable from the developer's machine, so probing them from the audit
server would report false "broken asset" verdicts.
"""

from __future__ import annotations

import re
from typing import Iterable, Pattern, Sequence, Tuple

DEFAULT_EXEMPT_PATTERNS: Tuple[str, ...] = (
    # Next.js
    r"_next/static/css/",
    r"_next/static/chunks/",
    r"_next/static/js/",
    r"/__next/static/",
    # Webpack dev server and hot reloading
    r"/webpack/",
    r"/hot-update\.(css|js)$",
    # Generated bundles
    r"/app-.*\.(css|js)$",
    r"/pages-.*\.(css|js)$",
    r"/main-.*\.(css|js)$",
    r"/chunk-.*\.(css|js)$",
    # Create React App and generic dist folders
    r"/build/static/(css|js)/",
    r"/dist/static/(css|js)/",
    # Vite hashed assets
    r"/assets/.*-[a-f0-9]{8,}\.(css|js)$",
    # Local development servers
    r"localhost:\d+/",
    r"127\.0\.0\.1:\d+/",
    r"0\.0\.0\.0:\d+/",
    r"192\.168\.\d+\.\d+:\d+/",
    r"10\.\d+\.\d+\.\d+:\d+/",
    r"172\.(1[6-9]|2\d|3[01])\.\d+\.\d+:\d+/",
)


class ExemptionPolicy:
    """Ordered set of URL patterns; a URL matching any of them is never probed."""

    def __init__(self, patterns: Iterable[str | Pattern[str]] = DEFAULT_EXEMPT_PATTERNS):
        self._patterns: Sequence[Pattern[str]] = tuple(
            pattern if isinstance(pattern, re.Pattern) else re.compile(pattern) for pattern in patterns
        )

    @property
    def patterns(self) -> Sequence[Pattern[str]]:
        return self._patterns

    def is_exempt(self, url: str) -> bool:
        if not url:
            return False
        return any(pattern.search(url) for pattern in self._patterns)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.is_exempt(url)


DEFAULT_POLICY = ExemptionPolicy()


def is_exempt(url: str) -> bool:
    """Check a URL against the default exemption patterns."""
    return DEFAULT_POLICY.is_exempt(url)
