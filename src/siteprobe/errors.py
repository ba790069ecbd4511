"""
Exception hierarchy for SiteProbe.

Failures scoped to a single resource or route are recorded as data and never
reach the caller; the classes below cover the failures that abort a request.
"""

from __future__ import annotations


class SiteProbeError(Exception):
    """Base class for all SiteProbe errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputError(SiteProbeError):
    """A required request field is missing or malformed."""

    status_code = 400


class NavigationError(SiteProbeError):
    """The target page could not be loaded (timeout, DNS, connection)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to load the page {url}: {reason}")
        self.url = url
        self.reason = reason


class AuditError(SiteProbeError):
    """An unexpected fault while auditing a page."""


class RouteProbeError(SiteProbeError):
    """A single route could not be measured. Always recovered by the scorer."""
