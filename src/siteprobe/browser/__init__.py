"""Browser automation collaborator (Playwright)."""

from .session import PageInspector, browser_session

__all__ = ["PageInspector", "browser_session"]
