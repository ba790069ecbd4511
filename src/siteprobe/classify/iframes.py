"""
Iframe classifier: accessibility, security and layout rules.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from siteprobe.classify.base import make_issue
from siteprobe.models import IframeSnapshot, IssueRecord, IssueSeverity, ResourceKind

# Together these let framed content remove its own sandbox.
UNSAFE_SANDBOX_TOKENS = frozenset({"allow-scripts", "allow-same-origin"})


class IframeIssue(str, Enum):
    MISSING_SOURCE = "missing-source"
    MISSING_TITLE = "missing-title"
    MISSING_SANDBOX = "missing-sandbox"
    LAZY_BELOW_FOLD = "lazy-load-below-fold"
    DEPRECATED_FRAMEBORDER = "deprecated-frameborder"
    INVISIBLE = "invisible-occupies-space"
    UNSAFE_SANDBOX = "unsafe-sandbox"
    MISSING_DIMENSIONS = "missing-dimensions"


SEVERITY: Dict[IframeIssue, IssueSeverity] = {
    IframeIssue.MISSING_SOURCE: IssueSeverity.HIGH,
    IframeIssue.MISSING_TITLE: IssueSeverity.MEDIUM,
    IframeIssue.MISSING_SANDBOX: IssueSeverity.MEDIUM,
    IframeIssue.LAZY_BELOW_FOLD: IssueSeverity.LOW,
    IframeIssue.DEPRECATED_FRAMEBORDER: IssueSeverity.LOW,
    IframeIssue.INVISIBLE: IssueSeverity.LOW,
    IframeIssue.UNSAFE_SANDBOX: IssueSeverity.HIGH,
    IframeIssue.MISSING_DIMENSIONS: IssueSeverity.LOW,
}


def has_unsafe_sandbox(iframe: IframeSnapshot) -> bool:
    return UNSAFE_SANDBOX_TOKENS <= iframe.sandbox_tokens


def classify_iframe(iframe: IframeSnapshot) -> List[IssueRecord]:
    issues: List[IssueRecord] = []
    url = iframe.src or None

    def add(code: IframeIssue, message: str) -> None:
        issues.append(make_issue(code, SEVERITY, message, ResourceKind.IFRAME, iframe.index, url=url))

    if not iframe.src and not iframe.srcdoc:
        add(IframeIssue.MISSING_SOURCE, "Iframe has neither src nor srcdoc")

    if not iframe.title.strip():
        add(IframeIssue.MISSING_TITLE, "Iframe is missing a title for assistive technology")

    if iframe.sandbox is None:
        add(IframeIssue.MISSING_SANDBOX, "Iframe is missing the sandbox attribute")

    if not iframe.above_fold and iframe.loading != "lazy":
        add(IframeIssue.LAZY_BELOW_FOLD, "Iframe below the fold should use loading=lazy")

    if iframe.frame_border:
        add(IframeIssue.DEPRECATED_FRAMEBORDER, "Deprecated frameborder attribute, use CSS borders")

    if not iframe.visible and (iframe.rendered_width > 0 or iframe.rendered_height > 0):
        add(IframeIssue.INVISIBLE, "Invisible iframe still takes up space")

    if has_unsafe_sandbox(iframe):
        add(
            IframeIssue.UNSAFE_SANDBOX,
            "Sandbox combines allow-scripts and allow-same-origin, framed content can escape the sandbox",
        )

    if not iframe.width and not iframe.height and iframe.rendered_width > 0 and iframe.rendered_height > 0:
        add(IframeIssue.MISSING_DIMENSIONS, "Iframe has no width/height attributes, causing layout shift")

    return issues
