"""
Page-level rules: CSS delivery and the overall load-time grade.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from siteprobe.classify.base import make_issue
from siteprobe.models import IssueRecord, IssueSeverity, ResourceKind

MAX_INLINE_STYLES = 50
MAX_CSS_FILES = 10
MAX_CSS_LOAD_MS = 3000

# (upper bound in ms, grade, color); the last entry catches everything else
LOAD_GRADES: Tuple[Tuple[float, str, str], ...] = (
    (2000, "Excellent", "green"),
    (4000, "Good", "orange"),
    (6000, "Fair", "yellow"),
    (float("inf"), "Poor", "red"),
)


class PageCssIssue(str, Enum):
    EXCESSIVE_INLINE_STYLES = "excessive-inline-styles"
    TOO_MANY_CSS_FILES = "too-many-css-files"
    SLOW_CSS_LOADING = "slow-css-loading"


SEVERITY: Dict[PageCssIssue, IssueSeverity] = {
    PageCssIssue.EXCESSIVE_INLINE_STYLES: IssueSeverity.MEDIUM,
    PageCssIssue.TOO_MANY_CSS_FILES: IssueSeverity.MEDIUM,
    PageCssIssue.SLOW_CSS_LOADING: IssueSeverity.MEDIUM,
}


@dataclass(frozen=True)
class CssDelivery:
    """CSS facts of the whole page."""

    inline_style_count: int = 0
    css_resource_count: int = 0
    css_load_ms: float = 0.0


def classify_css_delivery(delivery: CssDelivery) -> List[IssueRecord]:
    issues: List[IssueRecord] = []
    kind = ResourceKind.PAGE

    if delivery.inline_style_count > MAX_INLINE_STYLES:
        issues.append(
            make_issue(
                PageCssIssue.EXCESSIVE_INLINE_STYLES,
                SEVERITY,
                f"{delivery.inline_style_count} elements with inline styles (consider external CSS)",
                kind,
                0,
                count=delivery.inline_style_count,
            )
        )

    if delivery.css_resource_count > MAX_CSS_FILES:
        issues.append(
            make_issue(
                PageCssIssue.TOO_MANY_CSS_FILES,
                SEVERITY,
                f"{delivery.css_resource_count} CSS files detected (consider bundling)",
                kind,
                0,
                count=delivery.css_resource_count,
            )
        )

    if delivery.css_load_ms > MAX_CSS_LOAD_MS:
        issues.append(
            make_issue(
                PageCssIssue.SLOW_CSS_LOADING,
                SEVERITY,
                f"CSS loading took {delivery.css_load_ms:.0f}ms",
                kind,
                0,
                count=round(delivery.css_load_ms),
            )
        )

    return issues


def grade_load_time(load_ms: float) -> Tuple[str, str]:
    """Map a page load time to a (grade, color) pair."""
    for upper, grade, color in LOAD_GRADES:
        if load_ms < upper:
            return grade, color
    return LOAD_GRADES[-1][1], LOAD_GRADES[-1][2]
