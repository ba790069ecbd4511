"""
Stylesheet and script classifiers.

Both verify the asset with a HEAD probe unless the URL is exempt, and share
the same status classification: 404 not found, 403 forbidden, any other
non-200 a generic error.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from siteprobe.classify.base import make_issue
from siteprobe.models import IssueRecord, IssueSeverity, ProbeResult, ResourceKind, ScriptSnapshot, StylesheetSnapshot
from siteprobe.probe.exemptions import DEFAULT_POLICY, ExemptionPolicy

MAX_STYLESHEET_BYTES = 100 * 1024


class StylesheetIssue(str, Enum):
    MISSING_HREF = "missing-href"
    NOT_FOUND = "not-found"
    FORBIDDEN = "forbidden"
    HTTP_ERROR = "http-error"
    NETWORK_ERROR = "network-error"
    LARGE_FILE = "large-file"
    DISABLED = "disabled"
    PRINT_MISSING_MEDIA = "print-missing-media"


class ScriptIssue(str, Enum):
    MISSING_SRC = "missing-src"
    NOT_FOUND = "not-found"
    FORBIDDEN = "forbidden"
    HTTP_ERROR = "http-error"
    NETWORK_ERROR = "network-error"
    RENDER_BLOCKING = "render-blocking"


STYLESHEET_SEVERITY: Dict[StylesheetIssue, IssueSeverity] = {
    StylesheetIssue.MISSING_HREF: IssueSeverity.HIGH,
    StylesheetIssue.NOT_FOUND: IssueSeverity.HIGH,
    StylesheetIssue.FORBIDDEN: IssueSeverity.HIGH,
    StylesheetIssue.HTTP_ERROR: IssueSeverity.HIGH,
    StylesheetIssue.NETWORK_ERROR: IssueSeverity.HIGH,
    StylesheetIssue.LARGE_FILE: IssueSeverity.MEDIUM,
    StylesheetIssue.DISABLED: IssueSeverity.MEDIUM,
    StylesheetIssue.PRINT_MISSING_MEDIA: IssueSeverity.LOW,
}

SCRIPT_SEVERITY: Dict[ScriptIssue, IssueSeverity] = {
    ScriptIssue.MISSING_SRC: IssueSeverity.HIGH,
    ScriptIssue.NOT_FOUND: IssueSeverity.HIGH,
    ScriptIssue.FORBIDDEN: IssueSeverity.HIGH,
    ScriptIssue.HTTP_ERROR: IssueSeverity.HIGH,
    ScriptIssue.NETWORK_ERROR: IssueSeverity.HIGH,
    ScriptIssue.RENDER_BLOCKING: IssueSeverity.MEDIUM,
}


def _status_issue(
    probe: ProbeResult,
    label: str,
    url: str,
    kind: ResourceKind,
    index: int,
    codes: Dict[str, Enum],
    severities: Dict,
) -> Optional[IssueRecord]:
    if probe.network_error:
        return make_issue(
            codes["network"], severities, f"Failed to fetch {label} (network error)", kind, index, url=url
        )
    if probe.status == 404:
        return make_issue(
            codes["404"], severities, f"{label.capitalize()} returns 404 Not Found", kind, index, url=url, status=404
        )
    if probe.status == 403:
        return make_issue(
            codes["403"], severities, f"{label.capitalize()} returns 403 Forbidden", kind, index, url=url, status=403
        )
    if probe.status != 200:
        return make_issue(
            codes["other"],
            severities,
            f"{label.capitalize()} returns {probe.status} error",
            kind,
            index,
            url=url,
            status=probe.status,
        )
    return None


# ============================================================================
# Stylesheets
# ============================================================================


def stylesheet_needs_probe(sheet: StylesheetSnapshot, policy: ExemptionPolicy) -> bool:
    href = sheet.href.strip()
    return bool(href) and not policy.is_exempt(href)


def classify_stylesheet(sheet: StylesheetSnapshot, probe: Optional[ProbeResult] = None) -> List[IssueRecord]:
    kind = ResourceKind.STYLESHEET
    href = sheet.href.strip()

    if not href:
        return [
            make_issue(
                StylesheetIssue.MISSING_HREF,
                STYLESHEET_SEVERITY,
                "Stylesheet link missing href attribute",
                kind,
                sheet.index,
            )
        ]

    issues: List[IssueRecord] = []
    if probe is not None:
        status_issue = _status_issue(
            probe,
            "stylesheet",
            href,
            kind,
            sheet.index,
            {
                "network": StylesheetIssue.NETWORK_ERROR,
                "404": StylesheetIssue.NOT_FOUND,
                "403": StylesheetIssue.FORBIDDEN,
                "other": StylesheetIssue.HTTP_ERROR,
            },
            STYLESHEET_SEVERITY,
        )
        if status_issue is not None:
            issues.append(status_issue)

        size = probe.content_length
        if size and size > MAX_STYLESHEET_BYTES:
            kilobytes = f"{size / 1024:.1f}KB"
            issues.append(
                make_issue(
                    StylesheetIssue.LARGE_FILE,
                    STYLESHEET_SEVERITY,
                    f"Large CSS file ({kilobytes})",
                    kind,
                    sheet.index,
                    url=href,
                    size=kilobytes,
                )
            )

    if sheet.disabled:
        issues.append(
            make_issue(StylesheetIssue.DISABLED, STYLESHEET_SEVERITY, "Stylesheet is disabled", kind, sheet.index, url=href)
        )

    if not sheet.media and "print" in href.lower():
        issues.append(
            make_issue(
                StylesheetIssue.PRINT_MISSING_MEDIA,
                STYLESHEET_SEVERITY,
                "Print stylesheet is missing a media attribute",
                kind,
                sheet.index,
                url=href,
            )
        )

    return issues


# ============================================================================
# Scripts
# ============================================================================


def script_needs_probe(script: ScriptSnapshot, policy: ExemptionPolicy) -> bool:
    src = script.src.strip()
    return bool(src) and not policy.is_exempt(src)


def classify_script(
    script: ScriptSnapshot, probe: Optional[ProbeResult] = None, policy: ExemptionPolicy = DEFAULT_POLICY
) -> List[IssueRecord]:
    """``policy`` decides whether the render-blocking rule applies; build-generated scripts are left alone."""
    kind = ResourceKind.SCRIPT
    src = script.src.strip()
    issues: List[IssueRecord] = []

    if not src:
        issues.append(
            make_issue(ScriptIssue.MISSING_SRC, SCRIPT_SEVERITY, "Script tag missing src attribute", kind, script.index)
        )
    elif probe is not None:
        status_issue = _status_issue(
            probe,
            "script",
            src,
            kind,
            script.index,
            {
                "network": ScriptIssue.NETWORK_ERROR,
                "404": ScriptIssue.NOT_FOUND,
                "403": ScriptIssue.FORBIDDEN,
                "other": ScriptIssue.HTTP_ERROR,
            },
            SCRIPT_SEVERITY,
        )
        if status_issue is not None:
            issues.append(status_issue)

    if not script.is_async and not script.defer and not policy.is_exempt(src):
        issues.append(
            make_issue(
                ScriptIssue.RENDER_BLOCKING,
                SCRIPT_SEVERITY,
                "Render-blocking script (consider async or defer)",
                kind,
                script.index,
                url=src or None,
            )
        )

    return issues
