"""
Aggregation of classifier output into an AuditReport.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from siteprobe.models import AuditReport, IssueRecord


def build_report(
    title: str,
    counts: Mapping[str, int],
    findings: Iterable[List[IssueRecord]],
    extras: Optional[Dict[str, Any]] = None,
) -> AuditReport:
    """
    Fold per-kind issue lists into one report.

    ``counts`` holds the number of resources seen per kind, clean ones
    included; only resources with issues show up in the issue list.
    """
    issues = [issue for kind_issues in findings for issue in kind_issues]
    return AuditReport(title=title, resource_counts=dict(counts), issues=issues, extras=dict(extras or {}))
