"""
Shared helpers for the per-kind classifiers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from siteprobe.models import IssueRecord, IssueSeverity, ResourceKind


def subject_of(kind: ResourceKind, index: int) -> str:
    """Stable reference to a resource within the audited page, e.g. ``image[3]``."""
    return f"{kind.value}[{index}]"


def make_issue(
    code: Enum,
    severities: Mapping[Any, IssueSeverity],
    message: str,
    kind: ResourceKind,
    index: int,
    **metrics: Any,
) -> IssueRecord:
    """Build an IssueRecord whose severity comes from the kind's fixed table."""
    return IssueRecord(
        code=code.value,
        severity=severities[code],
        message=message,
        subject=subject_of(kind, index),
        kind=kind,
        **metrics,
    )
