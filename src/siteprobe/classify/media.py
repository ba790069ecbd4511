"""
Video and audio classifier. Media elements with any valid source are dropped.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from siteprobe.classify.base import make_issue
from siteprobe.models import IssueRecord, IssueSeverity, MediaSnapshot


class MediaIssue(str, Enum):
    NO_VALID_SOURCE = "no-valid-source"


SEVERITY: Dict[MediaIssue, IssueSeverity] = {
    MediaIssue.NO_VALID_SOURCE: IssueSeverity.HIGH,
}


def classify_media(media: MediaSnapshot) -> List[IssueRecord]:
    if media.has_valid_source:
        return []
    return [
        make_issue(
            MediaIssue.NO_VALID_SOURCE,
            SEVERITY,
            f"{media.kind.value.capitalize()} element has no src and no <source> child with a src",
            media.kind,
            media.index,
        )
    ]
