"""
Runs the classifiers over extracted snapshots, probing where a rule needs it.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, TypeVar

import structlog

from siteprobe.classify import (
    classify_iframe,
    classify_image,
    classify_media,
    classify_script,
    classify_stylesheet,
    image_needs_probe,
    script_needs_probe,
    stylesheet_needs_probe,
)
from siteprobe.models import (
    IframeSnapshot,
    ImageSnapshot,
    IssueRecord,
    MediaSnapshot,
    ProbeResult,
    ScriptSnapshot,
    StylesheetSnapshot,
)
from siteprobe.observability.metrics import increment
from siteprobe.probe.client import Prober
from siteprobe.probe.exemptions import DEFAULT_POLICY, ExemptionPolicy
from siteprobe.probe.pipeline import run_bounded

logger = structlog.get_logger(__name__)

S = TypeVar("S")


def _flatten(per_resource: Sequence[List[IssueRecord]]) -> List[IssueRecord]:
    issues = [issue for resource_issues in per_resource for issue in resource_issues]
    for issue in issues:
        increment("issues_total", labels={"kind": issue.kind.value, "severity": issue.severity.value})
    return issues


class ResourceAuditor:
    """
    Classifies the resources of one page.

    Probes go through ``run_bounded`` with the configured concurrency; with a
    concurrency of 1 the target site sees one verification request at a time.
    """

    def __init__(self, prober: Prober, policy: ExemptionPolicy = DEFAULT_POLICY, concurrency: int = 1):
        self.prober = prober
        self.policy = policy
        self.concurrency = concurrency

    async def _probe_if(self, needed: bool, url: str) -> Optional[ProbeResult]:
        if not needed:
            return None
        return await self.prober.probe(url, method="HEAD")

    async def _run(self, snapshots: Sequence[S], evaluate: Callable[[S], object]) -> List[IssueRecord]:
        return _flatten(await run_bounded(snapshots, evaluate, self.concurrency))  # type: ignore[arg-type]

    async def images(self, snapshots: Sequence[ImageSnapshot]) -> List[IssueRecord]:
        async def evaluate(image: ImageSnapshot) -> List[IssueRecord]:
            probe = await self._probe_if(image_needs_probe(image, self.policy), image.src)
            return classify_image(image, probe)

        return await self._run(snapshots, evaluate)

    async def media(self, snapshots: Sequence[MediaSnapshot]) -> List[IssueRecord]:
        return _flatten([classify_media(media) for media in snapshots])

    async def iframes(self, snapshots: Sequence[IframeSnapshot]) -> List[IssueRecord]:
        return _flatten([classify_iframe(iframe) for iframe in snapshots])

    async def stylesheets(self, snapshots: Sequence[StylesheetSnapshot]) -> List[IssueRecord]:
        async def evaluate(sheet: StylesheetSnapshot) -> List[IssueRecord]:
            probe = await self._probe_if(stylesheet_needs_probe(sheet, self.policy), sheet.href.strip())
            return classify_stylesheet(sheet, probe)

        return await self._run(snapshots, evaluate)

    async def scripts(self, snapshots: Sequence[ScriptSnapshot]) -> List[IssueRecord]:
        async def evaluate(script: ScriptSnapshot) -> List[IssueRecord]:
            probe = await self._probe_if(script_needs_probe(script, self.policy), script.src.strip())
            return classify_script(script, probe, self.policy)

        return await self._run(snapshots, evaluate)
