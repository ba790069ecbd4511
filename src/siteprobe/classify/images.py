"""
Image classifier.

Client-side facts (natural size, completeness) are checked first; the network
probe only runs for images that already rendered, so a broken image is never
reported twice.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import unquote, urlparse

from siteprobe.classify.base import make_issue
from siteprobe.models import ImageSnapshot, IssueRecord, IssueSeverity, ProbeResult, ResourceKind
from siteprobe.probe.exemptions import ExemptionPolicy

MAX_IMAGE_BYTES = 1_000_000
SRCSET_MIN_RENDERED_WIDTH = 300
MAX_NATURAL_TO_RENDERED_RATIO = 2
MAX_ASPECT_RATIO_DELTA = 0.1
GENERIC_ALT_WORDS = ("image", "picture", "photo")
LEGACY_EXTENSIONS = (".jpg", ".jpeg", ".png")


class ImageIssue(str, Enum):
    MISSING_SRC = "missing-src"
    BROKEN = "broken-image"
    HTTP_ERROR = "http-error"
    NETWORK_ERROR = "network-error"
    OVERSIZED_FILE = "oversized-file"
    MISSING_ALT = "missing-alt"
    POOR_ALT = "poor-alt"
    LAZY_BELOW_FOLD = "lazy-load-below-fold"
    LAZY_ABOVE_FOLD = "lazy-load-above-fold"
    LEGACY_FORMAT = "legacy-format"
    MISSING_SRCSET = "missing-srcset"
    OVERSIZED_DIMENSIONS = "oversized-dimensions"
    INVISIBLE = "invisible-occupies-space"
    DISTORTED = "distorted-aspect-ratio"


SEVERITY: Dict[ImageIssue, IssueSeverity] = {
    ImageIssue.MISSING_SRC: IssueSeverity.HIGH,
    ImageIssue.BROKEN: IssueSeverity.HIGH,
    ImageIssue.HTTP_ERROR: IssueSeverity.HIGH,
    ImageIssue.NETWORK_ERROR: IssueSeverity.HIGH,
    ImageIssue.OVERSIZED_FILE: IssueSeverity.MEDIUM,
    ImageIssue.MISSING_ALT: IssueSeverity.HIGH,
    ImageIssue.POOR_ALT: IssueSeverity.LOW,
    ImageIssue.LAZY_BELOW_FOLD: IssueSeverity.LOW,
    ImageIssue.LAZY_ABOVE_FOLD: IssueSeverity.MEDIUM,
    ImageIssue.LEGACY_FORMAT: IssueSeverity.LOW,
    ImageIssue.MISSING_SRCSET: IssueSeverity.LOW,
    ImageIssue.OVERSIZED_DIMENSIONS: IssueSeverity.MEDIUM,
    ImageIssue.INVISIBLE: IssueSeverity.LOW,
    ImageIssue.DISTORTED: IssueSeverity.MEDIUM,
}


def filename_stem(src: str) -> str:
    """Decoded last path segment up to its first dot: ``/a/Sunset%20Beach.min.jpg`` -> ``Sunset Beach``."""
    try:
        path = urlparse(src).path
    except ValueError:
        path = src
    return unquote(path.rsplit("/", 1)[-1]).split(".")[0]


def is_client_broken(image: ImageSnapshot) -> bool:
    return not image.loaded


def needs_probe(image: ImageSnapshot, policy: ExemptionPolicy) -> bool:
    """Only rendered http(s) images are verified over the network."""
    return image.src.startswith("http") and image.loaded and not policy.is_exempt(image.src)


def has_poor_alt(image: ImageSnapshot) -> bool:
    if not image.alt:
        return False
    lowered = image.alt.lower()
    if any(word in lowered for word in GENERIC_ALT_WORDS):
        return True
    return image.alt == filename_stem(image.src)


def classify_image(image: ImageSnapshot, probe: Optional[ProbeResult] = None) -> List[IssueRecord]:
    """Evaluate every image rule; ``probe`` is the HEAD result when the image was verified."""
    issues: List[IssueRecord] = []

    def add(code: ImageIssue, message: str, **metrics) -> None:
        issues.append(make_issue(code, SEVERITY, message, ResourceKind.IMAGE, image.index, **metrics))

    src = image.src.strip()
    url = src or None

    if not src:
        add(ImageIssue.MISSING_SRC, "Image has no src attribute")

    if is_client_broken(image):
        add(ImageIssue.BROKEN, "Image failed to load in the browser", url=url)
    elif probe is not None:
        if probe.network_error:
            add(ImageIssue.NETWORK_ERROR, "Image could not be fetched (network error)", url=url)
        else:
            if probe.status >= 400:
                add(ImageIssue.HTTP_ERROR, f"Image returns HTTP {probe.status}", url=url, status=probe.status)
            size = probe.content_length
            if size and size > MAX_IMAGE_BYTES:
                megabytes = f"{size / 1024 / 1024:.1f} MB"
                add(ImageIssue.OVERSIZED_FILE, f"Oversized image file ({megabytes})", url=url, size=megabytes)

    if not image.decorative and not image.alt.strip():
        add(ImageIssue.MISSING_ALT, "Image is missing alt text", url=url)

    if has_poor_alt(image):
        add(ImageIssue.POOR_ALT, f"Alt text '{image.alt}' does not describe the image", url=url)

    if not image.above_fold and image.loading != "lazy":
        add(ImageIssue.LAZY_BELOW_FOLD, "Image below the fold should use loading=lazy", url=url)

    if image.above_fold and image.loading == "lazy":
        add(ImageIssue.LAZY_ABOVE_FOLD, "Avoid lazy loading images above the fold", url=url)

    if src and any(extension in src.lower() for extension in LEGACY_EXTENSIONS):
        add(ImageIssue.LEGACY_FORMAT, "Consider modern formats (WebP/AVIF)", url=url)

    if not image.srcset and image.rendered_width > SRCSET_MIN_RENDERED_WIDTH:
        add(ImageIssue.MISSING_SRCSET, "Missing responsive images (srcset)", url=url)

    if (
        image.natural_width > 0
        and image.rendered_width > 0
        and image.natural_width > image.rendered_width * MAX_NATURAL_TO_RENDERED_RATIO
    ):
        waste = (image.natural_width - image.rendered_width) / image.natural_width * 100
        add(ImageIssue.OVERSIZED_DIMENSIONS, f"Oversized dimensions ({waste:.0f}% wasted)", url=url)

    if not image.visible and (image.rendered_width > 0 or image.rendered_height > 0):
        add(ImageIssue.INVISIBLE, "Invisible image still takes up space", url=url)

    if image.natural_width > 0 and image.natural_height > 0 and image.rendered_width > 0 and image.rendered_height > 0:
        natural_ratio = image.natural_width / image.natural_height
        rendered_ratio = image.rendered_width / image.rendered_height
        if abs(natural_ratio - rendered_ratio) > MAX_ASPECT_RATIO_DELTA:
            add(ImageIssue.DISTORTED, "Distorted aspect ratio", url=url)

    return issues
