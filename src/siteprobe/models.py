"""
Value objects shared by the classifier, the network probe and the route
health scorer.

Everything here is request-scoped: snapshots are created once per audit from
the data the browser extracted, probe results are consumed immediately, and
reports are serialized and dropped at the end of the request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional, Tuple

# ============================================================================
# Enums
# ============================================================================


class ResourceKind(Enum):
    """Kinds of page resources the classifier understands."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    IFRAME = "iframe"
    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    PAGE = "page"


class IssueSeverity(Enum):
    """Severity scale of resource issues."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class HealthSeverity(Enum):
    """Severity scale of route health metrics. Not interchangeable with IssueSeverity."""

    GOOD = "good"
    WARN = "warn"
    BAD = "bad"
    NEUTRAL = "neutral"


class JsonEmptiness(IntEnum):
    """Tri-state emptiness of a JSON response body."""

    EMPTY = 1
    NON_EMPTY = 0
    NOT_APPLICABLE = -1


# ============================================================================
# Resource snapshots
# ============================================================================


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _number(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _optional_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class ImageSnapshot:
    """Facts about one <img> element captured at extraction time."""

    index: int
    src: str = ""
    alt: str = ""
    title: str = ""
    loading: str = ""
    width: Optional[str] = None
    height: Optional[str] = None
    rendered_width: float = 0
    rendered_height: float = 0
    natural_width: float = 0
    natural_height: float = 0
    complete: bool = False
    above_fold: bool = True
    visible: bool = True
    decorative: bool = False
    linked: bool = False
    srcset: str = ""
    sizes: str = ""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.IMAGE

    @property
    def loaded(self) -> bool:
        """True when the browser finished decoding the image with real pixels."""
        return self.complete and self.natural_width > 0 and self.natural_height > 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ImageSnapshot:
        return cls(
            index=int(data.get("index", 0)),
            src=_text(data.get("src")),
            alt=_text(data.get("alt")),
            title=_text(data.get("title")),
            loading=_text(data.get("loading")),
            width=_optional_text(data.get("width")),
            height=_optional_text(data.get("height")),
            rendered_width=_number(data.get("renderedWidth")),
            rendered_height=_number(data.get("renderedHeight")),
            natural_width=_number(data.get("naturalWidth")),
            natural_height=_number(data.get("naturalHeight")),
            complete=bool(data.get("complete", False)),
            above_fold=bool(data.get("isAboveFold", True)),
            visible=bool(data.get("isVisible", True)),
            decorative=bool(data.get("hasDecorativeRole", False)),
            linked=bool(data.get("isLinked", False)),
            srcset=_text(data.get("srcset")),
            sizes=_text(data.get("sizes")),
        )


@dataclass(frozen=True)
class MediaSnapshot:
    """A <video> or <audio> element and the sources it declares."""

    index: int
    kind: ResourceKind = ResourceKind.VIDEO
    src: str = ""
    sources: Tuple[str, ...] = ()
    outer_html: str = ""

    @property
    def has_valid_source(self) -> bool:
        return bool(self.src.strip()) or any(source.strip() for source in self.sources)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], kind: ResourceKind = ResourceKind.VIDEO) -> MediaSnapshot:
        return cls(
            index=int(data.get("index", 0)),
            kind=kind,
            src=_text(data.get("src")),
            sources=tuple(_text(source) for source in data.get("sources") or ()),
            outer_html=_text(data.get("outerHTML")),
        )


@dataclass(frozen=True)
class IframeSnapshot:
    """Facts about one <iframe> element."""

    index: int
    src: str = ""
    srcdoc: str = ""
    sandbox: Optional[str] = None
    loading: str = ""
    title: str = ""
    name: str = ""
    width: Optional[str] = None
    height: Optional[str] = None
    rendered_width: float = 0
    rendered_height: float = 0
    visible: bool = True
    above_fold: bool = True
    allow_fullscreen: bool = False
    referrer_policy: str = ""
    frame_border: str = ""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.IFRAME

    @property
    def sandbox_tokens(self) -> frozenset[str]:
        return frozenset((self.sandbox or "").lower().split())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IframeSnapshot:
        return cls(
            index=int(data.get("index", 0)),
            src=_text(data.get("src")),
            srcdoc=_text(data.get("srcdoc")),
            sandbox=_optional_text(data.get("sandbox")),
            loading=_text(data.get("loading")),
            title=_text(data.get("title")),
            name=_text(data.get("name")),
            width=_optional_text(data.get("width")),
            height=_optional_text(data.get("height")),
            rendered_width=_number(data.get("renderedWidth")),
            rendered_height=_number(data.get("renderedHeight")),
            visible=bool(data.get("isVisible", True)),
            above_fold=bool(data.get("isAboveFold", True)),
            allow_fullscreen=bool(data.get("allowFullscreen", False)),
            referrer_policy=_text(data.get("referrerPolicy")),
            frame_border=_text(data.get("frameBorder")),
        )


@dataclass(frozen=True)
class StylesheetSnapshot:
    """A <link rel="stylesheet"> element; href is already absolute."""

    index: int
    href: str = ""
    media: str = ""
    type: str = ""
    crossorigin: str = ""
    integrity: str = ""
    disabled: bool = False

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.STYLESHEET

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StylesheetSnapshot:
        return cls(
            index=int(data.get("index", 0)),
            href=_text(data.get("href")),
            media=_text(data.get("media")),
            type=_text(data.get("type")),
            crossorigin=_text(data.get("crossorigin")),
            integrity=_text(data.get("integrity")),
            disabled=bool(data.get("disabled", False)),
        )


@dataclass(frozen=True)
class ScriptSnapshot:
    """A <script src> element; src is already absolute."""

    index: int
    src: str = ""
    type: str = ""
    is_async: bool = False
    defer: bool = False
    crossorigin: str = ""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.SCRIPT

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScriptSnapshot:
        return cls(
            index=int(data.get("index", 0)),
            src=_text(data.get("src")),
            type=_text(data.get("type")),
            is_async=bool(data.get("async", False)),
            defer=bool(data.get("defer", False)),
            crossorigin=_text(data.get("crossorigin")),
        )


# ============================================================================
# Probe results
# ============================================================================


@dataclass(frozen=True)
class ProbeResult:
    """
    Outcome of one network check.

    Either ``status``/``headers`` describe a response, or ``network_error`` is
    set and the response fields stay empty. Header names are lower-cased.
    """

    status: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    network_error: bool = False
    body: bytes = b""
    ttfb_ms: float = 0.0
    elapsed_ms: float = 0.0
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str, elapsed_ms: float = 0.0) -> ProbeResult:
        return cls(network_error=True, error=error, elapsed_ms=elapsed_ms)

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def has_header(self, name: str) -> bool:
        return name.lower() in self.headers

    @property
    def content_length(self) -> Optional[int]:
        raw = self.header("content-length")
        if raw is None:
            return None
        try:
            return int(raw.strip())
        except ValueError:
            return None


# ============================================================================
# Issues and reports
# ============================================================================


@dataclass(frozen=True)
class IssueRecord:
    """One problem found on one resource."""

    code: str
    severity: IssueSeverity
    message: str
    subject: str
    kind: ResourceKind
    url: Optional[str] = None
    size: Optional[str] = None
    count: Optional[int] = None
    status: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "element": self.subject,
            "kind": self.kind.value,
        }
        for key in ("url", "size", "count", "status"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class AuditReport:
    """Aggregated issues of one audit. Clean resources are counted, never listed."""

    title: str
    resource_counts: Dict[str, int] = field(default_factory=dict)
    issues: List[IssueRecord] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

    def severity_counts(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in IssueSeverity}
        for issue in self.issues:
            counts[issue.severity.value] += 1
        counts["total"] = len(self.issues)
        return counts

    def flagged_counts(self) -> Dict[str, int]:
        """Number of distinct resources with at least one issue, per kind."""
        flagged: Dict[str, set[str]] = {}
        for issue in self.issues:
            flagged.setdefault(issue.kind.value, set()).add(issue.subject)
        return {kind: len(subjects) for kind, subjects in flagged.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "totalIssues": len(self.issues),
            "issues": [issue.to_dict() for issue in self.issues],
            "summary": self.severity_counts(),
            "flaggedResources": self.flagged_counts(),
            "resourceCounts": dict(self.resource_counts),
            **self.extras,
        }


# ============================================================================
# Route health
# ============================================================================


@dataclass(frozen=True)
class HeaderCheck:
    """Presence of one response header and its grade."""

    present: bool
    severity: HealthSeverity

    def to_dict(self) -> Dict[str, Any]:
        return {"present": 1 if self.present else 0, "severity": self.severity.value}


@dataclass(frozen=True)
class RouteHealthSample:
    """Graded measurements of one route."""

    url: str
    final_url: str
    status: int
    status_severity: HealthSeverity
    ttfb_ms: float
    ttfb_severity: HealthSeverity
    redirects: int
    cache_control: HeaderCheck
    cors: HeaderCheck
    content_type: HeaderCheck
    json_empty: JsonEmptiness
    json_severity: HealthSeverity
    load_avg_ms: float
    load_severity: HealthSeverity
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "finalUrl": self.final_url,
            "status": self.status,
            "statusSeverity": self.status_severity.value,
            "ttfb": self.ttfb_ms,
            "ttfbSeverity": self.ttfb_severity.value,
            "redirects": self.redirects,
            "headers": {
                "cacheControl": self.cache_control.to_dict(),
                "cors": self.cors.to_dict(),
                "contentType": self.content_type.to_dict(),
            },
            "jsonEmpty": int(self.json_empty),
            "jsonSeverity": self.json_severity.value,
            "loadTestAvg": self.load_avg_ms,
            "loadSeverity": self.load_severity.value,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
