"""
Defines the Prometheus metrics exported by the API.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import generate_latest

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Test suites and reloaders import this module more than once; a second
# registration of the same name must reuse the existing collector.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "probe_requests_total": Counter(
            "siteprobe_probe_requests_total",
            "Network probes issued, by method and outcome",
            ["method", "outcome"],
        ),
        "probe_latency_seconds": Histogram(
            "siteprobe_probe_latency_seconds",
            "Elapsed time of a single network probe",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
        ),
        "audits_total": Counter(
            "siteprobe_audits_total",
            "Page audits served, by endpoint and outcome",
            ["endpoint", "outcome"],
        ),
        "issues_total": Counter(
            "siteprobe_issues_total",
            "Issues reported, by resource kind and severity",
            ["kind", "severity"],
        ),
        "route_samples_total": Counter(
            "siteprobe_route_samples_total",
            "Route health samples produced, by status severity",
            ["severity"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def increment(name: str, value: float = 1.0, labels: Optional[Dict[str, Any]] = None) -> None:
    """Increment a counter metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).inc(value)
        else:
            metric.inc(value)


def observe(name: str, value: float, labels: Optional[Dict[str, Any]] = None) -> None:
    """Observe a histogram metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).observe(value)
        else:
            metric.observe(value)


def export_prometheus() -> bytes:
    """Export metrics in Prometheus text format."""
    return generate_latest()
