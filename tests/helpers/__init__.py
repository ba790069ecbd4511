"""Test helpers."""

from .fakes import (
    FakeInspector,
    FakeProber,
    make_iframe,
    make_image,
    make_media,
    make_script,
    make_stylesheet,
    session_factory_for,
)
from .metric_delta import get_histogram_count, histogram_observes, metric_delta

__all__ = [
    "FakeInspector",
    "FakeProber",
    "get_histogram_count",
    "histogram_observes",
    "make_iframe",
    "make_image",
    "make_media",
    "make_script",
    "make_stylesheet",
    "metric_delta",
    "session_factory_for",
]
