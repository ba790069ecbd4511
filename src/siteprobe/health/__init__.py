"""Route health scoring."""

from .routes import LOAD_SAMPLES, RouteHealthScorer, degraded_sample

__all__ = ["LOAD_SAMPLES", "RouteHealthScorer", "degraded_sample"]
