"""HTTP API."""

from .main import app, run_web_server

__all__ = ["app", "run_web_server"]
