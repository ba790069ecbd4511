"""Configuration models and loaders."""

from .config import (
    BrowserConfig,
    Config,
    MonitoringConfig,
    ProbeConfig,
    RouteHealthConfig,
    WebUIConfig,
    find_config_file,
    settings,
)

__all__ = [
    "BrowserConfig",
    "Config",
    "MonitoringConfig",
    "ProbeConfig",
    "RouteHealthConfig",
    "WebUIConfig",
    "find_config_file",
    "settings",
]
