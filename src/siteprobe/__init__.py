"""
SiteProbe - resource issue classification and route health probing.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .probe import ExemptionPolicy, NetworkProbe, is_exempt

__all__ = ["__version__", "Config", "ExemptionPolicy", "NetworkProbe", "is_exempt"]
