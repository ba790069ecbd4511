"""Network verification: exemption policy, HTTP probe and bounded pipeline."""

from .client import NetworkProbe, Prober
from .exemptions import DEFAULT_POLICY, ExemptionPolicy, is_exempt
from .pipeline import run_bounded

__all__ = ["DEFAULT_POLICY", "ExemptionPolicy", "NetworkProbe", "Prober", "is_exempt", "run_bounded"]
