"""Page audits: resource classification with probing, and the per-endpoint services."""

from .resources import ResourceAuditor
from .service import PageAuditService, is_route_link

__all__ = ["PageAuditService", "ResourceAuditor", "is_route_link"]
