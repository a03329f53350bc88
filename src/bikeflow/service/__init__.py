"""Query façade exports."""

from .traffic_service import TrafficQueryService, TrafficSnapshot, query

__all__ = ["TrafficQueryService", "TrafficSnapshot", "query"]
