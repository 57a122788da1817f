"""
Traceability Module.

Orchestrates graph building and aggregation behind one call:

    from core.trace import TraceabilityService, load_config

    service = TraceabilityService(accessor, load_config("ltrace.yaml"))
    report = service.resolve("shipment-lot-detail-id")
"""

from core.trace.config import TraceConfig, load_config
from core.trace.service import TraceabilityService, create_service

__all__ = [
    "TraceConfig",
    "TraceabilityService",
    "create_service",
    "load_config",
]
