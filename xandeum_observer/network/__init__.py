"""
Network snapshot: data models, backend payloads, HTTP client and collector.

Only the models are re-exported here; import the client and collector from
their modules (the collector depends on analysis_engine.health).
"""

from xandeum_observer.network.models import (
    GeoData,
    HealthScore,
    HistoryRecord,
    NetworkSample,
    NetworkSnapshot,
    NodeMetrics,
    NodeSnapshot,
    NodeStatus,
    NodeStorage,
    StorageProof,
)

__all__ = [
    "GeoData",
    "HealthScore",
    "HistoryRecord",
    "NetworkSample",
    "NetworkSnapshot",
    "NodeMetrics",
    "NodeSnapshot",
    "NodeStatus",
    "NodeStorage",
    "StorageProof",
]
