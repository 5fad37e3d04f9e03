"""
Data models for the network snapshot consumed by every scorer.

A NodeSnapshot is built once per poll (see network.collector) and is frozen:
scorers reference nodes by id and never mutate them. Times are epoch seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from xandeum_observer.core.units import BYTES_PER_GB


class NodeStatus(str, Enum):
    ONLINE = "online"
    UNSTABLE = "unstable"
    OFFLINE = "offline"


@dataclass(frozen=True)
class HealthScore:
    """
    Weighted composite of availability, stability and responsiveness (each 0-100).

    total = round_half_up(availability*0.4 + stability*0.35 + responsiveness*0.25)
    """

    availability: float
    stability: float
    responsiveness: float
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "availability": self.availability,
            "stability": self.stability,
            "responsiveness": self.responsiveness,
            "total": self.total,
        }


@dataclass(frozen=True)
class NodeMetrics:
    latency_ms: float
    uptime_pct: float
    """0-100; share of the trailing 7 days the node reports being up."""
    last_seen: float
    response_time_ms: float = 0.0
    gossip_participation: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "latency_ms": self.latency_ms,
            "uptime_pct": self.uptime_pct,
            "last_seen": self.last_seen,
            "response_time_ms": self.response_time_ms,
            "gossip_participation": self.gossip_participation,
        }


@dataclass(frozen=True)
class NodeStorage:
    used_bytes: int
    committed_bytes: int
    usage_percent: float
    """0-100."""

    @property
    def committed_gb(self) -> float:
        return self.committed_bytes / BYTES_PER_GB

    def to_dict(self) -> dict[str, Any]:
        return {
            "used_bytes": self.used_bytes,
            "committed_bytes": self.committed_bytes,
            "usage_percent": self.usage_percent,
        }


@dataclass(frozen=True)
class GeoData:
    lat: float
    lon: float
    city: str = ""
    country: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"lat": self.lat, "lon": self.lon, "city": self.city, "country": self.country}


@dataclass(frozen=True)
class NodeSnapshot:
    """
    One pNode as seen in a single poll.

    status is derived by the collector from time since last seen and is treated
    as ground truth by every scorer. credits=None means "unknown", which is not
    the same as a zero balance.
    """

    id: str
    ip: str
    status: NodeStatus
    metrics: NodeMetrics
    storage: NodeStorage
    health: HealthScore
    is_seed: bool = False
    discovered_at: float = 0.0
    geo: GeoData | None = None
    version: str | None = None
    credits: int | None = None
    rank: int | None = None

    @property
    def is_online(self) -> bool:
        return self.status is NodeStatus.ONLINE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ip": self.ip,
            "status": self.status.value,
            "metrics": self.metrics.to_dict(),
            "storage": self.storage.to_dict(),
            "health": self.health.to_dict(),
            "is_seed": self.is_seed,
            "discovered_at": self.discovered_at,
            "geo": self.geo.to_dict() if self.geo else None,
            "version": self.version,
            "credits": self.credits,
            "rank": self.rank,
        }


@dataclass(frozen=True)
class HistoryRecord:
    """One backend history sample for a node; status and latency may be missing."""

    timestamp: float
    status: str | None = None
    latency_ms: float | None = None


@dataclass
class StorageProof:
    node_id: str
    proof_hash: str
    timestamp: float
    storage_committed: int
    storage_used: int
    merkle_root: str
    verified: bool
    block_height: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "proof_hash": self.proof_hash,
            "timestamp": self.timestamp,
            "storage_committed": self.storage_committed,
            "storage_used": self.storage_used,
            "merkle_root": self.merkle_root,
            "verified": self.verified,
            "block_height": self.block_height,
        }


@dataclass(frozen=True)
class NetworkSample:
    """Network-wide totals from GET /history (newest first)."""

    timestamp: float
    total_nodes: int
    online_nodes: int
    total_storage: int


@dataclass
class NetworkSnapshot:
    """All nodes from one poll plus when the poll happened."""

    nodes: list[NodeSnapshot]
    collected_at: float
    errors: list[str] = field(default_factory=list)
    """Non-fatal problems hit while collecting (e.g. credits unavailable)."""
