"""
Network baseline: mean latency, uptime and health over online nodes.

Anomaly detection compares every node against this. With no online nodes the
baseline is all zeros, which downstream checks treat as "no reference".
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Any, Sequence

from xandeum_observer.network.models import NodeSnapshot


@dataclass(frozen=True)
class NetworkBaseline:
    avg_latency: float = 0.0
    avg_uptime: float = 0.0
    avg_health: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg_latency": self.avg_latency,
            "avg_uptime": self.avg_uptime,
            "avg_health": self.avg_health,
        }


def compute_network_baseline(nodes: Sequence[NodeSnapshot]) -> NetworkBaseline:
    online = [n for n in nodes if n.is_online]
    if not online:
        return NetworkBaseline()
    return NetworkBaseline(
        avg_latency=statistics.fmean(n.metrics.latency_ms for n in online),
        avg_uptime=statistics.fmean(n.metrics.uptime_pct for n in online),
        avg_health=statistics.fmean(n.health.total for n in online),
    )
