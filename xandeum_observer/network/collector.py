"""
Snapshot collector: backend pods -> NodeSnapshot list.

Fetches /pods and /credits concurrently, derives status from time since last
seen, and computes the HealthScore inline. A credits failure degrades every
node to credits=None; a pods failure yields an empty snapshot with the error
recorded.
"""

from __future__ import annotations

import asyncio
import time

from xandeum_observer.analysis_engine.health import compute_health_score
from xandeum_observer.core.exceptions import ObserverError
from xandeum_observer.core.units import SECONDS_PER_DAY
from xandeum_observer.network.client import ObserverClient
from xandeum_observer.network.models import (
    GeoData,
    NetworkSnapshot,
    NodeMetrics,
    NodeSnapshot,
    NodeStatus,
    NodeStorage,
)
from xandeum_observer.network.payloads import PodPayload
from xandeum_observer.observer_logging import get_logger

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------
ONLINE_WITHIN_SEC = 120
UNSTABLE_WITHIN_SEC = 600
UPTIME_WINDOW_SEC = 7 * SECONDS_PER_DAY

# Last-seen values above this are epoch milliseconds
_MS_THRESHOLD = 1e12

SEED_IPS = frozenset({
    "173.212.220.65",
    "161.97.97.41",
    "192.190.136.36",
    "192.190.136.38",
    "207.244.255.1",
    "192.190.136.28",
    "192.190.136.29",
    "173.212.203.145",
})


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def status_from_last_seen(last_seen: float, now_ts: float) -> NodeStatus:
    age = now_ts - last_seen
    if age < ONLINE_WITHIN_SEC:
        return NodeStatus.ONLINE
    if age < UNSTABLE_WITHIN_SEC:
        return NodeStatus.UNSTABLE
    return NodeStatus.OFFLINE


def uptime_percent(uptime_sec: int | None) -> float:
    """Uptime seconds as a share of the trailing 7 days, capped at 100."""
    return min(100.0, (uptime_sec or 0) / UPTIME_WINDOW_SEC * 100)


def _host(address: str | None) -> str:
    if not address:
        return ""
    return address.rsplit(":", 1)[0] if address.count(":") == 1 else address


def _last_seen_seconds(raw: float | None, now_ts: float) -> float:
    if raw is None or raw <= 0:
        return now_ts
    return raw / 1000 if raw > _MS_THRESHOLD else float(raw)


def _usage_percent(pod: PodPayload, used: int, committed: int) -> float:
    if pod.storage_usage_percent is not None:
        return max(0.0, min(100.0, pod.storage_usage_percent))
    return used / committed * 100 if committed > 0 else 0.0


def node_id_for(pod: PodPayload) -> str:
    return pod.pubkey or f"pod_{pod.address}"


def pod_to_snapshot(
    pod: PodPayload,
    now_ts: float,
    discovered_at: float,
    credits: int | None = None,
) -> NodeSnapshot:
    last_seen = _last_seen_seconds(pod.last_seen_timestamp, now_ts)
    status = status_from_last_seen(last_seen, now_ts)
    uptime = uptime_percent(pod.uptime)
    latency = pod.latency_ms or 0.0
    used = pod.storage_used or 0
    committed = pod.storage_committed or 0
    geo = pod.geo
    return NodeSnapshot(
        id=node_id_for(pod),
        ip=pod.address or "unknown",
        status=status,
        metrics=NodeMetrics(
            latency_ms=latency,
            uptime_pct=uptime,
            last_seen=last_seen,
            response_time_ms=pod.response_time_ms or 0.0,
            gossip_participation=pod.gossip_participation or 0.0,
        ),
        storage=NodeStorage(
            used_bytes=used,
            committed_bytes=committed,
            usage_percent=_usage_percent(pod, used, committed),
        ),
        health=compute_health_score(status, uptime, latency),
        is_seed=_host(pod.address) in SEED_IPS,
        discovered_at=discovered_at,
        geo=GeoData(lat=geo.lat, lon=geo.lon, city=geo.city, country=geo.country) if geo else None,
        version=pod.version,
        credits=credits,
    )


# -----------------------------------------------------------------------------
# Collector
# -----------------------------------------------------------------------------
class SnapshotCollector:
    """Polls the backend; remembers when each node id was first seen."""

    def __init__(self, client: ObserverClient) -> None:
        self.client = client
        self._first_seen: dict[str, float] = {}

    async def collect(self, now_ts: float | None = None) -> NetworkSnapshot:
        now_ts = now_ts if now_ts is not None else time.time()
        pods_result, credits_result = await asyncio.gather(
            self.client.get_pods(),
            self.client.get_credits(),
            return_exceptions=True,
        )
        errors: list[str] = []

        if isinstance(pods_result, BaseException):
            if not isinstance(pods_result, ObserverError):
                raise pods_result
            logger.warning("snapshot_pods_fetch_failed", error=str(pods_result))
            return NetworkSnapshot(nodes=[], collected_at=now_ts, errors=[f"pods: {pods_result}"])

        credits_by_node: dict[str, int] | None
        if isinstance(credits_result, BaseException):
            if not isinstance(credits_result, ObserverError):
                raise credits_result
            logger.warning("snapshot_credits_fetch_failed", error=str(credits_result))
            errors.append(f"credits: {credits_result}")
            credits_by_node = None
        else:
            credits_by_node = credits_result

        nodes: list[NodeSnapshot] = []
        seen: set[str] = set()
        for pod in pods_result:
            node_id = node_id_for(pod)
            if node_id in seen:
                continue
            seen.add(node_id)
            discovered_at = self._first_seen.setdefault(node_id, now_ts)
            credits = credits_by_node.get(node_id) if credits_by_node is not None else None
            nodes.append(pod_to_snapshot(pod, now_ts, discovered_at, credits))

        logger.info(
            "snapshot_collected",
            nodes=len(nodes),
            online=sum(1 for n in nodes if n.is_online),
            credits_available=credits_by_node is not None,
        )
        return NetworkSnapshot(nodes=nodes, collected_at=now_ts, errors=errors)
