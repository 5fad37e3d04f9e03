"""
Observer pipeline: one context object owning every scoring service.

Build an ObserverContext once and pass it where it is needed; there are no
module-level singletons. analyze() scores a node list into a NetworkReport and
caches it for one polling interval, keyed on the exact node set, so repeated
calls with the same snapshot inside the interval return the cached report
(and the anomaly history is appended to only once). The report always carries
the errors passed with the current call.

    async with ObserverContext() as ctx:
        report = await ctx.refresh()
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Sequence

from xandeum_observer.alerts.engine import AlertEngine, AlertNotification
from xandeum_observer.analysis_engine.anomaly import (
    Anomaly,
    AnomalyDetector,
    AnomalyStats,
    anomaly_stats,
)
from xandeum_observer.analysis_engine.baseline import NetworkBaseline, compute_network_baseline
from xandeum_observer.analysis_engine.health import NetworkHealthStats, network_health_stats
from xandeum_observer.analysis_engine.reputation import Leaderboard, ReputationEngine
from xandeum_observer.analysis_engine.sla import NetworkCompliance, SLAVerifier
from xandeum_observer.config import Settings, get_settings
from xandeum_observer.network.client import ObserverClient
from xandeum_observer.network.collector import SnapshotCollector
from xandeum_observer.network.models import NetworkSnapshot, NodeSnapshot
from xandeum_observer.observer_logging import get_logger
from xandeum_observer.rewards.optimization import RewardOptimizationEngine

logger = get_logger(__name__)


@dataclass
class NetworkReport:
    generated_at: float
    total_nodes: int
    online_nodes: int
    baseline: NetworkBaseline
    health: NetworkHealthStats
    anomalies: list[Anomaly]
    anomaly_stats: AnomalyStats
    leaderboard: Leaderboard
    alerts: list[AlertNotification]
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "total_nodes": self.total_nodes,
            "online_nodes": self.online_nodes,
            "baseline": self.baseline.to_dict(),
            "health": self.health.to_dict(),
            "anomalies": [a.to_dict() for a in self.anomalies],
            "anomaly_stats": self.anomaly_stats.to_dict(),
            "leaderboard": self.leaderboard.to_dict(),
            "alerts": [a.to_dict() for a in self.alerts],
            "errors": list(self.errors),
        }


@dataclass
class _CachedReport:
    key: frozenset[NodeSnapshot]
    computed_at: float
    report: NetworkReport


class ObserverContext:
    """Construct once; owns the backend client and every stateful service."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: ObserverClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or ObserverClient(self.settings)
        self.collector = SnapshotCollector(self.client)
        self.sla = SLAVerifier(self.client)
        self.reputation = ReputationEngine()
        self.anomalies = AnomalyDetector()
        self.rewards = RewardOptimizationEngine(self.client)
        self.alerts = AlertEngine()
        self.last_snapshot: NetworkSnapshot | None = None
        self._cache: _CachedReport | None = None

    async def __aenter__(self) -> ObserverContext:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    def invalidate(self) -> None:
        self._cache = None

    def analyze(
        self,
        nodes: Sequence[NodeSnapshot],
        now_ts: float | None = None,
        errors: Sequence[str] = (),
    ) -> NetworkReport:
        now_ts = now_ts if now_ts is not None else time.time()
        key = frozenset(nodes)
        cached = self._cache
        if (
            cached is not None
            and cached.key == key
            and now_ts - cached.computed_at < self.settings.poll_interval_sec
        ):
            logger.debug("report_cache_hit", nodes=len(nodes))
            # Scores come from the cache; the poll errors are always the caller's
            if cached.report.errors != list(errors):
                cached.report = replace(cached.report, errors=list(errors))
            return cached.report

        baseline = compute_network_baseline(nodes)
        anomalies = self.anomalies.detect(nodes, now_ts, baseline)
        self.anomalies.clear_old_anomalies(now_ts)
        report = NetworkReport(
            generated_at=now_ts,
            total_nodes=len(nodes),
            online_nodes=sum(1 for n in nodes if n.is_online),
            baseline=baseline,
            health=network_health_stats(nodes),
            anomalies=anomalies,
            anomaly_stats=anomaly_stats(anomalies),
            leaderboard=self.reputation.generate_leaderboard(nodes, now_ts),
            alerts=self.alerts.check(nodes, now_ts=now_ts),
            errors=list(errors),
        )
        self._cache = _CachedReport(key=key, computed_at=now_ts, report=report)
        logger.info(
            "network_report_built",
            nodes=report.total_nodes,
            online=report.online_nodes,
            anomalies=len(anomalies),
            alerts=len(report.alerts),
        )
        return report

    async def refresh(self, now_ts: float | None = None) -> NetworkReport:
        """Collect a fresh snapshot from the backend and analyse it."""
        now_ts = now_ts if now_ts is not None else time.time()
        snapshot = await self.collector.collect(now_ts)
        self.last_snapshot = snapshot
        return self.analyze(snapshot.nodes, now_ts, errors=snapshot.errors)

    async def sla_compliance(
        self,
        nodes: Sequence[NodeSnapshot],
        now_ts: float | None = None,
    ) -> NetworkCompliance:
        return await self.sla.network_compliance(nodes, now_ts)
