"""
Rule-based anomaly detection for pNodes.

Flags latency spikes, offline patterns, storage pressure, and health
degradation relative to the network baseline. Every anomaly carries the
current value, the baseline it was compared to, the deviation, a 0-100 score
and a recommendation. No ML; thresholds are configurable.

Scores are always clamped to 0-100, whichever rule produced them.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence

from xandeum_observer.analysis_engine.baseline import NetworkBaseline, compute_network_baseline
from xandeum_observer.core.units import SECONDS_PER_DAY
from xandeum_observer.network.models import NodeSnapshot, NodeStatus
from xandeum_observer.observer_logging import get_logger

logger = get_logger(__name__)

HISTORY_LIMIT_PER_NODE = 100
HISTORY_RETENTION_SEC = SECONDS_PER_DAY


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnomalyType(str, Enum):
    LATENCY_SPIKE = "latency_spike"
    OFFLINE_PATTERN = "offline_pattern"
    STORAGE_ANOMALY = "storage_anomaly"
    PERFORMANCE_DEGRADATION = "performance_degradation"


@dataclass
class AnomalyMetrics:
    current: float
    baseline: float
    deviation: float

    def to_dict(self) -> dict[str, Any]:
        return {"current": self.current, "baseline": self.baseline, "deviation": self.deviation}


@dataclass
class Anomaly:
    id: str
    node_id: str
    type: AnomalyType
    severity: AnomalySeverity
    score: float
    """0-100."""
    timestamp: float
    description: str
    metrics: AnomalyMetrics
    recommendation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "node_id": self.node_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "score": self.score,
            "timestamp": self.timestamp,
            "description": self.description,
            "metrics": self.metrics.to_dict(),
            "recommendation": self.recommendation,
        }


@dataclass
class AnomalyStats:
    total_anomalies: int
    critical_count: int
    high_count: int
    medium_count: int
    low_count: int
    affected_nodes: int
    detection_rate: float
    """Affected nodes per anomaly, as a percentage; 0 when there are no anomalies."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_anomalies": self.total_anomalies,
            "critical_count": self.critical_count,
            "high_count": self.high_count,
            "medium_count": self.medium_count,
            "low_count": self.low_count,
            "affected_nodes": self.affected_nodes,
            "detection_rate": self.detection_rate,
        }


@dataclass
class AnomalyConfig:
    """Thresholds for the anomaly rules."""

    # Latency spike: above this multiple of the network mean AND above the floor.
    latency_spike_ratio: float = 2.5
    latency_spike_floor_ms: float = 100.0

    # Offline pattern: uptime reference used to express the deviation.
    uptime_reference_pct: float = 99.9

    # Storage: usage percent above which the node is flagged / critical.
    storage_high_pct: float = 90.0
    storage_critical_pct: float = 95.0
    storage_reference_pct: float = 80.0

    # Performance degradation: health points below network mean, and absolute ceiling.
    health_drop_points: float = 30.0
    health_ceiling: float = 60.0


def severity_from_deviation(deviation: float) -> AnomalySeverity:
    if deviation > 80:
        return AnomalySeverity.CRITICAL
    if deviation > 50:
        return AnomalySeverity.HIGH
    if deviation > 25:
        return AnomalySeverity.MEDIUM
    return AnomalySeverity.LOW


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def _anomaly_id(node_id: str, kind: str, now_ts: float) -> str:
    return f"{node_id}-{kind}-{int(now_ts * 1000)}"


def _check_latency_spike(
    node: NodeSnapshot,
    baseline: NetworkBaseline,
    config: AnomalyConfig,
    now_ts: float,
) -> Anomaly | None:
    """
    Latency far above the network mean.

    Skipped when there is no latency baseline (no online nodes reporting).
    """
    avg = baseline.avg_latency
    latency = node.metrics.latency_ms
    if avg <= 0:
        return None
    if not (latency > avg * config.latency_spike_ratio and latency > config.latency_spike_floor_ms):
        return None
    deviation = (latency - avg) / avg * 100
    severity = severity_from_deviation(deviation)
    return Anomaly(
        id=_anomaly_id(node.id, "latency", now_ts),
        node_id=node.id,
        type=AnomalyType.LATENCY_SPIKE,
        severity=severity,
        score=_clamp_score(deviation),
        timestamp=now_ts,
        description=f"Latency spike detected: {latency:.0f}ms ({deviation:.0f}% above baseline)",
        metrics=AnomalyMetrics(current=latency, baseline=avg, deviation=deviation),
        recommendation=(
            "Immediate investigation required. Check network connectivity and node resources."
            if severity is AnomalySeverity.CRITICAL
            else "Monitor closely. Consider restarting node if issue persists."
        ),
    )


def _check_offline_pattern(
    node: NodeSnapshot,
    baseline: NetworkBaseline,
    config: AnomalyConfig,
    now_ts: float,
) -> Anomaly | None:
    if node.status is NodeStatus.ONLINE:
        return None
    uptime = node.metrics.uptime_pct
    offline = node.status is NodeStatus.OFFLINE
    return Anomaly(
        id=_anomaly_id(node.id, "offline", now_ts),
        node_id=node.id,
        type=AnomalyType.OFFLINE_PATTERN,
        severity=AnomalySeverity.CRITICAL if offline else AnomalySeverity.HIGH,
        score=_clamp_score(100 - uptime),
        timestamp=now_ts,
        description=f"Node {node.status.value}: Uptime at {uptime:.1f}%",
        metrics=AnomalyMetrics(
            current=uptime,
            baseline=config.uptime_reference_pct,
            deviation=config.uptime_reference_pct - uptime,
        ),
        recommendation=(
            "Node is offline. Check system status and restart if necessary."
            if offline
            else "Node is unstable. Investigate network issues or resource constraints."
        ),
    )


def _check_storage(
    node: NodeSnapshot,
    baseline: NetworkBaseline,
    config: AnomalyConfig,
    now_ts: float,
) -> Anomaly | None:
    usage = node.storage.usage_percent
    if usage <= config.storage_high_pct:
        return None
    critical = usage > config.storage_critical_pct
    return Anomaly(
        id=_anomaly_id(node.id, "storage", now_ts),
        node_id=node.id,
        type=AnomalyType.STORAGE_ANOMALY,
        severity=AnomalySeverity.CRITICAL if critical else AnomalySeverity.HIGH,
        score=_clamp_score(usage),
        timestamp=now_ts,
        description=f"Storage usage critical: {usage:.1f}% full",
        metrics=AnomalyMetrics(
            current=usage,
            baseline=config.storage_reference_pct,
            deviation=usage - config.storage_reference_pct,
        ),
        recommendation=(
            "URGENT: Storage nearly full. Expand capacity immediately or risk data loss."
            if critical
            else "Storage usage high. Plan capacity expansion soon."
        ),
    )


def _check_performance_degradation(
    node: NodeSnapshot,
    baseline: NetworkBaseline,
    config: AnomalyConfig,
    now_ts: float,
) -> Anomaly | None:
    health = node.health.total
    drop = baseline.avg_health - health
    if not (drop > config.health_drop_points and health < config.health_ceiling):
        return None
    return Anomaly(
        id=_anomaly_id(node.id, "perf", now_ts),
        node_id=node.id,
        type=AnomalyType.PERFORMANCE_DEGRADATION,
        severity=severity_from_deviation(drop),
        score=_clamp_score(drop),
        timestamp=now_ts,
        description=(
            f"Performance degraded: Health score {health}/100 "
            f"({drop:.0f} points below network average)"
        ),
        metrics=AnomalyMetrics(current=float(health), baseline=baseline.avg_health, deviation=drop),
        recommendation="Review node configuration and resource allocation. Consider maintenance window.",
    )


CHECKS: tuple[Callable[[NodeSnapshot, NetworkBaseline, AnomalyConfig, float], Anomaly | None], ...] = (
    _check_latency_spike,
    _check_offline_pattern,
    _check_storage,
    _check_performance_degradation,
)


def anomaly_stats(anomalies: Sequence[Anomaly]) -> AnomalyStats:
    affected = len({a.node_id for a in anomalies})
    total = len(anomalies)

    def count(severity: AnomalySeverity) -> int:
        return sum(1 for a in anomalies if a.severity is severity)

    return AnomalyStats(
        total_anomalies=total,
        critical_count=count(AnomalySeverity.CRITICAL),
        high_count=count(AnomalySeverity.HIGH),
        medium_count=count(AnomalySeverity.MEDIUM),
        low_count=count(AnomalySeverity.LOW),
        affected_nodes=affected,
        detection_rate=(affected / total * 100) if total else 0.0,
    )


class AnomalyDetector:
    """
    Runs every rule against every node and remembers recent anomalies per node.

    History is capped at HISTORY_LIMIT_PER_NODE entries per node (oldest
    evicted first); clear_old_anomalies() drops entries older than 24 h.
    """

    def __init__(self, config: AnomalyConfig | None = None) -> None:
        self.config = config or AnomalyConfig()
        self._history: dict[str, deque[Anomaly]] = {}

    def detect(
        self,
        nodes: Sequence[NodeSnapshot],
        now_ts: float | None = None,
        baseline: NetworkBaseline | None = None,
    ) -> list[Anomaly]:
        now_ts = now_ts if now_ts is not None else time.time()
        baseline = baseline or compute_network_baseline(nodes)
        anomalies: list[Anomaly] = []

        for node in nodes:
            for check in CHECKS:
                try:
                    anomaly = check(node, baseline, self.config, now_ts)
                except Exception as e:
                    logger.warning(
                        "anomaly_rule_failed",
                        rule=check.__name__,
                        node_id=node.id,
                        error=str(e),
                    )
                    continue
                if anomaly is not None:
                    anomalies.append(anomaly)

        for anomaly in anomalies:
            self._history.setdefault(
                anomaly.node_id, deque(maxlen=HISTORY_LIMIT_PER_NODE)
            ).append(anomaly)

        if anomalies:
            logger.info(
                "anomalies_detected",
                count=len(anomalies),
                nodes=len({a.node_id for a in anomalies}),
            )
        return anomalies

    def node_history(self, node_id: str) -> list[Anomaly]:
        return list(self._history.get(node_id, ()))

    def clear_old_anomalies(self, now_ts: float | None = None) -> int:
        """Drop anomalies older than 24 h; returns how many were removed."""
        now_ts = now_ts if now_ts is not None else time.time()
        cutoff = now_ts - HISTORY_RETENTION_SEC
        removed = 0
        for node_id in list(self._history):
            history = self._history[node_id]
            kept = [a for a in history if a.timestamp > cutoff]
            removed += len(history) - len(kept)
            if kept:
                self._history[node_id] = deque(kept, maxlen=HISTORY_LIMIT_PER_NODE)
            else:
                del self._history[node_id]
        return removed
