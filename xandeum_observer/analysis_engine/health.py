"""
Node health scoring.

compute_health_score() is the leaf of the pipeline: it runs inline while a
snapshot is built and its result is attached to the NodeSnapshot.

compute_health_breakdown() is the richer composite shown on node detail pages
(uptime, health, storage utilisation, latency, contribution) with a letter
grade; network_health_stats() summarises it across the network.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Any, Sequence

from xandeum_observer.core.units import BYTES_PER_GB, round_half_up
from xandeum_observer.network.models import HealthScore, NodeSnapshot, NodeStatus

AVAILABILITY_WEIGHT = 0.4
STABILITY_WEIGHT = 0.35
RESPONSIVENESS_WEIGHT = 0.25

STABILITY_BY_STATUS = {
    NodeStatus.ONLINE: 100.0,
    NodeStatus.UNSTABLE: 50.0,
    NodeStatus.OFFLINE: 0.0,
}


def compute_health_score(status: NodeStatus, uptime_pct: float, latency_ms: float) -> HealthScore:
    """
    Availability / stability / responsiveness composite.

    availability = uptime (clamped 0-100); stability = 100/50/0 for
    online/unstable/offline; responsiveness = max(0, 100 - latency/10) when a
    latency sample exists (latency > 0), else 0.
    """
    availability = max(0.0, min(100.0, float(uptime_pct)))
    stability = STABILITY_BY_STATUS[status]
    responsiveness = max(0.0, 100.0 - latency_ms / 10.0) if latency_ms > 0 else 0.0
    total = round_half_up(
        availability * AVAILABILITY_WEIGHT
        + stability * STABILITY_WEIGHT
        + responsiveness * RESPONSIVENESS_WEIGHT
    )
    return HealthScore(
        availability=availability,
        stability=stability,
        responsiveness=responsiveness,
        total=total,
    )


# --- Composite breakdown ---


@dataclass(frozen=True)
class BreakdownWeights:
    uptime: float = 0.30
    health: float = 0.25
    storage: float = 0.20
    latency: float = 0.15
    contribution: float = 0.10


DEFAULT_WEIGHTS = BreakdownWeights()


@dataclass
class ComponentScore:
    score: int
    weight: float
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "weight": self.weight, "value": self.value}


@dataclass
class HealthBreakdown:
    overall: int
    grade: str
    trend: str
    """up | down | stable"""
    components: dict[str, ComponentScore] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "grade": self.grade,
            "trend": self.trend,
            "components": {k: c.to_dict() for k, c in self.components.items()},
        }


GRADE_THRESHOLDS = (
    (95, "A+"),
    (90, "A"),
    (85, "A-"),
    (80, "B+"),
    (75, "B"),
    (70, "B-"),
    (65, "C+"),
    (60, "C"),
    (55, "C-"),
    (50, "D"),
)


def grade_for(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def _storage_utilisation_score(utilisation: float) -> float:
    # 40-90% is the healthy band; under-use and near-full both cost points
    if utilisation < 40:
        return 50 + (utilisation / 40) * 50
    if utilisation > 90:
        return max(0.0, 100 - ((utilisation - 90) / 10) * 50)
    return 100.0


def _latency_score(latency_ms: float) -> float:
    if latency_ms <= 50:
        return 100.0
    if latency_ms <= 100:
        return 90 + ((100 - latency_ms) / 50) * 10
    if latency_ms <= 200:
        return 70 + ((200 - latency_ms) / 100) * 20
    return max(0.0, 70 - ((latency_ms - 200) / 100) * 10)


def _trend(node: NodeSnapshot) -> str:
    if node.status is NodeStatus.ONLINE and node.health.total > 80:
        return "up"
    if node.status is NodeStatus.OFFLINE or node.health.total < 50:
        return "down"
    return "stable"


def compute_health_breakdown(
    node: NodeSnapshot,
    weights: BreakdownWeights = DEFAULT_WEIGHTS,
) -> HealthBreakdown:
    """
    Five-component composite (0-100) with letter grade.

    Contribution rewards credits (100+ credits = 50 points) and committed
    storage (100+ GB = 50 points). Unknown credits count as zero here.
    """
    uptime_value = node.metrics.uptime_pct
    uptime_score = min(100.0, uptime_value)

    health_value = float(node.health.total)
    health_score = min(100.0, health_value)

    committed = node.storage.committed_bytes
    utilisation = (node.storage.used_bytes / committed * 100) if committed > 0 else 0.0
    storage_score = _storage_utilisation_score(utilisation)

    latency_value = node.metrics.latency_ms
    latency_score = _latency_score(latency_value)

    credits = node.credits if node.credits is not None else 0
    storage_gb = committed / BYTES_PER_GB
    contribution_score = min(50.0, credits / 100 * 50) + min(50.0, storage_gb / 100 * 50)

    overall = round_half_up(
        uptime_score * weights.uptime
        + health_score * weights.health
        + storage_score * weights.storage
        + latency_score * weights.latency
        + contribution_score * weights.contribution
    )
    return HealthBreakdown(
        overall=overall,
        grade=grade_for(overall),
        trend=_trend(node),
        components={
            "uptime": ComponentScore(round_half_up(uptime_score), weights.uptime, uptime_value),
            "health": ComponentScore(round_half_up(health_score), weights.health, health_value),
            "storage": ComponentScore(round_half_up(storage_score), weights.storage, utilisation),
            "latency": ComponentScore(round_half_up(latency_score), weights.latency, latency_value),
            "contribution": ComponentScore(
                round_half_up(contribution_score), weights.contribution, float(credits)
            ),
        },
    )


@dataclass
class NetworkHealthStats:
    average: int
    median: int
    p95: int
    distribution: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "average": self.average,
            "median": self.median,
            "p95": self.p95,
            "distribution": dict(self.distribution),
        }


def network_health_stats(nodes: Sequence[NodeSnapshot]) -> NetworkHealthStats:
    """Average, upper median, p95 and bucket counts of breakdown scores; zeros for no nodes."""
    if not nodes:
        return NetworkHealthStats(
            average=0,
            median=0,
            p95=0,
            distribution={"excellent": 0, "good": 0, "fair": 0, "poor": 0},
        )
    scores = sorted(compute_health_breakdown(n).overall for n in nodes)
    return NetworkHealthStats(
        average=round_half_up(statistics.mean(scores)),
        median=scores[len(scores) // 2],
        p95=scores[min(len(scores) - 1, int(len(scores) * 0.95))],
        distribution={
            "excellent": sum(1 for s in scores if s >= 90),
            "good": sum(1 for s in scores if 70 <= s < 90),
            "fair": sum(1 for s in scores if 50 <= s < 70),
            "poor": sum(1 for s in scores if s < 50),
        },
    )
