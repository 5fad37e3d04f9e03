"""
Reputation engine: comparative node reputation, leaderboard and decay.

Reputation = uptime (<=30) + performance (<=25) + reliability (<=25)
+ longevity (<=20). Performance is relative to the network's mean latency,
so a node's reputation depends on the node set it is scored with.

Leaderboard order is by credits (STOINC rewards) first and reputation second.
Scores are cached per node; apply_decay() shrinks a cached score by 5% per
whole day since it was computed.
"""

from __future__ import annotations

import math
import statistics
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

from xandeum_observer.core.units import BYTES_PER_TB, SECONDS_PER_DAY, round_half_up
from xandeum_observer.network.models import NodeSnapshot
from xandeum_observer.observer_logging import get_logger

logger = get_logger(__name__)

DECAY_RATE = 0.95
LEADERBOARD_SIZE = 50

UPTIME_MAX = 30.0
PERFORMANCE_MAX = 25.0
RELIABILITY_MAX = 25.0
LONGEVITY_MAX = 20.0

# (minimum uptime %, points)
UPTIME_STEPS = ((99.9, 30.0), (99.5, 28.0), (99.0, 25.0), (98.0, 20.0), (95.0, 15.0), (90.0, 10.0))
# (minimum age in days, points)
LONGEVITY_STEPS = ((90, 20.0), (60, 17.0), (30, 14.0), (14, 10.0), (7, 7.0))


class ReputationTier(str, Enum):
    PLATINUM = "platinum"
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"
    UNRANKED = "unranked"


class TrustLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass
class ReputationComponents:
    uptime: float
    performance: float
    reliability: float
    longevity: float

    @property
    def total(self) -> float:
        return self.uptime + self.performance + self.reliability + self.longevity

    def to_dict(self) -> dict[str, Any]:
        return {
            "uptime": self.uptime,
            "performance": self.performance,
            "reliability": self.reliability,
            "longevity": self.longevity,
        }


@dataclass
class ReputationScore:
    node_id: str
    total_score: int
    tier: ReputationTier
    components: ReputationComponents
    trust_level: TrustLevel
    last_updated: float
    rank: int = 0
    """1-based leaderboard position; 0 until ranked."""
    badges: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "total_score": self.total_score,
            "tier": self.tier.value,
            "rank": self.rank,
            "components": self.components.to_dict(),
            "badges": list(self.badges),
            "trust_level": self.trust_level.value,
            "last_updated": self.last_updated,
        }


@dataclass
class Leaderboard:
    top_nodes: list[ReputationScore]
    average_score: int
    total_ranked: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "top_nodes": [r.to_dict() for r in self.top_nodes],
            "average_score": self.average_score,
            "total_ranked": self.total_ranked,
        }


def tier_for(score: float) -> ReputationTier:
    if score >= 90:
        return ReputationTier.PLATINUM
    if score >= 75:
        return ReputationTier.GOLD
    if score >= 60:
        return ReputationTier.SILVER
    if score >= 40:
        return ReputationTier.BRONZE
    return ReputationTier.UNRANKED


def trust_level_for(score: float) -> TrustLevel:
    if score >= 85:
        return TrustLevel.EXCELLENT
    if score >= 70:
        return TrustLevel.GOOD
    if score >= 50:
        return TrustLevel.FAIR
    return TrustLevel.POOR


def uptime_points(uptime_pct: float) -> float:
    for minimum, points in UPTIME_STEPS:
        if uptime_pct >= minimum:
            return points
    return max(0.0, uptime_pct / 10)


def performance_points(latency_ms: float, network_avg_latency: float) -> float:
    """
    25 - (latency / network mean) * 10, clamped to 0-25.

    With no latency reference (mean <= 0) the node is treated as exactly
    average (ratio 1).
    """
    ratio = latency_ms / network_avg_latency if network_avg_latency > 0 else 1.0
    return min(PERFORMANCE_MAX, max(0.0, PERFORMANCE_MAX - ratio * 10))


def reliability_points(health_total: float, usage_percent: float) -> float:
    return (health_total / 100) * 15 + (10.0 if usage_percent < 90 else 5.0)


def longevity_points(discovered_at: float, now_ts: float) -> float:
    age_days = max(0.0, (now_ts - discovered_at) / SECONDS_PER_DAY)
    for minimum, points in LONGEVITY_STEPS:
        if age_days >= minimum:
            return points
    return min(5.0, age_days)


def award_badges(node: NodeSnapshot, components: ReputationComponents, total_score: float) -> list[str]:
    """Independent achievement checks; order is the display order."""
    checks = (
        (components.uptime >= 29, "99.9% Uptime"),
        (components.uptime >= 25, "High Availability"),
        (components.performance >= 23, "Lightning Fast"),
        (node.metrics.latency_ms < 50, "Ultra Low Latency"),
        (components.reliability >= 23, "Rock Solid"),
        (node.health.total >= 95, "Perfect Health"),
        (components.longevity >= 18, "Veteran Node"),
        (components.longevity >= 14, "Long-term Operator"),
        (total_score >= 95, "Elite Node"),
        (total_score >= 90, "Top Performer"),
        (node.is_seed, "Seed Node"),
        (node.storage.committed_bytes > BYTES_PER_TB, "Storage Giant"),
    )
    return [badge for earned, badge in checks if earned]


def rank_reputations(
    reputations: list[ReputationScore],
    credits_by_node: Mapping[str, int | None],
) -> list[ReputationScore]:
    """
    Sort in place by credits desc, then total score desc; assign 1-based ranks.

    Unknown credits sort as zero. Python's sort is stable, so full ties keep
    input order.
    """
    reputations.sort(
        key=lambda r: (-(credits_by_node.get(r.node_id) or 0), -r.total_score),
    )
    for index, rep in enumerate(reputations):
        rep.rank = index + 1
    return reputations


class ReputationEngine:
    """
    Scores nodes and keeps the latest score per node id (last write wins).

    generate_leaderboard() prunes the cache to the node set it was given.
    """

    def __init__(self) -> None:
        self._cache: dict[str, ReputationScore] = {}

    def calculate_reputation(
        self,
        node: NodeSnapshot,
        all_nodes: Sequence[NodeSnapshot],
        now_ts: float | None = None,
    ) -> ReputationScore:
        now_ts = now_ts if now_ts is not None else time.time()
        peers = all_nodes or (node,)
        avg_latency = statistics.fmean(n.metrics.latency_ms for n in peers)
        components = ReputationComponents(
            uptime=uptime_points(node.metrics.uptime_pct),
            performance=performance_points(node.metrics.latency_ms, avg_latency),
            reliability=reliability_points(node.health.total, node.storage.usage_percent),
            longevity=longevity_points(node.discovered_at, now_ts),
        )
        raw_total = components.total
        total = round_half_up(raw_total)
        reputation = ReputationScore(
            node_id=node.id,
            total_score=total,
            tier=tier_for(raw_total),
            components=components,
            trust_level=trust_level_for(raw_total),
            last_updated=now_ts,
            badges=award_badges(node, components, raw_total),
        )
        self._cache[node.id] = reputation
        return reputation

    def generate_leaderboard(
        self,
        nodes: Sequence[NodeSnapshot],
        now_ts: float | None = None,
        size: int = LEADERBOARD_SIZE,
    ) -> Leaderboard:
        now_ts = now_ts if now_ts is not None else time.time()
        reputations = [self.calculate_reputation(n, nodes, now_ts) for n in nodes]
        # Nodes that left the network drop out of the cache
        current = {n.id for n in nodes}
        for node_id in [k for k in self._cache if k not in current]:
            del self._cache[node_id]
        rank_reputations(reputations, {n.id: n.credits for n in nodes})
        average = statistics.fmean(r.total_score for r in reputations) if reputations else 0.0
        logger.debug("reputation_leaderboard_built", ranked=len(reputations), average=average)
        return Leaderboard(
            top_nodes=reputations[:size],
            average_score=round_half_up(average),
            total_ranked=len(reputations),
        )

    def get_node_reputation(self, node_id: str) -> ReputationScore | None:
        return self._cache.get(node_id)

    def apply_decay(self, node_id: str, now_ts: float | None = None) -> ReputationScore | None:
        """
        Decay a cached score by 0.95 ** whole_days_since_update.

        The consumed whole days are added to last_updated so calling this again
        later only decays for the days that have passed since.
        """
        reputation = self._cache.get(node_id)
        if reputation is None:
            return None
        now_ts = now_ts if now_ts is not None else time.time()
        days = math.floor((now_ts - reputation.last_updated) / SECONDS_PER_DAY)
        if days < 1:
            return reputation
        decayed = round_half_up(reputation.total_score * DECAY_RATE ** days)
        logger.info(
            "reputation_decayed",
            node_id=node_id,
            days=days,
            before=reputation.total_score,
            after=decayed,
        )
        reputation.total_score = decayed
        reputation.tier = tier_for(decayed)
        reputation.trust_level = trust_level_for(decayed)
        reputation.last_updated += days * SECONDS_PER_DAY
        return reputation
