"""
Reward optimization engine: suggestions, reward forecasts and capacity plans.

Market data (growth, demand, competition) starts from configured defaults and
is refreshed from GET /history plus the live node set; a failed refresh keeps
the previous values. Storage usage is a percentage (0-100) everywhere.

Suggestion amounts (reward increase, cost, confidence) are fixed per
suggestion kind; they are heuristics, not measurements.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Sequence

from xandeum_observer.analysis_engine.sla import SLAMetrics
from xandeum_observer.core.exceptions import ObserverError
from xandeum_observer.core.units import BYTES_PER_GB
from xandeum_observer.network.client import ObserverClient
from xandeum_observer.network.models import GeoData, HistoryRecord, NetworkSample, NodeSnapshot
from xandeum_observer.observer_logging import get_logger
from xandeum_observer.rewards.earnings import NEVER_BREAKS_EVEN

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0
NEARBY_KM = 100.0
CROWDED_REGION_NODES = 10
WEAK_REGION_HEALTH = 80.0
GROWTH_LOOKBACK_SAMPLES = 30

UPTIME_GOAL_PCT = 99.5
LATENCY_GOAL_MS = 200.0
CAPACITY_EXPAND_PCT = 80.0
CAPACITY_URGENT_PCT = 90.0
GOSSIP_GOAL_PCT = 80.0

TREND_MIN_RECORDS = 10
TREND_DELTA = 0.05


class SuggestionType(str, Enum):
    CAPACITY = "capacity"
    LOCATION = "location"
    PERFORMANCE = "performance"
    ECONOMIC = "economic"
    NETWORK = "network"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


PRIORITY_WEIGHT = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ForecastTimeframe(str, Enum):
    DAY = "1d"
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"


TIMEFRAME_DAYS = {
    ForecastTimeframe.DAY: 1,
    ForecastTimeframe.WEEK: 7,
    ForecastTimeframe.MONTH: 30,
    ForecastTimeframe.QUARTER: 90,
}


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class RewardConstants:
    base_reward_rate: float = 0.1
    """STOINC per committed GB per day."""
    latency_penalty_threshold_ms: float = 200.0
    latency_penalty: float = 0.8
    storage_efficiency_bonus: float = 1.2
    underserved_location_bonus: float = 1.3
    balanced_location_bonus: float = 1.0
    oversaturated_location_bonus: float = 0.8
    network_contribution_bonus: float = 1.1


@dataclass
class MarketData:
    network_growth_rate: float = 0.15
    """Monthly node-count growth, as a fraction."""
    average_node_roi: float = 0.25
    competition_index: float = 0.7
    """0-1."""
    demand_growth: float = 0.12
    """Monthly storage growth, as a fraction."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "network_growth_rate": self.network_growth_rate,
            "average_node_roi": self.average_node_roi,
            "competition_index": self.competition_index,
            "demand_growth": self.demand_growth,
        }


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ExpectedImpact:
    reward_increase: float
    cost_reduction: float
    performance_gain: float
    risk_reduction: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "reward_increase": self.reward_increase,
            "cost_reduction": self.cost_reduction,
            "performance_gain": self.performance_gain,
            "risk_reduction": self.risk_reduction,
        }


@dataclass(frozen=True)
class Implementation:
    difficulty: Difficulty
    timeframe: str
    estimated_cost: float
    """USD."""
    steps: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "difficulty": self.difficulty.value,
            "timeframe": self.timeframe,
            "estimated_cost": self.estimated_cost,
            "steps": list(self.steps),
        }


@dataclass
class OptimizationSuggestion:
    id: str
    node_id: str
    type: SuggestionType
    priority: Priority
    title: str
    description: str
    expected_impact: ExpectedImpact
    implementation: Implementation
    confidence: int
    based_on_data: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "node_id": self.node_id,
            "type": self.type.value,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "expected_impact": self.expected_impact.to_dict(),
            "implementation": self.implementation.to_dict(),
            "confidence": self.confidence,
            "based_on_data": list(self.based_on_data),
        }


@dataclass
class RewardMultipliers:
    uptime: float
    latency: float
    storage: float
    location: float
    network: float

    @property
    def current(self) -> float:
        return self.uptime * self.latency * self.storage * self.location * self.network

    def to_dict(self) -> dict[str, Any]:
        return {
            "uptime": self.uptime,
            "latency": self.latency,
            "storage": self.storage,
            "location": self.location,
            "network": self.network,
        }


@dataclass
class RewardForecast:
    node_id: str
    timeframe: ForecastTimeframe
    current_projection: float
    optimized_projection: float
    factors: RewardMultipliers
    network_growth: float
    competition_level: float
    demand_forecast: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "timeframe": self.timeframe.value,
            "current_projection": self.current_projection,
            "optimized_projection": self.optimized_projection,
            "factors": self.factors.to_dict(),
            "market_conditions": {
                "network_growth": self.network_growth,
                "competition_level": self.competition_level,
                "demand_forecast": self.demand_forecast,
            },
        }


@dataclass
class CapacityPlan:
    node_id: str
    current_capacity: int
    recommended_capacity: int
    growth_30d: float
    growth_90d: float
    growth_1y: float
    investment_required: float
    """USD, at $100 per additional GB-equivalent unit."""
    breakeven_days: int
    """-1 when the added capacity earns nothing (never breaks even)."""
    yearly_return: float
    """Yearly revenue over investment, as a fraction (0.25 = 25%)."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "current_capacity": self.current_capacity,
            "recommended_capacity": self.recommended_capacity,
            "growth_projection": {
                "30d": self.growth_30d,
                "90d": self.growth_90d,
                "1y": self.growth_1y,
            },
            "investment_required": self.investment_required,
            "roi": {"breakeven": self.breakeven_days, "yearly_return": self.yearly_return},
        }


@dataclass
class PerformanceAnalysis:
    issues: list[str]
    uptime_score: float
    latency_ms: float
    trend: str
    """improving | stable | declining"""

    @property
    def needs_improvement(self) -> bool:
        return bool(self.issues)


@dataclass
class LocationAnalysis:
    density: int
    avg_performance: float
    recommendation: str
    """consider_relocation | optimize_current | no_action"""


@dataclass
class CapacityAnalysis:
    should_expand: bool
    current_utilization: float
    network_average: float
    urgency: str
    """high | medium | low"""


# -----------------------------------------------------------------------------
# Pure analysis helpers
# -----------------------------------------------------------------------------
def haversine_km(a: GeoData, b: GeoData) -> float:
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def performance_trend(history: Sequence[HistoryRecord]) -> str:
    """Compare online share of the newest third against the oldest third (history is newest first)."""
    if len(history) < TREND_MIN_RECORDS:
        return "stable"
    third = len(history) // 3
    recent = history[:third]
    older = history[-third:]
    recent_up = sum(1 for r in recent if r.status == "online") / len(recent)
    older_up = sum(1 for r in older if r.status == "online") / len(older)
    diff = recent_up - older_up
    if diff > TREND_DELTA:
        return "improving"
    if diff < -TREND_DELTA:
        return "declining"
    return "stable"


def analyze_performance(
    node: NodeSnapshot,
    sla: SLAMetrics,
    history: Sequence[HistoryRecord] = (),
) -> PerformanceAnalysis:
    uptime = node.metrics.uptime_pct
    latency = node.metrics.latency_ms
    if history:
        up = sum(1 for r in history if r.status == "online" or r.latency_ms is not None)
        uptime = up / len(history) * 100
        samples = [r.latency_ms for r in history if r.latency_ms is not None]
        if samples:
            latency = sum(samples) / len(samples)

    issues: list[str] = []
    if uptime < UPTIME_GOAL_PCT:
        issues.append("uptime")
    if latency > LATENCY_GOAL_MS:
        issues.append("latency")
    if sla.violations:
        issues.append("sla_compliance")
    return PerformanceAnalysis(
        issues=issues,
        uptime_score=uptime,
        latency_ms=latency,
        trend=performance_trend(history),
    )


def analyze_location(node: NodeSnapshot, nodes: Sequence[NodeSnapshot]) -> LocationAnalysis:
    if node.geo is None:
        return LocationAnalysis(density=0, avg_performance=0.0, recommendation="no_action")
    nearby = [
        n for n in nodes
        if n.geo is not None and n.id != node.id and haversine_km(node.geo, n.geo) < NEARBY_KM
    ]
    avg = sum(n.health.total for n in nearby) / len(nearby) if nearby else 0.0
    density = len(nearby)
    if density > CROWDED_REGION_NODES:
        recommendation = "consider_relocation"
    elif avg < WEAK_REGION_HEALTH:
        recommendation = "optimize_current"
    else:
        recommendation = "no_action"
    return LocationAnalysis(density=density, avg_performance=avg, recommendation=recommendation)


def analyze_capacity(node: NodeSnapshot, nodes: Sequence[NodeSnapshot]) -> CapacityAnalysis:
    usage = node.storage.usage_percent
    peers = nodes or (node,)
    network_avg = sum(n.storage.usage_percent for n in peers) / len(peers)
    if usage > CAPACITY_URGENT_PCT:
        urgency = "high"
    elif usage > CAPACITY_EXPAND_PCT:
        urgency = "medium"
    else:
        urgency = "low"
    return CapacityAnalysis(
        should_expand=usage > CAPACITY_EXPAND_PCT or usage > network_avg * 1.2,
        current_utilization=usage,
        network_average=network_avg,
        urgency=urgency,
    )


def _performance_suggestions(node: NodeSnapshot, analysis: PerformanceAnalysis) -> list[OptimizationSuggestion]:
    out: list[OptimizationSuggestion] = []
    if "uptime" in analysis.issues:
        out.append(OptimizationSuggestion(
            id=f"perf_uptime_{node.id}",
            node_id=node.id,
            type=SuggestionType.PERFORMANCE,
            priority=Priority.HIGH,
            title="Improve Node Uptime",
            description=(
                f"Current uptime of {analysis.uptime_score:.1f}% is below optimal. Implementing "
                "redundancy and monitoring can increase rewards by up to 25%."
            ),
            expected_impact=ExpectedImpact(25, 0, 15, 40),
            implementation=Implementation(
                Difficulty.MEDIUM,
                "1-2 weeks",
                500,
                (
                    "Set up automated monitoring and alerting",
                    "Implement redundant internet connections",
                    "Configure automatic restart mechanisms",
                    "Optimize system resource allocation",
                ),
            ),
            confidence=85,
            based_on_data=["uptime_history", "network_benchmarks", "reward_correlation"],
        ))
    if "latency" in analysis.issues:
        out.append(OptimizationSuggestion(
            id=f"perf_latency_{node.id}",
            node_id=node.id,
            type=SuggestionType.PERFORMANCE,
            priority=Priority.MEDIUM,
            title="Optimize Network Latency",
            description=(
                f"Current latency of {analysis.latency_ms:.0f}ms can be improved. Better routing "
                "and CDN integration could reduce latency by 40%."
            ),
            expected_impact=ExpectedImpact(15, 0, 40, 20),
            implementation=Implementation(
                Difficulty.MEDIUM,
                "3-5 days",
                200,
                (
                    "Analyze network routing paths",
                    "Optimize DNS configuration",
                    "Consider CDN integration",
                    "Upgrade network hardware if needed",
                ),
            ),
            confidence=75,
            based_on_data=["latency_measurements", "network_topology", "peer_comparison"],
        ))
    return out


def _location_suggestions(node: NodeSnapshot, analysis: LocationAnalysis) -> list[OptimizationSuggestion]:
    if analysis.recommendation != "consider_relocation":
        return []
    return [OptimizationSuggestion(
        id=f"location_relocation_{node.id}",
        node_id=node.id,
        type=SuggestionType.LOCATION,
        priority=Priority.MEDIUM,
        title="Consider Geographic Relocation",
        description=(
            f"Your area has {analysis.density} nearby nodes. Relocating to an underserved "
            "region could increase rewards by 30-50%."
        ),
        expected_impact=ExpectedImpact(40, 0, 10, 0),
        implementation=Implementation(
            Difficulty.HARD,
            "1-3 months",
            2000,
            (
                "Research underserved geographic regions",
                "Analyze relocation costs vs. reward benefits",
                "Plan infrastructure migration",
                "Execute gradual transition",
            ),
        ),
        confidence=70,
        based_on_data=["node_density_map", "reward_distribution", "geographic_analysis"],
    )]


_URGENCY_PRIORITY = {"high": Priority.CRITICAL, "medium": Priority.HIGH, "low": Priority.MEDIUM}


def _capacity_suggestions(node: NodeSnapshot, analysis: CapacityAnalysis) -> list[OptimizationSuggestion]:
    if not analysis.should_expand:
        return []
    return [OptimizationSuggestion(
        id=f"capacity_expansion_{node.id}",
        node_id=node.id,
        type=SuggestionType.CAPACITY,
        priority=_URGENCY_PRIORITY[analysis.urgency],
        title="Expand Storage Capacity",
        description=(
            f"Current utilization at {analysis.current_utilization:.1f}% suggests capacity "
            f"expansion. Network average is {analysis.network_average:.1f}%."
        ),
        expected_impact=ExpectedImpact(35, 0, 20, 15),
        implementation=Implementation(
            Difficulty.EASY,
            "1-2 weeks",
            1000,
            (
                "Calculate optimal capacity increase",
                "Source additional storage hardware",
                "Plan capacity expansion timeline",
                "Monitor utilization post-expansion",
            ),
        ),
        confidence=90,
        based_on_data=["utilization_trends", "network_demand", "capacity_roi_analysis"],
    )]


def _economic_suggestion(node: NodeSnapshot) -> OptimizationSuggestion:
    potential = (100 - node.health.total) / 100
    return OptimizationSuggestion(
        id=f"economic_optimization_{node.id}",
        node_id=node.id,
        type=SuggestionType.ECONOMIC,
        priority=Priority.LOW,
        title="Optimize Cost-Reward Ratio",
        description=(
            f"Current reward efficiency can be improved by {potential * 100:.1f}% "
            "through strategic optimizations."
        ),
        expected_impact=ExpectedImpact(20, 15, 10, 10),
        implementation=Implementation(
            Difficulty.EASY,
            "1 week",
            100,
            (
                "Audit current operational costs",
                "Identify efficiency improvements",
                "Implement cost-saving measures",
                "Monitor reward-to-cost ratio",
            ),
        ),
        confidence=65,
        based_on_data=["cost_analysis", "reward_tracking", "efficiency_benchmarks"],
    )


def _network_suggestions(node: NodeSnapshot) -> list[OptimizationSuggestion]:
    # 0 means the node did not report gossip participation
    gossip = node.metrics.gossip_participation
    if not (0 < gossip < GOSSIP_GOAL_PCT):
        return []
    return [OptimizationSuggestion(
        id=f"network_gossip_{node.id}",
        node_id=node.id,
        type=SuggestionType.NETWORK,
        priority=Priority.MEDIUM,
        title="Improve Gossip Participation",
        description=(
            f"Gossip participation of {gossip:.1f}% is below {GOSSIP_GOAL_PCT:.0f}%. "
            "Stable peer connectivity keeps the node visible to the network."
        ),
        expected_impact=ExpectedImpact(10, 0, 15, 20),
        implementation=Implementation(
            Difficulty.EASY,
            "1-3 days",
            0,
            (
                "Check firewall rules for the gossip port",
                "Verify the node advertises a reachable address",
                "Review peer connection limits",
            ),
        ),
        confidence=60,
        based_on_data=["gossip_participation", "peer_comparison"],
    )]


def sort_suggestions(suggestions: list[OptimizationSuggestion]) -> list[OptimizationSuggestion]:
    """Highest priority first; within a priority, largest reward increase first."""
    return sorted(
        suggestions,
        key=lambda s: (-PRIORITY_WEIGHT[s.priority], -s.expected_impact.reward_increase),
    )


# -----------------------------------------------------------------------------
# Engine
# -----------------------------------------------------------------------------
class RewardOptimizationEngine:
    """
    Holds the current market data; every other input is passed per call.

    The async methods fetch backend history through the client and treat any
    ObserverError as "no data".
    """

    def __init__(
        self,
        client: ObserverClient | None = None,
        constants: RewardConstants | None = None,
        market_data: MarketData | None = None,
    ) -> None:
        self.client = client
        self.constants = constants or RewardConstants()
        self.market_data = replace(market_data) if market_data else MarketData()

    # --- market data ---

    def update_market_data(
        self,
        nodes: Sequence[NodeSnapshot],
        network_history: Sequence[NetworkSample] = (),
    ) -> MarketData:
        """Recompute growth from history (newest first) and competition from the node set."""
        market = self.market_data
        if len(network_history) > 1:
            recent = network_history[0]
            older = network_history[min(GROWTH_LOOKBACK_SAMPLES, len(network_history) - 1)]
            if older.total_nodes > 0:
                growth = (recent.total_nodes - older.total_nodes) / older.total_nodes
                market.network_growth_rate = max(0.0, growth)
            if older.total_storage > 0:
                growth = (recent.total_storage - older.total_storage) / older.total_storage
                market.demand_growth = max(0.0, growth)
        if nodes:
            active = sum(1 for n in nodes if n.is_online)
            avg_usage = sum(n.storage.usage_percent for n in nodes) / len(nodes) / 100
            market.competition_index = max(0.0, min(1.0, (active / 100) * (1 - avg_usage)))
        logger.debug("market_data_updated", **market.to_dict())
        return market

    async def refresh_market_data(self, nodes: Sequence[NodeSnapshot]) -> MarketData:
        history: list[NetworkSample] = []
        if self.client is not None:
            try:
                history = await self.client.get_network_history()
            except ObserverError as e:
                logger.warning("market_history_fetch_failed", error=str(e))
        return self.update_market_data(nodes, history)

    # --- suggestions ---

    def build_suggestions(
        self,
        node: NodeSnapshot,
        sla: SLAMetrics,
        nodes: Sequence[NodeSnapshot],
        history: Sequence[HistoryRecord] = (),
    ) -> list[OptimizationSuggestion]:
        performance = analyze_performance(node, sla, history)
        suggestions: list[OptimizationSuggestion] = []
        if performance.needs_improvement:
            suggestions.extend(_performance_suggestions(node, performance))
        suggestions.extend(_location_suggestions(node, analyze_location(node, nodes)))
        suggestions.extend(_capacity_suggestions(node, analyze_capacity(node, nodes)))
        suggestions.append(_economic_suggestion(node))
        suggestions.extend(_network_suggestions(node))
        return sort_suggestions(suggestions)

    async def generate_optimization_suggestions(
        self,
        node: NodeSnapshot,
        sla: SLAMetrics,
        nodes: Sequence[NodeSnapshot],
    ) -> list[OptimizationSuggestion]:
        await self.refresh_market_data(nodes)
        history: list[HistoryRecord] = []
        if self.client is not None:
            try:
                history = await self.client.get_node_history(node.id)
            except ObserverError as e:
                logger.warning("optimization_history_fetch_failed", node_id=node.id, error=str(e))
        suggestions = self.build_suggestions(node, sla, nodes, history)
        logger.info("optimization_suggestions_built", node_id=node.id, count=len(suggestions))
        return suggestions

    # --- forecasts ---

    def base_reward(self, node: NodeSnapshot) -> float:
        return node.storage.committed_gb * self.constants.base_reward_rate

    def reward_multipliers(self, node: NodeSnapshot) -> RewardMultipliers:
        c = self.constants
        return RewardMultipliers(
            uptime=min(node.metrics.uptime_pct / 100, 1.0),
            latency=1.0 if node.metrics.latency_ms < c.latency_penalty_threshold_ms else c.latency_penalty,
            storage=c.storage_efficiency_bonus if node.storage.usage_percent > CAPACITY_EXPAND_PCT else 1.0,
            location=c.balanced_location_bonus,
            network=1.0,
        )

    def optimized_multiplier(self) -> float:
        c = self.constants
        return c.storage_efficiency_bonus * c.underserved_location_bonus * c.network_contribution_bonus

    def generate_reward_forecast(
        self,
        node: NodeSnapshot,
        timeframe: ForecastTimeframe | str = ForecastTimeframe.DAY,
    ) -> RewardForecast:
        timeframe = ForecastTimeframe(timeframe)
        days = TIMEFRAME_DAYS[timeframe]
        base = self.base_reward(node)
        multipliers = self.reward_multipliers(node)
        return RewardForecast(
            node_id=node.id,
            timeframe=timeframe,
            current_projection=base * multipliers.current * days,
            optimized_projection=base * self.optimized_multiplier() * days,
            factors=multipliers,
            network_growth=self.market_data.network_growth_rate,
            competition_level=self.market_data.competition_index,
            demand_forecast=self.market_data.demand_growth,
        )

    def generate_capacity_plan(self, node: NodeSnapshot) -> CapacityPlan:
        """Growth projection scaled by node health; investment at $100 per extra GB."""
        current = node.storage.committed_bytes
        base_growth = self.market_data.network_growth_rate
        performance = 1 + (node.health.total / 100 - 0.8) * 0.5

        recommended = math.ceil(current * (1 + base_growth * 2 * performance))
        additional = recommended - current
        investment = additional / BYTES_PER_GB * 100
        revenue = additional / BYTES_PER_GB * self.constants.base_reward_rate * self.reward_multipliers(node).current
        yearly_return = (revenue * 365) / investment if investment > 0 else 0.0

        return CapacityPlan(
            node_id=node.id,
            current_capacity=current,
            recommended_capacity=recommended,
            growth_30d=current * (1 + base_growth * performance),
            growth_90d=current * (1 + base_growth * 3 * performance),
            growth_1y=current * (1 + base_growth * 12 * performance),
            investment_required=investment,
            breakeven_days=(
                math.ceil(investment / revenue) if revenue > 0 else NEVER_BREAKS_EVEN
            ),
            yearly_return=yearly_return,
        )
