"""
STOINC earnings projection for a hypothetical node configuration.

The per-GB reward rate is derived from the live network: the mean of
credits / committed GB over online nodes that have both, floored at 0.1, with
0.5 credits/GB when no node qualifies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from xandeum_observer.core.units import round_half_up
from xandeum_observer.network.models import NodeSnapshot

DEFAULT_CREDITS_PER_GB = 0.5
MIN_CREDITS_PER_GB = 0.1
NEVER_BREAKS_EVEN = -1

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365
MONTHS_PER_YEAR = 12

# (max latency ms, multiplier)
LATENCY_MULTIPLIERS = ((50, 1.2), (100, 1.1), (200, 1.0), (300, 0.9))
LATENCY_MULTIPLIER_FLOOR = 0.8
# (min storage GB, multiplier)
STORAGE_MULTIPLIERS = ((2000, 1.15), (1000, 1.1), (500, 1.05))


@dataclass(frozen=True)
class NodeConfiguration:
    storage_gb: float
    uptime: float
    """Percent, 0-100."""
    latency: float
    """Milliseconds."""

    def to_dict(self) -> dict[str, Any]:
        return {"storage_gb": self.storage_gb, "uptime": self.uptime, "latency": self.latency}


@dataclass(frozen=True)
class OperatorCosts:
    hardware_cost: float
    monthly_electricity: float
    monthly_bandwidth: float
    monthly_maintenance: float

    @property
    def monthly_total(self) -> float:
        return self.monthly_electricity + self.monthly_bandwidth + self.monthly_maintenance

    def to_dict(self) -> dict[str, Any]:
        return {
            "hardware_cost": self.hardware_cost,
            "monthly_electricity": self.monthly_electricity,
            "monthly_bandwidth": self.monthly_bandwidth,
            "monthly_maintenance": self.monthly_maintenance,
        }


@dataclass
class EarningsCalculation:
    daily: float
    weekly: float
    monthly: float
    yearly: float
    break_even_days: int
    """-1 when daily profit is not positive (never breaks even)."""
    roi: float
    """Yearly profit over first-year investment, percent."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily": self.daily,
            "weekly": self.weekly,
            "monthly": self.monthly,
            "yearly": self.yearly,
            "break_even_days": self.break_even_days,
            "roi": self.roi,
        }


@dataclass
class NetworkComparison:
    storage_percentile: int
    uptime_percentile: int
    latency_percentile: int
    overall_rank: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "storage_percentile": self.storage_percentile,
            "uptime_percentile": self.uptime_percentile,
            "latency_percentile": self.latency_percentile,
            "overall_rank": self.overall_rank,
        }


@dataclass(frozen=True)
class RecommendedConfig:
    name: str
    description: str
    config: NodeConfiguration
    costs: OperatorCosts

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "config": self.config.to_dict(),
            "costs": self.costs.to_dict(),
        }


def network_credits_per_gb(nodes: Sequence[NodeSnapshot]) -> float:
    rates = [
        n.credits / n.storage.committed_gb
        for n in nodes
        if n.is_online and n.storage.committed_gb > 0 and n.credits is not None and n.credits > 0
    ]
    if not rates:
        return DEFAULT_CREDITS_PER_GB
    return max(MIN_CREDITS_PER_GB, sum(rates) / len(rates))


def latency_multiplier(latency_ms: float) -> float:
    for limit, multiplier in LATENCY_MULTIPLIERS:
        if latency_ms <= limit:
            return multiplier
    return LATENCY_MULTIPLIER_FLOOR


def storage_multiplier(storage_gb: float) -> float:
    for minimum, multiplier in STORAGE_MULTIPLIERS:
        if storage_gb >= minimum:
            return multiplier
    return 1.0


def calculate_earnings(
    config: NodeConfiguration,
    costs: OperatorCosts,
    nodes: Sequence[NodeSnapshot],
) -> EarningsCalculation:
    daily = (
        config.storage_gb
        * network_credits_per_gb(nodes)
        * (config.uptime / 100)
        * latency_multiplier(config.latency)
        * storage_multiplier(config.storage_gb)
    )
    monthly_cost = costs.monthly_total
    daily_profit = daily - monthly_cost / DAYS_PER_MONTH
    yearly_profit = daily * DAYS_PER_YEAR - monthly_cost * MONTHS_PER_YEAR
    investment = costs.hardware_cost + monthly_cost * MONTHS_PER_YEAR

    daily = max(0.0, daily)
    return EarningsCalculation(
        daily=daily,
        weekly=daily * DAYS_PER_WEEK,
        monthly=daily * DAYS_PER_MONTH,
        yearly=daily * DAYS_PER_YEAR,
        break_even_days=(
            math.ceil(costs.hardware_cost / daily_profit) if daily_profit > 0 else NEVER_BREAKS_EVEN
        ),
        roi=yearly_profit / investment * 100 if investment > 0 else 0.0,
    )


def _percentile(value: float, ordered: Sequence[float]) -> float:
    """Share of values strictly below `value`; 50 for no data."""
    if not ordered:
        return 50.0
    below = 0
    for v in ordered:
        if v >= value:
            break
        below += 1
    return below / len(ordered) * 100


def _overall_rank(avg_percentile: float) -> str:
    if avg_percentile >= 90:
        return "Elite"
    if avg_percentile >= 75:
        return "Excellent"
    if avg_percentile >= 60:
        return "Good"
    if avg_percentile >= 40:
        return "Average"
    return "Below Average"


def compare_to_network(config: NodeConfiguration, nodes: Sequence[NodeSnapshot]) -> NetworkComparison:
    """Where the configuration would sit among online nodes; lower latency ranks higher."""
    if not nodes:
        return NetworkComparison(50, 50, 50, "Average")
    online = [n for n in nodes if n.is_online]
    storage = _percentile(config.storage_gb, sorted(n.storage.committed_gb for n in online))
    uptime = _percentile(config.uptime, sorted(n.metrics.uptime_pct for n in online))
    latency = 100 - _percentile(config.latency, sorted(n.metrics.latency_ms for n in online))
    return NetworkComparison(
        storage_percentile=round_half_up(storage),
        uptime_percentile=round_half_up(uptime),
        latency_percentile=round_half_up(latency),
        overall_rank=_overall_rank((storage + uptime + latency) / 3),
    )


def recommended_configs() -> list[RecommendedConfig]:
    return [
        RecommendedConfig(
            name="Starter",
            description="Entry-level setup for testing",
            config=NodeConfiguration(storage_gb=250, uptime=95, latency=150),
            costs=OperatorCosts(500, 20, 30, 10),
        ),
        RecommendedConfig(
            name="Professional",
            description="Balanced performance and cost",
            config=NodeConfiguration(storage_gb=1000, uptime=99, latency=80),
            costs=OperatorCosts(1500, 50, 50, 20),
        ),
        RecommendedConfig(
            name="Enterprise",
            description="Maximum performance and capacity",
            config=NodeConfiguration(storage_gb=2000, uptime=99.9, latency=50),
            costs=OperatorCosts(3000, 100, 100, 50),
        ),
    ]
