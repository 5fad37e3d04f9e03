"""
Rewards: STOINC earnings projections and reward optimization suggestions.
"""

from xandeum_observer.rewards.earnings import (
    EarningsCalculation,
    NetworkComparison,
    NodeConfiguration,
    OperatorCosts,
    RecommendedConfig,
    calculate_earnings,
    compare_to_network,
    recommended_configs,
)
from xandeum_observer.rewards.optimization import (
    CapacityPlan,
    ForecastTimeframe,
    MarketData,
    OptimizationSuggestion,
    Priority,
    RewardConstants,
    RewardForecast,
    RewardOptimizationEngine,
    SuggestionType,
)

__all__ = [
    "EarningsCalculation",
    "NetworkComparison",
    "NodeConfiguration",
    "OperatorCosts",
    "RecommendedConfig",
    "calculate_earnings",
    "compare_to_network",
    "recommended_configs",
    "CapacityPlan",
    "ForecastTimeframe",
    "MarketData",
    "OptimizationSuggestion",
    "Priority",
    "RewardConstants",
    "RewardForecast",
    "RewardOptimizationEngine",
    "SuggestionType",
]
