"""
Tests for the reward optimization engine: suggestions, forecasts, capacity plans
and market data.
"""

from __future__ import annotations

import asyncio

import pytest

from xandeum_observer.analysis_engine.sla import compute_sla_metrics
from xandeum_observer.network.models import (
    GeoData,
    HistoryRecord,
    NetworkSample,
    NodeStatus,
    StorageProof,
)
from xandeum_observer.rewards.earnings import NEVER_BREAKS_EVEN
from xandeum_observer.rewards.optimization import (
    ForecastTimeframe,
    MarketData,
    Priority,
    RewardOptimizationEngine,
    SuggestionType,
    analyze_capacity,
    haversine_km,
    performance_trend,
)


def _clean_sla(node, now_ts):
    proofs = [
        StorageProof(node.id, "a" * 64, now_ts - 60 - i * 3600, 100, 50, "b" * 64, True, i)
        for i in range(24)
    ]
    return compute_sla_metrics(node, [], proofs, now_ts)


def test_healthy_node_gets_only_economic_suggestion(make_node, now_ts):
    node = make_node("good", uptime_pct=99.95, latency_ms=50, usage_percent=50)
    engine = RewardOptimizationEngine()
    suggestions = engine.build_suggestions(node, _clean_sla(node, now_ts), [node])
    assert [s.type for s in suggestions] == [SuggestionType.ECONOMIC]
    assert suggestions[0].priority is Priority.LOW
    assert suggestions[0].id == "economic_optimization_good"


def test_stressed_node_suggestions_are_sorted(make_node, now_ts):
    node = make_node("busy", uptime_pct=90, latency_ms=300, usage_percent=95, gossip=50)
    peers = [make_node(f"p{i}", usage_percent=50) for i in range(3)]
    sla = compute_sla_metrics(node, [], [], now_ts)
    suggestions = RewardOptimizationEngine().build_suggestions(node, sla, [node, *peers])
    assert [s.id for s in suggestions] == [
        "capacity_expansion_busy",
        "perf_uptime_busy",
        "perf_latency_busy",
        "network_gossip_busy",
        "economic_optimization_busy",
    ]
    assert suggestions[0].priority is Priority.CRITICAL


def test_crowded_region_suggests_relocation(make_node, now_ts):
    geo = GeoData(lat=50.1, lon=8.6, city="Frankfurt", country="DE")
    nodes = [make_node(f"n{i}", geo=geo) for i in range(12)]
    suggestions = RewardOptimizationEngine().build_suggestions(
        nodes[0], _clean_sla(nodes[0], now_ts), nodes
    )
    assert "location_relocation_n0" in [s.id for s in suggestions]


def test_unreported_gossip_gets_no_network_suggestion(make_node, now_ts):
    node = make_node(gossip=0.0)
    suggestions = RewardOptimizationEngine().build_suggestions(node, _clean_sla(node, now_ts), [node])
    assert SuggestionType.NETWORK not in [s.type for s in suggestions]


def test_analyze_capacity_urgency(make_node):
    peers = [make_node("p", usage_percent=50)]
    assert analyze_capacity(make_node(usage_percent=95), peers).urgency == "high"
    medium = analyze_capacity(make_node(usage_percent=85), peers)
    assert medium.urgency == "medium"
    assert medium.should_expand is True
    low = analyze_capacity(make_node(usage_percent=70), peers)
    assert low.urgency == "low"
    # 70 > 50 * 1.2 so the node is still above the network's pace
    assert low.should_expand is True


def test_haversine_km():
    a = GeoData(lat=0.0, lon=0.0)
    assert haversine_km(a, a) == 0.0
    assert haversine_km(a, GeoData(lat=0.0, lon=1.0)) == pytest.approx(111.19, rel=1e-3)


def test_performance_trend(now_ts):
    improving = [HistoryRecord(now_ts - i, "online" if i < 6 else "offline", None) for i in range(12)]
    assert performance_trend(improving) == "improving"
    declining = [HistoryRecord(now_ts - i, "offline" if i < 6 else "online", None) for i in range(12)]
    assert performance_trend(declining) == "declining"
    assert performance_trend(improving[:5]) == "stable"


def test_reward_forecast(make_node):
    node = make_node(committed_gb=100, uptime_pct=100, latency_ms=50, usage_percent=50)
    forecast = RewardOptimizationEngine().generate_reward_forecast(node, "7d")
    assert forecast.timeframe is ForecastTimeframe.WEEK
    assert forecast.current_projection == pytest.approx(100 * 0.1 * 7)
    assert forecast.optimized_projection == pytest.approx(100 * 0.1 * 1.2 * 1.3 * 1.1 * 7)
    assert forecast.to_dict()["market_conditions"]["network_growth"] == 0.15


def test_reward_forecast_latency_penalty(make_node):
    node = make_node(committed_gb=100, uptime_pct=100, latency_ms=250, usage_percent=85)
    multipliers = RewardOptimizationEngine().reward_multipliers(node)
    assert multipliers.latency == 0.8
    assert multipliers.storage == 1.2


def test_capacity_plan(make_node):
    node = make_node("cap", committed_gb=100, uptime_pct=100, latency_ms=50)
    plan = RewardOptimizationEngine().generate_capacity_plan(node)
    assert plan.recommended_capacity > plan.current_capacity
    assert plan.growth_30d < plan.growth_90d < plan.growth_1y
    assert plan.investment_required > 0
    assert abs(plan.breakeven_days - 1000) <= 1
    # Revenue per dollar is 0.1 STOINC per GB per day over $100 per GB
    assert plan.yearly_return == pytest.approx(0.365)


def test_capacity_plan_without_revenue_never_breaks_even(make_node):
    node = make_node(
        "dark", status=NodeStatus.OFFLINE, committed_gb=1000, uptime_pct=0, latency_ms=0
    )
    plan = RewardOptimizationEngine().generate_capacity_plan(node)
    assert plan.investment_required > 0
    assert plan.breakeven_days == NEVER_BREAKS_EVEN
    assert plan.yearly_return == 0.0


def test_update_market_data(make_node, now_ts):
    history = [
        NetworkSample(now_ts, total_nodes=120, online_nodes=100, total_storage=2000),
        NetworkSample(now_ts - 3600, total_nodes=100, online_nodes=90, total_storage=1000),
    ]
    nodes = [make_node("a", usage_percent=50), make_node("b", usage_percent=50)]
    market = RewardOptimizationEngine().update_market_data(nodes, history)
    assert market.network_growth_rate == pytest.approx(0.2)
    assert market.demand_growth == pytest.approx(1.0)
    assert market.competition_index == pytest.approx(0.01)


def test_market_data_is_not_shared_between_engines():
    defaults = MarketData()
    engine = RewardOptimizationEngine(market_data=defaults)
    engine.update_market_data([], [
        NetworkSample(2, total_nodes=20, online_nodes=20, total_storage=0),
        NetworkSample(1, total_nodes=10, online_nodes=10, total_storage=0),
    ])
    assert engine.market_data.network_growth_rate == 1.0
    assert defaults.network_growth_rate == 0.15


def test_suggestions_with_unavailable_backend(make_node, now_ts, backend_client):
    """History fetches 404: suggestions still come back and growth keeps its default."""
    node = make_node("lonely")
    engine = RewardOptimizationEngine(client=backend_client({}))
    suggestions = asyncio.run(
        engine.generate_optimization_suggestions(node, _clean_sla(node, now_ts), [node])
    )
    assert [s.type for s in suggestions] == [SuggestionType.ECONOMIC]
    assert engine.market_data.network_growth_rate == 0.15
