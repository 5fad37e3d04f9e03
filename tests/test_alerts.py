"""
Tests for the alert engine: rule matching, cooldowns, SLA mapping and rule updates.
"""

from __future__ import annotations

import pytest

from xandeum_observer.alerts.engine import (
    DEFAULT_RULES,
    AlertChannel,
    AlertEngine,
    AlertType,
)
from xandeum_observer.analysis_engine.sla import compute_sla_metrics
from xandeum_observer.network.models import NodeStatus


def _by_rule(alerts):
    return {a.rule_id: a for a in alerts}


def test_offline_node_fires_node_down(make_node, now_ts):
    node = make_node("abcdefghijk", status=NodeStatus.OFFLINE, uptime_pct=10, latency_ms=0)
    alerts = _by_rule(AlertEngine().check([node], now_ts=now_ts))
    down = alerts["node-down-critical"]
    assert down.type is AlertType.NODE_DOWN
    assert down.title == "Node abcdefgh... is OFFLINE"
    assert down.channels == [AlertChannel.XMTP, AlertChannel.TELEGRAM]
    assert down.delivered is False
    assert down.id == f"alert_node-down-critical_abcdefghijk_{int(now_ts * 1000)}"
    assert down.metadata["node_status"] == "offline"
    # Health 4 is below the SLA floor when no SLA metrics are given
    assert "sla-violation-critical" in alerts


def test_latency_and_storage_thresholds(make_node, now_ts):
    nodes = [
        make_node("slow", latency_ms=600),
        make_node("edge", latency_ms=500, usage_percent=90),
        make_node("full", usage_percent=95),
    ]
    alerts = AlertEngine().check(nodes, now_ts=now_ts)
    fired = {(a.rule_id, a.node_id) for a in alerts}
    assert ("high-latency-warning", "slow") in fired
    assert ("storage-full-critical", "full") in fired
    assert not any(node_id == "edge" for _, node_id in fired)


def test_healthy_network_fires_nothing(make_node, now_ts):
    assert AlertEngine().check([make_node()], now_ts=now_ts) == []


def test_cooldown_is_per_rule(make_node, now_ts):
    engine = AlertEngine()
    down = make_node("a", status=NodeStatus.OFFLINE, uptime_pct=0, latency_ms=0)
    other = make_node("b", status=NodeStatus.OFFLINE, uptime_pct=0, latency_ms=0)

    first = [a for a in engine.check([down], now_ts=now_ts) if a.type is AlertType.NODE_DOWN]
    assert len(first) == 1

    # A different node within the 30 minute cooldown is still muted
    muted = engine.check([other], now_ts=now_ts + 10 * 60)
    assert not [a for a in muted if a.type is AlertType.NODE_DOWN]

    later = engine.check([other], now_ts=now_ts + 31 * 60)
    assert [a.node_id for a in later if a.type is AlertType.NODE_DOWN] == ["b"]


def test_sla_metrics_override_health_floor(make_node, now_ts):
    healthy = make_node("healthy")
    unhealthy = make_node("unhealthy", status=NodeStatus.UNSTABLE, uptime_pct=40, latency_ms=900)
    sla = {
        # No proofs: critical proof_missing, so compliance is VIOLATION
        "healthy": compute_sla_metrics(healthy, [], [], now_ts),
    }
    alerts = AlertEngine().check([healthy], sla_by_node=sla, now_ts=now_ts)
    assert [a.node_id for a in alerts if a.type is AlertType.SLA_VIOLATION] == ["healthy"]

    fallback = AlertEngine().check([unhealthy], now_ts=now_ts)
    assert [a.node_id for a in fallback if a.type is AlertType.SLA_VIOLATION] == ["unhealthy"]


def test_disabled_rule_does_not_fire(make_node, now_ts):
    engine = AlertEngine()
    updated = engine.update_alert_rule("node-down-critical", enabled=False)
    assert updated.enabled is False
    node = make_node(status=NodeStatus.OFFLINE, uptime_pct=0, latency_ms=0)
    assert not [a for a in engine.check([node], now_ts=now_ts) if a.type is AlertType.NODE_DOWN]


def test_update_threshold(make_node, now_ts):
    engine = AlertEngine()
    engine.update_alert_rule("high-latency-warning", threshold=100)
    alerts = engine.check([make_node(latency_ms=150)], now_ts=now_ts)
    assert [a.rule_id for a in alerts] == ["high-latency-warning"]


def test_update_unknown_rule_raises():
    with pytest.raises(KeyError):
        AlertEngine().update_alert_rule("missing", enabled=False)


def test_engines_do_not_share_rule_state(make_node, now_ts):
    engine = AlertEngine()
    engine.check([make_node(status=NodeStatus.OFFLINE, uptime_pct=0, latency_ms=0)], now_ts=now_ts)
    assert all(r.last_triggered is None for r in DEFAULT_RULES)
    assert all(r.last_triggered is None for r in AlertEngine().get_alert_rules())


def test_alert_history_newest_first_and_bounded(make_node, now_ts):
    engine = AlertEngine(history_limit=3)
    for i in range(5):
        engine.update_alert_rule("storage-full-critical", last_triggered=None)
        engine.check([make_node(f"n{i}", usage_percent=99)], now_ts=now_ts + i)
    history = engine.get_alert_history()
    assert [a.node_id for a in history] == ["n4", "n3", "n2"]
    assert [a.node_id for a in engine.get_alert_history(limit=1)] == ["n4"]
