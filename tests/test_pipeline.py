"""
Tests for ObserverContext (report caching, refresh) and the observe-network CLI.
"""

from __future__ import annotations

import asyncio
import json

from xandeum_observer.network.models import NodeStatus
from xandeum_observer.pipeline import ObserverContext


def _routes(now_ts):
    return {
        "/pods": [
            {"pubkey": "a", "address": "10.0.0.1:9001", "last_seen_timestamp": now_ts - 5,
             "uptime": 7 * 86400, "latency_ms": 40, "storage_used": 10, "storage_committed": 100},
            {"pubkey": "b", "address": "10.0.0.2:9001", "last_seen_timestamp": now_ts - 5000},
        ],
        "/credits": {"pods_credits": [{"pod_id": "a", "credits": 100}, {"pod_id": "b", "credits": 5}]},
    }


def test_report_is_cached_within_poll_interval(settings, backend_client, make_node, now_ts):
    ctx = ObserverContext(settings, backend_client({}))
    nodes = [make_node("a", usage_percent=99), make_node("b")]

    first = ctx.analyze(nodes, now_ts)
    second = ctx.analyze(list(nodes), now_ts + 10)
    assert second is first
    # Detection ran once, so the anomaly history holds a single entry
    assert len(ctx.anomalies.node_history("a")) == 1


def test_cached_report_carries_current_errors(settings, backend_client, make_node, now_ts):
    """Same node set inside the interval, but the credits fetch recovered."""
    ctx = ObserverContext(settings, backend_client({}))
    nodes = [make_node("a", credits=None), make_node("b", credits=None)]

    failed = ctx.analyze(nodes, now_ts, errors=["credits: down"])
    recovered = ctx.analyze(nodes, now_ts + 1, errors=[])
    assert failed.errors == ["credits: down"]
    assert recovered.errors == []
    assert recovered.generated_at == failed.generated_at
    assert recovered.leaderboard is failed.leaderboard
    assert ctx.analyze(nodes, now_ts + 2).errors == []


def test_report_recomputed_after_interval(settings, backend_client, make_node, now_ts):
    ctx = ObserverContext(settings, backend_client({}))
    nodes = [make_node("a")]
    first = ctx.analyze(nodes, now_ts)
    later = ctx.analyze(nodes, now_ts + settings.poll_interval_sec)
    assert later is not first
    assert later.generated_at == now_ts + settings.poll_interval_sec


def test_report_recomputed_for_new_node_set(settings, backend_client, make_node, now_ts):
    ctx = ObserverContext(settings, backend_client({}))
    first = ctx.analyze([make_node("a")], now_ts)
    changed = ctx.analyze([make_node("a", latency_ms=75)], now_ts + 1)
    assert changed is not first

    ctx.invalidate()
    assert ctx.analyze([make_node("a", latency_ms=75)], now_ts + 2) is not changed


def test_report_contents(settings, backend_client, make_node, now_ts):
    ctx = ObserverContext(settings, backend_client({}))
    nodes = [
        make_node("up", credits=10),
        make_node("down", status=NodeStatus.OFFLINE, uptime_pct=0, latency_ms=0),
    ]
    report = ctx.analyze(nodes, now_ts, errors=["credits: boom"])
    assert report.total_nodes == 2
    assert report.online_nodes == 1
    assert report.leaderboard.top_nodes[0].node_id == "up"
    assert {a.node_id for a in report.anomalies} == {"down"}
    assert any(a.rule_id == "node-down-critical" for a in report.alerts)
    assert report.errors == ["credits: boom"]
    payload = report.to_dict()
    assert payload["anomaly_stats"]["affected_nodes"] == 1
    json.dumps(payload)


def test_empty_network_report(settings, backend_client, now_ts):
    report = ObserverContext(settings, backend_client({})).analyze([], now_ts)
    assert report.total_nodes == 0
    assert report.baseline.avg_latency == 0
    assert report.leaderboard.average_score == 0
    assert report.anomalies == []


def test_refresh_collects_and_analyzes(settings, backend_client, now_ts):
    ctx = ObserverContext(settings, backend_client(_routes(now_ts)))
    report = asyncio.run(ctx.refresh(now_ts))
    assert report.total_nodes == 2
    assert report.online_nodes == 1
    assert ctx.last_snapshot is not None
    assert [n.id for n in ctx.last_snapshot.nodes] == ["a", "b"]
    assert [r.node_id for r in report.leaderboard.top_nodes] == ["a", "b"]


def test_refresh_with_backend_down(settings, backend_client, now_ts):
    ctx = ObserverContext(settings, backend_client({"/pods": 503, "/credits": 503}))
    report = asyncio.run(ctx.refresh(now_ts))
    assert report.total_nodes == 0
    assert report.errors and report.errors[0].startswith("pods:")


def test_cli_prints_json(settings, backend_client, now_ts, monkeypatch, capsys):
    from xandeum_observer.tools import observe_network

    client = backend_client(_routes(now_ts))
    monkeypatch.setattr(observe_network, "get_settings", lambda: settings)
    monkeypatch.setattr(
        observe_network, "ObserverContext", lambda s: ObserverContext(s, client)
    )
    assert observe_network.main(["--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["total_nodes"] == 2
    assert "sla" not in payload


def test_cli_prints_text_report(settings, backend_client, now_ts, monkeypatch, capsys):
    from xandeum_observer.tools import observe_network

    client = backend_client(_routes(now_ts))
    monkeypatch.setattr(observe_network, "get_settings", lambda: settings)
    monkeypatch.setattr(
        observe_network, "ObserverContext", lambda s: ObserverContext(s, client)
    )
    assert observe_network.main([]) == 0
    out = capsys.readouterr().out
    assert "Nodes: 2  online: " in out
    assert "Leaderboard" in out
