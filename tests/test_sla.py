"""
Tests for SLA verification: pure metric derivation and the async verifier
against a mocked backend (httpx.MockTransport).
"""

from __future__ import annotations

import asyncio

from xandeum_observer.analysis_engine.sla import (
    NEVER,
    SLACompliance,
    SLAVerifier,
    SLAViolation,
    ViolationSeverity,
    ViolationType,
    classify_compliance,
    compute_sla_metrics,
    is_proof_well_formed,
    proofs_from_history,
)
from xandeum_observer.network.models import HistoryRecord, StorageProof


def _proofs(node_id: str, now_ts: float, count: int, verified: bool = True) -> list[StorageProof]:
    """count hourly proofs ending just before now_ts."""
    return [
        StorageProof(
            node_id=node_id,
            proof_hash="a" * 64,
            timestamp=now_ts - 60 - i * 3600,
            storage_committed=100,
            storage_used=50,
            merkle_root="b" * 64,
            verified=verified,
            block_height=i,
        )
        for i in range(count)
    ]


def _violation(severity: ViolationSeverity) -> SLAViolation:
    return SLAViolation(ViolationType.LATENCY, severity, "", "", "")


def test_excellent_node_has_no_violations(make_node, now_ts):
    """Uptime 99.95, latency 50 ms, full proof coverage, all verified -> excellent."""
    node = make_node(uptime_pct=99.95, latency_ms=50)
    metrics = compute_sla_metrics(node, [], _proofs(node.id, now_ts, 24), now_ts)
    assert metrics.sla_compliance is SLACompliance.EXCELLENT
    assert metrics.violations == []
    assert metrics.proof_submission_rate == 100.0
    assert metrics.storage_reliability == 100.0
    assert metrics.last_proof_verification != NEVER


def test_low_uptime_is_critical_uptime_violation(make_node, now_ts):
    node = make_node(uptime_pct=90.0, latency_ms=50)
    metrics = compute_sla_metrics(node, [], _proofs(node.id, now_ts, 24), now_ts)
    uptime_violations = [v for v in metrics.violations if v.type is ViolationType.UPTIME]
    assert len(uptime_violations) == 1
    assert uptime_violations[0].severity is ViolationSeverity.CRITICAL
    assert metrics.sla_compliance is SLACompliance.VIOLATION


def test_no_proofs_defaults(make_node, now_ts):
    """No proofs: reliability 100, rate 0 (critical proof_missing), last verification Never."""
    metrics = compute_sla_metrics(make_node(), [], [], now_ts)
    assert metrics.storage_reliability == 100.0
    assert metrics.proof_submission_rate == 0.0
    assert metrics.last_proof_verification == NEVER
    assert [v.type for v in metrics.violations] == [ViolationType.PROOF_MISSING]
    assert metrics.violations[0].severity is ViolationSeverity.CRITICAL


def test_history_overrides_live_metrics(make_node, now_ts):
    node = make_node(uptime_pct=100, latency_ms=10)
    history = [
        HistoryRecord(now_ts - 10, "online", 300.0),
        HistoryRecord(now_ts - 20, "offline", None),
        HistoryRecord(now_ts - 30, None, 100.0),
        HistoryRecord(now_ts - 40, "online", None),
    ]
    metrics = compute_sla_metrics(node, history, _proofs(node.id, now_ts, 24), now_ts)
    assert metrics.uptime_percentage == 75.0
    assert metrics.average_latency == 200.0


def test_violation_order(make_node, now_ts):
    node = make_node(uptime_pct=96, latency_ms=250)
    metrics = compute_sla_metrics(node, [], _proofs(node.id, now_ts, 22, verified=False), now_ts)
    assert [v.type for v in metrics.violations] == [
        ViolationType.UPTIME,
        ViolationType.LATENCY,
        ViolationType.PROOF_MISSING,
        ViolationType.STORAGE,
    ]


def test_only_own_proofs_in_window_count(make_node, now_ts):
    node = make_node()
    proofs = _proofs(node.id, now_ts, 12) + _proofs("other", now_ts, 24)
    proofs.append(_proofs(node.id, now_ts - 2 * 86400, 1)[0])
    metrics = compute_sla_metrics(node, [], proofs, now_ts)
    assert metrics.proof_submission_rate == 50.0


def test_classify_compliance_tiers():
    assert classify_compliance([]) is SLACompliance.EXCELLENT
    assert classify_compliance([_violation(ViolationSeverity.MAJOR)]) is SLACompliance.GOOD
    assert classify_compliance([_violation(ViolationSeverity.MAJOR)] * 2) is SLACompliance.GOOD
    assert classify_compliance([_violation(ViolationSeverity.MAJOR)] * 3) is SLACompliance.WARNING
    assert classify_compliance([_violation(ViolationSeverity.CRITICAL)]) is SLACompliance.VIOLATION


def test_proofs_from_history(now_ts):
    history = [
        HistoryRecord(now_ts - 100, "online", 20.0),
        HistoryRecord(now_ts - 200, "offline", None),
        HistoryRecord(now_ts - 3 * 86400, "online", 20.0),
    ]
    proofs = proofs_from_history("n1", history, now_ts, storage_committed=10, storage_used=5)
    assert len(proofs) == 2
    assert [p.verified for p in proofs] == [True, False]
    assert all(is_proof_well_formed(p, now_ts) for p in proofs)
    assert proofs[0].block_height == int(now_ts - 100) // 10


def test_verifier_uses_history_and_node(make_node, now_ts, backend_client):
    node = make_node("pk1", uptime_pct=99.95, latency_ms=50)
    history = [
        {"timestamp": now_ts - 60 - i * 3600, "status": "online", "latency_ms": 40.0}
        for i in range(24)
    ]
    client = backend_client({
        "/node/pk1/history": history,
        "/node/pk1": {"pubkey": "pk1", "storage_committed": 1000, "storage_used": 10},
    })
    metrics = asyncio.run(SLAVerifier(client).calculate_sla_metrics(node, now_ts=now_ts))
    assert metrics.uptime_percentage == 100.0
    assert metrics.average_latency == 40.0
    assert metrics.proof_submission_rate == 100.0
    assert metrics.sla_compliance is SLACompliance.EXCELLENT


def test_verifier_treats_backend_failure_as_no_data(make_node, now_ts, backend_client):
    node = make_node("pk1", uptime_pct=99.95, latency_ms=50)
    client = backend_client({"/node/pk1/history": 500})
    metrics = asyncio.run(SLAVerifier(client).calculate_sla_metrics(node, now_ts=now_ts))
    assert metrics.uptime_percentage == 99.95
    assert metrics.last_proof_verification == NEVER


def test_network_compliance_tolerates_failures(make_node, now_ts, backend_client):
    nodes = [make_node("ok", uptime_pct=99.95), make_node("down", uptime_pct=50)]
    history = [
        {"timestamp": now_ts - 60 - i * 3600, "status": "online", "latency_ms": 40.0}
        for i in range(24)
    ]
    client = backend_client({"/node/ok/history": history, "/node/down/history": 503})
    compliance = asyncio.run(SLAVerifier(client).network_compliance(nodes, now_ts))
    assert compliance.total_nodes == 2
    assert compliance.compliant_nodes == 1
    assert compliance.violating_nodes == 1
    assert compliance.overall_compliance == 50.0


def test_network_compliance_empty(backend_client):
    compliance = asyncio.run(SLAVerifier(backend_client({})).network_compliance([]))
    assert compliance.total_nodes == 0
    assert compliance.overall_compliance == 0.0
