"""
SLA verification: compare a node's measured service against fixed targets.

Targets: uptime >= 99.9%, average latency <= 200 ms, proof submission rate
>= 95%, storage reliability >= 99.5%. Each breach becomes a violation, critical
when it is far outside the target and major otherwise; the violation mix
decides the compliance tier.

compute_sla_metrics() is pure. SLAVerifier adds the backend fetches (node
history, node storage) and turns every fetch failure into "no data", so a
single unreachable node never breaks a network-wide pass.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence

from xandeum_observer.core.exceptions import ObserverError
from xandeum_observer.core.units import SECONDS_PER_DAY
from xandeum_observer.network.client import ObserverClient
from xandeum_observer.network.models import HistoryRecord, NodeSnapshot, StorageProof
from xandeum_observer.observer_logging import get_logger

logger = get_logger(__name__)

UPTIME_TARGET = 99.9
LATENCY_TARGET_MS = 200.0
PROOF_RATE_TARGET = 95.0
STORAGE_RELIABILITY_TARGET = 99.5

UPTIME_CRITICAL_BELOW = 95.0
LATENCY_CRITICAL_ABOVE_MS = 500.0
PROOF_RATE_CRITICAL_BELOW = 80.0
STORAGE_RELIABILITY_CRITICAL_BELOW = 95.0

# One proof per hour over the lookback day
EXPECTED_PROOFS_PER_DAY = 24
PROOF_LOOKBACK_SEC = SECONDS_PER_DAY

NEVER = "Never"


class SLACompliance(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    VIOLATION = "violation"


class ViolationType(str, Enum):
    UPTIME = "uptime"
    LATENCY = "latency"
    STORAGE = "storage"
    PROOF_MISSING = "proof_missing"


class ViolationSeverity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


@dataclass
class SLAViolation:
    type: ViolationType
    severity: ViolationSeverity
    timestamp: str
    description: str
    impact: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
            "description": self.description,
            "impact": self.impact,
        }


@dataclass
class SLAMetrics:
    node_id: str
    uptime_percentage: float
    average_latency: float
    storage_reliability: float
    proof_submission_rate: float
    sla_compliance: SLACompliance
    last_proof_verification: str
    """ISO-8601 time of the newest proof, or "Never"."""
    violations: list[SLAViolation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "uptime_percentage": self.uptime_percentage,
            "average_latency": self.average_latency,
            "storage_reliability": self.storage_reliability,
            "proof_submission_rate": self.proof_submission_rate,
            "sla_compliance": self.sla_compliance.value,
            "last_proof_verification": self.last_proof_verification,
            "violations": [v.to_dict() for v in self.violations],
        }


@dataclass
class NetworkCompliance:
    total_nodes: int
    compliant_nodes: int
    warning_nodes: int
    violating_nodes: int
    overall_compliance: float
    metrics: list[SLAMetrics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "compliant_nodes": self.compliant_nodes,
            "warning_nodes": self.warning_nodes,
            "violating_nodes": self.violating_nodes,
            "overall_compliance": self.overall_compliance,
        }


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _is_up(record: HistoryRecord) -> bool:
    return record.status == "online" or record.latency_ms is not None


def _severity(critical: bool) -> ViolationSeverity:
    return ViolationSeverity.CRITICAL if critical else ViolationSeverity.MAJOR


def classify_compliance(violations: Sequence[SLAViolation]) -> SLACompliance:
    """Any critical -> violation; more than 2 major -> warning; 1-2 major -> good; none -> excellent."""
    critical = sum(1 for v in violations if v.severity is ViolationSeverity.CRITICAL)
    major = sum(1 for v in violations if v.severity is ViolationSeverity.MAJOR)
    if critical > 0:
        return SLACompliance.VIOLATION
    if major > 2:
        return SLACompliance.WARNING
    if major > 0:
        return SLACompliance.GOOD
    return SLACompliance.EXCELLENT


def compute_sla_metrics(
    node: NodeSnapshot,
    history: Sequence[HistoryRecord] = (),
    proofs: Sequence[StorageProof] = (),
    now_ts: float | None = None,
) -> SLAMetrics:
    """
    Derive SLA metrics for one node.

    Uptime is the share of history samples that were up (status online or a
    latency sample present); latency is the mean of present latency samples.
    Both fall back to the node's live metrics when there is no history. Only
    this node's proofs inside the last 24 h count toward the submission rate;
    storage reliability is the verified share and 100 when there are none.
    """
    now_ts = now_ts if now_ts is not None else time.time()
    stamp = _iso(now_ts)
    violations: list[SLAViolation] = []

    if history:
        uptime = sum(1 for r in history if _is_up(r)) / len(history) * 100
    else:
        uptime = node.metrics.uptime_pct
    if uptime < UPTIME_TARGET:
        violations.append(
            SLAViolation(
                type=ViolationType.UPTIME,
                severity=_severity(uptime < UPTIME_CRITICAL_BELOW),
                timestamp=stamp,
                description=f"Uptime {uptime:.2f}% below SLA target of {UPTIME_TARGET}%",
                impact="Storage availability compromised",
            )
        )

    latencies = [r.latency_ms for r in history if r.latency_ms is not None]
    latency = sum(latencies) / len(latencies) if latencies else node.metrics.latency_ms
    if latency > LATENCY_TARGET_MS:
        violations.append(
            SLAViolation(
                type=ViolationType.LATENCY,
                severity=_severity(latency > LATENCY_CRITICAL_ABOVE_MS),
                timestamp=stamp,
                description=f"Average latency {latency:.0f}ms exceeds SLA target of {LATENCY_TARGET_MS:.0f}ms",
                impact="User experience degraded",
            )
        )

    window_start = now_ts - PROOF_LOOKBACK_SEC
    node_proofs = [
        p for p in proofs if p.node_id == node.id and window_start <= p.timestamp <= now_ts
    ]
    proof_rate = min(100.0, len(node_proofs) / EXPECTED_PROOFS_PER_DAY * 100)
    if proof_rate < PROOF_RATE_TARGET:
        violations.append(
            SLAViolation(
                type=ViolationType.PROOF_MISSING,
                severity=_severity(proof_rate < PROOF_RATE_CRITICAL_BELOW),
                timestamp=stamp,
                description=f"Proof submission rate {proof_rate:.1f}% below target of {PROOF_RATE_TARGET}%",
                impact="Storage integrity cannot be verified",
            )
        )

    if node_proofs:
        reliability = sum(1 for p in node_proofs if p.verified) / len(node_proofs) * 100
    else:
        reliability = 100.0
    if reliability < STORAGE_RELIABILITY_TARGET:
        violations.append(
            SLAViolation(
                type=ViolationType.STORAGE,
                severity=_severity(reliability < STORAGE_RELIABILITY_CRITICAL_BELOW),
                timestamp=stamp,
                description=f"Storage reliability {reliability:.1f}% below target of {STORAGE_RELIABILITY_TARGET}%",
                impact="Data integrity at risk",
            )
        )

    last_proof = _iso(max(p.timestamp for p in node_proofs)) if node_proofs else NEVER

    return SLAMetrics(
        node_id=node.id,
        uptime_percentage=uptime,
        average_latency=latency,
        storage_reliability=reliability,
        proof_submission_rate=proof_rate,
        sla_compliance=classify_compliance(violations),
        last_proof_verification=last_proof,
        violations=violations,
    )


def proof_hash(data: str) -> str:
    """Hex sha256 of the proof material (64 chars)."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def proofs_from_history(
    node_id: str,
    history: Sequence[HistoryRecord],
    now_ts: float,
    window_sec: float = PROOF_LOOKBACK_SEC,
    storage_committed: int = 0,
    storage_used: int = 0,
) -> list[StorageProof]:
    """
    One proof record per history sample inside the window.

    A sample proves storage when the node was online at that moment.
    """
    start = now_ts - window_sec
    proofs: list[StorageProof] = []
    for record in history:
        if not (start <= record.timestamp <= now_ts):
            continue
        material = f"{node_id}-{int(record.timestamp)}-{record.status}"
        proofs.append(
            StorageProof(
                node_id=node_id,
                proof_hash=proof_hash(material),
                timestamp=record.timestamp,
                storage_committed=storage_committed,
                storage_used=storage_used,
                merkle_root=proof_hash(material + "merkle"),
                verified=record.status == "online",
                block_height=int(record.timestamp) // 10,
            )
        )
    return proofs


def is_proof_well_formed(proof: StorageProof, now_ts: float | None = None) -> bool:
    """Structural check: 64-char hash and merkle root, proof under 7 days old, sane storage figures."""
    now_ts = now_ts if now_ts is not None else time.time()
    return (
        len(proof.proof_hash) == 64
        and len(proof.merkle_root) == 64
        and now_ts - proof.timestamp < 7 * SECONDS_PER_DAY
        and proof.storage_committed >= 0
        and proof.storage_used >= 0
    )


class SLAVerifier:
    """Fetches history/proof data per node and scores it with compute_sla_metrics."""

    def __init__(self, client: ObserverClient) -> None:
        self.client = client

    async def _history(self, node_id: str) -> list[HistoryRecord]:
        try:
            return await self.client.get_node_history(node_id)
        except ObserverError as e:
            logger.warning("sla_history_unavailable", node_id=node_id, error=str(e))
            return []

    async def verify_storage_proofs(
        self,
        node_id: str,
        now_ts: float | None = None,
        window_sec: float = PROOF_LOOKBACK_SEC,
        history: Sequence[HistoryRecord] | None = None,
    ) -> list[StorageProof]:
        """Build proof records from the node's recent history; [] when history is unavailable."""
        now_ts = now_ts if now_ts is not None else time.time()
        if history is None:
            history = await self._history(node_id)
        if not history:
            return []
        committed = used = 0
        try:
            pod = await self.client.get_node(node_id)
            committed = pod.storage_committed or 0
            used = pod.storage_used or 0
        except ObserverError as e:
            logger.debug("sla_node_storage_unavailable", node_id=node_id, error=str(e))
        proofs = proofs_from_history(node_id, history, now_ts, window_sec, committed, used)
        logger.debug("sla_proofs_built", node_id=node_id, proofs=len(proofs))
        return proofs

    async def calculate_sla_metrics(
        self,
        node: NodeSnapshot,
        history: Sequence[HistoryRecord] | None = None,
        now_ts: float | None = None,
    ) -> SLAMetrics:
        now_ts = now_ts if now_ts is not None else time.time()
        records = list(history) if history else await self._history(node.id)
        proofs = await self.verify_storage_proofs(node.id, now_ts=now_ts, history=records)
        return compute_sla_metrics(node, records, proofs, now_ts)

    async def network_compliance(
        self,
        nodes: Sequence[NodeSnapshot],
        now_ts: float | None = None,
    ) -> NetworkCompliance:
        """Score every node concurrently; a node whose pass fails is scored from live metrics only."""
        now_ts = now_ts if now_ts is not None else time.time()
        results = await asyncio.gather(
            *(self.calculate_sla_metrics(n, now_ts=now_ts) for n in nodes),
            return_exceptions=True,
        )
        metrics: list[SLAMetrics] = []
        for node, result in zip(nodes, results):
            if isinstance(result, BaseException):
                logger.warning("sla_node_failed", node_id=node.id, error=str(result))
                result = compute_sla_metrics(node, (), (), now_ts)
            metrics.append(result)

        compliant = sum(
            1 for m in metrics if m.sla_compliance in (SLACompliance.EXCELLENT, SLACompliance.GOOD)
        )
        warning = sum(1 for m in metrics if m.sla_compliance is SLACompliance.WARNING)
        violating = sum(1 for m in metrics if m.sla_compliance is SLACompliance.VIOLATION)
        total = len(nodes)
        return NetworkCompliance(
            total_nodes=total,
            compliant_nodes=compliant,
            warning_nodes=warning,
            violating_nodes=violating,
            overall_compliance=(compliant / total * 100) if total else 0.0,
            metrics=metrics,
        )
