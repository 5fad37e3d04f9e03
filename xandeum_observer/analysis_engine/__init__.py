"""
Analysis engine package: node scoring over a network snapshot.

Consumes NodeSnapshot lists and derives health, SLA compliance, reputation,
anomalies and traffic statistics. Scorers never mutate the snapshot.
"""

from xandeum_observer.analysis_engine.health import (
    HealthBreakdown,
    NetworkHealthStats,
    compute_health_breakdown,
    compute_health_score,
    network_health_stats,
)
from xandeum_observer.analysis_engine.baseline import (
    NetworkBaseline,
    compute_network_baseline,
)
from xandeum_observer.analysis_engine.sla import (
    NetworkCompliance,
    SLACompliance,
    SLAMetrics,
    SLAVerifier,
    SLAViolation,
    ViolationSeverity,
    ViolationType,
    compute_sla_metrics,
    proofs_from_history,
)
from xandeum_observer.analysis_engine.reputation import (
    Leaderboard,
    ReputationEngine,
    ReputationScore,
    ReputationTier,
    TrustLevel,
    rank_reputations,
)
from xandeum_observer.analysis_engine.anomaly import (
    Anomaly,
    AnomalyConfig,
    AnomalyDetector,
    AnomalySeverity,
    AnomalyStats,
    AnomalyType,
    anomaly_stats,
)
from xandeum_observer.analysis_engine.traffic import (
    ActivityClass,
    LoadConcentration,
    ReadWriteClass,
    RetryAttempt,
    RetryPatterns,
    calculate_load_concentration,
    classify_activity,
    classify_read_write,
    detect_retry_patterns,
    percentage_change,
)

__all__ = [
    "HealthBreakdown",
    "NetworkHealthStats",
    "compute_health_breakdown",
    "compute_health_score",
    "network_health_stats",
    "NetworkBaseline",
    "compute_network_baseline",
    "NetworkCompliance",
    "SLACompliance",
    "SLAMetrics",
    "SLAVerifier",
    "SLAViolation",
    "ViolationSeverity",
    "ViolationType",
    "compute_sla_metrics",
    "proofs_from_history",
    "Leaderboard",
    "ReputationEngine",
    "ReputationScore",
    "ReputationTier",
    "TrustLevel",
    "rank_reputations",
    "Anomaly",
    "AnomalyConfig",
    "AnomalyDetector",
    "AnomalySeverity",
    "AnomalyStats",
    "AnomalyType",
    "anomaly_stats",
    "ActivityClass",
    "LoadConcentration",
    "ReadWriteClass",
    "RetryAttempt",
    "RetryPatterns",
    "calculate_load_concentration",
    "classify_activity",
    "classify_read_write",
    "detect_retry_patterns",
    "percentage_change",
]
