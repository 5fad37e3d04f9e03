"""
Rule-based node alerts with per-rule cooldowns.

Each enabled rule is evaluated against every node; a rule that fired is muted
for its cooldown (minutes) regardless of which node triggered it. Alerts
record the channels they are meant for, but nothing is delivered from here,
so `delivered` stays False until a transport marks it.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from xandeum_observer.analysis_engine.sla import SLACompliance, SLAMetrics, ViolationSeverity
from xandeum_observer.core.units import SECONDS_PER_MINUTE
from xandeum_observer.network.models import NodeSnapshot, NodeStatus
from xandeum_observer.observer_logging import get_logger

logger = get_logger(__name__)

ALERT_HISTORY_LIMIT = 500
DEFAULT_HISTORY_PAGE = 50
# Health below this counts as an SLA problem when no SLA metrics are supplied
SLA_HEALTH_FLOOR = 80


class AlertType(str, Enum):
    NODE_DOWN = "node_down"
    HIGH_LATENCY = "high_latency"
    STORAGE_FULL = "storage_full"
    SLA_VIOLATION = "sla_violation"


class AlertChannel(str, Enum):
    XMTP = "xmtp"
    TELEGRAM = "telegram"
    WEBHOOK = "webhook"


@dataclass
class AlertRule:
    id: str
    name: str
    type: AlertType
    severity: ViolationSeverity = ViolationSeverity.MAJOR
    threshold: float | None = None
    duration_min: float | None = None
    channels: tuple[AlertChannel, ...] = ()
    enabled: bool = True
    cooldown_min: float = 60
    last_triggered: float | None = None

    def in_cooldown(self, now_ts: float) -> bool:
        if self.last_triggered is None:
            return False
        return now_ts - self.last_triggered < self.cooldown_min * SECONDS_PER_MINUTE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "severity": self.severity.value,
            "threshold": self.threshold,
            "duration_min": self.duration_min,
            "channels": [c.value for c in self.channels],
            "enabled": self.enabled,
            "cooldown_min": self.cooldown_min,
            "last_triggered": self.last_triggered,
        }


@dataclass
class AlertNotification:
    id: str
    rule_id: str
    node_id: str
    type: AlertType
    severity: ViolationSeverity
    title: str
    message: str
    timestamp: float
    channels: list[AlertChannel]
    delivered: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "node_id": self.node_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp,
            "channels": [c.value for c in self.channels],
            "delivered": self.delivered,
            "metadata": dict(self.metadata),
        }


DEFAULT_RULES: tuple[AlertRule, ...] = (
    AlertRule(
        id="node-down-critical",
        name="Node Offline (Critical)",
        type=AlertType.NODE_DOWN,
        severity=ViolationSeverity.CRITICAL,
        duration_min=5,
        channels=(AlertChannel.XMTP, AlertChannel.TELEGRAM),
        cooldown_min=30,
    ),
    AlertRule(
        id="high-latency-warning",
        name="High Latency Warning",
        type=AlertType.HIGH_LATENCY,
        severity=ViolationSeverity.MAJOR,
        threshold=500,
        duration_min=10,
        channels=(AlertChannel.XMTP,),
        cooldown_min=60,
    ),
    AlertRule(
        id="storage-full-critical",
        name="Storage Nearly Full",
        type=AlertType.STORAGE_FULL,
        severity=ViolationSeverity.MAJOR,
        threshold=90,
        channels=(AlertChannel.XMTP, AlertChannel.TELEGRAM),
        cooldown_min=120,
    ),
    AlertRule(
        id="sla-violation-critical",
        name="SLA Violation Detected",
        type=AlertType.SLA_VIOLATION,
        severity=ViolationSeverity.CRITICAL,
        channels=(AlertChannel.XMTP, AlertChannel.TELEGRAM),
        cooldown_min=60,
    ),
)


def rule_matches(rule: AlertRule, node: NodeSnapshot, sla: SLAMetrics | None = None) -> bool:
    if rule.type is AlertType.NODE_DOWN:
        return node.status is NodeStatus.OFFLINE
    if rule.type is AlertType.HIGH_LATENCY:
        threshold = rule.threshold if rule.threshold is not None else 500
        return node.metrics.latency_ms > threshold
    if rule.type is AlertType.STORAGE_FULL:
        threshold = rule.threshold if rule.threshold is not None else 90
        return node.storage.usage_percent > threshold
    if rule.type is AlertType.SLA_VIOLATION:
        if sla is not None:
            return sla.sla_compliance is SLACompliance.VIOLATION
        return node.health.total < SLA_HEALTH_FLOOR
    return False


def _short_id(node_id: str) -> str:
    return f"{node_id[:8]}..."


def alert_title(rule: AlertRule, node: NodeSnapshot) -> str:
    if rule.type is AlertType.NODE_DOWN:
        return f"Node {_short_id(node.id)} is OFFLINE"
    if rule.type is AlertType.HIGH_LATENCY:
        return f"High Latency Alert: {node.metrics.latency_ms:.0f}ms"
    if rule.type is AlertType.STORAGE_FULL:
        return f"Storage Alert: {node.storage.usage_percent:.1f}% Full"
    if rule.type is AlertType.SLA_VIOLATION:
        return f"SLA Violation: Node {_short_id(node.id)}"
    return f"Network Alert: {rule.name}"


def alert_message(rule: AlertRule, node: NodeSnapshot) -> str:
    base = f"Node: {node.id}\nIP: {node.ip}\nStatus: {node.status.value}"
    if rule.type is AlertType.NODE_DOWN:
        return (
            f"{base}\n\nThe node has gone offline and is no longer responding to network "
            "requests. This may impact storage availability and network reliability."
        )
    if rule.type is AlertType.HIGH_LATENCY:
        return (
            f"{base}\nLatency: {node.metrics.latency_ms:.0f}ms\n"
            f"Uptime: {node.metrics.uptime_pct:.1f}%\n\n"
            "Node is experiencing high latency which may affect user experience."
        )
    if rule.type is AlertType.STORAGE_FULL:
        return (
            f"{base}\nStorage Used: {node.storage.usage_percent:.1f}%\n"
            f"Capacity: {node.storage.committed_gb:.2f} GB\n\n"
            "Node storage is nearly full and may need capacity expansion."
        )
    if rule.type is AlertType.SLA_VIOLATION:
        return (
            f"{base}\nHealth Score: {node.health.total}/100\n\n"
            "Node is not meeting SLA requirements and may need attention."
        )
    return base


class AlertEngine:
    """Owns its rule set (copies of DEFAULT_RULES unless given) and a bounded alert history."""

    def __init__(
        self,
        rules: Iterable[AlertRule] | None = None,
        history_limit: int = ALERT_HISTORY_LIMIT,
    ) -> None:
        source = DEFAULT_RULES if rules is None else rules
        self._rules: dict[str, AlertRule] = {r.id: replace(r) for r in source}
        self._history: deque[AlertNotification] = deque(maxlen=history_limit)

    def check(
        self,
        nodes: Sequence[NodeSnapshot],
        sla_by_node: Mapping[str, SLAMetrics] | None = None,
        now_ts: float | None = None,
    ) -> list[AlertNotification]:
        """Evaluate every enabled rule outside its cooldown; return the new alerts."""
        now_ts = now_ts if now_ts is not None else time.time()
        sla_by_node = sla_by_node or {}
        fired: list[AlertNotification] = []

        for rule in self._rules.values():
            if not rule.enabled or rule.in_cooldown(now_ts):
                continue
            for node in nodes:
                if not rule_matches(rule, node, sla_by_node.get(node.id)):
                    continue
                alert = AlertNotification(
                    id=f"alert_{rule.id}_{node.id}_{int(now_ts * 1000)}",
                    rule_id=rule.id,
                    node_id=node.id,
                    type=rule.type,
                    severity=rule.severity,
                    title=alert_title(rule, node),
                    message=alert_message(rule, node),
                    timestamp=now_ts,
                    channels=list(rule.channels),
                    metadata={
                        "node_ip": node.ip,
                        "node_status": node.status.value,
                        "latency": node.metrics.latency_ms,
                        "uptime": node.metrics.uptime_pct,
                        "storage_usage": node.storage.usage_percent,
                    },
                )
                fired.append(alert)
                self._history.append(alert)
                rule.last_triggered = now_ts
                logger.info(
                    "alert_triggered",
                    rule_id=rule.id,
                    node_id=node.id,
                    severity=rule.severity.value,
                )
        return fired

    def get_alert_history(self, limit: int = DEFAULT_HISTORY_PAGE) -> list[AlertNotification]:
        """Newest first."""
        return sorted(self._history, key=lambda a: a.timestamp, reverse=True)[:limit]

    def get_alert_rules(self) -> list[AlertRule]:
        return list(self._rules.values())

    def update_alert_rule(self, rule_id: str, **changes: Any) -> AlertRule:
        """Replace fields on a rule (e.g. enabled=False, threshold=300). Raises KeyError for unknown ids."""
        rule = self._rules[rule_id]
        updated = replace(rule, **changes)
        self._rules[rule_id] = updated
        logger.info("alert_rule_updated", rule_id=rule_id, fields=sorted(changes))
        return updated
