"""
Node alerting: rules, cooldowns and alert history.
"""

from xandeum_observer.alerts.engine import (
    DEFAULT_RULES,
    AlertChannel,
    AlertEngine,
    AlertNotification,
    AlertRule,
    AlertType,
)

__all__ = [
    "DEFAULT_RULES",
    "AlertChannel",
    "AlertEngine",
    "AlertNotification",
    "AlertRule",
    "AlertType",
]
