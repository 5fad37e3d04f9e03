"""
Traffic analytics over per-node call counts and retry attempts.

Every ratio here guards empty or zero-sum input and returns a neutral value
instead of raising.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence


class ActivityClass(str, Enum):
    BURST = "burst"
    STEADY = "steady"
    SPORADIC = "sporadic"


class ReadWriteClass(str, Enum):
    READ_HEAVY = "read-heavy"
    WRITE_HEAVY = "write-heavy"
    BALANCED = "balanced"


BURST_CV = 1.5
STEADY_CV = 0.5
READ_HEAVY_RATIO = 3.0
WRITE_HEAVY_RATIO = 0.5
BACKOFF_GROWTH = 1.5
BACKOFF_SAMPLE = 5


@dataclass
class LoadConcentration:
    gini_coefficient: float
    """0 (even) .. 1 (all load on one node)."""
    top3_percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "gini_coefficient": self.gini_coefficient,
            "top3_percentage": self.top3_percentage,
        }


@dataclass(frozen=True)
class RetryAttempt:
    timestamp: float
    failed: bool
    retry_count: int


@dataclass
class RetryPatterns:
    average_retries: float
    max_retries: int
    retry_success_rate: float
    backoff_detected: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "average_retries": self.average_retries,
            "max_retries": self.max_retries,
            "retry_success_rate": self.retry_success_rate,
            "backoff_detected": self.backoff_detected,
        }


def classify_activity(call_counts: Sequence[float]) -> ActivityClass:
    """Coefficient of variation of bucketed call counts."""
    if not call_counts:
        return ActivityClass.SPORADIC
    mean = sum(call_counts) / len(call_counts)
    if mean == 0:
        return ActivityClass.SPORADIC
    variance = sum((c - mean) ** 2 for c in call_counts) / len(call_counts)
    cv = math.sqrt(variance) / mean
    if cv > BURST_CV:
        return ActivityClass.BURST
    if cv < STEADY_CV:
        return ActivityClass.STEADY
    return ActivityClass.SPORADIC


def classify_read_write(read_write_ratio: float) -> ReadWriteClass:
    if read_write_ratio > READ_HEAVY_RATIO:
        return ReadWriteClass.READ_HEAVY
    if read_write_ratio < WRITE_HEAVY_RATIO:
        return ReadWriteClass.WRITE_HEAVY
    return ReadWriteClass.BALANCED


def calculate_load_concentration(call_counts: Sequence[float]) -> LoadConcentration:
    """Gini coefficient (3 dp) and share of the three busiest nodes (1 dp)."""
    ordered = sorted(call_counts)
    total = sum(ordered)
    if not ordered or total == 0:
        return LoadConcentration(gini_coefficient=0.0, top3_percentage=0.0)

    n = len(ordered)
    gini_sum = sum((2 * (i + 1) - n - 1) * c for i, c in enumerate(ordered))
    gini = abs(gini_sum / (n * total))
    top3 = sum(ordered[-3:]) / total * 100
    return LoadConcentration(gini_coefficient=round(gini, 3), top3_percentage=round(top3, 1))


def detect_retry_patterns(attempts: Sequence[RetryAttempt]) -> RetryPatterns:
    """
    Retry statistics over attempts in chronological order.

    Backoff is reported when there are at least three retried attempts and each
    gap between the first five of them is at least 1.5x the previous gap.
    """
    if not attempts:
        return RetryPatterns(0.0, 0, 0.0, False)

    retried = [a for a in attempts if a.retry_count > 0]
    average = sum(a.retry_count for a in retried) / len(retried) if retried else 0.0
    max_retries = max(0, max(a.retry_count for a in attempts))
    succeeded = sum(1 for a in retried if not a.failed)
    success_rate = succeeded / len(retried) * 100 if retried else 0.0

    backoff = False
    if len(retried) >= 3:
        sample = retried[:BACKOFF_SAMPLE]
        gaps = [b.timestamp - a.timestamp for a, b in zip(sample, sample[1:])]
        backoff = all(later >= earlier * BACKOFF_GROWTH for earlier, later in zip(gaps, gaps[1:]))

    return RetryPatterns(
        average_retries=round(average, 1),
        max_retries=max_retries,
        retry_success_rate=round(success_rate, 1),
        backoff_detected=backoff,
    )


def percentage_change(old: float, new: float) -> float:
    if old == 0:
        return 100.0 if new > 0 else 0.0
    return (new - old) / old * 100
