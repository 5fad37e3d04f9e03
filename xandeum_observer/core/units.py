"""Unit constants and rounding shared by the scorers."""

from __future__ import annotations

import math

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

BYTES_PER_GB = 1024 ** 3
BYTES_PER_TB = 1024 ** 4


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3), unlike round()."""
    return int(math.floor(value + 0.5))
