"""
Core utilities: exceptions and unit helpers shared across the observer.
"""

from xandeum_observer.core.exceptions import (
    BackendUnavailableError,
    InvalidPayloadError,
    ObserverError,
)
from xandeum_observer.core.units import (
    BYTES_PER_GB,
    BYTES_PER_TB,
    SECONDS_PER_DAY,
    round_half_up,
)

__all__ = [
    "BackendUnavailableError",
    "InvalidPayloadError",
    "ObserverError",
    "BYTES_PER_GB",
    "BYTES_PER_TB",
    "SECONDS_PER_DAY",
    "round_half_up",
]
