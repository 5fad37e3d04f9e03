"""
Pydantic models for raw backend JSON.

The backend forwards pRPC fields mostly as optional values; these models only
validate types and leave defaulting to the collector.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from xandeum_observer.core.exceptions import InvalidPayloadError


class GeoPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lat: float = 0.0
    lon: float = 0.0
    country: str = ""
    city: str = ""


class PodPayload(BaseModel):
    """One entry of GET /pods (also the body of GET /node/{id})."""

    model_config = ConfigDict(extra="ignore")

    pubkey: str | None = None
    address: str | None = None
    uptime: int | None = None
    """Seconds the pod reports being up."""
    storage_used: int | None = None
    storage_committed: int | None = None
    storage_usage_percent: float | None = None
    version: str | None = None
    last_seen_timestamp: float | None = None
    is_public: bool | None = None
    geo: GeoPayload | None = None
    latency_ms: float | None = None
    response_time_ms: float | None = None
    gossip_participation: float | None = None


class PodsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_count: int = 0
    pods: list[PodPayload] = Field(default_factory=list)


class NodeHistoryPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: float
    status: str | None = None
    latency_ms: float | None = None


class NetworkHistoryPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: float
    total_nodes: int = 0
    online_nodes: int = 0
    total_storage: int = 0


class CreditsEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pod_id: str
    credits: int = 0


def parse_model(model: type[BaseModel], data: Any, path: str) -> Any:
    """Validate one payload; raise InvalidPayloadError naming the backend path."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidPayloadError(f"{path}: {e.error_count()} validation error(s)") from e


def parse_model_list(model: type[BaseModel], data: Any, path: str) -> list[Any]:
    if not isinstance(data, list):
        raise InvalidPayloadError(f"{path}: expected a JSON array, got {type(data).__name__}")
    return [parse_model(model, item, path) for item in data]


def parse_credits(data: Any, path: str = "/credits") -> dict[str, int]:
    """
    Map pod id -> credits.

    Accepts {"pods_credits": [{"pod_id", "credits"}, ...]} or the bare array.
    """
    if isinstance(data, dict):
        data = data.get("pods_credits", [])
    entries = parse_model_list(CreditsEntry, data, path)
    return {e.pod_id: e.credits for e in entries}
