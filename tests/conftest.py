"""
Pytest fixtures for observer tests: NodeSnapshot factory and a mocked backend.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from xandeum_observer.analysis_engine.health import compute_health_score
from xandeum_observer.core.units import BYTES_PER_GB
from xandeum_observer.network.models import (
    GeoData,
    HealthScore,
    NodeMetrics,
    NodeSnapshot,
    NodeStatus,
    NodeStorage,
)

NOW = 1_700_000_000.0


def build_node(
    node_id: str = "node-1",
    status: NodeStatus = NodeStatus.ONLINE,
    latency_ms: float = 50.0,
    uptime_pct: float = 99.95,
    usage_percent: float = 50.0,
    committed_gb: float = 100.0,
    credits: int | None = None,
    discovered_at: float = NOW,
    is_seed: bool = False,
    geo: GeoData | None = None,
    gossip: float = 0.0,
    health: HealthScore | None = None,
) -> NodeSnapshot:
    """NodeSnapshot with health computed from status/uptime/latency unless given."""
    committed = int(committed_gb * BYTES_PER_GB)
    return NodeSnapshot(
        id=node_id,
        ip="10.0.0.1",
        status=status,
        metrics=NodeMetrics(
            latency_ms=latency_ms,
            uptime_pct=uptime_pct,
            last_seen=NOW,
            gossip_participation=gossip,
        ),
        storage=NodeStorage(
            used_bytes=int(committed * usage_percent / 100),
            committed_bytes=committed,
            usage_percent=usage_percent,
        ),
        health=health or compute_health_score(status, uptime_pct, latency_ms),
        is_seed=is_seed,
        discovered_at=discovered_at,
        geo=geo,
        credits=credits,
    )


@pytest.fixture
def make_node() -> Callable[..., NodeSnapshot]:
    return build_node


@pytest.fixture
def now_ts() -> float:
    return NOW


def json_backend(routes: dict[str, Any]) -> httpx.MockTransport:
    """
    MockTransport serving JSON per path.

    A route value that is an int is returned as that HTTP status with an empty
    body; anything else is serialized as JSON with status 200. Unknown paths 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(body, int):
            return httpx.Response(body)
        return httpx.Response(200, content=json.dumps(body), headers={"content-type": "application/json"})

    return httpx.MockTransport(handler)


@pytest.fixture
def settings():
    from xandeum_observer.config import Settings

    return Settings(api_url="http://backend.test", http_timeout_sec=None, poll_interval_sec=30.0)


@pytest.fixture
def backend_client(settings) -> Callable[[dict[str, Any]], Any]:
    """Build an ObserverClient over a MockTransport with the given routes."""
    from xandeum_observer.network.client import ObserverClient

    def factory(routes: dict[str, Any]) -> ObserverClient:
        http = httpx.AsyncClient(base_url=settings.api_url, transport=json_backend(routes))
        return ObserverClient(settings, http_client=http)

    return factory
