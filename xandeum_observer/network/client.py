"""
Async HTTP client for the observer backend (the pRPC proxy server).

Endpoints: GET /pods, /credits, /node/{id}, /node/{id}/history, /history.
Every failure (transport error, non-2xx, {"error": ...} body, bad JSON shape)
surfaces as BackendUnavailableError or InvalidPayloadError; callers decide
whether that means "no data".
"""

from __future__ import annotations

from typing import Any

import httpx

from xandeum_observer.config import Settings, get_settings
from xandeum_observer.core.exceptions import BackendUnavailableError
from xandeum_observer.network.models import HistoryRecord, NetworkSample
from xandeum_observer.network.payloads import (
    NetworkHistoryPayload,
    NodeHistoryPayload,
    PodPayload,
    PodsResponse,
    parse_credits,
    parse_model,
    parse_model_list,
)
from xandeum_observer.observer_logging import get_logger

logger = get_logger(__name__)


class ObserverClient:
    """
    Thin wrapper over httpx.AsyncClient.

    Use as an async context manager, or pass an existing AsyncClient (tests
    inject one built on httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.settings.api_url,
            timeout=self.settings.http_timeout_sec,
        )

    async def __aenter__(self) -> ObserverClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _get_json(self, path: str) -> Any:
        try:
            resp = await self._http.get(path)
        except httpx.HTTPError as e:
            raise BackendUnavailableError(path, f"{type(e).__name__}: {e}") from e
        if resp.status_code >= 400:
            raise BackendUnavailableError(path, resp.reason_phrase or "request failed", resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise BackendUnavailableError(path, "response is not JSON", resp.status_code) from e
        if isinstance(data, dict) and data.get("error"):
            raise BackendUnavailableError(path, str(data["error"]), resp.status_code)
        # /history reports DB errors as [{"error": ...}]
        if isinstance(data, list) and data and isinstance(data[0], dict) and data[0].get("error"):
            raise BackendUnavailableError(path, str(data[0]["error"]), resp.status_code)
        return data

    async def get_pods(self) -> list[PodPayload]:
        data = await self._get_json("/pods")
        if isinstance(data, list):
            pods = parse_model_list(PodPayload, data, "/pods")
        else:
            pods = parse_model(PodsResponse, data, "/pods").pods
        logger.debug("backend_pods_fetched", count=len(pods))
        return pods

    async def get_credits(self) -> dict[str, int]:
        data = await self._get_json("/credits")
        return parse_credits(data)

    async def get_node(self, node_id: str) -> PodPayload:
        path = f"/node/{node_id}"
        return parse_model(PodPayload, await self._get_json(path), path)

    async def get_node_history(self, node_id: str) -> list[HistoryRecord]:
        """History samples for one node, newest first as the backend returns them."""
        path = f"/node/{node_id}/history"
        rows = parse_model_list(NodeHistoryPayload, await self._get_json(path), path)
        return [
            HistoryRecord(timestamp=r.timestamp, status=r.status, latency_ms=r.latency_ms)
            for r in rows
        ]

    async def get_network_history(self) -> list[NetworkSample]:
        rows = parse_model_list(NetworkHistoryPayload, await self._get_json("/history"), "/history")
        return [
            NetworkSample(
                timestamp=r.timestamp,
                total_nodes=r.total_nodes,
                online_nodes=r.online_nodes,
                total_storage=r.total_storage,
            )
            for r in rows
        ]
