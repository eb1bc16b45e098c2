"""
Upstream media server client for Gateway.
"""

import time
from typing import Any, Dict, Mapping, Optional

import httpx

from shared.errors import TransportError, UpstreamError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from service_gateway.app.domain.params import clean_params

CREDENTIAL_HEADER = "X-Emby-Token"


class UpstreamClient:
    """Executes every request the gateway makes to the upstream media server."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 15.0,
                 metrics: Optional[MetricsCollector] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.metrics = metrics
        self.logger = get_logger("gateway.upstream_client")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                CREDENTIAL_HEADER: api_key,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def execute(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """GET ``path`` with ``params`` and return the decoded JSON body."""
        query = clean_params(params)
        self.logger.debug("Upstream request", path=path, params=query)

        start_time = time.time()
        try:
            response = await self._client.get(path, params=query)
        except httpx.TransportError as exc:
            self._record(path, "transport_error", start_time)
            self.logger.error(
                "Upstream request got no response",
                path=path,
                params=query,
                error=str(exc),
                error_type=type(exc).__name__
            )
            raise TransportError(
                f"Upstream unreachable: {type(exc).__name__}",
                details={"path": path, "params": query, "error": str(exc)}
            ) from exc

        if not response.is_success:
            self._record(path, str(response.status_code), start_time)
            self.logger.error(
                "Upstream request failed",
                path=path,
                params=query,
                status_code=response.status_code,
                response=response.text
            )
            raise UpstreamError(response.status_code, response.text, path=path)

        self._record(path, "ok", start_time)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            self.logger.error("Upstream returned a non-JSON body", path=path, status_code=response.status_code)
            raise UpstreamError(response.status_code, response.text, path=path) from exc

    async def get_server_info(self) -> Dict[str, Any]:
        return await self.execute("/System/Info")

    async def aclose(self) -> None:
        await self._client.aclose()

    def _record(self, path: str, outcome: str, start_time: float) -> None:
        if self.metrics is None:
            return
        # Label by route shape, not by item id
        label = "/" + path.lstrip("/").split("/")[0]
        self.metrics.increment_counter("upstream_requests_total", path=label, outcome=outcome)
        self.metrics.observe_histogram("upstream_request_duration_seconds", time.time() - start_time, path=label)
