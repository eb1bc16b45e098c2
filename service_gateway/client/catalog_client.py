"""
HTTP client for the catalog gateway.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from shared.errors import RateLimitedError, TransportError, UpstreamError, ValidationError
from shared.logging import get_logger
from shared.retry import STREAM_RETRY_CONFIG, RetryConfig, call_with_retry
from service_gateway.app.domain.models import CatalogItem
from service_gateway.app.domain.params import clean_params


class CatalogClient:
    """Calls the gateway and turns its error responses back into exceptions.

    Stream URL issuance is retried on 429 with linearly growing waits; every
    other call surfaces its first failure.
    """

    def __init__(self, base_url: str, timeout: float = 10.0,
                 retry_config: Optional[RetryConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None):
        self.base_url = base_url.rstrip('/')
        self.retry_config = retry_config or STREAM_RETRY_CONFIG
        self.logger = get_logger("gateway_client.catalog")
        self._sleep = sleep
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.get(path, params=clean_params(params))
        except httpx.TransportError as exc:
            self.logger.error("Gateway unreachable", path=path, error=str(exc))
            raise TransportError(f"Gateway unreachable: {type(exc).__name__}", details={"path": path}) from exc

        if response.is_success:
            return response.json()

        message = _error_message(response)
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitedError(
                message,
                details={"path": path},
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code == 400:
            raise ValidationError(message, details={"path": path})
        raise UpstreamError(response.status_code, response.text, path=path)

    async def get_items(self, **params: Any) -> Dict[str, Any]:
        return await self._get("/catalog/items", params)

    async def get_item(self, item_id: str) -> CatalogItem:
        return CatalogItem.model_validate(await self._get(f"/catalog/items/{quote(item_id, safe='')}"))

    async def get_recent(self, limit: int = 20) -> Dict[str, Any]:
        return await self._get("/catalog/recent", {"limit": limit})

    async def search(self, query: str, limit: int = 20) -> List[CatalogItem]:
        data = await self._get("/catalog/search", {"query": query, "limit": limit})
        return [CatalogItem.model_validate(item) for item in data.get("Items", [])]

    async def get_genres(self) -> Dict[str, Any]:
        return await self._get("/catalog/genres")

    async def get_image_url(self, item_id: str, image_kind: str = "Primary",
                            width: Optional[int] = None, height: Optional[int] = None) -> str:
        path = f"/catalog/image/{quote(item_id, safe='')}/{quote(image_kind, safe='')}"
        data = await self._get(path, {"width": width, "height": height})
        return data["imageUrl"]

    async def get_stream_url(self, item_id: str, **transcode: Any) -> str:
        """Stream URL for ``item_id``, waiting out gateway rate limiting."""

        async def issue() -> str:
            data = await self._get(f"/catalog/stream/{quote(item_id, safe='')}", transcode)
            return data["streamUrl"]

        return await call_with_retry(issue, self.retry_config, sleep=self._sleep, name="get_stream_url")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text
