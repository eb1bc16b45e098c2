"""
Catalog operations exposed by the Gateway.

Each operation resolves a principal when the upstream needs one, translates
the public parameters and funnels the call through the upstream client. The
outcome is returned as a Result so the HTTP layer alone decides status codes.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from shared.errors import GatewayException, ValidationError
from shared.logging import get_logger
from shared.result import Result
from service_gateway.app.adapters.upstream_client import UpstreamClient
from service_gateway.app.domain.models import CatalogQuery, StreamGrant, TranscodeParams
from service_gateway.app.domain.params import normalize_params
from service_gateway.app.domain.principals import PrincipalResolver
from service_gateway.app.domain.urls import build_image_url, build_stream_url

LISTING_FIELDS = (
    "PrimaryImageAspectRatio", "MediaSourceCount", "ProductionYear", "Overview",
    "Genres", "CommunityRating", "OfficialRating", "People",
)
DETAIL_FIELDS = LISTING_FIELDS + ("Studios", "Taglines", "MediaSources")
SEARCH_FIELDS = ("PrimaryImageAspectRatio", "ProductionYear", "Overview", "Genres")
RECENT_FIELDS = SEARCH_FIELDS + ("CommunityRating",)
SEASON_FIELDS = ("PrimaryImageAspectRatio", "ProductionYear", "Overview")
EPISODE_FIELDS = SEASON_FIELDS + ("MediaSources",)

BROWSE_TYPES = ("Movie", "Series")
SEARCH_TYPES = ("Movie", "Series", "Episode")

LISTING_DEFAULTS: Dict[str, Any] = {
    "limit": 50,
    "startIndex": 0,
    "includeTypes": BROWSE_TYPES,
    "recursive": True,
    "sortBy": "DateCreated",
    "sortOrder": "Descending",
    "fields": LISTING_FIELDS,
}

CatalogResult = Result[Any, GatewayException]


class CatalogService:
    """Public catalog operations over one upstream media server."""

    def __init__(self, upstream: UpstreamClient, principal_resolver: PrincipalResolver):
        self.upstream = upstream
        self.principal_resolver = principal_resolver
        self.logger = get_logger("gateway.catalog")

    async def _run(self, operation: str, call: Callable[[], Awaitable[Any]]) -> CatalogResult:
        try:
            return Result.ok(await call())
        except GatewayException as exc:
            self.logger.info("Catalog operation failed", operation=operation, code=exc.code)
            return Result.err(exc)

    async def _items_path(self, suffix: str = "") -> str:
        principal = await self.principal_resolver.resolve()
        return f"/Users/{quote(principal.id, safe='')}/Items{suffix}"

    async def _query_items(self, query: CatalogQuery, defaults: Dict[str, Any]) -> Any:
        params = normalize_params(query.to_params(), defaults=defaults)
        return await self.upstream.execute(await self._items_path(), params)

    async def list_items(self, query: CatalogQuery) -> CatalogResult:
        return await self._run("list_items", lambda: self._query_items(query, LISTING_DEFAULTS))

    async def get_item(self, item_id: str) -> CatalogResult:
        async def call():
            path = await self._items_path(f"/{quote(item_id, safe='')}")
            return await self.upstream.execute(path, {"Fields": ",".join(DETAIL_FIELDS)})

        return await self._run("get_item", call)

    async def recent(self, limit: Optional[Any] = None) -> CatalogResult:
        query = CatalogQuery(
            limit=limit,
            include_types=BROWSE_TYPES,
            recursive=True,
            sort_by="DateCreated",
            sort_order="Descending",
            fields=RECENT_FIELDS,
        )
        return await self._run("recent", lambda: self._query_items(query, {"limit": 20}))

    async def search(self, term: Optional[str], limit: Optional[Any] = None) -> CatalogResult:
        async def call():
            if term is None or not term.strip():
                raise ValidationError("Search query is required", details={"parameter": "query"})
            query = CatalogQuery(
                search_term=term,
                limit=limit,
                include_types=SEARCH_TYPES,
                recursive=True,
                fields=SEARCH_FIELDS,
            )
            return await self._query_items(query, {"limit": 20})

        return await self._run("search", call)

    async def genres(self) -> CatalogResult:
        async def call():
            params = normalize_params({"includeTypes": BROWSE_TYPES, "recursive": True})
            return await self.upstream.execute("/Genres", params)

        return await self._run("genres", call)

    async def genre_items(self, genre_id: str, limit: Optional[Any] = None,
                          start_index: Optional[Any] = None) -> CatalogResult:
        query = CatalogQuery(
            genre_id=genre_id,
            limit=limit,
            start_index=start_index,
            include_types=BROWSE_TYPES,
            recursive=True,
            fields=RECENT_FIELDS,
        )
        return await self._run(
            "genre_items",
            lambda: self._query_items(query, {"limit": 50, "startIndex": 0}),
        )

    async def libraries(self) -> CatalogResult:
        return await self._run("libraries", lambda: self.upstream.execute("/Library/VirtualFolders"))

    async def seasons(self, series_id: str) -> CatalogResult:
        path = f"/Shows/{quote(series_id, safe='')}/Seasons"
        return await self._run(
            "seasons",
            lambda: self.upstream.execute(path, {"Fields": ",".join(SEASON_FIELDS)}),
        )

    async def episodes(self, season_id: str) -> CatalogResult:
        path = f"/Shows/{quote(season_id, safe='')}/Episodes"
        return await self._run(
            "episodes",
            lambda: self.upstream.execute(path, {"Fields": ",".join(EPISODE_FIELDS)}),
        )

    async def server_info(self) -> CatalogResult:
        async def call():
            info = await self.upstream.get_server_info() or {}
            return {
                "serverName": info.get("ServerName"),
                "version": info.get("Version"),
                "status": "online",
            }

        return await self._run("server_info", call)

    def image_url(self, item_id: str, image_kind: str, width: Optional[int] = None,
                  height: Optional[int] = None, quality: Optional[int] = 90) -> CatalogResult:
        try:
            url = build_image_url(self.upstream.base_url, item_id, image_kind, width, height, quality)
        except ValidationError as exc:
            return Result.err(exc)
        return Result.ok({"imageUrl": url})

    def stream_url(self, item_id: str, params: TranscodeParams) -> CatalogResult:
        try:
            url = build_stream_url(self.upstream.base_url, self.upstream.api_key, item_id, params)
        except ValidationError as exc:
            return Result.err(exc)
        return Result.ok(StreamGrant(item_id=item_id, params=params, url=url).to_dict())
