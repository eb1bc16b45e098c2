"""
Media catalog gateway service.
"""

import time
from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService, error_response
from shared.config import ServiceConfig
from shared.errors import GatewayException
from shared.result import Result
from service_gateway.app.adapters.upstream_client import UpstreamClient
from service_gateway.app.domain.catalog import CatalogService
from service_gateway.app.domain.models import CatalogQuery, TranscodeParams
from service_gateway.app.domain.principals import PrincipalResolver, build_principal_resolver
from service_gateway.app.ratelimit import FixedWindowRateLimiter, RateLimitMiddleware


class GatewayService(BaseService):
    """Gateway in front of one upstream media server."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
                 principal_resolver: Optional[PrincipalResolver] = None,
                 clock: Callable[[], float] = time.monotonic):
        super().__init__("gateway", config)
        self.upstream_client = UpstreamClient(
            self.config.upstream_url,
            self.config.upstream_api_key,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
            transport=upstream_transport,
        )
        self.principal_resolver = principal_resolver or build_principal_resolver(
            self.upstream_client, self.config.principal_cache_ttl_seconds
        )
        self.catalog = CatalogService(self.upstream_client, self.principal_resolver)

        self.rate_limiter = FixedWindowRateLimiter(
            max_requests=self.config.rate_limit_max_requests,
            window_seconds=self.config.rate_limit_window_seconds,
            clock=clock,
        )
        self.rate_limit_middleware = RateLimitMiddleware(
            self.rate_limiter,
            trust_forwarded_headers=self.config.trust_forwarded_headers,
            metrics=self.metrics,
        )

        self._setup_catalog_routes()

        self.logger.info(
            "Gateway configured",
            upstream_url=self.config.upstream_url,
            api_key_provided=bool(self.config.upstream_api_key),
            rate_limit=self.config.rate_limit_max_requests,
            rate_window_seconds=self.config.rate_limit_window_seconds
        )

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def _on_shutdown(self) -> None:
        await self.upstream_client.aclose()

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report whether the upstream answers, without failing the gateway's own health."""
        try:
            info = await self.upstream_client.get_server_info() or {}
        except GatewayException as exc:
            return {"upstream": {"status": "error", "error": exc.message}}
        return {
            "upstream": {
                "status": "ok",
                "server": info.get("ServerName"),
                "version": info.get("Version"),
            }
        }

    def _enforce_rate_limit(self, request: Request) -> None:
        """Gate every catalog request on the caller's rate window."""
        request.state.rate_limit = self.rate_limit_middleware.check_request(request)

    def _set_rate_limit_headers(self, response: JSONResponse, rate_result: Optional[Dict[str, Any]]) -> None:
        """Propagate rate limiting metadata via standard headers."""
        if not rate_result:
            return
        response.headers["X-RateLimit-Limit"] = str(rate_result["limit"])
        response.headers["X-RateLimit-Remaining"] = str(rate_result["remaining"])
        response.headers["X-RateLimit-Reset"] = str(rate_result["reset_in_seconds"])

    def _respond(self, request: Request, result: Result) -> JSONResponse:
        """Turn a catalog Result into the public status code and body."""
        if result.is_ok:
            response = JSONResponse(content=result.value)
        else:
            self.log_error(request, result.error)
            response = error_response(result.error)
        self._set_rate_limit_headers(response, getattr(request.state, "rate_limit", None))
        return response

    def _setup_catalog_routes(self):
        """Set up the public catalog surface."""
        router = APIRouter(
            prefix="/catalog",
            tags=["catalog"],
            dependencies=[Depends(self._enforce_rate_limit)],
        )

        @router.get("/items")
        async def list_items(
            request: Request,
            limit: Optional[str] = Query(None),
            start_index: Optional[str] = Query(None, alias="startIndex"),
            include_types: Optional[str] = Query(None, alias="includeTypes"),
            sort_by: Optional[str] = Query(None, alias="sortBy"),
            sort_order: Optional[str] = Query(None, alias="sortOrder"),
            parent_id: Optional[str] = Query(None, alias="parentId"),
            recursive: Optional[str] = Query(None),
            fields: Optional[str] = Query(None),
        ):
            """Paged catalog listing."""
            query = CatalogQuery(
                include_types=include_types.split(",") if include_types is not None else None,
                limit=limit,
                start_index=start_index,
                sort_by=sort_by,
                sort_order=sort_order,
                recursive=recursive,
                fields=fields.split(",") if fields else None,
                parent_id=parent_id,
            )
            return self._respond(request, await self.catalog.list_items(query))

        @router.get("/items/{item_id}")
        async def get_item(item_id: str, request: Request):
            """Single item detail."""
            return self._respond(request, await self.catalog.get_item(item_id))

        @router.get("/recent")
        async def recent_items(request: Request, limit: Optional[str] = Query(None)):
            """Recently added movies and series."""
            return self._respond(request, await self.catalog.recent(limit))

        @router.get("/search")
        async def search(
            request: Request,
            query: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
        ):
            """Free-text search across movies, series and episodes."""
            return self._respond(request, await self.catalog.search(query, limit))

        @router.get("/genres")
        async def genres(request: Request):
            """List genres."""
            return self._respond(request, await self.catalog.genres())

        @router.get("/genres/{genre_id}/items")
        async def genre_items(
            genre_id: str,
            request: Request,
            limit: Optional[str] = Query(None),
            start_index: Optional[str] = Query(None, alias="startIndex"),
        ):
            """Movies and series tagged with one genre."""
            return self._respond(request, await self.catalog.genre_items(genre_id, limit, start_index))

        @router.get("/libraries")
        async def libraries(request: Request):
            """Upstream library folders."""
            return self._respond(request, await self.catalog.libraries())

        @router.get("/series/{series_id}/seasons")
        async def seasons(series_id: str, request: Request):
            """Seasons of a series."""
            return self._respond(request, await self.catalog.seasons(series_id))

        @router.get("/seasons/{season_id}/episodes")
        async def episodes(season_id: str, request: Request):
            """Episodes of a season."""
            return self._respond(request, await self.catalog.episodes(season_id))

        @router.get("/server/info")
        async def server_info(request: Request):
            """Upstream server name and version."""
            return self._respond(request, await self.catalog.server_info())

        @router.get("/image/{item_id}/{image_kind}")
        async def image_url(
            item_id: str,
            image_kind: str,
            request: Request,
            width: Optional[int] = Query(None),
            height: Optional[int] = Query(None),
            quality: int = Query(90),
        ):
            """Deep link to an item image."""
            return self._respond(request, self.catalog.image_url(item_id, image_kind, width, height, quality))

        @router.get("/stream/{item_id}")
        async def stream_url(
            item_id: str,
            request: Request,
            container: str = Query("mp4"),
            video_codec: str = Query("h264", alias="videoCodec"),
            audio_codec: str = Query("aac", alias="audioCodec"),
            max_width: int = Query(1920, alias="maxWidth"),
            max_height: int = Query(1080, alias="maxHeight"),
            video_bitrate: int = Query(8000000, alias="videoBitRate"),
            audio_bitrate: int = Query(128000, alias="audioBitRate"),
        ):
            """Deep link to a playable stream."""
            params = TranscodeParams(
                container=container,
                video_codec=video_codec,
                audio_codec=audio_codec,
                max_width=max_width,
                max_height=max_height,
                video_bitrate=video_bitrate,
                audio_bitrate=audio_bitrate,
            )
            return self._respond(request, self.catalog.stream_url(item_id, params))

        self.app.include_router(router)


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = GatewayService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
