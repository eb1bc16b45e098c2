"""
Unit tests for Gateway main service.
"""

import pytest
import httpx
from fastapi.testclient import TestClient
from unittest.mock import patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.main import GatewayService, create_app
from shared.test_helpers import (
    UPSTREAM_API_KEY,
    UPSTREAM_URL,
    CatalogDataFactory,
    FakeClock,
    FakeUpstream,
    make_config,
)


class TestGatewayService:
    """Test cases for GatewayService."""

    @pytest.fixture
    def upstream(self):
        return FakeUpstream()

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def app(self, upstream, clock):
        return create_app(make_config(), upstream_transport=upstream.transport(), clock=clock)

    @pytest.fixture
    def client(self, app):
        with TestClient(app) as test_client:
            yield test_client

    def test_search_forwards_translated_params_and_relays_body(self, client, upstream):
        response = client.get("/catalog/search", params={"query": "matrix"})

        assert response.status_code == 200
        assert response.json() == CatalogDataFactory.create_items_page()

        assert [r.url.path for r in upstream.requests] == ["/Users", "/Users/user-1/Items"]
        params = FakeUpstream.last_params(upstream.requests[-1])
        assert params["SearchTerm"] == "matrix"
        assert params["IncludeItemTypes"] == "Movie,Series,Episode"
        assert params["Recursive"] == "true"
        assert params["Limit"] == "20"

    def test_search_without_query_is_400(self, client, upstream):
        response = client.get("/catalog/search")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Search query is required"
        assert body["code"] == "VALIDATION_ERROR"
        assert upstream.requests == []

    def test_items_applies_defaults_and_drops_empty(self, client, upstream):
        response = client.get("/catalog/items", params={"limit": "", "parentId": ""})

        assert response.status_code == 200
        params = FakeUpstream.last_params(upstream.requests[-1])
        assert "Limit" not in params
        assert "ParentId" not in params
        assert params["StartIndex"] == "0"
        assert params["SortBy"] == "DateCreated"
        assert params["SortOrder"] == "Descending"
        assert params["IncludeItemTypes"] == "Movie,Series"
        assert params["Recursive"] == "true"
        assert "Overview" in params["Fields"]

    def test_items_passes_client_choices(self, client, upstream):
        client.get("/catalog/items", params={
            "limit": "10", "startIndex": "20", "includeTypes": "Episode",
            "sortBy": "SortName", "sortOrder": "Ascending", "parentId": "lib-1",
        })

        params = FakeUpstream.last_params(upstream.requests[-1])
        assert params["Limit"] == "10"
        assert params["StartIndex"] == "20"
        assert params["IncludeItemTypes"] == "Episode"
        assert params["SortBy"] == "SortName"
        assert params["SortOrder"] == "Ascending"
        assert params["ParentId"] == "lib-1"

    def test_items_honors_requested_fields_and_recursive(self, client, upstream):
        client.get("/catalog/items", params={"fields": "Overview,Genres", "recursive": "false"})

        params = FakeUpstream.last_params(upstream.requests[-1])
        assert params["Fields"] == "Overview,Genres"
        assert params["Recursive"] == "false"

    def test_item_detail(self, client, upstream):
        response = client.get("/catalog/items/m-1")

        assert response.status_code == 200
        assert response.json()["Name"] == "The Matrix"
        assert "MediaSources" in FakeUpstream.last_params(upstream.requests[-1])["Fields"]

    def test_unknown_item_surfaces_upstream_detail(self, client):
        response = client.get("/catalog/items/missing")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "UPSTREAM_ERROR"
        assert body["details"]["upstream_status"] == 404
        assert body["details"]["body"] == "Item not found"

    def test_recent_uses_fixed_sort(self, client, upstream):
        response = client.get("/catalog/recent", params={"limit": "5"})

        assert response.status_code == 200
        params = FakeUpstream.last_params(upstream.requests[-1])
        assert params["Limit"] == "5"
        assert params["SortBy"] == "DateCreated"
        assert params["SortOrder"] == "Descending"

    def test_genres(self, client, upstream):
        response = client.get("/catalog/genres")

        assert response.status_code == 200
        assert response.json() == CatalogDataFactory.create_genres()
        assert [r.url.path for r in upstream.requests] == ["/Genres"]
        assert FakeUpstream.last_params(upstream.requests[-1]) == {
            "IncludeItemTypes": "Movie,Series",
            "Recursive": "true",
        }

    def test_genre_items_scoped_to_principal(self, client, upstream):
        response = client.get("/catalog/genres/g-1/items")

        assert response.status_code == 200
        request = upstream.requests[-1]
        assert request.url.path == "/Users/user-1/Items"
        assert FakeUpstream.last_params(request)["GenreIds"] == "g-1"

    def test_libraries_seasons_episodes(self, client, upstream):
        assert client.get("/catalog/libraries").json() == [{"Name": "Movies", "ItemId": "lib-1"}]
        assert client.get("/catalog/series/s-1/seasons").status_code == 200
        assert client.get("/catalog/seasons/se-1/episodes").status_code == 200

        paths = [r.url.path for r in upstream.requests]
        assert paths == ["/Library/VirtualFolders", "/Shows/s-1/Seasons", "/Shows/se-1/Episodes"]

    def test_server_info(self, client):
        response = client.get("/catalog/server/info")

        assert response.status_code == 200
        assert response.json() == {"serverName": "living-room", "version": "10.9.11", "status": "online"}

    def test_no_principal_is_500(self, upstream, client):
        upstream.users = []

        response = client.get("/catalog/recent")

        assert response.status_code == 500
        assert response.json()["code"] == "NO_PRINCIPAL"
        assert response.json()["error"] == "No users found"

    def test_upstream_rate_limit_is_relayed_as_429(self, upstream, client):
        upstream.overrides["/Users"] = lambda request: httpx.Response(429, text="Too Many Requests")

        response = client.get("/catalog/search", params={"query": "matrix"})

        assert response.status_code == 429
        assert response.json()["details"]["upstream_status"] == 429

    def test_upstream_unreachable_is_500(self, upstream, client):
        def refuse(request):
            raise httpx.ConnectError("connection refused")

        upstream.overrides["/Genres"] = refuse

        response = client.get("/catalog/genres")

        assert response.status_code == 500
        assert response.json()["code"] == "TRANSPORT_ERROR"

    def test_image_url(self, client, upstream):
        response = client.get("/catalog/image/m-1/Primary", params={"width": 300, "height": 450})

        assert response.status_code == 200
        assert response.json() == {
            "imageUrl": f"{UPSTREAM_URL}/Items/m-1/Images/Primary?width=300&height=450&quality=90"
        }
        assert upstream.requests == []

    def test_stream_url(self, client, upstream):
        response = client.get("/catalog/stream/abc123", params={"maxWidth": 1280, "maxHeight": 720})

        assert response.status_code == 200
        stream_url = response.json()["streamUrl"]
        assert stream_url.startswith(f"{UPSTREAM_URL}/Videos/abc123/stream.mp4?")
        assert "MaxWidth=1280" in stream_url
        assert "MaxHeight=720" in stream_url
        assert f"api_key={UPSTREAM_API_KEY}" in stream_url
        assert upstream.requests == []

    def test_stream_url_rejects_malformed_numbers(self, client):
        response = client.get("/catalog/stream/abc123", params={"maxWidth": "wide"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_rate_limit_headers(self, client):
        response = client.get("/catalog/genres")

        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"
        assert response.headers["X-RateLimit-Reset"] == "900"

    def test_rate_limit_rejects_101st_request(self, client, clock):
        for _ in range(100):
            assert client.get("/catalog/stream/abc123").status_code == 200

        response = client.get("/catalog/stream/abc123")
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMITED"
        assert response.headers["Retry-After"] == "900"

        clock.advance(900)
        assert client.get("/catalog/stream/abc123").status_code == 200

    def test_rate_limit_does_not_cover_health(self, client):
        for _ in range(105):
            client.get("/catalog/stream/abc123")

        assert client.get("/health").status_code == 200

    def test_health_reports_upstream(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "gateway"
        assert data["status"] == "ok"
        assert data["dependencies"]["upstream"]["status"] == "ok"
        assert data["dependencies"]["upstream"]["version"] == "10.9.11"

    def test_health_with_upstream_down(self, upstream, client):
        upstream.overrides["/System/Info"] = lambda request: httpx.Response(503, text="maintenance")

        data = client.get("/health").json()

        assert data["status"] == "ok"
        assert data["dependencies"]["upstream"]["status"] == "error"

    def test_metrics_endpoint(self, client):
        client.get("/catalog/genres")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "upstream_requests_total" in response.text

    def test_metrics_labelled_by_route_template(self, app, client):
        for i in range(5):
            client.get(f"/catalog/stream/item-{i}")

        registry = app.state.gateway_service.metrics.registry
        assert registry.get_sample_value(
            "http_requests_total",
            {"method": "GET", "endpoint": "/catalog/stream/{item_id}", "status_code": "200"},
        ) == 5.0
        assert registry.get_sample_value(
            "http_requests_total",
            {"method": "GET", "endpoint": "/catalog/stream/item-0", "status_code": "200"},
        ) is None

        client.get("/no/such/route")
        assert registry.get_sample_value(
            "http_requests_total",
            {"method": "GET", "endpoint": "unmatched", "status_code": "404"},
        ) == 1.0

    def test_request_id_echoed(self, client):
        response = client.get("/catalog/genres", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_service_exposed_on_app_state(self, app):
        assert isinstance(app.state.gateway_service, GatewayService)


def test_logging_context_cleared_when_handler_raises():
    app = create_app(make_config(), upstream_transport=FakeUpstream().transport())

    @app.get("/explode")
    async def explode():
        raise RuntimeError("boom")

    with patch("shared.base_service.clear_context") as clear_context:
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/explode")

    assert response.status_code == 500
    clear_context.assert_called_once()


def test_principal_cache_configured():
    upstream = FakeUpstream()
    app = create_app(make_config(principal_cache_ttl_seconds=60), upstream_transport=upstream.transport())

    with TestClient(app) as client:
        client.get("/catalog/recent")
        client.get("/catalog/recent")

    assert len(upstream.requests_to("/Users")) == 1
