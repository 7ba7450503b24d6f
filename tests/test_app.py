import httpx
import pytest
from fastapi.testclient import TestClient

import config
from app import app, get_cache_store, get_nonce_holder
from cache import CacheStore
from fetcher import get_http_client
from resolver import NonceHolder

ONGOING_HTML = f"""
<div class="venutama"><ul><li><div class="detpost">
  <div class="epz">Episode 4</div>
  <div class="thumb"><a href="{config.OTAKUDESU_BASE_URL}/anime/boruto-sub-indo/"><h2 class="jdlflm">Boruto</h2></a></div>
</div></li></ul></div>
"""


@pytest.fixture
def serve():
    """Point the app at a fake upstream: serve(handler) -> TestClient."""
    cache = CacheStore()
    nonces = NonceHolder(cache)

    def _serve(handler):
        async def client_override():
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(base_url=config.OTAKUDESU_BASE_URL, transport=transport) as client:
                yield client

        app.dependency_overrides[get_http_client] = client_override
        app.dependency_overrides[get_cache_store] = lambda: cache
        app.dependency_overrides[get_nonce_holder] = lambda: nonces
        return TestClient(app)

    yield _serve
    app.dependency_overrides.clear()


def test_root_lists_endpoints(serve):
    response = serve(lambda request: httpx.Response(500)).get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["server_url"] == "/otakudesu/server/{server_id}"


def test_ongoing_page(serve):
    requested = []

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(200, text=ONGOING_HTML)

    client = serve(handler)
    first = client.get("/otakudesu/ongoing", params={"page": 3})
    second = client.get("/otakudesu/ongoing", params={"page": 3})

    assert first.status_code == 200
    assert first.json()["anime_list"][0]["title"] == "Boruto"
    assert first.json()["anime_list"][0]["episodes"] == 4
    assert second.json() == first.json()
    assert requested == ["/ongoing-anime/page/3"]


def test_invalid_page_is_rejected(serve):
    response = serve(lambda request: httpx.Response(200, text=ONGOING_HTML)).get("/otakudesu/ongoing?page=0")

    assert response.status_code == 422


def test_malformed_server_id_is_bad_request(serve):
    response = serve(lambda request: httpx.Response(500)).get("/otakudesu/server/not-a-server-id")

    assert response.status_code == 400
    assert response.json()["error"] == "MalformedIdError"
    assert response.json()["code"] == 400


def test_invalid_slug_is_bad_request(serve):
    response = serve(lambda request: httpx.Response(200)).get("/otakudesu/anime/bad%20slug!")

    assert response.status_code == 400
    assert response.json()["code"] == 400


def test_changed_markup_is_not_found(serve):
    response = serve(lambda request: httpx.Response(200, text="<html></html>")).get("/otakudesu/anime/one-piece")

    assert response.status_code == 404
    assert response.json()["error"] == "EmptyResultError"


@pytest.mark.parametrize("upstream_status, expected", [(404, 404), (403, 502), (500, 502)])
def test_upstream_errors_are_translated(serve, upstream_status, expected):
    response = serve(lambda request: httpx.Response(upstream_status)).get("/otakudesu/episode/ep-1")

    assert response.status_code == expected
    assert response.json()["error"] == "TransportError"


def test_network_failure_is_service_unavailable(serve):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    response = serve(handler).get("/otakudesu/home")

    assert response.status_code == 503
