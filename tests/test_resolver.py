import base64
from urllib.parse import parse_qs

import httpx
import pytest
import respx

import config
from codec import encode_server_id, unscramble
from errors import EmptyResultError, MalformedIdError, TransportError
from resolver import NONCE_CACHE_KEY, resolve_streaming_url

BASE_URL = config.OTAKUDESU_BASE_URL
STREAM_URL = "https://desustream.me/updesu/?id=abc123"
SERVER_ID = encode_server_id("158311", "0", "720p")


def embed_payload(html: str) -> str:
    return base64.b64encode(html.encode()).decode()


class AjaxUpstream:
    """Fake admin-ajax endpoint: issues numbered nonces and answers embed calls."""

    def __init__(self, embed_statuses=(), nonce_status=200, embed_html=None, embed_data=None):
        self.embed_statuses = list(embed_statuses)
        self.nonce_status = nonce_status
        self.embed_html = embed_html or f'<div><iframe src="{STREAM_URL}" allowfullscreen></iframe></div>'
        self.embed_data = embed_data
        self.nonce_calls = 0
        self.embed_forms = []

    def __call__(self, request):
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        if form["action"] == unscramble(config.NONCE_ACTION):
            self.nonce_calls += 1
            if self.nonce_status != 200:
                return httpx.Response(self.nonce_status)
            return httpx.Response(200, json={"data": f"nonce-{self.nonce_calls}"})

        self.embed_forms.append(form)
        status = self.embed_statuses.pop(0) if self.embed_statuses else 200
        if status != 200:
            return httpx.Response(status, json={"data": 0})
        if self.embed_data is not None:
            return httpx.Response(200, json={"data": self.embed_data})
        return httpx.Response(200, json={"data": embed_payload(self.embed_html)})

    @property
    def nonces_used(self):
        return [form["nonce"] for form in self.embed_forms]


async def resolve(upstream, client, cache, nonces, server_id=SERVER_ID):
    # Cache hits make no request at all
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        router.post(config.AJAX_PATH).mock(side_effect=upstream)
        return await resolve_streaming_url(server_id, client, cache, nonces)


@pytest.mark.asyncio
async def test_cold_start_acquires_nonce_then_resolves(client, cache, nonces):
    upstream = AjaxUpstream()

    result = await resolve(upstream, client, cache, nonces)

    assert result.url == STREAM_URL
    assert upstream.nonce_calls == 1
    assert upstream.nonces_used == ["nonce-1"]
    assert nonces.current() == "nonce-1"


@pytest.mark.asyncio
async def test_embed_request_carries_decoded_server_params(client, cache, nonces):
    upstream = AjaxUpstream()

    await resolve(upstream, client, cache, nonces)

    form = upstream.embed_forms[0]
    assert (form["id"], form["i"], form["q"]) == ("158311", "0", "720p")
    assert form["action"] == unscramble(config.EMBED_ACTION)


@pytest.mark.asyncio
async def test_cached_nonce_is_reused(client, cache, nonces):
    cache.put(NONCE_CACHE_KEY, "warm")
    upstream = AjaxUpstream()

    await resolve(upstream, client, cache, nonces)

    assert upstream.nonce_calls == 0
    assert upstream.nonces_used == ["warm"]


@pytest.mark.asyncio
async def test_stale_nonce_is_refreshed_and_retried_once(client, cache, nonces):
    cache.put(NONCE_CACHE_KEY, "stale")
    upstream = AjaxUpstream(embed_statuses=[403])

    result = await resolve(upstream, client, cache, nonces)

    assert result.url == STREAM_URL
    assert upstream.nonce_calls == 1
    assert upstream.nonces_used == ["stale", "nonce-1"]
    assert nonces.current() == "nonce-1"


@pytest.mark.asyncio
async def test_second_rejection_is_not_retried(client, cache, nonces):
    cache.put(NONCE_CACHE_KEY, "stale")
    upstream = AjaxUpstream(embed_statuses=[403, 403])

    with pytest.raises(TransportError) as exc_info:
        await resolve(upstream, client, cache, nonces)

    assert exc_info.value.status_code == 403
    assert upstream.nonce_calls == 1
    assert len(upstream.embed_forms) == 2
    assert cache.get(f"server:{SERVER_ID}") is None


@pytest.mark.asyncio
async def test_other_errors_propagate_without_retry(client, cache, nonces):
    cache.put(NONCE_CACHE_KEY, "warm")
    upstream = AjaxUpstream(embed_statuses=[500])

    with pytest.raises(TransportError) as exc_info:
        await resolve(upstream, client, cache, nonces)

    assert exc_info.value.status_code == 500
    assert upstream.nonce_calls == 0
    assert len(upstream.embed_forms) == 1
    assert nonces.current() == "warm"


@pytest.mark.asyncio
async def test_failed_nonce_acquisition_is_terminal(client, cache, nonces):
    upstream = AjaxUpstream(nonce_status=502)

    with pytest.raises(TransportError):
        await resolve(upstream, client, cache, nonces)

    assert upstream.nonce_calls == 1
    assert upstream.embed_forms == []
    assert nonces.current() is None


@pytest.mark.asyncio
async def test_malformed_id_fails_before_any_request(client, cache, nonces):
    upstream = AjaxUpstream()

    with pytest.raises(MalformedIdError):
        await resolve(upstream, client, cache, nonces, server_id="definitely-not-an-id!")

    assert upstream.nonce_calls == 0
    assert upstream.embed_forms == []


@pytest.mark.asyncio
async def test_resolution_is_cached_for_two_minutes(client, cache, nonces, clock):
    upstream = AjaxUpstream()

    first = await resolve(upstream, client, cache, nonces)
    clock.advance(60)
    second = await resolve(upstream, client, cache, nonces)
    assert first.url == second.url == STREAM_URL
    assert len(upstream.embed_forms) == 1

    clock.advance(61)
    await resolve(upstream, client, cache, nonces)
    assert len(upstream.embed_forms) == 2
    assert upstream.nonce_calls == 1


@pytest.mark.asyncio
async def test_payload_without_iframe_is_empty(client, cache, nonces):
    upstream = AjaxUpstream(embed_html="<div>video removed</div>")

    with pytest.raises(EmptyResultError):
        await resolve(upstream, client, cache, nonces)

    assert cache.get(f"server:{SERVER_ID}") is None


@pytest.mark.asyncio
async def test_payload_without_iframe_is_fetched_again(client, cache, nonces):
    upstream = AjaxUpstream(embed_html="<div>video removed</div>")

    for _ in range(2):
        with pytest.raises(EmptyResultError):
            await resolve(upstream, client, cache, nonces)

    assert len(upstream.embed_forms) == 2
    assert upstream.nonce_calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("embed_data", [1, ["payload"], {"html": "x"}])
async def test_non_string_embed_data_is_empty(client, cache, nonces, embed_data):
    upstream = AjaxUpstream(embed_data=embed_data)

    with pytest.raises(EmptyResultError):
        await resolve(upstream, client, cache, nonces)

    assert cache.get(f"server:{SERVER_ID}") is None
