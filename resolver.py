# resolver.py
"""
Streaming URL resolution behind otakudesu's admin-ajax nonce gate.

The upstream issues a short-lived nonce that must accompany every embed
request and expires without notice. A 403 on the embed call means the nonce
went stale: it is dropped, a new one is acquired, and the call is repeated
exactly once. Anything else is propagated as-is.

There is no lock around the nonce slot. Two resolutions racing on a cold slot
may both acquire a nonce; each acquisition is valid on its own and the last
one written wins.
"""
import base64
import binascii
import logging
from typing import Optional, Tuple

from httpx import AsyncClient

import config
from cache import CacheStore
from codec import decode_server_id, unscramble
from errors import EmptyResultError, TransportError
from fetcher import post_form
from helpers import NO_IFRAME, extract_iframe_src
from models import ServerUrl

logger = logging.getLogger(__name__)

NONCE_CACHE_KEY = "otakudesu:nonce"
PERMISSION_DENIED = 403


class NonceHolder:
    """The single process-wide nonce slot. All nonce reads and writes go through here."""

    def __init__(self, cache: CacheStore) -> None:
        self._cache = cache

    def current(self) -> Optional[str]:
        return self._cache.get(NONCE_CACHE_KEY)

    def invalidate(self) -> None:
        self._cache.delete(NONCE_CACHE_KEY)

    async def acquire(self, client: AsyncClient) -> str:
        logger.info("Acquiring otakudesu nonce")
        payload = await post_form(client, config.AJAX_PATH, {"action": unscramble(config.NONCE_ACTION)})
        nonce = payload.get("data") if isinstance(payload, dict) else None
        if not nonce:
            raise EmptyResultError("Upstream did not issue a nonce")
        # No TTL: valid until the upstream rejects it
        self._cache.put(NONCE_CACHE_KEY, nonce)
        return nonce

    async def get_or_acquire(self, client: AsyncClient) -> str:
        nonce = self.current()
        if nonce is None:
            nonce = await self.acquire(client)
        return nonce


async def _request_embed(client: AsyncClient, ids: Tuple[str, str, str], nonce: str) -> str:
    media_id, instance_index, quality_index = ids
    payload = await post_form(client, config.AJAX_PATH, {
        "id": media_id,
        "i": instance_index,
        "q": quality_index,
        "action": unscramble(config.EMBED_ACTION),
        "nonce": nonce,
    })
    data = payload.get("data") if isinstance(payload, dict) else None
    if not data or not isinstance(data, str):
        raise EmptyResultError("Upstream returned no embed data")
    return data


async def _fetch_embed_payload(client: AsyncClient, ids: Tuple[str, str, str], nonces: NonceHolder) -> str:
    nonce = await nonces.get_or_acquire(client)
    try:
        return await _request_embed(client, ids, nonce)
    except TransportError as e:
        if e.status_code != PERMISSION_DENIED:
            raise
        logger.info("Nonce rejected by upstream, refreshing and retrying once")

    nonces.invalidate()
    nonce = await nonces.acquire(client)
    return await _request_embed(client, ids, nonce)


def _decode_embed_html(payload: str) -> str:
    try:
        return base64.b64decode(payload).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        raise EmptyResultError("Embed payload is not valid base64") from e


async def resolve_streaming_url(server_id: str, client: AsyncClient, cache: CacheStore, nonces: NonceHolder) -> ServerUrl:
    ids = decode_server_id(server_id)
    cache_key = f"server:{server_id}"

    payload = cache.get(cache_key)
    cached = payload is not None
    if cached:
        logger.debug(f"Cache hit: {cache_key}")
    else:
        payload = await _fetch_embed_payload(client, ids, nonces)

    url = extract_iframe_src(_decode_embed_html(payload))
    if not url or url == NO_IFRAME:
        raise EmptyResultError(f"No streaming URL found for server {server_id}")

    # Only payloads that yielded a URL are cached
    if not cached:
        cache.put(cache_key, payload, ttl=config.SERVER_URL_TTL)
    return ServerUrl(url=url)
