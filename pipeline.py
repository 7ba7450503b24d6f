# pipeline.py
"""
Cache-backed "fetch page, transform into typed result" pipeline.

Every page extractor goes through scrape(). The cache holds the finished,
already-transformed result rather than raw HTML, so a hit costs neither a
request nor a re-parse.
"""
import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

from bs4 import BeautifulSoup
from httpx import AsyncClient

from cache import CacheStore
from errors import EmptyResultError
from fetcher import fetch_page

logger = logging.getLogger(__name__)

T = TypeVar("T")

Transform = Callable[[BeautifulSoup, T], Union[T, Awaitable[T]]]


@dataclass
class CachePolicy:
    use_cache: bool = True
    ttl: Optional[float] = None  # None = keep until restart
    key: Optional[str] = None  # derived from the path when unset


@dataclass
class ScrapeRequest(Generic[T]):
    path: str
    initial_data: T
    is_empty: Callable[[T], bool]
    cache_policy: CachePolicy = field(default_factory=CachePolicy)

    @property
    def cache_key(self) -> str:
        return self.cache_policy.key or self.path


async def scrape(client: AsyncClient, cache: CacheStore, request: ScrapeRequest[T], transform: Transform) -> T:
    """
    Return the cached result for the request, or fetch, transform and cache it.

    Raises EmptyResultError when the caller's is_empty predicate rejects the
    transformed result; nothing is cached in that case. Transport errors
    propagate unchanged.
    """
    policy = request.cache_policy
    key = request.cache_key

    if policy.use_cache:
        cached = cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

    html = await fetch_page(client, request.path)
    soup = BeautifulSoup(html, 'html.parser')

    result = transform(soup, request.initial_data)
    if inspect.isawaitable(result):
        result = await result

    if request.is_empty(result):
        logger.warning(f"No data extracted from {request.path}, markup may have changed")
        raise EmptyResultError(f"No data found at {request.path}")

    if policy.use_cache:
        cache.put(key, result, ttl=policy.ttl)
    return result
