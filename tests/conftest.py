import httpx
import pytest
import pytest_asyncio

import config
from cache import CacheStore
from resolver import NonceHolder

BASE_URL = config.OTAKUDESU_BASE_URL


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(clock=clock)


@pytest.fixture
def nonces(cache):
    return NonceHolder(cache)


@pytest_asyncio.fixture
async def client():
    async with httpx.AsyncClient(base_url=BASE_URL) as client:
        yield client
