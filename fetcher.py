# fetcher.py
import logging
from typing import Any, Dict

from httpx import AsyncClient, HTTPStatusError, RequestError

import config
from errors import TransportError

logger = logging.getLogger(__name__)


# Dependency to provide HTTP client
async def get_http_client():
    client = AsyncClient(
        base_url=config.OTAKUDESU_BASE_URL,
        headers={"User-Agent": config.USER_AGENT},
        timeout=config.REQUEST_TIMEOUT,
        follow_redirects=True,
    )
    try:
        yield client
    finally:
        await client.aclose()


async def fetch_page(client: AsyncClient, path: str) -> str:
    logger.info(f"Fetching page: {path}")
    try:
        response = await client.get(path)
        response.raise_for_status()
    except HTTPStatusError as e:
        status_code = e.response.status_code
        logger.error(f"HTTP error {status_code} while fetching {path}")
        raise TransportError(status_code, path) from e
    except RequestError as e:
        logger.error(f"Network error while fetching {path}: {e}")
        raise TransportError(None, path, f"Network error: {e}") from e
    return response.text


async def post_form(client: AsyncClient, path: str, fields: Dict[str, str]) -> Any:
    try:
        response = await client.post(path, data=fields)
        response.raise_for_status()
    except HTTPStatusError as e:
        status_code = e.response.status_code
        logger.warning(f"HTTP error {status_code} while posting to {path}")
        raise TransportError(status_code, path) from e
    except RequestError as e:
        logger.error(f"Network error while posting to {path}: {e}")
        raise TransportError(None, path, f"Network error: {e}") from e

    try:
        return response.json()
    except ValueError as e:
        raise TransportError(response.status_code, path, f"Invalid JSON from {path}") from e
