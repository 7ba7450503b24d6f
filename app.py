#  app.py
import logging
import re

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from httpx import AsyncClient

import config
from cache import CacheStore
from errors import EmptyResultError, MalformedIdError, ScraperError, TransportError
from fetcher import get_http_client
from models import (
    AllAnimes,
    AllGenres,
    AnimeBatch,
    AnimeCardPage,
    AnimeDetails,
    AnimeEpisode,
    AnimeServers,
    ErrorResponse,
    GenreAnimesPage,
    Home,
    Schedule,
    SearchResult,
    ServerUrl,
)
from resolver import NonceHolder, resolve_streaming_url
from scraper import (
    scrape_all_animes,
    scrape_all_genres,
    scrape_anime_batch,
    scrape_anime_details,
    scrape_anime_episode,
    scrape_anime_servers,
    scrape_completed_animes,
    scrape_genre_animes,
    scrape_home,
    scrape_ongoing_animes,
    scrape_schedule,
    scrape_search,
)

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Otakudesu Scraper API",
    description="API to scrape anime listings, episodes, download mirrors and streaming URLs from otakudesu.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide state, created once at startup
app.state.cache = CacheStore()
app.state.nonces = NonceHolder(app.state.cache)

SLUG_PATTERN = re.compile(r'^[\w-]+$')

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid parameter provided"},
    404: {"model": ErrorResponse, "description": "Nothing found at the source"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
    502: {"model": ErrorResponse, "description": "Failed to fetch data from source"},
    503: {"model": ErrorResponse, "description": "Network error"},
}


def get_cache_store(request: Request) -> CacheStore:
    return request.app.state.cache


def get_nonce_holder(request: Request) -> NonceHolder:
    return request.app.state.nonces


def clean_slug(value: str, name: str) -> str:
    value = value.strip().lower()
    if not value or not SLUG_PATTERN.match(value):
        raise HTTPException(status_code=400, detail=f"{name} cannot be empty or invalid")
    return value


def error_status(exc: ScraperError) -> int:
    if isinstance(exc, MalformedIdError):
        return 400
    if isinstance(exc, EmptyResultError):
        return 404
    if isinstance(exc, TransportError):
        if exc.status_code is None:
            return 503
        if exc.status_code == 404:
            return 404
        return 502
    return 500


@app.exception_handler(ScraperError)
async def scraper_error_handler(request: Request, exc: ScraperError):
    status_code = error_status(exc)
    logger.error(f"{request.url.path} failed with {status_code}: {exc}")
    body = ErrorResponse(error=type(exc).__name__, code=status_code, details=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    body = ErrorResponse(error=str(exc.detail), code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    base = config.BASE_ROUTE
    return {
        "message": "Otakudesu Scraper API",
        "version": "1.0.0",
        "source": config.OTAKUDESU_BASE_URL,
        "endpoints": {
            "home": f"{base}/home",
            "schedule": f"{base}/schedule",
            "all_anime": f"{base}/anime",
            "all_genres": f"{base}/genres",
            "ongoing": f"{base}/ongoing?page={{page}}",
            "completed": f"{base}/completed?page={{page}}",
            "search": f"{base}/search?q={{query}}",
            "genre_anime": f"{base}/genres/{{genre_id}}?page={{page}}",
            "anime_detail": f"{base}/anime/{{anime_id}}",
            "episode_detail": f"{base}/episode/{{episode_id}}",
            "episode_servers": f"{base}/episode/{{episode_id}}/servers",
            "server_url": f"{base}/server/{{server_id}}",
            "batch": f"{base}/batch/{{batch_id}}",
        },
        "documentation": "/docs"
    }


@app.get(
    f"{config.BASE_ROUTE}/home",
    response_model=Home,
    responses=ERROR_RESPONSES,
    summary="Get home page",
    description="Ongoing and completed anime shown on the otakudesu home page"
)
async def get_home(
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    return await scrape_home(client, cache)


@app.get(
    f"{config.BASE_ROUTE}/schedule",
    response_model=Schedule,
    responses=ERROR_RESPONSES,
    summary="Get release schedule",
    description="Weekly release schedule from /jadwal-rilis"
)
async def get_schedule(
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    return await scrape_schedule(client, cache)


@app.get(
    f"{config.BASE_ROUTE}/anime",
    response_model=AllAnimes,
    responses=ERROR_RESPONSES,
    summary="Get all anime",
    description="Alphabetical anime index from /anime-list"
)
async def get_all_animes(
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    return await scrape_all_animes(client, cache)


@app.get(
    f"{config.BASE_ROUTE}/genres",
    response_model=AllGenres,
    responses=ERROR_RESPONSES,
    summary="Get all genres"
)
async def get_all_genres(
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    return await scrape_all_genres(client, cache)


@app.get(
    f"{config.BASE_ROUTE}/ongoing",
    response_model=AnimeCardPage,
    responses=ERROR_RESPONSES,
    summary="Get ongoing anime by page",
    description="Fetch ongoing anime from /ongoing-anime/page/{page}. Example: `?page=2`"
)
async def get_ongoing_animes(
    page: int = Query(1, ge=1, description="Page number to fetch"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    return await scrape_ongoing_animes(page, client, cache)


@app.get(
    f"{config.BASE_ROUTE}/completed",
    response_model=AnimeCardPage,
    responses=ERROR_RESPONSES,
    summary="Get completed anime by page",
    description="Fetch completed anime from /complete-anime/page/{page}. Example: `?page=2`"
)
async def get_completed_animes(
    page: int = Query(1, ge=1, description="Page number to fetch"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    return await scrape_completed_animes(page, client, cache)


@app.get(
    f"{config.BASE_ROUTE}/search",
    response_model=SearchResult,
    responses=ERROR_RESPONSES,
    summary="Search for anime",
    description="Search anime by title. Example: `?q=naruto`"
)
async def search_animes(
    q: str = Query(..., description="Search term"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    q = re.sub(r'[^\w\s]', '', q.strip())
    if not q:
        raise HTTPException(status_code=400, detail="Search term cannot be empty or invalid")
    return await scrape_search(q, client, cache)


@app.get(
    f"{config.BASE_ROUTE}/genres/{{genre_id}}",
    response_model=GenreAnimesPage,
    responses=ERROR_RESPONSES,
    summary="Get anime by genre and page",
    description="Fetch anime for a genre from /genres/{genre_id}/page/{page}. Example: `/genres/action?page=1`"
)
async def get_genre_animes(
    genre_id: str = Path(..., description="Genre slug (e.g., action, romance)"),
    page: int = Query(1, ge=1, description="Page number to fetch"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    genre_id = clean_slug(genre_id, "Genre")
    return await scrape_genre_animes(genre_id, page, client, cache)


@app.get(
    f"{config.BASE_ROUTE}/anime/{{anime_id}}",
    response_model=AnimeDetails,
    responses=ERROR_RESPONSES,
    summary="Get anime detail",
    description="Anime info, synopsis, episode list and recommendations"
)
async def get_anime_details(
    anime_id: str = Path(..., description="Anime slug (e.g., 'kimetsu-yaiba-sub-indo')"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    anime_id = clean_slug(anime_id, "Anime id")
    return await scrape_anime_details(anime_id, client, cache)


@app.get(
    f"{config.BASE_ROUTE}/episode/{{episode_id}}",
    response_model=AnimeEpisode,
    responses=ERROR_RESPONSES,
    summary="Get episode detail",
    description="Episode info, navigation, default stream and download links"
)
async def get_anime_episode(
    episode_id: str = Path(..., description="Episode slug"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    episode_id = clean_slug(episode_id, "Episode id")
    return await scrape_anime_episode(episode_id, client, cache)


@app.get(
    f"{config.BASE_ROUTE}/episode/{{episode_id}}/servers",
    response_model=AnimeServers,
    responses=ERROR_RESPONSES,
    summary="Get streaming servers for an episode",
    description="Streaming mirrors grouped by quality, each with an opaque server id"
)
async def get_anime_servers(
    episode_id: str = Path(..., description="Episode slug"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store),
    nonces: NonceHolder = Depends(get_nonce_holder)
):
    episode_id = clean_slug(episode_id, "Episode id")
    return await scrape_anime_servers(episode_id, client, cache, nonces)


@app.get(
    f"{config.BASE_ROUTE}/server/{{server_id}}",
    response_model=ServerUrl,
    responses=ERROR_RESPONSES,
    summary="Resolve a streaming URL",
    description="Resolve the playable URL behind a server id from the servers endpoint"
)
async def get_server_url(
    server_id: str = Path(..., description="Opaque server id"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store),
    nonces: NonceHolder = Depends(get_nonce_holder)
):
    return await resolve_streaming_url(server_id, client, cache, nonces)


@app.get(
    f"{config.BASE_ROUTE}/batch/{{batch_id}}",
    response_model=AnimeBatch,
    responses=ERROR_RESPONSES,
    summary="Get batch downloads",
    description="Whole-season download links grouped by format and quality"
)
async def get_anime_batch(
    batch_id: str = Path(..., description="Batch slug"),
    client: AsyncClient = Depends(get_http_client),
    cache: CacheStore = Depends(get_cache_store)
):
    batch_id = clean_slug(batch_id, "Batch id")
    return await scrape_anime_batch(batch_id, client, cache)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
