# scraper.py
"""
Page extractors for otakudesu.

Each scrape_* function describes one upstream page: its path, its cache
policy, the selector mapping that fills a pydantic model, and what counts as
"nothing extracted". Fetching, caching and the empty-result check live in
pipeline.scrape.
"""
import base64
import binascii
import json
import logging
import re
from typing import Optional
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag
from httpx import AsyncClient

import config
from cache import CacheStore
from codec import encode_server_id
from errors import ScraperError
from helpers import (
    attr_of,
    generate_href,
    get_slug_from_url,
    get_source_url,
    parse_anime_link,
    parse_details,
    parse_episode_number,
    parse_genre_links,
    parse_int,
    parse_link_card,
    parse_pagination,
    parse_synopsis,
    text_of,
)
from models import (
    AllAnimes,
    AllGenres,
    AnimeBatch,
    AnimeCard,
    AnimeCardPage,
    AnimeDetails,
    AnimeEpisode,
    AnimeGroup,
    AnimeServers,
    BatchLink,
    DownloadFormat,
    DownloadLink,
    DownloadQuality,
    EpisodeLink,
    GenreAnimeCard,
    GenreAnimesPage,
    Home,
    RecommendedAnime,
    Schedule,
    ScheduleDay,
    SearchAnimeCard,
    SearchResult,
    Server,
    ServerQuality,
)
from pipeline import CachePolicy, ScrapeRequest, scrape
from resolver import NonceHolder

logger = logging.getLogger(__name__)

LISTING_CACHE = CachePolicy(ttl=config.LISTING_TTL)


def _anime_fields(element: Tag, link_selector: str) -> dict:
    url = attr_of(element, link_selector, 'href')
    slug = get_slug_from_url(url)
    return {
        'anime_id': slug,
        'href': generate_href('anime', slug),
        'otakudesu_url': get_source_url(url),
    }


# Ongoing card: home page and /ongoing-anime
def parse_ongoing_card(element: Tag) -> AnimeCard:
    return AnimeCard(
        title=text_of(element, '.jdlflm'),
        poster=attr_of(element, 'img', 'src'),
        episodes=parse_int(text_of(element, '.epz')),
        release_day=text_of(element, '.epztipe') or None,
        latest_release_date=text_of(element, '.newnime') or None,
        **_anime_fields(element, '.thumb a'),
    )


# Completed card: home page and /complete-anime
def parse_completed_card(element: Tag) -> AnimeCard:
    return AnimeCard(
        title=text_of(element, '.jdlflm'),
        poster=attr_of(element, 'img', 'src'),
        episodes=parse_int(text_of(element, '.epz')),
        score=text_of(element, '.epztipe') or None,
        last_release_date=text_of(element, '.newnime') or None,
        **_anime_fields(element, '.thumb a'),
    )


def parse_search_card(element: Tag) -> SearchAnimeCard:
    card = SearchAnimeCard(
        title=text_of(element, 'h2 a'),
        poster=attr_of(element, 'img', 'src'),
        **_anime_fields(element, 'h2 a'),
    )
    for row in element.select('.set'):
        label, _, value = row.get_text().partition(':')
        label = label.strip().lower()
        if label.startswith('genre'):
            card.genre_list = parse_genre_links(row.select('a'))
        elif label == 'status':
            card.status = value.strip()
        elif label == 'rating':
            card.score = value.strip()
    return card


def parse_genre_card(element: Tag) -> GenreAnimeCard:
    return GenreAnimeCard(
        title=text_of(element, '.col-anime-title a'),
        poster=attr_of(element, '.col-anime-cover img', 'src'),
        studios=text_of(element, '.col-anime-studio') or None,
        score=text_of(element, '.col-anime-rating') or None,
        episodes=parse_int(text_of(element, '.col-anime-eps')),
        season=text_of(element, '.col-anime-date') or None,
        synopsis=parse_synopsis(element.select('.col-synopsis p')),
        genre_list=parse_genre_links(element.select('.col-anime-genre a')),
        **_anime_fields(element, '.col-anime-title a'),
    )


def parse_recommended_card(element: Tag) -> RecommendedAnime:
    return RecommendedAnime(
        title=text_of(element, '.judul-recommend-anime-series'),
        poster=attr_of(element, 'img', 'src'),
        **_anime_fields(element, 'a'),
    )


def parse_download_quality(element: Tag) -> DownloadQuality:
    return DownloadQuality(
        title=text_of(element, 'strong').replace(' ', '_'),
        size=text_of(element, 'i'),
        urls=[
            DownloadLink(title=link.get_text().strip(), url=link.get('href') or "")
            for link in element.select('a')
        ],
    )


async def scrape_home(client: AsyncClient, cache: CacheStore) -> Home:
    def transform(soup: BeautifulSoup, data: Home) -> Home:
        data.ongoing.href = generate_href('ongoing')
        data.completed.href = generate_href('completed')

        # First "see all" link is ongoing, second is completed
        for index, link in enumerate(soup.select('.rapi > a')[:2]):
            section = data.ongoing if index == 0 else data.completed
            section.otakudesu_url = get_source_url(link.get('href'))

        for index, block in enumerate(soup.select('.venz')[:2]):
            for element in block.select('ul li .detpost'):
                if index == 0:
                    data.ongoing.anime_list.append(parse_ongoing_card(element))
                else:
                    data.completed.anime_list.append(parse_completed_card(element))
        return data

    request = ScrapeRequest(
        path="/",
        initial_data=Home(),
        is_empty=lambda data: not data.ongoing.anime_list and not data.completed.anime_list,
        cache_policy=LISTING_CACHE,
    )
    return await scrape(client, cache, request, transform)


async def scrape_schedule(client: AsyncClient, cache: CacheStore) -> Schedule:
    def transform(soup: BeautifulSoup, data: Schedule) -> Schedule:
        for element in soup.select('.kglist321'):
            data.days.append(ScheduleDay(
                day=text_of(element, 'h2'),
                anime_list=[parse_anime_link(link) for link in element.select('ul li a')],
            ))
        return data

    request = ScrapeRequest(
        path="/jadwal-rilis",
        initial_data=Schedule(),
        is_empty=lambda data: not data.days,
        cache_policy=LISTING_CACHE,
    )
    return await scrape(client, cache, request, transform)


async def scrape_all_animes(client: AsyncClient, cache: CacheStore) -> AllAnimes:
    def transform(soup: BeautifulSoup, data: AllAnimes) -> AllAnimes:
        for element in soup.select('.bariskelom'):
            data.anime_groups.append(AnimeGroup(
                start_with=text_of(element, '.barispenz a'),
                anime_list=[parse_anime_link(link) for link in element.select('.jdlbar a')],
            ))
        return data

    request = ScrapeRequest(
        path="/anime-list",
        initial_data=AllAnimes(),
        is_empty=lambda data: not data.anime_groups,
        cache_policy=LISTING_CACHE,
    )
    return await scrape(client, cache, request, transform)


async def scrape_all_genres(client: AsyncClient, cache: CacheStore) -> AllGenres:
    def transform(soup: BeautifulSoup, data: AllGenres) -> AllGenres:
        data.genre_list = parse_genre_links(soup.select('.genres li a'))
        return data

    # The genre list practically never changes
    request = ScrapeRequest(
        path="/genre-list",
        initial_data=AllGenres(),
        is_empty=lambda data: not data.genre_list,
        cache_policy=CachePolicy(ttl=config.DETAIL_TTL),
    )
    return await scrape(client, cache, request, transform)


async def scrape_ongoing_animes(page: int, client: AsyncClient, cache: CacheStore) -> AnimeCardPage:
    def transform(soup: BeautifulSoup, data: AnimeCardPage) -> AnimeCardPage:
        for element in soup.select('.venutama ul li'):
            data.anime_list.append(parse_ongoing_card(element))
        data.pagination = parse_pagination(soup)
        return data

    request = ScrapeRequest(
        path=f"/ongoing-anime/page/{page}",
        initial_data=AnimeCardPage(),
        is_empty=lambda data: not data.anime_list,
        cache_policy=LISTING_CACHE,
    )
    return await scrape(client, cache, request, transform)


async def scrape_completed_animes(page: int, client: AsyncClient, cache: CacheStore) -> AnimeCardPage:
    def transform(soup: BeautifulSoup, data: AnimeCardPage) -> AnimeCardPage:
        for element in soup.select('.venutama ul li'):
            data.anime_list.append(parse_completed_card(element))
        data.pagination = parse_pagination(soup)
        return data

    request = ScrapeRequest(
        path=f"/complete-anime/page/{page}",
        initial_data=AnimeCardPage(),
        is_empty=lambda data: not data.anime_list,
        cache_policy=LISTING_CACHE,
    )
    return await scrape(client, cache, request, transform)


async def scrape_search(query: str, client: AsyncClient, cache: CacheStore) -> SearchResult:
    def transform(soup: BeautifulSoup, data: SearchResult) -> SearchResult:
        for element in soup.select('ul.chivsrc li'):
            data.anime_list.append(parse_search_card(element))
        return data

    request = ScrapeRequest(
        path=f"/?s={quote(query)}&post_type=anime",
        initial_data=SearchResult(),
        is_empty=lambda data: not data.anime_list,
        cache_policy=LISTING_CACHE,
    )
    return await scrape(client, cache, request, transform)


async def scrape_genre_animes(genre_id: str, page: int, client: AsyncClient, cache: CacheStore) -> GenreAnimesPage:
    def transform(soup: BeautifulSoup, data: GenreAnimesPage) -> GenreAnimesPage:
        for element in soup.select('.venser .col-anime'):
            data.anime_list.append(parse_genre_card(element))
        data.pagination = parse_pagination(soup)
        return data

    request = ScrapeRequest(
        path=f"/genres/{genre_id}/page/{page}",
        initial_data=GenreAnimesPage(),
        is_empty=lambda data: not data.anime_list,
        cache_policy=LISTING_CACHE,
    )
    return await scrape(client, cache, request, transform)


async def scrape_anime_details(anime_id: str, client: AsyncClient, cache: CacheStore) -> AnimeDetails:
    def transform(soup: BeautifulSoup, data: AnimeDetails) -> AnimeDetails:
        info, genre_list = parse_details(soup.select('.infozingle p'))

        data.title = info.get('judul', '')
        data.japanese = info.get('japanese')
        data.score = info.get('skor')
        data.producers = info.get('produser')
        data.type = info.get('tipe')
        data.status = info.get('status')
        data.episodes = parse_int(info.get('total_episode'))
        data.duration = info.get('durasi')
        data.aired = info.get('tanggal_rilis')
        data.studios = info.get('studio')
        data.poster = attr_of(soup, '#venkonten .fotoanime img', 'src') or ""
        data.synopsis = parse_synopsis(soup.select('.sinopc p'))
        data.genre_list = genre_list

        # First list holds the batch link, second the episodes; anything after is ignored
        for index, block in enumerate(soup.select('.episodelist')[:2]):
            for element in block.select('ul li'):
                link = element.select_one('a')
                if link is None:
                    continue
                card = parse_link_card(link, 'batch' if index == 0 else 'episode')
                if index == 0:
                    data.batch = BatchLink(
                        title=card.title,
                        batch_id=card.slug,
                        href=card.href,
                        otakudesu_url=card.otakudesu_url,
                    )
                else:
                    data.episode_list.append(EpisodeLink(
                        title=card.title,
                        episode_number=parse_episode_number(card.title),
                        episode_id=card.slug,
                        href=card.href,
                        otakudesu_url=card.otakudesu_url,
                    ))

        for element in soup.select('.isi-recommend-anime-series .isi-konten'):
            data.recommended_anime_list.append(parse_recommended_card(element))
        return data

    request = ScrapeRequest(
        path=f"/anime/{anime_id}",
        initial_data=AnimeDetails(),
        is_empty=lambda data: not data.title and not data.episode_list,
        cache_policy=CachePolicy(ttl=config.DETAIL_TTL),
    )
    return await scrape(client, cache, request, transform)


def _release_time(soup: BeautifulSoup) -> str:
    icon = soup.select_one('.kategoz .fa.fa-clock-o')
    sibling = icon.find_next_sibling() if icon else None
    return sibling.get_text().strip() if sibling else ""


async def scrape_anime_episode(episode_id: str, client: AsyncClient, cache: CacheStore) -> AnimeEpisode:
    def transform(soup: BeautifulSoup, data: AnimeEpisode) -> AnimeEpisode:
        info, genre_list = parse_details(soup.select('.infozingle p'))

        data.title = text_of(soup, '.posttl')
        data.release_time = _release_time(soup)
        data.default_streaming_url = attr_of(soup, '.responsive-embed-stream iframe', 'src') or ""
        data.servers_href = generate_href('episode', episode_id, 'servers')
        data.info.genre_list = genre_list
        data.info.type = info.get('tipe')
        data.info.credit = info.get('credit')
        data.info.encoder = info.get('encoder')
        data.info.duration = info.get('duration') or info.get('durasi')

        # Index heuristic: link 0 is previous, link 1 or 2 is next.
        # "See All Episodes" keeps its slot in the count.
        for index, link in enumerate(soup.select('.flir a')):
            card = parse_link_card(link, 'episode')
            if 'See All Episodes' in card.title:
                continue
            if index == 0:
                data.prev_episode = EpisodeLink(
                    title="Prev",
                    episode_id=card.slug,
                    href=card.href,
                    otakudesu_url=card.otakudesu_url,
                )
            elif index in (1, 2):
                data.next_episode = EpisodeLink(
                    title="Next",
                    episode_id=card.slug,
                    href=card.href,
                    otakudesu_url=card.otakudesu_url,
                )
        data.has_prev_episode = data.prev_episode is not None
        data.has_next_episode = data.next_episode is not None

        for element in soup.select('.download ul li'):
            data.download_url.qualities.append(parse_download_quality(element))

        for element in soup.select('.keyingpost li'):
            link = element.select_one('a')
            if link is None:
                continue
            card = parse_link_card(link, 'episode')
            data.info.episode_list.append(EpisodeLink(
                title=card.title,
                episode_number=parse_episode_number(card.title),
                episode_id=card.slug,
                href=card.href,
                otakudesu_url=card.otakudesu_url,
            ))
        return data

    def is_empty(data: AnimeEpisode) -> bool:
        return (
            not data.title
            and not data.default_streaming_url
            and data.prev_episode is None
            and data.next_episode is None
            and not data.download_url.qualities
        )

    request = ScrapeRequest(
        path=f"/episode/{episode_id}",
        initial_data=AnimeEpisode(),
        is_empty=is_empty,
        cache_policy=CachePolicy(ttl=config.DETAIL_TTL),
    )
    return await scrape(client, cache, request, transform)


def _mirror_label(element: Tag) -> str:
    # "Mirror 720p" label sits beside the <li> items
    label = "".join(
        child.get_text() if isinstance(child, Tag) else str(child)
        for child in element.children
        if getattr(child, 'name', None) != 'li'
    )
    return re.sub(r'mirror(ed)?', '', "".join(label.split()).lower())


def _parse_server(link: Tag) -> Optional[Server]:
    content = link.get('data-content') or ""
    try:
        params = json.loads(base64.b64decode(content))
        server_id = encode_server_id(str(params['id']), str(params['i']), str(params['q']))
    except (binascii.Error, ValueError, KeyError, TypeError) as e:
        logger.error(f"Failed to decode mirror data for {link.get_text().strip()}: {e}")
        return None
    return Server(
        title=link.get_text().strip(),
        server_id=server_id,
        href=generate_href('server', server_id),
    )


async def scrape_anime_servers(episode_id: str, client: AsyncClient, cache: CacheStore, nonces: NonceHolder) -> AnimeServers:
    def transform(soup: BeautifulSoup, data: AnimeServers) -> AnimeServers:
        for element in soup.select('.mirrorstream ul'):
            servers = [server for server in map(_parse_server, element.select('li a')) if server]
            data.qualities.append(ServerQuality(title=_mirror_label(element), server_list=servers))
        return data

    path = f"/episode/{episode_id}"
    request = ScrapeRequest(
        path=path,
        initial_data=AnimeServers(),
        is_empty=lambda data: not data.qualities,
        # Same upstream page as the episode itself, so it needs its own key
        cache_policy=CachePolicy(ttl=config.DETAIL_TTL, key=f"servers:{path}"),
    )
    servers = await scrape(client, cache, request, transform)

    # Warm the nonce slot so the first server resolution skips acquisition.
    # Not fatal: the resolver acquires on demand.
    try:
        await nonces.get_or_acquire(client)
    except ScraperError as e:
        logger.warning(f"Nonce warm-up failed for {episode_id}: {e}")
    return servers


def _batch_info(soup: BeautifulSoup) -> dict:
    info = {}
    block = soup.select_one('.animeinfo .infos')
    if block is None:
        return info
    for br in block.find_all('br'):
        br.replace_with('\n')
    for line in block.get_text().split('\n'):
        key, sep, value = line.partition(':')
        key = key.strip().lower()
        if sep and key and not key.startswith('genre'):
            info[key] = value.strip()
    return info


async def scrape_anime_batch(batch_id: str, client: AsyncClient, cache: CacheStore) -> AnimeBatch:
    def transform(soup: BeautifulSoup, data: AnimeBatch) -> AnimeBatch:
        data.genre_list = parse_genre_links(soup.select('.animeinfo .infos a'))
        info = _batch_info(soup)

        data.title = info.get('judul', '')
        data.japanese = info.get('japanese')
        data.type = info.get('type')
        data.score = info.get('rating')
        data.episodes = parse_int(info.get('episodes'))
        data.duration = info.get('duration')
        data.studios = info.get('studios') or info.get('studio')
        data.producers = info.get('producers') or info.get('produser')
        data.aired = info.get('aired')
        data.credit = info.get('credit')
        data.poster = attr_of(soup, '.animeinfo img', 'src') or ""

        for heading in soup.select('.batchlink h4'):
            block = heading.find_next_sibling()
            qualities = [parse_download_quality(element) for element in block.select('li')] if block else []
            data.download_url.formats.append(DownloadFormat(title=heading.get_text().strip(), qualities=qualities))
        return data

    request = ScrapeRequest(
        path=f"/batch/{batch_id}",
        initial_data=AnimeBatch(),
        is_empty=lambda data: not data.title and not data.genre_list and not data.download_url.formats,
        cache_policy=CachePolicy(ttl=config.DETAIL_TTL),
    )
    return await scrape(client, cache, request, transform)
