# helpers.py
"""
Stateless BeautifulSoup helpers shared by the page extractors.
"""
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

import config
from models import AnimeLink, GenreLink, LinkCard, Pagination, Synopsis

NO_IFRAME = "No iframe found"


def text_of(element: Optional[Tag], selector: Optional[str] = None) -> str:
    if element is None:
        return ""
    if selector:
        element = element.select_one(selector)
        if element is None:
            return ""
    return element.get_text().strip()


def attr_of(element: Optional[Tag], selector: str, name: str) -> Optional[str]:
    if element is None:
        return None
    found = element.select_one(selector)
    if found is None:
        return None
    value = found.get(name)
    return value.strip() if isinstance(value, str) else None


# Helper function to make an upstream link absolute
def get_source_url(url: Optional[str]) -> str:
    if not url:
        return ""
    base_url = config.OTAKUDESU_BASE_URL.rstrip('/')
    if url.startswith('//'):
        return 'https:' + url
    if url.startswith('/'):
        return base_url + url
    if not url.startswith(('http://', 'https://')):
        return base_url + '/' + url
    return url


def get_slug_from_url(url: Optional[str]) -> str:
    """
    Examples:
        https://otakudesu.cloud/anime/kimetsu-yaiba-sub-indo/ -> kimetsu-yaiba-sub-indo
        /genres/action/ -> action
    """
    if not url:
        return ""
    path = urlparse(url).path.strip('/')
    return path.split('/')[-1] if path else ""


def generate_href(*segments: str) -> str:
    return "/".join([config.BASE_ROUTE, *(s for s in segments if s)])


def to_snake_case(text: str) -> str:
    return re.sub(r'[^a-z0-9]+', '_', text.strip().lower()).strip('_')


def parse_int(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    match = re.search(r'\d+', text)
    return int(match.group(0)) if match else None


def parse_episode_number(title: str) -> Optional[int]:
    """'Boruto Episode 12 Subtitle Indonesia' -> 12"""
    match = re.search(r'episode\s+(\d+)\b', title, re.IGNORECASE)
    return int(match.group(1)) if match else None


def parse_link_card(element: Tag, route: str) -> LinkCard:
    url = element.get('href') or ""
    slug = get_slug_from_url(url)
    return LinkCard(
        title=element.get_text().strip(),
        slug=slug,
        href=generate_href(route, slug),
        otakudesu_url=get_source_url(url),
    )


def parse_anime_link(element: Tag) -> AnimeLink:
    card = parse_link_card(element, "anime")
    return AnimeLink(title=card.title, anime_id=card.slug, href=card.href, otakudesu_url=card.otakudesu_url)


def parse_genre_links(elements: List[Tag]) -> List[GenreLink]:
    genres = []
    for element in elements:
        card = parse_link_card(element, "genres")
        genres.append(GenreLink(title=card.title, genre_id=card.slug, href=card.href, otakudesu_url=card.otakudesu_url))
    return genres


def parse_pagination(soup: BeautifulSoup) -> Optional[Pagination]:
    container = soup.select_one('.pagination') or soup.select_one('.pagenavix')
    if container is None:
        return None

    current_page = parse_int(text_of(container, '.page-numbers.current')) or 1
    page_numbers = [
        number for number in
        (parse_int(item.get_text()) for item in container.select('.page-numbers:not(.prev):not(.next)'))
        if number is not None
    ]
    has_prev_page = container.select_one('.prev') is not None
    has_next_page = container.select_one('.next') is not None

    return Pagination(
        current_page=current_page,
        total_pages=max(page_numbers + [current_page]),
        has_prev_page=has_prev_page,
        prev_page=current_page - 1 if has_prev_page else None,
        has_next_page=has_next_page,
        next_page=current_page + 1 if has_next_page else None,
    )


def parse_details(elements: List[Tag]) -> Tuple[Dict[str, str], List[GenreLink]]:
    """
    Parse "Key: value" info rows into a snake_case dict.

    The genre row is returned separately as links instead of text.
    """
    info: Dict[str, str] = {}
    genre_list: List[GenreLink] = []
    for element in elements:
        text = element.get_text()
        if ':' not in text:
            continue
        key, value = text.split(':', 1)
        key = to_snake_case(key)
        if not key:
            continue
        if key.startswith('genre'):
            genre_list = parse_genre_links(element.select('a'))
        else:
            info[key] = value.strip()
    return info, genre_list


def parse_synopsis(elements: List[Tag]) -> Synopsis:
    synopsis = Synopsis()
    for element in elements:
        paragraph = element.get_text().strip()
        if paragraph:
            synopsis.paragraphs.append(paragraph)
        for link in element.select('a[href]'):
            if '/anime/' in link.get('href', ''):
                synopsis.connections.append(parse_anime_link(link))
    return synopsis


def extract_iframe_src(html: str) -> str:
    iframe = BeautifulSoup(html, 'html.parser').find('iframe')
    src = iframe.get('src') if iframe else None
    return src or NO_IFRAME
