# models.py
from pydantic import BaseModel, Field
from typing import List, Optional


class Pagination(BaseModel):
    current_page: Optional[int] = Field(None, description="Current page number")
    total_pages: Optional[int] = Field(None, description="Highest page number listed")
    has_prev_page: bool = Field(False, description="Whether a previous page exists")
    prev_page: Optional[int] = Field(None, description="Previous page number")
    has_next_page: bool = Field(False, description="Whether a next page exists")
    next_page: Optional[int] = Field(None, description="Next page number")


class LinkCard(BaseModel):
    title: str = Field(..., description="Link text")
    slug: str = Field(..., description="Last path segment of the source URL")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")


class AnimeLink(BaseModel):
    title: str = Field(..., description="Anime title")
    anime_id: str = Field(..., description="Anime slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")


class GenreLink(BaseModel):
    title: str = Field(..., description="Genre name")
    genre_id: str = Field(..., description="Genre slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")


class EpisodeLink(BaseModel):
    title: str = Field(..., description="Episode label")
    episode_number: Optional[int] = Field(None, description="Episode number when it can be parsed")
    episode_id: str = Field(..., description="Episode slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")


class BatchLink(BaseModel):
    title: str = Field(..., description="Batch title")
    batch_id: str = Field(..., description="Batch slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")


class Synopsis(BaseModel):
    paragraphs: List[str] = Field(default_factory=list, description="Synopsis paragraphs")
    connections: List[AnimeLink] = Field(default_factory=list, description="Related anime linked from the synopsis")


class AnimeCard(BaseModel):
    title: str = Field(..., description="Anime title")
    poster: Optional[str] = Field(None, description="Poster image URL")
    episodes: Optional[int] = Field(None, description="Number of episodes released")
    anime_id: str = Field(..., description="Anime slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")
    release_day: Optional[str] = Field(None, description="Weekly release day (ongoing only)")
    latest_release_date: Optional[str] = Field(None, description="Latest episode date (ongoing only)")
    score: Optional[str] = Field(None, description="Score (completed only)")
    last_release_date: Optional[str] = Field(None, description="Final episode date (completed only)")


class SearchAnimeCard(BaseModel):
    title: str = Field(..., description="Anime title")
    poster: Optional[str] = Field(None, description="Poster image URL")
    status: Optional[str] = Field(None, description="Airing status")
    score: Optional[str] = Field(None, description="Score")
    anime_id: str = Field(..., description="Anime slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")
    genre_list: List[GenreLink] = Field(default_factory=list, description="Genres")


class GenreAnimeCard(BaseModel):
    title: str = Field(..., description="Anime title")
    poster: Optional[str] = Field(None, description="Poster image URL")
    studios: Optional[str] = Field(None, description="Studio")
    score: Optional[str] = Field(None, description="Score")
    episodes: Optional[int] = Field(None, description="Episode count")
    season: Optional[str] = Field(None, description="Airing season")
    anime_id: str = Field(..., description="Anime slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")
    synopsis: Synopsis = Field(default_factory=Synopsis, description="Short synopsis")
    genre_list: List[GenreLink] = Field(default_factory=list, description="Genres")


class RecommendedAnime(BaseModel):
    title: str = Field(..., description="Anime title")
    poster: Optional[str] = Field(None, description="Poster image URL")
    anime_id: str = Field(..., description="Anime slug")
    href: str = Field(..., description="Route on this API")
    otakudesu_url: str = Field(..., description="Source page URL")


class AnimeList(BaseModel):
    href: str = Field("", description="Route on this API for the full list")
    otakudesu_url: str = Field("", description="Source page URL for the full list")
    anime_list: List[AnimeCard] = Field(default_factory=list, description="Anime on the home page")


class Home(BaseModel):
    ongoing: AnimeList = Field(default_factory=AnimeList)
    completed: AnimeList = Field(default_factory=AnimeList)


class ScheduleDay(BaseModel):
    day: str = Field(..., description="Day of the week")
    anime_list: List[AnimeLink] = Field(default_factory=list)


class Schedule(BaseModel):
    days: List[ScheduleDay] = Field(default_factory=list)


class AnimeGroup(BaseModel):
    start_with: str = Field(..., description="Index letter")
    anime_list: List[AnimeLink] = Field(default_factory=list)


class AllAnimes(BaseModel):
    anime_groups: List[AnimeGroup] = Field(default_factory=list)


class AllGenres(BaseModel):
    genre_list: List[GenreLink] = Field(default_factory=list)


class AnimeCardPage(BaseModel):
    anime_list: List[AnimeCard] = Field(default_factory=list)
    pagination: Optional[Pagination] = None


class GenreAnimesPage(BaseModel):
    anime_list: List[GenreAnimeCard] = Field(default_factory=list)
    pagination: Optional[Pagination] = None


class SearchResult(BaseModel):
    anime_list: List[SearchAnimeCard] = Field(default_factory=list)


class AnimeDetails(BaseModel):
    title: str = Field("", description="Anime title")
    poster: str = Field("", description="Poster image URL")
    japanese: Optional[str] = Field(None, description="Japanese title")
    score: Optional[str] = Field(None, description="Score")
    producers: Optional[str] = Field(None, description="Producers")
    type: Optional[str] = Field(None, description="TV, Movie, OVA ...")
    status: Optional[str] = Field(None, description="Airing status")
    episodes: Optional[int] = Field(None, description="Total episode count")
    duration: Optional[str] = Field(None, description="Episode duration")
    aired: Optional[str] = Field(None, description="Release date")
    studios: Optional[str] = Field(None, description="Studio")
    batch: Optional[BatchLink] = Field(None, description="Batch download page, when published")
    synopsis: Synopsis = Field(default_factory=Synopsis)
    genre_list: List[GenreLink] = Field(default_factory=list)
    episode_list: List[EpisodeLink] = Field(default_factory=list)
    recommended_anime_list: List[RecommendedAnime] = Field(default_factory=list)


class DownloadLink(BaseModel):
    title: str = Field(..., description="Host name")
    url: str = Field(..., description="Download URL")


class DownloadQuality(BaseModel):
    title: str = Field(..., description="Quality label, e.g. Mp4_480p")
    size: str = Field("", description="File size")
    urls: List[DownloadLink] = Field(default_factory=list)


class EpisodeDownloads(BaseModel):
    qualities: List[DownloadQuality] = Field(default_factory=list)


class EpisodeInfo(BaseModel):
    credit: Optional[str] = None
    encoder: Optional[str] = None
    duration: Optional[str] = None
    type: Optional[str] = None
    genre_list: List[GenreLink] = Field(default_factory=list)
    episode_list: List[EpisodeLink] = Field(default_factory=list)


class AnimeEpisode(BaseModel):
    title: str = Field("", description="Episode title")
    release_time: str = Field("", description="Release time as shown on the page")
    default_streaming_url: str = Field("", description="Embedded player URL")
    servers_href: str = Field("", description="Route listing the streaming servers")
    has_prev_episode: bool = False
    prev_episode: Optional[EpisodeLink] = None
    has_next_episode: bool = False
    next_episode: Optional[EpisodeLink] = None
    download_url: EpisodeDownloads = Field(default_factory=EpisodeDownloads)
    info: EpisodeInfo = Field(default_factory=EpisodeInfo)


class Server(BaseModel):
    title: str = Field(..., description="Mirror name")
    server_id: str = Field(..., description="Opaque server id")
    href: str = Field(..., description="Route resolving the streaming URL")


class ServerQuality(BaseModel):
    title: str = Field(..., description="Quality, e.g. 720p")
    server_list: List[Server] = Field(default_factory=list)


class AnimeServers(BaseModel):
    qualities: List[ServerQuality] = Field(default_factory=list)


class ServerUrl(BaseModel):
    url: str = Field(..., description="Playable streaming URL")


class DownloadFormat(BaseModel):
    title: str = Field(..., description="Container format")
    qualities: List[DownloadQuality] = Field(default_factory=list)


class BatchDownloads(BaseModel):
    formats: List[DownloadFormat] = Field(default_factory=list)


class AnimeBatch(BaseModel):
    title: str = Field("", description="Anime title")
    poster: str = Field("", description="Poster image URL")
    japanese: Optional[str] = None
    type: Optional[str] = None
    score: Optional[str] = None
    episodes: Optional[int] = None
    duration: Optional[str] = None
    studios: Optional[str] = None
    producers: Optional[str] = None
    aired: Optional[str] = None
    credit: Optional[str] = None
    genre_list: List[GenreLink] = Field(default_factory=list)
    download_url: BatchDownloads = Field(default_factory=BatchDownloads)


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message")
    code: Optional[int] = Field(None, description="HTTP status code")
    details: Optional[str] = Field(None, description="Additional error details")
