"""
================================================================================
MediaHub v1.0 - TMDb Provider
================================================================================
REST client for The Movie Database (v3 API).

TMDb Features:
  - Primary authoritative provider for movies and TV
  - Structured credits (directors, cast)
  - Bearer token authentication (TMDB_ACCESS_TOKEN)

API Docs: https://developer.themoviedb.org/reference/search-multi
================================================================================
"""

from typing import List, Optional
import logging
import os

from .base import BaseMediaProvider
from ..models import (
    CandidateItem, MediaType, ProviderType,
    DATE_UNKNOWN, DURATION_UNKNOWN, SUMMARY_MISSING, TITLE_UNKNOWN, YEAR_UNKNOWN,
)

logger = logging.getLogger(__name__)

ANIMATION_GENRE_ID = 16


class TMDbProvider(BaseMediaProvider):
    """TMDb multi-search with per-title detail lookups."""

    id = "tmdb"
    name = "TMDb"
    base_url = "https://api.themoviedb.org/3"
    image_base_url = "https://image.tmdb.org/t/p/w500"
    site_url = "https://www.themoviedb.org"
    media_kinds = frozenset({MediaType.MOVIE})
    rate_limit = 240

    def __init__(self, access_token: Optional[str] = None, transport=None):
        super().__init__(transport=transport)
        self.access_token = access_token or os.environ.get('TMDB_ACCESS_TOKEN')

    def default_headers(self) -> dict:
        headers = super().default_headers()
        headers['Accept'] = 'application/json'
        if self.access_token:
            headers['Authorization'] = f'Bearer {self.access_token}'
        return headers

    async def search(self, query: str) -> List[CandidateItem]:
        if not self.access_token:
            logger.error(f"{self.id}: TMDB_ACCESS_TOKEN not set")
            return []

        data = await self._get_json(
            f"{self.base_url}/search/multi",
            params={
                'query': query,
                'language': 'zh-CN',
                'include_adult': 'false',
            }
        )

        raw_results = [
            item for item in (data.get('results') or [])
            if item.get('media_type') in ('movie', 'tv')
        ][:self.limit]

        items = [self.parse_item(raw, raw['media_type']) for raw in raw_results]
        return await self._enrich_all(items, self._fetch_details)

    async def _fetch_details(self, item: CandidateItem) -> CandidateItem:
        """Re-parse from the detail endpoint (runtime, episodes, credits)."""
        kind = MediaType(item.media_type).value
        detail = await self._get_json(
            f"{self.base_url}/{kind}/{item.source_id}",
            params={'language': 'zh-CN', 'append_to_response': 'credits'}
        )
        return self.parse_item(detail, kind)

    def parse_item(self, item: dict, media_type: str) -> CandidateItem:
        """Map a TMDb search or detail object onto CandidateItem."""
        is_movie = media_type == "movie"
        source_id = str(item.get('id') or '')

        if is_movie:
            title_zh = item.get('title')
            title_original = item.get('original_title')
            release_date = item.get('release_date') or DATE_UNKNOWN
        else:
            title_zh = item.get('name')
            title_original = item.get('original_name')
            release_date = item.get('first_air_date') or DATE_UNKNOWN

        year = YEAR_UNKNOWN
        if release_date != DATE_UNKNOWN and len(release_date) >= 4:
            year = release_date[:4]

        poster_path = item.get('poster_path')
        poster_url = f"{self.image_base_url}{poster_path}" if poster_path else ""

        directors: List[str] = []
        actors: List[str] = []
        credits = item.get('credits')
        if credits:
            directors = [
                member.get('name') for member in credits.get('crew') or []
                if member.get('job') == 'Director' and member.get('name')
            ][:3]
            actors = [
                member.get('name') for member in credits.get('cast') or []
                if member.get('name')
            ][:5]

        vote_average = float(item.get('vote_average') or 0)

        return CandidateItem(
            source_type=ProviderType.TMDB,
            source_id=source_id,
            source_url=f"{self.site_url}/{media_type}/{source_id}",
            media_type=MediaType.MOVIE if is_movie else MediaType.TV,
            title_zh=title_zh or TITLE_UNKNOWN,
            title_original=title_original or "",
            release_date=release_date,
            duration=self._format_duration(item, is_movie),
            year=year,
            poster_url=poster_url,
            summary=item.get('overview') or SUMMARY_MISSING,
            staff="",
            directors=directors,
            actors=actors,
            rating=vote_average,
            rating_imdb=vote_average,
        )

    @staticmethod
    def _format_duration(item: dict, is_movie: bool) -> str:
        if is_movie:
            runtime = item.get('runtime')
            return f"{runtime}分钟" if runtime else DURATION_UNKNOWN

        episodes = item.get('number_of_episodes')
        if episodes:
            genre_ids = item.get('genre_ids') or [
                genre.get('id') for genre in item.get('genres') or []
            ]
            if ANIMATION_GENRE_ID in genre_ids:
                return f"共{episodes}话"
            return f"共{episodes}集"

        run_times = item.get('episode_run_time') or []
        if run_times:
            return f"{run_times[0]}分钟/集"
        return DURATION_UNKNOWN
