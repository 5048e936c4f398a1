"""
================================================================================
MediaHub v1.0 - Maoyan Provider
================================================================================
Client for the Maoyan mobile JSON endpoints (m.maoyan.com).

Search returns identity, score, poster and a director/star line; the
detail endpoint refines directors and fills the plot summary.
================================================================================
"""

from typing import List
import logging
import re

from .base import BaseMediaProvider, MOBILE_USER_AGENT
from ..models import (
    CandidateItem, MediaType, ProviderType,
    DATE_UNKNOWN, DURATION_UNKNOWN, STAFF_MISSING, SUMMARY_MISSING, TITLE_UNKNOWN, YEAR_UNKNOWN,
)

logger = logging.getLogger(__name__)

ON_SALE_LABELS = {"购票", "预售"}
DIRECTOR_SEPARATORS = re.compile(r"[/\s,]+")
HTML_TAG = re.compile(r"<[^>]*>")


class MaoyanProvider(BaseMediaProvider):
    """Maoyan movie search."""

    id = "maoyan"
    name = "Maoyan"
    base_url = "https://m.maoyan.com"
    media_kinds = frozenset({MediaType.MOVIE})
    rate_limit = 120
    user_agent = MOBILE_USER_AGENT

    async def search(self, query: str) -> List[CandidateItem]:
        data = await self._get_json(
            f"{self.base_url}/ajax/search",
            params={'kw': query, 'cityId': '1', 'stype': '-1'}
        )

        movies = ((data or {}).get('movies') or {}).get('list') or []
        items = []
        for raw in movies[:self.limit]:
            try:
                items.append(self.parse_item(raw))
            except (TypeError, ValueError, AttributeError) as e:
                logger.error(f"{self.id}: Error parsing item: {e}")

        return await self._enrich_all(items, self._fetch_details)

    async def _fetch_details(self, item: CandidateItem) -> CandidateItem:
        data = await self._get_json(
            f"{self.base_url}/ajax/detailmovie",
            params={'movieId': item.source_id}
        )
        return self.apply_detail(item, (data or {}).get('detailMovie'))

    def apply_detail(self, item: CandidateItem, detail) -> CandidateItem:
        """Refine directors/staff and fill a missing summary."""
        if not detail:
            return item
        item = item.copy()

        director = detail.get('dir')
        if director:
            item.directors = [name for name in DIRECTOR_SEPARATORS.split(director) if name.strip()]
            item.staff = _staff_line(director, detail.get('star')) or item.staff

        plot = detail.get('dra')
        if plot and not item.has_summary():
            item.summary = HTML_TAG.sub("", plot)

        return item

    def parse_item(self, item: dict) -> CandidateItem:
        """Map one search-list movie onto CandidateItem."""
        source_id = str(item.get('id') or '')
        score = _parse_float(item.get('sc'))

        poster = item.get('img') or ""
        if "/w.h/" in poster:
            poster = poster.replace("/w.h/", "/")

        release_date = item.get('rt') or ""
        year = YEAR_UNKNOWN
        if len(release_date) >= 4:
            year = release_date[:4]
        else:
            year_match = re.search(r"\d{4}", item.get('pubDesc') or "")
            if year_match:
                year = year_match.group(0)

        director = item.get('dir') or ""
        stars = item.get('star') or ""
        duration = item.get('dur') or 0
        button = item.get('showStateButton') or {}

        return CandidateItem(
            source_type=ProviderType.MAOYAN,
            source_id=source_id,
            source_url=f"{self.base_url}/movie/{source_id}",
            media_type=MediaType.MOVIE,
            title_zh=item.get('nm') or TITLE_UNKNOWN,
            title_original=item.get('enm') or "",
            release_date=release_date or DATE_UNKNOWN,
            duration=f"{duration}分钟" if duration else DURATION_UNKNOWN,
            year=year,
            poster_url=poster,
            summary=SUMMARY_MISSING,
            staff=_staff_line(director, stars) or STAFF_MISSING,
            directors=[director] if director else [],
            actors=[name.strip() for name in stars.split(",") if name.strip()],
            rating=score,
            rating_maoyan=score,
            wish=str(item.get('wish') or "0"),
            is_new=button.get('content') in ON_SALE_LABELS,
        )


def _staff_line(director, stars) -> str:
    staff = ""
    if director:
        staff += f"导演: {director} "
    if stars:
        staff += f"主演: {stars}"
    return staff


def _parse_float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
