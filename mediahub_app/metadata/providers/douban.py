"""
================================================================================
MediaHub v1.0 - Douban Provider
================================================================================
HTML scraper for the Douban movie search page.

Only the search list is read (no detail pages): title, id, Douban score and
the cast line, which also carries the year.
================================================================================
"""

from typing import List, Optional
from urllib.parse import quote
import logging
import re

from bs4 import BeautifulSoup

from .base import BaseMediaProvider
from ..models import CandidateItem, MediaType, ProviderType, TITLE_UNKNOWN, YEAR_UNKNOWN

logger = logging.getLogger(__name__)

SUBJECT_ID = re.compile(r"sid:\s*(\d+)")


class DoubanProvider(BaseMediaProvider):
    """Douban movie search (category 1002)."""

    id = "douban"
    name = "Douban"
    base_url = "https://www.douban.com"
    subject_url = "https://movie.douban.com/subject"
    media_kinds = frozenset({MediaType.MOVIE})
    rate_limit = 60

    async def search(self, query: str) -> List[CandidateItem]:
        html = await self._get_text(f"{self.base_url}/search?cat=1002&q={quote(query)}")
        soup = BeautifulSoup(html, 'lxml')

        results = []
        for element in soup.select(".result-list .result")[:self.limit]:
            item = self.parse_result(element)
            if item:
                results.append(item)
        return results

    def parse_result(self, element) -> Optional[CandidateItem]:
        title_link = element.select_one("h3 a")
        if title_link is None:
            return None

        id_match = SUBJECT_ID.search(title_link.get('onclick') or "")
        if not id_match:
            return None
        source_id = id_match.group(1)

        rating_node = element.select_one(".rating_nums")
        try:
            rating = float(rating_node.get_text().strip()) if rating_node else 0.0
        except ValueError:
            rating = 0.0

        cast_node = element.select_one(".subject-cast")
        subject_cast = cast_node.get_text().strip() if cast_node else ""
        year_match = re.search(r"\d{4}", subject_cast)

        return CandidateItem(
            source_type=ProviderType.DOUBAN,
            source_id=source_id,
            source_url=f"{self.subject_url}/{source_id}",
            media_type=MediaType.MOVIE,
            title_zh=title_link.get_text().strip() or TITLE_UNKNOWN,
            year=year_match.group(0) if year_match else YEAR_UNKNOWN,
            staff=subject_cast,
            rating=rating,
            rating_douban=rating,
        )
