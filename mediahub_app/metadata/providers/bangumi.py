"""
================================================================================
MediaHub v1.0 - Bangumi Provider
================================================================================
HTML scraper for bgm.tv (Bangumi).

Bangumi is the authoritative source for anime staff and episode counts.
Search list gives identity, poster, rating and a staff line; each subject
page adds the summary and the infobox (director, episodes, air date).
================================================================================
"""

from typing import Dict, List, Optional
from urllib.parse import quote
import logging
import re

from bs4 import BeautifulSoup

from .base import BaseMediaProvider
from ..models import (
    CandidateItem, MediaType, ProviderType,
    DATE_UNKNOWN, DURATION_UNKNOWN, SUMMARY_MISSING, YEAR_UNKNOWN,
)

logger = logging.getLogger(__name__)

# Infobox roles folded into the staff line, in display order
STAFF_ROLES = ["导演", "脚本", "人物设定", "音乐", "动画制作", "原画", "原作"]

CAST_SEPARATORS = re.compile(r"、|/|,|，| ")
YEAR_IN_INFO = re.compile(r"(\d{4})年")
COVER_SIZE = re.compile(r"/s/|/m/")


class BangumiProvider(BaseMediaProvider):
    """Bangumi anime search (category 2)."""

    id = "bgm"
    name = "Bangumi"
    base_url = "https://bgm.tv"
    media_kinds = frozenset({MediaType.ANIME})
    rate_limit = 120

    def default_headers(self) -> dict:
        headers = super().default_headers()
        headers['Cookie'] = 'chii_searchDateLine=0'
        return headers

    async def search(self, query: str) -> List[CandidateItem]:
        html = await self._get_text(
            f"{self.base_url}/subject_search/{quote(query)}",
            params={'cat': '2'}
        )
        soup = BeautifulSoup(html, 'lxml')

        items = []
        for element in soup.select("#browserItemList > li")[:self.limit]:
            item = self.parse_list_item(element)
            if item:
                items.append(item)

        return await self._enrich_all(items, self._fetch_details)

    def parse_list_item(self, element) -> Optional[CandidateItem]:
        """Parse one `#browserItemList > li` entry."""
        title_link = element.select_one("h3 > a.l")
        if title_link is None:
            return None

        href = title_link.get('href') or ''
        source_id = href.rstrip('/').split('/')[-1]
        title_zh = title_link.get_text().strip()

        original = element.select_one("h3 > small.grey")
        title_original = original.get_text().strip() if original else ""

        poster_url = ""
        img = element.select_one(".subjectCover img")
        img_src = img.get('src') if img else None
        if img_src:
            poster_url = "https:" + COVER_SIZE.sub("/l/", img_src, count=1)

        info = element.select_one(".info.tip")
        info_text = info.get_text().strip() if info else ""

        rate = element.select_one(".rateInfo small.fade")
        rating = _parse_float(rate.get_text() if rate else "")

        year = YEAR_UNKNOWN
        year_match = YEAR_IN_INFO.search(info_text)
        if year_match:
            year = year_match.group(1)

        # Drop the air-date part, keep the staff part
        staff = " / ".join(
            part for part in info_text.split(" / ")
            if not re.match(r"^\d{4}年", part)
        )

        directors = []
        first_staff = staff.split("/")[0].strip()
        if first_staff:
            directors.append(first_staff)

        return CandidateItem(
            source_type=ProviderType.BANGUMI,
            source_id=source_id,
            source_url=f"{self.base_url}/subject/{source_id}",
            media_type=MediaType.ANIME,
            title_zh=title_zh,
            title_original=title_original,
            release_date=f"{year}-01-01" if year != YEAR_UNKNOWN else DATE_UNKNOWN,
            duration=parse_duration(info_text),
            year=year,
            poster_url=poster_url,
            summary=SUMMARY_MISSING,
            staff=staff,
            directors=directors,
            actors=[],
            rating=rating,
            rating_bangumi=rating,
        )

    async def _fetch_details(self, item: CandidateItem) -> CandidateItem:
        html = await self._get_text(item.source_url)
        return self.apply_subject_page(item, html)

    def apply_subject_page(self, item: CandidateItem, html: str) -> CandidateItem:
        """Fill summary, staff, cast, episodes and dates from a subject page."""
        item = item.copy()
        soup = BeautifulSoup(html, 'lxml')

        summary_node = soup.select_one("#subject_summary")
        summary = summary_node.get_text().strip() if summary_node else ""
        if summary:
            item.summary = summary

        info = parse_infobox(soup)
        if not info:
            return item

        if info.get("导演"):
            item.directors = [info["导演"]]

        staff_parts = [f"{role}: {info[role]}" for role in STAFF_ROLES if info.get(role)]
        if staff_parts:
            item.staff = " / ".join(staff_parts)

        if info.get("演出"):
            item.actors = [
                name.strip() for name in CAST_SEPARATORS.split(info["演出"])
                if name.strip()
            ]

        episodes = info.get("话数")
        if episodes and episodes != "*":
            item.duration = f"共{episodes}话"

        if info.get("中文名") and (not item.title_zh or item.title_zh == item.title_original):
            item.title_zh = info["中文名"]

        air_date = info.get("放送开始")
        if air_date:
            # "2012年4月1日" -> "2012-4-1"
            item.release_date = re.sub(r"年|月", "-", air_date).replace("日", "")
            year_match = re.match(r"^\d{4}", air_date)
            if year_match:
                item.year = year_match.group(0)

        return item


def parse_infobox(soup: BeautifulSoup) -> Dict[str, str]:
    """Read `#infobox li` rows as key -> value."""
    info: Dict[str, str] = {}
    infobox = soup.select_one("#infobox")
    if infobox is None:
        return info

    for row in infobox.select("li"):
        parts = row.get_text().strip().split(":")
        if len(parts) >= 2:
            info[parts[0].strip()] = ":".join(parts[1:]).strip()
    return info


def parse_duration(info_text: str) -> str:
    """Pick the episode count or running time out of a search-list info line."""
    for part in info_text.split(" / "):
        if re.match(r"^\d+话$", part) or re.search(r"共\d+话", part):
            return part
        if re.search(r"\d+小时", part) or re.search(r"\d+分钟", part):
            return part
    return DURATION_UNKNOWN


def _parse_float(value: str) -> float:
    try:
        return float(value.strip())
    except (TypeError, ValueError):
        return 0.0
