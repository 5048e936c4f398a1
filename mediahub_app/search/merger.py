"""
================================================================================
MediaHub v1.0 - Search Result Merger
================================================================================
Folds duplicate candidates from different providers into one record.

Problem:
  User searches "进击的巨人" -> TMDb, Douban and Bangumi all return it.

Solution:
  1. Score every candidate (completeness)
  2. Sort by score, best first (stable: ties keep discovery order)
  3. Walk the list; merge each candidate into the first equivalent cluster
     representative, otherwise start a new cluster
  4. The representative keeps its own fields and backfills gaps from the
     merged candidate

Anime override:
  Bangumi is authoritative for anime identity, posters, episode counts and
  staff; TMDb has the better cast list. When a Bangumi anime item takes part
  in a merge those fields are forced to the Bangumi (and TMDb cast) values.
================================================================================
"""

from typing import List, Optional
import logging

from ..metadata.models import (
    CandidateItem, MediaType, ProviderType, DURATION_UNKNOWN, YEAR_UNKNOWN,
)
from .matcher import are_same_media
from .scorer import calculate_completeness_score

logger = logging.getLogger(__name__)

RATING_SLOTS = ('rating_imdb', 'rating_douban', 'rating_bangumi', 'rating_maoyan')


def _pick(provider: ProviderType, *items: CandidateItem) -> Optional[CandidateItem]:
    for item in items:
        if ProviderType(item.source_type) == provider:
            return item
    return None


def merge_items(primary: CandidateItem, secondary: CandidateItem) -> CandidateItem:
    """
    Merge two equivalent candidates.

    Args:
        primary: Higher-scored candidate (cluster representative)
        secondary: Lower-scored candidate

    Returns:
        New CandidateItem; neither input is modified
    """
    merged = primary.copy()
    merged.match_count = (primary.match_count or 1) + (secondary.match_count or 1)

    for slot in RATING_SLOTS:
        if getattr(merged, slot) == 0:
            setattr(merged, slot, getattr(secondary, slot))

    if not merged.poster_url:
        merged.poster_url = secondary.poster_url
    if not merged.has_summary():
        merged.summary = secondary.summary
    if merged.year == YEAR_UNKNOWN:
        merged.year = secondary.year

    bgm_item = _pick(ProviderType.BANGUMI, primary, secondary)
    tmdb_item = _pick(ProviderType.TMDB, primary, secondary)

    if bgm_item and MediaType(bgm_item.media_type) == MediaType.ANIME:
        merged.source_type = ProviderType.BANGUMI
        merged.source_id = bgm_item.source_id
        merged.source_url = bgm_item.source_url

        if bgm_item.poster_url:
            merged.poster_url = bgm_item.poster_url
        if bgm_item.duration and bgm_item.duration != DURATION_UNKNOWN:
            merged.duration = bgm_item.duration

        merged.staff = bgm_item.staff

        first_staff = (bgm_item.staff or "").split('/')[0].strip()
        merged.directors = [first_staff] if first_staff else []

        if tmdb_item and tmdb_item.actors:
            merged.actors = list(tmdb_item.actors)
        else:
            merged.actors = []

    return merged


def merge_and_deduplicate(
    items: List[CandidateItem],
    strict_kinds: bool = False
) -> List[CandidateItem]:
    """
    Score, cluster and merge raw candidates.

    Args:
        items: Raw candidates in discovery order
        strict_kinds: Passed to the matcher (kind compatibility gate)

    Returns:
        One merged candidate per cluster, ordered by descending score
    """
    if not items:
        return []

    scored = []
    for item in items:
        item = item.copy()
        item.score = calculate_completeness_score(item)
        scored.append(item)

    scored.sort(key=lambda item: item.score, reverse=True)

    merged: List[CandidateItem] = []
    for item in scored:
        for index, representative in enumerate(merged):
            if are_same_media(representative, item, strict_kinds=strict_kinds):
                merged[index] = merge_items(representative, item)
                logger.debug(
                    f"Merged {item.source_type}:{item.source_id} into "
                    f"'{representative.title_zh}' ({merged[index].match_count} matches)"
                )
                break
        else:
            merged.append(item)

    logger.info(f"Merged {len(items)} candidates into {len(merged)} titles")
    return merged
