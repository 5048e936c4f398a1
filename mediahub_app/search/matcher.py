"""
================================================================================
MediaHub v1.0 - Equivalence Matcher
================================================================================
Decides whether two candidates from different providers denote the same
real-world title.

Problem:
  User searches "哈利·波特" -> TMDb, Douban and Maoyan each return the same
  film under their own ids, with slightly different punctuation.

Solution:
  1. Same provider + same provider id -> same title, no further checks
  2. Normalized Chinese titles must be identical (no fuzzy ratio)
  3. Years must be identical unless one side does not know its year
  4. Media kind is not compared unless strict mode is on

The relation is reflexive and symmetric but not transitive; the merger only
compares new candidates against current cluster representatives.
================================================================================
"""

import re
import logging
from typing import Dict, FrozenSet

from ..metadata.models import CandidateItem, MediaType, YEAR_UNKNOWN


logger = logging.getLogger(__name__)

WHITESPACE = re.compile(r"\s+")

# Full-width and half-width punctuation removed before comparison
PUNCTUATION = re.compile(r"[。、，！？：；“”‘’「」『』【】（）\[\]().,!?:;'\"－—·～~]")

# Anything that is not an ASCII word char, CJK ideograph, hiragana or katakana
NON_TITLE_CHARS = re.compile(r"[^0-9A-Za-z_\u4e00-\u9fa5\u3040-\u309f\u30a0-\u30ff]")

# Kinds that may be merged with each other in strict mode
KIND_COMPATIBILITY: Dict[MediaType, FrozenSet[MediaType]] = {
    MediaType.ANIME: frozenset({MediaType.ANIME, MediaType.TV, MediaType.MOVIE}),
    MediaType.TV: frozenset({MediaType.TV, MediaType.ANIME}),
    MediaType.MOVIE: frozenset({MediaType.MOVIE, MediaType.ANIME}),
}


def normalize_title(title: str) -> str:
    """
    Normalize a title for equality comparison.

    Examples:
        "哈利·波特" -> "哈利波特"
        "The Dark Knight!" -> "thedarkknight"
        "进击的巨人 第二季" -> "进击的巨人第二季"
    """
    if not title:
        return ""

    normalized = title.lower()
    normalized = WHITESPACE.sub("", normalized)
    normalized = PUNCTUATION.sub("", normalized)
    normalized = NON_TITLE_CHARS.sub("", normalized)
    return normalized.strip()


def are_titles_similar(title1: str, title2: str) -> bool:
    norm1 = normalize_title(title1)
    norm2 = normalize_title(title2)
    if not norm1 or not norm2:
        return False
    return norm1 == norm2


def are_years_similar(year1: str, year2: str) -> bool:
    """Exact year match; an unknown year never blocks."""
    if not year1 or not year2 or year1 == YEAR_UNKNOWN or year2 == YEAR_UNKNOWN:
        return True
    return year1 == year2


def are_kinds_compatible(kind1, kind2) -> bool:
    kind1, kind2 = MediaType(kind1), MediaType(kind2)
    return kind2 in KIND_COMPATIBILITY[kind1]


def are_same_media(item1: CandidateItem, item2: CandidateItem, strict_kinds: bool = False) -> bool:
    """
    Return True when both candidates denote the same title.

    Args:
        item1: Candidate (usually the current cluster representative)
        item2: Candidate being placed
        strict_kinds: Also require compatible media kinds

    Returns:
        True if the candidates should be merged
    """
    if item1.identity == item2.identity:
        return True

    if not are_titles_similar(item1.title_zh, item2.title_zh):
        return False

    if not are_years_similar(item1.year, item2.year):
        return False

    if strict_kinds and not are_kinds_compatible(item1.media_type, item2.media_type):
        logger.debug(
            f"Kind mismatch blocks merge: '{item1.title_zh}' "
            f"({item1.media_type} vs {item2.media_type})"
        )
        return False

    return True
