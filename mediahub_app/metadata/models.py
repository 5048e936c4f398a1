"""
================================================================================
MediaHub v1.0 - Candidate Models
================================================================================
Normalized search-hit model shared by every provider adapter.

Every provider (TMDb, Bangumi, Douban, Maoyan) maps its raw payload onto the
same CandidateItem shape, so the scorer, matcher and merger never look at
provider-specific JSON or HTML.
================================================================================
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List


# =============================================================================
# ENUMS
# =============================================================================

class ProviderType(str, Enum):
    """
    Known providers.

    Declaration order matters: the first member is the primary
    authoritative provider for completeness scoring.
    """
    TMDB = "tmdb"
    BANGUMI = "bgm"
    DOUBAN = "douban"
    MAOYAN = "maoyan"


class MediaType(str, Enum):
    """Media kind."""
    MOVIE = "movie"
    TV = "tv"
    ANIME = "anime"


class SearchKind(str, Enum):
    """Kind filter accepted by the search aggregator."""
    MOVIE = "movie"
    ANIME = "anime"
    ALL = "all"


PRIMARY_PROVIDER = list(ProviderType)[0]

# Placeholder values emitted by providers when a field is missing
YEAR_UNKNOWN = "----"
SUMMARY_MISSING = "暂无简介"
DURATION_UNKNOWN = "未知"
DATE_UNKNOWN = "未知日期"
TITLE_UNKNOWN = "未知标题"
STAFF_MISSING = "暂无制作信息"

# Raw hits kept per provider before detail enrichment
MAX_RESULTS_PER_PROVIDER = 8


# =============================================================================
# DATA MODELS
# =============================================================================

@dataclass
class CandidateItem:
    """
    One provider's hit for a query, before merging.

    Ratings use 0.0 for "not rated by this provider". `score` is the
    completeness score assigned during aggregation and is never persisted.
    """
    source_type: ProviderType
    source_id: str
    source_url: str
    media_type: MediaType
    title_zh: str
    title_original: str = ""
    release_date: str = DATE_UNKNOWN
    duration: str = DURATION_UNKNOWN
    year: str = YEAR_UNKNOWN
    poster_url: str = ""
    summary: str = SUMMARY_MISSING
    staff: str = ""
    directors: List[str] = field(default_factory=list)
    actors: List[str] = field(default_factory=list)

    # Ratings
    rating: float = 0.0
    rating_douban: float = 0.0
    rating_imdb: float = 0.0
    rating_bangumi: float = 0.0
    rating_maoyan: float = 0.0

    # Maoyan extras
    wish: str = ""
    is_new: bool = False

    match_count: int = 1
    score: int = field(default=0, compare=False)

    @property
    def identity(self):
        """(provider, provider-local id) pair."""
        return (ProviderType(self.source_type), self.source_id)

    def has_year(self) -> bool:
        return bool(self.year) and self.year != YEAR_UNKNOWN

    def has_summary(self) -> bool:
        return bool(self.summary) and self.summary != SUMMARY_MISSING

    def copy(self) -> "CandidateItem":
        """Shallow copy with independent list fields."""
        return replace(
            self,
            directors=list(self.directors),
            actors=list(self.actors),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'sourceType': ProviderType(self.source_type).value,
            'sourceId': self.source_id,
            'sourceUrl': self.source_url,
            'mediaType': MediaType(self.media_type).value,
            'titleZh': self.title_zh,
            'titleOriginal': self.title_original,
            'releaseDate': self.release_date,
            'duration': self.duration,
            'year': self.year,
            'posterUrl': self.poster_url,
            'summary': self.summary,
            'staff': self.staff,
            'directors': self.directors,
            'actors': self.actors,
            'rating': self.rating,
            'ratingDouban': self.rating_douban,
            'ratingImdb': self.rating_imdb,
            'ratingBangumi': self.rating_bangumi,
            'ratingMaoyan': self.rating_maoyan,
            'wish': self.wish,
            'isNew': self.is_new,
            'matchCount': self.match_count,
        }
