"""
================================================================================
MediaHub v1.0 - Canonical Resolver
================================================================================
Maps an externally-sourced item onto the canonical catalog.

Resolution order:
  1. Exact provider identity (media_sources.source_type + source_id)
  2. Same kind + same Chinese title, else same kind + same original title
  3. Candidate accepted when years are within one year of each other
     (or either side has no year)
  4. Otherwise a new Media row is created

The provider identity is protected by a UNIQUE constraint. Two requests
racing to collect the same item both try to insert the MediaSource; the
loser gets an IntegrityError, rolls back and re-reads the winner's row.
================================================================================
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..metadata.models import (
    CandidateItem, MediaType, ProviderType, YEAR_UNKNOWN,
)
from ..models import Media, MediaSource
from .errors import ValidationError

logger = logging.getLogger(__name__)

LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Order used for the aggregate rating of a new Media row
RATING_FALLBACK_ORDER = ('rating_douban', 'rating_imdb', 'rating_bangumi', 'rating_maoyan')


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def parse_json_list(value) -> List:
    """Accept a list or a JSON-encoded list; anything else is an empty list."""
    if not value:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        if isinstance(parsed, list):
            return parsed
    return []


def parse_number(value) -> Optional[float]:
    """Accept a number or a numeric string; None when absent or unparsable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def parse_staff(value) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if not isinstance(value, dict):
        return None
    return {
        'info': value.get('info'),
        'actors': parse_json_list(value.get('actors')),
        'directors': parse_json_list(value.get('directors')),
    }


def parse_networks(value) -> List[Dict[str, str]]:
    networks = []
    for entry in parse_json_list(value):
        if not isinstance(entry, dict):
            continue
        name = entry.get('name') or ''
        if name:
            networks.append({'name': name, 'logoUrl': entry.get('logoUrl') or ''})
    return networks


def _get(data: dict, *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _text(data: dict, key: str) -> Optional[str]:
    """Scalar field as a string; numbers are accepted (e.g. a bare year)."""
    value = _get(data, key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"Field '{key}' must be a string")
    return str(value)


@dataclass
class MediaPayload:
    """Normalized "collect this item" request."""
    source_type: str
    source_id: str
    source_url: str
    media_type: str
    title_zh: str
    title_original: Optional[str] = None
    release_date: Optional[str] = None
    duration: Optional[str] = None
    year: Optional[str] = None
    poster_url: Optional[str] = None
    summary: Optional[str] = None
    staff: Optional[Dict[str, Any]] = None
    directors: List[str] = field(default_factory=list)
    actors: List[str] = field(default_factory=list)
    networks: List[Dict[str, str]] = field(default_factory=list)
    rating_douban: Optional[float] = None
    rating_imdb: Optional[float] = None
    rating_bangumi: Optional[float] = None
    rating_maoyan: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> "MediaPayload":
        """
        Build a payload from a JSON request body (camelCase keys).

        List fields may be real lists or JSON-encoded strings, ratings may be
        numbers or numeric strings, staff may be an object or a JSON string.

        Raises:
            ValidationError: Missing required field, non-scalar text field
                or unknown provider/kind
        """
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        required = {
            'sourceType': _text(data, 'sourceType'),
            'sourceId': _text(data, 'sourceId'),
            'mediaType': _text(data, 'mediaType'),
            'titleZh': _text(data, 'titleZh'),
        }
        missing = [name for name, value in required.items() if not str(value or '').strip()]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}")

        source_type = str(required['sourceType']).strip()
        media_type = str(required['mediaType']).strip()
        if source_type not in {p.value for p in ProviderType}:
            raise ValidationError(f"Unknown source type: {source_type}")
        if media_type not in {m.value for m in MediaType}:
            raise ValidationError(f"Unknown media type: {media_type}")

        return cls(
            source_type=source_type,
            source_id=str(required['sourceId']).strip(),
            source_url=_text(data, 'sourceUrl') or '',
            media_type=media_type,
            title_zh=str(required['titleZh']).strip(),
            title_original=_text(data, 'titleOriginal') or None,
            release_date=_text(data, 'releaseDate'),
            duration=_text(data, 'duration'),
            year=_text(data, 'year'),
            poster_url=_text(data, 'posterUrl'),
            summary=_text(data, 'summary'),
            staff=parse_staff(_get(data, 'staff', 'staffJson')),
            directors=parse_json_list(_get(data, 'directors', 'directorsJson')),
            actors=parse_json_list(_get(data, 'actors', 'actorsJson')),
            networks=parse_networks(_get(data, 'networks', 'networksJson')),
            rating_douban=parse_number(_get(data, 'ratingDouban')),
            rating_imdb=parse_number(_get(data, 'ratingImdb')),
            rating_bangumi=parse_number(_get(data, 'ratingBangumi')),
            rating_maoyan=parse_number(_get(data, 'ratingMaoyan')),
        )

    @classmethod
    def from_candidate(cls, item: CandidateItem) -> "MediaPayload":
        """Build a payload from a search result; zero ratings become absent."""
        return cls(
            source_type=ProviderType(item.source_type).value,
            source_id=item.source_id,
            source_url=item.source_url,
            media_type=MediaType(item.media_type).value,
            title_zh=item.title_zh,
            title_original=item.title_original or None,
            release_date=item.release_date,
            duration=item.duration,
            year=item.year,
            poster_url=item.poster_url,
            summary=item.summary,
            staff={
                'info': item.staff,
                'actors': list(item.actors),
                'directors': list(item.directors),
            } if item.staff else None,
            directors=list(item.directors),
            actors=list(item.actors),
            rating_douban=item.rating_douban or None,
            rating_imdb=item.rating_imdb or None,
            rating_bangumi=item.rating_bangumi or None,
            rating_maoyan=item.rating_maoyan or None,
        )

    def aggregate_rating(self) -> float:
        for slot in RATING_FALLBACK_ORDER:
            value = getattr(self, slot)
            if value is not None:
                return value
        return 0.0


# =============================================================================
# MATCHING
# =============================================================================

def _year_number(year: str) -> Optional[int]:
    match = LEADING_INT.match(str(year)[:4])
    return int(match.group(1)) if match else None


def is_year_match(year1: Optional[str], year2: Optional[str]) -> bool:
    """
    True when both years parse (first four characters) and differ by at most 1.

    Examples:
        is_year_match("2013", "2014") -> True
        is_year_match("2013-04-07", "2012") -> True
        is_year_match("2013", "2015") -> False
        is_year_match("----", "2013") -> False
    """
    if not year1 or not year2:
        return False
    n1, n2 = _year_number(year1), _year_number(year2)
    if n1 is None or n2 is None:
        return False
    return abs(n1 - n2) <= 1


def has_year(year: Optional[str]) -> bool:
    if not year:
        return False
    year = str(year).strip()
    return bool(year) and year != YEAR_UNKNOWN


def years_compatible(year1: Optional[str], year2: Optional[str]) -> bool:
    if has_year(year1) and has_year(year2):
        return is_year_match(year1, year2)
    return True


def find_source(session: Session, source_type: str, source_id: str) -> Optional[MediaSource]:
    return session.query(MediaSource).filter_by(
        source_type=source_type, source_id=source_id
    ).first()


def find_candidate(session: Session, payload: MediaPayload) -> Optional[Media]:
    """Same kind and Chinese title, falling back to the original title."""
    candidate = session.query(Media).filter_by(
        media_type=payload.media_type, title_zh=payload.title_zh
    ).order_by(Media.created_at).first()

    if candidate is None and payload.title_original:
        candidate = session.query(Media).filter_by(
            media_type=payload.media_type, title_original=payload.title_original
        ).order_by(Media.created_at).first()

    return candidate


def _new_media(payload: MediaPayload) -> Media:
    return Media(
        media_type=payload.media_type,
        title_zh=payload.title_zh,
        title_original=payload.title_original,
        release_date=payload.release_date,
        duration=payload.duration,
        year=payload.year,
        poster_url=payload.poster_url,
        summary=payload.summary,
        staff=payload.staff,
        directors=payload.directors,
        actors=payload.actors,
        networks=payload.networks,
        rating=payload.aggregate_rating(),
        rating_douban=payload.rating_douban,
        rating_imdb=payload.rating_imdb,
        rating_bangumi=payload.rating_bangumi,
        rating_maoyan=payload.rating_maoyan,
    )


def _is_bangumi_staff_update(payload: MediaPayload) -> bool:
    return (
        payload.source_type == ProviderType.BANGUMI.value
        and payload.media_type == MediaType.ANIME.value
        and bool(payload.staff)
        and bool(payload.staff.get('info'))
    )


# =============================================================================
# RESOLUTION
# =============================================================================

def resolve_media(session: Session, payload: MediaPayload) -> str:
    """
    Find or create the canonical Media for a provider item.

    Commits on success. On a lost insert race the session is rolled back
    and the winning row is returned.

    Args:
        session: Database session
        payload: Normalized item

    Returns:
        Media id
    """
    existing = find_source(session, payload.source_type, payload.source_id)
    if existing:
        logger.debug(f"Exact source match {payload.source_type}:{payload.source_id} -> {existing.media_id}")
        return existing.media_id

    candidate = find_candidate(session, payload)

    if candidate is not None and years_compatible(payload.year, candidate.year):
        media = candidate
        if _is_bangumi_staff_update(payload):
            media.staff = payload.staff
        logger.info(
            f"Attached {payload.source_type}:{payload.source_id} to existing media "
            f"'{media.title_zh}' ({media.id})"
        )
    else:
        media = _new_media(payload)
        session.add(media)
        session.flush()  # Get media.id
        logger.info(f"Created media '{media.title_zh}' ({media.id}) from {payload.source_type}")

    session.add(MediaSource(
        media_id=media.id,
        source_type=payload.source_type,
        source_id=payload.source_id,
        source_url=payload.source_url or '',
    ))

    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        winner = find_source(session, payload.source_type, payload.source_id)
        if winner is None:
            raise
        logger.warning(
            f"Lost insert race for {payload.source_type}:{payload.source_id}, "
            f"using media {winner.media_id}"
        )
        return winner.media_id

    media_id = media.id
    session.commit()
    return media_id
