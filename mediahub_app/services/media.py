"""
Catalog read operations.

Every read returns the Media fields plus one "display" provider identity
and, when a user is given, that user's collection state for the title.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..metadata.models import MediaType, ProviderType
from ..models import Collection, Media, MediaSource

logger = logging.getLogger(__name__)

# Preferred display provider per media kind
PREFERRED_SOURCE = {
    MediaType.ANIME.value: ProviderType.BANGUMI.value,
}
DEFAULT_PREFERRED_SOURCE = ProviderType.TMDB.value


def pick_display_source(media_type: str, sources: Sequence[MediaSource]) -> Optional[MediaSource]:
    """
    First source by default. With several sources, anime prefers Bangumi
    and everything else prefers TMDb.
    """
    if not sources:
        return None

    chosen = sources[0]
    if len(sources) > 1:
        preferred = PREFERRED_SOURCE.get(media_type, DEFAULT_PREFERRED_SOURCE)
        for source in sources:
            if source.source_type == preferred:
                chosen = source
                break
    return chosen


def load_sources(session: Session, media_id: str) -> List[MediaSource]:
    return session.query(MediaSource).filter_by(
        media_id=media_id
    ).order_by(MediaSource.created_at).all()


def media_to_dict(media: Media, sources: Sequence[MediaSource]) -> dict:
    """Media fields plus the display source identity."""
    data = media.to_dict()
    source = pick_display_source(media.media_type, sources)
    data['sourceId'] = source.source_id if source else ""
    data['sourceType'] = source.source_type if source else ""
    data['sourceUrl'] = source.source_url if source else ""
    return data


def _with_user_state(session: Session, media: Media, user_id: Optional[str]) -> dict:
    data = media_to_dict(media, load_sources(session, media.id))

    collection = None
    if user_id:
        collection = session.query(Collection).filter_by(
            user_id=user_id, media_id=media.id
        ).first()

    data['collectionId'] = collection.id if collection else ""
    data['watchingStatus'] = collection.status if collection else None
    data['isCollected'] = collection is not None
    return data


def get_media(session: Session, media_id: str, user_id: Optional[str] = None) -> Optional[dict]:
    media = session.get(Media, media_id)
    if media is None:
        return None
    return _with_user_state(session, media, user_id)


def get_media_by_source(
    session: Session,
    source_type: str,
    source_id: str,
    user_id: Optional[str] = None
) -> Optional[dict]:
    source = session.query(MediaSource).filter_by(
        source_type=source_type, source_id=source_id
    ).first()
    if source is None:
        return None

    media = session.get(Media, source.media_id)
    if media is None:
        return None
    return _with_user_state(session, media, user_id)


def get_media_sources(session: Session, media_id: str) -> List[dict]:
    return [source.to_dict() for source in load_sources(session, media_id)]
