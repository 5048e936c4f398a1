"""
================================================================================
MediaHub v1.0 - Collection Service
================================================================================
Per-user watch state on top of the canonical catalog.

  collect()            validate -> resolve media -> upsert collection
  upsert_collection()  one row per (user, media); collecting again updates
  update_status()      owner only
  remove_collection()  owner only
  check_status()       by provider identity
  list_for_user()      newest first, optional status filter

A missing row and a row owned by someone else are reported the same way.
================================================================================
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Collection, Media, WATCH_STATUSES, utcnow
from .errors import COLLECTION_NOT_FOUND, NotFoundError, ValidationError
from .media import load_sources, media_to_dict
from .resolver import MediaPayload, find_source, resolve_media

logger = logging.getLogger(__name__)

VALID_STATUSES = WATCH_STATUSES


def validate_status(status) -> str:
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status: {status}. Must be one of: {', '.join(VALID_STATUSES)}"
        )
    return status


def _find_collection(session: Session, user_id: str, media_id: str) -> Optional[Collection]:
    return session.query(Collection).filter_by(user_id=user_id, media_id=media_id).first()


def _owned_collection(session: Session, user_id: str, collection_id: str) -> Collection:
    collection = session.get(Collection, collection_id)
    if collection is None or collection.user_id != user_id:
        raise NotFoundError(COLLECTION_NOT_FOUND)
    return collection


def upsert_collection(session: Session, user_id: str, media_id: str, status: str) -> str:
    """
    Record a user's watch status for a media.

    Returns:
        Collection id (existing row when the user already collected it)

    Raises:
        ValidationError: Invalid status (nothing is written)
        NotFoundError: Unknown media id
    """
    validate_status(status)
    if session.get(Media, media_id) is None:
        raise NotFoundError("Media not found")

    existing = _find_collection(session, user_id, media_id)
    if existing:
        existing.status = status
        existing.updated_at = utcnow()
        session.commit()
        return existing.id

    now = utcnow()
    collection = Collection(
        user_id=user_id,
        media_id=media_id,
        status=status,
        created_at=now,
        updated_at=now,
    )
    session.add(collection)

    try:
        session.flush()
    except IntegrityError:
        # Another request inserted the same (user, media) first
        session.rollback()
        existing = _find_collection(session, user_id, media_id)
        if existing is None:
            raise
        existing.status = status
        existing.updated_at = utcnow()
        session.commit()
        return existing.id

    collection_id = collection.id
    session.commit()
    return collection_id


def collect(session: Session, user_id: str, payload: MediaPayload, status: str) -> dict:
    """
    Resolve a provider item to canonical media and add it to the user's list.

    Resolution and the collection write commit separately.
    """
    validate_status(status)

    media_id = resolve_media(session, payload)
    collection_id = upsert_collection(session, user_id, media_id, status)

    logger.info(f"User {user_id} collected media {media_id} as '{status}'")
    return {'collectionId': collection_id, 'mediaId': media_id, 'status': status}


def update_status(session: Session, user_id: str, collection_id: str, status: str) -> dict:
    collection = _owned_collection(session, user_id, collection_id)
    validate_status(status)

    collection.status = status
    collection.updated_at = utcnow()
    session.commit()
    return {'success': True, 'status': status}


def remove_collection(session: Session, user_id: str, collection_id: str) -> None:
    collection = _owned_collection(session, user_id, collection_id)
    session.delete(collection)
    session.commit()
    logger.info(f"User {user_id} removed collection {collection_id}")


def check_status(session: Session, user_id: str, source_type: str, source_id: str) -> Optional[dict]:
    """Collection state for a provider identity, or None."""
    source = find_source(session, source_type, source_id)
    if source is None:
        return None

    collection = _find_collection(session, user_id, source.media_id)
    if collection is None:
        return None

    return {'collectionId': collection.id, 'status': collection.status}


def list_for_user(session: Session, user_id: str, status: Optional[str] = None) -> List[dict]:
    """
    User's collected media, newest first.

    Each entry is the Media fields plus display source, collectionId,
    watchingStatus, collectedAt and isCollected.
    """
    query = session.query(Collection).filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)

    results = []
    for collection in query.order_by(Collection.created_at.desc()).all():
        media = collection.media
        if media is None:
            continue

        data = media_to_dict(media, load_sources(session, media.id))
        data['collectionId'] = collection.id
        data['watchingStatus'] = collection.status
        data['collectedAt'] = collection.created_at.isoformat() if collection.created_at else None
        data['isCollected'] = True
        results.append(data)

    return results
