"""
MediaHub Services Module

Persistence-side operations:
- resolver: canonical media resolution (find or create)
- collections: per-user watch lists
- media: catalog reads
- accounts: registration, login checks, profile edits
"""

from .errors import ServiceError, ValidationError, NotFoundError, ConflictError
from .resolver import MediaPayload, resolve_media, is_year_match
from .collections import (
    VALID_STATUSES, collect, upsert_collection, update_status,
    remove_collection, check_status, list_for_user,
)
from .media import get_media, get_media_by_source, get_media_sources, pick_display_source

__all__ = [
    'ServiceError', 'ValidationError', 'NotFoundError', 'ConflictError',
    'MediaPayload', 'resolve_media', 'is_year_match',
    'VALID_STATUSES', 'collect', 'upsert_collection', 'update_status',
    'remove_collection', 'check_status', 'list_for_user',
    'get_media', 'get_media_by_source', 'get_media_sources', 'pick_display_source',
]
