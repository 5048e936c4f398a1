"""
================================================================================
MediaHub v1.0 - Database Models (Canonical Catalog)
================================================================================
SQLAlchemy models for the deduplicated media catalog and per-user watch lists.

ARCHITECTURE:
  - Media (Master): One row per real-world title, agnostic of provider.
    Holds the metadata captured when the title was first collected.
  - MediaSource (Child): A (provider, provider id) pair pointing at a Media.
    Globally unique; a Media accumulates sources over time.
  - User: Authentication via Flask-Login (UserMixin).
  - Collection: Links User -> Media with a watch status. One row per
    (user, media); collecting again updates the status.

Media rows are NOT unique by title: matching is fuzzy (title + year window)
and is done by services.resolver, not by a constraint.
================================================================================
"""

from datetime import datetime, timezone
import uuid
import os
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Text, JSON, Float,
    UniqueConstraint, Index
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.ext.declarative import declared_attr
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from flask_login import UserMixin as FlaskLoginUserMixin


# UUID type - use String for SQLite, UUID for PostgreSQL
def UUIDType():
    """Returns appropriate UUID column type for current database."""
    db_url = os.environ.get('DATABASE_URL', '')
    if db_url.startswith('postgres://') or db_url.startswith('postgresql://'):
        return PG_UUID(as_uuid=False)
    return String(36)  # SQLite fallback - stores UUID as string


def utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


Base = declarative_base()

# Watch statuses accepted for a Collection row
WATCH_STATUSES = ('wish', 'watching', 'watched', 'on_hold', 'dropped')

# =============================================================================
# MIXINS
# =============================================================================

class TimestampMixin:
    """Adds created_at and updated_at timestamps to models."""
    @declared_attr
    def created_at(cls):
        return Column(DateTime, default=utcnow, nullable=False)

    @declared_attr
    def updated_at(cls):
        return Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

# =============================================================================
# USER & AUTHENTICATION
# =============================================================================

class User(Base, FlaskLoginUserMixin, TimestampMixin):
    """User model for authentication and profile."""
    __tablename__ = 'users'

    id = Column(UUIDType(), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(100))
    avatar_url = Column(String(500), nullable=True)  # Profile picture URL
    last_login = Column(DateTime, nullable=True)

    collections = relationship("Collection", back_populates="user", cascade="all, delete-orphan")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'display_name': self.display_name,
            'avatar_url': self.avatar_url,
            'last_login': _iso(self.last_login),
            'created_at': _iso(self.created_at)
        }

# =============================================================================
# CATALOG (Master Entity Pattern)
# =============================================================================

class Media(Base, TimestampMixin):
    """
    Canonical record for one movie, TV series or anime.
    Aggregates identities from multiple providers (MediaSources).
    """
    __tablename__ = 'media'

    id = Column(UUIDType(), primary_key=True, default=lambda: str(uuid.uuid4()))
    media_type = Column(String(20), nullable=False)  # movie, tv, anime
    title_zh = Column(String(500), nullable=False)
    title_original = Column(String(500))
    release_date = Column(String(50))
    duration = Column(String(100))
    year = Column(String(10))
    poster_url = Column(String(1000))
    summary = Column(Text)

    # {"info": str, "actors": [...], "directors": [...]}
    staff = Column(JSON, nullable=True)
    directors = Column(JSON, default=list)
    actors = Column(JSON, default=list)
    networks = Column(JSON, default=list)  # [{"name": str, "logoUrl": str}]

    # Ratings (aggregate + per provider, None = provider never rated it)
    rating = Column(Float, nullable=False, default=0.0)
    rating_douban = Column(Float, nullable=True)
    rating_imdb = Column(Float, nullable=True)
    rating_bangumi = Column(Float, nullable=True)
    rating_maoyan = Column(Float, nullable=True)

    sources = relationship(
        "MediaSource", back_populates="media",
        cascade="all, delete-orphan", order_by="MediaSource.created_at"
    )
    collections = relationship("Collection", back_populates="media", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_media_type_title_zh', 'media_type', 'title_zh'),
        Index('idx_media_type_title_original', 'media_type', 'title_original'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'mediaType': self.media_type,
            'titleZh': self.title_zh,
            'titleOriginal': self.title_original,
            'releaseDate': self.release_date,
            'duration': self.duration,
            'year': self.year,
            'posterUrl': self.poster_url,
            'summary': self.summary,
            'staff': self.staff,
            'directors': self.directors or [],
            'actors': self.actors or [],
            'networks': self.networks or [],
            'rating': self.rating,
            'ratingDouban': self.rating_douban,
            'ratingImdb': self.rating_imdb,
            'ratingBangumi': self.rating_bangumi,
            'ratingMaoyan': self.rating_maoyan,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class MediaSource(Base, TimestampMixin):
    """
    Links a Media to one provider identity (TMDb id, Bangumi subject, ...).
    """
    __tablename__ = 'media_sources'

    id = Column(UUIDType(), primary_key=True, default=lambda: str(uuid.uuid4()))
    media_id = Column(UUIDType(), ForeignKey('media.id'), nullable=False)

    source_type = Column(String(20), nullable=False)  # tmdb, bgm, douban, maoyan
    source_id = Column(String(255), nullable=False)
    source_url = Column(String(1000), nullable=False, default='')

    media = relationship("Media", back_populates="sources")

    __table_args__ = (
        # One canonical owner per provider identity
        UniqueConstraint('source_type', 'source_id', name='uq_media_source'),
        Index('idx_media_sources_media', 'media_id'),
    )

    def to_dict(self):
        return {
            'sourceType': self.source_type,
            'sourceId': self.source_id,
            'sourceUrl': self.source_url,
        }

# =============================================================================
# WATCH LISTS
# =============================================================================

class Collection(Base, TimestampMixin):
    """
    User's watch-list entry.
    """
    __tablename__ = 'collections'

    id = Column(UUIDType(), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(UUIDType(), ForeignKey('users.id'), nullable=False)
    media_id = Column(UUIDType(), ForeignKey('media.id'), nullable=False)
    status = Column(String(20), nullable=False, default='wish')

    user = relationship("User", back_populates="collections")
    media = relationship("Media", back_populates="collections")

    __table_args__ = (
        UniqueConstraint('user_id', 'media_id', name='uq_user_media'),
        Index('idx_collections_user_created', 'user_id', 'created_at'),
    )

    def to_dict(self):
        return {
            'collectionId': self.id,
            'mediaId': self.media_id,
            'status': self.status,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
