"""
User accounts.

Registration, credential checks and profile edits. Collections hang off
User.id; nothing here touches the catalog.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import User
from .errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MAX_EMAIL_LENGTH = 255
MAX_DISPLAY_NAME_LENGTH = 100
MAX_AVATAR_URL_LENGTH = 500

# RFC 5322, simplified
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def normalize_email(email) -> str:
    return str(email or '').strip().lower()


def _check_new_password(password) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_LENGTH} characters")
    return password


def _clean_avatar_url(avatar_url) -> Optional[str]:
    """Empty clears the avatar; anything else must be an http(s) URL."""
    avatar_url = str(avatar_url).strip()
    if not avatar_url:
        return None
    if not avatar_url.startswith(('http://', 'https://')):
        raise ValidationError("Invalid avatar URL (must be http/https)")
    return avatar_url[:MAX_AVATAR_URL_LENGTH]


def register_user(session: Session, email, password, display_name=None) -> User:
    """
    Create an account.

    Raises:
        ValidationError: Bad email or password
        ConflictError: Email already registered
    """
    email = normalize_email(email)
    if len(email) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    _check_new_password(password)

    if session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    name = str(display_name or '').strip() or email.split('@')[0]
    user = User(email=email, display_name=name[:MAX_DISPLAY_NAME_LENGTH])
    user.set_password(password)
    session.add(user)

    try:
        session.commit()
    except IntegrityError:
        # Same email registered concurrently
        session.rollback()
        raise ConflictError("Email already registered")

    logger.info(f"Registered user {user.id}")
    return user


def authenticate(session: Session, email, password) -> Optional[User]:
    """User for valid credentials (last_login stamped), else None."""
    if not password:
        return None

    user = session.query(User).filter_by(email=normalize_email(email)).first()
    if user is None or not user.check_password(password):
        return None

    user.last_login = datetime.now(timezone.utc)
    session.commit()
    return user


def update_profile(
    session: Session,
    user_id: str,
    display_name=None,
    avatar_url=None,
    new_password=None,
    current_password=None
) -> User:
    """
    Apply profile edits. Every field is optional; all checks run before
    anything is changed.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    changes = {}
    if display_name is not None:
        changes['display_name'] = str(display_name).strip()[:MAX_DISPLAY_NAME_LENGTH]
    if avatar_url is not None:
        changes['avatar_url'] = _clean_avatar_url(avatar_url)

    if new_password:
        if not current_password:
            raise ValidationError("Current password required")
        if not user.check_password(current_password):
            raise ValidationError("Incorrect current password")
        _check_new_password(new_password)

    for name, value in changes.items():
        setattr(user, name, value)
    if new_password:
        user.set_password(new_password)

    session.commit()
    return user
