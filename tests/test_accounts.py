import pytest

from mediahub_app.models import User
from mediahub_app.services import accounts
from mediahub_app.services.errors import ConflictError, ValidationError


def test_register_normalizes_email_and_defaults_name(db_session):
    user = accounts.register_user(db_session, "  Viewer@Example.COM ", "correct-horse")

    assert user.email == "viewer@example.com"
    assert user.display_name == "viewer"
    assert user.check_password("correct-horse")


def test_register_rejects_duplicates_and_bad_input(db_session):
    accounts.register_user(db_session, "viewer@example.com", "correct-horse")

    with pytest.raises(ConflictError):
        accounts.register_user(db_session, "VIEWER@example.com", "another-pass")
    with pytest.raises(ValidationError):
        accounts.register_user(db_session, "not-an-email", "correct-horse")
    with pytest.raises(ValidationError):
        accounts.register_user(db_session, "short@example.com", "short")

    assert db_session.query(User).count() == 1


def test_authenticate(db_session, user):
    assert accounts.authenticate(db_session, "viewer@example.com", "wrong-password") is None
    assert accounts.authenticate(db_session, "nobody@example.com", "correct-horse") is None
    assert accounts.authenticate(db_session, "viewer@example.com", "") is None

    signed_in = accounts.authenticate(db_session, "VIEWER@example.com", "correct-horse")
    assert signed_in.id == user.id
    assert signed_in.last_login is not None


def test_update_profile(db_session, user):
    updated = accounts.update_profile(
        db_session, user.id, display_name="  影迷  ", avatar_url="https://img.example.com/a.png",
    )
    assert updated.display_name == "影迷"
    assert updated.avatar_url == "https://img.example.com/a.png"

    accounts.update_profile(db_session, user.id, avatar_url="")
    assert db_session.get(User, user.id).avatar_url is None


def test_update_profile_checks_before_changing(db_session, user):
    with pytest.raises(ValidationError):
        accounts.update_profile(db_session, user.id, display_name="changed", avatar_url="ftp://x")
    assert db_session.get(User, user.id).display_name == "viewer"

    with pytest.raises(ValidationError):
        accounts.update_profile(db_session, user.id, new_password="new-password-1",
                                current_password="wrong")

    accounts.update_profile(db_session, user.id, new_password="new-password-1",
                            current_password="correct-horse")
    assert db_session.get(User, user.id).check_password("new-password-1")
