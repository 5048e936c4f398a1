import os
import tempfile

# Keep test runs off the real database and log directory
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="mediahub-logs-"))
os.environ["DEBUG_LOGGING"] = "false"
os.environ.pop("TMDB_ACCESS_TOKEN", None)

import pytest
from sqlalchemy.orm import sessionmaker

from mediahub_app.database import create_db_engine
from mediahub_app.metadata.models import CandidateItem, MediaType, ProviderType
from mediahub_app.models import Base, User


@pytest.fixture
def db_session():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def user(db_session):
    account = User(email="viewer@example.com", display_name="viewer")
    account.set_password("correct-horse")
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture
def other_user(db_session):
    account = User(email="other@example.com", display_name="other")
    account.set_password("battery-staple")
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture
def make_item():
    """Factory for CandidateItem with sensible movie defaults."""
    def _make(**overrides):
        fields = dict(
            source_type=ProviderType.TMDB,
            source_id="157336",
            source_url="https://www.themoviedb.org/movie/157336",
            media_type=MediaType.MOVIE,
            title_zh="星际穿越",
            year="2014",
        )
        fields.update(overrides)
        return CandidateItem(**fields)
    return _make
