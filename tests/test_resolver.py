import json

import pytest

from mediahub_app.metadata.models import MediaType, ProviderType
from mediahub_app.models import Media, MediaSource
from mediahub_app.services import resolver
from mediahub_app.services.errors import ValidationError
from mediahub_app.services.resolver import MediaPayload, is_year_match, resolve_media


def _payload(**overrides):
    fields = dict(
        source_type="tmdb",
        source_id="157336",
        source_url="https://www.themoviedb.org/movie/157336",
        media_type="movie",
        title_zh="星际穿越",
        title_original="Interstellar",
        year="2014",
    )
    fields.update(overrides)
    return MediaPayload(**fields)


@pytest.mark.parametrize("y1, y2, expected", [
    ("2014", "2014", True),
    ("2014", "2015", True),
    ("2014-11-12", "2013", True),
    ("2014", "2016", False),
    ("----", "2014", False),
    ("", "2014", False),
    (None, "2014", False),
])
def test_is_year_match(y1, y2, expected):
    assert is_year_match(y1, y2) is expected


def test_same_provider_id_reuses_media(db_session):
    first = resolve_media(db_session, _payload())
    second = resolve_media(db_session, _payload(title_zh="完全不同的标题", year="1999"))

    assert first == second
    assert db_session.query(Media).count() == 1
    assert db_session.query(MediaSource).count() == 1


def test_cross_provider_attaches_to_existing_media(db_session):
    media_id = resolve_media(db_session, _payload())
    douban_id = resolve_media(db_session, _payload(
        source_type="douban", source_id="1889243",
        source_url="https://movie.douban.com/subject/1889243", title_original=None,
    ))

    assert douban_id == media_id
    assert db_session.query(Media).count() == 1
    sources = {(s.source_type, s.source_id) for s in db_session.query(MediaSource).all()}
    assert sources == {("tmdb", "157336"), ("douban", "1889243")}


def test_original_title_fallback(db_session):
    media_id = resolve_media(db_session, _payload())
    maoyan_id = resolve_media(db_session, _payload(
        source_type="maoyan", source_id="78536", title_zh="星际启示录", year="2015",
    ))
    assert maoyan_id == media_id


def test_year_outside_window_creates_new_media(db_session):
    original = resolve_media(db_session, _payload(title_zh="沙丘", title_original="Dune", year="1984",
                                                  source_id="841"))
    remake = resolve_media(db_session, _payload(title_zh="沙丘", title_original="Dune", year="2021",
                                                source_id="438631"))

    assert original != remake
    assert db_session.query(Media).count() == 2


def test_missing_year_is_compatible(db_session):
    media_id = resolve_media(db_session, _payload(year="----"))
    other = resolve_media(db_session, _payload(source_type="douban", source_id="1", year="2014"))
    assert other == media_id


def test_blank_year_is_compatible(db_session):
    media_id = resolve_media(db_session, _payload())
    other = resolve_media(db_session, _payload(source_type="douban", source_id="1889243",
                                               title_original=None, year="   "))

    assert resolver.years_compatible("   ", "2014") is True
    assert other == media_id
    assert db_session.query(Media).count() == 1


def test_different_kind_is_a_different_media(db_session):
    movie = resolve_media(db_session, _payload())
    tv = resolve_media(db_session, _payload(source_type="douban", source_id="2", media_type="tv"))
    assert movie != tv


def test_new_media_rating_fallback(db_session):
    media_id = resolve_media(db_session, _payload(rating_imdb=8.4, rating_maoyan=9.3))
    media = db_session.get(Media, media_id)
    assert media.rating == 8.4
    assert media.rating_douban is None

    bare_id = resolve_media(db_session, _payload(source_id="2", title_zh="无评分", title_original=None))
    assert db_session.get(Media, bare_id).rating == 0.0


def test_bangumi_staff_overwrites_on_attach(db_session):
    media_id = resolve_media(db_session, _payload(
        source_id="1429", media_type="anime", title_zh="进击的巨人", year="2013",
        staff={"info": "TMDb staff", "actors": [], "directors": []},
    ))
    bgm_staff = {"info": "导演: 荒木哲郎 / 脚本: 小林靖子", "actors": [], "directors": ["荒木哲郎"]}
    attached = resolve_media(db_session, _payload(
        source_type="bgm", source_id="55770", media_type="anime", title_zh="进击的巨人",
        year="2013", staff=bgm_staff,
    ))

    assert attached == media_id
    assert db_session.get(Media, media_id).staff == bgm_staff


def test_non_bangumi_attach_leaves_staff(db_session):
    staff = {"info": "original", "actors": [], "directors": []}
    media_id = resolve_media(db_session, _payload(staff=staff))
    resolve_media(db_session, _payload(source_type="douban", source_id="9",
                                       staff={"info": "other", "actors": [], "directors": []}))
    assert db_session.get(Media, media_id).staff == staff


def test_lost_insert_race_returns_winner(db_session, monkeypatch):
    winner_id = resolve_media(db_session, _payload())

    real_find_source = resolver.find_source
    calls = []

    def stale_find_source(session, source_type, source_id):
        calls.append(source_id)
        # First lookup misses, as if the other request had not committed yet
        if len(calls) == 1:
            return None
        return real_find_source(session, source_type, source_id)

    monkeypatch.setattr(resolver, "find_source", stale_find_source)

    media_id = resolve_media(db_session, _payload(title_zh="另一个标题", year="1990"))

    assert media_id == winner_id
    assert len(calls) == 2
    assert db_session.query(Media).count() == 1
    assert db_session.query(MediaSource).count() == 1


def test_payload_from_dict_accepts_json_strings():
    payload = MediaPayload.from_dict({
        "sourceType": "bgm",
        "sourceId": 55770,
        "sourceUrl": "https://bgm.tv/subject/55770",
        "mediaType": "anime",
        "titleZh": "进击的巨人",
        "directorsJson": json.dumps(["荒木哲郎"]),
        "actors": ["梶裕贵"],
        "staffJson": json.dumps({"info": "导演: 荒木哲郎", "actors": "[\"梶裕贵\"]"}),
        "networksJson": json.dumps([{"name": "MBS", "logoUrl": "https://x/mbs.png"}, {"logoUrl": "x"}]),
        "ratingBangumi": "8.2",
        "ratingImdb": "n/a",
    })

    assert payload.source_id == "55770"
    assert payload.directors == ["荒木哲郎"]
    assert payload.actors == ["梶裕贵"]
    assert payload.staff == {"info": "导演: 荒木哲郎", "actors": ["梶裕贵"], "directors": []}
    assert payload.networks == [{"name": "MBS", "logoUrl": "https://x/mbs.png"}]
    assert payload.rating_bangumi == 8.2
    assert payload.rating_imdb is None
    assert payload.aggregate_rating() == 8.2


@pytest.mark.parametrize("data", [
    {"sourceType": "tmdb", "sourceId": "1", "mediaType": "movie"},
    {"sourceType": "imdb", "sourceId": "1", "mediaType": "movie", "titleZh": "x"},
    {"sourceType": "tmdb", "sourceId": "1", "mediaType": "music", "titleZh": "x"},
    {"sourceType": "tmdb", "sourceId": "  ", "mediaType": "movie", "titleZh": "x"},
    {"sourceType": "tmdb", "sourceId": "1", "mediaType": "movie", "titleZh": "x", "posterUrl": ["x"]},
    {"sourceType": "tmdb", "sourceId": "1", "mediaType": "movie", "titleZh": ["x"]},
    {"sourceType": "tmdb", "sourceId": "1", "mediaType": "movie", "titleZh": "x", "summary": {"zh": "x"}},
])
def test_payload_from_dict_rejects_invalid(data):
    with pytest.raises(ValidationError):
        MediaPayload.from_dict(data)


def test_payload_from_dict_numeric_year(db_session):
    media_id = resolve_media(db_session, _payload(
        source_id="27205", title_zh="盗梦空间", title_original="Inception", year="2010",
    ))
    payload = MediaPayload.from_dict({
        "sourceType": "douban",
        "sourceId": 3541415,
        "mediaType": "movie",
        "titleZh": "盗梦空间",
        "year": 2010,
        "duration": 148,
    })

    assert payload.year == "2010"
    assert payload.duration == "148"
    assert resolve_media(db_session, payload) == media_id
    assert db_session.query(Media).count() == 1

def test_payload_from_candidate(make_item):
    item = make_item(
        source_type=ProviderType.BANGUMI, source_id="55770", media_type=MediaType.ANIME,
        staff="导演: 荒木哲郎", directors=["荒木哲郎"], rating_bangumi=8.2,
    )
    payload = MediaPayload.from_candidate(item)

    assert payload.source_type == "bgm"
    assert payload.media_type == "anime"
    assert payload.staff["info"] == "导演: 荒木哲郎"
    assert payload.rating_imdb is None
    assert payload.aggregate_rating() == 8.2
