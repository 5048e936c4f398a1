import pytest

from mediahub_app import create_app
from mediahub_app.metadata.models import CandidateItem, MediaType, ProviderType
from mediahub_app.routes import search_api

INTERSTELLAR = {
    "sourceType": "tmdb",
    "sourceId": "157336",
    "sourceUrl": "https://www.themoviedb.org/movie/157336",
    "mediaType": "movie",
    "titleZh": "星际穿越",
    "titleOriginal": "Interstellar",
    "year": "2014",
    "directors": ["克里斯托弗·诺兰"],
    "ratingImdb": 8.4,
}


@pytest.fixture
def client():
    app = create_app({
        'DATABASE_URL': 'sqlite://',
        'SECRET_KEY': 'test-secret',
        'TESTING': True,
        'RATELIMIT_ENABLED': False,
        'DISABLE_RATE_LIMITING': True,
    })
    with app.test_client() as client:
        yield client


def _csrf(client):
    return client.get("/api/csrf-token").get_json()["csrf_token"]


def _register(client, email="viewer@example.com"):
    resp = client.post(
        "/api/auth/register",
        json={"email": email, "password": "correct-horse"},
        headers={"X-CSRF-Token": _csrf(client)},
    )
    assert resp.status_code == 200
    # Token is rotated on login
    return _csrf(client)


class FakeAggregator:
    def __init__(self):
        self.calls = []

    async def search(self, query, kind="all"):
        self.calls.append((query, kind))
        return [CandidateItem(
            source_type=ProviderType.TMDB, source_id="157336",
            source_url="https://www.themoviedb.org/movie/157336",
            media_type=MediaType.MOVIE, title_zh="星际穿越", year="2014",
            rating_imdb=8.4, match_count=2,
        )]


def test_csrf_token(client):
    resp = client.get("/api/csrf-token")
    assert resp.status_code == 200
    token = resp.get_json()["csrf_token"]
    assert isinstance(token, str) and token


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["database"] is True
    assert [p["id"] for p in data["providers"]] == ["tmdb", "maoyan", "douban", "bgm"]


def test_search(client, monkeypatch):
    fake = FakeAggregator()
    monkeypatch.setattr(search_api, "build_aggregator", lambda: fake)

    resp = client.get("/api/search", query_string={"q": "星际穿越", "type": "movie"})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 1
    assert data["type"] == "movie"
    assert data["results"][0]["matchCount"] == 2
    assert fake.calls[0][0] == "星际穿越"


def test_search_empty_query_and_bad_type(client, monkeypatch):
    fake = FakeAggregator()
    monkeypatch.setattr(search_api, "build_aggregator", lambda: fake)

    resp = client.get("/api/search", query_string={"q": "  "})
    assert resp.status_code == 200
    assert resp.get_json()["results"] == []
    assert fake.calls == []

    resp = client.get("/api/search", query_string={"q": "x", "type": "music"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "invalid_request"


def test_collect_requires_login(client):
    resp = client.post("/api/collections", json=dict(INTERSTELLAR, status="wish"),
                       headers={"X-CSRF-Token": _csrf(client)})
    assert resp.status_code == 401


def test_collect_requires_csrf(client):
    _register(client)
    resp = client.post("/api/collections", json=dict(INTERSTELLAR, status="wish"))
    assert resp.status_code == 403


def test_collection_flow(client):
    token = _register(client)
    headers = {"X-CSRF-Token": token}

    resp = client.post("/api/collections", json=dict(INTERSTELLAR, status="wish"), headers=headers)
    assert resp.status_code == 200
    collected = resp.get_json()
    collection_id, media_id = collected["collectionId"], collected["mediaId"]

    # Same title from another provider lands on the same media and row
    douban = dict(INTERSTELLAR, sourceType="douban", sourceId="1889243",
                  sourceUrl="https://movie.douban.com/subject/1889243", status="watching")
    resp = client.post("/api/collections", json=douban, headers=headers)
    assert resp.get_json()["mediaId"] == media_id
    assert resp.get_json()["collectionId"] == collection_id

    resp = client.get("/api/collections/check", query_string={"source_type": "douban", "source_id": "1889243"})
    assert resp.get_json()["collection"] == {"collectionId": collection_id, "status": "watching"}

    resp = client.get("/api/collections")
    data = resp.get_json()
    assert data["count"] == 1
    assert data["collections"][0]["sourceType"] == "tmdb"

    resp = client.get(f"/api/media/{media_id}")
    assert resp.get_json()["isCollected"] is True

    resp = client.get(f"/api/media/{media_id}/sources")
    assert resp.get_json()["count"] == 2

    resp = client.post(f"/api/collections/{collection_id}/status", json={"status": "watched"}, headers=headers)
    assert resp.get_json() == {"success": True, "status": "watched"}

    resp = client.post(f"/api/collections/{collection_id}/status", json={"status": "seen"}, headers=headers)
    assert resp.status_code == 400

    resp = client.delete(f"/api/collections/{collection_id}", headers=headers)
    assert resp.status_code == 200
    resp = client.delete(f"/api/collections/{collection_id}", headers=headers)
    assert resp.status_code == 404

    resp = client.get("/api/media/by-source", query_string={"source_type": "tmdb", "source_id": "157336"})
    assert resp.status_code == 200
    assert resp.get_json()["isCollected"] is False


def test_collect_validation_errors(client):
    headers = {"X-CSRF-Token": _register(client)}

    resp = client.post("/api/collections", json=dict(INTERSTELLAR, status="binged"), headers=headers)
    assert resp.status_code == 400

    missing_title = {k: v for k, v in INTERSTELLAR.items() if k != "titleZh"}
    resp = client.post("/api/collections", json=missing_title, headers=headers)
    assert resp.status_code == 400
    assert "titleZh" in resp.get_json()["error"]

    resp = client.post("/api/collections", json=dict(INTERSTELLAR, posterUrl=["x"], status="wish"), headers=headers)
    assert resp.status_code == 400
    assert "posterUrl" in resp.get_json()["error"]

    resp = client.post("/api/collections", json=dict(INTERSTELLAR, year=2014, status="wish"), headers=headers)
    assert resp.status_code == 200


def test_media_not_found(client):
    assert client.get("/api/media/missing").status_code == 404
    assert client.get("/api/media/by-source").status_code == 400


class FakeUpstream:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload

    def json(self):
        return self._payload


def test_tmdb_proxy(client, monkeypatch):
    from mediahub_app.routes import tmdb_api

    assert client.get("/api/tmdb/movie/157336").status_code == 503

    monkeypatch.setenv("TMDB_ACCESS_TOKEN", "test-token")
    seen = {}

    def fake_request(method, url, params=None, json=None, headers=None, timeout=None):
        seen.update(method=method, url=url, params=params, auth=headers["Authorization"])
        return FakeUpstream(200, {"id": 157336})

    monkeypatch.setattr(tmdb_api.session, "request", fake_request)

    resp = client.get("/api/tmdb/movie/157336")
    assert resp.status_code == 200
    assert resp.get_json() == {"id": 157336}
    assert seen["url"] == "https://api.themoviedb.org/3/movie/157336"
    assert seen["params"]["language"] == "zh-CN"
    assert seen["auth"] == "Bearer test-token"

    assert client.get("/api/tmdb/movie/1;drop").status_code == 400

    monkeypatch.setattr(tmdb_api.session, "request",
                        lambda *args, **kwargs: FakeUpstream(404, {"status_message": "nope"}))
    resp = client.get("/api/tmdb/movie/0")
    assert resp.status_code == 502
    assert resp.get_json()["upstream_status"] == 404


def test_auth_round_trip(client):
    _register(client)
    assert client.get("/api/auth/me").get_json()["authenticated"] is True

    resp = client.post("/api/auth/register", json={"email": "viewer@example.com", "password": "correct-horse"},
                       headers={"X-CSRF-Token": _csrf(client)})
    assert resp.status_code == 409

    client.post("/api/auth/logout", headers={"X-CSRF-Token": _csrf(client)})
    assert client.get("/api/auth/me").get_json()["authenticated"] is False

    resp = client.post("/api/auth/login", json={"email": "viewer@example.com", "password": "nope-nope"},
                       headers={"X-CSRF-Token": _csrf(client)})
    assert resp.status_code == 401

    resp = client.post("/api/auth/login", json={"email": "viewer@example.com", "password": "correct-horse"},
                       headers={"X-CSRF-Token": _csrf(client)})
    assert resp.status_code == 200

    resp = client.post("/api/auth/update", json={"display_name": "影迷"}, headers={"X-CSRF-Token": _csrf(client)})
    assert resp.get_json()["user"]["display_name"] == "影迷"
