import itertools

import httpx

from utils import bible
from utils.bible import (
    fetch_bible_verse,
    fetch_bible_verses,
    get_book_suggestions,
    is_valid_reference,
    validate_bible_reference,
)


def _mock_client(monkeypatch, handler, calls=None):
    def recording_handler(request):
        if calls is not None:
            calls.append(request)
        return handler(request)

    monkeypatch.setattr(
        bible,
        "_build_client",
        lambda: httpx.Client(transport=httpx.MockTransport(recording_handler)),
    )


def test_validate_reference_normalizes_book():
    result = validate_bible_reference("1 cor 13:4")
    assert result == {"is_valid": True, "canonical_book": "1 Corinthians", "normalized": "1 Corinthians 13:4"}


def test_validate_reference_rejects_bad_format_and_book():
    assert validate_bible_reference("John 3")["is_valid"] is False
    assert validate_bible_reference("")["is_valid"] is False
    unknown = validate_bible_reference("Hezekiah 1:1")
    assert unknown["is_valid"] is False
    assert "Hezekiah" in unknown["error"]
    assert not is_valid_reference("Psalm twenty-three")


def test_book_suggestions():
    assert get_book_suggestions("j") == []
    assert "John" in get_book_suggestions("jo")
    assert get_book_suggestions("phil") == ["Philippians", "Philemon"]


def test_fallback_used_without_api_key(app_env, monkeypatch):
    calls = []
    _mock_client(
        monkeypatch,
        lambda request: httpx.Response(200, json={"reference": "John 3:16", "text": " For God so loved\nthe world "}),
        calls,
    )

    verse = fetch_bible_verse("John 3:16", "NIV")

    assert verse["text"] == "For God so loved the world"
    assert verse["version"] == "KJV"
    assert calls[0].url.host == "bible-api.test"
    assert calls[0].url.params["translation"] == "kjv"


def test_api_bible_failure_falls_back(app_env, monkeypatch):
    monkeypatch.setenv("BIBLE_API_KEY", "secret-key")
    calls = []

    def handler(request):
        if request.url.host == "api.scripture.test":
            assert request.headers["api-key"] == "secret-key"
            assert request.url.path.endswith("/verses/JHN.3.16")
            return httpx.Response(500)
        return httpx.Response(200, json={"reference": "John 3:16", "text": "For God so loved"})

    _mock_client(monkeypatch, handler, calls)

    verse = fetch_bible_verse("John 3:16", "NIV")

    assert verse["version"] == "KJV"
    assert [c.url.host for c in calls] == ["api.scripture.test", "bible-api.test"]


def test_api_bible_strips_html(app_env, monkeypatch):
    monkeypatch.setenv("BIBLE_API_KEY", "secret-key")
    _mock_client(
        monkeypatch,
        lambda request: httpx.Response(
            200,
            json={"data": {"reference": "John 3:16", "content": "<p><span>16</span> For God so loved</p>"}},
        ),
    )

    verse = fetch_bible_verse("John 3:16", "niv")

    assert verse["text"] == "16 For God so loved"
    assert verse["version"] == "NIV"


def test_transport_error_falls_back(app_env, monkeypatch):
    monkeypatch.setenv("BIBLE_API_KEY", "secret-key")

    def handler(request):
        if request.url.host == "api.scripture.test":
            raise httpx.ConnectError("boom", request=request)
        return httpx.Response(200, json={"text": "Jesus wept."})

    _mock_client(monkeypatch, handler)

    assert fetch_bible_verse("John 11:35")["text"] == "Jesus wept."


def test_verses_are_cached(app_env, monkeypatch):
    calls = []
    _mock_client(monkeypatch, lambda request: httpx.Response(200, json={"text": "Jesus wept."}), calls)

    fetch_bible_verse("John 11:35")
    fetch_bible_verse("John 11:35")

    assert len(calls) == 1


def test_missing_verse_returns_none(app_env, monkeypatch):
    _mock_client(monkeypatch, lambda request: httpx.Response(404, json={"error": "not found"}))
    assert fetch_bible_verse("John 99:99") is None


def test_fetch_many_skips_missing(app_env, monkeypatch):
    def handler(request):
        if "99" in str(request.url):
            return httpx.Response(404)
        return httpx.Response(200, json={"text": "verse"})

    _mock_client(monkeypatch, handler)
    monkeypatch.setattr(bible.time, "sleep", lambda seconds: None)

    result = fetch_bible_verses(["John 1:1", "John 99:99", "Genesis 1:1"])

    assert sorted(result) == ["Genesis 1:1", "John 1:1"]


def test_verse_route_validates_reference(client):
    assert client.get("/api/bible/verse").status_code == 400
    response = client.get("/api/bible/verse", params={"reference": "not a verse"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_verse_route_uses_settings_version(client, monkeypatch):
    requested = []

    def fake_fetch(reference, version):
        requested.append((reference, version))
        return {"reference": reference, "text": "In the beginning", "version": version, "copyright": None}

    monkeypatch.setattr("routes.bible.fetch_bible_verse", fake_fetch)

    response = client.get("/api/bible/verse", params={"reference": "gen 1:1"})

    assert response.status_code == 200
    assert requested == [("Genesis 1:1", "KJV")]


def test_verse_route_not_found(client, monkeypatch):
    monkeypatch.setattr("routes.bible.fetch_bible_verse", lambda reference, version: None)
    response = client.get("/api/bible/verse", params={"reference": "John 99:99"})
    assert response.status_code == 404
    assert response.json() == {"error": "Verse not found"}


def test_expired_cache_entry_is_replaced(app_env, monkeypatch):
    calls = []
    _mock_client(monkeypatch, lambda request: httpx.Response(200, json={"text": "Jesus wept."}), calls)
    bible._VERSE_CACHE["John 11:35-KJV"] = {"verse": {"text": "stale"}, "timestamp": 0}

    verse = fetch_bible_verse("John 11:35")

    assert verse["text"] == "Jesus wept."
    assert len(calls) == 1
    assert bible._VERSE_CACHE["John 11:35-KJV"]["timestamp"] > 0


def test_expired_cache_entry_is_dropped_when_lookup_fails(app_env, monkeypatch):
    _mock_client(monkeypatch, lambda request: httpx.Response(404))
    bible._VERSE_CACHE["John 11:35-KJV"] = {"verse": {"text": "stale"}, "timestamp": 0}

    assert fetch_bible_verse("John 11:35") is None
    assert "John 11:35-KJV" not in bible._VERSE_CACHE


def test_cache_keeps_newest_entries(app_env, monkeypatch):
    _mock_client(monkeypatch, lambda request: httpx.Response(200, json={"text": "verse"}))
    monkeypatch.setattr(bible, "MAX_CACHE_ENTRIES", 2)
    clock = itertools.count(1000)
    monkeypatch.setattr(bible.time, "time", lambda: next(clock))

    for reference in ("John 1:1", "John 1:2", "John 1:3"):
        fetch_bible_verse(reference)

    assert sorted(bible._VERSE_CACHE) == ["John 1:2-KJV", "John 1:3-KJV"]


def test_books_route_suggests_names(client):
    response = client.get("/api/bible/books", params={"q": "phil"})
    assert response.status_code == 200
    assert response.json() == {"books": ["Philippians", "Philemon"]}
    assert client.get("/api/bible/books", params={"q": "j"}).json() == {"books": []}
    assert client.get("/api/bible/books", params={"q": "jo", "limit": 1}).json() == {"books": ["Joshua"]}


def test_verses_route_reports_invalid_and_missing(client, monkeypatch):
    def handler(request):
        if "99" in str(request.url):
            return httpx.Response(404)
        return httpx.Response(200, json={"text": "verse"})

    _mock_client(monkeypatch, handler)
    monkeypatch.setattr(bible.time, "sleep", lambda seconds: None)

    response = client.get(
        "/api/bible/verses",
        params=[("reference", "John 1:1"), ("reference", "John 99:99"), ("reference", "Hezekiah 1:1")],
    )

    assert response.status_code == 200
    body = response.json()
    assert list(body["verses"]) == ["John 1:1"]
    assert body["invalid"] == ["Hezekiah 1:1"]
    assert body["not_found"] == ["John 99:99"]


def test_verses_route_requires_a_reference(client):
    response = client.get("/api/bible/verses")
    assert response.status_code == 400
    assert response.json() == {"error": "At least one reference is required"}
