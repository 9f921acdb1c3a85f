import threading
from concurrent.futures import ThreadPoolExecutor

import mongomock.collection
import pytest
from mongoengine.queryset import QuerySet

from devalyze.models.short_link import ShortLink
from devalyze.services import identifier, links
from devalyze.utils.errors import AliasTaken, InvalidAlias, NotFound, NotFoundOrForbidden, TransientInfrastructureError, ValidationError


def test_shorten_then_redirect_counts_the_click(client, auth_headers):
    res = client.post("/shorten", json={"longUrl": "https://example.com/a"}, headers=auth_headers)
    assert res.status_code == 201
    body = res.json()
    code = body["shortCode"]
    assert body["shortUrl"] == f"http://testserver/{code}"

    res = client.get(f"/{code}", follow_redirects=False)
    assert res.status_code == 302
    assert res.headers["location"] == "https://example.com/a"

    link = ShortLink.objects(short_code=code).first()
    assert link.clicks == 1
    assert len(link.click_history) == 1


def test_shorten_requires_auth(client):
    res = client.post("/shorten", json={"longUrl": "https://example.com"})
    assert res.status_code == 401
    assert res.json()["success"] is False


@pytest.mark.parametrize("url", ["ftp://example.com/file", "not a url", "https://", "https://" + "a" * 2050 + ".com"])
def test_shorten_rejects_bad_destinations(client, auth_headers, url):
    res = client.post("/shorten", json={"longUrl": url}, headers=auth_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"


def test_unknown_code_is_404(client):
    res = client.get("/doesnotexist", follow_redirects=False)
    assert res.status_code == 404
    assert res.json()["error"] == "URL not found"


def test_resolve_after_delete_is_not_found(user):
    link, _ = links.create("https://example.com", user)
    links.delete(str(link.id), user)
    with pytest.raises(NotFound):
        links.resolve(link.short_code)


def test_custom_alias_is_global_across_owners(client, auth_headers, other_user):
    _, other_headers = other_user
    res = client.post("/shorten", json={"longUrl": "https://example.com", "customAlias": "promo"}, headers=auth_headers)
    assert res.status_code == 201
    assert res.json()["shortCode"] == "promo"

    res = client.post("/shorten", json={"longUrl": "https://other.com", "customAlias": "promo"}, headers=other_headers)
    assert res.status_code == 409
    assert res.json()["code"] == "ALIAS_TAKEN"


@pytest.mark.parametrize("alias", ["ab", "has space", "dash-ed", "x" * 51, "health"])
def test_invalid_aliases(user, alias):
    with pytest.raises(InvalidAlias):
        links.create("https://example.com", user, alias=alias)


def test_alias_insert_race_maps_to_alias_taken(user, monkeypatch):
    links.create("https://example.com", user, alias="taken")
    # A competing insert lands between the pre-check and ours: only the unique index notices.
    monkeypatch.setattr(QuerySet, "first", lambda self: None)
    with pytest.raises(AliasTaken):
        links.create("https://example.com", user, alias="taken")


def test_generated_code_collision_is_retried(user, monkeypatch):
    links.create("https://example.com/1", user, alias="AAAAAAA")
    codes = iter(["AAAAAAA", "BBBBBBB"])
    monkeypatch.setattr(identifier, "generate", lambda length=None: next(codes))

    link, _ = links.create("https://example.com/2", user)
    assert link.short_code == "BBBBBBB"
    assert ShortLink.objects.count() == 2


def test_code_allocation_gives_up_after_max_attempts(user, monkeypatch):
    links.create("https://example.com/1", user, alias="AAAAAAA")
    monkeypatch.setattr(identifier, "generate", lambda length=None: "AAAAAAA")

    with pytest.raises(TransientInfrastructureError):
        links.create("https://example.com/2", user)


def test_destination_validation_message_names_the_field(user):
    with pytest.raises(ValidationError) as excinfo:
        links.create("javascript:alert(1)", user)
    assert excinfo.value.details[0]["field"] == "longUrl"


def test_my_urls_sorting_search_and_limit(client, auth_headers, user):
    for i, url in enumerate(["https://b.example.com", "https://a.example.com/Docs", "https://c.example.com"]):
        link, _ = links.create(url, user)
        for _ in range(i):
            links.resolve(link.short_code)

    res = client.get("/my-urls", params={"sort": "clicks", "order": "desc"}, headers=auth_headers)
    assert res.status_code == 200
    assert [u["clicks"] for u in res.json()] == [2, 1, 0]
    assert "clickHistory" not in res.json()[0]
    assert res.json()[0]["shortUrl"].startswith("http://testserver/")

    res = client.get("/my-urls", params={"sort": "longUrl", "order": "asc", "limit": 2}, headers=auth_headers)
    assert [u["longUrl"] for u in res.json()] == ["https://a.example.com/Docs", "https://b.example.com"]

    res = client.get("/my-urls", params={"search": "docs"}, headers=auth_headers)
    assert [u["longUrl"] for u in res.json()] == ["https://a.example.com/Docs"]

    res = client.get("/my-urls", params={"search": ".*"}, headers=auth_headers)
    assert res.json() == []


def test_my_urls_only_lists_own_links(client, auth_headers, user, other_user):
    other, other_headers = other_user
    links.create("https://mine.example.com", user)
    links.create("https://theirs.example.com", other)

    res = client.get("/my-urls", headers=other_headers)
    assert [u["longUrl"] for u in res.json()] == ["https://theirs.example.com"]


def test_my_urls_rejects_out_of_range_limit(client, auth_headers):
    res = client.get("/my-urls", params={"limit": 101}, headers=auth_headers)
    assert res.status_code == 400


def test_delete_is_owner_only_and_hides_existence(client, auth_headers, user, other_user):
    _, other_headers = other_user
    link, _ = links.create("https://example.com", user)

    for link_id in [str(link.id), "not-an-object-id", "64b7f0000000000000000000"]:
        res = client.delete(f"/{link_id}", headers=other_headers)
        assert res.status_code == 404
        assert res.json()["error"] == "URL not found"

    res = client.delete(f"/{link.id}", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["url"]["shortCode"] == link.short_code
    assert ShortLink.objects.count() == 0


def test_delete_service_raises_not_found_or_forbidden(user, other_user):
    other, _ = other_user
    link, _ = links.create("https://example.com", user)
    with pytest.raises(NotFoundOrForbidden):
        links.delete(str(link.id), other)


def test_concurrent_resolution_loses_no_clicks(user, monkeypatch):
    # The server applies each single-document update atomically; mirror that in the in-memory store.
    lock = threading.Lock()
    original_update = mongomock.collection.Collection._update

    def atomic_update(self, *args, **kwargs):
        with lock:
            return original_update(self, *args, **kwargs)

    monkeypatch.setattr(mongomock.collection.Collection, "_update", atomic_update)
    link, _ = links.create("https://example.com/hot", user)

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: links.resolve(link.short_code), range(100)))

    assert set(results) == {"https://example.com/hot"}
    link.reload()
    assert link.clicks == 100
    assert len(link.click_history) == 100
