import fakeredis
import pytest

from devalyze.connections.redis import set_redis
from devalyze.utils.config import settings


@pytest.fixture
def limits(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    monkeypatch.setitem(settings.rate_limits, "qr", (2, 3600))
    return settings.rate_limits


def test_scope_limit_returns_429_with_retry_after(client, limits, redis_server):
    for _ in range(2):
        assert client.post("/qr", json={"longUrl": "https://example.com"}).status_code == 200

    res = client.post("/qr", json={"longUrl": "https://example.com"})
    assert res.status_code == 429
    assert res.json()["code"] == "RATE_LIMITED"
    assert 0 < int(res.headers["Retry-After"]) <= 3600
    assert res.json()["retryAfter"] == int(res.headers["Retry-After"])
    assert redis_server.ttl("devalyze:rl:qr:testclient") > 0


def test_admin_key_bypasses_limits(client, limits, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", "let-me-in")
    for _ in range(4):
        res = client.post("/qr", json={"longUrl": "https://example.com"}, headers={"X-API-Key": "let-me-in"})
        assert res.status_code == 200

    statuses = [
        client.post("/qr", json={"longUrl": "https://example.com"}, headers={"X-API-Key": "wrong"}).status_code
        for _ in range(3)
    ]
    assert statuses == [200, 200, 429]


def test_limits_are_per_client_ip_behind_trusted_proxy(client, limits, monkeypatch, redis_server):
    monkeypatch.setattr(settings, "trusted_proxies", ["testclient", "10.0.0.254"])
    for ip in ("10.0.0.1", "10.0.0.2"):
        for _ in range(2):
            res = client.post("/qr", json={"longUrl": "https://example.com"}, headers={"X-Forwarded-For": f"{ip}, 10.0.0.254"})
            assert res.status_code == 200
    assert sorted(redis_server.keys("devalyze:rl:qr:*")) == ["devalyze:rl:qr:10.0.0.1", "devalyze:rl:qr:10.0.0.2"]


def test_forwarded_header_from_untrusted_peer_is_ignored(client, monkeypatch, redis_server):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    monkeypatch.setitem(settings.rate_limits, "auth", (2, 900))

    statuses = [
        client.post(
            "/api/auth/login",
            json={"email": "ghost@example.com", "password": "Wr0ng!Pass"},
            headers={"X-Forwarded-For": f"10.0.0.{i}"},
        ).status_code
        for i in range(4)
    ]
    assert statuses == [401, 401, 429, 429]
    assert redis_server.keys("devalyze:rl:auth:*") == ["devalyze:rl:auth:testclient"]


def test_general_limit_covers_api_routes(client, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    monkeypatch.setitem(settings.rate_limits, "general", (3, 900))
    # The fixture already used one request on /api/csrf-token before limits were on.
    for _ in range(3):
        assert client.get("/api/csrf-token").status_code == 200
    assert client.get("/api/csrf-token").status_code == 429
    # Routes outside /api are not counted.
    assert client.get("/health").status_code == 200


def test_disabled_layer_never_counts(client, redis_server):
    for _ in range(5):
        client.post("/qr", json={"longUrl": "https://example.com"})
    assert redis_server.keys("devalyze:rl:*") == []


def test_redis_outage_surfaces_as_503(client, limits):
    server = fakeredis.FakeServer()
    server.connected = False
    set_redis(fakeredis.FakeRedis(server=server, decode_responses=True))

    res = client.post("/qr", json={"longUrl": "https://example.com"})
    assert res.status_code == 503
    assert res.json()["code"] == "SERVICE_UNAVAILABLE"
