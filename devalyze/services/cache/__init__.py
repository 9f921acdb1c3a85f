from __future__ import annotations

from typing import Optional

from devalyze.connections.redis import get_redis
from devalyze.utils.config import settings


def _key(key: str) -> str:
    return f"{settings.redis_key_prefix}:{key}"


def cache_set(key: str, value: str, ttl_seconds: int | None = None) -> bool:
    client = get_redis()
    if ttl_seconds is None:
        return bool(client.set(name=_key(key), value=value))
    return bool(client.setex(name=_key(key), time=ttl_seconds, value=value))


def cache_get(key: str) -> Optional[str]:
    client = get_redis()
    return client.get(name=_key(key))


def cache_delete(key: str) -> int:
    client = get_redis()
    return int(client.delete(_key(key)))


def incr_window(key: str, window_seconds: int) -> tuple[int, int]:
    """Count a hit in a fixed window; returns (hits so far, seconds until the window resets)."""
    client = get_redis()
    name = _key(key)
    hits = int(client.incr(name))
    if hits == 1:
        client.expire(name, window_seconds)
    ttl = int(client.ttl(name))
    if ttl < 0:
        # Key without expiry (expire lost between calls): restart the window.
        client.expire(name, window_seconds)
        ttl = window_seconds
    return hits, ttl
