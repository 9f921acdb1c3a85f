import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis
from fastapi import FastAPI

from devalyze.utils.config import settings


logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    if _redis_client is None:
        raise redis.ConnectionError("Redis not initialized")
    return _redis_client


def set_redis(client: Optional[redis.Redis]) -> None:
    """Swap the process-wide client (tests plug in an in-memory server here)."""
    global _redis_client
    _redis_client = client


def init_redis() -> None:
    # Rate limiting and the key cache sit on the request path: fail fast, never hang.
    set_redis(redis.Redis(
        db=settings.redis_db,
        port=settings.redis_port,
        host=settings.redis_host,
        password=settings.redis_password,
        decode_responses=True,
        socket_timeout=settings.redis_timeout_seconds,
        socket_connect_timeout=settings.redis_timeout_seconds,
        health_check_interval=30,
    ))
    logger.info("Redis client configured for %s:%s/%s", settings.redis_host, settings.redis_port, settings.redis_db)


def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        finally:
            _redis_client = None


@asynccontextmanager
async def redis_lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_redis()
    try:
        yield
    finally:
        close_redis()
