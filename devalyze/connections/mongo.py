import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import certifi
from fastapi import FastAPI
from mongoengine import connect, disconnect

from devalyze.utils.config import settings


logger = logging.getLogger(__name__)


def init_mongo() -> None:
    uri = settings.mongo_uri
    options = {
        "serverSelectionTimeoutMS": settings.mongo_timeout_ms,
        "connectTimeoutMS": settings.mongo_timeout_ms,
        "socketTimeoutMS": settings.mongo_timeout_ms,
    }
    # Atlas style SRV URIs are always TLS; plain mongodb:// URIs may not be.
    if uri.startswith("mongodb+srv://"):
        options["tlsCAFile"] = certifi.where()
    connect(host=uri, alias="default", tz_aware=True, **options)
    logger.info("Connected to MongoDB database %s", settings.mongo_db)


def close_mongo() -> None:
    disconnect(alias="default")


@asynccontextmanager
async def mongo_lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_mongo()
    try:
        yield
    finally:
        close_mongo()
