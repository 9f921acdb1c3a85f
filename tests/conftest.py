import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import fakeredis
import mongomock
import pytest
from mongoengine import connect, disconnect

from devalyze.connections.redis import set_redis
from devalyze.models.page import Page
from devalyze.models.qr_code import QRCode
from devalyze.models.short_link import ShortLink
from devalyze.models.user import User

from helpers import bearer, csrf_client, register


DOCUMENTS = (User, ShortLink, QRCode, Page)


@pytest.fixture(scope="session", autouse=True)
def mongo():
    connect(
        db="devalyze_test",
        alias="default",
        host="mongodb://localhost",
        mongo_client_class=mongomock.MongoClient,
        tz_aware=True,
    )
    yield
    disconnect(alias="default")


@pytest.fixture(autouse=True)
def clean_state(mongo):
    server = fakeredis.FakeRedis(decode_responses=True)
    set_redis(server)
    yield server
    for document in DOCUMENTS:
        document.drop_collection()
    server.flushall()
    set_redis(None)


@pytest.fixture
def redis_server(clean_state):
    return clean_state


@pytest.fixture
def client():
    return csrf_client()


@pytest.fixture
def auth_headers(client) -> dict:
    return bearer(register(client)["token"])


@pytest.fixture
def user(auth_headers) -> User:
    return User.objects(email="ada@example.com").first()


@pytest.fixture
def other_user(client) -> tuple[User, dict]:
    token = register(client, email="grace@example.com", full_name="Grace Hopper")["token"]
    return User.objects(email="grace@example.com").first(), bearer(token)
