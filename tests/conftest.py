import base64

import pytest
from fastapi.testclient import TestClient

from logdrain.app import create_app
from logdrain.config import Settings
from logdrain.parsers import parse_plain
from logdrain.sinks.memory import MemorySinkFactory

USER = "drain"
PASSWORD = "s3cret"


def basic_auth(user=USER, password=PASSWORD):
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def settings():
    return Settings(user=USER, password=PASSWORD, log_format="plain")


@pytest.fixture
def factory():
    return MemorySinkFactory()


@pytest.fixture
def app(settings, factory):
    return create_app(settings, sink_factory=factory, parser=parse_plain)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth():
    return basic_auth()
