import json

import pytest
from fastapi.testclient import TestClient

from planning_poker.core.config import Settings
from planning_poker.main import create_app


class FakeWebSocket:
    """Just enough of starlette's WebSocket for the connection layer."""

    def __init__(self, fail=False):
        self.accepted = False
        self.fail = fail
        self.sent = []
        self.closed_with = None

    async def accept(self):
        self.accepted = True

    async def send_text(self, data):
        if self.fail:
            raise RuntimeError("peer gone")
        self.sent.append(json.loads(data))

    async def close(self, code=1000, reason=None):
        self.closed_with = code


def _drain(connection):
    """Pop every queued frame of a connection, decoded."""
    frames = []
    while not connection.outbox.empty():
        item = connection.outbox.get_nowait()
        frames.append(json.loads(item) if isinstance(item, str) else item)
    return frames


@pytest.fixture()
def fake_socket():
    return FakeWebSocket


@pytest.fixture()
def drain():
    return _drain


@pytest.fixture()
def config():
    test_config = Settings()
    test_config.REAP_INTERVAL_SEC = 0
    test_config.ROOM_IDLE_GRACE_SEC = 300
    test_config.OUTBOUND_QUEUE_SIZE = 100
    test_config.ESTIMATE_DECK = []
    test_config.CORS_ORIGINS = ["*"]
    return test_config


@pytest.fixture()
def app(config):
    return create_app(config)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def room_id(client):
    return client.post("/api/create_room").json()


@pytest.fixture()
def store(app):
    return app.state.poker.room_store
