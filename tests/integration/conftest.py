"""
Fixtures for tests going through the FastAPI application
"""
import time
from functools import partial

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from worker.processors.boomerang import BoomerangProcessor
from tests.mocks.ffmpeg import MockFFmpegWrapper


@pytest.fixture
def mock_engine():
    return MockFFmpegWrapper()


@pytest.fixture
def app(test_settings, mock_engine):
    return create_app(test_settings, processor_factory=partial(BoomerangProcessor, ffmpeg=mock_engine))


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def wait_for(predicate, timeout: float = 2.0):
    """Poll until ``predicate()`` is truthy."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def observer(client, app):
    """An open /ws connection registered with the application."""
    with client.websocket_connect("/ws") as websocket:
        assert wait_for(lambda: app.state.connections.first_open() is not None)
        yield websocket
