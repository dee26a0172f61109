"""
Tests for observer connections and the progress relay
"""
from pathlib import Path

import pytest

from api.services.connections import ConnectionManager, ObserverConnection
from api.services.relay import ProgressRelay
from worker.errors import ProcessingError
from worker.models import BoomerangResult, ProcessingProgress, Stage, VideoMetadata
from tests.mocks.websocket import MockWebSocket


@pytest.fixture
def metadata():
    return VideoMetadata(duration=2.0, fps=30.0, width=640, height=480,
                         has_audio=False, format="mp4")


class TestConnectionManager:
    """Test connection bookkeeping."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_accepts_and_registers(self):
        manager = ConnectionManager()
        websocket = MockWebSocket()
        connection = await manager.connect(websocket)
        assert websocket.accepted
        assert connection.is_open
        assert manager.first_open() is connection
        assert len(manager) == 1

    @pytest.mark.unit
    def test_first_open_is_oldest(self):
        manager = ConnectionManager()
        first = manager.register(MockWebSocket())
        second = manager.register(MockWebSocket())
        assert manager.first_open() is first

        manager.disconnect(first)
        assert not first.is_open
        assert manager.first_open() is second
        assert manager.active() == [second]

    @pytest.mark.unit
    def test_no_connections(self):
        assert ConnectionManager().first_open() is None


class TestObserverConnection:
    """Test sends on live and closed connections."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send(self):
        websocket = MockWebSocket()
        connection = ObserverConnection(websocket)
        assert await connection.send({"type": "progress"}) is True
        assert websocket.sent == [{"type": "progress"}]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_to_closed_is_noop(self):
        websocket = MockWebSocket()
        connection = ObserverConnection(websocket)
        connection.mark_closed()
        assert await connection.send({"type": "progress"}) is False
        assert websocket.sent == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_send_closes(self):
        connection = ObserverConnection(MockWebSocket(fail_sends=True))
        assert await connection.send({"type": "progress"}) is False
        assert not connection.is_open


class TestProgressRelay:
    """Test the job message protocol."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_progress_message(self):
        websocket = MockWebSocket()
        relay = ProgressRelay(ObserverConnection(websocket), "job-1", "clip.mp4")
        await relay.on_progress(
            ProcessingProgress(stage=Stage.PROCESSING, progress=30, current_step="Processing forward video... 50%")
        )
        assert websocket.sent == [{
            "type": "progress",
            "jobId": "job-1",
            "progress": {
                "stage": "processing",
                "progress": 30,
                "currentStep": "Processing forward video... 50%",
                "fileName": "clip.mp4",
            },
        }]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_complete_message(self, metadata):
        websocket = MockWebSocket()
        relay = ProgressRelay(ObserverConnection(websocket), "job-1", "clip.mp4")
        result = BoomerangResult.succeeded(Path("/srv/output/job-1_boomerang.mp4"), metadata, 900)

        assert await relay.send_complete(result, "/output/job-1_boomerang.mp4")
        message = websocket.sent[0]
        assert message["type"] == "complete"
        assert message["result"]["success"] is True
        assert message["result"]["downloadUrl"] == "/output/job-1_boomerang.mp4"
        assert message["result"]["fileName"] == "clip.mp4"
        assert message["result"]["metadata"]["width"] == 640

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exactly_one_terminal_message(self, metadata):
        websocket = MockWebSocket()
        relay = ProgressRelay(ObserverConnection(websocket), "job-1", "clip.mp4")

        await relay.send_error(ProcessingError("boom").message)
        assert await relay.send_complete(
            BoomerangResult.succeeded(Path("/o.mp4"), metadata, 1), "/output/o.mp4"
        ) is False
        await relay.on_progress(ProcessingProgress(stage=Stage.FINALIZING, progress=100, current_step="x"))

        assert websocket.sent == [
            {"type": "error", "jobId": "job-1", "error": "boom", "fileName": "clip.mp4"}
        ]
