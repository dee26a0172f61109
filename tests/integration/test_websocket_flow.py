"""
End-to-end job flow: upload over HTTP, progress over /ws
"""
import pytest

from tests.integration.conftest import wait_for


def receive_until_terminal(websocket, limit=200):
    messages = []
    for _ in range(limit):
        message = websocket.receive_json()
        messages.append(message)
        if message["type"] in ("complete", "error"):
            return messages
    raise AssertionError("no terminal message received")


class TestJobFlow:
    """Test a job from upload to download."""

    @pytest.mark.integration
    def test_upload_progress_complete_download(self, client, app, observer, mock_engine, test_settings):
        response = client.post(
            "/api/upload",
            files={"video": ("my clip.mp4", b"\x00" * 64, "video/mp4")},
            data={"quality": "low", "maxDuration": "2", "preserveAudio": "true"},
        )
        assert response.status_code == 200
        job_id = response.json()["jobId"]
        assert response.json()["status"] == "processing"

        messages = receive_until_terminal(observer)
        assert all(m["jobId"] == job_id for m in messages)

        progress = [m["progress"]["progress"] for m in messages if m["type"] == "progress"]
        assert progress == sorted(progress)
        assert messages[-2]["progress"]["stage"] == "finalizing"
        assert messages[-2]["progress"]["fileName"] == "my clip.mp4"

        complete = messages[-1]
        assert complete["type"] == "complete"
        assert complete["result"]["success"] is True
        download_url = complete["result"]["downloadUrl"]
        assert download_url == f"/output/{job_id}_boomerang.mp4"

        forward = mock_engine.command_history[0]
        assert forward[forward.index("-b:v") + 1] == "2000k"
        assert forward[forward.index("-t") + 1] == "2"
        assert "areverse" in mock_engine.command_history[1]

        assert wait_for(lambda: app.state.registry.get(job_id) is None)
        assert client.get(f"/api/job/{job_id}").status_code == 404
        assert client.get(download_url).status_code == 200
        assert wait_for(lambda: list(test_settings.UPLOAD_DIR.iterdir()) == [])

    @pytest.mark.integration
    def test_pipeline_failure_reports_error(self, client, observer, mock_engine):
        mock_engine.fail_at = 1

        response = client.post("/api/upload", files={"video": ("clip.mov", b"\x00" * 64, "video/quicktime")})
        assert response.status_code == 200
        job_id = response.json()["jobId"]

        messages = receive_until_terminal(observer)
        terminal = messages[-1]
        assert terminal == {
            "type": "error",
            "jobId": job_id,
            "error": terminal["error"],
            "fileName": "clip.mov",
        }
        assert terminal["error"].startswith("Failed to create reverse video:")

    @pytest.mark.integration
    def test_observer_disconnect_does_not_stop_job(self, client, app, mock_engine, test_settings):
        mock_engine.delay = 0.02

        with client.websocket_connect("/ws") as websocket:
            assert wait_for(lambda: app.state.connections.first_open() is not None)
            response = client.post("/api/upload", files={"video": ("clip.mp4", b"\x00" * 64, "video/mp4")})
            assert response.status_code == 200
            job_id = response.json()["jobId"]
            assert websocket.receive_json()["jobId"] == job_id

        output = test_settings.OUTPUT_DIR / f"{job_id}_boomerang.mp4"
        assert wait_for(lambda: app.state.registry.get(job_id) is None)
        assert wait_for(output.exists, timeout=5)
        assert wait_for(lambda: list(test_settings.UPLOAD_DIR.iterdir()) == [])
        assert wait_for(lambda: len(app.state.connections) == 0)
