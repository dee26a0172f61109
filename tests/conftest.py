"""
Test configuration and fixtures
"""
from pathlib import Path
from typing import List

import pytest

from api.config import Settings
from worker.models import ProcessingOptions, ProcessingProgress
from tests.mocks.ffmpeg import MockFFmpegWrapper


@pytest.fixture
def sample_video(tmp_path: Path) -> Path:
    """A file with a supported extension; its bytes are never decoded."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


@pytest.fixture
def mock_ffmpeg() -> MockFFmpegWrapper:
    return MockFFmpegWrapper()


@pytest.fixture
def options(sample_video: Path, tmp_path: Path) -> ProcessingOptions:
    temp_root = tmp_path / "tmp"
    temp_root.mkdir()
    return ProcessingOptions(
        input=sample_video,
        output=tmp_path / "out" / "result.mp4",
        temp_dir=temp_root,
    )


class ProgressRecorder:
    """Collects progress events for assertions."""

    def __init__(self):
        self.events: List[ProcessingProgress] = []

    def __call__(self, event: ProcessingProgress) -> None:
        self.events.append(event)

    @property
    def percentages(self) -> List[float]:
        return [e.progress for e in self.events]


@pytest.fixture
def recorder() -> ProgressRecorder:
    return ProgressRecorder()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        UPLOAD_DIR=tmp_path / "uploads",
        OUTPUT_DIR=tmp_path / "output",
        PUBLIC_DIR=tmp_path / "public",
        MAX_UPLOAD_SIZE=1024,
    )
