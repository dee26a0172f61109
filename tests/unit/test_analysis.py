"""
Tests for source analysis
"""
import pytest

from worker.errors import FFmpegError, InvalidInputError
from worker.processors.analysis import (
    MetadataInspector,
    ensure_min_duration,
    metadata_from_probe,
    parse_frame_rate,
)
from worker.utils.ffmpeg import EngineExecutionError
from tests.mocks.ffmpeg import MockFFmpegWrapper, make_probe


class TestFrameRate:
    """Test frame rate parsing."""

    @pytest.mark.unit
    @pytest.mark.parametrize("value,expected", [
        ("30/1", 30.0),
        ("30000/1001", 30000 / 1001),
        ("25", 25.0),
        ("0/0", 30.0),
        ("abc", 30.0),
        (None, 30.0),
    ])
    def test_parse(self, value, expected):
        assert parse_frame_rate(value) == pytest.approx(expected)


class TestMetadataFromProbe:
    """Test ffprobe document interpretation."""

    @pytest.mark.unit
    def test_video_and_audio(self):
        metadata = metadata_from_probe(make_probe(duration=4.5, width=640, height=360))
        assert metadata.duration == 4.5
        assert metadata.dimensions == "640x360"
        assert metadata.fps == 30.0
        assert metadata.has_audio is True
        assert metadata.bitrate == 5000000

    @pytest.mark.unit
    def test_video_only(self):
        assert metadata_from_probe(make_probe(has_audio=False)).has_audio is False

    @pytest.mark.unit
    def test_missing_bitrate(self):
        probe = make_probe()
        del probe["format"]["bit_rate"]
        assert metadata_from_probe(probe).bitrate is None

    @pytest.mark.unit
    def test_no_video_stream(self):
        with pytest.raises(InvalidInputError, match="No video stream found in file"):
            metadata_from_probe(make_probe(has_video=False))

    @pytest.mark.unit
    def test_min_duration(self):
        ensure_min_duration(metadata_from_probe(make_probe(duration=0.5)))
        with pytest.raises(InvalidInputError, match="too short"):
            ensure_min_duration(metadata_from_probe(make_probe(duration=0.3)))


class TestMetadataInspector:
    """Test probe error translation."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_inspect(self, sample_video):
        metadata = await MetadataInspector(MockFFmpegWrapper()).inspect(sample_video)
        assert metadata.duration == 3.0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_probe_failure_becomes_ffmpeg_error(self, sample_video):
        ffmpeg = MockFFmpegWrapper(probe_error=EngineExecutionError(1, ["Invalid data"]))
        with pytest.raises(FFmpegError) as exc_info:
            await MetadataInspector(ffmpeg).inspect(sample_video)
        assert exc_info.value.stage == "analyzing"
        assert exc_info.value.message.startswith("Failed to read video metadata:")
