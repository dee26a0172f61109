"""
Source analysis: turns ffprobe output into VideoMetadata.
"""
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog

from worker.errors import FFmpegError, InvalidInputError
from worker.models import VideoMetadata
from worker.utils.ffmpeg import EngineError, FFmpegWrapper

logger = structlog.get_logger()

MIN_DURATION_SECONDS = 0.5
DEFAULT_FPS = 30.0


def parse_frame_rate(value: Optional[str]) -> float:
    """Evaluate an ffprobe rational such as ``30000/1001``; 30 when unusable."""
    if not value:
        return DEFAULT_FPS
    numerator, _, denominator = str(value).partition("/")
    try:
        num = float(numerator)
        den = float(denominator) if denominator else 1.0
    except ValueError:
        return DEFAULT_FPS
    if den == 0 or num <= 0:
        return DEFAULT_FPS
    return num / den


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def metadata_from_probe(probe: Dict[str, Any], source: str = "") -> VideoMetadata:
    """Build VideoMetadata from ffprobe's JSON document."""
    streams = probe.get("streams") or []
    video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

    if video_stream is None:
        raise InvalidInputError("No video stream found in file", path=source or None)

    fmt = probe.get("format") or {}
    return VideoMetadata(
        duration=_to_float(fmt.get("duration")),
        fps=parse_frame_rate(video_stream.get("r_frame_rate")),
        width=_to_int(video_stream.get("width")) or 0,
        height=_to_int(video_stream.get("height")) or 0,
        has_audio=audio_stream is not None,
        format=fmt.get("format_name") or "unknown",
        bitrate=_to_int(fmt.get("bit_rate")),
    )


def ensure_min_duration(metadata: VideoMetadata) -> None:
    if metadata.duration < MIN_DURATION_SECONDS:
        raise InvalidInputError(
            "Video is too short for boomerang effect "
            f"(minimum {MIN_DURATION_SECONDS} seconds)"
        )


class MetadataInspector:
    """Extracts stream facts from a validated source file."""

    def __init__(self, ffmpeg: FFmpegWrapper):
        self.ffmpeg = ffmpeg

    async def inspect(self, file_path: Union[str, Path]) -> VideoMetadata:
        try:
            probe = await self.ffmpeg.probe_file(file_path)
        except EngineError as e:
            raise FFmpegError("analyzing", f"Failed to read video metadata: {e}", cause=e)

        metadata = metadata_from_probe(probe, str(file_path))
        logger.debug(
            "Video metadata extracted",
            path=str(file_path),
            duration=metadata.duration,
            dimensions=metadata.dimensions,
            fps=metadata.fps,
            has_audio=metadata.has_audio,
        )
        return metadata
