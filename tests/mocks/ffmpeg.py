"""
Mock FFmpeg wrapper for testing
"""
import asyncio
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from worker.utils.ffmpeg import (
    EngineError,
    EngineExecutionError,
    EngineUnavailableError,
    FFmpegWrapper,
)


def make_probe(duration: float = 3.0, width: int = 1920, height: int = 1080,
               frame_rate: str = "30/1", has_audio: bool = True,
               has_video: bool = True) -> Dict[str, Any]:
    """Build an ffprobe-shaped document."""
    streams: List[Dict[str, Any]] = []
    if has_video:
        streams.append({
            "index": 0,
            "codec_name": "h264",
            "codec_type": "video",
            "width": width,
            "height": height,
            "r_frame_rate": frame_rate,
        })
    if has_audio:
        streams.append({
            "index": len(streams),
            "codec_name": "aac",
            "codec_type": "audio",
            "sample_rate": "48000",
            "channels": 2,
        })
    return {
        "format": {
            "duration": str(duration),
            "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
            "bit_rate": "5000000",
        },
        "streams": streams,
    }


class MockFFmpegWrapper(FFmpegWrapper):
    """
    FFmpegWrapper that never spawns a process.

    ``run`` records the command, yields scripted percentages and creates the
    output file (the last argument). ``fail_at`` makes the n-th ``run`` call
    (0-based) fail with a non-zero exit.
    """

    def __init__(self, probe: Optional[Dict[str, Any]] = None,
                 available: bool = True, probe_error: Optional[EngineError] = None,
                 fail_at: Optional[int] = None,
                 ticks: Sequence[float] = (25.0, 50.0, 100.0),
                 delay: float = 0.0):
        super().__init__("ffmpeg", "ffprobe")
        self.probe = probe if probe is not None else make_probe()
        self.available = available
        self.probe_error = probe_error
        self.fail_at = fail_at
        self.ticks = list(ticks)
        self.delay = delay
        self.command_history: List[List[str]] = []
        self.durations: List[Optional[float]] = []

    async def check_available(self) -> None:
        if not self.available:
            raise EngineUnavailableError("Cannot start ffmpeg: not found")

    async def probe_file(self, file_path) -> Dict[str, Any]:
        if self.probe_error is not None:
            raise self.probe_error
        return self.probe

    async def run(self, cmd: Sequence[str],
                  total_duration: Optional[float] = None) -> AsyncIterator[float]:
        call_index = len(self.command_history)
        self.command_history.append(list(cmd))
        self.durations.append(total_duration)

        for tick in self.ticks:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield tick

        if self.fail_at == call_index:
            raise EngineExecutionError(1, ["Conversion failed!"])

        Path(cmd[-1]).write_bytes(b"\x00" * 128)

    def get_last_command(self) -> Optional[List[str]]:
        """Get the last executed command for testing."""
        return self.command_history[-1] if self.command_history else None
