"""
FFmpeg wrapper utility for boomerang rendering.
Builds the per-stage commands, runs ffmpeg/ffprobe as asyncio subprocesses
and turns ffmpeg's stderr progress lines into percentages.
"""
import asyncio
import json
import re
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

import structlog

from worker.models import ProcessingOptions

logger = structlog.get_logger()

PathLike = Union[str, Path]

VIDEO_CODEC = "libx264"
AUDIO_CODEC = "aac"


class EngineError(Exception):
    """Base exception for ffmpeg/ffprobe invocations."""
    pass


class EngineUnavailableError(EngineError):
    """The binary could not be started."""
    pass


class EngineExecutionError(EngineError):
    """The binary ran but exited with a non-zero status."""

    def __init__(self, returncode: int, stderr_tail: Sequence[str]):
        self.returncode = returncode
        self.stderr_tail = list(stderr_tail)
        detail = "\n".join(self.stderr_tail) or "no output"
        super().__init__(f"ffmpeg exited with code {returncode}: {detail}")


class FFmpegCommandBuilder:
    """Build the ffmpeg command line for each boomerang stage."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    def _base(self) -> List[str]:
        # -y to overwrite output files
        return [self.ffmpeg_path, "-hide_banner", "-nostdin", "-y"]

    def _quality(self, options: ProcessingOptions) -> List[str]:
        return ["-c:v", VIDEO_CODEC, "-b:v", options.bitrate, "-preset", options.preset]

    def build_forward(self, input_path: PathLike, output_path: PathLike,
                      options: ProcessingOptions, trim_to: Optional[float] = None,
                      keep_audio: bool = False) -> List[str]:
        """Re-encode the (optionally trimmed) source at the target quality."""
        cmd = self._base()
        cmd.extend(["-i", str(input_path)])

        if trim_to is not None:
            cmd.extend(["-ss", "0", "-t", _format_seconds(trim_to)])

        cmd.extend(self._quality(options))

        if options.fps:
            cmd.extend(["-r", _format_seconds(options.fps)])

        if keep_audio:
            cmd.extend(["-c:a", AUDIO_CODEC])
        else:
            cmd.append("-an")

        cmd.append(str(output_path))
        logger.debug("Built forward command", command=" ".join(cmd))
        return cmd

    def build_reverse(self, input_path: PathLike, output_path: PathLike,
                      options: ProcessingOptions, keep_audio: bool = False) -> List[str]:
        """Reverse the forward clip in time, video and (optionally) audio."""
        cmd = self._base()
        cmd.extend(["-i", str(input_path), "-vf", "reverse"])
        cmd.extend(self._quality(options))

        if keep_audio:
            cmd.extend(["-af", "areverse", "-c:a", AUDIO_CODEC])
        else:
            cmd.append("-an")

        cmd.append(str(output_path))
        logger.debug("Built reverse command", command=" ".join(cmd))
        return cmd

    def build_concat(self, list_path: PathLike, output_path: PathLike) -> List[str]:
        """Splice the playlist entries without re-encoding."""
        cmd = self._base()
        cmd.extend([
            "-f", "concat", "-safe", "0",
            "-i", str(list_path),
            "-c", "copy",
            str(output_path),
        ])
        logger.debug("Built concat command", command=" ".join(cmd))
        return cmd

    @staticmethod
    def write_concat_list(list_path: PathLike, entries: Sequence[PathLike]) -> Path:
        """Write an ffconcat playlist, one ``file '<path>'`` line per entry."""
        lines = []
        for entry in entries:
            escaped = str(Path(entry).resolve()).replace("'", "'\\''")
            lines.append(f"file '{escaped}'")
        path = Path(list_path)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path


def _format_seconds(value: float) -> str:
    return f"{value:g}"


class FFmpegProgressParser:
    """Parse FFmpeg progress output."""

    def __init__(self, total_duration: Optional[float] = None):
        self.total_duration = total_duration
        self.frame_pattern = re.compile(r'frame=\s*(\d+)')
        self.time_pattern = re.compile(r'time=(\d{2,}):(\d{2}):(\d{2})\.(\d{2})')
        self.speed_pattern = re.compile(r'speed=\s*([\d.]+)x')

    def parse_progress(self, line: str) -> Optional[Dict[str, Any]]:
        """Parse progress information from one FFmpeg status line."""
        if not line.strip():
            return None

        progress: Dict[str, Any] = {}

        frame_match = self.frame_pattern.search(line)
        if frame_match:
            progress['frame'] = int(frame_match.group(1))

        time_match = self.time_pattern.search(line)
        if time_match:
            hours = int(time_match.group(1))
            minutes = int(time_match.group(2))
            seconds = int(time_match.group(3))
            centiseconds = int(time_match.group(4))
            total_seconds = hours * 3600 + minutes * 60 + seconds + centiseconds / 100
            progress['time'] = total_seconds

            # Calculate percentage if total duration is known
            if self.total_duration and self.total_duration > 0:
                progress['percentage'] = min(100.0, (total_seconds / self.total_duration) * 100)

        speed_match = self.speed_pattern.search(line)
        if speed_match:
            progress['speed'] = float(speed_match.group(1))

        return progress if progress else None


async def _iter_status_lines(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    """Yield stderr lines, treating carriage returns as line breaks."""
    buffer = ""
    while True:
        chunk = await stream.read(4096)
        if not chunk:
            break
        buffer += chunk.decode("utf-8", errors="ignore")
        parts = re.split(r"[\r\n]", buffer)
        buffer = parts.pop()
        for part in parts:
            if part.strip():
                yield part.strip()
    if buffer.strip():
        yield buffer.strip()


class FFmpegWrapper:
    """Runs ffmpeg and ffprobe as asyncio subprocesses."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.command_builder = FFmpegCommandBuilder(ffmpeg_path)

    async def check_available(self) -> None:
        """Raise EngineError unless ``ffmpeg -version`` succeeds."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffmpeg_path, "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineUnavailableError(f"Cannot start {self.ffmpeg_path}: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            raise EngineExecutionError(process.returncode, stderr.decode(errors="ignore").splitlines()[-5:])

    async def probe_file(self, file_path: PathLike) -> Dict[str, Any]:
        """Probe media file for format and stream information."""
        cmd = [
            self.ffprobe_path, '-v', 'quiet', '-print_format', 'json',
            '-show_format', '-show_streams', str(file_path),
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineUnavailableError(f"Cannot start {self.ffprobe_path}: {e}") from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise EngineExecutionError(process.returncode, stderr.decode(errors="ignore").splitlines()[-10:])

        try:
            return json.loads(stdout.decode())
        except json.JSONDecodeError as e:
            raise EngineError(f"Failed to parse FFprobe output: {e}") from e

    async def run(self, cmd: Sequence[str],
                  total_duration: Optional[float] = None) -> AsyncIterator[float]:
        """
        Run one ffmpeg command, yielding its completion percentage (0-100).

        Raises EngineError when the process cannot be started or exits
        with a non-zero status.
        """
        parser = FFmpegProgressParser(total_duration)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineUnavailableError(f"Cannot start {cmd[0]}: {e}") from e

        stderr_lines: List[str] = []
        try:
            async for line in _iter_status_lines(process.stderr):
                stderr_lines.append(line)
                del stderr_lines[:-20]
                progress = parser.parse_progress(line)
                if progress and 'percentage' in progress:
                    yield progress['percentage']
            await process.wait()
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            # Last 10 lines of error
            raise EngineExecutionError(process.returncode, stderr_lines[-10:])
