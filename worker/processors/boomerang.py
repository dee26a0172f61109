"""
Boomerang pipeline: validate, analyze, render forward, render reverse,
concatenate, clean up.
"""
import time
from pathlib import Path
from typing import Optional

import structlog

from worker.errors import (
    BoomerangError,
    FFmpegError,
    OutputError,
    ProcessingError,
    wrap_unexpected,
)
from worker.models import BoomerangResult, PipelineState, ProcessingOptions, VideoMetadata
from worker.processors.analysis import MetadataInspector, ensure_min_duration
from worker.processors.stages import CONCAT_STAGE, FORWARD_STAGE, REVERSE_STAGE, StageRunner
from worker.utils.ffmpeg import EngineError, FFmpegWrapper
from worker.utils.files import (
    cleanup_temp_dir,
    create_temp_dir,
    format_duration,
    generate_output_path,
    validate_input_file,
    validate_video_format,
)
from worker.utils.progress import ANALYSIS_SLICE, ProgressObserver, ProgressTracker

FORWARD_FILE = "forward.mp4"
REVERSE_FILE = "reverse.mp4"
CONCAT_LIST_FILE = "concat.txt"


class BoomerangProcessor:
    """
    Turns one source video into a forward-then-reversed clip.

    An instance handles exactly one ``process()`` call. Progress goes to a
    single observer, set at construction or with ``set_observer`` (a new
    observer replaces the old one).
    """

    def __init__(self, options: ProcessingOptions,
                 observer: Optional[ProgressObserver] = None,
                 ffmpeg: Optional[FFmpegWrapper] = None):
        self.options = options
        self.ffmpeg = ffmpeg or FFmpegWrapper()
        self.tracker = ProgressTracker(observer)
        self.inspector = MetadataInspector(self.ffmpeg)
        self.stage_runner = StageRunner(self.ffmpeg, self.tracker)
        self.metadata: Optional[VideoMetadata] = None
        self.temp_dir: Optional[Path] = None
        self._state = PipelineState.IDLE
        self.logger = structlog.get_logger(self.__class__.__name__).bind(input=str(options.input))

    @property
    def state(self) -> PipelineState:
        return self._state

    def set_observer(self, observer: Optional[ProgressObserver]) -> None:
        self.tracker.set_observer(observer)

    @property
    def clip_duration(self) -> Optional[float]:
        """Length of each half of the boomerang, after trimming."""
        if self.metadata is None:
            return None
        if self.needs_trim:
            return self.options.max_duration
        return self.metadata.duration

    @property
    def needs_trim(self) -> bool:
        return bool(
            self.metadata is not None
            and self.options.max_duration
            and self.metadata.duration > self.options.max_duration
        )

    async def process(self) -> BoomerangResult:
        """Run the pipeline. Never raises; failures come back in the result."""
        start_time = time.monotonic()

        if self._state is not PipelineState.IDLE:
            return BoomerangResult.failed(
                ProcessingError("BoomerangProcessor instances are single-use"), 0
            )

        output_path: Optional[Path] = None
        error: Optional[BoomerangError] = None
        try:
            output_path = await self._run()
        except Exception as e:
            error = wrap_unexpected(e)
        finally:
            self._cleanup()

        processing_time = int((time.monotonic() - start_time) * 1000)

        if error is not None:
            self._transition(PipelineState.FAILED)
            if self.options.verbose:
                self.logger.error(
                    "Boomerang failed",
                    error_code=error.code,
                    error=error.message,
                    processing_time_ms=processing_time,
                )
            return BoomerangResult.failed(error, processing_time)

        await self.tracker.complete()
        self._transition(PipelineState.SUCCEEDED)
        self._verbose(
            "Boomerang created successfully",
            output=str(output_path),
            processing_time_ms=processing_time,
        )
        return BoomerangResult.succeeded(output_path, self.metadata, processing_time)

    async def _run(self) -> Path:
        await self._validate_environment()
        self.metadata = await self._analyze_video()
        output_path = self._setup_processing()
        return await self._create_boomerang(output_path)

    async def _validate_environment(self) -> None:
        self._transition(PipelineState.VALIDATING)
        await self.tracker.update_slice(ANALYSIS_SLICE, 0, "Validating environment...")

        try:
            await self.ffmpeg.check_available()
        except EngineError as e:
            raise FFmpegError(
                "validating",
                "FFmpeg is not installed or not accessible. "
                "Please install FFmpeg and ensure it's in your PATH.",
                cause=e,
            )

        validate_input_file(self.options.input)
        validate_video_format(self.options.input)
        await self.tracker.update_slice(ANALYSIS_SLICE, 25, "Environment validated")

    async def _analyze_video(self) -> VideoMetadata:
        self._transition(PipelineState.ANALYZING)
        await self.tracker.update_slice(ANALYSIS_SLICE, 50, "Analyzing video metadata...")

        metadata = await self.inspector.inspect(self.options.input)
        ensure_min_duration(metadata)

        if self.options.max_duration and metadata.duration > self.options.max_duration:
            self._verbose(
                "Video will be trimmed",
                max_duration=format_duration(self.options.max_duration),
            )
        self._verbose(
            "Video analyzed",
            dimensions=metadata.dimensions,
            fps=metadata.fps_label,
            duration=format_duration(metadata.duration),
        )

        await self.tracker.update_slice(ANALYSIS_SLICE, 100, "Video analysis complete")
        return metadata

    def _setup_processing(self) -> Path:
        self._transition(PipelineState.PREPARING)

        output_path = generate_output_path(self.options.input, self.options.output)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(
                f'Cannot create output directory "{output_path.parent}": {e}',
                path=str(output_path),
                cause=e,
            )

        try:
            self.temp_dir = create_temp_dir(self.options.temp_dir)
        except OSError as e:
            raise ProcessingError(f"Failed to create temporary directory: {e}", cause=e)

        self._verbose("Temp directory created", temp_dir=str(self.temp_dir))
        return output_path

    async def _create_boomerang(self, output_path: Path) -> Path:
        if self.metadata is None or self.temp_dir is None:
            raise ProcessingError("Video metadata not available")

        builder = self.ffmpeg.command_builder
        forward_path = self.temp_dir / FORWARD_FILE
        reverse_path = self.temp_dir / REVERSE_FILE
        concat_list = self.temp_dir / CONCAT_LIST_FILE
        clip_duration = self.clip_duration
        keep_audio = self.options.preserve_audio and self.metadata.has_audio

        self._transition(PipelineState.FORWARD_RENDER)
        await self.stage_runner.run(
            FORWARD_STAGE,
            builder.build_forward(
                self.options.input,
                forward_path,
                self.options,
                trim_to=self.options.max_duration if self.needs_trim else None,
                keep_audio=keep_audio,
            ),
            clip_duration,
        )

        self._transition(PipelineState.REVERSE_RENDER)
        await self.stage_runner.run(
            REVERSE_STAGE,
            builder.build_reverse(forward_path, reverse_path, self.options, keep_audio=keep_audio),
            clip_duration,
        )

        self._transition(PipelineState.CONCATENATING)
        builder.write_concat_list(concat_list, [forward_path, reverse_path])
        await self.stage_runner.run(
            CONCAT_STAGE,
            builder.build_concat(concat_list, output_path),
            clip_duration * 2 if clip_duration else None,
        )
        return output_path

    def _cleanup(self) -> None:
        self._transition(PipelineState.CLEANING_UP)
        if self.temp_dir is None:
            return
        self._verbose("Cleaning up temporary files", temp_dir=str(self.temp_dir))
        cleanup_temp_dir(self.temp_dir)

    def _transition(self, state: PipelineState) -> None:
        self.logger.debug("Pipeline state changed", previous=self._state.value, state=state.value)
        self._state = state

    def _verbose(self, event: str, **kw) -> None:
        if self.options.verbose:
            self.logger.info(event, **kw)
        else:
            self.logger.debug(event, **kw)


async def create_boomerang(options: ProcessingOptions,
                           observer: Optional[ProgressObserver] = None) -> BoomerangResult:
    """Convenience wrapper: build a processor and run it once."""
    return await BoomerangProcessor(options, observer=observer).process()
