"""
Stage runner: one ffmpeg invocation with its progress rescaled onto the
pipeline's overall bar.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from worker.errors import FFmpegError
from worker.utils.ffmpeg import EngineError, FFmpegWrapper
from worker.utils.progress import (
    CONCAT_SLICE,
    FORWARD_SLICE,
    REVERSE_SLICE,
    ProgressTracker,
    StageSlice,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class RenderStage:
    """Static description of one media-producing stage."""
    name: str
    slice: StageSlice
    start_message: str
    tick_message: str
    done_message: Optional[str]
    failure_message: str


FORWARD_STAGE = RenderStage(
    name="forward-render",
    slice=FORWARD_SLICE,
    start_message="Creating forward video...",
    tick_message="Processing forward video...",
    done_message="Forward video created",
    failure_message="Failed to create forward video",
)

REVERSE_STAGE = RenderStage(
    name="reverse-render",
    slice=REVERSE_SLICE,
    start_message="Creating reverse video...",
    tick_message="Creating reverse video...",
    done_message="Reverse video created",
    failure_message="Failed to create reverse video",
)

# The pipeline closes the sequence itself once concatenation is done
CONCAT_STAGE = RenderStage(
    name="concatenate",
    slice=CONCAT_SLICE,
    start_message="Concatenating videos...",
    tick_message="Concatenating...",
    done_message=None,
    failure_message="Failed to concatenate videos",
)


class StageRunner:
    """Runs stage commands through FFmpegWrapper and reports progress."""

    def __init__(self, ffmpeg: FFmpegWrapper, tracker: ProgressTracker):
        self.ffmpeg = ffmpeg
        self.tracker = tracker

    async def run(self, stage: RenderStage, cmd: Sequence[str],
                  expected_duration: Optional[float] = None) -> None:
        """
        Run ``cmd`` to completion.

        Raises FFmpegError tagged with the stage name when ffmpeg cannot be
        started or reports failure.
        """
        await self.tracker.update_slice(stage.slice, 0, stage.start_message)
        logger.debug("Stage started", stage=stage.name, command=" ".join(cmd))

        try:
            async for percent in self.ffmpeg.run(cmd, expected_duration):
                await self.tracker.update_slice(
                    stage.slice, percent, f"{stage.tick_message} {int(percent)}%"
                )
        except EngineError as e:
            logger.debug("Stage failed", stage=stage.name, error=str(e))
            raise FFmpegError(stage.name, f"{stage.failure_message}: {e}", cause=e)

        if stage.done_message:
            await self.tracker.update_slice(stage.slice, 100, stage.done_message)
        logger.debug("Stage finished", stage=stage.name)
