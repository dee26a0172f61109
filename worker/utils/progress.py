"""Progress tracking utilities"""
import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

import structlog

from worker.models import ProcessingProgress, Stage

logger = structlog.get_logger()

ProgressObserver = Callable[[ProcessingProgress], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class StageSlice:
    """The part of the overall 0-100 bar a stage is allotted."""
    stage: Stage
    start: float
    end: float

    def scale(self, local_percent: float) -> float:
        """Map a stage-local percentage (0-100) into this slice."""
        local = min(100.0, max(0.0, local_percent))
        return round(self.start + (self.end - self.start) * local / 100.0, 2)


# Analyzing reports stage-local calibration points 0/25/50/100
ANALYSIS_SLICE = StageSlice(Stage.ANALYZING, 0.0, 10.0)
FORWARD_SLICE = StageSlice(Stage.PROCESSING, 10.0, 50.0)
REVERSE_SLICE = StageSlice(Stage.PROCESSING, 50.0, 80.0)
CONCAT_SLICE = StageSlice(Stage.CONCATENATING, 80.0, 100.0)
FINAL_PROGRESS = 100.0


class ProgressTracker:
    """
    Normalizes progress for one pipeline and forwards it to a single observer.

    Registering an observer replaces the previous one. Percentages never go
    backwards: a lower value is reported as the last one emitted.
    """

    def __init__(self, observer: Optional[ProgressObserver] = None):
        self._observer = observer
        self.last_percentage = 0.0

    @property
    def observer(self) -> Optional[ProgressObserver]:
        return self._observer

    def set_observer(self, observer: Optional[ProgressObserver]) -> None:
        self._observer = observer

    async def update(self, stage: Stage, percentage: float, message: str) -> ProcessingProgress:
        """Emit one progress event."""
        percentage = min(FINAL_PROGRESS, max(self.last_percentage, percentage))
        event = ProcessingProgress(stage=stage, progress=percentage, current_step=message)
        self.last_percentage = percentage

        if self._observer is None:
            return event

        try:
            outcome = self._observer(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(
                "Progress observer failed",
                stage=stage.value,
                percentage=percentage,
                error=str(e),
            )
        return event

    async def update_slice(self, stage_slice: StageSlice, local_percent: float,
                           message: str) -> ProcessingProgress:
        """Emit an event for a stage-local percentage."""
        return await self.update(stage_slice.stage, stage_slice.scale(local_percent), message)

    async def complete(self, message: str = "Boomerang complete!") -> ProcessingProgress:
        """Close the sequence at (finalizing, 100)."""
        return await self.update(Stage.FINALIZING, FINAL_PROGRESS, message)
