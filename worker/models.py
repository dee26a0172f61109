"""
Data models shared by the pipeline, the CLI and the web layer.
"""
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from worker.errors import BoomerangError


class Quality(str, Enum):
    """Output quality tier."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# (video bitrate, x264 preset)
QUALITY_PRESETS: Dict[Quality, Tuple[str, str]] = {
    Quality.HIGH: ("8000k", "medium"),
    Quality.MEDIUM: ("4000k", "fast"),
    Quality.LOW: ("2000k", "faster"),
}


def quality_settings(quality: Quality) -> Tuple[str, str]:
    """Get the (bitrate, preset) pair for a quality tier."""
    return QUALITY_PRESETS[Quality(quality)]


class Stage(str, Enum):
    """Progress stage reported to observers."""
    ANALYZING = "analyzing"
    PROCESSING = "processing"
    CONCATENATING = "concatenating"
    FINALIZING = "finalizing"


class PipelineState(str, Enum):
    """Lifecycle of a single BoomerangProcessor."""
    IDLE = "idle"
    VALIDATING = "validating"
    ANALYZING = "analyzing"
    PREPARING = "preparing"
    FORWARD_RENDER = "forward_render"
    REVERSE_RENDER = "reverse_render"
    CONCATENATING = "concatenating"
    CLEANING_UP = "cleaning_up"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ProcessingOptions(BaseModel):
    """Configuration for one boomerang job. Never mutated once built."""
    model_config = ConfigDict(frozen=True)

    input: Path
    output: Optional[Path] = None
    quality: Quality = Quality.MEDIUM
    fps: Optional[float] = Field(default=None, gt=0)
    max_duration: Optional[float] = Field(default=None, gt=0)
    preserve_audio: bool = False
    temp_dir: Optional[Path] = None
    verbose: bool = False

    @property
    def bitrate(self) -> str:
        return quality_settings(self.quality)[0]

    @property
    def preset(self) -> str:
        return quality_settings(self.quality)[1]


class VideoMetadata(BaseModel):
    """Facts about the source video, as reported by ffprobe."""
    model_config = ConfigDict(frozen=True)

    duration: float
    fps: float
    width: int
    height: int
    has_audio: bool
    format: str
    bitrate: Optional[int] = None

    @property
    def dimensions(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def fps_label(self) -> str:
        return f"{self.fps:.1f}"

    def to_client(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "fps": self.fps,
            "width": self.width,
            "height": self.height,
            "hasAudio": self.has_audio,
            "format": self.format,
            "bitrate": self.bitrate,
        }


class ProcessingProgress(BaseModel):
    """One progress event. Not persisted."""
    model_config = ConfigDict(frozen=True)

    stage: Stage
    progress: float = Field(ge=0.0, le=100.0)
    current_step: str

    def to_client(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "progress": self.progress,
            "currentStep": self.current_step,
        }


class BoomerangResult(BaseModel):
    """Terminal outcome of BoomerangProcessor.process()."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    success: bool
    output_path: Optional[Path] = None
    metadata: Optional[VideoMetadata] = None
    processing_time: int = 0
    error: Optional[BoomerangError] = None

    @model_validator(mode="after")
    def check_outcome(self) -> "BoomerangResult":
        if (self.output_path is None) == (self.error is None):
            raise ValueError("exactly one of output_path and error must be set")
        if self.success != (self.error is None):
            raise ValueError("success must match the absence of an error")
        return self

    @classmethod
    def succeeded(cls, output_path: Path, metadata: VideoMetadata,
                  processing_time: int) -> "BoomerangResult":
        return cls(
            success=True,
            output_path=output_path,
            metadata=metadata,
            processing_time=processing_time,
        )

    @classmethod
    def failed(cls, error: BoomerangError, processing_time: int) -> "BoomerangResult":
        return cls(success=False, error=error, processing_time=processing_time)

    def to_client(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "outputPath": str(self.output_path) if self.output_path else None,
            "metadata": self.metadata.to_client() if self.metadata else None,
            "processingTime": self.processing_time,
            "error": self.error.message if self.error else None,
        }
