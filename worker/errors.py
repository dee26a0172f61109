"""
Error taxonomy for boomerang processing.

Every failure surfaced by the pipeline is one of the kinds below. Each kind
is its own exception class carrying the context that belongs to it, so
callers branch on the class (or on ``kind``) instead of comparing codes.
"""
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds."""
    INVALID_INPUT = "INVALID_INPUT"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    FFMPEG_ERROR = "FFMPEG_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    OUTPUT_ERROR = "OUTPUT_ERROR"


class BoomerangError(Exception):
    """Base exception for boomerang processing errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.PROCESSING_ERROR

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "type": type(self).__name__,
        }


class InvalidInputError(BoomerangError):
    """Source is malformed, inaccessible or too short."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, path: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        self.path = path
        super().__init__(message, cause)


class InputNotFoundError(BoomerangError):
    """Source path does not exist."""

    kind = ErrorKind.FILE_NOT_FOUND

    def __init__(self, path: str):
        self.path = path
        super().__init__(f'File "{path}" does not exist')


class UnsupportedFormatError(BoomerangError):
    """Source extension is outside the allow-list."""

    kind = ErrorKind.UNSUPPORTED_FORMAT

    def __init__(self, extension: str, supported: Iterable[str]):
        self.extension = extension
        self.supported = tuple(supported)
        super().__init__(
            f'Unsupported file format "{extension}". '
            f'Supported formats: {", ".join(self.supported)}'
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["supported"] = list(self.supported)
        return data


class FFmpegError(BoomerangError):
    """The media engine is unavailable or one of its invocations failed."""

    kind = ErrorKind.FFMPEG_ERROR

    def __init__(self, stage: str, message: str,
                 cause: Optional[BaseException] = None):
        self.stage = stage
        self.detail = message
        super().__init__(message, cause)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["stage"] = self.stage
        return data


class ProcessingError(BoomerangError):
    """Any other unexpected internal failure."""

    kind = ErrorKind.PROCESSING_ERROR


class OutputError(BoomerangError):
    """The output location could not be prepared or written."""

    kind = ErrorKind.OUTPUT_ERROR

    def __init__(self, message: str, path: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        self.path = path
        super().__init__(message, cause)


def wrap_unexpected(error: BaseException) -> BoomerangError:
    """Return ``error`` unchanged if it is already classified."""
    if isinstance(error, BoomerangError):
        return error
    return ProcessingError(f"Unexpected error: {error}", cause=error)
