"""
File helpers: input validation, output naming and temp directory handling.
"""
import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from worker.errors import InputNotFoundError, InvalidInputError, UnsupportedFormatError

logger = structlog.get_logger()

# Allowed file extensions
SUPPORTED_EXTENSIONS = (".mp4", ".avi", ".mov", ".mkv", ".webm", ".m4v")

TEMP_DIR_PREFIX = "boomerang_"

PathLike = Union[str, os.PathLike]


def validate_input_file(file_path: PathLike) -> Path:
    """Check that the path is an existing, readable regular file."""
    path = Path(file_path)
    try:
        st = path.stat()
    except FileNotFoundError:
        raise InputNotFoundError(str(path))
    except OSError as e:
        raise InvalidInputError(f'Cannot access file "{path}": {e}', path=str(path), cause=e)

    if not stat.S_ISREG(st.st_mode):
        raise InvalidInputError(f'Path "{path}" is not a file', path=str(path))
    if not os.access(path, os.R_OK):
        raise InvalidInputError(f'Cannot access file "{path}": permission denied', path=str(path))
    return path


def is_supported_format(file_path: PathLike) -> bool:
    return Path(file_path).suffix.lower() in SUPPORTED_EXTENSIONS


def validate_video_format(file_path: PathLike) -> None:
    """Reject extensions outside the allow-list (case-insensitive)."""
    if not is_supported_format(file_path):
        raise UnsupportedFormatError(Path(file_path).suffix.lower(), SUPPORTED_EXTENSIONS)


def generate_output_path(input_path: PathLike, output_path: Optional[PathLike] = None) -> Path:
    """Use the explicit output path, or derive <stem>_boomerang<ext> next to the input."""
    if output_path:
        return Path(output_path)
    source = Path(input_path)
    return source.with_name(f"{source.stem}_boomerang{source.suffix}")


def create_temp_dir(root: Optional[PathLike] = None) -> Path:
    """Create a uniquely named working directory under ``root`` (or the system temp dir)."""
    base = Path(root) if root else Path(tempfile.gettempdir())
    base.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX, dir=base))


def cleanup_temp_dir(temp_dir: Optional[PathLike]) -> bool:
    """
    Remove a working directory.

    Failures are logged as warnings and reported through the return value,
    never raised.
    """
    if not temp_dir:
        return True
    path = Path(temp_dir)
    try:
        if path.exists():
            shutil.rmtree(path)
        return True
    except OSError as e:
        logger.warning("Failed to cleanup temporary directory", path=str(path), error=str(e))
        return False


def format_file_size(size: int) -> str:
    """Format file size in human readable format."""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.1f} {units[unit_index]}"


def format_duration(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS past an hour."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
