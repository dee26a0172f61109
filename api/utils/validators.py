"""
Input validation utilities for upload form fields
"""
import math
import re
import secrets
import time
from pathlib import Path
from typing import Optional

from api.utils.error_handlers import BadRequestError
from worker.errors import UnsupportedFormatError
from worker.models import Quality
from worker.utils.files import validate_video_format

# Characters kept in stored upload names
UNSAFE_FILENAME_CHARS = re.compile(r'[^a-zA-Z0-9\-_.]')


def validate_upload_filename(filename: Optional[str]) -> str:
    """Return the client file name, rejecting missing names and bad extensions."""
    if not filename:
        raise BadRequestError("No video file provided")
    name = Path(filename).name
    try:
        validate_video_format(name)
    except UnsupportedFormatError as e:
        raise BadRequestError(e.message)
    return name


def storage_filename(original_name: str) -> str:
    """Unique on-disk name for an upload: <millis>-<random>-<sanitized name>."""
    safe_name = UNSAFE_FILENAME_CHARS.sub("_", original_name) or "upload"
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}-{safe_name}"


def parse_quality(value: Optional[str]) -> Quality:
    if not value:
        return Quality.MEDIUM
    try:
        return Quality(value.lower())
    except ValueError:
        valid = ", ".join(q.value for q in Quality)
        raise BadRequestError(f'Invalid quality "{value}". Valid options: {valid}')


def parse_positive_float(value: Optional[str], field: str) -> Optional[float]:
    """Empty values mean "not set"."""
    if value is None or value.strip() == "":
        return None
    try:
        number = float(value)
    except ValueError:
        raise BadRequestError(f"{field} must be a number")
    if not math.isfinite(number) or number <= 0:
        raise BadRequestError(f"{field} must be a positive number")
    return number


def parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"
