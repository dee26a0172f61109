"""
Upload and job lookup endpoints
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
import structlog

from api.dependencies import get_connections, get_job_service, get_registry, get_upload_store
from api.services.connections import ConnectionManager
from api.services.job_registry import JobRegistry
from api.services.job_service import JobService
from api.services.uploads import UploadStore
from api.utils.error_handlers import BadRequestError, NotFoundError
from api.utils.validators import (
    parse_bool, parse_positive_float, parse_quality, validate_upload_filename,
)

logger = structlog.get_logger()
router = APIRouter()


@router.post("/upload")
async def upload_video(
    video: Optional[UploadFile] = File(None),
    quality: Optional[str] = Form(None),
    fps: Optional[str] = Form(None),
    max_duration: Optional[str] = Form(None, alias="maxDuration"),
    preserve_audio: Optional[str] = Form(None, alias="preserveAudio"),
    connections: ConnectionManager = Depends(get_connections),
    uploads: UploadStore = Depends(get_upload_store),
    job_service: JobService = Depends(get_job_service),
) -> Dict[str, Any]:
    """
    Accept a video and start converting it to a boomerang.

    Progress and the result are pushed over the ``/ws`` connection.
    """
    if video is None:
        raise BadRequestError("No video file provided")
    file_name = validate_upload_filename(video.filename)

    parsed_quality = parse_quality(quality)
    parsed_fps = parse_positive_float(fps, "fps")
    parsed_max_duration = parse_positive_float(max_duration, "maxDuration")
    keep_audio = parse_bool(preserve_audio)

    # Checked before the upload is stored
    if connections.first_open() is None:
        raise BadRequestError("No active WebSocket connection")

    input_path = await uploads.save(video, file_name)
    try:
        job = job_service.submit(
            input_path,
            file_name,
            quality=parsed_quality,
            fps=parsed_fps,
            max_duration=parsed_max_duration,
            preserve_audio=keep_audio,
        )
    except Exception:
        input_path.unlink(missing_ok=True)
        raise

    return job.to_dict()


@router.get("/job/{job_id}")
async def get_job(job_id: str, registry: JobRegistry = Depends(get_registry)) -> Dict[str, Any]:
    """Status of a job in flight."""
    job = registry.get(job_id)
    if job is None:
        raise NotFoundError("Job not found")
    return job.to_dict()
