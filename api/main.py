"""
Video Boomerang - Web Application
"""
from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
import structlog

from api.config import Settings, get_settings
from api.routers import events, health, jobs
from api.services.connections import ConnectionManager
from api.services.job_registry import JobRegistry
from api.services.job_service import JobService, ProcessorFactory
from api.services.retention import RetentionSweeper
from api.services.uploads import UploadStore
from api.utils.error_handlers import (
    ApiError, api_exception_handler, validation_exception_handler,
    http_exception_handler, general_exception_handler,
)
from api.utils.logger import setup_logging
from worker.processors.boomerang import BoomerangProcessor
from worker.utils.ffmpeg import FFmpegWrapper

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting Video Boomerang", version=settings.VERSION)

    sweeper: RetentionSweeper = app.state.sweeper
    sweeper.start()

    logger.info(
        "Configuration loaded",
        host=settings.HOST,
        port=settings.PORT,
        upload_dir=str(settings.UPLOAD_DIR),
        output_dir=str(settings.OUTPUT_DIR),
        max_upload_size=settings.MAX_UPLOAD_SIZE,
    )

    yield

    logger.info("Shutting down Video Boomerang", running_jobs=app.state.job_service.running)
    await sweeper.stop()


def create_app(settings: Optional[Settings] = None,
               processor_factory: Optional[ProcessorFactory] = None) -> FastAPI:
    """Build the application with its own registry, connections and storage."""
    settings = settings or get_settings()
    if processor_factory is None:
        ffmpeg = FFmpegWrapper(settings.FFMPEG_PATH, settings.FFPROBE_PATH)
        processor_factory = partial(BoomerangProcessor, ffmpeg=ffmpeg)

    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    settings.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

    app = FastAPI(
        title="Video Boomerang",
        description="Turn short videos into boomerang clips",
        version=settings.VERSION,
        lifespan=lifespan,
    )

    registry = JobRegistry()
    connections = ConnectionManager()
    app.state.settings = settings
    app.state.registry = registry
    app.state.connections = connections
    app.state.uploads = UploadStore(settings.UPLOAD_DIR, settings.MAX_UPLOAD_SIZE)
    app.state.job_service = JobService(
        registry, connections, settings.OUTPUT_DIR, processor_factory=processor_factory,
    )
    app.state.sweeper = RetentionSweeper(
        [settings.UPLOAD_DIR, settings.OUTPUT_DIR],
        max_age=settings.RETENTION_SECONDS,
        interval=settings.SWEEP_INTERVAL_SECONDS,
    )

    # Exception handlers
    app.add_exception_handler(ApiError, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(jobs.router, prefix="/api", tags=["jobs"])
    app.include_router(events.router)

    # Static mounts come last, "/" would shadow everything after it
    app.mount("/output", StaticFiles(directory=settings.OUTPUT_DIR), name="output")
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")
    if settings.PUBLIC_DIR.is_dir():
        app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR, html=True), name="public")

    return app


def main():
    """Main entry point for the web server."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json_logs=not settings.DEBUG)

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,  # Use structlog
    )


if __name__ == "__main__":
    main()
