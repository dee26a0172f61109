"""Job service: accepts uploads and drives their pipelines in the background."""

import asyncio
from pathlib import Path
from typing import Callable, Optional, Set

import structlog

from api.services.connections import ConnectionManager
from api.services.job_registry import Job, JobRegistry
from api.services.relay import ProgressRelay
from api.utils.error_handlers import BadRequestError
from worker.models import BoomerangResult, ProcessingOptions, Quality
from worker.processors.boomerang import BoomerangProcessor

logger = structlog.get_logger()

ProcessorFactory = Callable[[ProcessingOptions], BoomerangProcessor]

OUTPUT_URL_PREFIX = "/output"


class JobService:
    """Creates jobs, binds them to an observer and runs them to completion."""

    def __init__(self, registry: JobRegistry, connections: ConnectionManager,
                 output_dir: Path, processor_factory: Optional[ProcessorFactory] = None):
        self.registry = registry
        self.connections = connections
        self.output_dir = Path(output_dir)
        self.processor_factory = processor_factory or BoomerangProcessor
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, input_path: Path, file_name: str, quality: Quality = Quality.MEDIUM,
               fps: Optional[float] = None, max_duration: Optional[float] = None,
               preserve_audio: bool = False) -> Job:
        """
        Register a job for an uploaded file and start processing it.

        The job is observed by the first open WebSocket connection; without
        one the upload is rejected.
        """
        connection = self.connections.first_open()
        if connection is None:
            raise BadRequestError("No active WebSocket connection")

        job_id = self.registry.new_job_id()
        options = ProcessingOptions(
            input=input_path,
            output=self.output_dir / f"{job_id}_boomerang.mp4",
            quality=quality,
            fps=fps,
            max_duration=max_duration,
            preserve_audio=preserve_audio,
            verbose=True,
        )

        processor = self.processor_factory(options)
        relay = ProgressRelay(connection, job_id, file_name)
        processor.set_observer(relay.on_progress)

        job = Job(job_id, processor, connection, file_name, Path(input_path))
        self.registry.add(job)

        job.task = asyncio.create_task(self._run(job, relay), name=f"boomerang-{job_id}")
        self._tasks.add(job.task)
        job.task.add_done_callback(self._tasks.discard)

        logger.info(
            "Job created",
            job_id=job_id,
            file_name=file_name,
            quality=options.quality.value,
            fps=fps,
            max_duration=max_duration,
            preserve_audio=preserve_audio,
            connection_id=connection.id,
        )
        return job

    async def _run(self, job: Job, relay: ProgressRelay) -> None:
        try:
            result = await job.processor.process()
            if result.success:
                await relay.send_complete(result, self.download_url(result))
                logger.info("Job completed", job_id=job.id, processing_time_ms=result.processing_time)
            else:
                await relay.send_error(result.error.message)
                logger.warning(
                    "Job failed",
                    job_id=job.id,
                    error_code=result.error.code,
                    error=result.error.message,
                )
        except Exception as e:
            logger.error("Job crashed", job_id=job.id, error=str(e), exc_info=True)
            await relay.send_error(str(e))
        finally:
            self.registry.remove(job.id)
            self._remove_upload(job)

    @staticmethod
    def download_url(result: BoomerangResult) -> Optional[str]:
        if not result.success or result.output_path is None:
            return None
        return f"{OUTPUT_URL_PREFIX}/{result.output_path.name}"

    @staticmethod
    def _remove_upload(job: Job) -> None:
        try:
            job.input_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove upload", job_id=job.id, path=str(job.input_path), error=str(e))

    async def wait_all(self, timeout: Optional[float] = None) -> None:
        """Wait for every running job (used at shutdown and in tests)."""
        if not self._tasks:
            return
        await asyncio.wait(set(self._tasks), timeout=timeout)

    @property
    def running(self) -> int:
        return len(self._tasks)
