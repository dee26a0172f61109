"""
In-memory registry of jobs in flight.
"""
import asyncio
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Set
from uuid import uuid4

import structlog

from worker.processors.boomerang import BoomerangProcessor

if TYPE_CHECKING:
    from api.services.connections import ObserverConnection

logger = structlog.get_logger()


class Job:
    """One boomerang conversion tracked from upload to terminal outcome."""

    def __init__(self, job_id: str, processor: BoomerangProcessor,
                 connection: "ObserverConnection", file_name: str, input_path: Path):
        self.id = job_id
        self.processor = processor
        self.connection = connection
        self.file_name = file_name
        self.input_path = input_path
        self.created_at = datetime.now(timezone.utc)
        self.task: Optional[asyncio.Task] = None

    @property
    def status(self) -> str:
        # Tracked jobs are always in flight
        return "processing"

    def to_dict(self):
        return {"jobId": self.id, "status": self.status}


class JobRegistry:
    """
    Maps job ids to Jobs.

    Ids handed out by ``new_job_id`` are never issued twice and a removed id
    cannot be registered again. Removal is idempotent.
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._issued: Set[str] = set()
        self._retired: Set[str] = set()
        self._lock = threading.Lock()

    def new_job_id(self) -> str:
        with self._lock:
            job_id = str(uuid4())
            while job_id in self._issued:
                job_id = str(uuid4())
            self._issued.add(job_id)
            return job_id

    def add(self, job: Job) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job {job.id} is already registered")
            if job.id in self._retired:
                raise ValueError(f"Job id {job.id} has already been used")
            self._issued.add(job.id)
            self._jobs[job.id] = job
        logger.info("Job registered", job_id=job.id, active_jobs=len(self._jobs))

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def remove(self, job_id: str) -> Optional[Job]:
        """Deregister a job; removing an unknown id does nothing."""
        with self._lock:
            job = self._jobs.pop(job_id, None)
            if job is not None:
                self._retired.add(job_id)
        if job is not None:
            logger.info("Job deregistered", job_id=job_id)
        return job

    def remove_for_connection(self, connection: "ObserverConnection") -> List[str]:
        """Deregister every job observed through ``connection``."""
        with self._lock:
            job_ids = [job_id for job_id, job in self._jobs.items() if job.connection is connection]
        for job_id in job_ids:
            self.remove(job_id)
        return job_ids

    def job_ids(self) -> List[str]:
        with self._lock:
            return list(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
