"""
API services
"""
from .connections import ConnectionManager, ObserverConnection
from .job_registry import Job, JobRegistry
from .job_service import JobService
from .relay import ProgressRelay
from .retention import RetentionSweeper
from .uploads import UploadStore

__all__ = [
    "ConnectionManager",
    "ObserverConnection",
    "Job",
    "JobRegistry",
    "JobService",
    "ProgressRelay",
    "RetentionSweeper",
    "UploadStore",
]
