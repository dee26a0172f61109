"""
FastAPI dependencies resolving the per-application services.
"""
from fastapi import Request

from api.config import Settings
from api.services.connections import ConnectionManager
from api.services.job_registry import JobRegistry
from api.services.job_service import JobService
from api.services.uploads import UploadStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> JobRegistry:
    return request.app.state.registry


def get_connections(request: Request) -> ConnectionManager:
    return request.app.state.connections


def get_job_service(request: Request) -> JobService:
    return request.app.state.job_service


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.uploads
