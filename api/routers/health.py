"""
Health check endpoint
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.config import Settings
from api.dependencies import get_app_settings

router = APIRouter()


@router.get("/health")
async def health_check(settings: Settings = Depends(get_app_settings)) -> Dict[str, Any]:
    """
    Basic health check endpoint.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
    }
