"""
API routers
"""
from . import events, health, jobs

__all__ = ["events", "health", "jobs"]
