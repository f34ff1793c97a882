"""
Router package for FastAPI endpoints.

This package contains modular routers for different API domains:
- background_jobs: Scheduler trigger that processes one queued job
- observability: Health endpoint
"""

from .background_jobs import router as background_jobs_router
from .observability import router as observability_router

__all__ = [
    "background_jobs_router",
    "observability_router",
]
