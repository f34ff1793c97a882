"""
Observability Router - Health endpoint.

Endpoints:
- GET /health - Liveness check with the supported job types
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.services.config import EngineSettings, get_settings
from backend.worker.registry import job_registry

logger = logging.getLogger(__name__)


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    job_types: List[str]
    store_configured: bool


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(tags=["observability"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: EngineSettings = Depends(get_settings),
) -> HealthResponse:
    """Liveness check; never touches the store."""
    return HealthResponse(
        status="ok",
        job_types=job_registry.supported_types(),
        store_configured=settings.has_store_credentials,
    )
