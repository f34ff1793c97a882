"""
Background Jobs Router - Scheduler trigger for the job processor.

Each authenticated call processes at most one queued job.

Endpoints:
- OPTIONS /background-jobs - CORS pre-flight, no processing
- GET/POST /background-jobs - Claim, run and complete one job

Responses:
- 200 ``{"message": "No pending jobs"}``
- 200 ``{"job_id", "job_type", "success", "error"}``
- 401 ``{"error": "Unauthorized" | "Invalid cron secret"}``
- 500 ``{"error": "Server misconfigured" | "Failed to fetch job" | "Internal server error"}``
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse, Response

from backend.services.config import EngineSettings, get_settings
from backend.services.exceptions import ConfigurationError, KultError
from backend.services.job_store import BackgroundJobStore
from backend.worker.dispatcher import JobDispatcher
from lib.api.shared import authenticate_trigger, cors_headers

logger = logging.getLogger(__name__)


# =============================================================================
# Router
# =============================================================================

router = APIRouter(tags=["background-jobs"])

BACKGROUND_JOBS_PATH = "/background-jobs"


def _build_dispatcher(settings: EngineSettings) -> JobDispatcher:
    """Create a dispatcher bound to a fresh store client."""
    store = BackgroundJobStore.from_settings(settings)
    return JobDispatcher(store=store, settings=settings)


@router.options(BACKGROUND_JOBS_PATH)
async def background_jobs_preflight(
    request: Request,
    settings: EngineSettings = Depends(get_settings),
) -> Response:
    """CORS pre-flight: empty success response, nothing is processed."""
    return Response(
        status_code=200,
        headers=cors_headers(request.headers.get("origin"), settings),
    )


@router.api_route(BACKGROUND_JOBS_PATH, methods=["GET", "POST"])
async def process_background_job(
    request: Request,
    x_cron_secret: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
    settings: EngineSettings = Depends(get_settings),
) -> JSONResponse:
    """
    Process the next pending background job.

    Authentication happens before any store access; a request without
    credentials never reaches the queue.
    """
    headers = cors_headers(request.headers.get("origin"), settings)

    try:
        credential = authenticate_trigger(x_cron_secret, authorization, settings)
        settings.require_store_credentials()

        logger.info(f"Background job trigger accepted ({credential})")
        result = await _build_dispatcher(settings).run()

    except ConfigurationError as e:
        logger.error(f"Server misconfigured: {e}")
        return JSONResponse(
            status_code=e.status_code,
            content={"error": "Server misconfigured"},
            headers=headers,
        )
    except KultError as e:
        if e.status_code >= 500:
            logger.error(f"Background job trigger failed: {e.to_dict()}")
        return JSONResponse(
            status_code=e.status_code,
            content={"error": e.message},
            headers=headers,
        )
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
            headers=headers,
        )

    return JSONResponse(content=result.model_dump(), headers=headers)
