"""
FastAPI Server - Kult Background Job Processor

Exposes the job processor to the external scheduler. Each scheduler call
to ``/background-jobs`` claims and processes at most one queued job.

Run with:
    python -m lib.api.server

Or with uvicorn:
    uvicorn lib.api.server:app --host 0.0.0.0 --port 8001

Note: the server respects both PORT and API_PORT environment variables.
"""

import logging
import os
import sys
from pathlib import Path

from fastapi import FastAPI
import uvicorn

# Add project root to path BEFORE importing local modules
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from lib.api.preflight import run_preflight_checks  # noqa: E402
from lib.api.routers import (  # noqa: E402
    background_jobs_router,
    observability_router,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Kult Background Jobs API",
    description="Cron-triggered processor for the background_jobs queue",
    version="1.0.0"
)

# CORS headers are set per response by the background-jobs router, which
# also answers its own OPTIONS pre-flight.

app.include_router(background_jobs_router)
app.include_router(observability_router)


# =============================================================================
# Startup/Shutdown Events
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    logger.info("=" * 60)
    logger.info("Kult Background Jobs API Starting...")
    logger.info("=" * 60)

    # Load environment variables from project root
    from dotenv import load_dotenv
    env_path = project_root / ".env"
    load_dotenv(dotenv_path=env_path, override=False)

    # Misconfiguration is reported per trigger call, so only log here.
    run_preflight_checks(fail_on_critical=False)

    api_port = os.getenv("PORT") or os.getenv("API_PORT", "8001")
    logger.info("=" * 60)
    logger.info("API Ready!")
    logger.info(f"Listening on http://0.0.0.0:{api_port}")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown."""
    logger.info("Kult Background Jobs API shutting down...")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    # Load environment variables from project root
    from dotenv import load_dotenv
    env_path = project_root / ".env"
    load_dotenv(dotenv_path=env_path, override=False)

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("PORT") or os.getenv("API_PORT", "8001"))
    reload = os.getenv("UVICORN_RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port}")
    logger.info(f"Reload: {reload}")

    uvicorn.run(
        "lib.api.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )
