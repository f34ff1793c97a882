"""
One-Shot Worker Entry Point
===========================

Processes a single pending job without going through HTTP.  Useful for a
manual trigger, or for a host-level cron that can run Python directly.

Usage::

    python -m backend.worker

Exit codes:
    0 -- a job was processed (whatever its outcome) or the queue was empty
    1 -- the engine is misconfigured or the claim failed

Environment variables: see ``backend/services/config.py``; additionally
``LOG_LEVEL`` (default: INFO).
"""

import asyncio
import json
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Logging setup (before any other imports that might log)
# ---------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger("backend.worker")


from backend.services.config import EngineSettings  # noqa: E402
from backend.services.exceptions import KultError  # noqa: E402
from backend.services.job_store import BackgroundJobStore  # noqa: E402
from backend.worker.dispatcher import JobDispatcher  # noqa: E402


def run_once() -> int:
    """
    Load configuration, process at most one job and print the result.

    Returns
    -------
    int
        Process exit code.
    """
    try:
        from dotenv import load_dotenv

        load_dotenv()
        logger.debug(".env loaded via python-dotenv")
    except ImportError:
        logger.debug("python-dotenv not installed; using environment as-is")

    settings = EngineSettings.from_env()

    try:
        store = BackgroundJobStore.from_settings(settings)
        result = asyncio.run(JobDispatcher(store, settings).run())
    except KultError as exc:
        logger.error("Background job run aborted: %s", exc)
        print(json.dumps({"error": exc.message}))
        return 1

    print(result.model_dump_json())
    return 0


if __name__ == "__main__":
    sys.exit(run_once())
