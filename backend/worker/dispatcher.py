"""
Background Job Dispatcher
=========================

Processes at most one job per invocation:

1. Claim the next pending job from the store.
2. Resolve its handler in the registry.
3. Run the handler inside a failure boundary.
4. Record the outcome with exactly one completion call.
5. Return an outcome summary for the trigger response.

Only ``JobClaimError`` leaves ``run()``; once a job has been claimed every
path ends in a completion call and a ``JobOutcome``.
"""

import logging
import time
from typing import Optional, Tuple, Union

from pydantic import BaseModel

from backend.services.config import EngineSettings
from backend.services.embeddings import EmbeddingClient
from backend.services.exceptions import UnknownJobTypeError
from backend.services.job_store import BackgroundJob, BackgroundJobStore
from backend.worker.alerts import send_completion_lost_alert
from backend.worker.handlers import HandlerContext
from backend.worker.registry import HandlerRegistry, job_registry

logger = logging.getLogger(__name__)


NO_PENDING_JOBS_MESSAGE = "No pending jobs"


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

class JobOutcome(BaseModel):
    """Summary of one processed job."""
    job_id: str
    job_type: str
    success: bool
    error: Optional[str] = None


class NoPendingJobs(BaseModel):
    """Returned when the claim found nothing to do."""
    message: str = NO_PENDING_JOBS_MESSAGE


DispatchResult = Union[JobOutcome, NoPendingJobs]


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class JobDispatcher:
    """Claim -> dispatch -> complete, once per call to ``run()``."""

    def __init__(
        self,
        store: BackgroundJobStore,
        settings: EngineSettings,
        registry: HandlerRegistry = job_registry,
        embedder: Optional[EmbeddingClient] = None,
    ):
        self.store = store
        self.settings = settings
        self.registry = registry
        self.embedder = embedder or EmbeddingClient(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
        )

    async def run(self) -> DispatchResult:
        """
        Process at most one pending job.

        Returns
        -------
        JobOutcome or NoPendingJobs

        Raises
        ------
        JobClaimError
            The store could not be asked for a job; nothing was claimed.
        """
        job = await self.store.claim_next_job()
        if job is None:
            logger.debug("No pending jobs")
            return NoPendingJobs()

        logger.info(
            "Processing job: %s for user: %s", job.job_type, job.target_user_id,
        )
        start = time.monotonic()

        success, error = await self._execute(job)

        elapsed_ms = (time.monotonic() - start) * 1000.0
        logger.info(
            "Job %s (%s) finished  success=%s  elapsed=%.0fms",
            job.job_id, job.job_type, success, elapsed_ms,
        )

        await self._complete(job, success, error)

        return JobOutcome(
            job_id=job.job_id,
            job_type=job.job_type,
            success=success,
            error=error,
        )

    async def _execute(self, job: BackgroundJob) -> Tuple[bool, Optional[str]]:
        """Run the job's handler; never raises."""
        try:
            spec = self.registry.resolve(job.job_type)
        except UnknownJobTypeError as exc:
            logger.error(exc.message)
            return False, exc.message

        context = HandlerContext(
            client=self.store.client,
            settings=self.settings,
            embedder=self.embedder,
        )

        try:
            if spec.user_scoped:
                succeeded = await spec.handler(context, job.target_user_id)
            else:
                succeeded = await spec.handler(context)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error("Job failed: %s", message, exc_info=True)
            return False, message

        return bool(succeeded), None

    async def _complete(
        self,
        job: BackgroundJob,
        success: bool,
        error: Optional[str],
    ) -> None:
        """Record the outcome; a lost write is logged and alerted, not raised."""
        try:
            result = await self.store.complete_job(job.job_id, success, error)
            lost = not result.success
            reason = result.error.message if result.error else None
        except Exception as exc:
            lost = True
            reason = str(exc)

        if not lost:
            return

        logger.error(
            "Completion for job %s was not persisted: %s", job.job_id, reason,
        )
        try:
            await send_completion_lost_alert(
                job_id=job.job_id,
                job_type=job.job_type,
                success=success,
                error=error,
                webhook_url=self.settings.slack_alert_webhook_url,
            )
        except Exception as exc:
            logger.debug("Completion-loss alert failed (non-fatal): %s", exc)
