"""
Background Job Store
====================

Thin adapter around the Supabase-backed ``background_jobs`` queue.

The store owns the queue's state machine (``pending -> claimed ->
completed | failed``) through two stored procedures:

- ``process_next_background_job()`` atomically claims at most one pending
  job (``FOR UPDATE SKIP LOCKED`` on the database side) and returns it.
- ``complete_background_job(p_job_id, p_success, p_error)`` records the
  job's terminal outcome.

The claim is the only mutual-exclusion point between overlapping trigger
invocations; this module adds no locking of its own.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, field_validator
from supabase import Client, create_client

from backend.services.config import EngineSettings
from backend.services.exceptions import (
    JobClaimError,
    JobCompletionError,
    OperationResult,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

BACKGROUND_JOBS_TABLE = "background_jobs"
CLAIM_JOB_RPC = "process_next_background_job"
COMPLETE_JOB_RPC = "complete_background_job"


# =============================================================================
# Enums
# =============================================================================

class JobType(str, Enum):
    """Job types the engine knows how to process."""
    GENERATE_MATCHES = "generate_matches"
    UPDATE_EMBEDDINGS = "update_embeddings"
    CLEANUP_STALE = "cleanup_stale"
    CALCULATE_STATS = "calculate_stats"

    @classmethod
    def parse(cls, value: str) -> Optional["JobType"]:
        """Return the matching member, or None for an unrecognised tag."""
        try:
            return cls(value)
        except ValueError:
            return None


# =============================================================================
# Models
# =============================================================================

class BackgroundJob(BaseModel):
    """
    A job as returned by the claim procedure.

    ``job_type`` keeps the raw stored tag so that types added to the
    database before the engine knows about them can still be claimed,
    reported and failed cleanly.  A NULL or non-string tag is kept as its
    text form (``"null"`` for NULL or absent) and fails as an unknown type.
    """
    job_id: str
    job_type: str = "null"
    target_user_id: Optional[str] = None

    @field_validator("job_id", "target_user_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        # UUID columns may arrive as UUID objects from some clients
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("job_type", mode="before")
    @classmethod
    def _stringify_job_type(cls, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, str):
            return value
        return str(value)


# =============================================================================
# Job Store
# =============================================================================

class BackgroundJobStore:
    """
    Claim/complete contract over the Supabase job queue.

    Provides methods for:
    - Claiming the next pending job (fails closed on store errors)
    - Recording a job's terminal outcome (best-effort, never raises)
    """

    def __init__(self, supabase_client: Client):
        """
        Initialize the BackgroundJobStore.

        Args:
            supabase_client: Supabase client authenticated with the
                             service-role key.
        """
        self.client = supabase_client

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "BackgroundJobStore":
        """
        Create a store from engine settings.

        Raises:
            MissingCredentialsError: If the store credentials are not configured
        """
        settings.require_store_credentials()
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return cls(client)

    async def claim_next_job(self) -> Optional[BackgroundJob]:
        """
        Atomically claim the next pending job.

        Returns:
            The claimed BackgroundJob, or None if the queue is empty.

        Raises:
            JobClaimError: If the claim procedure errors. An empty result is
                           only ever returned for a genuinely empty queue.
        """
        try:
            response = self.client.rpc(CLAIM_JOB_RPC, {}).execute()
        except Exception as e:
            logger.error(f"Error fetching job: {e}")
            raise JobClaimError(original_error=e) from e

        row = self._first_row(response.data)
        if row is None:
            return None

        try:
            job = BackgroundJob(**row)
        except Exception as e:
            logger.error(f"Claim returned a malformed job row: {row!r}")
            raise JobClaimError(
                message="Claim returned a malformed job row",
                original_error=e,
            ) from e

        logger.info(
            f"Claimed job {job.job_id}: {job.job_type} "
            f"for user: {job.target_user_id}"
        )
        return job

    async def complete_job(
        self,
        job_id: str,
        success: bool,
        error: Optional[str] = None,
    ) -> OperationResult:
        """
        Record a job's terminal outcome.

        Args:
            job_id: The claimed job's ID
            success: Whether the handler succeeded
            error: Failure reason, None on success or handler-reported failure

        Returns:
            OperationResult; a failed result means the outcome was not
            persisted and the job may be left claimed in the store.
        """
        try:
            self.client.rpc(
                COMPLETE_JOB_RPC,
                {
                    "p_job_id": job_id,
                    "p_success": success,
                    "p_error": error,
                },
            ).execute()
        except Exception as e:
            logger.error(f"Error completing job {job_id}: {e}")
            return OperationResult.fail(
                JobCompletionError(job_id=job_id, original_error=e)
            )

        logger.info(f"Completed job {job_id} (success={success})")
        return OperationResult.ok({"job_id": job_id, "success": success})

    @staticmethod
    def _first_row(
        data: Union[List[Dict[str, Any]], Dict[str, Any], None],
    ) -> Optional[Dict[str, Any]]:
        """Normalise an RPC payload (set-returning or scalar) to one row."""
        if not data:
            return None
        if isinstance(data, list):
            return data[0]
        return data
