"""
Completion-Loss Alerting
========================

Sends an alert when the dispatcher decided a job's outcome but could not
persist it with ``complete_background_job``.  The job may then stay claimed
in the store, or be reclaimed and run again, depending on the store's own
recovery logic.

Alert channels:
    - Slack incoming webhook (when ``SLACK_ALERT_WEBHOOK_URL`` is set)
    - Python ``logging`` at CRITICAL level
"""

import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Completion-loss alert
# ---------------------------------------------------------------------------

async def send_completion_lost_alert(
    job_id: str,
    job_type: str,
    success: bool,
    error: Optional[str],
    webhook_url: Optional[str] = None,
) -> None:
    """
    Alert that a job outcome was computed but not recorded.

    Parameters
    ----------
    job_id : str
        ID of the claimed job.
    job_type : str
        Raw job-type tag.
    success : bool
        Outcome the dispatcher tried to record.
    error : str or None
        Failure reason the dispatcher tried to record.
    webhook_url : str or None
        Slack incoming webhook; when unset the alert is only logged.
    """
    timestamp: str = datetime.now(timezone.utc).isoformat()

    message: str = (
        f"[BACKGROUND JOB COMPLETION LOST] Job {job_id} ({job_type}) "
        f"finished with success={success} but the outcome was not recorded.\n"
        f"Error: {error or '-'}\n"
        f"Timestamp: {timestamp}"
    )

    logger.critical(
        "Job completion not persisted: job_id=%s  job_type=%s  success=%s  "
        "error=%s",
        job_id,
        job_type,
        success,
        error,
    )

    await _post_to_slack(message, webhook_url)


# ---------------------------------------------------------------------------
# Slack integration
# ---------------------------------------------------------------------------

async def _post_to_slack(message: str, webhook_url: Optional[str]) -> None:
    """
    Post a message to a Slack incoming webhook.

    When no webhook is configured the message is logged and skipped.
    Network or HTTP errors are logged as warnings but never raised --
    alerting failures must not change the invocation's response.
    """
    if not webhook_url:
        logger.debug(
            "Slack webhook not configured; alert logged only: %s",
            message[:200],
        )
        return

    try:
        import httpx  # lazy import to avoid circular deps

        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(
                webhook_url,
                json={"text": message},
            )
            resp.raise_for_status()
            logger.debug("Slack alert sent successfully.")
    except Exception as exc:
        logger.warning(
            "Failed to send Slack alert: %s", exc, exc_info=True,
        )
