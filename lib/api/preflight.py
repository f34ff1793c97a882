"""
Startup Preflight Checks
=========================

Reports which of the engine's environment variables are set when the server
starts, so operators see a misconfiguration in the boot log rather than only
in failed trigger calls.

The server calls this with ``fail_on_critical=False``: a missing store
credential is reported to each trigger call as a 500 instead of killing the
process, so the scheduler's own alerting still sees the failure.

Usage::

    from lib.api.preflight import run_preflight_checks

    @app.on_event("startup")
    async def startup_event():
        run_preflight_checks(fail_on_critical=False)
"""

import logging
import os
import sys
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)


# =========================================================================
# Environment variable definitions
# =========================================================================

# (var_name, is_critical, description)
# CRITICAL = no job can be claimed without it
# WARNING  = log a warning but continue (degraded functionality)
_ENV_REQUIREMENTS: List[Tuple[str, bool, str]] = [
    # --- Critical: no job can be processed without these ---
    ("SUPABASE_URL", True, "Required for the job queue and all handlers"),
    ("SUPABASE_SERVICE_ROLE_KEY", True, "Required for the job queue and all handlers"),

    # --- Warning: degraded functionality ---
    ("CRON_SECRET", False, "Needed to accept x-cron-secret trigger calls"),
    ("OPENAI_API_KEY", False, "Needed by update_embeddings jobs"),
    ("SLACK_ALERT_WEBHOOK_URL", False, "Needed for lost-completion alerts to Slack"),
]


def run_preflight_checks(
    fail_on_critical: bool = True,
) -> Dict[str, bool]:
    """
    Validate the engine's environment variables.

    Parameters
    ----------
    fail_on_critical : bool
        If ``True`` (default), raises ``SystemExit(1)`` when any critical
        variable is missing.

    Returns
    -------
    dict
        Mapping of ``{var_name: is_set}`` for all checked variables.
    """
    logger.info("Running preflight checks...")

    results: Dict[str, bool] = {}
    critical_missing: List[str] = []
    warning_missing: List[str] = []

    for var_name, is_critical, description in _ENV_REQUIREMENTS:
        value = os.getenv(var_name)
        is_set = bool(value and value.strip())
        results[var_name] = is_set

        if not is_set:
            if is_critical:
                critical_missing.append(var_name)
                logger.critical(
                    "PREFLIGHT FAIL: %s is not set (%s)",
                    var_name, description,
                )
            else:
                warning_missing.append(var_name)
                logger.warning(
                    "PREFLIGHT WARN: %s is not set (%s)",
                    var_name, description,
                )

    # Summary
    total = len(_ENV_REQUIREMENTS)
    passed = sum(1 for v in results.values() if v)

    if critical_missing:
        logger.critical(
            "PREFLIGHT FAILED: %d/%d vars set. "
            "Missing critical: %s",
            passed, total, ", ".join(critical_missing),
        )
        if fail_on_critical:
            sys.exit(1)
    elif warning_missing:
        logger.warning(
            "PREFLIGHT PASSED WITH WARNINGS: %d/%d vars set. "
            "Missing optional: %s",
            passed, total, ", ".join(warning_missing),
        )
    else:
        logger.info(
            "PREFLIGHT PASSED: All %d environment variables are set", total,
        )

    return results
