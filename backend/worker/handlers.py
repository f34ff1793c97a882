"""
Background Job Handlers
=======================

One coroutine per job type.  Each performs a single unit of domain work
against the Supabase store and returns a boolean outcome:

- ``True``  -- the job succeeded (or had nothing to do)
- ``False`` -- a recoverable failure that has already been logged here

Store-reported errors (``postgrest`` ``APIError``) are converted to
``False``.  Anything else is left to propagate; the dispatcher records it as
a failed job carrying the exception message.

Job catalog:
    - ``generate_matches``   -- Daily match generation for one user
    - ``update_embeddings``  -- Recompute one profile's text embedding
    - ``cleanup_stale``      -- Prune rate limits, old matches, old jobs
    - ``calculate_stats``    -- Daily statistics aggregation
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from backend.services.config import EngineSettings
from backend.services.embeddings import EmbeddingClient
from backend.services.job_store import BACKGROUND_JOBS_TABLE

logger = logging.getLogger(__name__)


PROFILES_TABLE = "profiles"
DAILY_MATCHES_TABLE = "daily_matches"

PROFILE_TEXT_FIELDS = "display_name, bio, looking_for, interests"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HandlerContext:
    """Collaborators a handler may use, built once per invocation."""
    client: Client
    settings: EngineSettings
    embedder: EmbeddingClient
    now: Callable[[], datetime] = field(default=_utcnow)


# ---------------------------------------------------------------------------
# generate_matches
# ---------------------------------------------------------------------------

async def generate_matches(ctx: HandlerContext, user_id: Optional[str]) -> bool:
    """
    Generate the daily match set for one user.

    Delegates to the ``generate_daily_matches`` procedure, capped at
    ``settings.match_limit`` results.
    """
    if not user_id:
        logger.error("generate_matches requires target_user_id")
        return False

    try:
        response = ctx.client.rpc(
            "generate_daily_matches",
            {"target_user_id": user_id, "match_limit": ctx.settings.match_limit},
        ).execute()
    except APIError as exc:
        logger.error("Failed to generate matches: %s", exc)
        return False

    logger.info("Generated %s matches for user %s", response.data, user_id)
    return True


# ---------------------------------------------------------------------------
# update_embeddings
# ---------------------------------------------------------------------------

def build_profile_text(profile: Dict[str, Any]) -> str:
    """
    Concatenate the embeddable profile fields.

    List fields are joined with ``", "``; empty parts are dropped and the
    rest joined with ``". "``.
    """
    looking_for = profile.get("looking_for")
    interests = profile.get("interests")

    parts: List[str] = [
        profile.get("display_name") or "",
        profile.get("bio") or "",
        ", ".join(looking_for) if isinstance(looking_for, list) else "",
        ", ".join(interests) if isinstance(interests, list) else "",
    ]
    return ". ".join(part for part in parts if part)


async def update_embeddings(ctx: HandlerContext, user_id: Optional[str]) -> bool:
    """
    Recompute and store the embedding for one profile.

    Profiles with less than ``settings.min_embedding_text_length``
    characters of text are left alone and reported as success.
    """
    if not user_id:
        logger.error("update_embeddings requires target_user_id")
        return False

    try:
        response = (
            ctx.client.table(PROFILES_TABLE)
            .select(PROFILE_TEXT_FIELDS)
            .eq("id", user_id)
            .single()
            .execute()
        )
    except APIError as exc:
        logger.error("Failed to fetch profile: %s", exc)
        return False

    profile = response.data
    if not profile:
        logger.error("Failed to fetch profile: no row for user %s", user_id)
        return False

    text = build_profile_text(profile)
    if len(text) < ctx.settings.min_embedding_text_length:
        logger.info(
            "Profile %s has too little text to embed (%d chars); skipping",
            user_id, len(text),
        )
        return True

    embedding = await ctx.embedder.embed(text)
    if not embedding:
        return False

    try:
        ctx.client.table(PROFILES_TABLE).update(
            {
                "embedding": embedding,
                "embedding_updated_at": ctx.now().isoformat(),
            }
        ).eq("id", user_id).execute()
    except APIError as exc:
        logger.error("Failed to update embedding: %s", exc)
        return False

    logger.info("Updated embedding for user %s (%d dims)", user_id, len(embedding))
    return True


# ---------------------------------------------------------------------------
# cleanup_stale
# ---------------------------------------------------------------------------

def _run_cleanup_step(description: str, step: Callable[[], Any]) -> bool:
    """Run one deletion; log and swallow its failure so the next step runs."""
    try:
        step()
    except Exception as exc:
        logger.error("Failed to cleanup %s: %s", description, exc)
        return False
    return True


async def cleanup_stale(ctx: HandlerContext) -> bool:
    """
    Prune stale rows.

    All three deletions are attempted even when an earlier one fails; the
    job succeeds only if every deletion did.
    """
    cutoff = ctx.now() - timedelta(days=ctx.settings.retention_days)
    cutoff_date = cutoff.date().isoformat()
    cutoff_timestamp = cutoff.isoformat()

    results = [
        _run_cleanup_step(
            "rate limits",
            lambda: ctx.client.rpc("cleanup_rate_limits", {}).execute(),
        ),
        _run_cleanup_step(
            "old matches",
            lambda: ctx.client.table(DAILY_MATCHES_TABLE)
            .delete()
            .lt("calculated_at", cutoff_date)
            .execute(),
        ),
        _run_cleanup_step(
            "old jobs",
            lambda: ctx.client.table(BACKGROUND_JOBS_TABLE)
            .delete()
            .eq("status", "completed")
            .lt("completed_at", cutoff_timestamp)
            .execute(),
        ),
    ]

    all_succeeded = all(results)
    logger.info(
        "cleanup_stale finished: %d/%d steps succeeded",
        sum(results), len(results),
    )
    return all_succeeded


# ---------------------------------------------------------------------------
# calculate_stats
# ---------------------------------------------------------------------------

async def calculate_stats(ctx: HandlerContext) -> bool:
    """Run the daily statistics aggregation procedure."""
    try:
        ctx.client.rpc("calculate_daily_stats", {}).execute()
    except APIError as exc:
        logger.error("Failed to calculate stats: %s", exc)
        return False

    logger.info("Daily stats calculated successfully")
    return True
