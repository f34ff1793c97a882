"""
Engine Configuration
====================

Settings for the background job processor, read once per process from the
environment and passed explicitly to the dispatcher, the job store and the
handlers.

Environment variables:
    SUPABASE_URL              -- Store endpoint (required)
    SUPABASE_SERVICE_ROLE_KEY -- Privileged store credential (required)
    CRON_SECRET               -- Shared secret sent by the scheduler in ``x-cron-secret``
    OPENAI_API_KEY            -- Embedding backend key (only ``update_embeddings`` needs it)
    EMBEDDING_MODEL           -- Embedding model (default: text-embedding-3-small)
    MATCH_LIMIT               -- Matches generated per user (default: 20)
    ALLOWED_ORIGINS           -- Comma-separated CORS allow-list
    SLACK_ALERT_WEBHOOK_URL   -- Webhook for lost-completion alerts
"""

import logging
import os
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.services.exceptions import MissingCredentialsError

logger = logging.getLogger(__name__)


DEFAULT_ALLOWED_ORIGINS: List[str] = [
    "https://kult.vercel.app",
    "https://www.kult.app",
    "http://localhost:3000",
]

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_MATCH_LIMIT = 20
MIN_EMBEDDING_TEXT_LENGTH = 10
RETENTION_DAYS = 7


def _env(name: str) -> Optional[str]:
    """Return a stripped env var, treating blank values as unset."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


class EngineSettings(BaseModel):
    """Immutable configuration for one engine process."""

    model_config = ConfigDict(frozen=True)

    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    cron_secret: Optional[str] = None
    openai_api_key: Optional[str] = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    match_limit: int = Field(default=DEFAULT_MATCH_LIMIT, ge=1)
    min_embedding_text_length: int = MIN_EMBEDDING_TEXT_LENGTH
    retention_days: int = Field(default=RETENTION_DAYS, ge=1)
    allowed_origins: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS)
    )
    slack_alert_webhook_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from the current process environment."""
        origins_raw = _env("ALLOWED_ORIGINS")
        allowed_origins = (
            [o.strip() for o in origins_raw.split(",") if o.strip()]
            if origins_raw
            else list(DEFAULT_ALLOWED_ORIGINS)
        )

        match_limit_raw = _env("MATCH_LIMIT")

        return cls(
            supabase_url=_env("SUPABASE_URL"),
            supabase_service_key=_env("SUPABASE_SERVICE_ROLE_KEY"),
            cron_secret=_env("CRON_SECRET"),
            openai_api_key=_env("OPENAI_API_KEY"),
            embedding_model=_env("EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL,
            match_limit=int(match_limit_raw) if match_limit_raw else DEFAULT_MATCH_LIMIT,
            allowed_origins=allowed_origins or list(DEFAULT_ALLOWED_ORIGINS),
            slack_alert_webhook_url=_env("SLACK_ALERT_WEBHOOK_URL"),
        )

    @property
    def has_store_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    def require_store_credentials(self) -> None:
        """
        Raise if the store connection parameters are absent.

        Raises:
            MissingCredentialsError: SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY unset
        """
        if not self.has_store_credentials:
            logger.error("Missing required environment variables for Supabase")
            raise MissingCredentialsError(
                service="Supabase",
                required_keys=["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"],
            )


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Get the process-wide settings instance."""
    return EngineSettings.from_env()
