"""
Shared fixtures for the background job processor tests.

The Supabase client is always a ``MagicMock``: query builders return
themselves through ``MagicMock`` attribute chaining, so tests configure the
``execute`` call at the end of the chain they care about.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from postgrest.exceptions import APIError

from backend.services.config import EngineSettings
from backend.services.embeddings import EmbeddingClient
from backend.worker.handlers import HandlerContext


FIXED_NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_api_error(message: str = "boom", code: str = "XX000") -> APIError:
    """Build the error postgrest raises for store-reported failures."""
    return APIError({"message": message, "code": code})


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-role-key",
        cron_secret="cron-secret",
        openai_api_key="sk-test",
    )


@pytest.fixture
def mock_supabase_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def mock_embedder() -> MagicMock:
    embedder = MagicMock(spec=EmbeddingClient)
    embedder.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return embedder


@pytest.fixture
def handler_context(mock_supabase_client, settings, mock_embedder) -> HandlerContext:
    return HandlerContext(
        client=mock_supabase_client,
        settings=settings,
        embedder=mock_embedder,
        now=lambda: FIXED_NOW,
    )
