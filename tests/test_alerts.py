"""
Tests for backend.worker.alerts
================================

Tests the completion-loss alert.  The Slack webhook is patched out, so these
tests verify logging behaviour and that a failing webhook never raises.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from backend.worker.alerts import send_completion_lost_alert


@pytest.mark.asyncio
async def test_completion_lost_alert_logs_critical(caplog: pytest.LogCaptureFixture) -> None:
    """send_completion_lost_alert should log at CRITICAL level."""
    with caplog.at_level(logging.CRITICAL, logger="backend.worker.alerts"):
        await send_completion_lost_alert(
            job_id="J1",
            job_type="calculate_stats",
            success=True,
            error=None,
        )
    assert any("not persisted" in r.message for r in caplog.records)
    assert any("J1" in r.message for r in caplog.records)


@pytest.mark.asyncio
async def test_completion_lost_alert_includes_error(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.CRITICAL, logger="backend.worker.alerts"):
        await send_completion_lost_alert(
            job_id="J2",
            job_type="update_embeddings",
            success=False,
            error="boom",
        )
    assert any("boom" in r.message for r in caplog.records)


@pytest.mark.asyncio
async def test_alert_does_not_raise_without_slack_webhook() -> None:
    # Should not raise
    await send_completion_lost_alert("J3", "cleanup_stale", True, None)


@pytest.mark.asyncio
async def test_alert_posts_to_slack_when_configured() -> None:
    response = MagicMock()
    response.raise_for_status = MagicMock()
    client = AsyncMock()
    client.post = AsyncMock(return_value=response)
    client.__aenter__.return_value = client

    with patch("httpx.AsyncClient", return_value=client):
        await send_completion_lost_alert(
            "J4", "generate_matches", False, "timeout",
            webhook_url="https://hooks.slack.test/abc",
        )

    client.post.assert_awaited_once()
    args, kwargs = client.post.call_args
    assert args[0] == "https://hooks.slack.test/abc"
    assert "J4" in kwargs["json"]["text"]


@pytest.mark.asyncio
async def test_slack_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    client = AsyncMock()
    client.post = AsyncMock(side_effect=httpx.ConnectError("unreachable"))
    client.__aenter__.return_value = client

    with patch("httpx.AsyncClient", return_value=client):
        with caplog.at_level(logging.WARNING, logger="backend.worker.alerts"):
            await send_completion_lost_alert(
                "J5", "calculate_stats", True, None,
                webhook_url="https://hooks.slack.test/abc",
            )

    assert any("Failed to send Slack alert" in r.message for r in caplog.records)
