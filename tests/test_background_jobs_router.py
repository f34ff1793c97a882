"""
Tests for the /background-jobs trigger endpoint.

The dispatcher factory is patched so no Supabase client is ever built;
settings are injected through ``app.dependency_overrides``.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backend.services.config import EngineSettings, get_settings
from backend.services.exceptions import JobClaimError
from backend.worker.dispatcher import JobOutcome, NoPendingJobs
from lib.api.server import app


BUILD_DISPATCHER = "lib.api.routers.background_jobs._build_dispatcher"


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def _dispatcher_returning(result):
    dispatcher = MagicMock()
    dispatcher.run = AsyncMock(return_value=result)
    return dispatcher


# =============================================================================
# Authentication
# =============================================================================

class TestAuthentication:

    def test_missing_credentials_returns_401_without_store_access(self, client):
        with patch(BUILD_DISPATCHER) as build:
            response = client.post("/background-jobs")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        build.assert_not_called()

    def test_wrong_cron_secret_returns_401(self, client):
        with patch(BUILD_DISPATCHER) as build:
            response = client.post("/background-jobs", headers={"x-cron-secret": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid cron secret"}
        build.assert_not_called()

    def test_wrong_secret_rejected_even_with_bearer(self, client):
        with patch(BUILD_DISPATCHER) as build:
            response = client.post(
                "/background-jobs",
                headers={"x-cron-secret": "nope", "Authorization": "Bearer user-jwt"},
            )

        assert response.status_code == 401
        build.assert_not_called()

    def test_authorization_header_is_accepted(self, client):
        with patch(BUILD_DISPATCHER, return_value=_dispatcher_returning(NoPendingJobs())):
            response = client.get(
                "/background-jobs", headers={"Authorization": "Bearer user-jwt"},
            )

        assert response.status_code == 200
        assert response.json() == {"message": "No pending jobs"}

    def test_non_ascii_cron_secret_returns_401(self, client):
        with patch(BUILD_DISPATCHER) as build:
            response = client.post(
                "/background-jobs", headers={"x-cron-secret": b"caf\xe9"},
            )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid cron secret"}
        build.assert_not_called()

    def test_unconfigured_secret_falls_back_to_authorization(self, settings):
        app.dependency_overrides[get_settings] = lambda: settings.model_copy(
            update={"cron_secret": None}
        )
        try:
            with patch(
                BUILD_DISPATCHER, return_value=_dispatcher_returning(NoPendingJobs()),
            ) as build:
                response = TestClient(app).post(
                    "/background-jobs",
                    headers={"x-cron-secret": "anything", "Authorization": "Bearer jwt"},
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json() == {"message": "No pending jobs"}
        build.assert_called_once()

    def test_unconfigured_secret_alone_is_unauthorized(self, settings):
        app.dependency_overrides[get_settings] = lambda: settings.model_copy(
            update={"cron_secret": None}
        )
        try:
            with patch(BUILD_DISPATCHER) as build:
                response = TestClient(app).post(
                    "/background-jobs", headers={"x-cron-secret": "cron-secret"},
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        build.assert_not_called()


# =============================================================================
# Processing
# =============================================================================

class TestProcessing:

    def test_processed_job_summary(self, client):
        outcome = JobOutcome(job_id="J1", job_type="generate_matches", success=True)

        with patch(BUILD_DISPATCHER, return_value=_dispatcher_returning(outcome)):
            response = client.post(
                "/background-jobs", headers={"x-cron-secret": "cron-secret"},
            )

        assert response.status_code == 200
        assert response.json() == {
            "job_id": "J1",
            "job_type": "generate_matches",
            "success": True,
            "error": None,
        }

    def test_failed_job_is_still_200(self, client):
        outcome = JobOutcome(
            job_id="J3", job_type="send_newsletter", success=False,
            error="Unknown job type: send_newsletter",
        )

        with patch(BUILD_DISPATCHER, return_value=_dispatcher_returning(outcome)):
            response = client.post(
                "/background-jobs", headers={"x-cron-secret": "cron-secret"},
            )

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_claim_failure_returns_500(self, client, caplog):
        dispatcher = MagicMock()
        dispatcher.run = AsyncMock(side_effect=JobClaimError())

        with patch(BUILD_DISPATCHER, return_value=dispatcher):
            with caplog.at_level(logging.ERROR, logger="lib.api.routers.background_jobs"):
                response = client.post(
                    "/background-jobs", headers={"x-cron-secret": "cron-secret"},
                )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch job"}
        assert any("job_queue" in r.message for r in caplog.records)

    def test_unexpected_error_returns_generic_500(self, client):
        dispatcher = MagicMock()
        dispatcher.run = AsyncMock(side_effect=RuntimeError("kaboom"))

        with patch(BUILD_DISPATCHER, return_value=dispatcher):
            response = client.post(
                "/background-jobs", headers={"x-cron-secret": "cron-secret"},
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_missing_store_credentials_returns_500(self):
        app.dependency_overrides[get_settings] = lambda: EngineSettings(cron_secret="cron-secret")
        try:
            with patch(BUILD_DISPATCHER) as build:
                response = TestClient(app).post(
                    "/background-jobs", headers={"x-cron-secret": "cron-secret"},
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": "Server misconfigured"}
        build.assert_not_called()


# =============================================================================
# CORS
# =============================================================================

class TestCors:

    def test_options_returns_cors_headers_without_processing(self, client):
        with patch(BUILD_DISPATCHER) as build:
            response = client.options(
                "/background-jobs", headers={"Origin": "https://www.kult.app"},
            )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://www.kult.app"
        assert "x-cron-secret" in response.headers["access-control-allow-headers"]
        build.assert_not_called()

    def test_unlisted_origin_gets_first_allowed_origin(self, client):
        response = client.post(
            "/background-jobs", headers={"Origin": "https://evil.example"},
        )

        assert response.status_code == 401
        assert response.headers["access-control-allow-origin"] == "https://kult.vercel.app"


# =============================================================================
# Health
# =============================================================================

def test_health_lists_job_types(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["store_configured"] is True
    assert set(body["job_types"]) == {
        "generate_matches", "update_embeddings", "cleanup_stale", "calculate_stats",
    }
