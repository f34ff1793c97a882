"""Tests for the one-shot ``python -m backend.worker`` runner."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

from backend.services.exceptions import JobClaimError
from backend.worker import main
from backend.worker.dispatcher import JobOutcome, NoPendingJobs


ENV = {
    "SUPABASE_URL": "https://example.supabase.co",
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
}


def _patched_dispatcher(run):
    dispatcher = MagicMock()
    dispatcher.run = run
    return patch.object(main, "JobDispatcher", return_value=dispatcher)


@patch.dict("os.environ", ENV, clear=True)
@patch("dotenv.load_dotenv")
@patch.object(main.BackgroundJobStore, "from_settings")
def test_prints_outcome_and_exits_zero(_from_settings, _load_dotenv, capsys):
    outcome = JobOutcome(job_id="J1", job_type="calculate_stats", success=True)

    with _patched_dispatcher(AsyncMock(return_value=outcome)):
        assert main.run_once() == 0

    assert json.loads(capsys.readouterr().out) == {
        "job_id": "J1", "job_type": "calculate_stats", "success": True, "error": None,
    }


@patch.dict("os.environ", ENV, clear=True)
@patch("dotenv.load_dotenv")
@patch.object(main.BackgroundJobStore, "from_settings")
def test_empty_queue_exits_zero(_from_settings, _load_dotenv, capsys):
    with _patched_dispatcher(AsyncMock(return_value=NoPendingJobs())):
        assert main.run_once() == 0

    assert json.loads(capsys.readouterr().out) == {"message": "No pending jobs"}


@patch.dict("os.environ", ENV, clear=True)
@patch("dotenv.load_dotenv")
@patch.object(main.BackgroundJobStore, "from_settings")
def test_claim_failure_exits_one(_from_settings, _load_dotenv, capsys):
    with _patched_dispatcher(AsyncMock(side_effect=JobClaimError())):
        assert main.run_once() == 1

    assert json.loads(capsys.readouterr().out) == {"error": "Failed to fetch job"}


@patch.dict("os.environ", {}, clear=True)
@patch("dotenv.load_dotenv")
def test_missing_credentials_exit_one(_load_dotenv, capsys):
    assert main.run_once() == 1
    assert json.loads(capsys.readouterr().out) == {
        "error": "Missing credentials for Supabase",
    }
