"""Tests for the CLI entrypoint."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from gh_reporting import __version__
from gh_reporting.branches import ALL_BRANCHES, DEFAULT_POLICY, BranchPolicy
from gh_reporting.cli import _parse_relative_date, _resolve_window, main
from gh_reporting.errors import InvalidTimeWindow, ProviderFailure, RequestCancelled


@pytest.fixture
def mock_run():
    with patch("gh_reporting.orchestrator.run", new_callable=AsyncMock) as run:
        yield run


def _invoke(*args: str):
    return CliRunner().invoke(main, list(args), env={"GITHUB_TOKEN": "test-token"})


def test_version():
    result = _invoke("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_parse_relative_date():
    today = datetime.now(timezone.utc).date()
    assert (today - _parse_relative_date("7d")).days == 7
    assert (today - _parse_relative_date("2w")).days == 14
    assert _parse_relative_date("2024-01-01") is None


def test_resolve_window_absolute_dates():
    since, until = _resolve_window("2024-10-01", "2024-10-28")
    assert since == datetime(2024, 10, 1, tzinfo=timezone.utc)
    assert until == datetime(2024, 10, 28, 23, 59, 59, tzinfo=timezone.utc)


def test_resolve_window_defaults_to_last_30_days():
    since, until = _resolve_window(None, None)
    assert (until - since).days == 30


def test_cli_passes_options(mock_run):
    result = _invoke(
        "myorg",
        "--since", "2024-10-01",
        "--until", "2024-10-28",
        "--format", "json",
        "--concurrency", "4",
        "--exclude-repo", "skip-me",
        "--exclude-bots",
        "--min-commits", "2",
    )
    assert result.exit_code == 0, result.output
    kwargs = mock_run.await_args.kwargs
    assert kwargs["target"] == "myorg"
    assert kwargs["token"] == "test-token"
    assert kwargs["since"] == datetime(2024, 10, 1, tzinfo=timezone.utc)
    assert kwargs["output_format"] == "json"
    assert kwargs["concurrency"] == 4
    assert kwargs["exclude_repos"] == ["skip-me"]
    assert kwargs["exclude_bots"] is True
    assert kwargs["min_commits"] == 2
    assert kwargs["policy"] == DEFAULT_POLICY
    assert kwargs["sort_by"] == "lines"


def test_cli_branch_policy(mock_run):
    assert _invoke("myorg", "--branch", "release", "--branch", "main").exit_code == 0
    assert mock_run.await_args.kwargs["policy"] == BranchPolicy(names=("release", "main"))

    assert _invoke("myorg", "--all-branches").exit_code == 0
    assert mock_run.await_args.kwargs["policy"] == ALL_BRANCHES


def test_cli_invalid_date(mock_run):
    result = _invoke("myorg", "--since", "yesterday")
    assert result.exit_code == 2
    mock_run.assert_not_called()


def test_cli_inverted_window(mock_run):
    # run is mocked, so raise what generate_report would
    mock_run.side_effect = InvalidTimeWindow("since is after until")
    result = _invoke("myorg", "--since", "2024-10-28", "--until", "2024-10-01")
    assert result.exit_code == 1
    assert "since is after until" in result.output


@pytest.mark.parametrize(
    "status, message",
    [
        (404, "not found"),
        (401, "Authentication failed"),
        (500, "GitHub API returned 500"),
        (None, "Could not reach"),
    ],
)
def test_cli_provider_errors(mock_run, status, message):
    mock_run.side_effect = ProviderFailure("failed to list repositories", status)
    result = _invoke("ghost")
    assert result.exit_code == 1
    assert message in result.output


def test_cli_cancelled_while_listing(mock_run):
    mock_run.side_effect = RequestCancelled()
    result = _invoke("myorg")
    assert result.exit_code == 1
    assert "Cancelled" in result.output
