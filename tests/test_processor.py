"""Tests for the repository processor."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from gh_reporting.branches import BranchPolicy
from gh_reporting.errors import MalformedIdentity, ProviderFailure, RequestCancelled
from gh_reporting.github.client import GitHubClient
from gh_reporting.models import Author, Branch, Commit, CommitStats, Repository
from gh_reporting.processor import process_repository, split_full_name

SINCE = datetime(2024, 10, 1, tzinfo=timezone.utc)
UNTIL = datetime(2024, 10, 28, tzinfo=timezone.utc)


def _repo(full_name: str = "owner/repo1", default_branch: str = "main") -> Repository:
    return Repository(
        name=full_name.split("/")[-1],
        full_name=full_name,
        url=f"https://github.com/{full_name}",
        default_branch=default_branch,
    )


def _commit(sha: str) -> Commit:
    return Commit(
        sha=sha,
        message="msg",
        author=Author(name="John Doe", email="john@example.com", login="johndoe"),
        date=SINCE,
        stats=CommitStats(additions=1, deletions=1),
    )


@pytest.fixture
def mock_client():
    client = AsyncMock(spec=GitHubClient)
    client.list_branches.return_value = [
        Branch(name="feature/x", sha="f"),
        Branch(name="main", sha="m"),
        Branch(name="develop", sha="d"),
    ]
    client.list_commits.return_value = [_commit("abc")]
    return client


def test_split_full_name():
    assert split_full_name("owner/repo") == ("owner", "repo")


@pytest.mark.parametrize("bad", ["norepo", "a/b/c", "/repo", "owner/", ""])
def test_split_full_name_malformed(bad):
    with pytest.raises(MalformedIdentity):
        split_full_name(bad)


@pytest.mark.asyncio
async def test_process_attaches_selected_branches(mock_client):
    repo = _repo()
    processed = await process_repository(mock_client, repo, SINCE, UNTIL)

    assert [b.name for b in processed.branches] == ["main", "develop"]
    assert all(len(b.commits) == 1 for b in processed.branches)
    assert processed.full_name == repo.full_name
    # the input record is left untouched
    assert repo.branches == ()
    mock_client.list_branches.assert_awaited_once_with("owner", "repo1")
    mock_client.list_commits.assert_any_await("owner", "repo1", "main", SINCE, UNTIL)


@pytest.mark.asyncio
async def test_process_skips_failed_branch(mock_client):
    async def list_commits(owner, repo, branch, since, until):
        if branch == "develop":
            raise ProviderFailure("failed to list commits for owner/repo1@develop", 500)
        return [_commit("abc")]

    mock_client.list_commits.side_effect = list_commits
    processed = await process_repository(mock_client, _repo(), SINCE, UNTIL)
    assert [b.name for b in processed.branches] == ["main"]


@pytest.mark.asyncio
async def test_process_all_branches_failing_is_still_success(mock_client):
    mock_client.list_commits.side_effect = ProviderFailure("boom", 502)
    processed = await process_repository(mock_client, _repo(), SINCE, UNTIL)
    assert processed.branches == ()


@pytest.mark.asyncio
async def test_process_no_selectable_branches(mock_client):
    mock_client.list_branches.return_value = [Branch(name="feature/x", sha="f")]
    processed = await process_repository(mock_client, _repo(), SINCE, UNTIL)
    assert processed.branches == ()
    mock_client.list_commits.assert_not_called()


@pytest.mark.asyncio
async def test_process_branch_list_failure_propagates(mock_client):
    mock_client.list_branches.side_effect = ProviderFailure(
        "failed to list branches for owner/repo1", 404
    )
    with pytest.raises(ProviderFailure, match="owner/repo1"):
        await process_repository(mock_client, _repo(), SINCE, UNTIL)


@pytest.mark.asyncio
async def test_process_malformed_name_makes_no_calls(mock_client):
    with pytest.raises(MalformedIdentity):
        await process_repository(mock_client, _repo("noslash"), SINCE, UNTIL)
    mock_client.list_branches.assert_not_called()


@pytest.mark.asyncio
async def test_process_uses_policy(mock_client):
    policy = BranchPolicy(names=("feature/x",))
    processed = await process_repository(mock_client, _repo(), SINCE, UNTIL, policy)
    assert [b.name for b in processed.branches] == ["main", "feature/x"]


@pytest.mark.asyncio
async def test_process_cancelled_branch_fails_repository(mock_client):
    mock_client.list_commits.side_effect = RequestCancelled()
    with pytest.raises(RequestCancelled):
        await process_repository(mock_client, _repo(), SINCE, UNTIL)
