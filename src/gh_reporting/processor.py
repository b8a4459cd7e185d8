"""Fetch the selected branches and their commits for one repository."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime

from .branches import DEFAULT_POLICY, BranchPolicy, select_branches
from .errors import MalformedIdentity, ProviderFailure, RequestCancelled
from .github.client import GitHubClient
from .models import Branch, Repository

logger = logging.getLogger(__name__)


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts."""
    parts = full_name.split("/")
    if len(parts) != 2 or not all(parts):
        raise MalformedIdentity(f"invalid repository name format: {full_name!r}")
    return parts[0], parts[1]


async def process_repository(
    client: GitHubClient,
    repo: Repository,
    since: datetime,
    until: datetime,
    policy: BranchPolicy = DEFAULT_POLICY,
) -> Repository:
    """Return a copy of ``repo`` with its selected branches' commits attached.

    Failing to list branches fails the repository, and so does cancellation.
    Failing to list the commits of one branch only drops that branch.
    """
    owner, name = split_full_name(repo.full_name)
    logger.info("Processing repository: %s", repo.full_name)

    branches = await client.list_branches(owner, name)
    selected = select_branches(branches, repo.default_branch, policy)
    if not selected:
        logger.info("%s: no branches to analyze", repo.full_name)

    processed: list[Branch] = []
    for branch in selected:
        try:
            commits = await client.list_commits(owner, name, branch.name, since, until)
        except RequestCancelled:
            raise
        except ProviderFailure as exc:
            logger.warning(
                "Failed to get commits for %s@%s: %s", repo.full_name, branch.name, exc
            )
            continue
        processed.append(dataclasses.replace(branch, commits=tuple(commits)))
        logger.info("  Branch %s: %d commits", branch.name, len(commits))

    return dataclasses.replace(repo, branches=tuple(processed))
