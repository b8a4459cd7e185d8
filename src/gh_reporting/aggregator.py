"""Data aggregation: fold processed repositories into per-contributor stats."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .models import Author, ContributorStats, Repository

logger = logging.getLogger(__name__)

KNOWN_BOTS = frozenset(
    {
        "dependabot",
        "renovate",
        "github-actions",
        "codecov",
        "snyk-bot",
        "greenkeeper",
        "dependabot-preview",
        "renovate-bot",
        "allcontributors",
        "imgbot",
        "stale",
        "mergify",
        "sonarcloud",
    }
)

SORT_CHOICES = ("commits", "additions", "deletions", "lines")


def author_key(author: Author) -> str:
    """Return the identity a commit is grouped under: login, then email, then name."""
    if author.login:
        return author.login
    if author.email:
        return author.email
    return author.name


def is_bot(key: str) -> bool:
    """Check if a contributor key belongs to a bot account."""
    lower = key.lower()
    if lower.endswith("[bot]"):
        return True
    return lower in KNOWN_BOTS


def _sort_key(sort_by: str):
    """Return a sort key function for ContributorStats."""
    if sort_by == "additions":
        return lambda c: c.total_additions
    elif sort_by == "deletions":
        return lambda c: c.total_deletions
    elif sort_by == "commits":
        return lambda c: c.total_commits
    else:  # lines
        return lambda c: c.total_lines


def aggregate(repositories: Iterable[Repository]) -> dict[str, ContributorStats]:
    """Build the contributor summary, keyed by :func:`author_key`.

    Every commit of every branch is counted once, against its author's totals
    and against the bucket for the repository it was fetched from. The result
    does not depend on the order of repositories, branches or commits.
    """
    summary: dict[str, ContributorStats] = {}
    for repo in repositories:
        for branch in repo.branches:
            for commit in branch.commits:
                key = author_key(commit.author)
                stats = summary.get(key)
                if stats is None:
                    stats = summary[key] = ContributorStats(
                        name=commit.author.name,
                        email=commit.author.email,
                        login=commit.author.login,
                    )
                stats.record(repo.full_name, commit.stats)
    logger.info("Aggregated %d contributors", len(summary))
    return summary


def filter_contributors(
    summary: Mapping[str, ContributorStats],
    exclude_bots: bool = False,
    min_commits: int = 0,
) -> dict[str, ContributorStats]:
    """Drop bot accounts and contributors below ``min_commits``."""
    result = dict(summary)
    if exclude_bots:
        result = {k: v for k, v in result.items() if not is_bot(k)}
    if min_commits > 0:
        result = {k: v for k, v in result.items() if v.total_commits >= min_commits}
    return result


def sort_contributors(
    summary: Mapping[str, ContributorStats], sort_by: str = "lines"
) -> list[tuple[str, ContributorStats]]:
    """Return ``(key, stats)`` pairs, highest ``sort_by`` metric first."""
    metric = _sort_key(sort_by)
    # Secondary sort by key keeps equal metrics in a stable order
    by_key = sorted(summary.items(), key=lambda item: item[0])
    return sorted(by_key, key=lambda item: metric(item[1]), reverse=True)
