"""Data models for gh-reporting."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from .errors import InvalidTimeWindow


@dataclass(frozen=True)
class Author:
    name: str
    email: str
    login: str = ""


@dataclass(frozen=True)
class CommitStats:
    """Line changes of a single commit. ``total`` is always derived."""

    additions: int
    deletions: int
    total: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total", self.additions + self.deletions)


@dataclass(frozen=True)
class Commit:
    sha: str
    message: str
    author: Author
    date: datetime
    stats: CommitStats


@dataclass(frozen=True)
class Branch:
    name: str
    sha: str
    commits: tuple[Commit, ...] = ()


@dataclass(frozen=True)
class Repository:
    name: str
    full_name: str
    url: str
    default_branch: str
    branches: tuple[Branch, ...] = ()


@dataclass
class RepositoryStats:
    commits: int = 0
    additions: int = 0
    deletions: int = 0


@dataclass
class ContributorStats:
    """Running totals for one author identity, split by repository full name."""

    name: str
    email: str
    login: str
    total_commits: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    repositories: dict[str, RepositoryStats] = field(default_factory=dict)

    @property
    def total_lines(self) -> int:
        return self.total_additions + self.total_deletions

    def record(self, repository: str, stats: CommitStats) -> None:
        """Count one commit towards the totals and its repository bucket."""
        self.total_commits += 1
        self.total_additions += stats.additions
        self.total_deletions += stats.deletions

        bucket = self.repositories.setdefault(repository, RepositoryStats())
        bucket.commits += 1
        bucket.additions += stats.additions
        bucket.deletions += stats.deletions


@dataclass(frozen=True)
class Period:
    since: datetime
    until: datetime

    def __post_init__(self) -> None:
        if self.since.tzinfo is None or self.until.tzinfo is None:
            raise InvalidTimeWindow("since and until must be timezone-aware")
        if self.since > self.until:
            raise InvalidTimeWindow(
                f"since ({self.since.isoformat()}) is after until ({self.until.isoformat()})"
            )


@dataclass(frozen=True)
class RepositoryFailure:
    full_name: str
    error: Exception

    @property
    def reason(self) -> str:
        return str(self.error) or type(self.error).__name__


@dataclass(frozen=True)
class Report:
    """The finished report.

    ``summary`` is copied into a read-only mapping. The ``ContributorStats``
    values are the aggregator's records and must not be modified.
    """

    target: str
    period: Period
    repositories: tuple[Repository, ...]
    summary: Mapping[str, ContributorStats]
    failed_repositories: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "summary", MappingProxyType(dict(self.summary)))
