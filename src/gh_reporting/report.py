"""Report assembly: list repositories, fetch them, aggregate, package."""

from __future__ import annotations

import logging
from datetime import datetime

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from .aggregator import aggregate, filter_contributors
from .branches import DEFAULT_POLICY, BranchPolicy
from .coordinator import DEFAULT_CONCURRENCY, run_all
from .github.client import GitHubClient
from .models import Period, Report

logger = logging.getLogger(__name__)


async def generate_report(
    client: GitHubClient,
    target: str,
    since: datetime,
    until: datetime,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    policy: BranchPolicy = DEFAULT_POLICY,
    exclude_repos: list[str] | None = None,
    exclude_bots: bool = False,
    min_commits: int = 0,
) -> Report:
    """Generate the contributor report for every repository of ``target``.

    Only a failure to list the repositories is raised; repositories that fail
    later are logged and listed in ``Report.failed_repositories``.
    """
    period = Period(since=since, until=until)
    logger.info(
        "Generating report for %s from %s to %s",
        target,
        since.strftime("%Y-%m-%d"),
        until.strftime("%Y-%m-%d"),
    )

    repos = await client.list_repositories(target)
    logger.info("Found %d repositories", len(repos))

    if exclude_repos:
        excluded = set(exclude_repos)
        repos = [r for r in repos if r.name not in excluded]

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=Console(stderr=True),
        transient=True,
    ) as progress:
        task = progress.add_task(
            f"Collecting commits for {len(repos)} repos...", total=len(repos)
        )
        processed, failures = await run_all(
            client,
            repos,
            since,
            until,
            concurrency=concurrency,
            policy=policy,
            on_complete=lambda _repo: progress.advance(task),
        )

    for failure in failures:
        logger.warning("Repository %s: %s", failure.full_name, failure.reason)
    logger.info("Successfully processed %d repositories", len(processed))

    summary = filter_contributors(
        aggregate(processed), exclude_bots=exclude_bots, min_commits=min_commits
    )

    return Report(
        target=target,
        period=period,
        repositories=tuple(processed),
        summary=summary,
        failed_repositories=tuple(sorted(f.full_name for f in failures)),
    )
