"""CLI entrypoint for gh-reporting."""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from datetime import date, datetime, time, timedelta, timezone

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .aggregator import SORT_CHOICES
from .branches import ALL_BRANCHES, DEFAULT_POLICY, BranchPolicy
from .coordinator import DEFAULT_CONCURRENCY
from .errors import InvalidTimeWindow, ProviderFailure, RequestCancelled
from .renderer import OUTPUT_FORMATS

DEFAULT_WINDOW_DAYS = 30


def _parse_relative_date(value: str) -> date | None:
    """Parse relative date like 7d, 2w, 3m, 1y into a date."""
    match = re.match(r"^(\d+)([dwmy])$", value)
    if not match:
        return None
    amount = int(match.group(1))
    unit = match.group(2)
    if unit == "d":
        delta = timedelta(days=amount)
    elif unit == "w":
        delta = timedelta(weeks=amount)
    elif unit == "m":
        delta = timedelta(days=amount * 30)
    else:  # unit == "y"
        delta = timedelta(days=amount * 365)
    return (datetime.now(timezone.utc) - delta).date()


def _resolve_date(value: str, param: str) -> date:
    """Resolve a date value that may be relative (7d, 30d, 3m, 1y) or absolute (YYYY-MM-DD)."""
    parsed = _parse_relative_date(value)
    if parsed is not None:
        return parsed
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(
            f"{value!r} is not YYYY-MM-DD or a relative date (7d, 2w, 3m, 1y)",
            param_hint=param,
        ) from None


def _resolve_window(
    since: str | None, until: str | None
) -> tuple[datetime, datetime]:
    """Turn --since/--until into an inclusive UTC window.

    ``since`` starts at midnight of its day and ``until`` ends at 23:59:59.
    Defaults are the last 30 days up to now.
    """
    now = datetime.now(timezone.utc).replace(microsecond=0)
    if since is None:
        since_dt = now - timedelta(days=DEFAULT_WINDOW_DAYS)
    else:
        since_dt = datetime.combine(_resolve_date(since, "--since"), time.min, timezone.utc)
    if until is None:
        until_dt = now
    else:
        until_dt = datetime.combine(
            _resolve_date(until, "--until"), time(23, 59, 59), timezone.utc
        )
    return since_dt, until_dt


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.command()
@click.argument("target")
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    default=None,
    show_envvar=True,
    help="GitHub personal access token (unauthenticated if omitted)",
)
@click.option(
    "--since",
    default=None,
    help="Start date (YYYY-MM-DD or relative: 7d, 2w, 3m, 1y)  [default: 30d]",
)
@click.option(
    "--until",
    default=None,
    help="End date (YYYY-MM-DD or relative: 7d, 2w, 3m, 1y)  [default: now]",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(list(OUTPUT_FORMATS), case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format",
)
@click.option(
    "--output",
    "output_file",
    default=None,
    type=click.Path(),
    help="Save output to file instead of stdout",
)
@click.option(
    "--top-n",
    default=None,
    type=click.IntRange(min=1),
    help="Number of top contributors to show in text output",
)
@click.option(
    "--sort-by",
    type=click.Choice(list(SORT_CHOICES), case_sensitive=False),
    default="lines",
    show_default=True,
    help="Sort contributors by this metric",
)
@click.option(
    "--concurrency",
    default=DEFAULT_CONCURRENCY,
    type=click.IntRange(min=1),
    envvar="GH_REPORTING_CONCURRENCY",
    show_default=True,
    show_envvar=True,
    help="Number of repositories processed concurrently",
)
@click.option(
    "--branch",
    "branches",
    multiple=True,
    help="Branch name to analyze besides the default branch (repeatable, replaces the built-in list)",
)
@click.option(
    "--all-branches",
    is_flag=True,
    default=False,
    help="Analyze every branch instead of the important ones",
)
@click.option(
    "--exclude-repo",
    multiple=True,
    help="Exclude repo by name (repeatable)",
)
@click.option(
    "--exclude-bots",
    is_flag=True,
    default=False,
    help="Exclude bot accounts (e.g. dependabot)",
)
@click.option(
    "--min-commits",
    default=0,
    type=click.IntRange(min=0),
    help="Minimum commits to include a contributor",
)
@click.option(
    "--api-url",
    default=None,
    help="GitHub Enterprise API base URL",
)
@click.option(
    "--no-ssl-verify",
    is_flag=True,
    default=False,
    help="Disable SSL verification (self-signed certs)",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log progress details")
@click.version_option(version=__version__)
def main(
    target: str,
    token: str | None,
    since: str | None,
    until: str | None,
    output_format: str,
    output_file: str | None,
    top_n: int | None,
    sort_by: str,
    concurrency: int,
    branches: tuple[str, ...],
    all_branches: bool,
    exclude_repo: tuple[str, ...],
    exclude_bots: bool,
    min_commits: int,
    api_url: str | None,
    no_ssl_verify: bool,
    verbose: bool,
) -> None:
    """Report per-contributor commit activity across a user's or org's repositories.

    \b
    Examples:
      gh-reporting octocat --since 2024-10-01 --until 2024-10-28
      gh-reporting myorg --since 30d --format csv --output report.csv
      gh-reporting myorg --branch main --branch release --exclude-bots
    """
    _configure_logging(verbose)

    since_dt, until_dt = _resolve_window(since, until)

    if all_branches:
        policy = ALL_BRANCHES
    elif branches:
        policy = BranchPolicy(names=tuple(branches))
    else:
        policy = DEFAULT_POLICY

    from .orchestrator import run

    try:
        asyncio.run(
            run(
                target=target,
                since=since_dt,
                until=until_dt,
                token=token,
                output_format=output_format.lower(),
                output_file=output_file,
                top_n=top_n,
                sort_by=sort_by.lower(),
                concurrency=concurrency,
                policy=policy,
                exclude_repos=list(exclude_repo),
                exclude_bots=exclude_bots,
                min_commits=min_commits,
                api_url=api_url,
                verify_ssl=not no_ssl_verify,
            )
        )
    except RequestCancelled:
        click.echo("Error: Cancelled before any repository was listed.", err=True)
        sys.exit(1)
    except ProviderFailure as exc:
        status = exc.status_code
        if status == 404:
            click.echo(f"Error: '{target}' not found. Check the user or org name.", err=True)
        elif status in (401, 403):
            click.echo(
                f"Error: Authentication failed ({exc}). Check your --token or $GITHUB_TOKEN.",
                err=True,
            )
        elif status is None:
            click.echo(f"Error: Could not reach the GitHub API. {exc}", err=True)
        else:
            click.echo(f"Error: GitHub API returned {status}.", err=True)
        sys.exit(1)
    except InvalidTimeWindow as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
