"""Rich-based terminal report renderer with JSON/CSV support."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .aggregator import sort_contributors
from .errors import UnsupportedOutputFormat
from .models import ContributorStats, Report, RepositoryStats

OUTPUT_FORMATS = ("text", "json", "csv")

_TOP_REPOSITORIES = 5


def _format_number(n: int) -> str:
    return f"{n:,}"


def _format_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _repositories_by_lines(stats: ContributorStats) -> list[tuple[str, RepositoryStats]]:
    by_name = sorted(stats.repositories.items(), key=lambda item: item[0])
    return sorted(
        by_name, key=lambda item: item[1].additions + item[1].deletions, reverse=True
    )


def _write_to_file(content: str, output_file: str) -> None:
    """Write content to a file and print confirmation."""
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(content)
    Console(stderr=True).print(f"Saved to {output_file}")


def render_text(
    report: Report,
    top_n: int | None = None,
    sort_by: str = "lines",
    output_file: str | None = None,
) -> None:
    """Render a Report to the terminal using rich."""
    if output_file:
        string_io = io.StringIO()
        console = Console(file=string_io, force_terminal=False, width=120)
    else:
        console = Console()

    period = (
        f"Period: {_format_date(report.period.since)} ~ {_format_date(report.period.until)}"
    )
    console.print(Panel(
        Text(f"GitHub Activity Report: {report.target}\n{period}", justify="center"),
        style="bold cyan",
    ))
    console.print()

    if report.failed_repositories:
        console.print(
            f"[bold yellow]Warning:[/bold yellow] Failed to collect commits for "
            f"{len(report.failed_repositories)} repo(s): "
            f"{', '.join(report.failed_repositories)}"
        )
        console.print()

    contributors = report.summary.values()
    console.print("[bold]Summary[/bold]")
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("label", style="dim")
    summary.add_column("value", style="bold")
    summary.add_row("Repositories analyzed", _format_number(len(report.repositories)))
    summary.add_row("Contributors", _format_number(len(report.summary)))
    summary.add_row("Commits", _format_number(sum(c.total_commits for c in contributors)))
    summary.add_row("Additions", _format_number(sum(c.total_additions for c in contributors)))
    summary.add_row("Deletions", _format_number(sum(c.total_deletions for c in contributors)))
    console.print(summary)
    console.print()

    ranked = sort_contributors(report.summary, sort_by)
    if top_n is not None:
        ranked = ranked[:top_n]

    if ranked:
        console.print("[bold]Contributor Summary[/bold]")
        console.print()
    for key, stats in ranked:
        heading = Text(stats.name or key, style="bold")
        if stats.login:
            heading.append(f" (@{stats.login})", style="cyan")
        console.print(heading)

        details = Table(show_header=False, box=None, padding=(0, 2))
        details.add_column("label", style="dim")
        details.add_column("value")
        if stats.email:
            details.add_row("Email", stats.email)
        details.add_row("Total Commits", _format_number(stats.total_commits))
        details.add_row("Total Additions", _format_number(stats.total_additions))
        details.add_row("Total Deletions", _format_number(stats.total_deletions))
        details.add_row("Repositories", _format_number(len(stats.repositories)))
        console.print(details)

        repo_table = Table(show_header=True, header_style="bold")
        repo_table.add_column("Top Repositories", no_wrap=True)
        repo_table.add_column("Commits", justify="right")
        repo_table.add_column("+/-", justify="right", no_wrap=True)
        for name, repo_stats in _repositories_by_lines(stats)[:_TOP_REPOSITORIES]:
            repo_table.add_row(
                name,
                _format_number(repo_stats.commits),
                f"+{_format_number(repo_stats.additions)} / "
                f"-{_format_number(repo_stats.deletions)}",
            )
        console.print(repo_table)
        console.print()

    if output_file:
        _write_to_file(string_io.getvalue(), output_file)


def render_json(report: Report, output_file: str | None = None) -> None:
    """Render a Report as JSON."""
    data = {
        "target": report.target,
        "period": asdict(report.period),
        "repositories": [asdict(r) for r in report.repositories],
        "summary": {key: asdict(stats) for key, stats in report.summary.items()},
        "failed_repositories": list(report.failed_repositories),
    }
    content = json.dumps(data, indent=2, ensure_ascii=False, default=_json_default)
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content)


def render_csv(
    report: Report, sort_by: str = "lines", output_file: str | None = None
) -> None:
    """Render one row per contributor and repository as CSV."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(
        ["Author", "Login", "Email", "Repository", "Commits", "Additions", "Deletions"]
    )
    for _key, stats in sort_contributors(report.summary, sort_by):
        for name, repo_stats in _repositories_by_lines(stats):
            writer.writerow([
                stats.name,
                stats.login,
                stats.email,
                name,
                repo_stats.commits,
                repo_stats.additions,
                repo_stats.deletions,
            ])
    content = output.getvalue()
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content, end="")


def render(
    report: Report,
    output_format: str,
    output_file: str | None = None,
    top_n: int | None = None,
    sort_by: str = "lines",
) -> None:
    """Hand the finished report to the serializer for ``output_format``."""
    fmt = output_format.lower()
    if fmt == "json":
        render_json(report, output_file=output_file)
    elif fmt == "csv":
        render_csv(report, sort_by=sort_by, output_file=output_file)
    elif fmt == "text":
        render_text(report, top_n=top_n, sort_by=sort_by, output_file=output_file)
    else:
        raise UnsupportedOutputFormat(f"unsupported output format: {output_format}")
