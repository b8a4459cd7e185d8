"""Orchestrator: wires together client, report assembly, and renderer."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from datetime import datetime

from .branches import DEFAULT_POLICY, BranchPolicy
from .coordinator import DEFAULT_CONCURRENCY
from .github.client import GitHubClient
from .renderer import render
from .report import generate_report

logger = logging.getLogger(__name__)


async def run(
    target: str,
    since: datetime,
    until: datetime,
    token: str | None = None,
    output_format: str = "text",
    output_file: str | None = None,
    top_n: int | None = None,
    sort_by: str = "lines",
    concurrency: int = DEFAULT_CONCURRENCY,
    policy: BranchPolicy = DEFAULT_POLICY,
    exclude_repos: list[str] | None = None,
    exclude_bots: bool = False,
    min_commits: int = 0,
    api_url: str | None = None,
    verify_ssl: bool = True,
) -> None:
    """Main pipeline: fetch data, aggregate, render."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    # First Ctrl-C stops new requests; repositories still in flight become failures
    with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
        loop.add_signal_handler(signal.SIGINT, _request_cancel, cancel_event)

    try:
        async with GitHubClient(
            token=token,
            concurrency=concurrency,
            base_url=api_url,
            verify_ssl=verify_ssl,
            cancel_event=cancel_event,
        ) as client:
            report = await generate_report(
                client,
                target,
                since,
                until,
                concurrency=concurrency,
                policy=policy,
                exclude_repos=exclude_repos,
                exclude_bots=exclude_bots,
                min_commits=min_commits,
            )
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.remove_signal_handler(signal.SIGINT)

    render(
        report,
        output_format,
        output_file=output_file,
        top_n=top_n,
        sort_by=sort_by,
    )


def _request_cancel(cancel_event: asyncio.Event) -> None:
    logger.warning("Interrupted: finishing with the repositories collected so far")
    cancel_event.set()
