"""Fan repositories out over a fixed pool of worker tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from .branches import DEFAULT_POLICY, BranchPolicy
from .github.client import GitHubClient
from .models import Repository, RepositoryFailure
from .processor import process_repository

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10

# End-of-stream marker put on each result stream once every worker is done
_CLOSED = object()


async def run_all(
    client: GitHubClient,
    repositories: list[Repository],
    since: datetime,
    until: datetime,
    concurrency: int = DEFAULT_CONCURRENCY,
    policy: BranchPolicy = DEFAULT_POLICY,
    on_complete: Callable[[Repository], None] | None = None,
) -> tuple[list[Repository], list[RepositoryFailure]]:
    """Process every repository and return ``(successes, failures)``.

    ``min(concurrency, len(repositories))`` workers pull from a shared work
    queue and push each outcome onto one of two result streams, which are
    drained concurrently. Successes come back in completion order. A failing
    repository never stops the batch, so every input ends up in exactly one
    of the two lists.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    if not repositories:
        return [], []

    work: asyncio.Queue[Repository] = asyncio.Queue()
    for repo in repositories:
        work.put_nowait(repo)

    # Room for every result plus the end-of-stream marker: producers never wait
    successes: asyncio.Queue = asyncio.Queue(maxsize=len(repositories) + 1)
    failures: asyncio.Queue = asyncio.Queue(maxsize=len(repositories) + 1)

    async def worker() -> None:
        while True:
            try:
                repo = work.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                processed = await process_repository(client, repo, since, until, policy)
            except Exception as exc:
                await failures.put(RepositoryFailure(full_name=repo.full_name, error=exc))
            else:
                await successes.put(processed)
            finally:
                if on_complete is not None:
                    on_complete(repo)

    async def close_when_done() -> None:
        workers = [worker() for _ in range(min(concurrency, len(repositories)))]
        try:
            await asyncio.gather(*workers)
        finally:
            successes.put_nowait(_CLOSED)
            failures.put_nowait(_CLOSED)

    async def drain(stream: asyncio.Queue, sink: list) -> None:
        while True:
            item = await stream.get()
            if item is _CLOSED:
                return
            sink.append(item)

    succeeded: list[Repository] = []
    failed: list[RepositoryFailure] = []
    await asyncio.gather(
        close_when_done(),
        drain(successes, succeeded),
        drain(failures, failed),
    )
    logger.info(
        "Processed %d repositories: %d succeeded, %d failed",
        len(repositories),
        len(succeeded),
        len(failed),
    )
    return succeeded, failed
