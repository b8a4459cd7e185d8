"""GitHub REST API client."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from ..errors import ProviderFailure, RequestCancelled
from ..models import Author, Branch, Commit, CommitStats, Repository

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"


def _parse_timestamp(value: str | None) -> datetime:
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _is_rate_limited(response: httpx.Response) -> bool:
    return response.status_code in (403, 429) and response.headers.get(
        "X-RateLimit-Remaining"
    ) == "0"


def _to_repository(data: dict[str, Any]) -> Repository:
    return Repository(
        name=data.get("name", ""),
        full_name=data.get("full_name", ""),
        url=data.get("html_url", ""),
        default_branch=data.get("default_branch", ""),
    )


def _to_branch(data: dict[str, Any]) -> Branch:
    return Branch(name=data.get("name", ""), sha=(data.get("commit") or {}).get("sha", ""))


def _to_commit(listed: dict[str, Any], detail: dict[str, Any]) -> Commit:
    git_commit = listed.get("commit") or {}
    git_author = git_commit.get("author") or {}
    # Top-level author is null when the email is not linked to an account
    account = listed.get("author") or {}
    stats = detail.get("stats") or {}
    return Commit(
        sha=listed.get("sha", ""),
        message=git_commit.get("message", ""),
        author=Author(
            name=git_author.get("name") or "",
            email=git_author.get("email") or "",
            login=account.get("login") or "",
        ),
        date=_parse_timestamp(git_author.get("date")),
        stats=CommitStats(
            additions=stats.get("additions", 0),
            deletions=stats.get("deletions", 0),
        ),
    )


class GitHubClient:
    """Async GitHub REST API client with pagination support.

    Every HTTP error is raised as :class:`ProviderFailure`. When
    ``cancel_event`` is set, further requests raise :class:`RequestCancelled`
    instead of reaching the network.
    """

    def __init__(
        self,
        token: str | None = None,
        concurrency: int = 10,
        base_url: str | None = None,
        verify_ssl: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url or BASE_URL,
            headers=headers,
            timeout=30.0,
            verify=verify_ssl,
        )
        self._semaphore = asyncio.Semaphore(concurrency)
        self._cancel_event = cancel_event

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise RequestCancelled()

    async def _get(
        self, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        self._check_cancelled()
        async with self._semaphore:
            # requests queued on the semaphore may outlive the cancellation
            self._check_cancelled()
            response = await self._client.get(url, params=params)
            if _is_rate_limited(response):
                raise ProviderFailure(
                    "GitHub API rate limit exceeded", status_code=response.status_code
                )
            response.raise_for_status()
            return response

    async def _paginate(
        self, url: str, params: dict[str, Any] | None = None
    ) -> list[Any]:
        results: list[Any] = []
        params = dict(params or {})
        params.setdefault("per_page", 100)
        next_url: str | None = url

        while next_url is not None:
            response = await self._get(next_url, params)
            data = response.json()
            if isinstance(data, list):
                results.extend(data)
            else:
                results.append(data)

            # Follow Link header for next page
            next_url = None
            link_header = response.headers.get("Link", "")
            for part in link_header.split(","):
                if 'rel="next"' in part:
                    next_url = part.split(";")[0].strip().strip("<>")
                    params = {}  # URL already contains params
                    break

        return results

    async def _call(self, what: str, url: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Paginate ``url``, raising transport and HTTP errors as ProviderFailure."""
        try:
            return await self._paginate(url, params)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderFailure(
                f"failed to {what}: GitHub API returned {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderFailure(f"failed to {what}: {exc}") from exc

    async def list_repositories(self, target: str) -> list[Repository]:
        """List the non-archived repositories of an organization or user."""
        try:
            repos = await self._call(
                f"list repositories for {target}", f"/orgs/{target}/repos"
            )
        except ProviderFailure as exc:
            if exc.status_code != 404:
                raise
            logger.info("%s is not an organization, listing user repositories", target)
            repos = await self._call(
                f"list repositories for {target}", f"/users/{target}/repos"
            )
        return [_to_repository(r) for r in repos if not r.get("archived", False)]

    async def list_branches(self, owner: str, repo: str) -> list[Branch]:
        """List all branches of a repository."""
        branches = await self._call(
            f"list branches for {owner}/{repo}", f"/repos/{owner}/{repo}/branches"
        )
        return [_to_branch(b) for b in branches]

    async def list_commits(
        self,
        owner: str,
        repo: str,
        branch: str,
        since: datetime,
        until: datetime,
    ) -> list[Commit]:
        """List commits on a branch within ``[since, until]`` with line stats."""
        params = {
            "sha": branch,
            "since": _format_timestamp(since),
            "until": _format_timestamp(until),
        }
        try:
            listed = await self._call(
                f"list commits for {owner}/{repo}@{branch}",
                f"/repos/{owner}/{repo}/commits",
                params,
            )
        except ProviderFailure as exc:
            # 409: repository is empty
            if exc.status_code == 409:
                return []
            raise

        details = await asyncio.gather(
            *(self.get_commit(owner, repo, c.get("sha", "")) for c in listed),
            return_exceptions=True,
        )

        commits: list[Commit] = []
        for item, detail in zip(listed, details):
            # a cancelled detail fetch would silently undercount the branch
            if isinstance(detail, RequestCancelled):
                raise detail
            if isinstance(detail, ProviderFailure):
                logger.warning(
                    "Skipping commit %s in %s/%s: %s", item.get("sha"), owner, repo, detail
                )
                continue
            if isinstance(detail, BaseException):
                raise detail
            commits.append(_to_commit(item, detail))
        return commits

    async def get_commit(self, owner: str, repo: str, sha: str) -> dict[str, Any]:
        """Get a single commit including its ``stats`` block."""
        url = f"/repos/{owner}/{repo}/commits/{sha}"
        try:
            response = await self._get(url)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ProviderFailure(
                f"failed to get commit {sha} in {owner}/{repo}: GitHub API returned {status}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderFailure(
                f"failed to get commit {sha} in {owner}/{repo}: {exc}"
            ) from exc
        return response.json()
