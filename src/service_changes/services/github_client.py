"""
GitHub change source for Service Changes.

This module retrieves the files changed by a push (per-commit diffs) or by
a pull request from the GitHub REST API. Requests are made once; any
failure aborts the run with an UpstreamFetchError.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from .. import USER_AGENT
from ..core.errors import UpstreamFetchError, classify_http_error
from ..core.models import ChangedFile, FileStatus
from ..core.trigger import TriggerContext

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class GitHubFile(BaseModel):
    """File entry of a commit or pull request diff."""
    model_config = ConfigDict(extra="ignore")

    filename: str
    status: str = "unknown"
    previous_filename: Optional[str] = None

    def to_changed_file(self) -> ChangedFile:
        return ChangedFile(
            path=self.filename,
            status=FileStatus.parse(self.status),
            previous_path=self.previous_filename,
        )


class GitHubCommit(BaseModel):
    """Commit response; only the file list is of interest."""
    model_config = ConfigDict(extra="ignore")

    sha: str = ""
    files: List[GitHubFile] = []


class GitHubClient:
    """Async client for the parts of the GitHub REST API that list changed files."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 30,
        per_page: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the client.

        Args:
            token: GitHub access token
            api_url: Base URL of the REST API
            timeout_seconds: Request timeout
            per_page: Page size for paginated endpoints
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url.rstrip("/")
        self.per_page = per_page
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "User-Agent": USER_AGENT,
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_changes(self, trigger: TriggerContext) -> List[ChangedFile]:
        """Fetch the changed files for a push or pull request.

        Push commits are fetched concurrently and flattened in commit order.
        The result is deduplicated on exact (path, status) pairs.

        Raises:
            UpstreamFetchError: If any request fails
        """
        if trigger.is_pull_request:
            files = await self.get_pull_request_files(trigger.owner, trigger.repo, trigger.pull_number)
            groups: List[List[ChangedFile]] = [files]
        else:
            groups = await self._gather_commit_files(trigger.owner, trigger.repo, trigger.commit_ids)

        changes = merge_changed_files(groups)
        logger.info(f"Fetched {len(changes)} changed file(s) for {trigger.full_name}")
        logger.debug(f"Files: {[change.to_dict() for change in changes]}")
        return changes

    async def _gather_commit_files(self, owner: str, repo: str, refs: List[str]) -> List[List[ChangedFile]]:
        """Fetch every commit concurrently, in commit order.

        The first failure cancels the requests still in flight and is re-raised.
        """
        tasks = [asyncio.ensure_future(self.get_commit_files(owner, repo, ref)) for ref in refs]
        if not tasks:
            return []

        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        if pending:
            logger.debug(f"Cancelling {len(pending)} in-flight commit request(s)")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if task in done and task.exception() is not None:
                raise task.exception()
        return [task.result() for task in tasks]

    async def get_commit_files(self, owner: str, repo: str, ref: str) -> List[ChangedFile]:
        """List the files changed by a single commit."""
        files: List[ChangedFile] = []
        async for page in self._paginate(f"/repos/{owner}/{repo}/commits/{ref}"):
            try:
                commit = GitHubCommit.model_validate(page)
            except ValidationError as e:
                raise UpstreamFetchError(f"Unexpected commit response from GitHub: {e}", original_error=e) from e
            files.extend(f.to_changed_file() for f in commit.files)
        logger.debug(f"Commit {ref[:8]} changed {len(files)} file(s)")
        return files

    async def get_pull_request_files(self, owner: str, repo: str, number: int) -> List[ChangedFile]:
        """List the files changed by a pull request."""
        files: List[ChangedFile] = []
        async for page in self._paginate(f"/repos/{owner}/{repo}/pulls/{number}/files"):
            try:
                page_files = [GitHubFile.model_validate(item) for item in page]
            except (TypeError, ValidationError) as e:
                raise UpstreamFetchError(f"Unexpected pull request response from GitHub: {e}", original_error=e) from e
            files.extend(f.to_changed_file() for f in page_files)
        logger.debug(f"Pull request #{number} changed {len(files)} file(s)")
        return files

    async def _paginate(self, path: str):
        """Yield decoded JSON pages, following ``Link: rel="next"`` headers."""
        url: Optional[str] = path
        params: Optional[Dict[str, Any]] = {"per_page": self.per_page}

        while url:
            response = await self._get(url, params)
            try:
                data = response.json()
            except ValueError as e:
                raise UpstreamFetchError(
                    f"Unexpected response from GitHub: {e}",
                    url=str(response.url),
                    original_error=e
                ) from e
            yield data

            next_link = response.links.get("next")
            url = next_link.get("url") if next_link else None
            # The next link already carries the query string
            params = None

    async def _get(self, url: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            error = classify_http_error(e)
            logger.error(f"GitHub request failed: {error}")
            raise error from e


def merge_changed_files(groups: Iterable[Iterable[ChangedFile]]) -> List[ChangedFile]:
    """Flatten groups of changes, keeping the first of each (path, status) pair."""
    seen = set()
    merged: List[ChangedFile] = []
    for group in groups:
        for change in group:
            key: Tuple[str, FileStatus] = (change.path, change.status)
            if key in seen:
                continue
            seen.add(key)
            merged.append(change)
    return merged
