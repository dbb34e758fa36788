"""Tests for the GitHub change source."""

import asyncio
import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from service_changes.core.errors import UpstreamFetchError
from service_changes.core.models import ChangedFile, FileStatus
from service_changes.core.trigger import TriggerContext
from service_changes.services.github_client import GitHubClient, GitHubFile, merge_changed_files


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> GitHubClient:
    return GitHubClient(token="test-token", transport=httpx.MockTransport(handler))


def file_entry(filename: str, status: str) -> Dict[str, Any]:
    return {"filename": filename, "status": status, "additions": 1, "deletions": 0}


class TestGitHubFile:
    """Test cases for the response models."""

    def test_to_changed_file(self) -> None:
        github_file = GitHubFile.model_validate(
            {"filename": "svc/a/main.go", "status": "renamed", "previous_filename": "svc/b/main.go", "sha": "x"}
        )

        assert github_file.to_changed_file() == ChangedFile("svc/a/main.go", FileStatus.RENAMED, "svc/b/main.go")

    def test_unknown_status(self) -> None:
        assert GitHubFile(filename="a.go", status="weird").to_changed_file().status == FileStatus.UNKNOWN


class TestGitHubClient:
    """Test cases for GitHubClient."""

    @pytest.mark.asyncio
    async def test_commit_files_and_headers(self) -> None:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"sha": "aaa111", "files": [file_entry("svc/a/main.go", "added")]})

        async with make_client(handler) as client:
            files = await client.get_commit_files("acme", "monorepo", "aaa111")

        assert files == [ChangedFile("svc/a/main.go", FileStatus.ADDED)]
        request = requests[0]
        assert request.url.path == "/repos/acme/monorepo/commits/aaa111"
        assert request.url.params["per_page"] == "100"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert request.headers["User-Agent"].startswith("service-changes/")

    @pytest.mark.asyncio
    async def test_pull_request_files_follow_pagination(self) -> None:
        next_url = "https://api.github.com/repos/acme/monorepo/pulls/42/files?per_page=100&page=2"

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("page") == "2":
                return httpx.Response(200, json=[file_entry("svc/b/x.go", "removed")])
            return httpx.Response(
                200,
                json=[file_entry("svc/a/x.go", "modified")],
                headers={"Link": f'<{next_url}>; rel="next", <{next_url}>; rel="last"'},
            )

        async with make_client(handler) as client:
            files = await client.get_pull_request_files("acme", "monorepo", 42)

        assert [f.path for f in files] == ["svc/a/x.go", "svc/b/x.go"]
        assert files[1].status == FileStatus.REMOVED

    @pytest.mark.asyncio
    async def test_fetch_changes_for_push_merges_commits(self, push_payload) -> None:
        responses = {
            "aaa111": [file_entry("svc/a/x.go", "modified"), file_entry("svc/b/main.go", "added")],
            "bbb222": [file_entry("svc/a/x.go", "modified"), file_entry("svc/a/x.go", "removed")],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            ref = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={"sha": ref, "files": responses[ref]})

        trigger = TriggerContext.from_event("push", push_payload)
        async with make_client(handler) as client:
            changes = await client.fetch_changes(trigger)

        assert changes == [
            ChangedFile("svc/a/x.go", FileStatus.MODIFIED),
            ChangedFile("svc/b/main.go", FileStatus.ADDED),
            ChangedFile("svc/a/x.go", FileStatus.REMOVED),
        ]

    @pytest.mark.asyncio
    async def test_fetch_changes_for_pull_request(self, pull_request_payload) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/acme/monorepo/pulls/42/files"
            return httpx.Response(200, json=[file_entry("svc/a/main.go", "removed")])

        trigger = TriggerContext.from_event("pull_request", pull_request_payload)
        async with make_client(handler) as client:
            changes = await client.fetch_changes(trigger)

        assert changes == [ChangedFile("svc/a/main.go", FileStatus.REMOVED)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403, 404, 500])
    async def test_http_errors_raise_upstream_fetch_error(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"message": "nope"})

        async with make_client(handler) as client:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await client.get_commit_files("acme", "monorepo", "aaa111")

        assert exc_info.value.status == status
        assert exc_info.value.exit_code == 4

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await client.get_pull_request_files("acme", "monorepo", 1)

        assert "Network error" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_json_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        async with make_client(handler) as client:
            with pytest.raises(UpstreamFetchError):
                await client.get_commit_files("acme", "monorepo", "aaa111")

    @pytest.mark.asyncio
    async def test_unexpected_response_shape(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps({"files": "nope"}).encode())

        async with make_client(handler) as client:
            with pytest.raises(UpstreamFetchError):
                await client.get_commit_files("acme", "monorepo", "aaa111")

    @pytest.mark.asyncio
    async def test_one_failed_commit_fails_the_fetch(self, push_payload) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("bbb222"):
                return httpx.Response(502)
            return httpx.Response(200, json={"files": []})

        trigger = TriggerContext.from_event("push", push_payload)
        async with make_client(handler) as client:
            with pytest.raises(UpstreamFetchError):
                await client.fetch_changes(trigger)

    @pytest.mark.asyncio
    async def test_failed_commit_cancels_pending_requests(self, push_payload) -> None:
        cancelled = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("bbb222"):
                return httpx.Response(401, json={"message": "Bad credentials"})
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return httpx.Response(200, json={"files": []})

        trigger = TriggerContext.from_event("push", push_payload)
        async with make_client(handler) as client:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await asyncio.wait_for(client.fetch_changes(trigger), timeout=5)

        assert exc_info.value.status == 401
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_push_without_commits_fetches_nothing(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        trigger = TriggerContext.from_event("push", {"commits": []}, repository="acme/monorepo")
        async with make_client(handler) as client:
            assert await client.fetch_changes(trigger) == []


def test_merge_changed_files_keeps_first_of_each_pair() -> None:
    a = ChangedFile("a.go", FileStatus.ADDED)
    b = ChangedFile("a.go", FileStatus.MODIFIED)

    assert merge_changed_files([[a, b], [a], [b, ChangedFile("c.go", FileStatus.REMOVED)]]) == [
        a,
        b,
        ChangedFile("c.go", FileStatus.REMOVED),
    ]
