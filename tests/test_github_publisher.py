import asyncio
import base64
import json

import httpx
import pytest

from conftest import FakeGitHub
from outlet_sync.clients.github import GitHubPublisher
from outlet_sync.errors import (
    ConfigurationError,
    PublishAuthorizationError,
    PublishConflictError,
    PublishError,
    PublishNotFoundError,
    PublishRateLimitError,
)


def _publisher(settings, handler) -> GitHubPublisher:
    return GitHubPublisher(settings, transport=httpx.MockTransport(handler))


def _publish(settings, handler, content="x\n"):
    async def scenario():
        async with _publisher(settings, handler) as publisher:
            return await publisher.publish(content, "Update outlet data - 2024/06/10")

    return asyncio.run(scenario())


def test_publisher_requires_configuration(settings):
    settings.github_repo_owner = ""
    with pytest.raises(ConfigurationError) as excinfo:
        GitHubPublisher(settings)
    assert excinfo.value.missing == ["GITHUB_REPO_OWNER"]


def test_publish_creates_missing_file_without_revision(settings):
    github = FakeGitHub()

    response = _publish(settings, github, content='"a"\n')

    assert github.content == '"a"\n'
    assert "sha" not in github.puts[0]
    assert response["commit"]["sha"] == "commit-1"


def test_publish_overwrites_with_current_revision(settings):
    github = FakeGitHub(existing="old", sha="abc")

    _publish(settings, github, content="new")

    assert github.puts[0]["sha"] == "abc"
    assert github.content == "new"


def test_put_body_is_base64_and_targets_branch(settings):
    settings.github_branch = "main"
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            assert request.url.params["ref"] == "main"
            return httpx.Response(200, json={"sha": "s1"})
        captured.append(json.loads(request.content))
        assert request.headers["Authorization"] == "Bearer ghp_token"
        assert request.url.path == "/repos/acme/outlets/contents/public/markers.csv"
        return httpx.Response(200, json={"content": {"sha": "s2"}, "commit": {"sha": "c2"}})

    _publish(settings, handler, content="Nama,Ibu Süri\n")

    body = captured[0]
    assert base64.b64decode(body["content"]).decode("utf-8") == "Nama,Ibu Süri\n"
    assert body["branch"] == "main"
    assert body["sha"] == "s1"
    assert body["message"] == "Update outlet data - 2024/06/10"


@pytest.mark.parametrize(
    "status, headers, message, expected",
    [
        (401, {}, "Bad credentials", PublishAuthorizationError),
        (403, {}, "Resource not accessible by integration", PublishAuthorizationError),
        (403, {"x-ratelimit-remaining": "0"}, "API rate limit exceeded", PublishRateLimitError),
        (429, {}, "Too many requests", PublishRateLimitError),
        (404, {}, "Not Found", PublishNotFoundError),
        (409, {}, "is at abc but expected def", PublishConflictError),
        (422, {}, "Invalid request. \"sha\" wasn't supplied.", PublishConflictError),
        (422, {}, "Invalid request", PublishError),
        (500, {}, "Server Error", PublishError),
    ],
)
def test_put_failures_are_classified(settings, status, headers, message, expected):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"sha": "s1"})
        return httpx.Response(status, headers=headers, json={"message": message})

    with pytest.raises(expected) as excinfo:
        _publish(settings, handler)
    assert type(excinfo.value) is expected
    assert excinfo.value.status_code == status


def test_revision_read_errors_other_than_404_propagate(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Bad credentials"})

    with pytest.raises(PublishAuthorizationError):
        _publish(settings, handler)


def test_check_repository(settings):
    async def scenario():
        async with _publisher(settings, FakeGitHub()) as publisher:
            return await publisher.check_repository()

    assert asyncio.run(scenario())["full_name"] == "acme/outlets"
