import asyncio

import httpx
import pytest

from conftest import FakeBitable, FakeGitHub, make_orchestrator, raw_record
from outlet_sync.errors import (
    ConfigurationError,
    PublishAuthorizationError,
    PublishError,
    PublishRateLimitError,
    SyncInProgressError,
    UpstreamServiceError,
)
from outlet_sync.models.domain import RejectionReason, SyncState, TokenCache
from outlet_sync.services.csv_codec import decode_records


def test_sync_publishes_only_valid_active_records(settings):
    bitable = FakeBitable([[raw_record("GOOD-1"), raw_record("ZERO-LAT", lat="0")]])
    github = FakeGitHub()
    orchestrator = make_orchestrator(settings, bitable, github)

    result = asyncio.run(orchestrator.run())

    assert result.state is SyncState.DONE
    assert result.fetched == 2
    assert result.published == 1
    assert [(item.outlet_code, item.reason) for item in result.rejected] == [
        ("ZERO-LAT", RejectionReason.COORDINATES)
    ]
    assert result.commit_sha == "commit-1"

    published = decode_records(github.content)
    assert len(published) == 1
    assert published[0].outlet_code == "GOOD-1"
    assert github.content.count("\n") == 2
    assert "sha" not in github.puts[0]
    assert github.puts[0]["message"].startswith("Update outlet data - ")


def test_sync_writes_local_copy(settings):
    orchestrator = make_orchestrator(settings, FakeBitable([[raw_record("A")]]), FakeGitHub())
    asyncio.run(orchestrator.run())

    local = (settings.data_root / settings.local_csv_file).read_text(encoding="utf-8")
    assert [record.outlet_code for record in decode_records(local)] == ["A"]


def test_sync_pages_sequentially_until_no_more(settings):
    pages = [[raw_record("A"), raw_record("B")], [raw_record("C")], [raw_record("D", status="Inactive")]]
    bitable = FakeBitable(pages)
    github = FakeGitHub()
    orchestrator = make_orchestrator(settings, bitable, github)

    result = asyncio.run(orchestrator.run())

    assert result.fetched == 4
    assert result.published == 3
    assert [params.get("page_token") for params in bitable.page_requests] == [None, "1", "2"]
    assert all(params["page_size"] == "500" for params in bitable.page_requests)


def test_sync_passes_revision_of_existing_file(settings):
    github = FakeGitHub(existing="old", sha="abc123")
    orchestrator = make_orchestrator(settings, FakeBitable([[raw_record("A")]]), github)

    asyncio.run(orchestrator.run())

    assert github.puts[0]["sha"] == "abc123"


def test_token_is_reused_until_expiry(settings):
    now = [1_000.0]
    bitable = FakeBitable([[raw_record("A")]], expire=7200)
    orchestrator = make_orchestrator(settings, bitable, FakeGitHub(), clock=lambda: now[0])

    asyncio.run(orchestrator.run())
    asyncio.run(orchestrator.run())
    assert bitable.token_requests == 1
    assert orchestrator.context.token_cache == TokenCache(token="t-123", expires_at=1_000.0 + 7200 - 300)

    now[0] = 1_000.0 + 7200 - 300
    asyncio.run(orchestrator.run())
    assert bitable.token_requests == 2


def test_missing_configuration_fails_before_network(settings):
    settings.github_token = None
    bitable = FakeBitable([[raw_record("A")]])
    orchestrator = make_orchestrator(settings, bitable, FakeGitHub())

    with pytest.raises(ConfigurationError) as excinfo:
        asyncio.run(orchestrator.run())

    assert "GITHUB_TOKEN" in str(excinfo.value)
    assert bitable.token_requests == 0
    assert orchestrator.last_result.state is SyncState.FAILED


def test_upstream_error_code_is_surfaced_without_publishing(settings):
    bitable = FakeBitable([[raw_record("A")]])
    bitable.fail_token_with = 10014
    github = FakeGitHub()
    orchestrator = make_orchestrator(settings, bitable, github)

    with pytest.raises(UpstreamServiceError) as excinfo:
        asyncio.run(orchestrator.run())

    assert excinfo.value.code == 10014
    assert bitable.token_requests == 1
    assert github.puts == []
    assert orchestrator.last_result.error.startswith("Feishu API error")


def test_publish_conflict_is_retried_with_fresh_revision(settings):
    github = FakeGitHub(existing="old", sha="abc123")
    github.put_status = [409]
    orchestrator = make_orchestrator(settings, FakeBitable([[raw_record("A")]]), github)

    result = asyncio.run(orchestrator.run())

    assert result.state is SyncState.DONE
    assert len(github.puts) == 2


def test_authorization_failure_is_not_retried(settings):
    github = FakeGitHub()
    github.put_status = [401, 401]
    orchestrator = make_orchestrator(settings, FakeBitable([[raw_record("A")]]), github)

    with pytest.raises(PublishAuthorizationError):
        asyncio.run(orchestrator.run())

    assert len(github.puts) == 1
    assert orchestrator.last_result.state is SyncState.FAILED


def test_publish_server_error_is_not_retried(settings):
    github = FakeGitHub()
    github.put_status = [503, 503, 503, 503]
    orchestrator = make_orchestrator(settings, FakeBitable([[raw_record("A")]]), github)

    with pytest.raises(PublishError) as excinfo:
        asyncio.run(orchestrator.run())

    assert excinfo.value.status_code == 503
    assert len(github.puts) == 1


def test_rate_limit_retries_up_to_limit(settings):
    settings.sync_max_retries = 2
    github = FakeGitHub()
    github.put_status = [429, 429, 429]
    orchestrator = make_orchestrator(settings, FakeBitable([[raw_record("A")]]), github)

    with pytest.raises(PublishRateLimitError) as excinfo:
        asyncio.run(orchestrator.run())

    assert "rate limit" in str(excinfo.value)
    assert len(github.puts) == 3


def test_concurrent_run_is_rejected(settings):
    orchestrator = make_orchestrator(settings, FakeBitable([[raw_record("A")]]), FakeGitHub())

    async def scenario():
        await orchestrator._lock.acquire()
        try:
            with pytest.raises(SyncInProgressError):
                await orchestrator.run("scheduled")
        finally:
            orchestrator._lock.release()
        return await orchestrator.run("manual")

    result = asyncio.run(scenario())
    assert result.trigger == "manual"
    assert result.state is SyncState.DONE


def test_collect_outlets_does_not_publish(settings):
    github = FakeGitHub()
    orchestrator = make_orchestrator(
        settings, FakeBitable([[raw_record("A"), raw_record("B", status="Closed")]]), github
    )

    outlets, rejected = asyncio.run(orchestrator.collect_outlets())

    assert [outlet.outlet_code for outlet in outlets] == ["A"]
    assert [item.outlet_code for item in rejected] == ["B"]
    assert github.puts == []
    assert orchestrator.last_result is None


def test_token_expiry_is_measured_from_the_successful_request(settings):
    settings.sync_backoff_seconds = 30
    now = [1_000.0]
    bitable = FakeBitable([[raw_record("A")]], expire=7200)
    failures = [True]

    def flaky(request):
        if request.url.path.endswith("/tenant_access_token/internal") and failures:
            failures.pop()
            return httpx.Response(502, text="bad gateway")
        return bitable(request)

    orchestrator = make_orchestrator(settings, flaky, FakeGitHub(), clock=lambda: now[0])

    async def advance(seconds):
        now[0] += seconds

    orchestrator.context.sleep = advance
    asyncio.run(orchestrator.run())

    assert bitable.token_requests == 1
    assert orchestrator.context.token_cache.expires_at == 1_030.0 + 7200 - 300
