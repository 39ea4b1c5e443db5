import base64
import json
from pathlib import Path
from typing import Optional

import httpx
import pytest

from outlet_sync.clients.feishu import FeishuClient
from outlet_sync.clients.github import GitHubPublisher
from outlet_sync.config import Settings
from outlet_sync.services.sync import SyncContext, SyncOrchestrator


def raw_record(
    code: str,
    status: str = "Active",
    lat: object = "-6.2",
    lon: object = "106.8",
    **extra: object,
) -> dict:
    fields = {
        "Outlet Code": code,
        "Nama Pemilik": [{"text": f"Owner {code}", "type": "text"}],
        "Type": "Stik",
        "Outlet Status": status,
        "latitude": lat,
        "longitude": lon,
    }
    fields.update(extra)
    return {"record_id": f"rec{code}", "fields": fields}


class FakeBitable:
    """In-memory stand-in for the Feishu token and records endpoints."""

    def __init__(self, pages: list[list[dict]], expire: int = 7200) -> None:
        self.pages = pages
        self.expire = expire
        self.token_requests = 0
        self.page_requests: list[dict] = []
        self.fail_token_with: Optional[int] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/tenant_access_token/internal"):
            self.token_requests += 1
            if self.fail_token_with is not None:
                return httpx.Response(200, json={"code": self.fail_token_with, "msg": "app secret invalid"})
            return httpx.Response(
                200,
                json={"code": 0, "msg": "ok", "tenant_access_token": "t-123", "expire": self.expire},
            )
        if "/bitable/v1/apps/" in request.url.path:
            assert request.headers["Authorization"] == "Bearer t-123"
            params = dict(request.url.params)
            self.page_requests.append(params)
            index = int(params.get("page_token", "0"))
            has_more = index + 1 < len(self.pages)
            data = {
                "items": self.pages[index] if self.pages else [],
                "has_more": has_more,
                "page_token": str(index + 1) if has_more else None,
            }
            return httpx.Response(200, json={"code": 0, "msg": "success", "data": data})
        return httpx.Response(404, json={"code": 404, "msg": "not found"})


class FakeGitHub:
    """In-memory stand-in for the GitHub contents API."""

    def __init__(self, existing: Optional[str] = None, sha: str = "sha-0") -> None:
        self.content = existing
        self.sha = sha if existing is not None else None
        self.puts: list[dict] = []
        self.put_status: list[int] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if "/contents/" in path and request.method == "GET":
            if self.content is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"sha": self.sha, "content": ""})
        if "/contents/" in path and request.method == "PUT":
            body = json.loads(request.content)
            self.puts.append(body)
            if self.put_status:
                code = self.put_status.pop(0)
                return httpx.Response(code, json={"message": "forced failure"})
            if body.get("sha") != self.sha:
                return httpx.Response(409, json={"message": "sha does not match"})
            self.content = base64.b64decode(body["content"]).decode("utf-8")
            self.sha = f"sha-{len(self.puts)}"
            return httpx.Response(
                201 if len(self.puts) == 1 else 200,
                json={"content": {"sha": self.sha}, "commit": {"sha": f"commit-{len(self.puts)}"}},
            )
        if path.startswith("/repos/") and request.method == "GET":
            return httpx.Response(200, json={"full_name": "acme/outlets", "permissions": {"push": True}})
        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        feishu_app_id="cli_app",
        feishu_app_secret="secret",
        feishu_app_token="bascn123",
        feishu_table_id="tbl123",
        github_token="ghp_token",
        github_repo_owner="acme",
        github_repo_name="outlets",
        data_root=tmp_path,
        sync_backoff_seconds=0,
        sync_schedule_enabled=False,
    )


def make_orchestrator(settings: Settings, bitable: FakeBitable, github: FakeGitHub, clock=None) -> SyncOrchestrator:
    async def no_sleep(_: float) -> None:
        return None

    context = SyncContext(
        settings=settings,
        feishu_factory=lambda cfg: FeishuClient(cfg, transport=httpx.MockTransport(bitable)),
        publisher_factory=lambda cfg: GitHubPublisher(cfg, transport=httpx.MockTransport(github)),
        sleep=no_sleep,
    )
    if clock is not None:
        context.clock = clock
    return SyncOrchestrator(context)
