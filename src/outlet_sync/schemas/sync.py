"""Sync and status API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel

from ..models.domain import SyncResult


class RejectionModel(BaseModel):
    outlet_code: str
    reason: str


class SyncResultModel(BaseModel):
    trigger: str
    state: str
    fetched: int
    published: int
    rejected_count: int
    rejected: List[RejectionModel]
    commit_sha: Optional[str] = None
    content_sha: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResultModel":
        return cls(
            trigger=result.trigger,
            state=result.state.value,
            fetched=result.fetched,
            published=result.published,
            rejected_count=len(result.rejected),
            rejected=[
                RejectionModel(outlet_code=item.outlet_code, reason=item.reason.value)
                for item in result.rejected
            ],
            commit_sha=result.commit_sha,
            content_sha=result.content_sha,
            started_at=result.started_at,
            finished_at=result.finished_at,
            error=result.error,
        )


class SyncResponse(BaseModel):
    success: bool
    message: str
    result: Optional[SyncResultModel] = None


class OrderStatusResponse(BaseModel):
    success: bool
    date: str
    total_orders: int
    total_dus: int
    last_update: datetime


class FeishuConfigDetails(BaseModel):
    app_id_set: bool
    app_secret_set: bool
    app_token_set: bool
    table_id_set: bool


class GitHubConfigDetails(BaseModel):
    token_set: bool
    repo_owner_set: bool
    repo_name_set: bool
    repo_path: str
    file_path: str


class ConfigStatusResponse(BaseModel):
    feishu_configured: bool
    feishu_details: FeishuConfigDetails
    github_configured: bool
    github_details: GitHubConfigDetails
    schedule: str
    python_version: str
    timestamp: datetime


class ConnectionResult(BaseModel):
    status: str = "not_tested"
    message: str = ""
    details: Optional[dict[str, Any]] = None


class ConnectionSummary(BaseModel):
    total_tests: int
    passed: int
    failed: int


class ConnectionTestResponse(BaseModel):
    success: bool
    test_results: dict[str, ConnectionResult]
    summary: ConnectionSummary
    timestamp: datetime
