"""Sync orchestration: fetch every bitable page, normalize, filter, encode, publish.

One run walks ``AUTHENTICATING -> FETCHING -> NORMALIZING -> FILTERING ->
ENCODING -> PUBLISHING -> DONE``; any failure ends in ``FAILED`` and is
re-raised to the trigger. Nothing is published unless every earlier step
succeeded. Only one run may be in flight per orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from ..clients.feishu import FeishuClient
from ..clients.github import GitHubPublisher
from ..clients.retry import call_with_retries
from ..config import Settings, settings as default_settings
from ..errors import SyncInProgressError
from ..models.domain import OutletRecord, Rejection, SyncResult, SyncState, TokenCache
from ..persistence.filesystem import FileStorage
from .csv_codec import encode_records
from .filtering import filter_records
from .normalizer import normalize_record

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything a run needs; the token cache is replaced whenever it is refreshed."""

    settings: Settings = field(default_factory=lambda: default_settings)
    token_cache: TokenCache = field(default_factory=TokenCache)
    feishu_factory: Callable[[Settings], FeishuClient] = FeishuClient
    publisher_factory: Callable[[Settings], GitHubPublisher] = GitHubPublisher
    storage_factory: Optional[Callable[[Settings], FileStorage]] = None
    clock: Callable[[], float] = time.time
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def storage(self) -> FileStorage:
        if self.storage_factory is not None:
            return self.storage_factory(self.settings)
        return FileStorage(root=self.settings.data_root, csv_name=self.settings.local_csv_file)


def today_string(tz_name: str, now: Optional[datetime] = None) -> str:
    current = (now or datetime.now(timezone.utc)).astimezone(ZoneInfo(tz_name))
    return current.strftime("%Y/%m/%d")


class SyncOrchestrator:
    def __init__(self, context: Optional[SyncContext] = None) -> None:
        self.context = context or SyncContext()
        self._lock = asyncio.Lock()
        self.last_result: Optional[SyncResult] = None

    @property
    def settings(self) -> Settings:
        return self.context.settings

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def _retry(self, operation, description: str):
        return await call_with_retries(
            operation,
            max_retries=self.settings.sync_max_retries,
            backoff_seconds=self.settings.sync_backoff_seconds,
            description=description,
            sleep=self.context.sleep,
        )

    async def ensure_token(self, feishu: FeishuClient) -> str:
        """Reuse the cached tenant token until it expires."""
        if self.context.token_cache.is_valid(self.context.clock()):
            return self.context.token_cache.token
        cache = await self._retry(lambda: feishu.fetch_token(self.context.clock()), "Feishu token request")
        self.context.token_cache = cache
        logger.info("Feishu access token obtained")
        return cache.token

    async def _fetch_all(self, feishu: FeishuClient, token: str) -> list[dict]:
        items: list[dict] = []
        page_token: Optional[str] = None
        page = 0
        while True:
            page += 1
            current = page_token
            data = await self._retry(
                lambda: feishu.fetch_page(token, current),
                f"Feishu records page {page}",
            )
            batch = data.get("items") or []
            items.extend(batch)
            logger.info("Fetched page %d with %d records", page, len(batch))
            page_token = data.get("page_token")
            if not data.get("has_more") or not page_token:
                break
        logger.info("Fetched %d records in total", len(items))
        return items

    def _normalize(self, items: list[dict]) -> list[OutletRecord]:
        return [normalize_record(item.get("fields") or {}, self.settings.option_labels) for item in items]

    async def collect_outlets(self) -> tuple[list[OutletRecord], list[Rejection]]:
        """Fetch and filter outlets without publishing anything."""
        self.settings.require_feishu()
        async with self.context.feishu_factory(self.settings) as feishu:
            token = await self.ensure_token(feishu)
            items = await self._fetch_all(feishu, token)
        return filter_records(self._normalize(items))

    async def fetch_sample(self, page_size: int) -> list[dict]:
        """Return raw records of the first page, for field inspection."""
        self.settings.require_feishu()
        async with self.context.feishu_factory(self.settings) as feishu:
            token = await self.ensure_token(feishu)
            data = await self._retry(
                lambda: feishu.fetch_page(token, None, page_size=page_size),
                "Feishu sample page",
            )
        return list(data.get("items") or [])

    async def fetch_raw_records(self) -> list[dict]:
        self.settings.require_feishu()
        async with self.context.feishu_factory(self.settings) as feishu:
            token = await self.ensure_token(feishu)
            return await self._fetch_all(feishu, token)

    async def run(self, trigger: str = "manual") -> SyncResult:
        """Execute one full sync; rejects the call when another run is in flight."""
        if self._lock.locked():
            logger.warning("Sync trigger %r rejected: a run is already in progress", trigger)
            raise SyncInProgressError()
        async with self._lock:
            return await self._run(trigger)

    def _enter(self, result: SyncResult, state: SyncState) -> None:
        result.state = state
        logger.info("Sync (%s): %s", result.trigger, state.value)

    async def _run(self, trigger: str) -> SyncResult:
        result = SyncResult(trigger=trigger, started_at=datetime.now(timezone.utc))
        self.last_result = result
        try:
            self._enter(result, SyncState.AUTHENTICATING)
            self.settings.require_feishu()
            self.settings.require_github()
            async with self.context.feishu_factory(self.settings) as feishu:
                token = await self.ensure_token(feishu)

                self._enter(result, SyncState.FETCHING)
                items = await self._fetch_all(feishu, token)
            result.fetched = len(items)

            self._enter(result, SyncState.NORMALIZING)
            records = self._normalize(items)

            self._enter(result, SyncState.FILTERING)
            kept, rejected = filter_records(records)
            result.rejected = rejected
            logger.info("%d of %d records are publishable", len(kept), len(records))

            self._enter(result, SyncState.ENCODING)
            csv_content = encode_records(kept)
            self._save_local_copy(csv_content)

            self._enter(result, SyncState.PUBLISHING)
            message = f"Update outlet data - {today_string(self.settings.sync_timezone)}"
            async with self.context.publisher_factory(self.settings) as publisher:
                response = await self._retry(
                    lambda: publisher.publish(csv_content, message),
                    "GitHub publish",
                )
            result.published = len(kept)
            result.commit_sha = (response.get("commit") or {}).get("sha")
            result.content_sha = (response.get("content") or {}).get("sha")

            self._enter(result, SyncState.DONE)
            return result
        except Exception as exc:
            failed_in = result.state.value
            result.state = SyncState.FAILED
            result.error = str(exc)
            logger.error("Sync (%s) failed during %s: %s", trigger, failed_in, exc)
            raise
        finally:
            result.finished_at = datetime.now(timezone.utc)

    def _save_local_copy(self, content: str) -> None:
        try:
            path = self.context.storage().write_csv(content)
            logger.info("Saved local CSV copy to %s", path)
        except OSError as exc:
            logger.warning("Failed to save local CSV copy: %s", exc)
