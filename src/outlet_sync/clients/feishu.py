"""HTTP client for the Feishu bitable open API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import Settings, settings as default_settings
from ..errors import TransportError, UpstreamServiceError
from ..models.domain import TokenCache

logger = logging.getLogger(__name__)

TOKEN_PATH = "/open-apis/auth/v3/tenant_access_token/internal"
RECORDS_PATH = "/open-apis/bitable/v1/apps/{app_token}/tables/{table_id}/records"
# The token is refreshed this many seconds before the server-declared expiry.
TOKEN_REFRESH_MARGIN_SECONDS = 300


class FeishuClient:
    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = config or default_settings
        self.settings.require_feishu()
        self._client = httpx.AsyncClient(
            base_url=self.settings.feishu_base_url,
            timeout=httpx.Timeout(self.settings.feishu_request_timeout_seconds, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> "FeishuClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"Feishu network error: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            code = payload.get("code") if isinstance(payload, dict) else None
            message = payload.get("msg") if isinstance(payload, dict) else None
            raise UpstreamServiceError(
                code if code is not None else response.status_code,
                message or response.reason_phrase,
                status_code=response.status_code,
            )
        if not isinstance(payload, dict):
            raise UpstreamServiceError("invalid_response", "response body is not a JSON object")
        if payload.get("code") != 0:
            raise UpstreamServiceError(payload.get("code"), str(payload.get("msg") or "unknown error"))
        return payload

    async def fetch_token(self, now: float) -> TokenCache:
        """Obtain a tenant access token, valid until shortly before its expiry."""
        logger.info("Requesting Feishu tenant access token")
        payload = await self._request(
            "POST",
            TOKEN_PATH,
            json={
                "app_id": self.settings.feishu_app_id,
                "app_secret": self.settings.feishu_app_secret,
            },
            timeout=self.settings.feishu_auth_timeout_seconds,
        )
        token = payload.get("tenant_access_token")
        if not token:
            raise UpstreamServiceError(payload.get("code"), "token missing from response")
        expire = float(payload.get("expire") or 0)
        return TokenCache.from_ttl(token, expire, now, margin_seconds=TOKEN_REFRESH_MARGIN_SECONDS)

    async def fetch_page(
        self,
        token: str,
        page_token: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> dict:
        """Fetch one page of records; returns the ``data`` object of the response."""
        params: dict[str, Any] = {"page_size": page_size or self.settings.feishu_page_size}
        if page_token:
            params["page_token"] = page_token
        url = RECORDS_PATH.format(
            app_token=self.settings.feishu_app_token,
            table_id=self.settings.feishu_table_id,
        )
        payload = await self._request(
            "GET",
            url,
            params=params,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=self.settings.feishu_request_timeout_seconds,
        )
        return payload.get("data") or {}
