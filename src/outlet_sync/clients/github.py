"""Publisher writing the markers CSV through the GitHub contents API."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

import httpx

from ..config import Settings, settings as default_settings
from ..errors import (
    PublishAuthorizationError,
    PublishConflictError,
    PublishError,
    PublishNotFoundError,
    PublishRateLimitError,
    TransportError,
)

logger = logging.getLogger(__name__)


class GitHubPublisher:
    """Reads the file revision (blob SHA) and writes conditioned on it."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = config or default_settings
        self.settings.require_github()
        self.owner = self.settings.github_repo_owner
        self.repo = self.settings.github_repo_name
        self.path = self.settings.github_file_path.strip("/")
        self.branch = self.settings.github_branch
        self._client = httpx.AsyncClient(
            base_url=self.settings.github_api_url,
            timeout=httpx.Timeout(self.settings.github_timeout_seconds, connect=10.0),
            headers={
                "Authorization": f"Bearer {self.settings.github_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubPublisher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def repo_slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def contents_url(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{self.path}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"GitHub network error: {exc}") from exc

    def _raise_for_status(self, response: httpx.Response) -> None:
        status_code = response.status_code
        if status_code < 400:
            return
        try:
            detail = str(response.json().get("message", ""))
        except (ValueError, AttributeError):
            detail = response.text[:200]

        if status_code == 401:
            raise PublishAuthorizationError(
                "GitHub authentication failed: check that GITHUB_TOKEN is valid", status_code
            )
        if status_code == 429 or (status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0"):
            raise PublishRateLimitError(f"GitHub rate limit exceeded: {detail}", status_code)
        if status_code == 403:
            raise PublishAuthorizationError(
                f"GitHub permission denied for {self.repo_slug}: the token lacks write access ({detail})",
                status_code,
            )
        if status_code == 404:
            raise PublishNotFoundError(
                f"GitHub repository or path not found: {self.repo_slug}/{self.path}", status_code
            )
        if status_code == 409 or (status_code == 422 and "sha" in detail.lower()):
            raise PublishConflictError(
                f"GitHub file {self.path} changed since its revision was read: {detail}", status_code
            )
        raise PublishError(f"GitHub API error {status_code}: {detail}", status_code)

    async def get_revision(self) -> Optional[str]:
        """Return the current blob SHA of the file, or ``None`` if it does not exist."""
        params = {"ref": self.branch} if self.branch else None
        response = await self._send("GET", self.contents_url, params=params)
        if response.status_code == 404:
            logger.info("File %s not found in %s; it will be created", self.path, self.repo_slug)
            return None
        self._raise_for_status(response)
        return response.json().get("sha")

    async def put_file(self, content: str, message: str, revision: Optional[str]) -> dict:
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if revision:
            body["sha"] = revision
        if self.branch:
            body["branch"] = self.branch
        response = await self._send("PUT", self.contents_url, json=body)
        self._raise_for_status(response)
        return response.json()

    async def publish(self, content: str, message: str) -> dict:
        """Create or overwrite the file, conditioned on the revision read first."""
        revision = await self.get_revision()
        logger.info(
            "Publishing %d characters to %s/%s (revision %s)",
            len(content),
            self.repo_slug,
            self.path,
            revision or "new file",
        )
        result = await self.put_file(content, message, revision)
        logger.info(
            "GitHub commit %s created",
            (result.get("commit") or {}).get("sha"),
        )
        return result

    async def check_repository(self) -> dict:
        response = await self._send("GET", f"/repos/{self.owner}/{self.repo}")
        self._raise_for_status(response)
        return response.json()
