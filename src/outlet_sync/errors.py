"""Exception hierarchy for sync runs."""

from __future__ import annotations

from typing import Optional, Sequence


class SyncError(Exception):
    """Base class for every run-level failure."""


class ConfigurationError(SyncError):
    """Required configuration is absent; raised before any network call."""

    def __init__(self, service: str, missing: Sequence[str]) -> None:
        self.service = service
        self.missing = list(missing)
        super().__init__(
            f"{service} configuration incomplete: missing {', '.join(self.missing)}"
        )


class UpstreamServiceError(SyncError):
    """The bitable service answered with an error code."""

    def __init__(self, code: object, message: str, status_code: Optional[int] = None) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        prefix = f"HTTP {status_code}, " if status_code is not None else ""
        super().__init__(f"Feishu API error ({prefix}code: {code}): {message}")

    @property
    def retryable(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


class TransportError(SyncError):
    """Network failure or timeout; no response was received."""


class PublishError(SyncError):
    """The remote file store rejected the write."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PublishAuthorizationError(PublishError):
    pass


class PublishNotFoundError(PublishError):
    pass


class PublishConflictError(PublishError):
    pass


class PublishRateLimitError(PublishError):
    pass


class SyncInProgressError(SyncError):
    """A sync run is already in flight."""

    def __init__(self) -> None:
        super().__init__("A sync run is already in progress")
