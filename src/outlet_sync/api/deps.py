"""Request dependencies shared by the route modules."""

from __future__ import annotations

from fastapi import Request

from ..persistence.filesystem import FileStorage
from ..services.sync import SyncOrchestrator


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_storage(request: Request) -> FileStorage:
    return get_orchestrator(request).context.storage()
