"""Route group exports."""

from . import debug, health, markers, status, sync

__all__ = ["health", "sync", "status", "markers", "debug"]
