"""Feishu bitable to GitHub CSV sync service for outlet map markers."""

__version__ = "3.0.0"
