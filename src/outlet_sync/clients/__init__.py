"""Remote service clients."""

from .feishu import FeishuClient
from .github import GitHubPublisher

__all__ = ["FeishuClient", "GitHubPublisher"]
