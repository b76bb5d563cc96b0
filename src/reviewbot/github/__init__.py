"""GitHub integration module for reviewbot."""

from reviewbot.github.client import GitHubClient, GitHubClientError
from reviewbot.github.models import ChangedFile, PostedComment

__all__ = [
    "GitHubClient",
    "GitHubClientError",
    "ChangedFile",
    "PostedComment",
]
