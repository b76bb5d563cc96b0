"""Data models for GitHub entities."""

from dataclasses import dataclass


@dataclass
class ChangedFile:
    """A file changed by a pull request."""

    filename: str
    additions: int = 0
    deletions: int = 0
    patch: str | None = None
    status: str = "modified"  # "added", "modified", "removed", "renamed"


@dataclass
class PostedComment:
    """A comment created on an issue or pull request."""

    id: int
    url: str = ""
