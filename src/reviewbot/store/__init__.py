"""Document store for installations, repositories, pull requests and reviews."""

from reviewbot.store.base import DocumentStore
from reviewbot.store.memory import MemoryStore
from reviewbot.store.sqlite import SQLiteStore
from reviewbot.store.models import (
    AIConfiguration,
    CodeReview,
    Finding,
    Installation,
    Permissions,
    PullRequest,
    PullRequestStatus,
    Repository,
    RepositorySettings,
    User,
)

__all__ = [
    "DocumentStore",
    "MemoryStore",
    "SQLiteStore",
    "create_store",
    "AIConfiguration",
    "CodeReview",
    "Finding",
    "Installation",
    "Permissions",
    "PullRequest",
    "PullRequestStatus",
    "Repository",
    "RepositorySettings",
    "User",
]


def create_store(backend: str = "sqlite", path: str = "reviewbot.db") -> DocumentStore:
    """Create a store backend by name.

    Args:
        backend: 'sqlite' or 'memory'
        path: Database file path for the SQLite backend

    Returns:
        Configured DocumentStore
    """
    if backend == "memory":
        return MemoryStore()
    if backend == "sqlite":
        return SQLiteStore(db_path=path)
    raise ValueError(f"Unknown store backend: {backend}. Supported: 'sqlite', 'memory'")
