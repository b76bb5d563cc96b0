"""Shared FastAPI dependencies."""

from functools import lru_cache

from reviewbot.server.config import get_settings
from reviewbot.store import DocumentStore, create_store


@lru_cache
def get_store() -> DocumentStore:
    """Get the process-wide document store."""
    settings = get_settings()
    return create_store(settings.store_backend, settings.store_path)


def close_store() -> None:
    """Close the process-wide store if it was opened."""
    if get_store.cache_info().currsize:
        get_store().close()
        get_store.cache_clear()
