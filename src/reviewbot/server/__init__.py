"""reviewbot webhook server for GitHub App integration."""

from reviewbot.server.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
