"""Base agent class."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import Any, Callable

from reviewbot.github.client import GitHubClient
from reviewbot.llm.factory import get_provider
from reviewbot.llm.provider import LLMProvider
from reviewbot.server.config import Settings, get_settings
from reviewbot.store.base import DocumentStore
from reviewbot.store.models import AIConfiguration


@dataclass
class AgentContext:
    """Context passed to agents for processing."""

    github_client: GitHubClient
    store: DocumentStore
    settings: Settings = field(default_factory=get_settings)
    provider_factory: Callable[[AIConfiguration | None, Settings], LLMProvider] = get_provider


class BaseAgent(ABC):
    """Base class for all agents."""

    def __init__(self, context: AgentContext):
        """Initialize the agent.

        Args:
            context: Agent context with clients and configuration
        """
        self.context = context
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def github(self) -> GitHubClient:
        """Get the GitHub client."""
        return self.context.github_client

    @property
    def store(self) -> DocumentStore:
        """Get the document store."""
        return self.context.store

    @property
    def settings(self) -> Settings:
        return self.context.settings

    @abstractmethod
    async def run(self, *args: Any, **kwargs: Any) -> Any:
        """Execute the agent's main task."""

    def _log_info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def _log_error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def _log_warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def _log_debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)
