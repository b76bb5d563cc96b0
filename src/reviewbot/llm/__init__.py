"""LLM abstraction layer for reviewbot using LangChain."""

from reviewbot.llm.provider import LLMProvider, Message
from reviewbot.llm.factory import PROVIDER_BUILDERS, get_provider
from reviewbot.llm.schemas import CodeReviewOutput, ReviewFinding

__all__ = [
    # Provider
    "LLMProvider",
    "Message",
    # Factory
    "PROVIDER_BUILDERS",
    "get_provider",
    # Schemas
    "CodeReviewOutput",
    "ReviewFinding",
]
