"""Review agents for reviewbot with LangChain integration."""

from reviewbot.agents.base import BaseAgent, AgentContext
from reviewbot.agents.review_agent import ReviewAgent, ReviewResult
from reviewbot.agents.review_client import (
    ReviewClient,
    ReviewOutcome,
    ReviewRequest,
    build_review_prompt,
)
from reviewbot.agents.comments import render_fallback_comment, render_review_comment

__all__ = [
    # Base
    "BaseAgent",
    "AgentContext",
    # Review Agent
    "ReviewAgent",
    "ReviewResult",
    # AI review client
    "ReviewClient",
    "ReviewOutcome",
    "ReviewRequest",
    "build_review_prompt",
    # Comments
    "render_fallback_comment",
    "render_review_comment",
]
