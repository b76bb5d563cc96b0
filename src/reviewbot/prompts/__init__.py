"""Prompt and comment templates for reviewbot."""

from reviewbot.prompts.templates import (
    COMMENT_FOOTER,
    COMMENT_HEADER,
    FALLBACK_COMMENT,
    REVIEW_PROMPT,
    REVIEW_SYSTEM_PROMPT,
)

__all__ = [
    "COMMENT_FOOTER",
    "COMMENT_HEADER",
    "FALLBACK_COMMENT",
    "REVIEW_PROMPT",
    "REVIEW_SYSTEM_PROMPT",
]
