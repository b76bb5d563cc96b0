"""Prompt and comment templates for the review pipeline."""

# =============================================================================
# REVIEW PROMPT
# =============================================================================

REVIEW_SYSTEM_PROMPT = """You are an expert code reviewer. Analyze code changes and provide structured feedback.

Rules:
1. Fill in ALL required fields: summary, overall_score, findings, suggestions
2. overall_score is a number from 0 to 100
3. Each finding has a type ('issue', 'improvement' or 'praise') and a severity ('low', 'medium' or 'high')
4. Do not use markdown formatting or code blocks in field values
5. When mentioning code elements, use single quotes instead of backticks"""


REVIEW_PROMPT = """Analyze this pull request and provide a comprehensive review focusing on code quality, security, performance, and best practices.

**Pull Request Details:**
Title: {title}
{description}

**Files Changed:**
{files}

**Diff Content:**
{diff}

Focus on the most impactful feedback:
- Potential bugs or security issues
- Performance considerations
- Maintainability and readability
- Architecture and design patterns

Be constructive and specific. Attach a file path and line number to findings whenever possible."""


# =============================================================================
# PR COMMENTS
# =============================================================================

COMMENT_HEADER = "## 🤖 AI Code Review"

COMMENT_FOOTER = "*This is an automated review. Findings may be incomplete or wrong.*"

FALLBACK_COMMENT = """## 🤖 AI Code Review

⚠️ AI review was unavailable for this pull request, so no automated analysis was performed.

**PR Summary:**
- **Title:** {title}
- **Author:** @{author}
- **Branch:** {head_ref} → {base_ref}
- **Files changed:** {files_changed}

{reason}

*The review will run again when new commits are pushed.*"""
