"""Render review results as GitHub PR comments."""

from reviewbot.agents.review_client import ReviewOutcome
from reviewbot.prompts import COMMENT_FOOTER, COMMENT_HEADER, FALLBACK_COMMENT
from reviewbot.store.models import Finding, PullRequest

_SEV_LABEL = {
    "high": "🔴 High",
    "medium": "🟡 Medium",
    "low": "🟢 Low",
}

_SECTIONS = (
    ("issue", "### 🐛 Issues"),
    ("improvement", "### 💡 Improvements"),
    ("praise", "### ✅ Praise"),
)


def _score_badge(score: float) -> str:
    if score >= 80:
        return "🟢"
    if score >= 50:
        return "🟡"
    return "🔴"


def _location(finding: Finding) -> str:
    if not finding.file:
        return ""
    if finding.line and finding.end_line and finding.end_line != finding.line:
        return f"`{finding.file}:{finding.line}-{finding.end_line}` "
    if finding.line:
        return f"`{finding.file}:{finding.line}` "
    return f"`{finding.file}` "


def _render_finding(finding: Finding) -> list[str]:
    sev = _SEV_LABEL.get(finding.severity, finding.severity.capitalize())
    lines = [f"- {_location(finding)}_{sev}_: {finding.message}"]
    if finding.suggestion:
        lines.append(f"  > **Suggestion**: {finding.suggestion}")
    return lines


def render_review_comment(pull_request: PullRequest, outcome: ReviewOutcome) -> str:
    """Format a successful review, grouping findings by type."""
    parts: list[str] = [COMMENT_HEADER, ""]

    score = round(outcome.overall_score)
    parts.append(f"**Overall score:** {_score_badge(outcome.overall_score)} {score}/100")
    parts.append("")
    parts.append(f"**Summary:** {outcome.summary}")
    parts.append("")

    for finding_type, heading in _SECTIONS:
        group = [f for f in outcome.findings if f.type == finding_type]
        if not group:
            continue
        parts.append(heading)
        parts.append("")
        for finding in group:
            parts.extend(_render_finding(finding))
        parts.append("")

    if outcome.suggestions:
        parts.append("### 📝 Suggestions")
        parts.append("")
        for suggestion in outcome.suggestions:
            parts.append(f"- {suggestion}")
        parts.append("")

    if not outcome.findings and not outcome.suggestions:
        parts.append("No findings. 🎉")
        parts.append("")

    parts.append("---")
    parts.append(f"PR #{pull_request.number} · `{pull_request.head_sha[:7]}`")
    parts.append("")
    parts.append(COMMENT_FOOTER)

    return "\n".join(parts)


def render_fallback_comment(
    pull_request: PullRequest,
    files_changed: int | None = None,
    reason: str | None = None,
) -> str:
    """Format the comment posted when the AI review could not complete."""
    return FALLBACK_COMMENT.format(
        title=pull_request.title,
        author=pull_request.author,
        head_ref=pull_request.head_ref,
        base_ref=pull_request.base_ref,
        files_changed=files_changed if files_changed is not None else "unknown",
        reason=f"**Reason:** {reason}" if reason else "",
    )
