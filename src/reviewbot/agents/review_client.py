"""AI review client: prompt building, structured generation, retries and validation."""

import asyncio
import logging
from dataclasses import dataclass, field

from reviewbot.errors import ProviderError, SchemaError
from reviewbot.github.models import ChangedFile
from reviewbot.llm.provider import LLMProvider, Message
from reviewbot.llm.schemas import CodeReviewOutput, ReviewFinding
from reviewbot.prompts import REVIEW_PROMPT, REVIEW_SYSTEM_PROMPT
from reviewbot.store.models import Finding


logger = logging.getLogger(__name__)

FINDING_TYPES = ("issue", "improvement", "praise")
SEVERITIES = ("low", "medium", "high")
CATEGORIES = ("bug", "security", "style", "performance")

_DEFAULT_CATEGORY = {
    "issue": "bug",
    "improvement": "style",
    "praise": "style",
}

DEFAULT_CONFIDENCE = 0.8


@dataclass
class ReviewRequest:
    """Inputs of one AI review."""

    title: str
    diff: str
    files: list[ChangedFile] = field(default_factory=list)
    body: str | None = None


@dataclass
class ReviewOutcome:
    """Validated result of one AI review."""

    summary: str
    overall_score: float
    findings: list[Finding] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


def build_review_prompt(request: ReviewRequest, max_diff_chars: int | None = None) -> str:
    """Build the user prompt for a review.

    Args:
        request: Review inputs
        max_diff_chars: Truncate the diff beyond this many characters

    Returns:
        Prompt text
    """
    diff = request.diff
    if max_diff_chars and len(diff) > max_diff_chars:
        diff = diff[:max_diff_chars] + "\n... (diff truncated)"

    files = "\n".join(
        f"- {f.filename} (+{f.additions}/-{f.deletions})" for f in request.files
    )

    return REVIEW_PROMPT.format(
        title=request.title,
        description=f"Description: {request.body}" if request.body else "",
        files=files or "- (no files reported)",
        diff=diff,
    )


def clamp_score(score: float) -> float:
    """Clamp a score into [0, 100]."""
    return max(0.0, min(100.0, float(score)))


def _normalize_finding(finding: ReviewFinding) -> Finding | None:
    """Convert an AI finding into a stored finding, or None if it is invalid."""
    finding_type = (finding.type or "").strip().lower()
    severity = (finding.severity or "").strip().lower()
    if finding_type not in FINDING_TYPES or severity not in SEVERITIES:
        return None

    category = (finding.category or "").strip().lower()
    if category not in CATEGORIES:
        category = _DEFAULT_CATEGORY[finding_type]

    confidence = DEFAULT_CONFIDENCE
    if finding.confidence is not None:
        confidence = max(0.0, min(1.0, finding.confidence))

    return Finding(
        file=finding.file or "",
        line=finding.line,
        end_line=finding.end_line,
        severity=severity,
        category=category,
        rule_id=f"ai-{finding_type}",
        message=finding.message,
        suggestion=finding.suggestion,
        confidence=confidence,
        type=finding_type,
    )


def normalize_output(output: CodeReviewOutput) -> ReviewOutcome:
    """Clamp the score and drop findings with an unknown type or severity.

    Raises:
        SchemaError: If the summary is empty or the score is missing
    """
    if not output.summary or not output.summary.strip():
        raise SchemaError("Incomplete response: missing summary")
    if output.overall_score is None:
        raise SchemaError("Incomplete response: missing or non-numeric overall score")

    findings = []
    for raw in output.findings:
        finding = _normalize_finding(raw)
        if finding is None:
            logger.debug(f"Dropping finding with type={raw.type!r} severity={raw.severity!r}")
            continue
        findings.append(finding)

    return ReviewOutcome(
        summary=output.summary.strip(),
        overall_score=clamp_score(output.overall_score),
        findings=findings,
        suggestions=[s for s in output.suggestions if s and s.strip()],
    )


class ReviewClient:
    """Runs a structured AI review with linear-backoff retries."""

    def __init__(
        self,
        provider: LLMProvider,
        max_attempts: int = 2,
        retry_delay: float = 1.0,
        max_diff_chars: int | None = None,
    ):
        """Initialize the client.

        Args:
            provider: Configured LLM provider
            max_attempts: Total attempts before giving up
            retry_delay: Base delay; attempt N waits N * retry_delay seconds
            max_diff_chars: Diff size limit for the prompt
        """
        self.provider = provider
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.max_diff_chars = max_diff_chars

    async def review(self, request: ReviewRequest) -> ReviewOutcome:
        """Review a pull request.

        Args:
            request: Review inputs

        Returns:
            Validated ReviewOutcome

        Raises:
            SchemaError: If the last attempt returned an incomplete response
            ProviderError: If every attempt failed for any other reason
        """
        messages = [
            Message(role="system", content=REVIEW_SYSTEM_PROMPT),
            Message(role="user", content=build_review_prompt(request, self.max_diff_chars)),
        ]

        logger.info(
            f"Generating AI review with {self.provider.provider_name}/{self.provider.model_name} "
            f"(diff={len(request.diff)} chars, files={len(request.files)})"
        )

        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                output = await self.provider.complete_structured(messages, CodeReviewOutput)
                if output is None:
                    raise SchemaError("Provider returned no structured object")
                outcome = normalize_output(output)
                logger.info(
                    f"AI review generated on attempt {attempt}: score={outcome.overall_score}, "
                    f"findings={len(outcome.findings)}, suggestions={len(outcome.suggestions)}"
                )
                return outcome
            except Exception as e:
                last_error = e
                logger.warning(f"AI generation attempt {attempt}/{self.max_attempts} failed: {e}")

                if attempt == self.max_attempts:
                    break

                await asyncio.sleep(self.retry_delay * attempt)

        if isinstance(last_error, SchemaError):
            raise last_error
        raise ProviderError(f"AI code review failed: {last_error}") from last_error
