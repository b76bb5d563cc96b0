"""Pydantic schemas for structured LLM outputs."""

from pydantic import BaseModel, Field


class ReviewFinding(BaseModel):
    """A single finding produced by the AI review."""

    type: str = Field(description="Type of finding: 'issue', 'improvement', or 'praise'")
    severity: str = Field(description="Severity level: 'low', 'medium', or 'high'")
    message: str = Field(description="Detailed explanation of the finding")
    file: str | None = Field(
        default=None,
        description="File path where the finding was detected (optional)",
    )
    line: int | None = Field(
        default=None,
        description="Line number where the finding was detected (optional)",
    )
    end_line: int | None = Field(
        default=None,
        description="Last line of the affected range (optional)",
    )
    category: str | None = Field(
        default=None,
        description="Category: 'bug', 'security', 'style', or 'performance' (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Concrete fix for the finding (optional)",
    )
    confidence: float | None = Field(
        default=None,
        description="Confidence in the finding from 0 to 1 (optional)",
    )


class CodeReviewOutput(BaseModel):
    """Structured code review output."""

    summary: str = Field(
        default="",
        description="Brief overall summary of the changes and code quality",
    )
    overall_score: float | None = Field(
        default=None,
        description="Overall code quality score from 0 to 100",
    )
    findings: list[ReviewFinding] = Field(
        default_factory=list,
        description="Detailed findings from the code review",
    )
    suggestions: list[str] = Field(
        default_factory=list,
        description="List of actionable suggestions for improvement",
    )
