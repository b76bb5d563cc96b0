"""Unit tests for the AI review client."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from reviewbot.agents.review_client import (
    ReviewClient,
    ReviewRequest,
    build_review_prompt,
    clamp_score,
    normalize_output,
)
from reviewbot.errors import ProviderError, SchemaError
from reviewbot.github.models import ChangedFile
from reviewbot.llm.schemas import CodeReviewOutput, ReviewFinding


@pytest.fixture
def provider():
    """Mock LLM provider."""
    provider = MagicMock()
    provider.provider_name = "openrouter"
    provider.model_name = "test-model"
    provider.complete_structured = AsyncMock()
    return provider


@pytest.fixture
def request_data():
    """Sample review request."""
    return ReviewRequest(
        title="Add greeting endpoint",
        body="Adds GET /hello",
        diff="+def hello(): pass\n",
        files=[ChangedFile(filename="app/hello.py", additions=3, deletions=1)],
    )


def _output(**kwargs) -> CodeReviewOutput:
    data = {"summary": "Solid change", "overall_score": 85}
    data.update(kwargs)
    return CodeReviewOutput(**data)


class TestBuildPrompt:
    """Tests for prompt construction."""

    def test_includes_title_body_files_and_diff(self, request_data):
        """Test that every input ends up in the prompt."""
        prompt = build_review_prompt(request_data)

        assert "Add greeting endpoint" in prompt
        assert "Description: Adds GET /hello" in prompt
        assert "- app/hello.py (+3/-1)" in prompt
        assert "+def hello(): pass" in prompt

    def test_truncates_long_diff(self, request_data):
        """Test the diff size limit."""
        request_data.diff = "x" * 100

        prompt = build_review_prompt(request_data, max_diff_chars=10)

        assert "x" * 11 not in prompt
        assert "(diff truncated)" in prompt


class TestNormalizeOutput:
    """Tests for score clamping and finding validation."""

    @pytest.mark.parametrize("raw,expected", [(150, 100), (-20, 0), (73.5, 73.5)])
    def test_clamp_score(self, raw, expected):
        """Test clamping into [0, 100]."""
        assert clamp_score(raw) == expected

    def test_drops_invalid_findings(self):
        """Test that unknown types or severities are dropped."""
        outcome = normalize_output(
            _output(
                findings=[
                    ReviewFinding(type="issue", severity="high", message="SQL injection", file="db.py", line=4),
                    ReviewFinding(type="nitpick", severity="low", message="dropped"),
                    ReviewFinding(type="praise", severity="critical", message="dropped"),
                    ReviewFinding(type="Improvement", severity="Medium", message="Cache it"),
                ]
            )
        )

        assert [f.message for f in outcome.findings] == ["SQL injection", "Cache it"]
        assert outcome.findings[0].rule_id == "ai-issue"
        assert outcome.findings[0].category == "bug"
        assert outcome.findings[1].type == "improvement"
        assert outcome.findings[1].severity == "medium"

    def test_confidence_defaults_and_clamps(self):
        """Test confidence handling."""
        outcome = normalize_output(
            _output(
                findings=[
                    ReviewFinding(type="issue", severity="low", message="a"),
                    ReviewFinding(type="issue", severity="low", message="b", confidence=3),
                ]
            )
        )

        assert outcome.findings[0].confidence == 0.8
        assert outcome.findings[1].confidence == 1.0

    def test_missing_summary(self):
        """Test that an empty summary is an incomplete response."""
        with pytest.raises(SchemaError):
            normalize_output(_output(summary="  "))

    def test_missing_score(self):
        """Test that a missing score is an incomplete response."""
        with pytest.raises(SchemaError):
            normalize_output(_output(overall_score=None))


class TestReviewClient:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, provider, request_data):
        """Test a clean first attempt."""
        provider.complete_structured.return_value = _output(overall_score=150)

        with patch("reviewbot.agents.review_client.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            outcome = await ReviewClient(provider).review(request_data)

        assert outcome.overall_score == 100
        assert outcome.summary == "Solid change"
        provider.complete_structured.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_incomplete_response(self, provider, request_data):
        """Test that an incomplete first response is retried after 1s."""
        provider.complete_structured.side_effect = [_output(summary=""), _output()]

        with patch("reviewbot.agents.review_client.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            outcome = await ReviewClient(provider, max_attempts=2, retry_delay=1.0).review(request_data)

        assert outcome.overall_score == 85
        assert provider.complete_structured.await_count == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_exhausted_incomplete_raises_schema_error(self, provider, request_data):
        """Test that two incomplete responses raise SchemaError."""
        provider.complete_structured.return_value = _output(overall_score=None)

        with patch("reviewbot.agents.review_client.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(SchemaError):
                await ReviewClient(provider).review(request_data)

        assert provider.complete_structured.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_errors_raise_provider_error(self, provider, request_data):
        """Test that transport failures surface as ProviderError."""
        provider.complete_structured.side_effect = RuntimeError("connection reset")

        with patch("reviewbot.agents.review_client.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ProviderError) as exc_info:
                await ReviewClient(provider).review(request_data)

        assert not isinstance(exc_info.value, SchemaError)
        assert "connection reset" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_none_output_is_incomplete(self, provider, request_data):
        """Test that a missing structured object is retried."""
        provider.complete_structured.side_effect = [None, _output()]

        with patch("reviewbot.agents.review_client.asyncio.sleep", new=AsyncMock()):
            outcome = await ReviewClient(provider).review(request_data)

        assert outcome.summary == "Solid change"
