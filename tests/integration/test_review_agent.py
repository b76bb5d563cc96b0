"""Integration tests for the review agent and the end-to-end webhook flow."""

import asyncio
import threading

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from reviewbot.agents import AgentContext, ReviewAgent
from reviewbot.agents.review_agent import _pr_locks
from reviewbot.errors import ConfigurationError, NotFoundError
from reviewbot.github.client import GitHubClientError
from reviewbot.github.models import PostedComment
from reviewbot.llm.provider import LLMProvider
from reviewbot.llm.schemas import CodeReviewOutput, ReviewFinding
from reviewbot.server.installations import save_installation
from reviewbot.server.pull_requests import PullRequestFields, ingest_pull_request
from reviewbot.store import AIConfiguration, PullRequestStatus, User
from reviewbot.store.models import AI_CONFIGURATIONS, CODE_REVIEWS, PULL_REQUESTS, USERS


@pytest.fixture(autouse=True)
def reset_pr_locks():
    """Drop locks bound to a previous test's event loop."""
    _pr_locks.clear()
    yield
    _pr_locks.clear()


@pytest.fixture
def review_output():
    """A complete structured review."""
    return CodeReviewOutput(
        summary="Adds a small endpoint with tests.",
        overall_score=120,
        findings=[
            ReviewFinding(
                type="issue",
                severity="medium",
                message="Missing input validation",
                file="app/hello.py",
                line=2,
            ),
            ReviewFinding(type="praise", severity="low", message="Good test coverage"),
            ReviewFinding(type="rant", severity="low", message="dropped"),
        ],
        suggestions=["Validate query parameters"],
    )


@pytest.fixture
def mock_llm_provider(mock_llm_model, review_output):
    """LLM provider backed by a mock LangChain model."""
    mock_llm_model.ainvoke.return_value = review_output
    return LLMProvider(model=mock_llm_model, model_name="test-model", provider_name="openrouter")


@pytest.fixture
def seeded_store(store, make_installation_payload, make_pull_request_payload):
    """Store with installation, repository 42, PR 1001 and an AI configuration."""
    save_installation(store, make_installation_payload())
    user_id = store.insert(USERS, User(github_id=9001, username="octo").to_dict())
    store.insert(
        AI_CONFIGURATIONS,
        AIConfiguration(
            user_id=user_id, provider="openrouter", api_key="k", model="m"
        ).to_dict(),
    )
    ingest_pull_request(store, PullRequestFields.from_payload(make_pull_request_payload()))
    return store


def _agent(store, github, settings, provider=None, factory=None) -> ReviewAgent:
    if factory is None:
        factory = MagicMock(return_value=provider)
    return ReviewAgent(
        AgentContext(
            github_client=github,
            store=store,
            settings=settings,
            provider_factory=factory,
        )
    )


class TestReviewAgentSuccess:
    """Tests for the successful review path."""

    @pytest.mark.asyncio
    async def test_completes_and_records_review(
        self, seeded_store, mock_github_client, settings, mock_llm_provider
    ):
        """Test that a review is posted, recorded and completed."""
        pr = seeded_store.get_pull_request_by_github_id(1001)

        result = await _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(pr.id)

        assert result.status == PullRequestStatus.COMPLETED
        assert result.comment_id == 314
        assert result.degraded is False

        mock_github_client.post_comment.assert_called_once()
        number, body = mock_github_client.post_comment.call_args.args
        assert number == 7
        assert "100/100" in body
        assert "Missing input validation" in body

        reviews = seeded_store.list_code_reviews(pr.id)
        assert len(reviews) == 1
        assert reviews[0].overall_score == 100
        assert reviews[0].github_comment_id == 314
        assert [f.type for f in reviews[0].findings] == ["issue", "praise"]
        assert seeded_store.get_pull_request(pr.id).status == PullRequestStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_provider_resolved_from_account_configuration(
        self, seeded_store, mock_github_client, settings, mock_llm_provider
    ):
        """Test the installation -> user -> AI configuration chain."""
        factory = MagicMock(return_value=mock_llm_provider)
        pr = seeded_store.get_pull_request_by_github_id(1001)

        await _agent(seeded_store, mock_github_client, settings, factory=factory).run(pr.id)

        config, passed_settings = factory.call_args.args
        assert config.provider == "openrouter"
        assert passed_settings is settings

    @pytest.mark.asyncio
    async def test_status_is_analyzing_during_generation(
        self, seeded_store, mock_github_client, settings, mock_llm_model, review_output
    ):
        """Test the transition to analyzing before the AI call."""
        pr = seeded_store.get_pull_request_by_github_id(1001)
        seen = []

        async def capture(*args, **kwargs):
            seen.append(seeded_store.get_pull_request(pr.id).status)
            return review_output

        mock_llm_model.ainvoke.side_effect = capture
        provider = LLMProvider(model=mock_llm_model, model_name="test-model")

        await _agent(seeded_store, mock_github_client, settings, provider).run(pr.id)

        assert seen == [PullRequestStatus.ANALYZING]


class TestReviewAgentFallback:
    """Tests for the fallback path."""

    @pytest.mark.asyncio
    async def test_missing_ai_configuration(
        self, store, mock_github_client, settings, make_installation_payload, make_pull_request_payload
    ):
        """Test that an account without a user gets the fallback comment."""
        save_installation(store, make_installation_payload())
        pr = ingest_pull_request(
            store, PullRequestFields.from_payload(make_pull_request_payload())
        )
        factory = MagicMock(side_effect=AssertionError("factory must not be called"))

        result = await _agent(store, mock_github_client, settings, factory=factory).run(pr.id)

        assert result.status == PullRequestStatus.ERROR
        assert result.degraded is True
        body = mock_github_client.post_comment.call_args.args[1]
        assert "AI review was unavailable" in body
        assert "**Files changed:** 2" in body

        reviews = store.list_code_reviews(pr.id)
        assert len(reviews) == 1
        assert reviews[0].overall_score == 50
        assert store.get_pull_request(pr.id).status == PullRequestStatus.ERROR

    @pytest.mark.asyncio
    async def test_configuration_error_from_factory(
        self, seeded_store, mock_github_client, settings
    ):
        """Test that a factory ConfigurationError takes the fallback path."""
        factory = MagicMock(side_effect=ConfigurationError("Model is required"))
        pr = seeded_store.get_pull_request_by_github_id(1001)

        result = await _agent(seeded_store, mock_github_client, settings, factory=factory).run(pr.id)

        assert result.status == PullRequestStatus.ERROR
        assert len(seeded_store.list_code_reviews(pr.id)) == 1

    @pytest.mark.asyncio
    async def test_provider_failure_after_retries(
        self, seeded_store, mock_github_client, settings, mock_llm_model
    ):
        """Test that exhausted retries take the fallback path."""
        mock_llm_model.ainvoke.side_effect = RuntimeError("rate limited")
        provider = LLMProvider(model=mock_llm_model, model_name="test-model")
        pr = seeded_store.get_pull_request_by_github_id(1001)

        result = await _agent(seeded_store, mock_github_client, settings, provider).run(pr.id)

        assert mock_llm_model.ainvoke.await_count == 2
        assert result.status == PullRequestStatus.ERROR
        assert seeded_store.list_code_reviews(pr.id)[0].overall_score == 50

    @pytest.mark.asyncio
    async def test_diff_fetch_failure(
        self, seeded_store, mock_github_client, settings, mock_llm_provider
    ):
        """Test that a GitHub error while fetching the diff takes the fallback path."""
        mock_github_client.get_pr_diff.side_effect = GitHubClientError("502")
        pr = seeded_store.get_pull_request_by_github_id(1001)

        result = await _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(pr.id)

        assert result.status == PullRequestStatus.ERROR
        mock_github_client.post_comment.assert_called_once()


class TestReviewAgentErrors:
    """Tests for failures outside the AI path."""

    @pytest.mark.asyncio
    async def test_comment_post_failure_reraises(
        self, seeded_store, mock_github_client, settings, mock_llm_provider
    ):
        """Test that a failed post marks the PR as error and propagates."""
        mock_github_client.post_comment.side_effect = GitHubClientError("403")
        pr = seeded_store.get_pull_request_by_github_id(1001)

        with pytest.raises(GitHubClientError):
            await _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(pr.id)

        assert seeded_store.get_pull_request(pr.id).status == PullRequestStatus.ERROR
        assert seeded_store.list_code_reviews(pr.id) == []

    @pytest.mark.asyncio
    async def test_review_is_stored_before_comment(
        self, seeded_store, mock_github_client, settings, mock_llm_provider
    ):
        """Test that the record exists when the comment goes out."""
        pr = seeded_store.get_pull_request_by_github_id(1001)
        stored_at_post = []

        def post(number, body):
            stored_at_post.append(len(seeded_store.list_code_reviews(pr.id)))
            return PostedComment(id=271)

        mock_github_client.post_comment.side_effect = post

        await _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(pr.id)

        assert stored_at_post == [1]
        assert seeded_store.list_code_reviews(pr.id)[0].github_comment_id == 271

    @pytest.mark.asyncio
    async def test_unknown_pull_request(self, store, mock_github_client, settings):
        """Test that an unknown PR id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await _agent(store, mock_github_client, settings).run("missing")

    @pytest.mark.asyncio
    async def test_suspended_installation_is_skipped(
        self, seeded_store, mock_github_client, settings, mock_llm_provider
    ):
        """Test that no pass runs under a suspended installation."""
        installation = seeded_store.get_installation_by_github_id(555)
        seeded_store.patch("installations", installation.id, {"suspended": True})
        pr = seeded_store.get_pull_request_by_github_id(1001)

        result = await _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(pr.id)

        assert result.skipped is True
        mock_github_client.post_comment.assert_not_called()
        assert seeded_store.get_pull_request(pr.id).status == PullRequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_concurrent_passes_are_serialized(
        self, seeded_store, mock_github_client, settings, mock_llm_model, review_output
    ):
        """Test that two passes over one PR never overlap."""
        active = 0
        overlaps = []

        async def slow(*args, **kwargs):
            nonlocal active
            active += 1
            overlaps.append(active)
            await asyncio.sleep(0.01)
            active -= 1
            return review_output

        mock_llm_model.ainvoke.side_effect = slow
        provider = LLMProvider(model=mock_llm_model, model_name="test-model")
        pr = seeded_store.get_pull_request_by_github_id(1001)

        await asyncio.gather(
            _agent(seeded_store, mock_github_client, settings, provider).run(pr.id),
            _agent(seeded_store, mock_github_client, settings, provider).run(pr.id),
        )

        assert max(overlaps) == 1
        assert len(seeded_store.list_code_reviews(pr.id)) == 2
        assert _pr_locks == {}


class TestReviewAgentConcurrency:
    """Tests for passes over different PRs."""

    @pytest.mark.asyncio
    async def test_github_calls_do_not_block_the_event_loop(
        self,
        seeded_store,
        mock_github_client,
        settings,
        mock_llm_provider,
        make_pull_request_payload,
    ):
        """Test that two passes wait on GitHub at the same time."""
        ingest_pull_request(
            seeded_store,
            PullRequestFields.from_payload(make_pull_request_payload(pr_id=1002, number=8)),
        )
        files = mock_github_client.list_changed_files.return_value
        both_fetching = threading.Barrier(2, timeout=5)

        def list_changed_files(number):
            both_fetching.wait()
            return files

        mock_github_client.list_changed_files.side_effect = list_changed_files
        first = seeded_store.get_pull_request_by_github_id(1001)
        second = seeded_store.get_pull_request_by_github_id(1002)

        results = await asyncio.gather(
            _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(first.id),
            _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(second.id),
        )

        assert [r.status for r in results] == [PullRequestStatus.COMPLETED] * 2

    @pytest.mark.asyncio
    async def test_locks_released_after_passes(
        self,
        seeded_store,
        mock_github_client,
        settings,
        mock_llm_provider,
        make_pull_request_payload,
    ):
        """Test that finished passes leave no per-PR lock behind."""
        for pr_id in range(2000, 2020):
            ingest_pull_request(
                seeded_store,
                PullRequestFields.from_payload(
                    make_pull_request_payload(pr_id=pr_id, number=pr_id)
                ),
            )
            pr = seeded_store.get_pull_request_by_github_id(pr_id)
            await _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(pr.id)

        assert _pr_locks == {}

    @pytest.mark.asyncio
    async def test_lock_released_after_failed_pass(
        self, seeded_store, mock_github_client, settings, mock_llm_provider
    ):
        """Test that a pass ending in an exception also drops its lock."""
        mock_github_client.post_comment.side_effect = GitHubClientError("403")
        pr = seeded_store.get_pull_request_by_github_id(1001)

        with pytest.raises(GitHubClientError):
            await _agent(seeded_store, mock_github_client, settings, mock_llm_provider).run(pr.id)

        assert _pr_locks == {}


class TestWebhookFlow:
    """End-to-end delivery through the HTTP endpoint."""

    def test_installation_then_pull_request(
        self,
        store,
        settings,
        mock_github_client,
        mock_llm_provider,
        signed_request,
        make_installation_payload,
        make_pull_request_payload,
    ):
        """Test repository 42 / PR 1001 #7 yields one PR, one review and one comment."""
        from reviewbot.server.app import create_app
        from reviewbot.server.dependencies import get_store

        auth = MagicMock()
        auth.get_client = AsyncMock(return_value=mock_github_client)

        with patch("reviewbot.server.app.get_settings", return_value=settings), patch(
            "reviewbot.server.pull_requests.get_github_app_auth", return_value=auth
        ), patch.dict(
            "reviewbot.llm.factory.PROVIDER_BUILDERS",
            {"openrouter-free": lambda config, settings: mock_llm_provider},
        ):
            app = create_app()
            app.dependency_overrides[get_store] = lambda: store
            client = TestClient(app)

            response = client.post(
                "/github/webhook",
                **signed_request("installation", make_installation_payload()),
            )
            assert response.status_code == 200

            user_id = store.insert(USERS, User(github_id=9001, username="octo").to_dict())
            store.insert(
                AI_CONFIGURATIONS,
                AIConfiguration(user_id=user_id, provider="openrouter-free").to_dict(),
            )

            response = client.post(
                "/github/webhook",
                **signed_request("pull_request", make_pull_request_payload()),
            )

        assert response.status_code == 200
        assert response.json()["review_status"] == "completed"
        auth.get_client.assert_awaited_once_with(555, "octo/repo")

        assert store.count(PULL_REQUESTS) == 1
        assert store.count(CODE_REVIEWS) == 1
        mock_github_client.post_comment.assert_called_once()
        pr = store.get_pull_request_by_github_id(1001)
        assert pr.number == 7
        assert pr.status == PullRequestStatus.COMPLETED
