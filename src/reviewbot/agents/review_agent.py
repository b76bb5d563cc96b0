"""Review agent: drives a pull request from pending to a terminal review status."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from reviewbot.agents.base import BaseAgent
from reviewbot.agents.comments import render_fallback_comment, render_review_comment
from reviewbot.agents.review_client import ReviewClient, ReviewOutcome, ReviewRequest
from reviewbot.errors import ConfigurationError, NotFoundError, ProviderError
from reviewbot.github.client import GitHubClientError
from reviewbot.github.models import ChangedFile, PostedComment
from reviewbot.llm.provider import LLMProvider
from reviewbot.store.models import (
    CodeReview,
    Installation,
    PullRequest,
    PullRequestStatus,
    Repository,
)


@dataclass
class _PRLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


# Runtime locks serializing review passes per PR
# Format: {pull_request_github_id: _PRLock}
_pr_locks: dict[int, _PRLock] = {}


@asynccontextmanager
async def pr_review_lock(pr_github_id: int):
    """Hold the lock guarding review passes for one PR.

    The entry is dropped once no pass holds or waits on it.
    """
    entry = _pr_locks.get(pr_github_id)
    if entry is None:
        entry = _pr_locks[pr_github_id] = _PRLock()
    entry.users += 1
    try:
        async with entry.lock:
            yield
    finally:
        entry.users -= 1
        if entry.users == 0:
            del _pr_locks[pr_github_id]


@dataclass
class ReviewResult:
    """Result of one review pass."""

    status: PullRequestStatus
    code_review_id: str | None = None
    comment_id: int | None = None
    degraded: bool = False
    skipped: bool = False
    error: str | None = None


class ReviewAgent(BaseAgent):
    """Agent that analyzes a PR with AI and posts the result as a comment."""

    # Score recorded when the AI pass could not run
    FALLBACK_SCORE = 50

    async def run(self, pull_request_id: str) -> ReviewResult:
        """Run one review pass.

        Args:
            pull_request_id: Store id of the pull request

        Returns:
            ReviewResult with the terminal status

        Raises:
            NotFoundError: If the PR, its repository or installation is unknown
        """
        pull_request = self.store.get_pull_request(pull_request_id)
        if pull_request is None:
            raise NotFoundError(f"Pull request {pull_request_id} not found")

        repository = self.store.get_repository(pull_request.repository_id)
        if repository is None:
            raise NotFoundError(f"Repository {pull_request.repository_id} not found")

        installation = self.store.get_installation(repository.installation_id)
        if installation is None:
            raise NotFoundError(f"Installation {repository.installation_id} not found")

        if installation.suspended:
            self._log_warning(
                f"Installation {installation.github_installation_id} is suspended, "
                f"skipping review of {repository.full_name}#{pull_request.number}"
            )
            return ReviewResult(status=pull_request.status, skipped=True)

        async with pr_review_lock(pull_request.github_id):
            self._set_status(pull_request, PullRequestStatus.ANALYZING)
            try:
                return await self._review(pull_request, repository, installation)
            except Exception:
                self._set_status(pull_request, PullRequestStatus.ERROR)
                raise

    async def _review(
        self,
        pull_request: PullRequest,
        repository: Repository,
        installation: Installation,
    ) -> ReviewResult:
        self._log_info(f"Reviewing {repository.full_name}#{pull_request.number}")

        files: list[ChangedFile] | None = None
        try:
            files = await asyncio.to_thread(self.github.list_changed_files, pull_request.number)
            diff = await asyncio.to_thread(self.github.get_pr_diff, pull_request.number)
            provider = self._resolve_provider(installation)

            client = ReviewClient(
                provider,
                max_attempts=self.settings.review_max_attempts,
                retry_delay=self.settings.review_retry_delay,
                max_diff_chars=self.settings.max_diff_chars,
            )
            outcome = await client.review(
                ReviewRequest(
                    title=pull_request.title,
                    body=pull_request.body,
                    diff=diff,
                    files=files,
                )
            )
        except ConfigurationError as e:
            self._log_warning(f"AI not configured for {repository.full_name}: {e}")
            return await self._post_fallback(pull_request, files, "AI review is not configured for this account.", e)
        except ProviderError as e:
            self._log_error(f"AI review failed for {repository.full_name}#{pull_request.number}: {e}")
            return await self._post_fallback(pull_request, files, "The AI provider did not return a usable review.", e)
        except GitHubClientError as e:
            self._log_error(f"Could not fetch changes of {repository.full_name}#{pull_request.number}: {e}")
            return await self._post_fallback(pull_request, files, "The pull request changes could not be fetched.", e)

        return await self._post_review(pull_request, outcome)

    def _resolve_provider(self, installation: Installation) -> LLMProvider:
        """Resolve the AI provider of the account owning the installation."""
        user = self.store.get_user_by_github_id(installation.account_id)
        if user is None:
            raise ConfigurationError(
                f"No user linked to account {installation.account_login} ({installation.account_id})"
            )
        config = self.store.get_ai_configuration(user.id)
        return self.context.provider_factory(config, self.settings)

    async def _post_review(self, pull_request: PullRequest, outcome: ReviewOutcome) -> ReviewResult:
        review = CodeReview(
            pull_request_id=pull_request.id,
            summary=outcome.summary,
            overall_score=outcome.overall_score,
            findings=outcome.findings,
        )
        comment = await self._publish(pull_request, review, render_review_comment(pull_request, outcome))
        self._set_status(pull_request, PullRequestStatus.COMPLETED)

        self._log_info(
            f"Review completed for PR #{pull_request.number}: "
            f"score={outcome.overall_score}, findings={len(outcome.findings)}"
        )
        return ReviewResult(
            status=PullRequestStatus.COMPLETED,
            code_review_id=review.id,
            comment_id=comment.id,
        )

    async def _post_fallback(
        self,
        pull_request: PullRequest,
        files: list[ChangedFile] | None,
        reason: str,
        error: Exception,
    ) -> ReviewResult:
        review = CodeReview(
            pull_request_id=pull_request.id,
            summary=f"AI review unavailable for PR #{pull_request.number}: {pull_request.title}",
            overall_score=self.FALLBACK_SCORE,
        )
        body = render_fallback_comment(
            pull_request,
            files_changed=len(files) if files is not None else None,
            reason=reason,
        )
        comment = await self._publish(pull_request, review, body)
        self._set_status(pull_request, PullRequestStatus.ERROR)

        self._log_info(f"Fallback comment posted for PR #{pull_request.number}")
        return ReviewResult(
            status=PullRequestStatus.ERROR,
            code_review_id=review.id,
            comment_id=comment.id,
            degraded=True,
            error=str(error),
        )

    async def _publish(self, pull_request: PullRequest, review: CodeReview, body: str) -> PostedComment:
        """Store the review, then post its comment.

        The review is written before anything becomes public. If posting
        fails the stored review is removed again and the error propagates.
        """
        self.store.add_code_review(review)
        try:
            comment = await asyncio.to_thread(self.github.post_comment, pull_request.number, body)
        except Exception:
            self._log_error(f"Could not post review comment on PR #{pull_request.number}")
            self.store.delete_code_review(review.id)
            review.id = None
            raise

        review.github_comment_id = comment.id
        self.store.attach_review_comment(review.id, comment.id)
        return comment

    def _set_status(self, pull_request: PullRequest, status: PullRequestStatus) -> None:
        self.store.set_pull_request_status(pull_request.id, status)
        pull_request.status = status
        self._log_debug(f"PR #{pull_request.number} -> {status.value}")
