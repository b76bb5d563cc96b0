"""GitHub client wrapping PyGithub."""

import httpx
import requests
from github import Github, GithubException
from github.Repository import Repository

from reviewbot.github.models import ChangedFile, PostedComment


DEFAULT_API_URL = "https://api.github.com"


class GitHubClientError(Exception):
    """Raised when GitHub operations fail."""


class GitHubClient:
    """Installation-scoped GitHub client for one repository."""

    def __init__(
        self,
        token: str,
        repo_name: str | None = None,
        api_url: str = DEFAULT_API_URL,
    ):
        if not token:
            raise GitHubClientError("GitHub installation token is required.")

        self.token = token
        self.api_url = api_url.rstrip("/")
        self._github = Github(self.token, base_url=self.api_url)
        self._repo_name = repo_name
        self._repo: Repository | None = None

    # ------------------------------------------------------------------
    # Repository helpers
    # ------------------------------------------------------------------

    @property
    def repo(self) -> Repository:
        if self._repo is None:
            if not self._repo_name:
                raise GitHubClientError("Repository name not set.")
            try:
                self._repo = self._github.get_repo(self._repo_name)
            except (GithubException, requests.RequestException) as e:
                raise GitHubClientError(f"Failed to get repository: {e}") from e
        return self._repo

    @property
    def repo_name(self) -> str | None:
        return self._repo_name

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def get_pr_diff(self, pr_number: int) -> str:
        """Get the unified diff of a pull request.

        Args:
            pr_number: PR number

        Returns:
            Diff as string
        """
        if not self._repo_name:
            raise GitHubClientError("Repository name not set.")

        url = f"{self.api_url}/repos/{self._repo_name}/pulls/{pr_number}"
        try:
            response = httpx.get(
                url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github.diff",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=30.0,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise GitHubClientError(f"Failed to get diff for PR #{pr_number}: {e}") from e

        return response.text

    def list_changed_files(self, pr_number: int) -> list[ChangedFile]:
        """List the files changed by a pull request.

        Args:
            pr_number: PR number

        Returns:
            Changed files with their line counts and patches
        """
        try:
            pr = self.repo.get_pull(number=pr_number)
            return [
                ChangedFile(
                    filename=f.filename,
                    additions=f.additions,
                    deletions=f.deletions,
                    patch=f.patch,
                    status=f.status,
                )
                for f in pr.get_files()
            ]
        except (GithubException, requests.RequestException) as e:
            raise GitHubClientError(
                f"Failed to get files for PR #{pr_number}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def post_comment(self, issue_or_pr_number: int, body: str) -> PostedComment:
        """Create an issue comment on an issue or pull request.

        Returns:
            The created comment
        """
        try:
            issue = self.repo.get_issue(number=issue_or_pr_number)
            comment = issue.create_comment(body)
            return PostedComment(id=comment.id, url=comment.html_url)
        except (GithubException, requests.RequestException) as e:
            raise GitHubClientError(
                f"Failed to post comment on #{issue_or_pr_number}: {e}"
            ) from e
