"""Abstract document store interface.

Backends implement a small set of document primitives (insert, get, patch,
replace, delete, query). The typed lookups the webhook handlers and agents
use are built on top of those primitives here, so every backend gets them
for free.
"""

from abc import ABC, abstractmethod
from typing import Any

from reviewbot.store.models import (
    AI_CONFIGURATIONS,
    CODE_REVIEWS,
    INSTALLATIONS,
    PULL_REQUESTS,
    REPOSITORIES,
    USERS,
    AIConfiguration,
    CodeReview,
    Installation,
    PullRequest,
    PullRequestStatus,
    Repository,
    User,
    utcnow,
)


# Fields each backend is expected to look up efficiently.
INDEXED_FIELDS = (
    "github_id",
    "github_installation_id",
    "installation_id",
    "repository_id",
    "pull_request_id",
    "user_id",
    "account_id",
)


class DocumentStore(ABC):
    """Pluggable persistence layer for installations, repositories and reviews."""

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def insert(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a document and return its generated id."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return the document with ``doc_id`` (including ``id``) or None."""

    @abstractmethod
    def patch(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Shallow-merge ``fields`` into an existing document."""

    @abstractmethod
    def replace(self, collection: str, doc_id: str, document: dict[str, Any]) -> None:
        """Overwrite an existing document, keeping its id."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is a no-op."""

    @abstractmethod
    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        """Return every document whose ``field`` equals ``value``."""

    def first(self, collection: str, field: str, value: Any) -> dict[str, Any] | None:
        """Return the first document matching ``field == value``, or None."""
        results = self.query(collection, field, value)
        return results[0] if results else None

    def close(self) -> None:
        """Release any resources held by the store."""

    # ------------------------------------------------------------------
    # Installations
    # ------------------------------------------------------------------

    def get_installation(self, installation_id: str) -> Installation | None:
        doc = self.get(INSTALLATIONS, installation_id)
        return Installation.from_dict(doc) if doc else None

    def get_installation_by_github_id(self, github_installation_id: int) -> Installation | None:
        doc = self.first(INSTALLATIONS, "github_installation_id", github_installation_id)
        return Installation.from_dict(doc) if doc else None

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def get_repository(self, repository_id: str) -> Repository | None:
        doc = self.get(REPOSITORIES, repository_id)
        return Repository.from_dict(doc) if doc else None

    def get_repository_by_github_id(self, github_id: int) -> Repository | None:
        doc = self.first(REPOSITORIES, "github_id", github_id)
        return Repository.from_dict(doc) if doc else None

    def list_repositories(self, installation_id: str) -> list[Repository]:
        return [
            Repository.from_dict(doc)
            for doc in self.query(REPOSITORIES, "installation_id", installation_id)
        ]

    # ------------------------------------------------------------------
    # Pull requests and reviews
    # ------------------------------------------------------------------

    def get_pull_request(self, pull_request_id: str) -> PullRequest | None:
        doc = self.get(PULL_REQUESTS, pull_request_id)
        return PullRequest.from_dict(doc) if doc else None

    def get_pull_request_by_github_id(self, github_id: int) -> PullRequest | None:
        doc = self.first(PULL_REQUESTS, "github_id", github_id)
        return PullRequest.from_dict(doc) if doc else None

    def list_pull_requests(self, repository_id: str) -> list[PullRequest]:
        return [
            PullRequest.from_dict(doc)
            for doc in self.query(PULL_REQUESTS, "repository_id", repository_id)
        ]

    def set_pull_request_status(self, pull_request_id: str, status: PullRequestStatus) -> None:
        """Persist a status transition together with ``updated_at``."""
        self.patch(
            PULL_REQUESTS,
            pull_request_id,
            {"status": status.value, "updated_at": utcnow().isoformat()},
        )

    def list_code_reviews(self, pull_request_id: str) -> list[CodeReview]:
        """Return the reviews of a pull request, oldest first."""
        reviews = [
            CodeReview.from_dict(doc)
            for doc in self.query(CODE_REVIEWS, "pull_request_id", pull_request_id)
        ]
        return sorted(reviews, key=lambda r: r.completed_at)

    def add_code_review(self, review: CodeReview) -> str:
        review.id = self.insert(CODE_REVIEWS, review.to_dict())
        return review.id

    def attach_review_comment(self, review_id: str, comment_id: int) -> None:
        """Link a stored review to the PR comment that published it."""
        self.patch(CODE_REVIEWS, review_id, {"github_comment_id": comment_id})

    def delete_code_review(self, review_id: str) -> None:
        self.delete(CODE_REVIEWS, review_id)

    # ------------------------------------------------------------------
    # Users and AI configuration
    # ------------------------------------------------------------------

    def get_user_by_github_id(self, github_id: int) -> User | None:
        doc = self.first(USERS, "github_id", github_id)
        return User.from_dict(doc) if doc else None

    def get_ai_configuration(self, user_id: str) -> AIConfiguration | None:
        doc = self.first(AI_CONFIGURATIONS, "user_id", user_id)
        return AIConfiguration.from_dict(doc) if doc else None
