"""Pull request ingestion and review triggering."""

import logging
from dataclasses import dataclass

from reviewbot.agents import AgentContext, ReviewAgent
from reviewbot.errors import NotFoundError, ValidationError
from reviewbot.server.github_app import get_github_app_auth
from reviewbot.store.base import DocumentStore
from reviewbot.store.models import PULL_REQUESTS, PullRequest, utcnow

logger = logging.getLogger(__name__)

# Actions that start a review pass
REVIEW_ACTIONS = ("opened", "synchronize", "reopened")


@dataclass
class PullRequestFields:
    """Pull request attributes extracted from a webhook payload."""

    github_id: int
    repository_github_id: int
    number: int
    title: str
    author: str
    author_id: int
    head_ref: str
    base_ref: str
    head_sha: str
    base_sha: str
    url: str
    body: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "PullRequestFields":
        """Extract the fields of a ``pull_request`` payload.

        Raises:
            ValidationError: If a required field is missing
        """
        pr = payload.get("pull_request")
        repo = payload.get("repository")
        if not pr or not repo:
            raise ValidationError("pull_request payload requires 'pull_request' and 'repository'")

        try:
            user = pr.get("user") or {}
            return cls(
                github_id=pr["id"],
                repository_github_id=repo["id"],
                number=pr["number"],
                title=pr.get("title") or "",
                body=pr.get("body"),
                author=user.get("login", ""),
                author_id=user.get("id", 0),
                head_ref=pr["head"]["ref"],
                base_ref=pr["base"]["ref"],
                head_sha=pr["head"]["sha"],
                base_sha=pr["base"]["sha"],
                url=pr.get("html_url", ""),
            )
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Missing field in pull_request payload: {e}") from e


def ingest_pull_request(store: DocumentStore, fields: PullRequestFields) -> PullRequest:
    """Create or refresh the stored pull request.

    New pull requests start as pending. Known ones get their mutable fields
    overwritten while status and created_at are kept.

    Raises:
        NotFoundError: If the repository is not synchronized yet
    """
    repository = store.get_repository_by_github_id(fields.repository_github_id)
    if repository is None:
        raise NotFoundError(f"Repository {fields.repository_github_id} not found")

    pull_request = PullRequest(
        github_id=fields.github_id,
        repository_id=repository.id,
        number=fields.number,
        title=fields.title,
        body=fields.body,
        author=fields.author,
        author_id=fields.author_id,
        head_ref=fields.head_ref,
        base_ref=fields.base_ref,
        head_sha=fields.head_sha,
        base_sha=fields.base_sha,
        url=fields.url,
    )

    existing = store.get_pull_request_by_github_id(fields.github_id)
    if existing is None:
        pull_request.id = store.insert(PULL_REQUESTS, pull_request.to_dict())
        logger.info(f"Stored PR #{fields.number} of {repository.full_name}")
        return pull_request

    pull_request.id = existing.id
    pull_request.status = existing.status
    pull_request.created_at = existing.created_at
    pull_request.updated_at = utcnow()
    store.replace(PULL_REQUESTS, existing.id, pull_request.to_dict())
    logger.debug(f"Refreshed PR #{fields.number} of {repository.full_name}")
    return pull_request


async def review_pull_request(store: DocumentStore, pull_request: PullRequest) -> dict:
    """Run a review pass with an installation-scoped GitHub client."""
    repository = store.get_repository(pull_request.repository_id)
    installation = store.get_installation(repository.installation_id) if repository else None
    if repository is None or installation is None:
        raise NotFoundError(f"Installation for PR #{pull_request.number} not found")

    if installation.suspended:
        logger.info(f"Skipping PR #{pull_request.number}: installation suspended")
        return {"status": "skipped", "reason": "installation suspended"}

    github = await get_github_app_auth().get_client(
        installation.github_installation_id, repository.full_name
    )
    agent = ReviewAgent(AgentContext(github_client=github, store=store))
    result = await agent.run(pull_request.id)

    return {
        "status": "skipped" if result.skipped else "processed",
        "review_status": result.status.value,
        "code_review_id": result.code_review_id,
        "comment_id": result.comment_id,
    }


async def handle_pull_request_event(payload: dict, store: DocumentStore) -> dict:
    """Handle pull_request events.

    Args:
        payload: Webhook payload
        store: Document store

    Returns:
        Result dictionary
    """
    action = payload.get("action", "")

    if action in REVIEW_ACTIONS:
        fields = PullRequestFields.from_payload(payload)
        pull_request = ingest_pull_request(store, fields)
        logger.info(f"PR #{fields.number} {action}, starting review")
        result = await review_pull_request(store, pull_request)
        return {"action": action, "pull_request_id": pull_request.id, **result}

    elif action == "edited":
        fields = PullRequestFields.from_payload(payload)
        if store.get_pull_request_by_github_id(fields.github_id) is None:
            logger.info(f"Ignoring edit of unknown PR #{fields.number}")
            return {"status": "ignored", "action": action}
        pull_request = ingest_pull_request(store, fields)
        return {"status": "processed", "action": action, "pull_request_id": pull_request.id}

    elif action == "closed":
        pr = payload.get("pull_request") or {}
        merged = pr.get("merged", False)
        logger.info(f"PR #{pr.get('number')} closed (merged={merged})")
        return {"status": "acknowledged", "action": action}

    logger.debug(f"Ignoring pull_request action: {action}")
    return {"status": "ignored", "action": action}
