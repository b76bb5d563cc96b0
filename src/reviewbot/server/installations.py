"""Installation and repository synchronization from GitHub App webhooks."""

import logging

from reviewbot.errors import NotFoundError, ValidationError
from reviewbot.store.base import DocumentStore
from reviewbot.store.models import (
    CODE_REVIEWS,
    INSTALLATIONS,
    PULL_REQUESTS,
    REPOSITORIES,
    Installation,
    Permissions,
    Repository,
    utcnow,
)

logger = logging.getLogger(__name__)

_PERMISSION_KEYS = ("contents", "metadata", "pull_requests", "checks")


def _require(data: dict, key: str, context: str):
    value = data.get(key)
    if value is None:
        raise ValidationError(f"Missing '{key}' in {context}")
    return value


def _permissions_from_payload(raw: dict | None) -> Permissions:
    raw = raw or {}
    defaults = Permissions()
    return Permissions(
        **{key: raw.get(key) or getattr(defaults, key) for key in _PERMISSION_KEYS}
    )


def _repository_from_payload(repo: dict, installation_id: str) -> Repository:
    """Build a Repository from a payload entry.

    Installation payloads carry a trimmed repository object, so missing
    owner and branch data fall back to defaults.
    """
    github_id = _require(repo, "id", "repository")
    full_name = _require(repo, "full_name", "repository")

    owner = (repo.get("owner") or {}).get("login")
    if not owner:
        owner = full_name.split("/")[0] if "/" in full_name else "unknown"

    return Repository(
        github_id=github_id,
        installation_id=installation_id,
        name=repo.get("name") or full_name.split("/")[-1],
        full_name=full_name,
        owner=owner,
        default_branch=repo.get("default_branch") or "main",
        is_private=bool(repo.get("private", False)),
        language=repo.get("language"),
    )


def delete_repository_cascade(store: DocumentStore, repository: Repository) -> None:
    """Delete a repository with its pull requests and their reviews."""
    for pull_request in store.list_pull_requests(repository.id):
        for review in store.list_code_reviews(pull_request.id):
            store.delete(CODE_REVIEWS, review.id)
        store.delete(PULL_REQUESTS, pull_request.id)
    store.delete(REPOSITORIES, repository.id)
    logger.info(f"Removed repository {repository.full_name}")


def upsert_repository(store: DocumentStore, repository: Repository) -> Repository:
    """Insert a repository or overwrite the stored one with the same GitHub id."""
    existing = store.get_repository_by_github_id(repository.github_id)
    if existing is None:
        repository.id = store.insert(REPOSITORIES, repository.to_dict())
        return repository

    repository.id = existing.id
    repository.created_at = existing.created_at
    repository.settings = existing.settings
    store.replace(REPOSITORIES, existing.id, repository.to_dict())
    return repository


def save_installation(store: DocumentStore, payload: dict) -> Installation:
    """Upsert the installation and converge its repositories to the payload set.

    Args:
        store: Document store
        payload: ``installation`` webhook payload

    Returns:
        The stored Installation
    """
    raw = _require(payload, "installation", "installation payload")
    github_installation_id = _require(raw, "id", "installation")
    account = _require(raw, "account", "installation")

    installation = Installation(
        github_installation_id=github_installation_id,
        account_id=_require(account, "id", "installation account"),
        account_login=account.get("login", ""),
        account_type=account.get("type", "User"),
        permissions=_permissions_from_payload(raw.get("permissions")),
        repository_selection=raw.get("repository_selection") or "selected",
        suspended=False,
    )

    existing = store.get_installation_by_github_id(github_installation_id)
    if existing is None:
        installation.id = store.insert(INSTALLATIONS, installation.to_dict())
        logger.info(
            f"Created installation {github_installation_id} for {installation.account_login}"
        )
    else:
        installation.id = existing.id
        installation.created_at = existing.created_at
        store.replace(INSTALLATIONS, existing.id, installation.to_dict())
        logger.info(f"Updated installation {github_installation_id}")

    repositories = [
        _repository_from_payload(repo, installation.id)
        for repo in payload.get("repositories") or []
    ]
    wanted = {repo.github_id for repo in repositories}

    for stored in store.list_repositories(installation.id):
        if stored.github_id not in wanted:
            delete_repository_cascade(store, stored)

    for repository in repositories:
        upsert_repository(store, repository)

    return installation


def remove_installation(store: DocumentStore, github_installation_id: int) -> bool:
    """Delete an installation and everything stored under it.

    Returns:
        False if the installation was unknown
    """
    installation = store.get_installation_by_github_id(github_installation_id)
    if installation is None:
        logger.info(f"Installation {github_installation_id} not found, nothing to delete")
        return False

    for repository in store.list_repositories(installation.id):
        delete_repository_cascade(store, repository)
    store.delete(INSTALLATIONS, installation.id)

    logger.info(f"Deleted installation {github_installation_id}")
    return True


def set_installation_suspended(
    store: DocumentStore, github_installation_id: int, suspended: bool
) -> bool:
    installation = store.get_installation_by_github_id(github_installation_id)
    if installation is None:
        logger.warning(f"Installation {github_installation_id} not found")
        return False

    store.patch(
        INSTALLATIONS,
        installation.id,
        {"suspended": suspended, "updated_at": utcnow().isoformat()},
    )
    return True


def update_installation_repositories(
    store: DocumentStore,
    github_installation_id: int,
    added: list[dict],
    removed: list[dict],
) -> tuple[int, int]:
    """Apply an installation_repositories delta.

    Returns:
        Number of repositories (added, removed)

    Raises:
        NotFoundError: If the installation is not synchronized yet
    """
    installation = store.get_installation_by_github_id(github_installation_id)
    if installation is None:
        raise NotFoundError(f"Installation {github_installation_id} not found")

    added_count = 0
    for repo in added:
        repository = _repository_from_payload(repo, installation.id)
        if store.get_repository_by_github_id(repository.github_id) is not None:
            continue
        repository.id = store.insert(REPOSITORIES, repository.to_dict())
        added_count += 1
        logger.info(f"Added repository {repository.full_name}")

    removed_count = 0
    for repo in removed:
        repository = store.get_repository_by_github_id(_require(repo, "id", "repository"))
        if repository is None:
            continue
        delete_repository_cascade(store, repository)
        removed_count += 1

    store.patch(INSTALLATIONS, installation.id, {"updated_at": utcnow().isoformat()})
    return added_count, removed_count


async def handle_installation_event(payload: dict, store: DocumentStore) -> dict:
    """Handle GitHub App installation event.

    Args:
        payload: Webhook payload
        store: Document store

    Returns:
        Result dictionary
    """
    action = payload.get("action")

    if action == "created":
        installation = save_installation(store, payload)
        return {
            "status": "processed",
            "action": action,
            "installation_id": installation.github_installation_id,
            "repositories": len(store.list_repositories(installation.id)),
        }

    github_installation_id = _require(
        _require(payload, "installation", "installation payload"), "id", "installation"
    )

    if action == "deleted":
        removed = remove_installation(store, github_installation_id)
        return {
            "status": "processed" if removed else "acknowledged",
            "action": action,
        }

    elif action in ("suspend", "unsuspend"):
        suspended = action == "suspend"
        logger.info(
            f"Installation {github_installation_id} "
            f"{'suspended' if suspended else 'unsuspended'}"
        )
        set_installation_suspended(store, github_installation_id, suspended)
        return {"status": "processed", "action": action}

    return {
        "status": "ignored",
        "action": action,
    }


async def handle_installation_repositories_event(payload: dict, store: DocumentStore) -> dict:
    """Handle installation_repositories event (repos added/removed).

    Args:
        payload: Webhook payload
        store: Document store

    Returns:
        Result dictionary
    """
    action = payload.get("action")
    github_installation_id = _require(
        _require(payload, "installation", "installation_repositories payload"),
        "id",
        "installation",
    )

    if action not in ("added", "removed"):
        return {"status": "ignored", "action": action}

    added, removed = update_installation_repositories(
        store,
        github_installation_id,
        added=payload.get("repositories_added") or [],
        removed=payload.get("repositories_removed") or [],
    )

    return {
        "status": "processed",
        "action": action,
        "added": added,
        "removed": removed,
    }
