"""Pytest fixtures for reviewbot tests."""

import hashlib
import hmac
import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from reviewbot.github.models import ChangedFile, PostedComment
from reviewbot.server.config import Settings
from reviewbot.store import MemoryStore


WEBHOOK_SECRET = "test-secret"


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Compute the X-Hub-Signature-256 header for a body."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def webhook_request(event: str, payload: dict, secret: str = WEBHOOK_SECRET) -> dict:
    """Build keyword arguments for a signed TestClient POST."""
    body = json.dumps(payload).encode()
    return {
        "content": body,
        "headers": {
            "X-GitHub-Event": event,
            "X-Hub-Signature-256": sign(body, secret),
            "Content-Type": "application/json",
        },
    }


def installation_payload(
    action: str = "created",
    installation_id: int = 555,
    account_id: int = 9001,
    repositories: list[dict] | None = None,
) -> dict:
    """Sample installation webhook payload."""
    if repositories is None:
        repositories = [
            {"id": 42, "name": "repo", "full_name": "octo/repo", "private": False},
        ]
    return {
        "action": action,
        "installation": {
            "id": installation_id,
            "account": {"id": account_id, "login": "octo", "type": "Organization"},
            "permissions": {"contents": "read", "pull_requests": "write"},
            "repository_selection": "selected",
        },
        "repositories": repositories,
        "sender": {"login": "octo-admin"},
    }


def pull_request_payload(
    action: str = "opened",
    repository_id: int = 42,
    pr_id: int = 1001,
    number: int = 7,
    title: str = "Add greeting endpoint",
    installation_id: int = 555,
) -> dict:
    """Sample pull_request webhook payload."""
    return {
        "action": action,
        "number": number,
        "pull_request": {
            "id": pr_id,
            "number": number,
            "title": title,
            "body": "Adds GET /hello",
            "html_url": f"https://github.com/octo/repo/pull/{number}",
            "user": {"login": "alice", "id": 77},
            "head": {"ref": "feature/hello", "sha": "abcdef1234567890"},
            "base": {"ref": "main", "sha": "0987654321fedcba"},
            "merged": False,
        },
        "repository": {"id": repository_id, "full_name": "octo/repo"},
        "installation": {"id": installation_id},
        "sender": {"login": "alice"},
    }


@pytest.fixture
def store():
    """Empty in-memory document store."""
    return MemoryStore()


@pytest.fixture
def settings():
    """Settings with a webhook secret and no retry delay."""
    return Settings(
        github_webhook_secret=WEBHOOK_SECRET,
        openrouter_api_key="shared-key",
        review_retry_delay=0,
        store_backend="memory",
        _env_file=None,
    )


@pytest.fixture
def mock_github_client():
    """Mock GitHub client for testing."""
    client = MagicMock()
    client.list_changed_files.return_value = [
        ChangedFile(filename="app/hello.py", additions=12, deletions=1),
        ChangedFile(filename="tests/test_hello.py", additions=20, deletions=0),
    ]
    client.get_pr_diff.return_value = (
        "diff --git a/app/hello.py b/app/hello.py\n"
        "+def hello():\n"
        "+    return {'message': 'hello'}\n"
    )
    client.post_comment.return_value = PostedComment(
        id=314, url="https://github.com/octo/repo/pull/7#issuecomment-314"
    )
    return client


@pytest.fixture
def mock_llm_model():
    """Mock LangChain chat model supporting structured output."""
    model = MagicMock()
    model.ainvoke = AsyncMock()
    model.with_structured_output = MagicMock(return_value=model)
    return model


@pytest.fixture
def signed_request():
    """Factory for signed webhook request arguments."""
    return webhook_request


@pytest.fixture
def make_installation_payload():
    """Factory for installation payloads."""
    return installation_payload


@pytest.fixture
def make_pull_request_payload():
    """Factory for pull_request payloads."""
    return pull_request_payload
