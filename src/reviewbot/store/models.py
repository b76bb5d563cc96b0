"""Data models for persisted reviewbot documents."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum


INSTALLATIONS = "installations"
REPOSITORIES = "repositories"
PULL_REQUESTS = "pull_requests"
CODE_REVIEWS = "code_reviews"
AI_CONFIGURATIONS = "ai_configurations"
USERS = "users"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_dt(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class PullRequestStatus(str, Enum):
    """Review status of a pull request."""

    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class Permissions:
    """Permission levels granted to an installation."""

    contents: str = "read"
    metadata: str = "read"
    pull_requests: str = "write"
    checks: str = "write"


@dataclass
class RepositorySettings:
    """Per-repository review settings."""

    enable_style_checks: bool = True
    enable_security_checks: bool = True
    enable_performance_checks: bool = True
    min_severity: str = "medium"
    exclude_patterns: list[str] = field(default_factory=list)
    custom_rules: list[str] = field(default_factory=list)


@dataclass
class Installation:
    """One GitHub App installation on an account."""

    github_installation_id: int
    account_id: int
    account_login: str
    account_type: str
    permissions: Permissions = field(default_factory=Permissions)
    repository_selection: str = "selected"
    suspended: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    id: str | None = None

    def to_dict(self) -> dict:
        """Convert to a document dictionary."""
        return {
            "github_installation_id": self.github_installation_id,
            "account_id": self.account_id,
            "account_login": self.account_login,
            "account_type": self.account_type,
            "permissions": asdict(self.permissions),
            "repository_selection": self.repository_selection,
            "suspended": self.suspended,
            "created_at": _format_dt(self.created_at),
            "updated_at": _format_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Installation":
        """Create from a stored document."""
        return cls(
            github_installation_id=data["github_installation_id"],
            account_id=data["account_id"],
            account_login=data.get("account_login", ""),
            account_type=data.get("account_type", "User"),
            permissions=Permissions(**data.get("permissions", {})),
            repository_selection=data.get("repository_selection", "selected"),
            suspended=data.get("suspended", False),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
            id=data.get("id"),
        )


@dataclass
class Repository:
    """A repository reachable through an installation."""

    github_id: int
    installation_id: str
    name: str
    full_name: str
    owner: str
    default_branch: str = "main"
    is_private: bool = False
    language: str | None = None
    is_active: bool = True
    settings: RepositorySettings = field(default_factory=RepositorySettings)
    created_at: datetime = field(default_factory=utcnow)
    id: str | None = None

    def to_dict(self) -> dict:
        """Convert to a document dictionary."""
        return {
            "github_id": self.github_id,
            "installation_id": self.installation_id,
            "name": self.name,
            "full_name": self.full_name,
            "owner": self.owner,
            "default_branch": self.default_branch,
            "is_private": self.is_private,
            "language": self.language,
            "is_active": self.is_active,
            "settings": asdict(self.settings),
            "created_at": _format_dt(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Repository":
        """Create from a stored document."""
        return cls(
            github_id=data["github_id"],
            installation_id=data["installation_id"],
            name=data["name"],
            full_name=data["full_name"],
            owner=data["owner"],
            default_branch=data.get("default_branch", "main"),
            is_private=data.get("is_private", False),
            language=data.get("language"),
            is_active=data.get("is_active", True),
            settings=RepositorySettings(**data.get("settings", {})),
            created_at=_parse_dt(data.get("created_at")),
            id=data.get("id"),
        )


@dataclass
class PullRequest:
    """A pull request observed through webhooks."""

    github_id: int
    repository_id: str
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
    status: PullRequestStatus = PullRequestStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    id: str | None = None

    def to_dict(self) -> dict:
        """Convert to a document dictionary."""
        return {
            "github_id": self.github_id,
            "repository_id": self.repository_id,
            "number": self.number,
            "title": self.title,
            "body": self.body,
            "author": self.author,
            "author_id": self.author_id,
            "head_ref": self.head_ref,
            "base_ref": self.base_ref,
            "head_sha": self.head_sha,
            "base_sha": self.base_sha,
            "status": self.status.value,
            "url": self.url,
            "created_at": _format_dt(self.created_at),
            "updated_at": _format_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PullRequest":
        """Create from a stored document."""
        return cls(
            github_id=data["github_id"],
            repository_id=data["repository_id"],
            number=data["number"],
            title=data["title"],
            body=data.get("body"),
            author=data["author"],
            author_id=data["author_id"],
            head_ref=data["head_ref"],
            base_ref=data["base_ref"],
            head_sha=data["head_sha"],
            base_sha=data["base_sha"],
            status=PullRequestStatus(data.get("status", "pending")),
            url=data["url"],
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
            id=data.get("id"),
        )


@dataclass
class Finding:
    """One observation produced by a review pass."""

    file: str
    severity: str
    category: str
    rule_id: str
    message: str
    type: str = "issue"  # "issue", "improvement", "praise"
    line: int | None = None
    end_line: int | None = None
    suggestion: str | None = None
    confidence: float = 0.8


@dataclass
class CodeReview:
    """Outcome of one analysis pass over a pull request."""

    pull_request_id: str
    summary: str
    overall_score: float
    findings: list[Finding] = field(default_factory=list)
    github_comment_id: int | None = None
    completed_at: datetime = field(default_factory=utcnow)
    id: str | None = None

    def to_dict(self) -> dict:
        """Convert to a document dictionary."""
        return {
            "pull_request_id": self.pull_request_id,
            "findings": [asdict(f) for f in self.findings],
            "summary": self.summary,
            "overall_score": self.overall_score,
            "github_comment_id": self.github_comment_id,
            "completed_at": _format_dt(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CodeReview":
        """Create from a stored document."""
        return cls(
            pull_request_id=data["pull_request_id"],
            findings=[Finding(**f) for f in data.get("findings", [])],
            summary=data.get("summary", ""),
            overall_score=data.get("overall_score", 0),
            github_comment_id=data.get("github_comment_id"),
            completed_at=_parse_dt(data.get("completed_at")),
            id=data.get("id"),
        )


@dataclass
class User:
    """An account holder, linked to installations by GitHub id."""

    github_id: int
    username: str = ""
    id: str | None = None

    def to_dict(self) -> dict:
        return {"github_id": self.github_id, "username": self.username}

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            github_id=data["github_id"],
            username=data.get("username", ""),
            id=data.get("id"),
        )


@dataclass
class AIConfiguration:
    """Per-user choice of inference provider."""

    user_id: str
    provider: str  # "openrouter", "openrouter-free", "openai", "anthropic"
    api_key: str | None = None
    model: str | None = None
    id: str | None = None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "provider": self.provider,
            "api_key": self.api_key,
            "model": self.model,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AIConfiguration":
        return cls(
            user_id=data["user_id"],
            provider=data["provider"],
            api_key=data.get("api_key"),
            model=data.get("model"),
            id=data.get("id"),
        )
