"""Webhook verification and routing for GitHub events."""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from enum import Enum

from reviewbot.errors import AuthenticationError, ConfigurationError
from reviewbot.server.installations import (
    handle_installation_event,
    handle_installation_repositories_event,
)
from reviewbot.server.pull_requests import handle_pull_request_event
from reviewbot.store.base import DocumentStore


logger = logging.getLogger(__name__)


class WebhookEvent(str, Enum):
    """Supported webhook events."""

    PING = "ping"
    INSTALLATION = "installation"
    INSTALLATION_REPOSITORIES = "installation_repositories"
    PULL_REQUEST = "pull_request"


@dataclass
class WebhookPayload:
    """Parsed webhook payload."""

    event: str
    action: str
    installation_id: int
    repository: str
    sender: str
    data: dict


def compute_signature(body: bytes, secret: str) -> str:
    """Compute the ``X-Hub-Signature-256`` value for a body."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature_header: str | None, secret: str) -> None:
    """Verify the webhook signature from GitHub.

    Args:
        body: Raw request body, exactly as received
        signature_header: Value of ``X-Hub-Signature-256``
        secret: Webhook secret shared with GitHub

    Raises:
        ConfigurationError: If no secret is configured
        AuthenticationError: If the header is missing or does not match
    """
    if not secret:
        raise ConfigurationError("Webhook secret not configured")

    if not signature_header:
        raise AuthenticationError("Missing signature header")

    if not hmac.compare_digest(signature_header, compute_signature(body, secret)):
        raise AuthenticationError("Invalid signature")


def parse_webhook_payload(event_type: str, payload: dict) -> WebhookPayload:
    """Parse a webhook payload into a structured format.

    Args:
        event_type: GitHub event type
        payload: Raw payload dictionary

    Returns:
        Parsed WebhookPayload
    """
    return WebhookPayload(
        event=event_type,
        action=payload.get("action", ""),
        installation_id=(payload.get("installation") or {}).get("id", 0),
        repository=(payload.get("repository") or {}).get("full_name", ""),
        sender=(payload.get("sender") or {}).get("login", ""),
        data=payload,
    )


async def handle_webhook(event_type: str, payload: dict, store: DocumentStore) -> dict:
    """Main webhook handler that routes to specific handlers.

    Args:
        event_type: GitHub event type
        payload: Webhook payload
        store: Document store

    Returns:
        Handler result
    """
    parsed = parse_webhook_payload(event_type, payload)

    logger.info(
        f"Received webhook: {event_type}/{parsed.action or '-'} "
        f"from {parsed.repository or 'N/A'} by {parsed.sender or 'N/A'}"
    )

    if event_type == WebhookEvent.PING:
        return {"status": "pong", "zen": payload.get("zen", "")}

    elif event_type == WebhookEvent.INSTALLATION:
        return await handle_installation_event(payload, store)

    elif event_type == WebhookEvent.INSTALLATION_REPOSITORIES:
        return await handle_installation_repositories_event(payload, store)

    elif event_type == WebhookEvent.PULL_REQUEST:
        return await handle_pull_request_event(payload, store)

    logger.debug(f"Ignoring event type: {event_type}")
    return {"status": "ignored", "event": event_type}
