"""FastAPI application for GitHub App webhook handling."""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request

from reviewbot import __version__
from reviewbot.errors import AuthenticationError, ConfigurationError, ValidationError
from reviewbot.server.config import get_settings
from reviewbot.server.dependencies import close_store, get_store
from reviewbot.server.webhooks import handle_webhook, verify_signature
from reviewbot.store.base import DocumentStore


# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(f"Starting reviewbot webhook server on {settings.host}:{settings.port}")
    logger.info(f"GitHub App ID: {settings.github_app_id}")
    logger.info(f"Store backend: {settings.store_backend}")
    if not settings.github_webhook_secret:
        logger.warning("GITHUB_WEBHOOK_SECRET is not set, every delivery will be rejected")
    yield
    logger.info("Shutting down reviewbot webhook server")
    close_store()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="reviewbot",
        description="GitHub App for automated AI pull request review",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    @app.get("/")
    async def root():
        """Root endpoint with app info."""
        return {
            "name": "reviewbot",
            "version": __version__,
            "description": "GitHub App for automated AI code review",
            "status": "running",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.post("/github/webhook")
    async def webhook(request: Request, store: DocumentStore = Depends(get_store)):
        """GitHub webhook endpoint.

        The delivery is processed before responding so GitHub redelivers
        anything that failed with a 5xx.
        """
        signature = request.headers.get("X-Hub-Signature-256")
        if not signature:
            raise HTTPException(status_code=400, detail="Missing X-Hub-Signature-256 header")

        event_type = request.headers.get("X-GitHub-Event")
        if not event_type:
            raise HTTPException(status_code=400, detail="Missing X-GitHub-Event header")

        # Raw body for signature verification
        body = await request.body()
        if not body:
            raise HTTPException(status_code=400, detail="Empty request body")

        try:
            verify_signature(body, signature, get_settings().github_webhook_secret)
        except AuthenticationError as e:
            logger.warning(f"Rejected {event_type} delivery: {e}")
            raise HTTPException(status_code=401, detail=str(e))
        except ConfigurationError as e:
            logger.error(f"Cannot verify {event_type} delivery: {e}")
            raise HTTPException(status_code=500, detail="Webhook secret not configured")

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise HTTPException(status_code=400, detail="Invalid JSON payload")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

        try:
            result = await handle_webhook(event_type, payload, store)
        except ValidationError as e:
            logger.warning(f"Malformed {event_type} payload: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.exception(f"Error processing {event_type} webhook: {e}")
            raise HTTPException(status_code=500, detail="Webhook processing failed")

        logger.info(f"Webhook processed: {result}")
        return result

    return app


# Create default app instance
app = create_app()
