"""Main entry point for the reviewbot webhook server."""

import uvicorn

from reviewbot.server.config import get_settings


def run():
    """Run the webhook server."""
    settings = get_settings()

    uvicorn.run(
        "reviewbot.server.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
