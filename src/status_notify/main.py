"""Application entry point for the status-notify server."""

from __future__ import annotations

import logging
import os

import uvicorn

from status_notify.config.settings import AppConfig


def main() -> None:
    """Start the status-notify server."""
    config = AppConfig()
    logging.basicConfig(level=logging.DEBUG if config.debug else logging.INFO)
    reload = os.getenv("STATUSNOTIFY_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "status_notify.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
