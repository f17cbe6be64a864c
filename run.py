"""Entry point for the TODO API server.

Loads configuration from the environment (and from a ``.env`` file in
the working directory, if there is one), builds the application and
serves it until SIGINT or SIGTERM.  In-flight requests are given
``SHUTDOWN_TIMEOUT`` seconds to finish.

``BASIC_AUTH_USER_ID`` and ``BASIC_AUTH_PASSWORD`` are required.  See
``todo_api/app/core/config.py`` for the other supported variables.

The process exits with status 0 after a graceful shutdown and 1 when
configuration is invalid, the listener cannot be bound or fails, or
requests outlive the shutdown window.

Usage:
    python run.py
"""
import asyncio
import logging
import sys
from zoneinfo import ZoneInfoNotFoundError

from dotenv import load_dotenv

from todo_api.app.core.config import Settings
from todo_api.app.core.lifecycle import LifecycleError, LifecycleManager
from todo_api.app.core.logging_config import setup_logging
from todo_api.app.main import create_app

logger = logging.getLogger("todo_api")


async def serve(settings: Settings) -> None:
    """Build the application and run it under the lifecycle manager."""
    app = create_app(settings)
    manager = LifecycleManager(
        app,
        host=settings.host,
        port=settings.port,
        shutdown_timeout=settings.shutdown_timeout,
    )
    await manager.run()


def load_settings() -> Settings:
    settings = Settings.from_env()
    settings.require_basic_auth()
    settings.tz  # fail early on an unknown TIME_ZONE
    return settings


def main() -> int:
    env_loaded = load_dotenv()
    try:
        settings = load_settings()
    except (ValueError, ZoneInfoNotFoundError) as exc:
        setup_logging()
        logger.critical("invalid configuration: %s", exc)
        return 1

    setup_logging(settings.log_level, settings.log_file or None)
    if not env_loaded:
        logger.info("failed to load .env file")

    try:
        asyncio.run(serve(settings))
    except LifecycleError as exc:
        logger.critical("main: failed to exit successfully, err = %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
