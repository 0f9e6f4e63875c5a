"""
Library API Server.

Entry point that configures logging, checks the database is reachable and
serves the FastAPI application with uvicorn.
"""

import logging
import sys

import uvicorn

from .app import create_app
from .config import get_config
from .database.session import DatabaseManager

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Send all log records to stderr with a timestamped format."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main() -> None:
    """Main entry point for the API server.

    This function is called when the server is started via:
    - Command line: `python -m library_api.server`
    - Entry point: `library-api` (defined in pyproject.toml)
    """
    config = get_config()
    configure_logging(config.effective_log_level)

    logger.info("=" * 60)
    logger.info("Library API")
    logger.info("Version: %s", config.app_version)
    logger.info("Listening on: %s:%d", config.host, config.port)
    logger.info("Debug Mode: %s", config.debug)
    logger.info("=" * 60)

    db_manager = DatabaseManager(config.get_database_url())
    if not db_manager.verify_connection():
        logger.error("Could not connect to the database. Check the DB_* settings.")
        sys.exit(1)

    try:
        uvicorn.run(
            create_app(db_manager=db_manager, config=config),
            host=config.host,
            port=config.port,
            log_level=config.effective_log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start Library API server")
        sys.exit(1)


if __name__ == "__main__":
    main()
