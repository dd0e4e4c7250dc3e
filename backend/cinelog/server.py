"""Web server entry point."""

import logging
import sys

import uvicorn

from cinelog.config import Settings
from cinelog.main import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    """Run the API server."""
    setup_logging(Settings.LOG_LEVEL)

    errors = Settings.validate()
    if errors:
        logger.error("Configuration errors:")
        for error in errors:
            logger.error(f"  - {error}")
        logger.error("Please set these variables in your .env file or environment.")
        return 1

    logger.info(f"Starting Cinelog API on http://0.0.0.0:{Settings.PORT}")
    uvicorn.run(
        "cinelog.main:app",
        host="0.0.0.0",
        port=int(Settings.PORT),
        reload=False,
        log_level=Settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
