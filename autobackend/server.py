"""
Process entry point.

Checks the configuration before binding a port and refuses to start when no
usable Gemini credential is present.
"""
from __future__ import annotations

import logging
from typing import Optional

import uvicorn

from autobackend.config import Settings, check_startup, settings
from autobackend.logging_config import configure_logging

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def main(config: Optional[Settings] = None) -> int:
    """Validate configuration, then serve the app. Returns a process exit status."""
    configure_logging()
    config = config or settings

    problems = check_startup(config)
    if problems:
        for problem in problems:
            logger.error("Startup check failed: %s", problem)
        return 1

    logger.info("Auto Backend API running on port %d (%s)", config.PORT, config.ENVIRONMENT)
    logger.info("Health check: http://localhost:%d/health", config.PORT)
    logger.info("Generate API: POST http://localhost:%d/generate", config.PORT)
    logger.info("Sample spec: GET http://localhost:%d/sample-spec", config.PORT)

    uvicorn.run("autobackend.api.main:app", host=config.HOST, port=config.PORT, log_level="info")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
