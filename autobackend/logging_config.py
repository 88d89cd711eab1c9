"""
Logging setup for the Auto Backend API.

One line per request comes from the `log_requests` middleware in api/main.py,
so uvicorn's own access log and httpx's per-call INFO lines are held back to
warnings. Generation timing and upstream failures are logged by
services/generation.py under the root format below.
"""
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Loggers that duplicate what the service already records per request.
NOISY_LOGGERS = ("httpx", "uvicorn.access")


# PUBLIC_INTERFACE
def configure_logging(default_level: str | None = None) -> int:
    """Configure root logging and quiet duplicate per-request loggers.

    Parameters
    ----------
    default_level : str | None
        Level name like "INFO" or "DEBUG". If None, uses LOG_LEVEL env or
        falls back to INFO. Unknown names also fall back to INFO.

    Returns
    -------
    int
        The numeric level applied to the root logger.
    """
    level_name = default_level or os.getenv("LOG_LEVEL", "INFO")
    level = logging.getLevelName(level_name.strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return level
